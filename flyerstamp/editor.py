"""Interactive placeholder editing.

An ``EditorSession`` owns a working copy of a template for the lifetime of
one editing session. Pointer positions are display pixels on the rendered
scene; everything written back to the template is divided by the scale.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, replace
from typing import Any

from flyerstamp.constants import (
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_IMAGE_DISPLAY_SIZE,
    DEFAULT_TEXT_ALIGN,
    DEFAULT_TEXT_DISPLAY_SIZE,
    HOLE_SHAPE_BOX,
    MIN_DISPLAY_SIZE,
    MIN_FONT_SIZE,
    PLACEHOLDER_KIND_IMAGE,
    PLACEHOLDER_KIND_TEXT,
    RESIZE_HANDLES,
)
from flyerstamp.errors import InvalidGeometryError
from flyerstamp.geometry import (
    anchor_from_origin,
    clip_path,
    handle_points,
    meets_min_size,
    normalize_hole_shape,
    resize_box,
    shape_box,
    shape_contains,
    to_display,
    to_natural,
)
from flyerstamp.models import (
    GeometryDelta,
    ImagePlaceholder,
    Placeholder,
    RenderTarget,
    Template,
    TextPlaceholder,
)
from flyerstamp.render.typography import normalize_font_style, normalize_text_transform
from flyerstamp.template_loader import normalize_color, normalize_text_align

LOGGER = logging.getLogger(__name__)

STATE_IDLE = "idle"
STATE_SELECTED = "selected"
STATE_DRAGGING = "dragging"
STATE_RESIZING = "resizing"

HANDLE_HIT_RADIUS = 6.0

Point = tuple[float, float]

_TEXT_STYLE_FIELDS = {
    "font_size",
    "color",
    "font_family",
    "font_style",
    "text_align",
    "text_transform",
    "font_weight",
    "sample_text",
    "label_text",
    "required",
}
_IMAGE_STYLE_FIELDS = {"hole_shape", "label_text", "required"}


@dataclass(slots=True, frozen=True)
class EditorLimits:
    max_text_placeholders: int | None = 3
    max_image_placeholders: int | None = 1
    min_display_size: float = MIN_DISPLAY_SIZE
    min_font_size: float = MIN_FONT_SIZE

    @classmethod
    def from_config(cls, cfg: dict[str, Any]) -> EditorLimits:
        def _cap(key: str, fallback: int) -> int | None:
            value = cfg.get(key, fallback)
            if value is None:
                return None
            return max(0, int(value))

        return cls(
            max_text_placeholders=_cap("max_text_placeholders", 3),
            max_image_placeholders=_cap("max_image_placeholders", 1),
            min_display_size=float(cfg.get("min_display_size") or MIN_DISPLAY_SIZE),
        )

    def cap_for(self, kind: str) -> int | None:
        if kind == PLACEHOLDER_KIND_IMAGE:
            return self.max_image_placeholders
        return self.max_text_placeholders


def new_placeholder_id(kind: str) -> str:
    return f"{kind}_{uuid.uuid4().hex[:8]}"


def _resized_font_size(
    font_size: float,
    scale: float,
    start_box: tuple[float, float, float, float],
    new_box: tuple[float, float, float, float],
    min_font_size: float,
) -> float:
    sx = new_box[2] / start_box[2] if start_box[2] else 1.0
    sy = new_box[3] / start_box[3] if start_box[3] else 1.0
    display_font = max(min_font_size, font_size * scale * min(sx, sy))
    return display_font / scale


def _with_display_box(
    placeholder: Placeholder,
    scale: float,
    box: tuple[float, float, float, float],
) -> Placeholder:
    """Store a display-space shape box back into natural coordinates."""
    ox, oy, w, h = box
    shape = placeholder.hole_shape if isinstance(placeholder, ImagePlaceholder) else None
    ax, ay = anchor_from_origin(shape, (ox, oy), w, h)
    x, y, width, height = to_natural((ax, ay, w, h), scale)
    return placeholder.with_geometry(x, y, width, height)


def apply_edit(
    template: Template,
    placeholder_id: str,
    delta: GeometryDelta,
    limits: EditorLimits | None = None,
) -> Template:
    """Apply one display-space move/resize and return a new template.

    A resize that would leave the placeholder under the minimum display size
    rejects the whole edit, move included: the returned copy is unchanged.
    """
    limits = limits or EditorLimits()
    updated = template.copy()
    index = updated.index_of(placeholder_id)
    if index < 0:
        raise KeyError(placeholder_id)
    placeholder = updated.placeholders[index]
    scale = delta.scale
    x, y, w, h = to_display(placeholder.box, scale)
    new_w = w + delta.dwidth
    new_h = h + delta.dheight
    if (delta.dwidth or delta.dheight) and not meets_min_size(new_w, new_h, limits.min_display_size):
        LOGGER.debug("edit rejected id=%s size=%.1fx%.1f", placeholder_id, new_w, new_h)
        return updated

    nx, ny, nw, nh = to_natural((x + delta.dx, y + delta.dy, new_w, new_h), scale)
    moved = placeholder.with_geometry(nx, ny, nw, nh)
    if isinstance(moved, TextPlaceholder) and (new_w, new_h) != (w, h):
        moved.font_size = _resized_font_size(
            placeholder.font_size, scale, (x, y, w, h), (x, y, new_w, new_h), limits.min_font_size
        )
    updated.placeholders[index] = moved
    return updated


class EditorSession:
    """Editing state for one template: selection, drag and resize gestures."""

    def __init__(
        self,
        template: Template,
        target: RenderTarget | float,
        limits: EditorLimits | None = None,
    ) -> None:
        self._original = template
        self.template = template.copy()
        self.limits = limits or EditorLimits()
        self.target = target if isinstance(target, RenderTarget) else None
        self.scale = target.scale if isinstance(target, RenderTarget) else float(target)
        if self.scale <= 0:
            raise InvalidGeometryError(f"scale must be positive, got {self.scale}")
        self.state = STATE_IDLE
        self.selected_index: int | None = None
        self.add_mode: str | None = None
        self.closed = False
        self._pointer_start: Point | None = None
        self._start_box: tuple[float, float, float, float] | None = None
        self._start_placeholder: Placeholder | None = None
        self._handle: str | None = None

    # -- queries -----------------------------------------------------------

    @property
    def selected(self) -> Placeholder | None:
        if self.selected_index is None:
            return None
        return self.template.placeholders[self.selected_index]

    def count(self, kind: str) -> int:
        return sum(1 for p in self.template.placeholders if p.kind == kind)

    def can_add(self, kind: str) -> bool:
        cap = self.limits.cap_for(kind)
        return cap is None or self.count(kind) < cap

    def display_box(self, placeholder: Placeholder) -> tuple[float, float, float, float]:
        return shape_box(placeholder, self.scale)

    def hit_test(self, point: Point) -> int | None:
        """Index of the topmost placeholder whose drawn shape contains ``point``."""
        for index in range(len(self.template.placeholders) - 1, -1, -1):
            placeholder = self.template.placeholders[index]
            ox, oy, w, h = self.display_box(placeholder)
            shape = placeholder.hole_shape if isinstance(placeholder, ImagePlaceholder) else HOLE_SHAPE_BOX
            if shape_contains(clip_path(shape, w, h), (point[0] - ox, point[1] - oy)):
                return index
        return None

    def handle_at(self, point: Point) -> str | None:
        placeholder = self.selected
        if placeholder is None:
            return None
        for name, (hx, hy) in handle_points(self.display_box(placeholder)).items():
            if abs(point[0] - hx) <= HANDLE_HIT_RADIUS and abs(point[1] - hy) <= HANDLE_HIT_RADIUS:
                return name
        return None

    def _inside_canvas(self, point: Point) -> bool:
        if self.target is None:
            return point[0] >= 0 and point[1] >= 0
        return 0 <= point[0] <= self.target.width and 0 <= point[1] <= self.target.height

    def _ensure_open(self) -> None:
        if self.closed:
            raise RuntimeError("editor session is closed")

    # -- selection ---------------------------------------------------------

    def select(self, placeholder_id: str) -> bool:
        self._ensure_open()
        index = self.template.index_of(placeholder_id)
        if index < 0:
            return False
        self.selected_index = index
        self.state = STATE_SELECTED
        return True

    def clear_selection(self) -> None:
        self.selected_index = None
        self.state = STATE_IDLE

    def set_add_mode(self, kind: str | None) -> None:
        if kind not in {None, PLACEHOLDER_KIND_IMAGE, PLACEHOLDER_KIND_TEXT}:
            raise ValueError(f"unknown placeholder kind: {kind!r}")
        self.add_mode = kind

    def select_at(self, point: Point) -> bool:
        """Click handling: select the shape under ``point``, or add one in add mode."""
        self._ensure_open()
        index = self.hit_test(point)
        if index is not None:
            self.selected_index = index
            self.state = STATE_SELECTED
            return True
        if self.add_mode is not None:
            return self.add_at(point, self.add_mode) is not None
        self.clear_selection()
        return False

    def add_at(self, point: Point, kind: str) -> Placeholder | None:
        self._ensure_open()
        if not self._inside_canvas(point):
            return None
        if not self.can_add(kind):
            LOGGER.info("placeholder cap reached kind=%s cap=%s", kind, self.limits.cap_for(kind))
            return None

        if kind == PLACEHOLDER_KIND_IMAGE:
            dw, dh = DEFAULT_IMAGE_DISPLAY_SIZE
            x, y, w, h = to_natural((point[0], point[1], dw, dh), self.scale)
            placeholder: Placeholder = ImagePlaceholder(
                id=new_placeholder_id(kind),
                x=x,
                y=y,
                width=w,
                height=h,
                hole_shape=HOLE_SHAPE_BOX,
            )
        elif kind == PLACEHOLDER_KIND_TEXT:
            dw, dh = DEFAULT_TEXT_DISPLAY_SIZE
            x, y, w, h = to_natural((point[0], point[1], dw, dh), self.scale)
            placeholder = TextPlaceholder(
                id=new_placeholder_id(kind),
                x=x,
                y=y,
                width=w,
                height=h,
                font_size=DEFAULT_FONT_SIZE / self.scale,
                font_family=DEFAULT_FONT_FAMILY,
                text_align=DEFAULT_TEXT_ALIGN,
            )
        else:
            raise ValueError(f"unknown placeholder kind: {kind!r}")

        self.template.placeholders.append(placeholder)
        self.selected_index = len(self.template.placeholders) - 1
        self.state = STATE_SELECTED
        LOGGER.debug("placeholder added id=%s", placeholder.id)
        return placeholder

    def delete_selected(self) -> bool:
        self._ensure_open()
        if self.selected_index is None or self.state in {STATE_DRAGGING, STATE_RESIZING}:
            return False
        removed = self.template.placeholders.pop(self.selected_index)
        LOGGER.debug("placeholder deleted id=%s", removed.id)
        self.clear_selection()
        return True

    # -- drag --------------------------------------------------------------

    def begin_drag(self, point: Point) -> bool:
        self._ensure_open()
        if self.state in {STATE_DRAGGING, STATE_RESIZING}:
            return False
        index = self.hit_test(point)
        if index is None:
            return False
        self.selected_index = index
        placeholder = self.template.placeholders[index]
        self._start_placeholder = placeholder
        self._pointer_start = point
        self.state = STATE_DRAGGING
        return True

    def drag_to(self, point: Point) -> bool:
        if self.state != STATE_DRAGGING or self._start_placeholder is None or self._pointer_start is None:
            return False
        start = self._start_placeholder
        x, y, w, h = to_display(start.box, self.scale)
        dx = point[0] - self._pointer_start[0]
        dy = point[1] - self._pointer_start[1]
        nx, ny, nw, nh = to_natural((x + dx, y + dy, w, h), self.scale)
        self.template.placeholders[self.selected_index] = start.with_geometry(nx, ny, nw, nh)
        return True

    def end_drag(self, point: Point | None = None) -> bool:
        if self.state != STATE_DRAGGING:
            return False
        if point is not None:
            self.drag_to(point)
        self._reset_gesture()
        return True

    # -- resize ------------------------------------------------------------

    def begin_resize(self, handle: str, point: Point) -> bool:
        self._ensure_open()
        placeholder = self.selected
        if placeholder is None or self.state != STATE_SELECTED:
            return False
        if handle not in RESIZE_HANDLES:
            raise InvalidGeometryError(f"unknown resize handle: {handle!r}")
        self._start_box = self.display_box(placeholder)
        self._start_placeholder = placeholder
        self._pointer_start = point
        self._handle = handle
        self.state = STATE_RESIZING
        return True

    def resize_to(self, point: Point) -> bool:
        """Preview a resize. Sizes under the minimum are rejected and the last valid box stays."""
        if (
            self.state != STATE_RESIZING
            or self._start_box is None
            or self._start_placeholder is None
            or self._pointer_start is None
            or self._handle is None
        ):
            return False
        dx = point[0] - self._pointer_start[0]
        dy = point[1] - self._pointer_start[1]
        new_box = resize_box(self._start_box, self._handle, dx, dy)
        if not meets_min_size(new_box[2], new_box[3], self.limits.min_display_size):
            return False
        start = self._start_placeholder
        resized = _with_display_box(start, self.scale, new_box)
        if isinstance(resized, TextPlaceholder) and isinstance(start, TextPlaceholder):
            resized.font_size = _resized_font_size(
                start.font_size, self.scale, self._start_box, new_box, self.limits.min_font_size
            )
        self.template.placeholders[self.selected_index] = resized
        return True

    def end_resize(self, point: Point | None = None) -> bool:
        if self.state != STATE_RESIZING:
            return False
        if point is not None:
            self.resize_to(point)
        self._reset_gesture()
        return True

    def _reset_gesture(self) -> None:
        self._pointer_start = None
        self._start_box = None
        self._start_placeholder = None
        self._handle = None
        self.state = STATE_SELECTED if self.selected_index is not None else STATE_IDLE

    # -- properties --------------------------------------------------------

    def update_style(self, **fields: Any) -> bool:
        """Update non-geometry fields of the selected placeholder.

        ``font_size`` is given in display pixels.
        """
        self._ensure_open()
        placeholder = self.selected
        if placeholder is None:
            return False
        allowed = _TEXT_STYLE_FIELDS if isinstance(placeholder, TextPlaceholder) else _IMAGE_STYLE_FIELDS
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"unsupported fields for {placeholder.kind} placeholder: {sorted(unknown)}")

        changes: dict[str, Any] = {}
        for name, value in fields.items():
            if name == "font_size":
                display_size = max(self.limits.min_font_size, float(value))
                changes[name] = display_size / self.scale
            elif name == "color":
                changes[name] = normalize_color(value)
            elif name == "font_style":
                changes[name] = normalize_font_style(value)
            elif name == "text_align":
                changes[name] = normalize_text_align(value)
            elif name == "text_transform":
                changes[name] = normalize_text_transform(value)
            elif name == "hole_shape":
                changes[name] = normalize_hole_shape(value)
            elif name == "required":
                changes[name] = bool(value)
            else:
                changes[name] = str(value)
        self.template.placeholders[self.selected_index] = replace(placeholder, **changes)
        return True

    def set_target(self, target: RenderTarget) -> None:
        """Switch to a new display scale (container resized); stored geometry is untouched."""
        if self.state in {STATE_DRAGGING, STATE_RESIZING}:
            raise RuntimeError("cannot rescale during a gesture")
        self.target = target
        self.scale = target.scale

    # -- lifecycle ---------------------------------------------------------

    def commit(self) -> Template:
        self._ensure_open()
        if self.state in {STATE_DRAGGING, STATE_RESIZING}:
            self._reset_gesture()
        self.closed = True
        self.clear_selection()
        return self.template.copy()

    def cancel(self) -> Template:
        self.closed = True
        self.clear_selection()
        return self._original
