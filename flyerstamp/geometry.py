# Scale, cover-crop and clip-path math. Pure functions, no PIL/Qt dependencies.
from __future__ import annotations

from typing import Any

from flyerstamp.constants import (
    HOLE_SHAPE_ALIASES,
    HOLE_SHAPE_BOX,
    HOLE_SHAPE_CIRCLE,
    HOLE_SHAPE_OPTIONS,
    HOLE_SHAPE_TRAPEZIUM,
    HOLE_SHAPE_TRIANGLE,
    RESIZE_HANDLES,
    SCALE_POLICY_FIT_WIDTH,
    SCALE_POLICY_FIT_WIDTH_CAPPED,
    SCALE_POLICY_OPTIONS,
    TRAPEZIUM_INSET_RATIO,
)
from flyerstamp.errors import InvalidGeometryError
from flyerstamp.models import CropRect, ImagePlaceholder, PathDescriptor, Placeholder, RenderTarget

Box = tuple[float, float, float, float]


def normalize_hole_shape(value: Any) -> str:
    text = str(value or HOLE_SHAPE_BOX).strip().lower()
    text = HOLE_SHAPE_ALIASES.get(text, text)
    if text not in HOLE_SHAPE_OPTIONS:
        return HOLE_SHAPE_BOX
    return text


def normalize_scale_policy(value: Any) -> str:
    text = str(value or "").strip().lower()
    if text not in SCALE_POLICY_OPTIONS:
        raise ValueError(f"unknown scale policy: {value!r}")
    return text


def compute_scale(
    container_width: float,
    natural_width: float,
    natural_height: float,
    *,
    policy: str,
    max_height: float | None = None,
) -> float:
    """Return the display scale for a background of the given natural size.

    ``fit_width`` fills the container width exactly and lets the height follow.
    ``fit_width_capped`` additionally keeps the displayed height within
    ``max_height``. Callers pick the policy explicitly per surface.
    """
    policy = normalize_scale_policy(policy)
    if container_width <= 0 or natural_width <= 0 or natural_height <= 0:
        raise InvalidGeometryError(
            f"scale needs positive sizes, got container={container_width} natural={natural_width}x{natural_height}"
        )
    width_scale = container_width / float(natural_width)
    if policy == SCALE_POLICY_FIT_WIDTH:
        return width_scale
    if max_height is None or max_height <= 0:
        raise InvalidGeometryError(f"{SCALE_POLICY_FIT_WIDTH_CAPPED} requires a positive max_height")
    return min(width_scale, max_height / float(natural_height))


def compute_render_target(
    container_width: float,
    natural_width: int,
    natural_height: int,
    *,
    policy: str,
    max_height: float | None = None,
) -> RenderTarget:
    scale = compute_scale(
        container_width,
        natural_width,
        natural_height,
        policy=policy,
        max_height=max_height,
    )
    return RenderTarget(
        width=max(1, int(round(natural_width * scale))),
        height=max(1, int(round(natural_height * scale))),
        scale=scale,
    )


def cover_crop(source_width: float, source_height: float, target_width: float, target_height: float) -> CropRect:
    """Largest centered source rectangle with the target's aspect ratio (object-fit: cover)."""
    if source_width <= 0 or source_height <= 0:
        raise InvalidGeometryError(f"cover crop on empty source {source_width}x{source_height}")
    if target_width <= 0 or target_height <= 0:
        raise InvalidGeometryError(f"cover crop on zero-area target {target_width}x{target_height}")
    source_aspect = source_width / float(source_height)
    target_aspect = target_width / float(target_height)
    if source_aspect > target_aspect:
        crop_width = min(float(source_width), source_height * target_aspect)
        return CropRect(
            x=(source_width - crop_width) / 2.0,
            y=0.0,
            width=crop_width,
            height=float(source_height),
        )
    crop_height = min(float(source_height), source_width / target_aspect)
    return CropRect(
        x=0.0,
        y=(source_height - crop_height) / 2.0,
        width=float(source_width),
        height=crop_height,
    )


def clip_path(shape: Any, width: float, height: float) -> PathDescriptor:
    resolved = normalize_hole_shape(shape)
    w = float(width)
    h = float(height)
    if resolved == HOLE_SHAPE_CIRCLE:
        radius = min(w, h) / 2.0
        cx = w / 2.0
        cy = h / 2.0
        return PathDescriptor(
            shape=resolved,
            kind="ellipse",
            bbox=(cx - radius, cy - radius, cx + radius, cy + radius),
        )
    if resolved == HOLE_SHAPE_TRIANGLE:
        points = ((w / 2.0, 0.0), (w, h), (0.0, h))
    elif resolved == HOLE_SHAPE_TRAPEZIUM:
        inset = w * TRAPEZIUM_INSET_RATIO
        points = ((inset, 0.0), (w - inset, 0.0), (w, h), (0.0, h))
    else:
        points = ((0.0, 0.0), (w, 0.0), (w, h), (0.0, h))
    return PathDescriptor(shape=resolved, kind="polygon", points=points)


def to_display(box: Box, scale: float) -> Box:
    if scale <= 0:
        raise InvalidGeometryError(f"scale must be positive, got {scale}")
    x, y, w, h = box
    return (x * scale, y * scale, w * scale, h * scale)


def to_natural(box: Box, scale: float) -> Box:
    if scale <= 0:
        raise InvalidGeometryError(f"scale must be positive, got {scale}")
    x, y, w, h = box
    return (x / scale, y / scale, w / scale, h / scale)


def _circle_radius(display_width: float, display_height: float) -> float:
    return min(display_width, display_height) / 2.0


def shape_origin(placeholder: Placeholder, scale: float) -> tuple[float, float]:
    """Display-space top-left of the box the placeholder's shape is drawn in.

    Circle image placeholders are anchored on the stored point, so their box
    starts one radius up and left of it. Every other shape (and text) treats
    the stored point as the top-left corner.
    """
    x, y, w, h = to_display(placeholder.box, scale)
    if isinstance(placeholder, ImagePlaceholder) and normalize_hole_shape(placeholder.hole_shape) == HOLE_SHAPE_CIRCLE:
        radius = _circle_radius(w, h)
        return (x - radius, y - radius)
    return (x, y)


def shape_box(placeholder: Placeholder, scale: float) -> Box:
    """Display-space box the placeholder's shape (and its handles) occupies."""
    _x, _y, w, h = to_display(placeholder.box, scale)
    ox, oy = shape_origin(placeholder, scale)
    return (ox, oy, w, h)


def anchor_from_origin(shape: str | None, origin: tuple[float, float], display_width: float, display_height: float) -> tuple[float, float]:
    """Inverse of shape_origin, still in display pixels."""
    if shape is not None and normalize_hole_shape(shape) == HOLE_SHAPE_CIRCLE:
        radius = _circle_radius(display_width, display_height)
        return (origin[0] + radius, origin[1] + radius)
    return origin


def _point_in_polygon(points: tuple[tuple[float, float], ...], px: float, py: float) -> bool:
    inside = False
    count = len(points)
    if count < 3:
        return False
    j = count - 1
    for i in range(count):
        xi, yi = points[i]
        xj, yj = points[j]
        if (yi > py) != (yj > py):
            cross_x = xi + (py - yi) * (xj - xi) / (yj - yi)
            if px < cross_x:
                inside = not inside
        j = i
    return inside


def _point_on_polygon_edge(points: tuple[tuple[float, float], ...], px: float, py: float, eps: float = 1e-9) -> bool:
    count = len(points)
    for i in range(count):
        x1, y1 = points[i]
        x2, y2 = points[(i + 1) % count]
        cross = (x2 - x1) * (py - y1) - (y2 - y1) * (px - x1)
        if abs(cross) > eps * max(1.0, abs(x2 - x1) + abs(y2 - y1)):
            continue
        if min(x1, x2) - eps <= px <= max(x1, x2) + eps and min(y1, y2) - eps <= py <= max(y1, y2) + eps:
            return True
    return False


def shape_contains(path: PathDescriptor, point: tuple[float, float]) -> bool:
    """Hit test a shape-local point against a clip path (edges count as inside)."""
    px, py = point
    if path.kind == "ellipse" and path.bbox is not None:
        left, top, right, bottom = path.bbox
        rx = (right - left) / 2.0
        ry = (bottom - top) / 2.0
        if rx <= 0 or ry <= 0:
            return False
        cx = left + rx
        cy = top + ry
        return ((px - cx) / rx) ** 2 + ((py - cy) / ry) ** 2 <= 1.0 + 1e-9
    return _point_on_polygon_edge(path.points, px, py) or _point_in_polygon(path.points, px, py)


def resize_box(box: Box, handle: str, dx: float, dy: float) -> Box:
    """Apply a handle drag of (dx, dy) to a display-space box."""
    if handle not in RESIZE_HANDLES:
        raise InvalidGeometryError(f"unknown resize handle: {handle!r}")
    x, y, w, h = box
    if "w" in handle:
        x += dx
        w -= dx
    elif "e" in handle:
        w += dx
    if "n" in handle:
        y += dy
        h -= dy
    elif "s" in handle:
        h += dy
    return (x, y, w, h)


def handle_points(box: Box) -> dict[str, tuple[float, float]]:
    x, y, w, h = box
    cx = x + w / 2.0
    cy = y + h / 2.0
    return {
        "nw": (x, y),
        "n": (cx, y),
        "ne": (x + w, y),
        "e": (x + w, cy),
        "se": (x + w, y + h),
        "s": (cx, y + h),
        "sw": (x, y + h),
        "w": (x, cy),
    }


def meets_min_size(width: float, height: float, min_size: float) -> bool:
    return width >= min_size and height >= min_size
