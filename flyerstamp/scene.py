"""Scene composition: background + placeholders drawn onto a Pillow surface."""
from __future__ import annotations

import logging
import math
from typing import Any, Callable, Mapping, Union

from PIL import Image, ImageChops, ImageColor, ImageDraw

from flyerstamp.assets import AssetLoader
from flyerstamp.constants import (
    DEFAULT_TEXT_COLOR,
    RENDER_MODE_EDIT,
    RENDER_MODE_FILL,
)
from flyerstamp.decoders.image_decoder import ImageSource
from flyerstamp.geometry import (
    clip_path,
    compute_render_target,
    cover_crop,
    handle_points,
    shape_box,
    to_display,
)
from flyerstamp.models import ImagePlaceholder, PathDescriptor, RenderTarget, Template, TextPlaceholder
from flyerstamp.render.typography import (
    load_font,
    resolve_font_file,
    text_width,
    transform_text,
    wrap_text,
)

LOGGER = logging.getLogger(__name__)

FillValue = Union[Image.Image, str]

BACKGROUND_KEY = "background"
_FILL_KEY_PREFIX = "fill:"

_IMAGE_OUTLINE = (255, 140, 0, 230)
_IMAGE_TINT = (255, 165, 0, 60)
_TEXT_OUTLINE = (59, 130, 246, 230)
_TEXT_TINT = (59, 130, 246, 40)
_HANDLE_FILL = (255, 255, 255, 255)
_HANDLE_SIZE = 8
_MASK_SUPERSAMPLE = 4
_ITALIC_SHEAR = -0.28


def _composite_at(surface: Image.Image, layer: Image.Image, x: int, y: int) -> None:
    # alpha_composite rejects negative destinations, so trim the layer instead
    left = max(0, -x)
    top = max(0, -y)
    if left >= layer.width or top >= layer.height or x >= surface.width or y >= surface.height:
        return
    if left or top:
        layer = layer.crop((left, top, layer.width, layer.height))
    surface.alpha_composite(layer, (max(0, x), max(0, y)))


def _shape_mask(path: PathDescriptor, size: tuple[int, int]) -> Image.Image:
    factor = _MASK_SUPERSAMPLE
    big = Image.new("L", (size[0] * factor, size[1] * factor), 0)
    draw = ImageDraw.Draw(big)
    if path.kind == "ellipse" and path.bbox is not None:
        left, top, right, bottom = path.bbox
        draw.ellipse((left * factor, top * factor, right * factor, bottom * factor), fill=255)
    else:
        draw.polygon([(px * factor, py * factor) for px, py in path.points], fill=255)
    return big.resize(size, Image.Resampling.LANCZOS)


def _rgba(color: str, default: str = DEFAULT_TEXT_COLOR) -> tuple[int, ...]:
    try:
        rgb = ImageColor.getrgb(color)
    except ValueError:
        rgb = ImageColor.getrgb(default)
    if len(rgb) == 3:
        return (*rgb, 255)
    return tuple(rgb)


def _draw_styled_text(
    image: Image.Image,
    draw: ImageDraw.ImageDraw,
    text: str,
    *,
    x: int,
    y: int,
    color: tuple[int, ...],
    font: Any,
    bold: bool,
    italic: bool,
) -> None:
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    width = max(1, right - left)
    height = max(1, bottom)
    layer = Image.new("RGBA", (width + 10, height + 10), (0, 0, 0, 0))
    layer_draw = ImageDraw.Draw(layer)
    # 保留字体自身的 top bearing，各行基线对齐
    text_pos = (5 - left, 5)
    if bold:
        for dx, dy in ((0, 0), (1, 0), (0, 1)):
            layer_draw.text((text_pos[0] + dx, text_pos[1] + dy), text, font=font, fill=color)
    else:
        layer_draw.text(text_pos, text, font=font, fill=color)
    if italic:
        new_width = int(round(layer.width + abs(_ITALIC_SHEAR) * layer.height))
        layer = layer.transform(
            (max(1, new_width), layer.height),
            Image.Transform.AFFINE,
            (1, _ITALIC_SHEAR, 0, 0, 1, 0),
            resample=Image.Resampling.BICUBIC,
        )
    _composite_at(image, layer, x - 5 + left, y - 5)


class SceneRenderer:
    def __init__(self, font_dirs: tuple[str, ...] = ()) -> None:
        self.font_dirs = tuple(font_dirs)

    def render(
        self,
        surface: Image.Image,
        template: Template,
        scale: float,
        fill_values: Mapping[str, FillValue],
        *,
        background: Image.Image | None = None,
        mode: str = RENDER_MODE_FILL,
        selected_id: str | None = None,
    ) -> bool:
        """Redraw ``surface`` from scratch. Returns False (surface cleared) when there is no background."""
        surface.paste((0, 0, 0, 0), (0, 0, surface.width, surface.height))
        if background is None or scale <= 0:
            return False

        bg_size = (
            max(1, int(round(background.width * scale))),
            max(1, int(round(background.height * scale))),
        )
        bg = background if background.size == bg_size else background.resize(bg_size, Image.Resampling.LANCZOS)
        surface.alpha_composite(bg.convert("RGBA"), (0, 0))

        editing = mode == RENDER_MODE_EDIT
        for placeholder in template.placeholders:
            value = fill_values.get(placeholder.id)
            if isinstance(placeholder, ImagePlaceholder):
                if isinstance(value, Image.Image):
                    self._draw_image_fill(surface, placeholder, scale, value)
            elif isinstance(placeholder, TextPlaceholder):
                text = value if isinstance(value, str) else ""
                if editing and not text.strip():
                    text = placeholder.sample_text
                if text.strip():
                    self._draw_text(surface, placeholder, scale, text)

        if editing:
            self._draw_edit_overlay(surface, template, scale, selected_id)
        return True

    def _draw_image_fill(
        self,
        surface: Image.Image,
        placeholder: ImagePlaceholder,
        scale: float,
        fill: Image.Image,
    ) -> None:
        origin_x, origin_y, display_w, display_h = shape_box(placeholder, scale)
        size = (max(1, int(round(display_w))), max(1, int(round(display_h))))
        crop = cover_crop(fill.width, fill.height, placeholder.width, placeholder.height)
        layer = fill.convert("RGBA").resize(size, Image.Resampling.LANCZOS, box=crop.as_box())
        mask = _shape_mask(clip_path(placeholder.hole_shape, size[0], size[1]), size)
        layer.putalpha(ImageChops.multiply(layer.getchannel("A"), mask))
        _composite_at(surface, layer, int(round(origin_x)), int(round(origin_y)))

    def _draw_text(self, surface: Image.Image, placeholder: TextPlaceholder, scale: float, raw_text: str) -> None:
        text = transform_text(raw_text, placeholder.text_transform)
        x, y, width, height = to_display(placeholder.box, scale)
        font_px = max(1, int(round(placeholder.font_size * scale)))
        font_path, synth_bold, synth_italic = resolve_font_file(
            placeholder.font_family,
            placeholder.font_style,
            self.font_dirs,
        )
        font = load_font(font_path, font_px)
        draw = ImageDraw.Draw(surface)
        max_lines = max(1, int(math.floor(height / font_px)))
        lines = wrap_text(draw, text, font, width, max_lines=max_lines)
        color = _rgba(placeholder.color)
        for index, line in enumerate(lines):
            if not line:
                continue
            line_w = text_width(draw, line, font)
            if placeholder.text_align == "center":
                line_x = x + (width - line_w) / 2.0
            elif placeholder.text_align == "right":
                line_x = x + width - line_w
            else:
                line_x = x
            _draw_styled_text(
                surface,
                draw,
                line,
                x=int(round(line_x)),
                y=int(round(y + index * font_px)),
                color=color,
                font=font,
                bold=synth_bold,
                italic=synth_italic,
            )

    def _draw_edit_overlay(
        self,
        surface: Image.Image,
        template: Template,
        scale: float,
        selected_id: str | None,
    ) -> None:
        overlay = Image.new("RGBA", surface.size, (0, 0, 0, 0))
        draw = ImageDraw.Draw(overlay)
        for placeholder in template.placeholders:
            ox, oy, w, h = shape_box(placeholder, scale)
            if isinstance(placeholder, ImagePlaceholder):
                path = clip_path(placeholder.hole_shape, w, h)
                if path.kind == "ellipse" and path.bbox is not None:
                    left, top, right, bottom = path.bbox
                    draw.ellipse(
                        (ox + left, oy + top, ox + right, oy + bottom),
                        fill=_IMAGE_TINT,
                        outline=_IMAGE_OUTLINE,
                        width=2,
                    )
                else:
                    draw.polygon(
                        [(ox + px, oy + py) for px, py in path.points],
                        fill=_IMAGE_TINT,
                        outline=_IMAGE_OUTLINE,
                        width=2,
                    )
            else:
                draw.rectangle((ox, oy, ox + w, oy + h), fill=_TEXT_TINT, outline=_TEXT_OUTLINE, width=1)

            if placeholder.id == selected_id:
                half = _HANDLE_SIZE / 2.0
                for hx, hy in handle_points((ox, oy, w, h)).values():
                    draw.rectangle(
                        (hx - half, hy - half, hx + half, hy + half),
                        fill=_HANDLE_FILL,
                        outline=_TEXT_OUTLINE,
                        width=1,
                    )
        surface.alpha_composite(overlay)


class FlyerScene:
    """A template bound to its background and per-placeholder fill assets."""

    def __init__(
        self,
        template: Template,
        background: ImageSource | None = None,
        fill_values: Mapping[str, Any] | None = None,
        loader: AssetLoader | None = None,
        renderer: SceneRenderer | None = None,
    ) -> None:
        # fill 模式下模板只读
        self.template = template.copy()
        self.renderer = renderer or SceneRenderer()
        self._owns_loader = loader is None
        self.loader = loader or AssetLoader()
        self._texts: dict[str, str] = {}
        self._fill_keys: dict[str, str] = {}
        if background is not None:
            self.set_background(background)
        for placeholder_id, value in (fill_values or {}).items():
            self.set_fill(placeholder_id, value)

    def __enter__(self) -> FlyerScene:
        return self

    def __exit__(self, *_exc) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_loader:
            self.loader.shutdown()

    def set_background(self, source: ImageSource) -> None:
        self.loader.load(BACKGROUND_KEY, source)

    @property
    def background(self) -> Image.Image | None:
        return self.loader.image(BACKGROUND_KEY)

    def natural_size(self) -> tuple[int, int] | None:
        bg = self.background
        return bg.size if bg is not None else None

    def set_fill(self, placeholder_id: str, value: Any) -> None:
        placeholder = self.template.find(placeholder_id)
        if placeholder is None:
            LOGGER.warning("fill value for unknown placeholder ignored: %s", placeholder_id)
            return
        if value is None:
            self.clear_fill(placeholder_id)
            return
        if isinstance(placeholder, TextPlaceholder):
            self._texts[placeholder_id] = str(value)
            return
        key = _FILL_KEY_PREFIX + placeholder_id
        self._fill_keys[placeholder_id] = key
        self.loader.load(key, value)

    def clear_fill(self, placeholder_id: str) -> None:
        self._texts.pop(placeholder_id, None)
        key = self._fill_keys.pop(placeholder_id, None)
        if key is not None:
            self.loader.discard(key)

    def add_listener(self, callback: Callable[[str], None]) -> None:
        """``callback`` gets ``"background"`` or a placeholder id whenever one of its loads settles."""

        def _forward(key: str) -> None:
            if key == BACKGROUND_KEY:
                callback(key)
            elif key.startswith(_FILL_KEY_PREFIX):
                callback(key[len(_FILL_KEY_PREFIX):])

        self.loader.add_listener(_forward)

    def _asset_keys(self) -> list[str]:
        return [BACKGROUND_KEY, *self._fill_keys.values()]

    def pending_assets(self) -> list[str]:
        """Ids of placeholders whose fill is still decoding, plus ``"background"``."""
        pending = set(self.loader.pending(self._asset_keys()))
        result = [BACKGROUND_KEY] if BACKGROUND_KEY in pending else []
        result.extend(pid for pid, key in self._fill_keys.items() if key in pending)
        return result

    def assets_ready(self) -> bool:
        return self.loader.all_settled(self._asset_keys())

    def wait(self, timeout: float | None = None) -> bool:
        return self.loader.wait(self._asset_keys(), timeout=timeout)

    def wait_for_background(self, timeout: float | None = None) -> bool:
        return self.loader.wait([BACKGROUND_KEY], timeout=timeout)

    def load_errors(self) -> dict[str, str]:
        errors = self.loader.errors()
        result: dict[str, str] = {}
        if BACKGROUND_KEY in errors:
            result[BACKGROUND_KEY] = errors[BACKGROUND_KEY]
        for placeholder_id, key in self._fill_keys.items():
            if key in errors:
                result[placeholder_id] = errors[key]
        return result

    def resolved_fill_values(self) -> dict[str, FillValue]:
        values: dict[str, FillValue] = {pid: text for pid, text in self._texts.items() if text.strip()}
        for placeholder_id, key in self._fill_keys.items():
            image = self.loader.image(key)
            if image is not None:
                values[placeholder_id] = image
        return values

    def render_target(
        self,
        policy: str,
        container_width: float,
        max_height: float | None = None,
    ) -> RenderTarget | None:
        size = self.natural_size()
        if size is None:
            return None
        return compute_render_target(container_width, size[0], size[1], policy=policy, max_height=max_height)

    def render(
        self,
        scale: float,
        *,
        mode: str = RENDER_MODE_FILL,
        selected_id: str | None = None,
    ) -> Image.Image | None:
        """Render onto a fresh surface; None while the background is not loaded."""
        bg = self.background
        if bg is None:
            return None
        surface = Image.new(
            "RGBA",
            (max(1, int(round(bg.width * scale))), max(1, int(round(bg.height * scale)))),
            (0, 0, 0, 0),
        )
        self.renderer.render(
            surface,
            self.template,
            scale,
            self.resolved_fill_values(),
            background=bg,
            mode=mode,
            selected_id=selected_id,
        )
        return surface
