from __future__ import annotations

import json
import logging
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from PIL import ImageColor

from flyerstamp.constants import (
    ALIGN_OPTIONS_HORIZONTAL,
    DEFAULT_FONT_FAMILY,
    DEFAULT_FONT_SIZE,
    DEFAULT_FONT_WEIGHT,
    DEFAULT_IMAGE_DISPLAY_SIZE,
    DEFAULT_SAMPLE_TEXT,
    DEFAULT_TEXT_ALIGN,
    DEFAULT_TEXT_COLOR,
    DEFAULT_TEXT_DISPLAY_SIZE,
    PLACEHOLDER_KIND_IMAGE,
    PLACEHOLDER_KIND_TEXT,
)
from flyerstamp.errors import TemplateFormatError
from flyerstamp.geometry import normalize_hole_shape
from flyerstamp.models import ImagePlaceholder, Placeholder, Template, TextPlaceholder
from flyerstamp.render.typography import normalize_font_style, normalize_text_transform

LOGGER = logging.getLogger(__name__)

_BACKGROUND_KEYS = ("template_image_url", "flyer_url", "backgroundImageRef", "background_ref")
_IMAGE_LIST_KEYS = ("image_placeholders", "user_image_placeholders")
_TEXT_LIST_KEYS = ("text_placeholders", "user_text_placeholders")
_TEXT_ONLY_KEYS = ("fontSize", "font_size", "sampleText", "sample_text", "text", "fontFamily", "font_family")


def _pick(item: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in item and item[key] is not None:
            return item[key]
    return default


def _clamp_float(value: Any, minimum: float, fallback: float) -> float:
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        parsed = fallback
    if parsed != parsed:  # NaN
        parsed = fallback
    return max(minimum, parsed)


def _parse_bool(value: Any, default: bool = True) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in {"1", "true", "yes", "y", "on"}:
        return True
    if text in {"0", "false", "no", "n", "off"}:
        return False
    return default


def normalize_color(value: Any, default: str = DEFAULT_TEXT_COLOR) -> str:
    text = str(value or "").strip()
    if not text:
        return default
    try:
        rgb = ImageColor.getrgb(text)
    except ValueError:
        LOGGER.debug("invalid colour %r, using %s", value, default)
        return default
    return "#{:02x}{:02x}{:02x}".format(int(rgb[0]), int(rgb[1]), int(rgb[2]))


def normalize_text_align(value: Any) -> str:
    text = str(value or "").strip().lower()
    if text not in ALIGN_OPTIONS_HORIZONTAL:
        return DEFAULT_TEXT_ALIGN
    return text


def _infer_kind(item: dict[str, Any]) -> str:
    kind = str(item.get("type") or "").strip().lower()
    if kind in {PLACEHOLDER_KIND_IMAGE, PLACEHOLDER_KIND_TEXT}:
        return kind
    if any(key in item for key in _TEXT_ONLY_KEYS):
        return PLACEHOLDER_KIND_TEXT
    return PLACEHOLDER_KIND_IMAGE


def normalize_placeholder(item: Any, kind: str | None = None, fallback_id: str = "") -> Placeholder:
    if not isinstance(item, dict):
        raise TemplateFormatError(f"placeholder entry is not a dict: {item!r}")
    kind = kind or _infer_kind(item)
    placeholder_id = str(item.get("id") or fallback_id).strip() or fallback_id
    x = _clamp_float(item.get("x"), float("-inf"), 0.0)
    y = _clamp_float(item.get("y"), float("-inf"), 0.0)

    if kind == PLACEHOLDER_KIND_IMAGE:
        default_w, default_h = DEFAULT_IMAGE_DISPLAY_SIZE
        return ImagePlaceholder(
            id=placeholder_id,
            x=x,
            y=y,
            width=_clamp_float(item.get("width"), 1.0, float(default_w)),
            height=_clamp_float(item.get("height"), 1.0, float(default_h)),
            label_text=str(_pick(item, "labelText", "label_text", default="Your Photo")),
            required=_parse_bool(item.get("required"), default=True),
            hole_shape=normalize_hole_shape(_pick(item, "holeShape", "hole_shape")),
        )

    default_w, default_h = DEFAULT_TEXT_DISPLAY_SIZE
    return TextPlaceholder(
        id=placeholder_id,
        x=x,
        y=y,
        width=_clamp_float(item.get("width"), 1.0, float(default_w)),
        height=_clamp_float(item.get("height"), 1.0, float(default_h)),
        label_text=str(_pick(item, "labelText", "label_text", default="Your Name")),
        required=_parse_bool(item.get("required"), default=True),
        font_size=_clamp_float(_pick(item, "fontSize", "font_size"), 1.0, float(DEFAULT_FONT_SIZE)),
        color=normalize_color(item.get("color")),
        font_family=str(_pick(item, "fontFamily", "font_family", default=DEFAULT_FONT_FAMILY)).strip()
        or DEFAULT_FONT_FAMILY,
        font_style=normalize_font_style(_pick(item, "fontStyle", "font_style")),
        text_align=normalize_text_align(_pick(item, "textAlign", "text_align")),
        text_transform=normalize_text_transform(_pick(item, "textTransform", "text_transform")),
        font_weight=str(_pick(item, "fontWeight", "font_weight", default=DEFAULT_FONT_WEIGHT)),
        sample_text=str(_pick(item, "sampleText", "sample_text", "text", default=DEFAULT_SAMPLE_TEXT)),
    )


def _collect_entries(data: dict[str, Any]) -> list[tuple[Any, str | None]]:
    entries: list[tuple[Any, str | None]] = []
    for keys, kind in (
        (("template_placeholders", "placeholders"), None),
        (_IMAGE_LIST_KEYS, PLACEHOLDER_KIND_IMAGE),
        (_TEXT_LIST_KEYS, PLACEHOLDER_KIND_TEXT),
    ):
        for key in keys:
            raw = data.get(key)
            if raw is None:
                continue
            if not isinstance(raw, list):
                raise TemplateFormatError(f"{key} must be a list")
            entries.extend((item, kind) for item in raw)
    return entries


def normalize_template_dict(data: Any) -> Template:
    """Build a Template from any of the stored payload shapes.

    Combined ``template_placeholders`` come first, then image and then
    text placeholders from the split event-record lists.
    """
    if not isinstance(data, dict):
        raise TemplateFormatError("template payload is not a dict")

    placeholders: list[Placeholder] = []
    seen: set[str] = set()
    for index, (item, kind) in enumerate(_collect_entries(data), start=1):
        resolved_kind = kind or (_infer_kind(item) if isinstance(item, dict) else PLACEHOLDER_KIND_IMAGE)
        fallback_id = f"{resolved_kind}_{index}"
        placeholder = normalize_placeholder(item, resolved_kind, fallback_id)
        if placeholder.id in seen:
            LOGGER.warning("duplicate placeholder id %s, renamed to %s", placeholder.id, fallback_id)
            placeholder.id = fallback_id
        seen.add(placeholder.id)
        placeholders.append(placeholder)

    return Template(
        id=str(data.get("id") or "template"),
        title=str(data.get("title") or data.get("name") or "Untitled"),
        background_ref=str(_pick(data, *_BACKGROUND_KEYS, default="")),
        placeholders=placeholders,
    )


def _load_file(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix.lower() == ".json":
            return json.loads(text)
        return yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise TemplateFormatError(f"cannot parse template file {path}: {exc}") from exc


def load_template(path: str | Path) -> Template:
    template_path = Path(path)
    template = normalize_template_dict(_load_file(template_path))
    LOGGER.info(
        "template loaded path=%s id=%s placeholders=%d",
        template_path,
        template.id,
        len(template.placeholders),
    )
    return template


def save_template(template: Template, path: str | Path) -> Path:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    payload = template.to_dict()
    if out_path.suffix.lower() in {".yaml", ".yml"}:
        text = yaml.safe_dump(payload, sort_keys=False, allow_unicode=True)
    else:
        text = json.dumps(payload, ensure_ascii=False, indent=2) + "\n"
    out_path.write_text(text, encoding="utf-8")
    LOGGER.info("template saved path=%s placeholders=%d", out_path, len(template.placeholders))
    return out_path


def _load_default_payload() -> dict[str, Any]:
    default_file = resources.files("flyerstamp") / "resources" / "default_template.json"
    raw = json.loads(default_file.read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise TemplateFormatError(f"默认模板格式错误: {default_file}")
    return raw


def default_template(
    background_ref: str,
    title: str = "Untitled",
    template_id: str = "template",
    natural_size: tuple[int, int] | None = None,
) -> Template:
    """New template with one image and one text placeholder.

    With ``natural_size`` the packaged layout (given as fractions of the
    background) is placed in that background's pixel space.
    """
    payload = _load_default_payload()
    width, height = natural_size or (payload.get("reference_width", 600), payload.get("reference_height", 400))
    width = _clamp_float(width, 1.0, 600.0)
    height = _clamp_float(height, 1.0, 400.0)

    entries: list[dict[str, Any]] = []
    for item in payload.get("template_placeholders") or []:
        entry = dict(item)
        for key, extent in (("x", width), ("y", height), ("width", width), ("height", height)):
            entry[key] = round(float(entry.get(key, 0.0)) * extent, 2)
        entries.append(entry)

    return normalize_template_dict(
        {
            "id": template_id,
            "title": title,
            "template_image_url": background_ref,
            "template_placeholders": entries,
        }
    )
