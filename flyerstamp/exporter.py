from __future__ import annotations

import io
import logging
from pathlib import Path

from PIL import Image

from flyerstamp.constants import RENDER_MODE_FILL
from flyerstamp.errors import AssetLoadError, ExportNotReadyError
from flyerstamp.scene import BACKGROUND_KEY, FlyerScene

LOGGER = logging.getLogger(__name__)

_FORMAT_ALIASES = {"png": "PNG", "jpg": "JPEG", "jpeg": "JPEG"}


def normalize_output_format(value: str) -> str:
    key = str(value or "").strip().lower()
    if key not in _FORMAT_ALIASES:
        raise ValueError(f"unsupported output format: {value!r} (png|jpeg)")
    return _FORMAT_ALIASES[key]


def format_extension(pil_format: str) -> str:
    return "jpg" if pil_format == "JPEG" else "png"


def encode_image(image: Image.Image, pil_format: str, quality: int = 92) -> bytes:
    buffer = io.BytesIO()
    if pil_format == "JPEG":
        flattened = Image.new("RGB", image.size, (255, 255, 255))
        flattened.paste(image, mask=image.getchannel("A") if image.mode == "RGBA" else None)
        flattened.save(buffer, format="JPEG", quality=max(1, min(100, quality)), optimize=True, progressive=True)
    else:
        image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def export_composite(
    scene: FlyerScene,
    scale: float,
    pixel_ratio: float = 2,
    output_format: str = "png",
    quality: int = 92,
) -> bytes:
    """Render ``scene`` in fill mode at ``pixel_ratio * scale`` and encode it.

    Raises ExportNotReadyError while the background or any fill image is
    still decoding or was never set, and AssetLoadError when the background
    failed to decode. Fills that failed to load are simply left out.
    """
    pil_format = normalize_output_format(output_format)
    pending = scene.pending_assets()
    if pending:
        raise ExportNotReadyError(pending)
    if pixel_ratio <= 0:
        raise ValueError(f"pixel_ratio must be positive, got {pixel_ratio}")

    image = scene.render(scale * pixel_ratio, mode=RENDER_MODE_FILL)
    if image is None:
        reason = scene.load_errors().get(BACKGROUND_KEY)
        if reason is not None:
            raise AssetLoadError(BACKGROUND_KEY, reason)
        raise ExportNotReadyError([BACKGROUND_KEY])

    data = encode_image(image, pil_format, quality)
    LOGGER.info(
        "composite exported template=%s size=%dx%d format=%s bytes=%d",
        scene.template.id,
        image.width,
        image.height,
        pil_format,
        len(data),
    )
    return data


def save_composite(data: bytes, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    LOGGER.info("composite saved path=%s", path)
    return path
