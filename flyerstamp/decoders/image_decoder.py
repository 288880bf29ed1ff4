from __future__ import annotations

import io
from pathlib import Path
from typing import BinaryIO, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from flyerstamp.constants import HEIF_EXTENSIONS

ImageSource = Union[bytes, bytearray, memoryview, str, Path, BinaryIO, Image.Image]

_HEIF_REGISTERED = False
_HEIF_BRANDS = (b"heic", b"heix", b"hevc", b"hevx", b"mif1", b"msf1", b"heif")


def _register_heif_opener() -> bool:
    global _HEIF_REGISTERED
    if _HEIF_REGISTERED:
        return True
    try:
        from pillow_heif import register_heif_opener
    except ImportError:
        return False
    register_heif_opener()
    _HEIF_REGISTERED = True
    return True


def _looks_like_heif(head: bytes) -> bool:
    return len(head) >= 12 and head[4:8] == b"ftyp" and head[8:12] in _HEIF_BRANDS


def _decode_stream(stream: BinaryIO) -> Image.Image:
    with Image.open(stream) as image:
        image.load()
        return ImageOps.exif_transpose(image).convert("RGBA")


def decode_image(source: ImageSource) -> Image.Image:
    """Decode bytes, a path or a binary stream into an RGBA image (EXIF orientation applied)."""
    if isinstance(source, Image.Image):
        return source.convert("RGBA")

    if isinstance(source, (bytes, bytearray, memoryview)):
        payload = bytes(source)
        if not payload:
            raise RuntimeError("empty image payload")
        if _looks_like_heif(payload[:16]) and not _register_heif_opener():
            raise RuntimeError("pillow-heif is required to decode HEIF/HEIC/HIF")
        stream: BinaryIO = io.BytesIO(payload)
    elif isinstance(source, (str, Path)):
        path = Path(source)
        if path.suffix.lower() in HEIF_EXTENSIONS and not _register_heif_opener():
            raise RuntimeError("pillow-heif is required to decode HEIF/HEIC/HIF")
        if not path.is_file():
            raise RuntimeError(f"image file not found: {path}")
        with path.open("rb") as handle:
            return decode_image(handle.read())
    else:
        stream = source

    try:
        return _decode_stream(stream)
    except UnidentifiedImageError as exc:
        raise RuntimeError("unsupported or corrupt image data") from exc
