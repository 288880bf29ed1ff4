from __future__ import annotations

import logging
import os
import platform
import re
from functools import lru_cache
from pathlib import Path
from typing import Any, Iterable

from PIL import ImageDraw, ImageFont

from flyerstamp.constants import (
    FONT_STYLE_ALIASES,
    FONT_STYLE_BOLD,
    FONT_STYLE_BOLD_ITALIC,
    FONT_STYLE_ITALIC,
    FONT_STYLE_NORMAL,
    FONT_STYLE_OPTIONS,
    TEXT_TRANSFORM_CAPITALIZE,
    TEXT_TRANSFORM_LOWERCASE,
    TEXT_TRANSFORM_NONE,
    TEXT_TRANSFORM_OPTIONS,
    TEXT_TRANSFORM_UPPERCASE,
)

LOGGER = logging.getLogger(__name__)

_FONT_FILE_SUFFIXES = {".ttf", ".ttc", ".otf", ".otc"}
_REGULAR_SUFFIXES = {"", "regular", "book", "roman", "normal", "medium"}
_WORD_START = re.compile(r"(^|\s)(\S)")
ELLIPSIS = "..."


def normalize_text_transform(value: Any) -> str:
    text = str(value or TEXT_TRANSFORM_NONE).strip().lower()
    if text not in TEXT_TRANSFORM_OPTIONS:
        return TEXT_TRANSFORM_NONE
    return text


def normalize_font_style(value: Any) -> str:
    text = " ".join(str(value or FONT_STYLE_NORMAL).strip().lower().split())
    text = FONT_STYLE_ALIASES.get(text, text)
    if text not in FONT_STYLE_OPTIONS:
        return FONT_STYLE_NORMAL
    return text


def style_flags(font_style: str) -> tuple[bool, bool]:
    style = normalize_font_style(font_style)
    return (
        style in {FONT_STYLE_BOLD, FONT_STYLE_BOLD_ITALIC},
        style in {FONT_STYLE_ITALIC, FONT_STYLE_BOLD_ITALIC},
    )


def transform_text(text: str | None, mode: Any) -> str:
    """Apply a CSS-like text-transform. Never raises; empty input gives ""."""
    if not text:
        return ""
    resolved = normalize_text_transform(mode)
    if resolved == TEXT_TRANSFORM_UPPERCASE:
        return text.upper()
    if resolved == TEXT_TRANSFORM_LOWERCASE:
        return text.lower()
    if resolved == TEXT_TRANSFORM_CAPITALIZE:
        return _WORD_START.sub(lambda match: match.group(1) + match.group(2).upper(), text)
    return text


def _system_font_candidates() -> list[Path]:
    system = platform.system().lower()
    if "windows" in system:
        return [
            Path(r"C:\Windows\Fonts\arial.ttf"),
            Path(r"C:\Windows\Fonts\segoeui.ttf"),
        ]
    if "darwin" in system:
        return [
            Path("/System/Library/Fonts/Helvetica.ttc"),
            Path("/Library/Fonts/Arial Unicode.ttf"),
        ]
    return [
        Path("/usr/share/fonts/truetype/open-sans/OpenSans-Regular.ttf"),
        Path("/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf"),
        Path("/usr/share/fonts/TTF/DejaVuSans.ttf"),
    ]


def _system_font_directories(extra_dirs: Iterable[str | Path] = ()) -> list[Path]:
    system = platform.system().lower()
    roots: list[Path] = [Path(item).expanduser() for item in extra_dirs if str(item).strip()]
    if "windows" in system:
        windows_dir = Path(os.environ.get("WINDIR", r"C:\Windows"))
        roots.append(windows_dir / "Fonts")
        local_app_data = os.environ.get("LOCALAPPDATA")
        if local_app_data:
            roots.append(Path(local_app_data) / "Microsoft" / "Windows" / "Fonts")
    elif "darwin" in system:
        roots.extend(
            [
                Path("/System/Library/Fonts"),
                Path("/Library/Fonts"),
                Path.home() / "Library" / "Fonts",
            ]
        )
    else:
        roots.extend(
            [
                Path("/usr/share/fonts"),
                Path("/usr/local/share/fonts"),
                Path.home() / ".fonts",
                Path.home() / ".local" / "share" / "fonts",
            ]
        )

    deduped: list[Path] = []
    seen: set[str] = set()
    for root in roots:
        key = str(root).strip()
        if not key:
            continue
        normalized = key.lower() if "windows" in system else key
        if normalized in seen:
            continue
        seen.add(normalized)
        deduped.append(root)
    return deduped


@lru_cache(maxsize=8)
def list_available_font_paths(extra_dirs: tuple[str, ...] = ()) -> list[Path]:
    system = platform.system().lower()
    available: list[Path] = []
    seen: set[str] = set()

    for root in _system_font_directories(extra_dirs):
        try:
            if not root.exists() or not root.is_dir():
                continue
        except OSError:
            continue

        for dir_path, _dir_names, file_names in os.walk(root, onerror=lambda _err: None):
            for file_name in file_names:
                suffix = Path(file_name).suffix.lower()
                if suffix not in _FONT_FILE_SUFFIXES:
                    continue
                candidate = Path(dir_path) / file_name
                key = str(candidate).strip()
                if not key:
                    continue
                dedupe_key = key.lower() if "windows" in system else key
                if dedupe_key in seen:
                    continue
                seen.add(dedupe_key)
                available.append(candidate)

    available.sort(key=lambda path: (path.stem.lower(), path.name.lower(), str(path).lower()))
    return available


def _font_key(text: str) -> str:
    return re.sub(r"[\s_\-]+", "", text.lower())


def _variant_flags(suffix: str) -> tuple[bool, bool] | None:
    bold = "bold" in suffix or "black" in suffix or "heavy" in suffix
    italic = "italic" in suffix or "oblique" in suffix
    if bold or italic:
        return (bold, italic)
    if suffix in _REGULAR_SUFFIXES or suffix.startswith("["):
        return (False, False)
    return None


@lru_cache(maxsize=256)
def resolve_font_file(
    family: str,
    font_style: str = FONT_STYLE_NORMAL,
    extra_dirs: tuple[str, ...] = (),
) -> tuple[Path | None, bool, bool]:
    """Find a font file for ``family``/``font_style``.

    Returns ``(path, synth_bold, synth_italic)``: the flags say which style
    parts the chosen file lacks and must be drawn synthetically.
    """
    want_bold, want_italic = style_flags(font_style)
    family_key = _font_key(family or "")
    if not family_key:
        return (None, want_bold, want_italic)

    exact: Path | None = None
    regular: Path | None = None
    partial: tuple[Path, bool, bool] | None = None
    for path in list_available_font_paths(extra_dirs):
        stem_key = _font_key(path.stem)
        if not stem_key.startswith(family_key):
            continue
        flags = _variant_flags(stem_key[len(family_key):])
        if flags is None:
            continue
        if flags == (want_bold, want_italic):
            exact = path
            break
        if flags == (False, False) and regular is None:
            regular = path
        elif partial is None and (flags[0] and want_bold or flags[1] and want_italic) and (
            flags[0] <= want_bold and flags[1] <= want_italic
        ):
            partial = (path, flags[0], flags[1])

    if exact is not None:
        return (exact, False, False)
    if partial is not None:
        path, has_bold, has_italic = partial
        return (path, want_bold and not has_bold, want_italic and not has_italic)
    if regular is not None:
        return (regular, want_bold, want_italic)
    LOGGER.debug("font family not found, using fallback: %s", family)
    return (None, want_bold, want_italic)


def load_font(font_path: Path | None, size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(1, int(size))
    candidates: list[Path] = []
    if font_path:
        candidates.append(font_path)
    candidates.extend(_system_font_candidates())
    for candidate in candidates:
        if candidate.exists():
            try:
                return ImageFont.truetype(str(candidate), size=size)
            except OSError:
                continue
    return ImageFont.load_default(size=size)


def text_width(draw: ImageDraw.ImageDraw, text: str, font: Any) -> float:
    return draw.textlength(text, font=font)


def ellipsize(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: Any,
    max_width: float,
    *,
    force: bool = False,
) -> str:
    """Fit ``text`` in ``max_width``; ``force`` appends the ellipsis even if it fits."""
    if max_width <= 0:
        return ""
    if not force and text_width(draw, text, font) <= max_width:
        return text
    for cut in range(len(text), -1, -1):
        candidate = text[:cut].rstrip() + ELLIPSIS
        if text_width(draw, candidate, font) <= max_width:
            return candidate
    return ELLIPSIS


def _break_long_word(draw: ImageDraw.ImageDraw, word: str, font: Any, max_width: float) -> list[str]:
    pieces: list[str] = []
    current = ""
    for ch in word:
        candidate = current + ch
        if current and text_width(draw, candidate, font) > max_width:
            pieces.append(current)
            current = ch
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def wrap_text(
    draw: ImageDraw.ImageDraw,
    text: str,
    font: Any,
    max_width: float,
    max_lines: int = 1,
) -> list[str]:
    """Word-wrap ``text`` to ``max_width``; the last kept line is ellipsized on overflow."""
    if not (text or "").strip() or max_width <= 0:
        return []
    max_lines = max(1, int(max_lines))

    lines: list[str] = []
    for paragraph in text.split("\n"):
        words = paragraph.split()
        if not words:
            lines.append("")
            continue
        current = ""
        for word in words:
            candidate = f"{current} {word}" if current else word
            if text_width(draw, candidate, font) <= max_width:
                current = candidate
                continue
            if current:
                lines.append(current)
                current = ""
            if text_width(draw, word, font) <= max_width:
                current = word
                continue
            pieces = _break_long_word(draw, word, font, max_width)
            lines.extend(pieces[:-1])
            current = pieces[-1] if pieces else ""
        lines.append(current)

    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return []
    if len(lines) <= max_lines:
        return lines
    kept = lines[:max_lines]
    kept[-1] = ellipsize(draw, kept[-1], font, max_width, force=True)
    return kept
