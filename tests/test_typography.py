import pytest
from PIL import Image, ImageDraw

from flyerstamp.render.typography import (
    ELLIPSIS,
    ellipsize,
    load_font,
    normalize_font_style,
    style_flags,
    text_width,
    transform_text,
    wrap_text,
)


def _draw_and_font(size: int = 20):
    draw = ImageDraw.Draw(Image.new("RGBA", (10, 10)))
    return draw, load_font(None, size)


def test_transform_text_capitalize() -> None:
    assert transform_text("hello world", "capitalize") == "Hello World"
    assert transform_text("hello   big\tworld", "capitalize") == "Hello   Big\tWorld"
    assert transform_text("mIxed case", "capitalize") == "MIxed Case"


def test_transform_text_modes() -> None:
    assert transform_text("Hello", "uppercase") == "HELLO"
    assert transform_text("Hello", "lowercase") == "hello"
    assert transform_text("Hello", "none") == "Hello"
    assert transform_text("Hello", "small-caps") == "Hello"
    assert transform_text("", "uppercase") == ""
    assert transform_text(None, "capitalize") == ""


@pytest.mark.parametrize("text", ["hello", "Straße", "ÉCOLE été", "123 abc", "ǆ ǳ"])
def test_uppercase_is_idempotent(text: str) -> None:
    once = transform_text(text, "uppercase")
    assert transform_text(once, "uppercase") == once


def test_font_style_normalization() -> None:
    assert normalize_font_style("bold italic") == "italic bold"
    assert normalize_font_style("Italic  Bold") == "italic bold"
    assert normalize_font_style("oblique") == "normal"
    assert style_flags("italic bold") == (True, True)
    assert style_flags("bold") == (True, False)


def test_wrap_text_breaks_on_words() -> None:
    draw, font = _draw_and_font()
    max_width = text_width(draw, "alpha beta", font) + 1
    assert wrap_text(draw, "alpha beta gamma", font, max_width, max_lines=5) == ["alpha beta", "gamma"]


def test_wrap_text_honours_newlines() -> None:
    draw, font = _draw_and_font()
    assert wrap_text(draw, "a\nb", font, 1000, max_lines=5) == ["a", "b"]


def test_wrap_text_ellipsizes_overflow() -> None:
    draw, font = _draw_and_font()
    max_width = text_width(draw, "alpha beta", font) + 1
    lines = wrap_text(draw, "alpha beta gamma delta", font, max_width, max_lines=1)
    assert len(lines) == 1
    assert lines[0].endswith(ELLIPSIS)
    assert text_width(draw, lines[0], font) <= max_width


def test_wrap_text_breaks_long_words() -> None:
    draw, font = _draw_and_font()
    max_width = text_width(draw, "WWWW", font) + 1
    lines = wrap_text(draw, "W" * 30, font, max_width, max_lines=100)
    assert "".join(lines) == "W" * 30
    assert all(text_width(draw, line, font) <= max_width for line in lines)


def test_ellipsize_keeps_fitting_text() -> None:
    draw, font = _draw_and_font()
    assert ellipsize(draw, "short", font, 1000) == "short"
    assert ellipsize(draw, "short", font, 0) == ""


def test_blank_text_wraps_to_nothing() -> None:
    draw, font = _draw_and_font()
    assert wrap_text(draw, "   ", font, 100) == []
