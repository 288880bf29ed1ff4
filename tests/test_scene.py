import io

from PIL import Image

from flyerstamp.models import ImagePlaceholder, Template, TextPlaceholder
from flyerstamp.scene import FlyerScene, SceneRenderer

WHITE = (255, 255, 255, 255)


def _solid(color, size=(50, 50)) -> Image.Image:
    return Image.new("RGBA", size, color)


def _png_bytes(color, size=(40, 40)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def _template(*placeholders) -> Template:
    return Template(id="t", title="Test", background_ref="bg.png", placeholders=list(placeholders))


def _is_blue(pixel) -> bool:
    return pixel[2] > 200 and pixel[0] < 60 and pixel[1] < 60


def _has_red(image: Image.Image) -> bool:
    return any(r > 180 and g < 90 and b < 90 for r, g, b, _a in image.getdata())


def test_render_without_background_draws_nothing() -> None:
    surface = Image.new("RGBA", (20, 20), (1, 2, 3, 255))
    assert SceneRenderer().render(surface, _template(), 1.0, {}) is False
    assert surface.getextrema()[3] == (0, 0)


def test_background_is_scaled() -> None:
    surface = Image.new("RGBA", (200, 100))
    drawn = SceneRenderer().render(surface, _template(), 2.0, {}, background=_solid("red", (100, 50)))
    assert drawn is True
    assert surface.getpixel((150, 90)) == (255, 0, 0, 255)


def test_circle_fill_is_clipped_around_anchor() -> None:
    circle = ImagePlaceholder(id="photo", x=100, y=100, width=80, height=80, hole_shape="circle")
    surface = Image.new("RGBA", (200, 200))
    SceneRenderer().render(
        surface,
        _template(circle),
        1.0,
        {"photo": _solid("blue")},
        background=_solid("white", (200, 200)),
    )
    assert _is_blue(surface.getpixel((100, 100)))
    assert surface.getpixel((62, 62)) == WHITE
    assert surface.getpixel((150, 150)) == WHITE


def test_triangle_fill_leaves_top_corners_empty() -> None:
    triangle = ImagePlaceholder(id="photo", x=0, y=0, width=100, height=100, hole_shape="triangle")
    surface = Image.new("RGBA", (100, 100))
    SceneRenderer().render(
        surface,
        _template(triangle),
        1.0,
        {"photo": _solid("blue")},
        background=_solid("white", (100, 100)),
    )
    assert surface.getpixel((3, 3)) == WHITE
    assert _is_blue(surface.getpixel((50, 90)))


def test_fill_is_cover_cropped() -> None:
    fill = Image.new("RGBA", (200, 100), "green")
    fill.paste((0, 0, 255, 255), (50, 0, 150, 100))
    box = ImagePlaceholder(id="photo", x=0, y=0, width=50, height=50)
    surface = Image.new("RGBA", (100, 100))
    SceneRenderer().render(surface, _template(box), 1.0, {"photo": fill}, background=_solid("white", (100, 100)))
    assert _is_blue(surface.getpixel((10, 25)))
    assert _is_blue(surface.getpixel((40, 25)))


def test_later_placeholders_draw_on_top() -> None:
    first = ImagePlaceholder(id="a", x=0, y=0, width=60, height=60)
    second = ImagePlaceholder(id="b", x=30, y=30, width=60, height=60)
    surface = Image.new("RGBA", (100, 100))
    SceneRenderer().render(
        surface,
        _template(first, second),
        1.0,
        {"a": _solid("red"), "b": _solid("blue")},
        background=_solid("white", (100, 100)),
    )
    assert _is_blue(surface.getpixel((45, 45)))


def test_text_is_drawn_only_when_filled() -> None:
    text = TextPlaceholder(id="name", x=0, y=0, width=200, height=100, font_size=40, color="#ff0000")
    renderer = SceneRenderer()
    background = _solid("white", (200, 100))

    empty = Image.new("RGBA", (200, 100))
    renderer.render(empty, _template(text), 1.0, {}, background=background)
    assert not _has_red(empty)

    filled = Image.new("RGBA", (200, 100))
    renderer.render(filled, _template(text), 1.0, {"name": "HELLO"}, background=background)
    assert _has_red(filled)


def test_edit_mode_outlines_unfilled_placeholders() -> None:
    box = ImagePlaceholder(id="photo", x=10, y=10, width=50, height=50)
    surface = Image.new("RGBA", (100, 100))
    SceneRenderer().render(
        surface,
        _template(box),
        1.0,
        {},
        background=_solid("white", (100, 100)),
        mode="edit",
        selected_id="photo",
    )
    assert surface.getpixel((30, 30)) != WHITE
    assert surface.getpixel((90, 90)) == WHITE


def test_scene_skips_fill_that_fails_to_decode() -> None:
    box = ImagePlaceholder(id="photo", x=0, y=0, width=20, height=20)
    other = ImagePlaceholder(id="logo", x=20, y=0, width=20, height=20)
    with FlyerScene(
        _template(box, other),
        background=_png_bytes("white", (40, 20)),
        fill_values={"photo": b"not an image", "logo": _png_bytes("blue")},
    ) as scene:
        assert scene.wait(5)
        assert scene.assets_ready()
        assert "photo" in scene.load_errors()
        values = scene.resolved_fill_values()
        assert "photo" not in values
        assert "logo" in values

        image = scene.render(1.0)
        assert image.size == (40, 20)
        assert image.getpixel((5, 5)) == WHITE
        assert _is_blue(image.getpixel((30, 10)))


def test_scene_text_fills_and_unknown_ids() -> None:
    text = TextPlaceholder(id="name", x=0, y=0, width=20, height=20)
    with FlyerScene(_template(text), fill_values={"name": "Ada", "ghost": "boo", "blank": None}) as scene:
        assert scene.resolved_fill_values() == {"name": "Ada"}
        assert scene.render(1.0) is None
        assert scene.render_target("fit_width", 100) is None
        scene.clear_fill("name")
        assert scene.resolved_fill_values() == {}


def test_scene_render_target_uses_background_size() -> None:
    with FlyerScene(_template(), background=_png_bytes("white", (1000, 2000))) as scene:
        scene.wait(5)
        target = scene.render_target("fit_width_capped", 800, 600)
        assert (target.width, target.height) == (300, 600)
