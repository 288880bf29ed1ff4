import pytest

from flyerstamp.editor import (
    STATE_DRAGGING,
    STATE_IDLE,
    STATE_RESIZING,
    STATE_SELECTED,
    EditorLimits,
    EditorSession,
    apply_edit,
)
from flyerstamp.models import GeometryDelta, ImagePlaceholder, RenderTarget, Template, TextPlaceholder


def _template() -> Template:
    return Template(
        id="tpl",
        title="Demo",
        background_ref="bg.png",
        placeholders=[
            ImagePlaceholder(id="img", x=0, y=0, width=100, height=100),
            TextPlaceholder(id="txt", x=0, y=200, width=200, height=50, font_size=20),
        ],
    )


def test_sequential_drags_do_not_double_scale() -> None:
    session = EditorSession(_template(), 0.5)

    assert session.begin_drag((0, 0))
    assert session.state == STATE_DRAGGING
    session.drag_to((40, 20))
    assert session.end_drag()
    assert session.selected.box[:2] == pytest.approx((80, 40))

    assert session.begin_drag((40, 20))
    session.drag_to((60, 60))
    session.end_drag()

    placeholder = session.template.find("img")
    assert (placeholder.x, placeholder.y) == pytest.approx((120, 120))
    assert session.state == STATE_SELECTED


def test_apply_edit_moves_in_natural_space() -> None:
    template = _template()
    first = apply_edit(template, "img", GeometryDelta(scale=0.5, dx=40, dy=20))
    second = apply_edit(first, "img", GeometryDelta(scale=0.5, dx=20, dy=40))
    placeholder = second.find("img")
    assert (placeholder.x, placeholder.y) == pytest.approx((120, 120))
    assert template.find("img").x == 0


def test_apply_edit_rejects_undersized_resize() -> None:
    updated = apply_edit(_template(), "img", GeometryDelta(scale=0.5, dwidth=-40, dheight=-40))
    placeholder = updated.find("img")
    assert (placeholder.width, placeholder.height) == (100, 100)


def test_apply_edit_undersized_resize_discards_move() -> None:
    template = Template(
        id="t",
        title="t",
        background_ref="",
        placeholders=[
            ImagePlaceholder(id="p", x=10, y=10, width=50, height=50),
            TextPlaceholder(id="txt", x=0, y=100, width=200, height=50, font_size=20),
        ],
    )
    updated = apply_edit(template, "p", GeometryDelta(scale=1.0, dx=30, dy=30, dwidth=-45))
    assert updated.find("p").box == (10, 10, 50, 50)

    updated = apply_edit(template, "txt", GeometryDelta(scale=1.0, dx=5, dwidth=-190, dheight=-45))
    text = updated.find("txt")
    assert text.box == (0, 100, 200, 50)
    assert text.font_size == 20


def test_apply_edit_unknown_id() -> None:
    with pytest.raises(KeyError):
        apply_edit(_template(), "missing", GeometryDelta(scale=1, dx=1))


def test_resize_below_minimum_keeps_size() -> None:
    session = EditorSession(_template(), 0.5)
    assert session.select("img")
    assert session.begin_resize("se", (50, 50))
    assert session.state == STATE_RESIZING
    assert not session.resize_to((10, 10))
    session.end_resize()

    placeholder = session.template.find("img")
    assert (placeholder.width, placeholder.height) == (100, 100)


def test_resize_keeps_last_valid_box() -> None:
    session = EditorSession(_template(), 0.5)
    session.select("img")
    session.begin_resize("se", (50, 50))
    assert session.resize_to((25, 30))
    assert not session.resize_to((0, 0))
    session.end_resize()

    placeholder = session.template.find("img")
    assert (placeholder.width, placeholder.height) == pytest.approx((50, 60))


def test_text_resize_scales_font_size() -> None:
    session = EditorSession(_template(), 1.0)
    session.select("txt")
    session.begin_resize("se", (200, 250))
    session.end_resize((400, 275))

    placeholder = session.template.find("txt")
    assert (placeholder.width, placeholder.height) == pytest.approx((400, 75))
    assert placeholder.font_size == pytest.approx(30)


def test_text_resize_font_size_has_display_minimum() -> None:
    template = _template()
    template.placeholders[1].font_size = 10
    session = EditorSession(template, 1.0)
    session.select("txt")
    session.begin_resize("se", (200, 250))
    session.end_resize((50, 225))

    assert session.template.find("txt").font_size == pytest.approx(8)


def test_circle_drag_and_resize_keep_anchor_convention() -> None:
    template = Template(
        id="t",
        title="t",
        background_ref="",
        placeholders=[ImagePlaceholder(id="c", x=100, y=100, width=50, height=50, hole_shape="circle")],
    )
    session = EditorSession(template, 2.0)
    assert session.begin_drag((200, 200))
    session.end_drag((210, 220))
    circle = session.template.find("c")
    assert (circle.x, circle.y) == pytest.approx((105, 110))

    session = EditorSession(template, 2.0)
    session.select("c")
    assert session.handle_at((250, 250)) == "se"
    session.begin_resize("se", (250, 250))
    session.end_resize((270, 270))
    circle = session.template.find("c")
    assert circle.box == pytest.approx((105, 105, 60, 60))


def test_add_respects_caps_and_defaults() -> None:
    empty = Template(id="t", title="t", background_ref="", placeholders=[])
    session = EditorSession(empty, RenderTarget(width=400, height=300, scale=0.5))

    image = session.add_at((10, 10), "image")
    assert isinstance(image, ImagePlaceholder)
    assert image.id.startswith("image_")
    assert image.hole_shape == "box"
    assert image.box == pytest.approx((20, 20, 200, 200))
    assert session.add_at((100, 100), "image") is None

    texts = [session.add_at((20, 20 + i), "text") for i in range(3)]
    assert all(isinstance(t, TextPlaceholder) for t in texts)
    assert texts[0].font_size == pytest.approx(48)
    assert texts[0].text_align == "center"
    assert texts[0].font_family == "Open Sans"
    assert (texts[0].width, texts[0].height) == pytest.approx((400, 100))
    assert session.add_at((30, 30), "text") is None
    assert len(session.template.placeholders) == 4


def test_add_outside_canvas_is_ignored() -> None:
    empty = Template(id="t", title="t", background_ref="", placeholders=[])
    session = EditorSession(empty, RenderTarget(width=100, height=100, scale=1.0))
    assert session.add_at((150, 10), "image") is None


def test_caps_are_configurable() -> None:
    limits = EditorLimits.from_config({"max_image_placeholders": 2, "max_text_placeholders": None})
    empty = Template(id="t", title="t", background_ref="", placeholders=[])
    session = EditorSession(empty, 1.0, limits)
    assert session.add_at((0, 0), "image") is not None
    assert session.add_at((300, 300), "image") is not None
    assert session.add_at((600, 600), "image") is None
    for i in range(10):
        assert session.add_at((i, 700), "text") is not None


def test_click_selects_or_adds_in_add_mode() -> None:
    session = EditorSession(_template(), 1.0)
    assert session.select_at((50, 50))
    assert session.selected.id == "img"

    assert not session.select_at((500, 500))
    assert session.state == STATE_IDLE
    assert session.selected is None

    session.set_add_mode("text")
    assert session.select_at((500, 500))
    assert isinstance(session.selected, TextPlaceholder)
    assert session.state == STATE_SELECTED


def test_delete_selected_clears_selection() -> None:
    session = EditorSession(_template(), 1.0)
    assert not session.delete_selected()
    session.select("img")
    assert session.delete_selected()
    assert session.template.find("img") is None
    assert session.selected is None
    assert session.state == STATE_IDLE


def test_cancel_leaves_template_untouched() -> None:
    template = _template()
    session = EditorSession(template, 1.0)
    session.begin_drag((10, 10))
    session.end_drag((60, 60))
    session.select("txt")
    session.delete_selected()

    assert session.cancel() is template
    assert template.find("img").x == 0
    assert template.find("txt") is not None
    with pytest.raises(RuntimeError):
        session.select("img")


def test_commit_returns_edited_copy() -> None:
    template = _template()
    session = EditorSession(template, 1.0)
    session.begin_drag((10, 10))
    session.end_drag((60, 60))
    committed = session.commit()

    assert committed.find("img").x == pytest.approx(50)
    assert template.find("img").x == 0


def test_update_style_converts_display_font_size() -> None:
    session = EditorSession(_template(), 0.5)
    session.select("txt")
    assert session.update_style(font_size=12, text_transform="shout", color="red", font_style="bold italic")
    text = session.template.find("txt")
    assert text.font_size == pytest.approx(24)
    assert text.text_transform == "none"
    assert text.color == "#ff0000"
    assert text.font_style == "italic bold"

    with pytest.raises(ValueError):
        session.update_style(hole_shape="circle")

    session.select("img")
    session.update_style(hole_shape="hexagon")
    assert session.template.find("img").hole_shape == "box"
