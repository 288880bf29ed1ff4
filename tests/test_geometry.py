import pytest

from flyerstamp.errors import InvalidGeometryError
from flyerstamp.geometry import (
    anchor_from_origin,
    clip_path,
    compute_render_target,
    compute_scale,
    cover_crop,
    resize_box,
    shape_box,
    shape_contains,
    shape_origin,
    to_display,
    to_natural,
)
from flyerstamp.models import CropRect, ImagePlaceholder, TextPlaceholder


def test_compute_scale_fit_width_ignores_height() -> None:
    assert compute_scale(800, 1600, 4000, policy="fit_width") == pytest.approx(0.5)


def test_compute_scale_capped_limits_height() -> None:
    assert compute_scale(800, 1000, 2000, policy="fit_width_capped", max_height=600) == pytest.approx(0.3)
    assert compute_scale(800, 1600, 800, policy="fit_width_capped", max_height=600) == pytest.approx(0.5)


def test_compute_scale_rejects_bad_input() -> None:
    with pytest.raises(InvalidGeometryError):
        compute_scale(800, 0, 100, policy="fit_width")
    with pytest.raises(InvalidGeometryError):
        compute_scale(800, 100, 100, policy="fit_width_capped")
    with pytest.raises(ValueError):
        compute_scale(800, 100, 100, policy="stretch")


def test_compute_render_target_rounds_display_size() -> None:
    target = compute_render_target(500, 1000, 333, policy="fit_width")
    assert target.scale == pytest.approx(0.5)
    assert (target.width, target.height) == (500, 166)


def test_cover_crop_wide_source_to_square_target() -> None:
    assert cover_crop(200, 100, 50, 50) == CropRect(x=50.0, y=0.0, width=100.0, height=100.0)


def test_cover_crop_tall_source_crops_height_symmetrically() -> None:
    crop = cover_crop(100, 300, 100, 50)
    assert crop.x == 0
    assert crop.width == 100
    assert crop.height == pytest.approx(50)
    assert crop.y == pytest.approx(125)


@pytest.mark.parametrize(
    "source,target",
    [
        ((640, 480), (100, 100)),
        ((480, 640), (300, 100)),
        ((1, 1000), (7, 3)),
        ((1920, 1080), (1080, 1920)),
        ((333, 333), (333, 333)),
    ],
)
def test_cover_crop_stays_inside_source_with_target_aspect(source, target) -> None:
    crop = cover_crop(source[0], source[1], target[0], target[1])
    assert crop.x >= 0 and crop.y >= 0
    assert crop.x + crop.width <= source[0] + 1e-9
    assert crop.y + crop.height <= source[1] + 1e-9
    assert crop.width / crop.height == pytest.approx(target[0] / target[1])


def test_cover_crop_zero_target_is_rejected() -> None:
    with pytest.raises(InvalidGeometryError):
        cover_crop(100, 100, 0, 10)


def test_clip_path_unknown_shape_falls_back_to_box() -> None:
    assert clip_path("unknown-shape", 40, 30) == clip_path("box", 40, 30)
    assert clip_path("rectangle", 40, 30) == clip_path("box", 40, 30)
    assert clip_path(None, 40, 30).points == ((0.0, 0.0), (40.0, 0.0), (40.0, 30.0), (0.0, 30.0))


def test_clip_path_shapes() -> None:
    circle = clip_path("circle", 100, 60)
    assert circle.kind == "ellipse"
    assert circle.bbox == (20.0, 0.0, 80.0, 60.0)

    triangle = clip_path("triangle", 100, 50)
    assert triangle.points == ((50.0, 0.0), (100.0, 50.0), (0.0, 50.0))

    trapezium = clip_path("trapezium", 100, 50)
    assert trapezium.points == ((20.0, 0.0), (80.0, 0.0), (100.0, 50.0), (0.0, 50.0))


@pytest.mark.parametrize("scale", [0.1, 0.5, 1.0, 1.7, 3.25])
def test_display_natural_round_trip(scale: float) -> None:
    box = (12.5, 300.0, 47.0, 0.75)
    result = to_display(to_natural(box, scale), scale)
    assert result == pytest.approx(box)


def test_scale_must_be_positive() -> None:
    with pytest.raises(InvalidGeometryError):
        to_natural((0, 0, 1, 1), 0)
    with pytest.raises(InvalidGeometryError):
        to_display((0, 0, 1, 1), -1)


def test_circle_origin_is_offset_by_radius() -> None:
    circle = ImagePlaceholder(id="c", x=100, y=100, width=50, height=50, hole_shape="circle")
    assert shape_origin(circle, 2) == (150.0, 150.0)
    assert shape_box(circle, 2) == (150.0, 150.0, 100.0, 100.0)

    square = ImagePlaceholder(id="b", x=100, y=100, width=50, height=50)
    assert shape_origin(square, 2) == (200.0, 200.0)

    text = TextPlaceholder(id="t", x=10, y=20, width=50, height=50)
    assert shape_origin(text, 2) == (20.0, 40.0)


def test_anchor_from_origin_inverts_shape_origin() -> None:
    circle = ImagePlaceholder(id="c", x=30, y=70, width=40, height=20, hole_shape="circle")
    ox, oy, w, h = shape_box(circle, 1.5)
    assert anchor_from_origin("circle", (ox, oy), w, h) == pytest.approx((45.0, 105.0))
    assert anchor_from_origin("box", (ox, oy), w, h) == (ox, oy)


def test_shape_contains() -> None:
    circle = clip_path("circle", 100, 100)
    assert shape_contains(circle, (50, 50))
    assert not shape_contains(circle, (2, 2))

    triangle = clip_path("triangle", 100, 100)
    assert shape_contains(triangle, (50, 90))
    assert not shape_contains(triangle, (5, 5))

    box = clip_path("box", 10, 10)
    assert shape_contains(box, (0, 0))
    assert not shape_contains(box, (11, 5))


def test_resize_box_handles() -> None:
    assert resize_box((10, 10, 50, 50), "se", 5, -5) == (10, 10, 55, 45)
    assert resize_box((10, 10, 50, 50), "nw", 5, -5) == (15, 5, 45, 55)
    assert resize_box((10, 10, 50, 50), "e", 5, 99) == (10, 10, 55, 50)
    with pytest.raises(InvalidGeometryError):
        resize_box((0, 0, 1, 1), "x", 1, 1)
