import pytest

from editor.core.geometry import (
    QR_BACK_SIDE_NOTICE,
    BOX_HANDLES,
    CORNER_HANDLES,
    GridConfig,
    Handle,
    ViewTransform,
    drag_line_endpoint,
    handles_for,
    move_element_mm,
    move_shape,
    resize_shape,
    round_half,
    round_nearest,
    snap_angle,
)
from editor.core.models import Point, Size, TemplateSettings

VIEW = ViewTransform(zoom=1.0)
GRID = GridConfig(size=2.0, snap=True)


def px(dx_mm, dy_mm, view=VIEW):
    return view.mm_to_px(dx_mm), view.mm_to_px(dy_mm)


def test_rounding_helpers():
    assert round_nearest(11.3, 2) == 12
    assert round_nearest(3.0, 2) == 4
    assert round_nearest(-1.0, 2) == 0
    assert round_half(5.2) == 5.0
    assert round_half(3.3) == 3.5


def test_grid_config_from_settings():
    grid = GridConfig.from_settings(TemplateSettings(grid_size=4, snap_to_grid=False))
    assert grid.size == 4
    assert not grid.snap
    assert grid.step == 1.0
    assert grid.apply(3.3) == 3.3
    assert GridConfig(size=8, snap=True).min_size == 8
    assert GridConfig(size=2, snap=True).min_size == 5


def test_view_transform_round_trip():
    view = ViewTransform(zoom=2.5)
    assert view.px_to_mm(view.mm_to_px(12.0)) == pytest.approx(12.0)
    assert view.mm_to_px(1.0) == pytest.approx(3.7795275591 * 2.5)


def test_move_snaps_to_grid(template):
    box = template.frame_by_id("box")
    result = move_shape(box, px(7.3, 0), VIEW, GRID)
    assert result.patch["position"] == Point(12, 18)


def test_move_without_snap_keeps_exact_position(template):
    box = template.frame_by_id("box")
    result = move_shape(box, px(7.3, 0), VIEW, GridConfig(snap=False))
    assert result.patch["position"].x == pytest.approx(11.3)


def test_move_is_clamped_to_card(template):
    artist = template.element_by_id("artist")
    result = move_shape(artist, px(10, 100), VIEW, GRID)
    assert result.patch["position"] == Point(11, 66)


def test_move_respects_zoom(template):
    box = template.frame_by_id("box")
    zoomed = ViewTransform(zoom=3.0)
    result = move_shape(box, px(7.3, 0, zoomed), zoomed, GRID)
    assert result.patch["position"] == Point(12, 18)


def test_moving_above_fold_derives_back_side(template):
    artist = template.element_by_id("artist")
    result = move_element_mm(artist, 0, -18, GRID)
    assert result.patch["position"] == Point(6, 2)


def test_qr_move_into_back_side_is_rejected(template):
    qr = template.element_by_id("qr")
    result = move_shape(qr, px(0, -40), VIEW, GRID)
    assert result.rejected
    assert result.reason == QR_BACK_SIDE_NOTICE
    assert result.patch == {}


def test_line_move_translates_both_endpoints(template):
    rule = template.frame_by_id("rule")
    result = move_shape(rule, px(5.4, 5.4), VIEW, GRID)
    assert result.patch["position"] == Point(16, 36)
    assert result.patch["line_start"] == Point(16, 36)
    assert result.patch["line_end"] == Point(46, 36)


def test_resize_from_south_east(template):
    box = template.frame_by_id("box")
    result = resize_shape(box, Handle.SE, px(5.2, 3.1), VIEW, GRID)
    assert result.patch == {"position": Point(4, 18), "size": Size(35, 23)}


def test_resize_from_north_west_keeps_opposite_corner(template):
    box = template.frame_by_id("box")
    result = resize_shape(box, Handle.NW, px(10, 5), VIEW, GRID)
    assert result.patch["size"] == Size(20, 15)
    assert result.patch["position"] == Point(14, 23)


def test_resize_is_floored_at_minimum(template):
    box = template.frame_by_id("box")
    assert resize_shape(box, Handle.E, px(-100, 0), VIEW, GRID).patch["size"].width == 5
    coarse = GridConfig(size=8, snap=True)
    assert resize_shape(box, Handle.S, px(0, -100), VIEW, coarse).patch["size"].height == 8


def test_resize_west_past_minimum_pins_right_edge(template):
    box = template.frame_by_id("box")
    result = resize_shape(box, Handle.W, px(100, 0), VIEW, GRID)
    assert result.patch["size"].width == 5
    assert result.patch["position"].x == 29


def test_circle_resize_stays_square_around_center(template):
    ring = template.frame_by_id("ring")
    result = resize_shape(ring, Handle.SE, px(6, 2), VIEW, GRID)
    assert result.patch == {"position": Point(57, 17), "size": Size(26, 26)}


def test_circle_stays_circular_after_any_corner_drag(template):
    ring = template.frame_by_id("ring")
    for handle, delta in ((Handle.NW, (3, -7)), (Handle.NE, (-2.2, 4)), (Handle.SW, (-30, 1)), (Handle.SE, (-50, -50))):
        size = resize_shape(ring, handle, px(*delta), VIEW, GRID).patch["size"]
        assert size.width == size.height
        assert size.width >= 5


def test_circle_has_corner_handles_only(template):
    ring = template.frame_by_id("ring")
    assert handles_for(ring) == CORNER_HANDLES
    with pytest.raises(ValueError):
        resize_shape(ring, Handle.E, px(5, 0), VIEW, GRID)


def test_elements_expose_all_box_handles(template):
    assert handles_for(template.element_by_id("artist")) == BOX_HANDLES


def test_image_resize_keeps_aspect_ratio(template):
    photo = template.element_by_id("photo")

    edge = resize_shape(photo, Handle.E, px(8, 0), VIEW, GRID).patch
    assert edge["size"].width == pytest.approx(48)
    assert edge["size"].height == pytest.approx(36)

    vertical = resize_shape(photo, Handle.S, px(0, 6), VIEW, GRID).patch
    assert vertical["size"].width == pytest.approx(48)

    corner = resize_shape(photo, Handle.SE, px(8, 1), VIEW, GRID).patch
    assert corner["size"].height == pytest.approx(36)

    north_west = resize_shape(photo, Handle.NW, px(-8, 0), VIEW, GRID).patch
    assert north_west["size"].height == pytest.approx(36)
    assert north_west["position"].x == pytest.approx(2)
    assert north_west["position"].y == pytest.approx(34)


def test_qr_resize_stays_square(template):
    qr = template.element_by_id("qr")
    corner = resize_shape(qr, Handle.SE, px(4, 1), VIEW, GRID).patch
    assert corner["size"] == Size(21, 21)
    edge = resize_shape(qr, Handle.E, px(4, 0), VIEW, GRID).patch
    assert edge["size"] == Size(24, 24)


def test_qr_resize_into_back_side_is_rejected(template):
    qr = template.element_by_id("qr")
    result = resize_shape(qr, Handle.N, px(0, -40), VIEW, GRID)
    assert result.rejected


def test_endpoint_handle_rejected_for_elements(template):
    with pytest.raises(ValueError):
        resize_shape(template.element_by_id("artist"), Handle.LINE_END, (0, 0), VIEW, GRID)


def test_line_endpoint_drag_rounds_to_half_millimetre(template):
    rule = template.frame_by_id("rule")
    patch = drag_line_endpoint(rule, Handle.LINE_END, px(5.2, 3.3), VIEW).patch
    assert patch["line_start"] == Point(10, 30)
    assert patch["line_end"] == Point(45, 33.5)
    assert patch["position"] == Point(10, 30)
    assert patch["size"] == Size(35, 3.5)


def test_line_endpoint_snaps_to_45_degrees(template):
    rule = template.frame_by_id("rule")
    patch = drag_line_endpoint(rule, Handle.LINE_END, px(0, 25), VIEW, snap_angles=True).patch
    end = patch["line_end"]
    assert end.x - 10 == pytest.approx(end.y - 30, abs=1e-3)
    assert end.x == pytest.approx(37.6134, abs=1e-3)


def test_horizontal_line_keeps_one_millimetre_bounds(template):
    rule = template.frame_by_id("rule")
    patch = drag_line_endpoint(rule, Handle.LINE_START, px(-4, 0), VIEW).patch
    assert patch["line_start"] == Point(6, 30)
    assert patch["size"] == Size(34, 1)


def test_snap_angle_to_horizontal():
    snapped = snap_angle(Point(0, 0), Point(10, 1))
    assert snapped.y == 0
    assert snapped.x == pytest.approx(10.0499, abs=1e-4)


def test_box_handle_rejected_for_lines(template):
    with pytest.raises(ValueError):
        drag_line_endpoint(template.frame_by_id("rule"), Handle.SE, (0, 0), VIEW)
