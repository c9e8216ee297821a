from dataclasses import replace

from editor.core.geometry import CORNER_HANDLES, Handle, ViewTransform
from editor.core.hit_testing import (
    Hit,
    TargetType,
    distance_to_segment,
    handle_points,
    hit_test,
    line_hit_width_px,
)
from editor.core.models import FrameStyle, Point

VIEW = ViewTransform(zoom=1.0)


def at(x_mm, y_mm, view=VIEW):
    return view.mm_to_px(x_mm), view.mm_to_px(y_mm)


def test_frame_body_hit(template):
    assert hit_test(template, at(5, 35), VIEW) == Hit("box", TargetType.FRAME)


def test_elements_sit_above_frames(template):
    assert hit_test(template, at(20, 24), VIEW) == Hit("artist", TargetType.ELEMENT)


def test_empty_area(template):
    assert hit_test(template, at(102, 72), VIEW) is None


def test_higher_z_index_wins(template):
    box = replace(template.frames[0], z_index=3)
    cover = replace(template.frames[0], id="cover", z_index=1)
    stacked = replace(template, frames=(box, cover))
    assert hit_test(stacked, at(5, 35), VIEW).target_id == "box"


def test_later_frame_wins_on_equal_z(template):
    cover = replace(template.frames[0], id="cover")
    stacked = replace(template, frames=(template.frames[0], cover))
    assert hit_test(stacked, at(5, 35), VIEW).target_id == "cover"


def test_line_hit_uses_stroke_tolerance(template):
    assert hit_test(template, at(25, 30.5), VIEW).target_id == "rule"
    assert hit_test(template, at(25, 32), VIEW).target_id == "box"


def test_thick_line_widens_hit_area(template):
    rule = template.frame_by_id("rule")
    assert line_hit_width_px(rule) == 10
    thick = replace(rule, style=FrameStyle(stroke_width=14))
    assert line_hit_width_px(thick) == 20


def test_circle_hit_ignores_bounding_box_corners(template):
    assert hit_test(template, at(70, 35), VIEW).target_id == "ring"
    assert hit_test(template, at(61, 39), VIEW) is None


def test_selected_handle_wins(template):
    hit = hit_test(template, at(34, 38), VIEW, selected_id="box")
    assert hit == Hit("box", TargetType.FRAME, Handle.SE)
    assert hit.is_handle


def test_handles_ignored_when_not_selected(template):
    assert hit_test(template, at(34, 38), VIEW).handle is None


def test_line_endpoint_beats_line_body(template):
    hit = hit_test(template, at(40.2, 30), VIEW, selected_id="rule")
    assert hit.handle is Handle.LINE_END
    hit = hit_test(template, at(10, 30.3), VIEW, selected_id="rule")
    assert hit.handle is Handle.LINE_START


def test_hit_respects_zoom(template):
    zoomed = ViewTransform(zoom=2.0)
    assert hit_test(template, at(5, 35, zoomed), zoomed).target_id == "box"


def test_handle_points(template):
    assert set(handle_points(template.frame_by_id("ring"))) == set(CORNER_HANDLES)
    line_points = handle_points(template.frame_by_id("rule"))
    assert line_points == {Handle.LINE_START: Point(10, 30), Handle.LINE_END: Point(40, 30)}


def test_distance_to_segment():
    assert distance_to_segment(Point(5, 3), Point(0, 0), Point(10, 0)) == 3
    assert distance_to_segment(Point(13, 4), Point(0, 0), Point(10, 0)) == 5
    assert distance_to_segment(Point(3, 4), Point(0, 0), Point(0, 0)) == 5
