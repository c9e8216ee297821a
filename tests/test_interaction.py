from dataclasses import replace

import pytest

from editor.core.commands import CommandKind
from editor.core.geometry import QR_BACK_SIDE_NOTICE, GridConfig, Handle, ViewTransform
from editor.core.hit_testing import Hit, TargetType
from editor.core.interaction import DragSession, DragState
from editor.core.models import Point, Size

VIEW = ViewTransform(zoom=1.0)
GRID = GridConfig()


def at(x_mm, y_mm):
    return VIEW.mm_to_px(x_mm), VIEW.mm_to_px(y_mm)


def test_move_drag_produces_one_command(template):
    drag = DragSession()
    drag.begin(template, Hit("box", TargetType.FRAME), at(0, 0))
    assert drag.state is DragState.DRAGGING

    drag.update(at(3, 0), VIEW, GRID)
    drag.update(at(7.3, 0), VIEW, GRID)
    assert drag.preview_shape().position == Point(12, 18)
    assert template.frame_by_id("box").position == Point(4, 18)

    command = drag.commit(template, timestamp=42)
    assert drag.state is DragState.IDLE
    assert command.kind is CommandKind.UPDATE_FRAME
    assert command.description == "Move frame"
    assert command.timestamp == 42
    assert command.execute(template).frame_by_id("box").position == Point(12, 18)


def test_resize_drag_from_handle(template):
    drag = DragSession()
    drag.begin(template, Hit("artist", TargetType.ELEMENT, Handle.S), at(0, 0))
    drag.update(at(0, 4), VIEW, GRID)
    command = drag.commit(template)
    assert command.description == "Resize element"
    assert command.execute(template).element_by_id("artist").size == Size(94, 12)


def test_cancel_discards_preview(template):
    drag = DragSession()
    drag.begin(template, Hit("box", TargetType.FRAME), at(0, 0))
    drag.update(at(10, 10), VIEW, GRID)
    drag.cancel()
    assert not drag.is_dragging
    assert drag.preview_shape() is None
    assert drag.commit(template) is None


def test_rejected_step_keeps_last_valid_preview(template):
    drag = DragSession()
    drag.begin(template, Hit("qr", TargetType.ELEMENT), at(0, 0))
    drag.update(at(0, -10), VIEW, GRID)
    result = drag.update(at(0, -40), VIEW, GRID)

    assert result.rejected
    assert drag.last_rejection == QR_BACK_SIDE_NOTICE
    assert drag.preview_shape().position == Point(80, 40)
    command = drag.commit(template)
    assert command.new_patch == {"position": Point(80, 40)}


def test_drag_without_net_change_commits_nothing(template):
    drag = DragSession()
    drag.begin(template, Hit("box", TargetType.FRAME), at(0, 0))
    drag.update((0.5, 0.5), VIEW, GRID)
    assert drag.commit(template) is None


def test_preview_before_first_update_is_original(template):
    drag = DragSession()
    drag.begin(template, Hit("ring", TargetType.FRAME), at(0, 0))
    assert drag.preview_shape() is template.frame_by_id("ring")


def test_line_endpoint_drag(template):
    drag = DragSession()
    drag.begin(template, Hit("rule", TargetType.FRAME, Handle.LINE_START), at(0, 0))
    drag.update(at(0, 20), VIEW, GRID)
    command = drag.commit(template)
    rule = command.execute(template).frame_by_id("rule")
    assert rule.line_start == Point(10, 50)
    assert rule.position == Point(10, 30)
    assert rule.size == Size(30, 20)
    assert command.undo(command.execute(template)) == template


def test_begin_twice_fails(template):
    drag = DragSession()
    drag.begin(template, Hit("box", TargetType.FRAME), at(0, 0))
    with pytest.raises(RuntimeError):
        drag.begin(template, Hit("ring", TargetType.FRAME), at(0, 0))


def test_begin_on_missing_shape_fails(template):
    with pytest.raises(KeyError):
        DragSession().begin(template, Hit("ghost", TargetType.ELEMENT), at(0, 0))


def test_commit_after_shape_removed(template):
    drag = DragSession()
    drag.begin(template, Hit("box", TargetType.FRAME), at(0, 0))
    drag.update(at(6, 0), VIEW, GRID)
    without_box = replace(template, frames=template.frames[1:])
    assert drag.commit(without_box) is None
