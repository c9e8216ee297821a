from dataclasses import replace

import pytest

from editor.core.autosave import AutoSaver
from editor.core.geometry import QR_BACK_SIDE_NOTICE
from editor.core.models import ElementKind, FrameKind, Point, Size
from editor.core.session import EditorSession
from editor.core.storage import TemplateStore


class IdleTimer:
    """Timer stand-in that never fires on its own."""

    def __init__(self, delay, function):
        self.function = function
        self.daemon = False

    def start(self):
        pass

    def cancel(self):
        pass


@pytest.fixture
def session(template, settings, clock):
    return EditorSession(template=template, settings=settings, clock=clock)


def at(session, x_mm, y_mm):
    return session.view.mm_to_px(x_mm), session.view.mm_to_px(y_mm)


def test_drag_move_commits_one_history_entry(session, template):
    changes = []
    session.subscribe(changes.append)

    hit = session.press(at(session, 5, 35))
    assert hit.target_id == "box"
    assert session.selected_id == "box"
    session.drag_to(at(session, 8, 35))
    session.drag_to(at(session, 12.3, 35))
    assert session.template is template

    assert session.release()
    assert session.template.frame_by_id("box").position == Point(12, 18)
    assert len(session.history) == 1
    assert len(changes) == 1

    assert session.undo()
    assert session.template == template
    assert session.redo()
    assert session.template.frame_by_id("box").position == Point(12, 18)


def test_cancelled_drag_leaves_no_trace(session, template):
    session.press(at(session, 5, 35))
    session.drag_to(at(session, 30, 50))
    session.cancel_drag()
    assert not session.release()
    assert session.template is template
    assert len(session.history) == 0


def test_press_on_empty_area_clears_selection(session):
    session.press(at(session, 5, 35))
    session.release()
    assert session.press(at(session, 102, 72)) is None
    assert session.selected_id is None


def test_blocked_drag_notifies_once(session):
    notices = []
    session.subscribe_notices(lambda *args: notices.append(args))
    session.press(at(session, 90, 60))
    session.drag_to(at(session, 90, 20))
    session.drag_to(at(session, 90, 15))
    session.drag_to(at(session, 90, 18))

    assert notices == [("Move blocked", QR_BACK_SIDE_NOTICE, "warning")]
    assert not session.release()
    assert session.template.element_by_id("qr").position == Point(80, 50)


def test_nudge_uses_grid_step(session):
    session.selected_id = "box"
    assert session.nudge(1, 0)
    assert session.template.frame_by_id("box").position == Point(6, 18)

    session.update_settings(snap_to_grid=False)
    assert session.nudge(0, 1)
    assert session.template.frame_by_id("box").position == Point(6, 19)
    assert len(session.history) == 2


def test_nudge_against_card_edge_is_a_noop(session):
    session.selected_id = "artist"
    session.nudge(10, 0)
    assert not session.nudge(1, 0)


def test_nudge_qr_into_back_side_is_blocked(session):
    notices = []
    session.subscribe_notices(lambda *args: notices.append(args))
    session.update_element("qr", position=Point(80, 16))
    session.selected_id = "qr"

    assert not session.nudge(0, -1)
    assert notices[0][0] == "Move blocked"
    assert session.template.element_by_id("qr").position == Point(80, 16)


def test_nudge_without_selection(session):
    assert not session.nudge(1, 1)


def test_add_and_delete_shapes(session):
    element = session.add_element(ElementKind.QRCODE, "discogsUrl", Point(40, 40))
    assert session.selected_id == element.id
    assert session.template.element_by_id(element.id).size == Size(20, 20)

    frame = session.add_frame(FrameKind.LINE, Point(11, 51))
    assert session.template.frame_by_id(frame.id).line_start == Point(12, 52)

    assert session.delete_selected()
    assert session.template.frame_by_id(frame.id) is None
    assert session.selected_id is None
    assert not session.delete("ghost")

    session.undo()
    assert session.template.frame_by_id(frame.id) is not None
    assert len(session.history) == 3


def test_rejected_edit_raises_notice(session):
    notices = []
    session.subscribe_notices(lambda *args: notices.append(args))
    assert not session.update_element("qr", position=Point(80, 2))
    assert notices[0][0] == "Edit rejected"
    assert len(session.history) == 0


def test_update_frame_style(session):
    box = session.template.frame_by_id("box")
    assert session.update_frame("box", style=replace(box.style, fill_color="#ff0000"))
    assert session.template.frame_by_id("box").style.fill_color == "#ff0000"


def test_uneven_circle_resize_undoes_exactly(session, template):
    assert session.update_frame("ring", size=Size(10, 30))
    ring = session.template.frame_by_id("ring")
    assert ring.size == Size(30, 30)
    assert ring.position == Point(50, 20)

    assert session.undo()
    assert session.template == template
    assert session.redo()
    assert session.template.frame_by_id("ring") == ring


def test_settings_and_rename_bypass_history(session):
    assert session.update_settings(grid_size=5)
    assert session.grid.size == 5
    assert session.rename("Shelf B")
    assert session.template.name == "Shelf B"
    assert len(session.history) == 0


def test_load_resets_history(session, template):
    session.update_element("artist", position=Point(8, 20))
    session.selected_id = "artist"
    session.load(replace(template, id="other"))
    assert len(session.history) == 0
    assert session.selected_id is None
    assert session.template.id == "other"


def test_edits_schedule_autosave(template, settings, clock):
    saver = AutoSaver(lambda t: None, timer_factory=IdleTimer)
    session = EditorSession(template=template, settings=settings, clock=clock, autosaver=saver)
    session.update_element("artist", position=Point(8, 20))
    assert saver.pending is session.template


def test_save_and_restore_through_store(tmp_path, template, settings, clock):
    store = TemplateStore(str(tmp_path))
    saver = AutoSaver(store.save_autosave, timer_factory=IdleTimer)
    session = EditorSession(template=template, settings=settings, store=store, clock=clock, autosaver=saver)

    session.update_element("artist", position=Point(8, 20))
    stored = session.save()
    assert stored.created_at is not None
    assert store.get("t1").element_by_id("artist").position == Point(8, 20)

    session.close()
    restored = EditorSession(
        settings=settings, store=store, clock=clock, autosaver=AutoSaver(store.save_autosave, timer_factory=IdleTimer)
    )
    assert restored.restore_autosave()
    assert restored.template.element_by_id("artist").position == Point(8, 20)


def test_save_without_store(session):
    with pytest.raises(RuntimeError):
        session.save()
