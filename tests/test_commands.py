from dataclasses import replace

import pytest

from editor.core.commands import (
    Command,
    CommandKind,
    add_element_command,
    add_frame_command,
    clean_patch,
    composite_command,
    delete_element_command,
    delete_frame_command,
    update_element_command,
    update_frame_command,
)
from editor.core.factory import create_element, create_frame
from editor.core.models import ElementKind, FrameKind, Point, Size


def _commands(template):
    return [
        add_element_command(create_element(ElementKind.TEXT, "title", Point(10, 50), element_id="title")),
        delete_element_command(template, "qr"),
        update_element_command(template, "artist", {"position": Point(8, 30)}),
        add_frame_command(create_frame(FrameKind.CIRCLE, Point(40, 40), frame_id="dot")),
        delete_frame_command(template, "rule"),
        update_frame_command(template, "rule", {"line_end": Point(50, 40)}),
    ]


def test_undo_restores_previous_snapshot(template):
    for command in _commands(template):
        after = command.execute(template)
        assert after != template, command.kind
        assert command.undo(after) == template, command.kind


def test_execute_never_mutates_input(template):
    snapshot = template.to_dict()
    for command in _commands(template):
        command.execute(template)
    assert template.to_dict() == snapshot


def test_delete_undo_restores_original_index(template):
    command = delete_element_command(template, "qr")
    assert command.index == 1
    restored = command.undo(command.execute(template))
    assert [e.id for e in restored.elements] == ["artist", "qr", "photo"]


def test_delete_missing_shape_raises(template):
    with pytest.raises(KeyError):
        delete_frame_command(template, "nope")


def test_update_patch_drops_derived_flags(template):
    command = update_element_command(template, "artist", {"position": Point(6, 2), "is_back_side": False})
    assert "is_back_side" not in command.new_patch
    assert command.execute(template).element_by_id("artist").is_back_side


def test_update_with_unknown_field_fails(template):
    command = Command(
        kind=CommandKind.UPDATE_ELEMENT,
        description="Recolour",
        target_id="artist",
        new_patch={"colour": "red"},
    )
    with pytest.raises(ValueError):
        command.execute(template)


def test_update_missing_element_fails_on_execute(template):
    command = Command(
        kind=CommandKind.UPDATE_ELEMENT,
        description="Update element",
        target_id="ghost",
        new_patch={"position": Point(1, 1)},
    )
    with pytest.raises(KeyError):
        command.execute(template)


def test_line_endpoint_update_recomputes_bounds(template):
    command = update_frame_command(template, "rule", {"line_end": Point(50, 40)})
    assert set(command.old_patch) == {"line_end", "position", "size"}
    line = command.execute(template).frame_by_id("rule")
    assert line.position == Point(10, 30)
    assert line.size == Size(40, 10)


def test_circle_resize_is_squared_in_the_patch(template):
    command = update_frame_command(template, "ring", {"size": Size(10, 30)})
    assert command.new_patch == {"position": Point(50, 20), "size": Size(30, 30)}
    assert command.old_patch == {"position": Point(60, 20), "size": Size(20, 20)}
    assert command.undo(command.execute(template)) == template


def test_merge_keeps_first_old_and_last_new(template):
    first = update_element_command(template, "artist", {"position": Point(8, 20)}, timestamp=100)
    moved = first.execute(template)
    second = update_element_command(moved, "artist", {"position": Point(10, 20), "size": Size(80, 8)}, timestamp=400)

    assert first.can_merge(second)
    merged = first.merge(second)
    assert merged.old_patch == {"position": Point(6, 20), "size": Size(94, 8)}
    assert merged.new_patch == {"position": Point(10, 20), "size": Size(80, 8)}
    assert merged.timestamp == 400
    assert merged.undo(merged.execute(template)) == template


def test_merge_requires_same_target_and_kind(template):
    a = update_element_command(template, "artist", {"position": Point(8, 20)})
    b = update_element_command(template, "photo", {"position": Point(8, 40)})
    c = update_frame_command(template, "box", {"position": Point(8, 20)})
    assert not a.can_merge(b)
    assert not a.can_merge(c)
    with pytest.raises(ValueError):
        a.merge(b)


def test_add_commands_never_merge(template):
    element = create_element(ElementKind.TEXT, "genre", Point(0, 40))
    a = add_element_command(element)
    b = add_element_command(replace(element, id="other"))
    assert not a.can_merge(b)


def test_composite_undoes_children_in_reverse(template):
    command = composite_command(
        [
            update_frame_command(template, "box", {"z_index": 4}),
            delete_frame_command(template, "ring"),
            add_frame_command(create_frame(FrameKind.TEXT, Point(20, 50), frame_id="note")),
        ],
        description="Rearrange frames",
    )
    after = command.execute(template)
    assert [f.id for f in after.frames] == ["box", "rule", "note"]
    assert after.frame_by_id("box").z_index == 4
    assert command.undo(after) == template


def test_clean_patch():
    assert clean_patch({"position": 1, "auto_rotate": True, "is_back_side": True}) == {"position": 1}
