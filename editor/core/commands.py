"""Reversible template mutations.

Commands form a tagged union keyed by ``CommandKind``. Each kind has one
pure ``execute``/``undo`` pair registered in a dispatch table; neither ever
modifies the snapshot it receives.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

from editor.core.factory import now_ms
from editor.core.models import Element, Frame, FrameKind, Template, circle_bounds, line_bounds

Patch = Mapping[str, Any]

DERIVED_KEYS = frozenset({"is_back_side", "auto_rotate"})


class CommandKind(str, Enum):
    ADD_ELEMENT = "addElement"
    UPDATE_ELEMENT = "updateElement"
    DELETE_ELEMENT = "deleteElement"
    ADD_FRAME = "addFrame"
    UPDATE_FRAME = "updateFrame"
    DELETE_FRAME = "deleteFrame"
    COMPOSITE = "composite"


@dataclass(frozen=True)
class Command:
    """One history entry.

    Only the payload fields relevant to ``kind`` are set: ``element`` or
    ``frame`` for add/delete, ``target_id`` plus the two patches for
    updates, ``children`` for composites.
    """

    kind: CommandKind
    description: str
    timestamp: int = field(default_factory=now_ms)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    element: Optional[Element] = None
    frame: Optional[Frame] = None
    index: Optional[int] = None
    target_id: Optional[str] = None
    old_patch: Patch = field(default_factory=dict)
    new_patch: Patch = field(default_factory=dict)
    children: Tuple["Command", ...] = ()

    def execute(self, template: Template) -> Template:
        return execute(self, template)

    def undo(self, template: Template) -> Template:
        return undo(self, template)

    def can_merge(self, other: "Command") -> bool:
        return can_merge(self, other)

    def merge(self, other: "Command") -> "Command":
        return merge(self, other)


# ----------------------------------------------------------------------
# Patch helpers
# ----------------------------------------------------------------------
def clean_patch(patch: Patch) -> Dict[str, Any]:
    """Drop derived keys; the back-side flags always follow geometry."""
    return {key: value for key, value in patch.items() if key not in DERIVED_KEYS}


def _check_keys(target, patch: Patch) -> None:
    names = {f.name for f in fields(target)} - {"id"}
    unknown = set(patch) - names
    if unknown:
        raise ValueError(f"Unknown fields in patch for {target.id}: {sorted(unknown)}")


def apply_element_patch(element: Element, patch: Patch) -> Element:
    patch = clean_patch(patch)
    if not patch:
        return element
    _check_keys(element, patch)
    return replace(element, **patch)


def apply_frame_patch(frame: Frame, patch: Patch) -> Frame:
    patch = clean_patch(patch)
    if not patch:
        return frame
    _check_keys(frame, patch)
    updated = replace(frame, **patch)
    if updated.kind is FrameKind.LINE and ("line_start" in patch or "line_end" in patch):
        if updated.line_start is not None and updated.line_end is not None:
            position, size = line_bounds(updated.line_start, updated.line_end)
            updated = replace(updated, position=position, size=size)
    return updated


def snapshot_patch(target, keys) -> Dict[str, Any]:
    """Current values of ``keys`` on ``target``, used as an undo patch."""
    return {key: getattr(target, key) for key in keys if key not in DERIVED_KEYS}


def _replace_element(template: Template, element_id: str, patch: Patch) -> Template:
    elements = []
    found = False
    for element in template.elements:
        if element.id == element_id:
            element = apply_element_patch(element, patch)
            found = True
        elements.append(element)
    if not found:
        raise KeyError(f"Element not found: {element_id}")
    return replace(template, elements=tuple(elements))


def _replace_frame(template: Template, frame_id: str, patch: Patch) -> Template:
    frames = []
    found = False
    for frame in template.frames:
        if frame.id == frame_id:
            frame = apply_frame_patch(frame, patch)
            found = True
        frames.append(frame)
    if not found:
        raise KeyError(f"Frame not found: {frame_id}")
    return replace(template, frames=tuple(frames))


def _insert(items: tuple, item, index: Optional[int]) -> tuple:
    if index is None or index >= len(items):
        return items + (item,)
    index = max(index, 0)
    return items[:index] + (item,) + items[index:]


# ----------------------------------------------------------------------
# execute / undo per kind
# ----------------------------------------------------------------------
def _add_element(cmd: Command, t: Template) -> Template:
    return replace(t, elements=_insert(t.elements, cmd.element, cmd.index))


def _remove_element(cmd: Command, t: Template) -> Template:
    return replace(t, elements=tuple(e for e in t.elements if e.id != cmd.element.id))


def _update_element(cmd: Command, t: Template) -> Template:
    return _replace_element(t, cmd.target_id, cmd.new_patch)


def _revert_element(cmd: Command, t: Template) -> Template:
    return _replace_element(t, cmd.target_id, cmd.old_patch)


def _add_frame(cmd: Command, t: Template) -> Template:
    return replace(t, frames=_insert(t.frames, cmd.frame, cmd.index))


def _remove_frame(cmd: Command, t: Template) -> Template:
    return replace(t, frames=tuple(f for f in t.frames if f.id != cmd.frame.id))


def _update_frame(cmd: Command, t: Template) -> Template:
    return _replace_frame(t, cmd.target_id, cmd.new_patch)


def _revert_frame(cmd: Command, t: Template) -> Template:
    return _replace_frame(t, cmd.target_id, cmd.old_patch)


def _run_children(cmd: Command, t: Template) -> Template:
    for child in cmd.children:
        t = execute(child, t)
    return t


def _revert_children(cmd: Command, t: Template) -> Template:
    for child in reversed(cmd.children):
        t = undo(child, t)
    return t


Handler = Callable[[Command, Template], Template]

_EXECUTE: Dict[CommandKind, Handler] = {
    CommandKind.ADD_ELEMENT: _add_element,
    CommandKind.UPDATE_ELEMENT: _update_element,
    CommandKind.DELETE_ELEMENT: _remove_element,
    CommandKind.ADD_FRAME: _add_frame,
    CommandKind.UPDATE_FRAME: _update_frame,
    CommandKind.DELETE_FRAME: _remove_frame,
    CommandKind.COMPOSITE: _run_children,
}

_UNDO: Dict[CommandKind, Handler] = {
    CommandKind.ADD_ELEMENT: _remove_element,
    CommandKind.UPDATE_ELEMENT: _revert_element,
    CommandKind.DELETE_ELEMENT: _add_element,
    CommandKind.ADD_FRAME: _remove_frame,
    CommandKind.UPDATE_FRAME: _revert_frame,
    CommandKind.DELETE_FRAME: _add_frame,
    CommandKind.COMPOSITE: _revert_children,
}

_MERGEABLE = frozenset({CommandKind.UPDATE_ELEMENT, CommandKind.UPDATE_FRAME})


def execute(command: Command, template: Template) -> Template:
    return _EXECUTE[command.kind](command, template)


def undo(command: Command, template: Template) -> Template:
    return _UNDO[command.kind](command, template)


def can_merge(command: Command, other: Command) -> bool:
    return (
        command.kind in _MERGEABLE
        and other.kind is command.kind
        and other.target_id == command.target_id
    )


def merge(command: Command, other: Command) -> Command:
    """Fold ``other`` into ``command``.

    The earliest value of every key is kept for undo and the latest value
    for redo, so one undo returns to the state before the first edit.
    """
    if not can_merge(command, other):
        raise ValueError(f"Cannot merge {other.kind.value} into {command.kind.value}")
    old_patch = {**other.old_patch, **command.old_patch}
    new_patch = {**command.new_patch, **other.new_patch}
    return replace(command, old_patch=old_patch, new_patch=new_patch, timestamp=other.timestamp)


# ----------------------------------------------------------------------
# Builders
# ----------------------------------------------------------------------
def add_element_command(element: Element, timestamp: Optional[int] = None) -> Command:
    return Command(
        kind=CommandKind.ADD_ELEMENT,
        description=f"Add {element.kind.value} element",
        timestamp=timestamp if timestamp is not None else now_ms(),
        element=element,
    )


def delete_element_command(template: Template, element_id: str, timestamp: Optional[int] = None) -> Command:
    for index, element in enumerate(template.elements):
        if element.id == element_id:
            return Command(
                kind=CommandKind.DELETE_ELEMENT,
                description=f"Delete {element.kind.value} element",
                timestamp=timestamp if timestamp is not None else now_ms(),
                element=element,
                index=index,
            )
    raise KeyError(f"Element not found: {element_id}")


def update_element_command(
    template: Template,
    element_id: str,
    changes: Patch,
    timestamp: Optional[int] = None,
    description: str = "Update element",
) -> Command:
    element = template.element_by_id(element_id)
    if element is None:
        raise KeyError(f"Element not found: {element_id}")
    new_patch = clean_patch(changes)
    return Command(
        kind=CommandKind.UPDATE_ELEMENT,
        description=description,
        timestamp=timestamp if timestamp is not None else now_ms(),
        target_id=element_id,
        old_patch=snapshot_patch(element, new_patch),
        new_patch=new_patch,
    )


def add_frame_command(frame: Frame, timestamp: Optional[int] = None) -> Command:
    return Command(
        kind=CommandKind.ADD_FRAME,
        description=f"Add {frame.kind.value} frame",
        timestamp=timestamp if timestamp is not None else now_ms(),
        frame=frame,
    )


def delete_frame_command(template: Template, frame_id: str, timestamp: Optional[int] = None) -> Command:
    for index, frame in enumerate(template.frames):
        if frame.id == frame_id:
            return Command(
                kind=CommandKind.DELETE_FRAME,
                description=f"Delete {frame.kind.value} frame",
                timestamp=timestamp if timestamp is not None else now_ms(),
                frame=frame,
                index=index,
            )
    raise KeyError(f"Frame not found: {frame_id}")


def update_frame_command(
    template: Template,
    frame_id: str,
    changes: Patch,
    timestamp: Optional[int] = None,
    description: str = "Update frame",
) -> Command:
    frame = template.frame_by_id(frame_id)
    if frame is None:
        raise KeyError(f"Frame not found: {frame_id}")
    new_patch = clean_patch(changes)
    keys = set(new_patch)
    # Endpoint edits also move the derived bounding box.
    if frame.is_line and keys & {"line_start", "line_end"}:
        keys |= {"position", "size"}
    # A circle stays square around the center of the requested box.
    if frame.kind is FrameKind.CIRCLE and "size" in new_patch:
        position, size = circle_bounds(new_patch.get("position", frame.position), new_patch["size"])
        new_patch = {**new_patch, "position": position, "size": size}
        keys |= {"position", "size"}
    return Command(
        kind=CommandKind.UPDATE_FRAME,
        description=description,
        timestamp=timestamp if timestamp is not None else now_ms(),
        target_id=frame_id,
        old_patch=snapshot_patch(frame, keys),
        new_patch=new_patch,
    )


def composite_command(commands, description: str = "Multiple changes", timestamp: Optional[int] = None) -> Command:
    return Command(
        kind=CommandKind.COMPOSITE,
        description=description,
        timestamp=timestamp if timestamp is not None else now_ms(),
        children=tuple(commands),
    )
