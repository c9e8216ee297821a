"""Commit-time checks applied to every snapshot produced by a command."""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from editor.core.errors import TemplateValidationError
from editor.core.models import (
    MIN_LINE_SIZE,
    MIN_SIZE,
    Element,
    ElementKind,
    Frame,
    FrameKind,
    Size,
    Template,
    circle_bounds,
    is_in_back_side,
    line_bounds,
)


def clamp_size(size: Size, minimum: float) -> Size:
    if size.width >= minimum and size.height >= minimum:
        return size
    return Size(max(size.width, minimum), max(size.height, minimum))


def _clamp_element(element: Element) -> Element:
    size = clamp_size(element.size, MIN_SIZE)
    if element.kind is ElementKind.QRCODE and size.width != size.height:
        side = max(min(size.width, size.height), MIN_SIZE)
        size = Size(side, side)
    return element if size is element.size else replace(element, size=size)


def _clamp_frame(frame: Frame) -> Frame:
    if frame.kind is FrameKind.LINE:
        if frame.line_start is not None and frame.line_end is not None:
            position, size = line_bounds(frame.line_start, frame.line_end)
            if position == frame.position and size == frame.size:
                return frame
            return replace(frame, position=position, size=size)
        size = clamp_size(frame.size, MIN_LINE_SIZE)
    elif frame.kind is FrameKind.CIRCLE:
        position, size = circle_bounds(frame.position, frame.size)
        if position == frame.position and size == frame.size:
            return frame
        return replace(frame, position=position, size=size)
    else:
        size = clamp_size(frame.size, MIN_SIZE)
    return frame if size is frame.size else replace(frame, size=size)


def _check_unique_ids(template: Template) -> None:
    seen = set()
    for shape_id in template.ids():
        if shape_id in seen:
            raise TemplateValidationError(f"Duplicate id in template: {shape_id}")
        seen.add(shape_id)


def _check_qr_placement(before: Optional[Template], after: Template) -> None:
    for element in after.elements:
        if element.kind is not ElementKind.QRCODE or not is_in_back_side(element.position.y):
            continue
        previous = before.element_by_id(element.id) if before is not None else None
        if previous is not None and previous.position == element.position and previous.size == element.size:
            continue
        raise TemplateValidationError(f"QR code '{element.id}' cannot be placed on the back side")


def normalize_template(template: Template) -> Template:
    """Structural checks for a loaded document: unique ids and clamped sizes.

    Placement rules are left to the edit that moves a shape, so a QR code
    already stored on the back side loads unchanged.
    """
    _check_unique_ids(template)

    elements = tuple(_clamp_element(e) for e in template.elements)
    frames = tuple(_clamp_frame(f) for f in template.frames)
    unchanged = all(a is b for a, b in zip(elements, template.elements)) and all(
        a is b for a, b in zip(frames, template.frames)
    )
    if unchanged:
        return template
    return replace(template, elements=elements, frames=frames)


def validate_commit(after: Template, before: Optional[Template] = None) -> Template:
    """Clamp undersized shapes and reject structural violations.

    Returns the snapshot to commit. Raises TemplateValidationError for
    duplicate ids or a QR element newly placed above the fold line.
    """
    _check_qr_placement(before, after)
    return normalize_template(after)
