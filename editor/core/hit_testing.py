"""Pointer hit-testing against a template snapshot."""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterator, Optional, Tuple

from editor.core.geometry import Handle, ViewTransform, handles_for
from editor.core.models import Element, Frame, FrameKind, Point, Template

HANDLE_SIZE_PX = 8.0
MIN_LINE_HIT_PX = 10.0
LINE_HIT_PADDING_PX = 6.0


class TargetType(str, Enum):
    ELEMENT = "element"
    FRAME = "frame"


@dataclass(frozen=True)
class Hit:
    target_id: str
    target_type: TargetType
    handle: Optional[Handle] = None

    @property
    def is_handle(self) -> bool:
        return self.handle is not None


def handle_points(shape) -> Dict[Handle, Point]:
    """Document-space anchor of every handle the shape exposes."""
    if isinstance(shape, Frame) and shape.is_line:
        return {Handle.LINE_START: shape.line_start, Handle.LINE_END: shape.line_end}

    x, y = shape.position.x, shape.position.y
    w, h = shape.size.width, shape.size.height
    anchors = {
        Handle.NW: Point(x, y),
        Handle.N: Point(x + w / 2, y),
        Handle.NE: Point(x + w, y),
        Handle.E: Point(x + w, y + h / 2),
        Handle.SE: Point(x + w, y + h),
        Handle.S: Point(x + w / 2, y + h),
        Handle.SW: Point(x, y + h),
        Handle.W: Point(x, y + h / 2),
    }
    return {handle: anchors[handle] for handle in handles_for(shape)}


def distance_to_segment(point: Point, start: Point, end: Point) -> float:
    dx = end.x - start.x
    dy = end.y - start.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(point.x - start.x, point.y - start.y)
    t = ((point.x - start.x) * dx + (point.y - start.y) * dy) / length_sq
    t = max(0.0, min(1.0, t))
    return math.hypot(point.x - (start.x + t * dx), point.y - (start.y + t * dy))


def line_hit_width_px(frame: Frame) -> float:
    return max(frame.style.stroke_width + LINE_HIT_PADDING_PX, MIN_LINE_HIT_PX)


def _contains(shape, point: Point, view: ViewTransform) -> bool:
    if isinstance(shape, Frame):
        if shape.is_line and shape.line_start is not None and shape.line_end is not None:
            tolerance = view.px_to_mm(line_hit_width_px(shape) / 2)
            return distance_to_segment(point, shape.line_start, shape.line_end) <= tolerance
        if shape.kind is FrameKind.CIRCLE:
            center = shape.center
            rx = shape.size.width / 2
            ry = shape.size.height / 2
            if rx <= 0 or ry <= 0:
                return False
            return ((point.x - center.x) / rx) ** 2 + ((point.y - center.y) / ry) ** 2 <= 1.0

    return (
        shape.position.x <= point.x <= shape.position.x + shape.size.width
        and shape.position.y <= point.y <= shape.position.y + shape.size.height
    )


def _target_type(shape) -> TargetType:
    return TargetType.ELEMENT if isinstance(shape, Element) else TargetType.FRAME


def iter_topmost(template: Template) -> Iterator[Tuple[TargetType, object]]:
    """Shapes from the top of the paint order down."""
    for element in reversed(template.elements):
        yield TargetType.ELEMENT, element
    for frame in reversed(template.sorted_frames()):
        yield TargetType.FRAME, frame


def hit_handle(shape, point: Point, view: ViewTransform) -> Optional[Handle]:
    half = view.px_to_mm(HANDLE_SIZE_PX / 2)
    for handle, anchor in handle_points(shape).items():
        if anchor is None:
            continue
        if handle.is_endpoint:
            if math.hypot(point.x - anchor.x, point.y - anchor.y) <= half * 1.5:
                return handle
        elif abs(point.x - anchor.x) <= half and abs(point.y - anchor.y) <= half:
            return handle
    return None


def hit_test(
    template: Template,
    point_px: Tuple[float, float],
    view: ViewTransform,
    selected_id: Optional[str] = None,
) -> Optional[Hit]:
    """Resolve what lies under a card-relative pixel position.

    Handles of the selected shape win over any body; line endpoints are
    checked before the line body.
    """
    point = view.point_to_mm(*point_px)

    if selected_id is not None:
        selected = template.shape_by_id(selected_id)
        if selected is not None:
            handle = hit_handle(selected, point, view)
            if handle is not None:
                return Hit(selected.id, _target_type(selected), handle)

    for target_type, shape in iter_topmost(template):
        if _contains(shape, point, view):
            return Hit(shape.id, target_type)
    return None
