"""Constrained move/resize math for elements and frames.

Everything here works in document millimetres. Pixel deltas coming from the
pointer are converted once through a ``ViewTransform``; results are returned
as patches ready to be wrapped in an update command.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from editor.core.models import (
    CARD_HEIGHT,
    CARD_WIDTH,
    MIN_SIZE,
    MM_TO_PX,
    Element,
    ElementKind,
    Frame,
    FrameKind,
    Point,
    Size,
    TemplateSettings,
    is_in_back_side,
    line_bounds,
)

QR_BACK_SIDE_NOTICE = "QR codes cannot be placed on the back side of the card."

ANGLE_STEP = math.pi / 4


class Handle(str, Enum):
    N = "n"
    S = "s"
    E = "e"
    W = "w"
    NE = "ne"
    NW = "nw"
    SE = "se"
    SW = "sw"
    LINE_START = "line-start"
    LINE_END = "line-end"

    @property
    def is_corner(self) -> bool:
        return self in (Handle.NE, Handle.NW, Handle.SE, Handle.SW)

    @property
    def is_endpoint(self) -> bool:
        return self in (Handle.LINE_START, Handle.LINE_END)


BOX_HANDLES = (Handle.NW, Handle.N, Handle.NE, Handle.E, Handle.SE, Handle.S, Handle.SW, Handle.W)
CORNER_HANDLES = (Handle.NW, Handle.NE, Handle.SE, Handle.SW)
LINE_HANDLES = (Handle.LINE_START, Handle.LINE_END)


@dataclass(frozen=True)
class ViewTransform:
    zoom: float = 1.0
    px_per_mm: float = MM_TO_PX

    def mm_to_px(self, mm: float) -> float:
        return mm * self.px_per_mm * self.zoom

    def px_to_mm(self, px: float) -> float:
        return px / (self.px_per_mm * self.zoom)

    def point_to_mm(self, x_px: float, y_px: float) -> Point:
        return Point(self.px_to_mm(x_px), self.px_to_mm(y_px))


@dataclass(frozen=True)
class GridConfig:
    size: float = 2.0
    snap: bool = True

    @classmethod
    def from_settings(cls, settings: TemplateSettings) -> "GridConfig":
        return cls(size=settings.grid_size, snap=settings.snap_to_grid)

    @property
    def min_size(self) -> float:
        return max(MIN_SIZE, self.size) if self.snap else MIN_SIZE

    @property
    def step(self) -> float:
        """Keyboard nudge distance."""
        return self.size if self.snap else 1.0

    def apply(self, value: float) -> float:
        if not self.snap or self.size <= 0:
            return value
        return round_nearest(value, self.size)


@dataclass(frozen=True)
class GeometryResult:
    patch: Dict[str, Any] = field(default_factory=dict)
    rejected: bool = False
    reason: str = ""


def round_nearest(value: float, step: float) -> float:
    """Round half up to a multiple of ``step``."""
    return math.floor(value / step + 0.5) * step


def round_half(value: float) -> float:
    return round_nearest(value, 0.5)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def handles_for(shape) -> Tuple[Handle, ...]:
    if isinstance(shape, Frame):
        if shape.kind is FrameKind.LINE:
            return LINE_HANDLES
        if shape.kind is FrameKind.CIRCLE:
            return CORNER_HANDLES
    return BOX_HANDLES


# ----------------------------------------------------------------------
# Move
# ----------------------------------------------------------------------
def _moved_position(origin: Point, size: Size, dx_mm: float, dy_mm: float, grid: GridConfig) -> Point:
    x = grid.apply(origin.x + dx_mm)
    y = grid.apply(origin.y + dy_mm)
    x = clamp(x, 0.0, max(CARD_WIDTH - size.width, 0.0))
    y = clamp(y, 0.0, max(CARD_HEIGHT - size.height, 0.0))
    return Point(x, y)


def move_element_mm(element: Element, dx_mm: float, dy_mm: float, grid: GridConfig) -> GeometryResult:
    position = _moved_position(element.position, element.size, dx_mm, dy_mm, grid)
    if element.kind is ElementKind.QRCODE and is_in_back_side(position.y):
        return GeometryResult(rejected=True, reason=QR_BACK_SIDE_NOTICE)
    return GeometryResult(patch={"position": position})


def move_frame_mm(frame: Frame, dx_mm: float, dy_mm: float, grid: GridConfig) -> GeometryResult:
    position = _moved_position(frame.position, frame.size, dx_mm, dy_mm, grid)
    patch: Dict[str, Any] = {"position": position}
    if frame.is_line and frame.line_start is not None and frame.line_end is not None:
        applied_dx = position.x - frame.position.x
        applied_dy = position.y - frame.position.y
        patch["line_start"] = frame.line_start.translated(applied_dx, applied_dy)
        patch["line_end"] = frame.line_end.translated(applied_dx, applied_dy)
    return GeometryResult(patch=patch)


def move_shape(shape, delta_px: Tuple[float, float], view: ViewTransform, grid: GridConfig) -> GeometryResult:
    """Move ``shape`` (as it was when the drag started) by a pointer delta."""
    dx_mm = view.px_to_mm(delta_px[0])
    dy_mm = view.px_to_mm(delta_px[1])
    if isinstance(shape, Element):
        return move_element_mm(shape, dx_mm, dy_mm, grid)
    return move_frame_mm(shape, dx_mm, dy_mm, grid)


# ----------------------------------------------------------------------
# Resize
# ----------------------------------------------------------------------
def resize_box(
    position: Point,
    size: Size,
    handle: Handle,
    dx_mm: float,
    dy_mm: float,
    min_size: float,
    aspect_ratio: Optional[float] = None,
    square: bool = False,
    circle: bool = False,
) -> Tuple[Point, Size]:
    """Resize a box from ``handle`` keeping the opposite edge fixed."""
    dx = round_half(dx_mm)
    dy = round_half(dy_mm)
    value = handle.value
    width, height = size.width, size.height

    if "e" in value:
        width = max(min_size, size.width + dx)
    elif "w" in value:
        width = max(min_size, size.width - dx)
    if "s" in value:
        height = max(min_size, size.height + dy)
    elif "n" in value:
        height = max(min_size, size.height - dy)

    if circle:
        side = max(round_half(max(width, height)), min_size)
        center = Point(position.x + size.width / 2, position.y + size.height / 2)
        return Point(center.x - side / 2, center.y - side / 2), Size(side, side)

    if square:
        if handle in (Handle.E, Handle.W):
            side = width
        elif handle in (Handle.N, Handle.S):
            side = height
        else:
            side = min(width, height)
        width = height = max(side, min_size)
    elif aspect_ratio:
        if handle in (Handle.E, Handle.W):
            height = width / aspect_ratio
        elif handle in (Handle.N, Handle.S):
            width = height * aspect_ratio
        elif abs(width / size.width - 1) >= abs(height / size.height - 1):
            height = width / aspect_ratio
        else:
            width = height * aspect_ratio
        smallest = min(width, height)
        if smallest < min_size:
            factor = min_size / smallest
            width, height = width * factor, height * factor

    x, y = position.x, position.y
    if "w" in value:
        x = position.x + size.width - width
    if "n" in value:
        y = position.y + size.height - height
    return Point(x, y), Size(width, height)


def resize_element(
    element: Element,
    handle: Handle,
    delta_px: Tuple[float, float],
    view: ViewTransform,
    grid: GridConfig,
) -> GeometryResult:
    if handle.is_endpoint:
        raise ValueError(f"Handle {handle.value} only applies to line frames")
    aspect_ratio = None
    if element.kind is ElementKind.IMAGE and element.image_settings is not None:
        aspect_ratio = element.image_settings.aspect_ratio
    position, size = resize_box(
        element.position,
        element.size,
        handle,
        view.px_to_mm(delta_px[0]),
        view.px_to_mm(delta_px[1]),
        grid.min_size,
        aspect_ratio=aspect_ratio,
        square=element.kind is ElementKind.QRCODE,
    )
    if element.kind is ElementKind.QRCODE and is_in_back_side(position.y):
        return GeometryResult(rejected=True, reason=QR_BACK_SIDE_NOTICE)
    return GeometryResult(patch={"position": position, "size": size})


def snap_angle(fixed: Point, moving: Point) -> Point:
    """Snap ``moving`` to the nearest 45 degree ray from ``fixed``, same distance."""
    dx = moving.x - fixed.x
    dy = moving.y - fixed.y
    distance = math.hypot(dx, dy)
    angle = round_nearest(math.atan2(dy, dx), ANGLE_STEP)
    return Point(
        round(fixed.x + distance * math.cos(angle), 4),
        round(fixed.y + distance * math.sin(angle), 4),
    )


def drag_line_endpoint(
    frame: Frame,
    handle: Handle,
    delta_px: Tuple[float, float],
    view: ViewTransform,
    snap_angles: bool = False,
) -> GeometryResult:
    if not frame.is_line or frame.line_start is None or frame.line_end is None:
        raise ValueError(f"Frame {frame.id} is not a line")
    if handle is Handle.LINE_START:
        moving, fixed = frame.line_start, frame.line_end
    elif handle is Handle.LINE_END:
        moving, fixed = frame.line_end, frame.line_start
    else:
        raise ValueError(f"Handle {handle.value} is not a line endpoint")

    point = Point(
        round_half(moving.x + view.px_to_mm(delta_px[0])),
        round_half(moving.y + view.px_to_mm(delta_px[1])),
    )
    if snap_angles:
        point = snap_angle(fixed, point)

    start, end = (point, fixed) if handle is Handle.LINE_START else (fixed, point)
    position, size = line_bounds(start, end)
    return GeometryResult(patch={"line_start": start, "line_end": end, "position": position, "size": size})


def resize_frame(
    frame: Frame,
    handle: Handle,
    delta_px: Tuple[float, float],
    view: ViewTransform,
    grid: GridConfig,
    snap_angles: bool = False,
) -> GeometryResult:
    if handle.is_endpoint:
        return drag_line_endpoint(frame, handle, delta_px, view, snap_angles)
    if handle not in handles_for(frame):
        raise ValueError(f"Handle {handle.value} is not available on a {frame.kind.value} frame")
    position, size = resize_box(
        frame.position,
        frame.size,
        handle,
        view.px_to_mm(delta_px[0]),
        view.px_to_mm(delta_px[1]),
        grid.min_size,
        circle=frame.kind is FrameKind.CIRCLE,
    )
    return GeometryResult(patch={"position": position, "size": size})


def resize_shape(
    shape,
    handle: Handle,
    delta_px: Tuple[float, float],
    view: ViewTransform,
    grid: GridConfig,
    snap_angles: bool = False,
) -> GeometryResult:
    if isinstance(shape, Element):
        return resize_element(shape, handle, delta_px, view, grid)
    return resize_frame(shape, handle, delta_px, view, grid, snap_angles)
