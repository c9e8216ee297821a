"""Pointer drag state machine: Idle -> Dragging -> Idle.

While dragging only a preview patch exists. Release turns it into exactly
one update command; cancel throws it away and nothing reaches the history.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from editor.core.commands import (
    Command,
    apply_element_patch,
    apply_frame_patch,
    update_element_command,
    update_frame_command,
)
from editor.core.geometry import GeometryResult, GridConfig, ViewTransform, move_shape, resize_shape
from editor.core.hit_testing import Hit, TargetType
from editor.core.models import Element, Template

logger = logging.getLogger(__name__)


class DragState(str, Enum):
    IDLE = "idle"
    DRAGGING = "dragging"


@dataclass(frozen=True)
class DragContext:
    hit: Hit
    anchor_px: Tuple[float, float]
    original: object

    @property
    def is_resize(self) -> bool:
        return self.hit.handle is not None


class DragSession:
    def __init__(self):
        self.state = DragState.IDLE
        self.context: Optional[DragContext] = None
        self.preview: Optional[GeometryResult] = None
        self.last_rejection: Optional[str] = None

    @property
    def is_dragging(self) -> bool:
        return self.state is DragState.DRAGGING

    # ------------------------------------------------------------------
    def begin(self, template: Template, hit: Hit, anchor_px: Tuple[float, float]) -> None:
        if self.is_dragging:
            raise RuntimeError("A drag is already in progress")
        if hit.target_type is TargetType.ELEMENT:
            original = template.element_by_id(hit.target_id)
        else:
            original = template.frame_by_id(hit.target_id)
        if original is None:
            raise KeyError(f"Shape not found: {hit.target_id}")
        self.context = DragContext(hit=hit, anchor_px=anchor_px, original=original)
        self.preview = None
        self.last_rejection = None
        self.state = DragState.DRAGGING

    def update(
        self,
        point_px: Tuple[float, float],
        view: ViewTransform,
        grid: GridConfig,
        snap_angles: bool = False,
    ) -> Optional[GeometryResult]:
        """Recompute the preview; a rejected step keeps the last valid one."""
        if not self.is_dragging:
            return None
        ctx = self.context
        delta = (point_px[0] - ctx.anchor_px[0], point_px[1] - ctx.anchor_px[1])
        if ctx.is_resize:
            result = resize_shape(ctx.original, ctx.hit.handle, delta, view, grid, snap_angles)
        else:
            result = move_shape(ctx.original, delta, view, grid)

        if result.rejected:
            self.last_rejection = result.reason
            return result
        self.preview = result
        return result

    def preview_shape(self):
        """The dragged shape with the preview applied, for painting only."""
        if not self.is_dragging:
            return None
        original = self.context.original
        if self.preview is None:
            return original
        if isinstance(original, Element):
            return apply_element_patch(original, self.preview.patch)
        return apply_frame_patch(original, self.preview.patch)

    def commit(self, template: Template, timestamp: Optional[int] = None) -> Optional[Command]:
        """Finish the drag and build the single command for it, if any."""
        if not self.is_dragging:
            return None
        ctx, preview = self.context, self.preview
        self._reset()

        if preview is None or not preview.patch:
            return None
        original = ctx.original
        if all(getattr(original, key) == value for key, value in preview.patch.items()):
            return None

        description = "Resize" if ctx.is_resize else "Move"
        if ctx.hit.target_type is TargetType.ELEMENT:
            if template.element_by_id(original.id) is None:
                logger.warning("Dragged element %s no longer exists", original.id)
                return None
            return update_element_command(template, original.id, preview.patch, timestamp, f"{description} element")
        if template.frame_by_id(original.id) is None:
            logger.warning("Dragged frame %s no longer exists", original.id)
            return None
        return update_frame_command(template, original.id, preview.patch, timestamp, f"{description} frame")

    def cancel(self) -> None:
        if self.is_dragging:
            logger.debug("Drag on %s cancelled", self.context.hit.target_id)
        self._reset()

    def _reset(self) -> None:
        self.state = DragState.IDLE
        self.context = None
        self.preview = None
