"""Editing session: current snapshot, history, drag state and auto-save."""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Callable, List, Optional, Tuple

from editor.core.autosave import AutoSaver
from editor.core.commands import (
    Command,
    add_element_command,
    add_frame_command,
    delete_element_command,
    delete_frame_command,
    update_element_command,
    update_frame_command,
)
from editor.core.config import EditorSettings
from editor.core.factory import create_default_template, create_element, create_frame, now_ms
from editor.core.geometry import (
    GeometryResult,
    GridConfig,
    ViewTransform,
    move_element_mm,
    move_frame_mm,
)
from editor.core.history import CommandHistory
from editor.core.hit_testing import Hit, hit_test
from editor.core.interaction import DragSession
from editor.core.models import Element, ElementKind, FrameKind, Point, Template
from editor.core.storage import TemplateStore

logger = logging.getLogger(__name__)

Listener = Callable[[Template], None]
NoticeListener = Callable[[str, str, str], None]


class EditorSession:
    def __init__(
        self,
        template: Optional[Template] = None,
        settings: Optional[EditorSettings] = None,
        store: Optional[TemplateStore] = None,
        clock: Callable[[], int] = now_ms,
        autosaver: Optional[AutoSaver] = None,
    ):
        self.settings = settings or EditorSettings()
        self.clock = clock
        self.store = store
        self.history = CommandHistory(
            max_size=self.settings.MAX_HISTORY_SIZE,
            merge_window_ms=self.settings.MERGE_WINDOW_MS,
            enable_merging=self.settings.ENABLE_MERGING,
        )
        self.drag = DragSession()
        self.view = ViewTransform()
        self.selected_id: Optional[str] = None
        self._drag_notified = False
        self._template = template or create_default_template()
        self._listeners: List[Listener] = []
        self._notice_listeners: List[NoticeListener] = []

        if autosaver is None and store is not None:
            autosaver = AutoSaver(store.save_autosave, delay=self.settings.AUTOSAVE_DELAY_MS / 1000)
        self.autosaver = autosaver

    # ------------------------------------------------------------------
    @property
    def template(self) -> Template:
        return self._template

    @property
    def grid(self) -> GridConfig:
        return GridConfig.from_settings(self._template.settings)

    @property
    def selected(self):
        if self.selected_id is None:
            return None
        return self._template.shape_by_id(self.selected_id)

    def subscribe(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def subscribe_notices(self, listener: NoticeListener) -> None:
        self._notice_listeners.append(listener)

    def notify(self, title: str, message: str, level: str = "warning") -> None:
        logger.warning("%s: %s", title, message)
        for listener in self._notice_listeners:
            listener(title, message, level)

    def _set_template(self, template: Template) -> bool:
        if template is self._template:
            return False
        self._template = template
        if self.selected_id is not None and self._template.shape_by_id(self.selected_id) is None:
            self.selected_id = None
        if self.autosaver is not None:
            self.autosaver.schedule(template)
        for listener in self._listeners:
            listener(template)
        return True

    def load(self, template: Template) -> None:
        """Replace the document and start a fresh history."""
        self.drag.cancel()
        self.history.clear()
        self.selected_id = None
        self._set_template(template)

    def restore_autosave(self) -> bool:
        if self.store is None:
            return False
        template = self.store.load_autosave(self.clock())
        if template is None:
            return False
        self.load(template)
        return True

    # ------------------------------------------------------------------
    def execute(self, command: Command) -> bool:
        result = self.history.execute(command, self._template)
        if result is self._template and self.history.last_error is not None:
            self.notify("Edit rejected", str(self.history.last_error))
            return False
        return self._set_template(result)

    def undo(self) -> bool:
        self.drag.cancel()
        return self._set_template(self.history.undo(self._template))

    def redo(self) -> bool:
        self.drag.cancel()
        return self._set_template(self.history.redo(self._template))

    # ------------------------------------------------------------------
    def add_element(self, kind: ElementKind, data_binding: str, position: Point) -> Optional[Element]:
        element = create_element(kind, data_binding, position)
        if self.execute(add_element_command(element, self.clock())):
            self.selected_id = element.id
            return element
        return None

    def add_frame(self, kind: FrameKind, position: Point):
        frame = create_frame(kind, position)
        if self.execute(add_frame_command(frame, self.clock())):
            self.selected_id = frame.id
            return frame
        return None

    def update_element(self, element_id: str, **changes) -> bool:
        return self.execute(update_element_command(self._template, element_id, changes, self.clock()))

    def update_frame(self, frame_id: str, **changes) -> bool:
        return self.execute(update_frame_command(self._template, frame_id, changes, self.clock()))

    def delete(self, shape_id: str) -> bool:
        if self._template.element_by_id(shape_id) is not None:
            command = delete_element_command(self._template, shape_id, self.clock())
        elif self._template.frame_by_id(shape_id) is not None:
            command = delete_frame_command(self._template, shape_id, self.clock())
        else:
            return False
        return self.execute(command)

    def delete_selected(self) -> bool:
        if self.selected_id is None:
            return False
        return self.delete(self.selected_id)

    def update_settings(self, **changes) -> bool:
        """Grid and display settings are applied directly, outside the history."""
        settings = replace(self._template.settings, **changes)
        return self._set_template(replace(self._template, settings=settings))

    def rename(self, name: str) -> bool:
        return self._set_template(replace(self._template, name=name))

    def save(self) -> Template:
        if self.store is None:
            raise RuntimeError("No template store configured")
        stored = self.store.save(self._template, self.clock())
        self._template = stored
        return stored

    # ------------------------------------------------------------------
    def nudge(self, dx_steps: int, dy_steps: int) -> bool:
        """Arrow-key move of the selection by whole grid steps."""
        shape = self.selected
        if shape is None:
            return False
        step = self.grid.step
        if isinstance(shape, Element):
            result = move_element_mm(shape, dx_steps * step, dy_steps * step, self.grid)
            if self._reject(result):
                return False
            command = update_element_command(self._template, shape.id, result.patch, self.clock(), "Nudge element")
        else:
            result = move_frame_mm(shape, dx_steps * step, dy_steps * step, self.grid)
            command = update_frame_command(self._template, shape.id, result.patch, self.clock(), "Nudge frame")
        if all(getattr(shape, key) == value for key, value in result.patch.items()):
            return False
        return self.execute(command)

    def _reject(self, result: GeometryResult) -> bool:
        if result.rejected:
            self.notify("Move blocked", result.reason)
        return result.rejected

    # ------------------------------------------------------------------
    def hit(self, point_px: Tuple[float, float]) -> Optional[Hit]:
        return hit_test(self._template, point_px, self.view, self.selected_id)

    def press(self, point_px: Tuple[float, float]) -> Optional[Hit]:
        hit = self.hit(point_px)
        if hit is None:
            self.selected_id = None
            return None
        self._drag_notified = False
        self.selected_id = hit.target_id
        self.drag.begin(self._template, hit, point_px)
        return hit

    def drag_to(self, point_px: Tuple[float, float], snap_angles: bool = False) -> Optional[GeometryResult]:
        result = self.drag.update(point_px, self.view, self.grid, snap_angles)
        if result is not None and result.rejected and not self._drag_notified:
            self._drag_notified = True
            self.notify("Move blocked", result.reason)
        return result

    def release(self) -> bool:
        command = self.drag.commit(self._template, self.clock())
        if command is None:
            return False
        return self.execute(command)

    def cancel_drag(self) -> None:
        self.drag.cancel()

    def close(self) -> None:
        if self.autosaver is not None:
            self.autosaver.flush()
