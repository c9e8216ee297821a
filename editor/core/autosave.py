"""Debounced background auto-save."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Optional

from editor.core.models import Template

logger = logging.getLogger(__name__)

TimerFactory = Callable[[float, Callable[[], None]], threading.Timer]


class AutoSaver:
    """Coalesces bursts of edits into one save after ``delay`` seconds.

    Save failures are logged and never reach the editing code.
    """

    def __init__(
        self,
        save: Callable[[Template], None],
        delay: float = 1.0,
        timer_factory: TimerFactory = threading.Timer,
    ):
        self._save = save
        self.delay = delay
        self._timer_factory = timer_factory
        self._lock = threading.Lock()
        self._timer = None
        self._pending: Optional[Template] = None

    @property
    def pending(self) -> Optional[Template]:
        return self._pending

    def schedule(self, template: Template) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = template
            self._timer = self._timer_factory(self.delay, self._fire)
            self._timer.daemon = True
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._pending = None

    def flush(self) -> None:
        """Save the pending snapshot now instead of waiting for the timer."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
        self._fire()

    def _fire(self) -> None:
        with self._lock:
            template, self._pending = self._pending, None
            self._timer = None
        if template is None:
            return
        try:
            self._save(template)
            logger.debug("Auto-saved template %s", template.id)
        except Exception as exc:
            logger.error("Auto-save failed: %s", exc)
