"""Bounded undo/redo history with time-windowed merging."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from editor.core.commands import Command
from editor.core.models import Template
from editor.core.validation import validate_commit

logger = logging.getLogger(__name__)

Validator = Callable[[Template, Optional[Template]], Template]


@dataclass(frozen=True)
class HistoryInfo:
    total: int
    cursor: int
    can_undo: bool
    can_redo: bool
    descriptions: Tuple[str, ...]


class CommandHistory:
    """Arena of executed commands plus a cursor.

    ``cursor`` is the index of the last applied command, ``-1`` when
    nothing can be undone. Entries past the cursor form the redo branch.
    """

    def __init__(
        self,
        max_size: int = 50,
        merge_window_ms: int = 1000,
        enable_merging: bool = True,
        validator: Validator = validate_commit,
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.max_size = max_size
        self.merge_window_ms = merge_window_ms
        self.enable_merging = enable_merging
        self.validator = validator
        self.last_error: Optional[Exception] = None
        self._entries: List[Command] = []
        self._cursor = -1

    # ------------------------------------------------------------------
    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def entries(self) -> Tuple[Command, ...]:
        return tuple(self._entries)

    @property
    def can_undo(self) -> bool:
        return self._cursor >= 0

    @property
    def can_redo(self) -> bool:
        return self._cursor < len(self._entries) - 1

    def __len__(self) -> int:
        return len(self._entries)

    def info(self) -> HistoryInfo:
        return HistoryInfo(
            total=len(self._entries),
            cursor=self._cursor,
            can_undo=self.can_undo,
            can_redo=self.can_redo,
            descriptions=tuple(c.description for c in self._entries),
        )

    def clear(self) -> None:
        self._entries.clear()
        self._cursor = -1
        self.last_error = None

    # ------------------------------------------------------------------
    def execute(self, command: Command, template: Template) -> Template:
        """Apply ``command`` and record it.

        Returns the new snapshot, or ``template`` itself when the command
        failed or was rejected; history is untouched in that case.
        """
        self.last_error = None
        merged = self._try_merge(command)
        applied = merged or command
        try:
            result = self.validator(applied.execute(template), template)
        except Exception as exc:
            self.last_error = exc
            logger.warning("Command '%s' rejected: %s", command.description, exc)
            return template

        del self._entries[self._cursor + 1:]
        if merged is not None:
            self._entries[self._cursor] = merged
            logger.debug("Merged '%s' into history entry %d", command.description, self._cursor)
            return result

        self._entries.append(command)
        self._cursor += 1
        overflow = len(self._entries) - self.max_size
        if overflow > 0:
            del self._entries[:overflow]
            self._cursor -= overflow
        return result

    def _try_merge(self, command: Command) -> Optional[Command]:
        if not self.enable_merging or self._cursor < 0:
            return None
        last = self._entries[self._cursor]
        try:
            if not last.can_merge(command):
                return None
            if command.timestamp - last.timestamp > self.merge_window_ms:
                return None
            return last.merge(command)
        except Exception as exc:
            logger.warning("Merge of '%s' failed, appending instead: %s", command.description, exc)
            return None

    # ------------------------------------------------------------------
    def undo(self, template: Template) -> Template:
        if self._cursor < 0:
            return template
        self.last_error = None
        command = self._entries[self._cursor]
        try:
            result = command.undo(template)
        except Exception as exc:
            self.last_error = exc
            logger.error("Undo of '%s' failed: %s", command.description, exc)
            return template
        self._cursor -= 1
        return result

    def redo(self, template: Template) -> Template:
        if self._cursor >= len(self._entries) - 1:
            return template
        self.last_error = None
        command = self._entries[self._cursor + 1]
        try:
            result = self.validator(command.execute(template), template)
        except Exception as exc:
            self.last_error = exc
            logger.error("Redo of '%s' failed: %s", command.description, exc)
            return template
        self._cursor += 1
        return result
