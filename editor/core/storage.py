"""JSON-file template store with a single auto-save slot."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from typing import Any, List, Optional

from editor.core.errors import TemplateError
from editor.core.factory import now_ms
from editor.core.models import Template
from editor.core.template_io import template_from_dict

logger = logging.getLogger(__name__)

TEMPLATES_FILE = "templates.json"
AUTOSAVE_FILE = "autosave.json"
HOUR_MS = 60 * 60 * 1000


class TemplateStore:
    def __init__(self, directory: str, autosave_max_age_hours: float = 24.0):
        self.directory = directory
        self.max_age_ms = int(autosave_max_age_hours * HOUR_MS)
        os.makedirs(directory, exist_ok=True)

    @property
    def templates_path(self) -> str:
        return os.path.join(self.directory, TEMPLATES_FILE)

    @property
    def autosave_path(self) -> str:
        return os.path.join(self.directory, AUTOSAVE_FILE)

    # ------------------------------------------------------------------
    def _read_json(self, path: str) -> Any:
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Could not read %s: %s", path, exc)
            return None

    def _write_json(self, path: str, data: Any) -> None:
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4, ensure_ascii=False)
        os.replace(tmp_path, path)

    # ------------------------------------------------------------------
    def _entries(self) -> List[Any]:
        raw = self._read_json(self.templates_path)
        return raw if isinstance(raw, list) else []

    def list(self) -> List[Template]:
        templates: List[Template] = []
        for entry in self._entries():
            try:
                templates.append(template_from_dict(entry))
            except TemplateError as exc:
                logger.warning("Skipping unreadable stored template: %s", exc)
        return templates

    def get(self, template_id: str) -> Optional[Template]:
        for template in self.list():
            if template.id == template_id:
                return template
        return None

    def save(self, template: Template, timestamp: Optional[int] = None) -> Template:
        """Insert or replace by id; stamps createdAt/updatedAt.

        Entries that no longer parse are written back untouched.
        """
        stamp = timestamp if timestamp is not None else now_ms()
        entries = self._entries()
        index = next((i for i, e in enumerate(entries) if _entry_id(e) == template.id), None)
        created_at = entries[index].get("createdAt") if index is not None else None
        if not created_at or not isinstance(created_at, int) or isinstance(created_at, bool):
            created_at = template.created_at or stamp
        stored = replace(template, created_at=created_at, updated_at=stamp)

        if index is None:
            entries.append(stored.to_dict())
        else:
            entries[index] = stored.to_dict()
        self._write_json(self.templates_path, entries)
        logger.info("Saved template '%s' (%s)", stored.name, stored.id)
        return stored

    def delete(self, template_id: str) -> bool:
        entries = self._entries()
        remaining = [e for e in entries if _entry_id(e) != template_id]
        if len(remaining) == len(entries):
            return False
        self._write_json(self.templates_path, remaining)
        logger.info("Deleted template %s", template_id)
        return True

    # ------------------------------------------------------------------
    def save_autosave(self, template: Template, timestamp: Optional[int] = None) -> None:
        stamp = timestamp if timestamp is not None else now_ms()
        self._write_json(self.autosave_path, {"template": template.to_dict(), "timestamp": stamp})

    def load_autosave(self, now: Optional[int] = None) -> Optional[Template]:
        """Return the auto-saved template unless it is older than the max age."""
        raw = self._read_json(self.autosave_path)
        if not isinstance(raw, dict) or "template" not in raw:
            return None
        now = now if now is not None else now_ms()
        timestamp = raw.get("timestamp")
        if not isinstance(timestamp, (int, float)) or now - timestamp > self.max_age_ms:
            logger.info("Discarding stale auto-save")
            self.clear_autosave()
            return None
        try:
            return template_from_dict(raw["template"])
        except TemplateError as exc:
            logger.warning("Discarding unreadable auto-save: %s", exc)
            self.clear_autosave()
            return None

    def clear_autosave(self) -> None:
        if os.path.exists(self.autosave_path):
            os.remove(self.autosave_path)


def _entry_id(entry: Any) -> Optional[str]:
    return entry.get("id") if isinstance(entry, dict) else None
