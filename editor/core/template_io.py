"""JSON import/export of templates."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import replace
from typing import Any, Dict, Optional

from editor.core.errors import TemplateError, TemplateImportError
from editor.core.factory import now_ms
from editor.core.models import Template
from editor.core.validation import normalize_template

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("id", "name", "elements", "settings")
IMPORT_SUFFIX = " (import)"


def export_template(template: Template) -> str:
    return json.dumps(template.to_dict(), indent=4, ensure_ascii=False)


def _normalize(data: Dict[str, Any]) -> Dict[str, Any]:
    """Accept documents written with ``type`` and ``backgroundFrames`` keys."""
    data = dict(data)
    if "frames" not in data and "backgroundFrames" in data:
        data["frames"] = data.pop("backgroundFrames")
    for key in ("elements", "frames"):
        items = data.get(key)
        if items is None:
            continue
        if not isinstance(items, list):
            raise TemplateImportError(f"'{key}' must be a list")
        normalized = []
        for item in items:
            if not isinstance(item, dict):
                raise TemplateImportError(f"Every entry of '{key}' must be an object")
            item = dict(item)
            if "kind" not in item and "type" in item:
                item["kind"] = item.pop("type")
            normalized.append(item)
        data[key] = normalized
    return data


def template_from_dict(data: Any) -> Template:
    if not isinstance(data, dict):
        raise TemplateImportError("Template document must be a JSON object")
    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise TemplateImportError(f"Template is missing required fields: {', '.join(missing)}")
    if not isinstance(data["settings"], dict):
        raise TemplateImportError("'settings' must be an object")

    data = _normalize(data)
    try:
        template = Template.from_dict(data)
        return normalize_template(template)
    except TemplateError as exc:
        raise TemplateImportError(str(exc)) from exc
    except (TypeError, ValueError, KeyError, AttributeError) as exc:
        raise TemplateImportError(f"Malformed template: {exc}") from exc


def import_template(text: str, timestamp: Optional[int] = None) -> Template:
    """Parse an exported template and give it a fresh identity.

    Raises TemplateImportError; nothing is partially imported.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise TemplateImportError(f"Invalid JSON: {exc}") from exc

    template = template_from_dict(data)
    stamp = timestamp if timestamp is not None else now_ms()
    imported = replace(
        template,
        id=f"imported-{stamp}",
        name=f"{template.name}{IMPORT_SUFFIX}",
        created_at=stamp,
        updated_at=stamp,
    )
    logger.info("Imported template '%s' as %s", template.name, imported.id)
    return imported


def save_template(template: Template, path: str) -> str:
    folder = os.path.dirname(path)
    if folder:
        os.makedirs(folder, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        f.write(export_template(template))
    return path


def load_template(path: str, timestamp: Optional[int] = None) -> Template:
    if not os.path.exists(path):
        raise FileNotFoundError(f"Template file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        return import_template(f.read(), timestamp)
