"""Writes one PNG per card record using the Pillow renderer."""

from __future__ import annotations

import logging
import os
import re
from typing import Callable, List, Optional, Sequence, Set

from renderer.core.records import CardRecord
from renderer.core.renderer import CardRenderer

logger = logging.getLogger(__name__)

WINDOWS_FORBIDDEN = set('<>:"/\\|?*')


def slugify_card_name(name: str) -> str:
    """Return a filesystem-safe slug for the given card name."""

    if not name:
        return "card"

    slug = "".join("_" if ch in WINDOWS_FORBIDDEN else ch for ch in name)
    slug = re.sub(r"[^A-Za-z0-9._-]+", "_", slug)
    slug = re.sub(r"_+", "_", slug).strip("._- ")
    return slug.lower() or "card"


class CardExporter:
    def __init__(self, renderer: CardRenderer):
        self.renderer = renderer

    def export_cards(
        self,
        records: Sequence[CardRecord],
        export_dir: str,
        progress: Optional[Callable[[int, int, str], None]] = None,
    ) -> List[str]:
        os.makedirs(export_dir, exist_ok=True)
        used_paths: Set[str] = set()
        written: List[str] = []
        for idx, record in enumerate(records):
            out_path = self._build_unique_path(export_dir, slugify_card_name(record.name), f"{idx + 1:03d}", used_paths)
            self.renderer.render(record).save(out_path, dpi=(self.renderer.dpi, self.renderer.dpi))
            written.append(out_path)
            if progress:
                progress(idx + 1, len(records), out_path)
        logger.info("Exported %d cards to %s", len(written), export_dir)
        return written

    # ------------------------------------------------------------------
    def _build_unique_path(
        self,
        export_dir: str,
        safe_name: str,
        suffix: Optional[str],
        used_paths: Set[str],
    ) -> str:
        stem = f"{suffix}-{safe_name}" if suffix else safe_name

        candidate = stem
        counter = 1
        path = os.path.join(export_dir, f"{candidate}.png")
        while path in used_paths or os.path.exists(path):
            candidate = f"{stem}-{counter}"
            path = os.path.join(export_dir, f"{candidate}.png")
            counter += 1
        used_paths.add(path)
        return path
