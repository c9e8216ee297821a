"""Resolve CSS font-family lists to Pillow fonts, falling back to the bundled default."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import List

from PIL import ImageFont

logger = logging.getLogger(__name__)

FALLBACK_FONTS = ("DejaVuSans.ttf", "LiberationSans-Regular.ttf", "Arial.ttf")

GENERIC_FAMILIES = {
    "sans-serif": "DejaVuSans.ttf",
    "serif": "DejaVuSerif.ttf",
    "monospace": "DejaVuSansMono.ttf",
}


def font_candidates(family: str, bold: bool = False) -> List[str]:
    """Turn a CSS-like family list into TrueType file names to try."""
    candidates: List[str] = []
    for name in (part.strip().strip("'\"") for part in (family or "").split(",")):
        if not name:
            continue
        if name.lower() in GENERIC_FAMILIES:
            candidates.append(GENERIC_FAMILIES[name.lower()])
            continue
        stem = name.replace(" ", "")
        if bold:
            candidates.append(f"{stem}-Bold.ttf")
            candidates.append(f"{stem}bd.ttf")
        candidates.append(f"{stem}.ttf")
        candidates.append(f"{name}.ttf")
    candidates.extend(FALLBACK_FONTS)
    return candidates


@lru_cache(maxsize=128)
def load_font(family: str, size: int, bold: bool = False):
    size = max(int(size), 1)
    for candidate in font_candidates(family, bold):
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    logger.debug("No TrueType font found for '%s', using Pillow default", family)
    return ImageFont.load_default(size=size)


class PillowTextMeasurer:
    """Measures rendered line widths with Pillow font metrics."""

    def __call__(self, text: str, font_size: float, font_family: str) -> float:
        if not text:
            return 0.0
        font = load_font(font_family, round(font_size))
        return float(font.getlength(text))
