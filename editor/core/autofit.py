"""Closed-form text compression so bound text never overflows its box."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from editor.core.fonts import PillowTextMeasurer

SINGLE_LINE_BINDINGS = frozenset({"artist", "title", "label", "countryYear", "condition", "genre", "price"})
LINE_HEIGHT = 1.2
MIN_SCALE = 0.5

Measurer = Callable[[str, float, str], float]

_default_measurer: Optional[PillowTextMeasurer] = None


@dataclass(frozen=True)
class AutofitResult:
    scale_x: float = 1.0
    scale_y: float = 1.0
    lines: Tuple[str, ...] = ()
    natural_width: float = 0.0
    natural_height: float = 0.0

    @property
    def is_compressed(self) -> bool:
        return self.scale_x < 1.0 or self.scale_y < 1.0


def is_single_line(data_binding: str) -> bool:
    return data_binding in SINGLE_LINE_BINDINGS


def prepare_lines(text: str, data_binding: str) -> List[str]:
    text = text or ""
    if is_single_line(data_binding):
        return [" ".join(text.replace("\r\n", "\n").split("\n"))]
    return text.replace("\r\n", "\n").split("\n")


def _measurer() -> Measurer:
    global _default_measurer
    if _default_measurer is None:
        _default_measurer = PillowTextMeasurer()
    return _default_measurer


def compute_autofit(
    text: str,
    data_binding: str,
    font_size: float,
    box_width: float,
    box_height: float,
    font_family: str = "Arial, sans-serif",
    measure: Optional[Measurer] = None,
) -> AutofitResult:
    """Return the scale transform that fits ``text`` into the box.

    All lengths are pixels. Each axis is compressed independently, never
    below 50%; past that the container clips.
    """
    measure = measure or _measurer()
    lines = prepare_lines(text, data_binding)
    natural_width = max((measure(line, font_size, font_family) for line in lines), default=0.0)
    if is_single_line(data_binding):
        natural_height = float(font_size)
    else:
        natural_height = len(lines) * font_size * LINE_HEIGHT

    scale_x = 1.0
    scale_y = 1.0
    if natural_width > box_width > 0:
        scale_x = max(MIN_SCALE, box_width / natural_width)
    if natural_height > box_height > 0:
        scale_y = max(MIN_SCALE, box_height / natural_height)

    return AutofitResult(
        scale_x=scale_x,
        scale_y=scale_y,
        lines=tuple(lines),
        natural_width=natural_width,
        natural_height=natural_height,
    )
