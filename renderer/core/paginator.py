"""Deterministic placement of cards on printed pages."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Sequence, Tuple

from editor.core.models import CARD_HEIGHT, CARD_WIDTH

A4_WIDTH = 210.0
A4_HEIGHT = 297.0
MM_PER_INCH = 25.4


@dataclass(frozen=True)
class PageLayout:
    page_width: float = A4_WIDTH
    page_height: float = A4_HEIGHT
    card_width: float = CARD_WIDTH
    card_height: float = CARD_HEIGHT
    columns: int = 2
    rows: int = 4
    margin: float = 0.0

    @property
    def capacity(self) -> int:
        return self.columns * self.rows

    @staticmethod
    def _spacing(page: float, margin: float, count: int, card: float) -> float:
        free = page - 2 * margin - count * card
        if free < -1e-9:
            raise ValueError(f"{count} cards of {card}mm do not fit in {page}mm with a {margin}mm margin")
        if count <= 1:
            return 0.0
        return max(free, 0.0) / (count - 1)

    def validate(self) -> None:
        if self.columns < 1 or self.rows < 1:
            raise ValueError("A page needs at least one row and one column")
        self._spacing(self.page_width, self.margin, self.columns, self.card_width)
        self._spacing(self.page_height, self.margin, self.rows, self.card_height)

    @property
    def spacing_x(self) -> float:
        return self._spacing(self.page_width, self.margin, self.columns, self.card_width)

    @property
    def spacing_y(self) -> float:
        return self._spacing(self.page_height, self.margin, self.rows, self.card_height)

    def cell_origin(self, row: int, col: int) -> Tuple[float, float]:
        x = self.margin + col * (self.card_width + self.spacing_x)
        y = self.margin + row * (self.card_height + self.spacing_y)
        return x, y


@dataclass(frozen=True)
class Placement:
    card: Any
    index: int
    row: int
    col: int
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class PrintPage:
    number: int
    placements: Tuple[Placement, ...]

    @property
    def cards(self) -> List[Any]:
        return [p.card for p in self.placements]

    def __len__(self) -> int:
        return len(self.placements)


def required_pages(card_count: int, per_page: int = 8) -> int:
    if per_page < 1:
        raise ValueError("per_page must be positive")
    return math.ceil(card_count / per_page)


def paginate(cards: Sequence[Any], layout: PageLayout = PageLayout()) -> List[PrintPage]:
    """Split ``cards`` into pages, filling each grid left-to-right, top-to-bottom."""
    layout.validate()

    capacity = layout.capacity
    pages: List[PrintPage] = []
    for page_index in range(required_pages(len(cards), capacity)):
        chunk = cards[page_index * capacity:(page_index + 1) * capacity]
        placements = []
        for slot, card in enumerate(chunk):
            row, col = divmod(slot, layout.columns)
            x, y = layout.cell_origin(row, col)
            placements.append(
                Placement(
                    card=card,
                    index=page_index * capacity + slot,
                    row=row,
                    col=col,
                    x=x,
                    y=y,
                    width=layout.card_width,
                    height=layout.card_height,
                )
            )
        pages.append(PrintPage(number=page_index + 1, placements=tuple(placements)))
    return pages


def mm_to_print_px(mm: float, dpi: int = 300) -> int:
    return int(math.floor(mm * dpi / MM_PER_INCH + 0.5))
