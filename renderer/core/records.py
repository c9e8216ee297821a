"""Resolved card data and the binding -> display text rules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

MAX_BADGES = 3
UNKNOWN = "Unknown"
DISCOGS_RELEASE_URL = "https://www.discogs.com/release/{}"

DEFAULT_LABELS: Dict[str, str] = {
    "artist": "Artist",
    "title": "Title",
    "label": "Label",
    "countryYear": "Country / Year",
    "condition": "Condition",
    "genre": "Genre",
    "price": "Price",
    "comment": "Comment",
    "custom": "Custom",
    "badges": "Badges",
    "discogsUrl": "QR code",
}


@dataclass(frozen=True)
class CardRecord:
    artist: str = ""
    title: str = ""
    label: str = ""
    country: str = ""
    year: str = ""
    condition: str = ""
    genre: str = ""
    price: int = 0
    comment: str = ""
    badges: Tuple[str, ...] = field(default_factory=tuple)
    discogs_id: str = ""

    def __post_init__(self):
        if self.price < 0:
            raise ValueError(f"Price must not be negative: {self.price}")
        if len(self.badges) > MAX_BADGES:
            raise ValueError(f"A card holds at most {MAX_BADGES} badges")
        if len(set(self.badges)) != len(self.badges):
            raise ValueError("Duplicate badges on one card")

    @property
    def name(self) -> str:
        if self.artist and self.title:
            return f"{self.artist} - {self.title}"
        return self.title or self.artist or "card"

    @classmethod
    def from_payload(cls, payload: Dict) -> "CardRecord":
        badges = payload.get("badges") or ()
        return cls(
            artist=str(payload.get("artist", "")),
            title=str(payload.get("title", "")),
            label=str(payload.get("label", "")),
            country=str(payload.get("country", "")),
            year=str(payload.get("year", "")),
            condition=str(payload.get("condition", "")),
            genre=str(payload.get("genre", "")),
            price=int(payload.get("price", 0)),
            comment=str(payload.get("comment", "")),
            badges=tuple(str(b) for b in badges),
            discogs_id=str(payload.get("discogs_id", payload.get("discogsId", ""))),
        )


SAMPLE_RECORD = CardRecord(
    artist="Miles Davis",
    title="Kind of Blue",
    label="Columbia",
    country="US",
    year="1959",
    condition="VG+",
    genre="Jazz, Cool Jazz, Modal",
    price=2800,
    comment="A landmark of modal jazz.\nOriginal six-eye pressing.",
    badges=("Recommended", "Must have"),
    discogs_id="1234567",
)


def format_price(price: int) -> str:
    return "FREE" if price == 0 else f"¥{price:,}"


def resolve(data_binding: str, record: CardRecord, custom_text: Optional[str] = None) -> str:
    """Display text for ``data_binding``; unknown bindings resolve to ''."""
    if data_binding == "artist":
        return record.artist
    if data_binding == "title":
        return record.title
    if data_binding == "label":
        return record.label or UNKNOWN
    if data_binding == "countryYear":
        return " • ".join([record.country or UNKNOWN, record.year or UNKNOWN])
    if data_binding == "condition":
        return record.condition
    if data_binding == "genre":
        return record.genre
    if data_binding == "price":
        return format_price(record.price)
    if data_binding == "comment":
        return record.comment
    if data_binding == "custom":
        return custom_text or ""
    if data_binding == "discogsUrl":
        return DISCOGS_RELEASE_URL.format(record.discogs_id) if record.discogs_id else ""
    if data_binding == "badges":
        return " ".join(record.badges)
    return ""


def default_label(data_binding: str) -> str:
    return DEFAULT_LABELS.get(data_binding, data_binding)


def label_text(data_binding: str, custom_label: Optional[str] = None) -> str:
    return custom_label or default_label(data_binding)
