import json
import logging
import os
from typing import List

from renderer.core.records import CardRecord

logger = logging.getLogger(__name__)


class JSONLoader:
    """Reads a card list: ``{"cards": [{...}, ...]}`` or a bare list."""

    def __init__(self, cards_path):
        self.cards_path = cards_path
        self.data = None

    def load(self) -> List[CardRecord]:
        if not os.path.exists(self.cards_path):
            raise FileNotFoundError(f"Card list not found: {self.cards_path}")

        with open(self.cards_path, "r", encoding="utf-8") as f:
            self.data = json.load(f)

        cards = self.normalize()
        records: List[CardRecord] = []
        for index, payload in enumerate(cards):
            try:
                records.append(CardRecord.from_payload(payload))
            except (TypeError, ValueError) as exc:
                raise ValueError(f"Card {index + 1} is invalid: {exc}") from exc
        logger.info("Loaded %d cards from %s", len(records), self.cards_path)
        return records

    # ─────────────────────────────────────────────
    # Card list normalization
    # ─────────────────────────────────────────────
    def normalize(self) -> List[dict]:
        cards = self.data if isinstance(self.data, list) else (self.data or {}).get("cards")
        if not isinstance(cards, list):
            raise ValueError("Card file does not contain a 'cards' array")

        defaults = self.data.get("defaults", {}) if isinstance(self.data, dict) else {}
        normalized = []
        for card in cards:
            if not isinstance(card, dict):
                raise ValueError("Every card must be a JSON object")
            merged = dict(defaults)
            merged.update(card)
            normalized.append(merged)
        return normalized
