"""Table-talk quotes grouped by category."""

from __future__ import annotations

import random
from typing import Optional

from sqlmodel import Field, SQLModel


class Quote(SQLModel):
    text: str
    category: str


class QuotesData(SQLModel):
    """Quote texts keyed by category name, as stored in ``quotes.json``."""

    categories: dict[str, list[str]] = Field(default_factory=dict)

    @property
    def category_names(self) -> list[str]:
        return sorted(self.categories)

    def all_quotes(self) -> list[Quote]:
        return [
            Quote(text=text, category=category)
            for category, texts in self.categories.items()
            for text in texts
        ]

    def quotes_for(self, category: str) -> list[Quote]:
        return [Quote(text=text, category=category) for text in self.categories.get(category, [])]

    def random_quote(
        self, category: str, rng: Optional[random.Random] = None
    ) -> Optional[Quote]:
        """Pick a quote from ``category``; ``None`` when it has no quotes."""
        quotes = self.quotes_for(category)
        if not quotes:
            return None
        return (rng or random).choice(quotes)
