"""Query data model."""

from __future__ import annotations

from dataclasses import dataclass

MEMORY_QUERY = "memory"


@dataclass(frozen=True)
class Query:
    """A short search phrase, optionally scoped to a category.

    Attributes:
        text: Free-text search phrase.
        category: Category name as produced by the model (not yet validated).
        type: Which resolver handles the query; only ``"memory"`` exists today.
    """

    text: str
    category: str | None = None
    type: str = MEMORY_QUERY

    @classmethod
    def parse(cls, raw: str) -> Query:
        """Split ``"category: text"`` on the first colon.

        A string without a colon becomes an uncategorized query.
        """
        category, sep, text = raw.partition(":")
        if not sep:
            return cls(text=raw.strip())
        return cls(text=text.strip(), category=category.strip() or None)

    def __str__(self) -> str:
        return f"{self.category}: {self.text}" if self.category else self.text
