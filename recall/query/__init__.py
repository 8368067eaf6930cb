"""Categorized search queries extracted from conversations."""

from recall.query.extractor import QueryExtractor
from recall.query.models import Query

__all__ = ["Query", "QueryExtractor"]
