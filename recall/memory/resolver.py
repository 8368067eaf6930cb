"""QueryResolver — maps extracted queries to their best-matching memories."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from recall.memory.models import parse_category
from recall.query.models import MEMORY_QUERY

if TYPE_CHECKING:
    from collections.abc import Iterable

    from recall.memory.models import MemoryRecord
    from recall.memory.search import MemorySearchService
    from recall.query.models import Query

logger = logging.getLogger(__name__)

RESOLVE_TOP_K = 1
RESOLVE_MIN_SCORE = 0.3


@dataclass(frozen=True)
class QueryResult:
    query: Query
    memory: MemoryRecord


class QueryResolver:
    """Resolves memory queries to at most one memory each.

    Args:
        search_service: Search backend used for every query.
    """

    def __init__(self, search_service: MemorySearchService) -> None:
        self._search = search_service

    async def resolve_queries(self, queries: Iterable[Query]) -> list[QueryResult]:
        """Resolve every memory query, skipping ones that fail or match nothing.

        Results keep query order and never repeat a memory id.
        """
        results: list[QueryResult] = []
        seen: set[str] = set()
        for query in queries:
            if query.type != MEMORY_QUERY:
                continue
            try:
                memory = await self._resolve_single(query)
            except Exception:
                logger.exception("Failed to resolve query %r", str(query))
                continue
            if memory is None or memory.id in seen:
                continue
            seen.add(memory.id)
            results.append(QueryResult(query=query, memory=memory))

        logger.info("Resolved %d memor%s", len(results), "y" if len(results) == 1 else "ies")
        return results

    async def _resolve_single(self, query: Query) -> MemoryRecord | None:
        if query.category:
            memories = await self._search.search_memories_by_category(
                parse_category(query.category),
                query.text,
                top_k=RESOLVE_TOP_K,
                min_score=RESOLVE_MIN_SCORE,
            )
        else:
            memories = await self._search.search_memories(
                query.text, top_k=RESOLVE_TOP_K, min_score=RESOLVE_MIN_SCORE
            )
        return memories[0] if memories else None
