"""MemorySearchService — semantic memory search with offline and lexical fallbacks.

Retrieval degrades in three tiers:

1. Provider embedding + vector search.
2. ``fake_embed`` + vector search, when no provider is configured or the
   provider call fails.
3. Lexical search over title/content, when vector search finds nothing.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from recall.errors import ExternalServiceError
from recall.vector.models import MEMORY_SOURCE
from recall.vector.store import fake_embed

if TYPE_CHECKING:
    from recall.memory.models import MemoryCategory, MemoryRecord
    from recall.memory.store import MemoryStore
    from recall.vector.embeddings import EmbeddingProvider
    from recall.vector.store import VectorStore

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 10
FALLBACK_DIMENSIONS = 1536

# Category is only a post-filter on vector hits, so category searches fetch
# this many times more candidates. Skewed corpora can still come up short.
CATEGORY_OVERFETCH = 3


class MemorySearchService:
    """Finds memories relevant to a free-text query.

    Args:
        vector_store: Store holding ``"Memory"`` embeddings.
        memory_store: Store the vector hits are resolved against.
        embedding_provider: Optional real embedding provider.
        fallback_dimensions: Vector length used for ``fake_embed``.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        memory_store: MemoryStore,
        embedding_provider: EmbeddingProvider | None = None,
        fallback_dimensions: int = FALLBACK_DIMENSIONS,
    ) -> None:
        self._vector_store = vector_store
        self._memory_store = memory_store
        self._embedding_provider = embedding_provider
        self._fallback_dimensions = fallback_dimensions

    async def search_memories(
        self,
        query: str,
        *,
        top_k: int = DEFAULT_TOP_K,
        min_score: float = 0.0,
    ) -> list[MemoryRecord]:
        """Return up to *top_k* memories, best match first."""
        embedding = await self._create_embedding(query)
        hits = await self._vector_store.search_similar(
            embedding, limit=top_k, min_score=min_score, source_type=MEMORY_SOURCE
        )

        if hits:
            memories: list[MemoryRecord] = []
            seen: set[str] = set()
            for hit in hits:
                memory_id = hit.record.source_id
                if memory_id in seen:
                    continue
                seen.add(memory_id)
                memory = await self._memory_store.get_memory(memory_id)
                if memory is None:
                    logger.debug("Vector %s points at missing memory %s", hit.record.id, memory_id)
                    continue
                memories.append(memory)
            return memories

        logger.debug("No vector hits for %r, falling back to text search", query[:80])
        return await self._memory_store.find_by_text(query, top_k)

    async def search_memories_by_category(
        self,
        category: MemoryCategory,
        query: str,
        *,
        top_k: int = DEFAULT_TOP_K,
        min_score: float = 0.0,
    ) -> list[MemoryRecord]:
        """Like ``search_memories`` but only returns memories of *category*."""
        candidates = await self.search_memories(
            query, top_k=top_k * CATEGORY_OVERFETCH, min_score=min_score
        )
        return [m for m in candidates if m.category == category][:top_k]

    async def _create_embedding(self, text: str) -> list[float]:
        if self._embedding_provider is not None:
            try:
                return await self._embedding_provider.create_embedding(text)
            except ExternalServiceError:
                logger.warning("Embedding failed, falling back to fake embedding", exc_info=True)
        return fake_embed(text, self._fallback_dimensions)
