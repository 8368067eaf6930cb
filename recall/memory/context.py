"""Memory context for the chat orchestrator.

``MemoryContextBuilder`` collects memories into one text block;
``MemoryAugmenter`` decides which memories go into it for a user message.
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from recall.errors import ExternalServiceError, ParseError
from recall.memory.models import CATEGORY_DESCRIPTIONS, ChatMessage, MemoryCategory
from recall.storage import utc_now

if TYPE_CHECKING:
    from recall.memory.models import MemoryRecord
    from recall.memory.resolver import QueryResolver
    from recall.memory.store import MemoryStore
    from recall.query.extractor import QueryExtractor

logger = logging.getLogger(__name__)

_LATEST_LABELS = {
    MemoryCategory.CONVERSATION: "Latest conversation memory",
    MemoryCategory.USER_PROFILE: "User profile",
    MemoryCategory.ASSISTANT_PERSONA: "Assistant persona",
}


def format_memory(memory: MemoryRecord, label: str = "Memory") -> str:
    return f"{label}: {memory.title}\n\n{memory.content}"


class MemoryContextBuilder:
    """Accumulates memories and renders them in insertion order.

    The same memory is only rendered once, whichever way it was added.
    """

    def __init__(self, memory_store: MemoryStore) -> None:
        self._store = memory_store
        self._latest: list[MemoryCategory] = []
        self._memories: list[MemoryRecord] = []

    def with_latest(self, category: MemoryCategory) -> MemoryContextBuilder:
        if category not in self._latest:
            self._latest.append(category)
        return self

    def with_memory(self, memory: MemoryRecord) -> MemoryContextBuilder:
        if all(m.id != memory.id for m in self._memories):
            self._memories.append(memory)
        return self

    async def build(self) -> str:
        blocks: list[str] = []
        seen: set[str] = set()
        for category in self._latest:
            memory = await self._store.latest_by_category(category)
            if memory is None or memory.id in seen:
                continue
            seen.add(memory.id)
            blocks.append(format_memory(memory, _LATEST_LABELS.get(category, f"Latest {category}")))
        for memory in self._memories:
            if memory.id in seen:
                continue
            seen.add(memory.id)
            blocks.append(format_memory(memory))

        if not blocks:
            return ""
        return "Latest memories:\n\n" + "\n\n".join(blocks)


class MemoryAugmenter:
    """Builds the memory message prepended to a chat turn.

    Args:
        extractor: Produces queries from the latest user message.
        resolver: Resolves those queries to memories.
        memory_store: Source of the "latest" memories.
    """

    def __init__(
        self,
        extractor: QueryExtractor,
        resolver: QueryResolver,
        memory_store: MemoryStore,
    ) -> None:
        self._extractor = extractor
        self._resolver = resolver
        self._store = memory_store

    async def get_memory_messages(self, latest_user_message: str) -> list[dict[str, str]]:
        """Return ``[{"role": "assistant", "content": ...}]``, or ``[]`` if nothing is known."""
        recent = [
            ChatMessage(
                id=str(uuid.uuid4()),
                role="user",
                content=latest_user_message,
                timestamp=utc_now().isoformat(),
            )
        ]
        try:
            queries = await self._extractor.extract_queries(recent, CATEGORY_DESCRIPTIONS)
        except (ParseError, ExternalServiceError):
            logger.exception("Query extraction failed, continuing without queries")
            queries = []
        results = await self._resolver.resolve_queries(queries)

        builder = (
            MemoryContextBuilder(self._store)
            .with_latest(MemoryCategory.CONVERSATION)
            .with_latest(MemoryCategory.USER_PROFILE)
            .with_latest(MemoryCategory.ASSISTANT_PERSONA)
        )
        for result in results:
            builder.with_memory(result.memory)

        content = await builder.build()
        if not content.strip():
            return []
        return [{"role": "assistant", "content": content}]
