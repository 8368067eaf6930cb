"""Indexing jobs — keep conversation and memory embeddings in the vector store fresh."""

from __future__ import annotations

import hashlib
import logging
from typing import TYPE_CHECKING

from recall.errors import StorageError
from recall.scheduler.models import BaseJob, JobResult
from recall.vector.models import CONVERSATION_SOURCE, MEMORY_SOURCE

if TYPE_CHECKING:
    from recall.conversations import ConversationStore
    from recall.memory.models import ChatMessage, MemoryRecord
    from recall.memory.store import MemoryStore
    from recall.vector.embeddings import EmbeddingProvider
    from recall.vector.models import VectorRecord
    from recall.vector.store import VectorStore

logger = logging.getLogger(__name__)

DEFAULT_INDEXING_SCHEDULE = "*/15 * * * *"


def _latest(vectors: list[VectorRecord]) -> VectorRecord | None:
    # Several vectors may point at one source; the newest is authoritative.
    return max(vectors, key=lambda v: v.created_at) if vectors else None


def conversation_text(messages: list[ChatMessage]) -> str:
    return "\n".join(f"{m.role}: {m.content}" for m in messages)


def memory_text(memory: MemoryRecord) -> str:
    return f"{memory.title}\n\n{memory.content}"


def content_hash(text: str) -> str:
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


class ConversationIndexingJob(BaseJob):
    """Embeds every conversation transcript.

    A conversation is re-embedded when its message count changes.
    """

    name = "conversation-indexing"
    description = "Index conversation transcripts into the vector store"

    def __init__(
        self,
        conversation_store: ConversationStore,
        vector_store: VectorStore,
        embedding_provider: EmbeddingProvider | None,
        schedule: str = DEFAULT_INDEXING_SCHEDULE,
    ) -> None:
        self._conversations = conversation_store
        self._vectors = vector_store
        self._provider = embedding_provider
        self.schedule = schedule

    async def can_run(self) -> bool:
        return self._provider is not None

    async def execute(self) -> JobResult:
        provider = self._provider
        if provider is None:
            return self.failure("No embedding provider configured")
        try:
            conversations = await self._conversations.get_conversations()
        except StorageError as exc:
            logger.exception("Cannot list conversations for indexing")
            return self.failure(str(exc))
        stored = updated = unchanged = failed = 0
        for conversation in conversations:
            try:
                messages = await self._conversations.get_conversation_messages(conversation.id)
                if not messages:
                    continue
                outcome = await self._index(provider, conversation.id, messages)
            except Exception:
                logger.exception("Failed to index conversation %s", conversation.id)
                failed += 1
                continue
            if outcome == "stored":
                stored += 1
            elif outcome == "updated":
                updated += 1
            else:
                unchanged += 1

        data = {"stored": stored, "updated": updated, "unchanged": unchanged, "failed": failed}
        return self.success(
            f"Indexed conversations: {stored} new, {updated} updated, {failed} failed", data
        )

    async def _index(
        self, provider: EmbeddingProvider, conversation_id: str, messages: list[ChatMessage]
    ) -> str:
        vectors = await self._vectors.get_vectors_by_source(conversation_id, CONVERSATION_SOURCE)
        latest = _latest(vectors)
        if latest is not None and latest.metadata.get("messageCount") == len(messages):
            return "unchanged"

        embedding = await provider.create_embedding(conversation_text(messages))
        metadata = {"messageCount": len(messages)}
        if latest is None:
            await self._vectors.store(
                embedding=embedding,
                embedding_model=provider.model,
                source_id=conversation_id,
                source_type=CONVERSATION_SOURCE,
                metadata=metadata,
            )
            return "stored"

        await self._vectors.update_vector(
            latest.id,
            embedding=embedding,
            embedding_model=provider.model,
            metadata={**latest.metadata, **metadata},
        )
        return "updated"


class MemoryIndexingJob(BaseJob):
    """Embeds every memory and links the vector back via ``metadata["vectorId"]``.

    Change detection uses a hash of the embedded text, so bookkeeping
    updates to a memory never trigger re-embedding.
    """

    name = "memory-indexing"
    description = "Index memories into the vector store"

    def __init__(
        self,
        memory_store: MemoryStore,
        vector_store: VectorStore,
        embedding_provider: EmbeddingProvider | None,
        schedule: str = DEFAULT_INDEXING_SCHEDULE,
    ) -> None:
        self._memories = memory_store
        self._vectors = vector_store
        self._provider = embedding_provider
        self.schedule = schedule

    async def can_run(self) -> bool:
        return self._provider is not None

    async def execute(self) -> JobResult:
        provider = self._provider
        if provider is None:
            return self.failure("No embedding provider configured")
        memories, invalid = await self._memories.scan_memories()
        memories.sort(key=lambda m: m.created_at)
        indexed = unchanged = 0
        failed = len(invalid)
        for memory in memories:
            try:
                changed = await self._index(provider, memory)
            except Exception:
                logger.exception("Failed to index memory %s", memory.id)
                failed += 1
                continue
            if changed:
                indexed += 1
            else:
                unchanged += 1

        data = {"indexed": indexed, "unchanged": unchanged, "failed": failed}
        return self.success(f"Indexed memories: {indexed} embedded, {failed} failed", data)

    async def _index(self, provider: EmbeddingProvider, memory: MemoryRecord) -> bool:
        text = memory_text(memory)
        digest = content_hash(text)
        latest = _latest(await self._vectors.get_vectors_by_source(memory.id, MEMORY_SOURCE))

        changed = (
            latest is None
            or latest.metadata.get("contentHash") != digest
            or latest.embedding_model != provider.model
        )
        if changed:
            embedding = await provider.create_embedding(text)
            metadata = {
                "category": str(memory.category),
                "importance": memory.importance,
                "contentHash": digest,
            }
            if latest is None:
                latest = await self._vectors.store(
                    embedding=embedding,
                    embedding_model=provider.model,
                    source_id=memory.id,
                    source_type=MEMORY_SOURCE,
                    metadata=metadata,
                )
            else:
                latest = await self._vectors.update_vector(
                    latest.id,
                    embedding=embedding,
                    embedding_model=provider.model,
                    metadata={**latest.metadata, **metadata},
                )

        if memory.metadata.get("vectorId") != latest.id:
            await self._memories.update_memory(
                memory.id, metadata={**memory.metadata, "vectorId": latest.id}
            )
        return changed
