"""Tests for the indexing and memory creation jobs."""

import json
from unittest.mock import AsyncMock

from recall.conversations import ConversationStore
from recall.errors import ExternalServiceError
from recall.jobs import ConversationIndexingJob, MemoryCreationJob, MemoryIndexingJob
from recall.jobs.indexing import content_hash, memory_text
from recall.memory.creator import MemoryCreator
from recall.memory.models import ChatMessage, MemoryCategory
from recall.memory.store import MemoryStore
from recall.vector.embeddings import FakeEmbeddingProvider
from recall.vector.models import CONVERSATION_SOURCE, MEMORY_SOURCE
from recall.vector.store import VectorStore

RESPONSE = json.dumps({"title": "Summary", "memory": "They talked."})


async def _add_conversation(store: ConversationStore, conversation_id: str, count: int) -> None:
    for i in range(count):
        role = "user" if i % 2 == 0 else "assistant"
        await store.add_message(conversation_id, ChatMessage(role=role, content=f"message {i}"))


# -- ConversationIndexingJob -------------------------------------------------------


async def test_conversation_indexing_requires_provider(
    conversation_store: ConversationStore, vector_store: VectorStore
) -> None:
    job = ConversationIndexingJob(conversation_store, vector_store, None)

    assert await job.can_run() is False
    result = await job.execute()
    assert result.success is False


async def test_conversation_indexing_stores_then_updates(
    conversation_store: ConversationStore,
    vector_store: VectorStore,
    embedding_provider: FakeEmbeddingProvider,
) -> None:
    job = ConversationIndexingJob(conversation_store, vector_store, embedding_provider)
    await _add_conversation(conversation_store, "conv_1", 2)

    assert await job.can_run() is True
    first = await job.execute()
    assert first.data["stored"] == 1
    [vector] = await vector_store.get_vectors_by_source("conv_1", CONVERSATION_SOURCE)
    assert vector.metadata["messageCount"] == 2
    assert vector.embedding_model == embedding_provider.model

    unchanged = await job.execute()
    assert unchanged.data["unchanged"] == 1

    await _add_conversation(conversation_store, "conv_1", 1)
    updated = await job.execute()
    assert updated.data["updated"] == 1
    [vector_after] = await vector_store.get_vectors_by_source("conv_1", CONVERSATION_SOURCE)
    assert vector_after.id == vector.id
    assert vector_after.metadata["messageCount"] == 3


async def test_conversation_indexing_isolates_failures(
    conversation_store: ConversationStore, vector_store: VectorStore
) -> None:
    provider = FakeEmbeddingProvider(dimension=8)
    real = provider.create_embedding
    provider.create_embedding = AsyncMock(side_effect=[ExternalServiceError("down"), await real("x")])
    job = ConversationIndexingJob(conversation_store, vector_store, provider)
    await _add_conversation(conversation_store, "conv_1", 2)
    await _add_conversation(conversation_store, "conv_2", 2)

    result = await job.execute()

    assert result.success is True
    assert result.data["failed"] == 1
    assert result.data["stored"] == 1


async def test_conversation_indexing_fails_on_unreadable_store(
    conversation_store: ConversationStore,
    vector_store: VectorStore,
    embedding_provider: FakeEmbeddingProvider,
) -> None:
    conversation_store._file.path.write_text(json.dumps({"conv_1": {"messages": []}}))
    job = ConversationIndexingJob(conversation_store, vector_store, embedding_provider)

    result = await job.execute()

    assert result.success is False
    assert "conv_1" in result.error


# -- MemoryIndexingJob -------------------------------------------------------------


async def test_memory_indexing_embeds_and_links(
    memory_store: MemoryStore,
    vector_store: VectorStore,
    embedding_provider: FakeEmbeddingProvider,
) -> None:
    memory = await memory_store.create_memory(
        title="Sam", content="Lives in Austin", category=MemoryCategory.USER_PROFILE, importance=4
    )
    job = MemoryIndexingJob(memory_store, vector_store, embedding_provider)

    result = await job.execute()

    assert result.data["indexed"] == 1
    [vector] = await vector_store.get_vectors_by_source(memory.id, MEMORY_SOURCE)
    assert vector.metadata == {
        "category": "user_profile",
        "importance": 4,
        "contentHash": content_hash(memory_text(memory)),
    }
    assert vector.embedding == await embedding_provider.create_embedding("Sam\n\nLives in Austin")
    stored = await memory_store.get_memory(memory.id)
    assert stored.metadata["vectorId"] == vector.id


async def test_memory_indexing_skips_unchanged(
    memory_store: MemoryStore,
    vector_store: VectorStore,
    embedding_provider: FakeEmbeddingProvider,
) -> None:
    await memory_store.create_memory(title="t", content="c")
    job = MemoryIndexingJob(memory_store, vector_store, embedding_provider)
    await job.execute()

    second = await job.execute()

    assert second.data == {"indexed": 0, "unchanged": 1, "failed": 0}
    assert await vector_store.count() == 1


async def test_memory_indexing_reembeds_changed_content(
    memory_store: MemoryStore,
    vector_store: VectorStore,
    embedding_provider: FakeEmbeddingProvider,
) -> None:
    memory = await memory_store.create_memory(title="t", content="old")
    job = MemoryIndexingJob(memory_store, vector_store, embedding_provider)
    await job.execute()
    [before] = await vector_store.get_vectors_by_source(memory.id, MEMORY_SOURCE)

    await memory_store.update_memory(memory.id, content="new")
    result = await job.execute()

    assert result.data["indexed"] == 1
    [after] = await vector_store.get_vectors_by_source(memory.id, MEMORY_SOURCE)
    assert after.id == before.id
    assert after.embedding != before.embedding


async def test_memory_indexing_isolates_malformed_records(
    memory_store: MemoryStore,
    vector_store: VectorStore,
    embedding_provider: FakeEmbeddingProvider,
) -> None:
    memory = await memory_store.create_memory(title="Python", content="likes python")
    data = json.loads(memory_store.path.read_text())
    data["bad"] = {"id": "bad", "title": "Broken", "content": "python", "importance": 9}
    memory_store.path.write_text(json.dumps(data))
    job = MemoryIndexingJob(memory_store, vector_store, embedding_provider)

    result = await job.execute()

    assert result.success is True
    assert result.data == {"indexed": 1, "unchanged": 0, "failed": 1}
    assert await vector_store.get_vectors_by_source(memory.id, MEMORY_SOURCE)


async def test_memory_indexing_requires_provider(
    memory_store: MemoryStore, vector_store: VectorStore
) -> None:
    assert await MemoryIndexingJob(memory_store, vector_store, None).can_run() is False


# -- MemoryCreationJob -------------------------------------------------------------


async def test_memory_creation_creates_three_categories(
    conversation_store: ConversationStore, memory_store: MemoryStore
) -> None:
    await _add_conversation(conversation_store, "conv_1", 2)
    await _add_conversation(conversation_store, "conv_short", 1)
    complete = AsyncMock(return_value=RESPONSE)
    job = MemoryCreationJob(conversation_store, MemoryCreator(memory_store), complete)

    result = await job.execute()

    assert result.success is True
    assert result.data["created"] == 3
    categories = {m.category for m in await memory_store.list_memories()}
    assert categories == {
        MemoryCategory.CONVERSATION,
        MemoryCategory.USER_PROFILE,
        MemoryCategory.ASSISTANT_PERSONA,
    }
    assert all(
        m.metadata["createdBy"] == "memory-creation" for m in await memory_store.list_memories()
    )


async def test_memory_creation_is_idempotent(
    conversation_store: ConversationStore, memory_store: MemoryStore
) -> None:
    await _add_conversation(conversation_store, "conv_1", 2)
    complete = AsyncMock(return_value=RESPONSE)
    job = MemoryCreationJob(conversation_store, MemoryCreator(memory_store), complete)

    await job.execute()
    second = await job.execute()

    assert second.data == {"created": 0, "skipped": 3, "failed": 0}
    assert complete.await_count == 3


async def test_memory_creation_isolates_failures(
    conversation_store: ConversationStore, memory_store: MemoryStore
) -> None:
    await _add_conversation(conversation_store, "conv_1", 2)
    complete = AsyncMock(side_effect=["not json", RESPONSE, RESPONSE])
    job = MemoryCreationJob(conversation_store, MemoryCreator(memory_store), complete)

    result = await job.execute()

    assert result.data["failed"] == 1
    assert result.data["created"] == 2


async def test_memory_creation_fails_on_unreadable_store(
    conversation_store: ConversationStore, memory_store: MemoryStore
) -> None:
    conversation_store._file.path.write_text(json.dumps({"conv_1": {"messages": []}}))
    complete = AsyncMock(return_value=RESPONSE)
    job = MemoryCreationJob(conversation_store, MemoryCreator(memory_store), complete)

    result = await job.execute()

    assert result.success is False
    complete.assert_not_awaited()
