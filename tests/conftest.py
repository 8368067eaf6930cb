"""Shared test fixtures."""

from pathlib import Path

import pytest

from recall.conversations import ConversationStore
from recall.memory.store import MemoryStore
from recall.vector.embeddings import FakeEmbeddingProvider
from recall.vector.store import VectorStore


@pytest.fixture
def vector_store(tmp_path: Path) -> VectorStore:
    return VectorStore(tmp_path / "vectors.json")


@pytest.fixture
def memory_store(tmp_path: Path) -> MemoryStore:
    return MemoryStore(tmp_path / "memories.json")


@pytest.fixture
def conversation_store(tmp_path: Path) -> ConversationStore:
    return ConversationStore(tmp_path / "conversations.json")


@pytest.fixture
def embedding_provider() -> FakeEmbeddingProvider:
    """Small deterministic embeddings keep the store files tiny."""
    return FakeEmbeddingProvider(dimension=16)
