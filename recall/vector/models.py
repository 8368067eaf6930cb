"""Data models for the vector store."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from recall.storage import RecordModel, utc_now

MEMORY_SOURCE = "Memory"
CONVERSATION_SOURCE = "Conversation"


class VectorRecord(RecordModel):
    """An embedding of one source object (a memory or a conversation)."""

    id: str
    embedding: list[float]
    embedding_model: str
    source_id: str
    source_type: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class VectorSearchResult(BaseModel):
    """A stored record with its similarity to the query vector."""

    record: VectorRecord
    score: float
