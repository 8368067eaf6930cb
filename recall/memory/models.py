"""Data models for memories and conversations."""

from datetime import datetime
from enum import StrEnum
from typing import Any, Literal

from pydantic import Field

from recall.storage import RecordModel, utc_now


class MemoryCategory(StrEnum):
    ASSISTANT_PERSONA = "assistant_persona"
    USER_PROFILE = "user_profile"
    CONVERSATION = "conversation"
    TASK = "task"
    PREFERENCE = "preference"
    CONTEXT = "context"
    KNOWLEDGE = "knowledge"
    RELATIONSHIP = "relationship"
    GOAL = "goal"
    OTHER = "other"


# Shown to the query-extraction model so it knows what each category holds.
CATEGORY_DESCRIPTIONS: dict[MemoryCategory, str] = {
    MemoryCategory.ASSISTANT_PERSONA: (
        "Personal information, characteristics, preferences, and biographical "
        "details about the assistant"
    ),
    MemoryCategory.USER_PROFILE: (
        "Personal information, characteristics, preferences, and biographical "
        "details about the user"
    ),
    MemoryCategory.CONVERSATION: (
        "Past discussions, dialogue history, and conversational context between "
        "user and assistant"
    ),
    MemoryCategory.TASK: (
        "Work items, projects, assignments, and task-related information including "
        "progress and outcomes"
    ),
    MemoryCategory.PREFERENCE: (
        "User choices, settings, likes/dislikes, and behavioral preferences across "
        "different contexts"
    ),
    MemoryCategory.CONTEXT: (
        "Environmental information, situational details, and contextual background "
        "for interactions"
    ),
    MemoryCategory.KNOWLEDGE: (
        "Facts, learned information, domain expertise, and educational content "
        "shared or discussed"
    ),
    MemoryCategory.RELATIONSHIP: (
        "Connections between people, entities, or concepts; interpersonal dynamics "
        "and associations"
    ),
    MemoryCategory.GOAL: "Objectives, targets, aspirations, and desired outcomes expressed by the user",
    MemoryCategory.OTHER: "Miscellaneous information that doesn't fit into other specific categories",
}


def parse_category(value: str) -> MemoryCategory:
    """Case-insensitive lookup. Unknown names map to ``OTHER``."""
    try:
        return MemoryCategory(value.strip().lower())
    except ValueError:
        return MemoryCategory.OTHER


SourceType = Literal["chat", "document", "url", "file", "api", "user_input", "other"]


class SourceReference(RecordModel):
    """Where a memory came from."""

    type: SourceType
    reference: str  # chat/conversation id, URL, file path, ...
    title: str | None = None
    excerpt: str | None = None
    timestamp: datetime | None = None
    confidence: float | None = Field(default=None, ge=0, le=1)


class MemoryRecord(RecordModel):
    """A titled natural-language summary persisted in the memory store."""

    id: str
    title: str
    content: str
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
    tags: set[str] = Field(default_factory=set)
    importance: int = Field(default=3, ge=1, le=5)
    category: MemoryCategory = MemoryCategory.OTHER
    sources: list[SourceReference] = Field(default_factory=list)
    embedding: list[float] | None = None
    embedding_model: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)

    def has_source(self, source_type: str, reference: str) -> bool:
        return any(s.type == source_type and s.reference == reference for s in self.sources)


class ChatMessage(RecordModel):
    """A single conversation message."""

    id: str = ""
    role: Literal["user", "assistant"]
    content: str
    timestamp: str = ""

    def to_llm_message(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class Conversation(RecordModel):
    """Conversation metadata (messages are stored alongside it)."""

    id: str
    created_at: str = ""
    updated_at: str = ""
    name: str | None = None
