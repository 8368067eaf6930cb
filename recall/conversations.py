"""ConversationStore — file-backed conversation messages read by the background jobs."""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from recall.errors import ValidationError
from recall.memory.models import ChatMessage, Conversation
from recall.storage import JsonFileStore, utc_now

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


def make_conversation_id() -> str:
    """Generate a new conversation ID."""
    return f"conv_{uuid.uuid4().hex}"


class ConversationStore:
    """Stores ``{conversation_id: {"messages": [...], "metadata": {...}}}`` in one JSON file.

    Args:
        path: Store file location.
    """

    def __init__(self, path: Path) -> None:
        self._file = JsonFileStore(path)

    async def add_message(self, conversation_id: str, message: ChatMessage) -> None:
        """Append a message, creating the conversation on first use."""
        if not conversation_id.strip():
            msg = "conversation_id is required"
            raise ValidationError(msg)
        now = utc_now().isoformat()
        async with self._file.transaction() as data:
            entry = data.get(conversation_id)
            if entry is None:
                entry = {
                    "messages": [],
                    "metadata": Conversation(
                        id=conversation_id, created_at=now, updated_at=now
                    ).to_document(),
                }
                data[conversation_id] = entry
            entry["messages"].append(message.to_document())
            entry["metadata"]["updatedAt"] = now

    async def get_conversations(self) -> list[Conversation]:
        data = await self._file.read()
        conversations = []
        for key, entry in data.items():
            metadata = entry.get("metadata") if isinstance(entry, dict) else None
            conversations.append(self._file.parse(Conversation, key, metadata))
        return conversations

    async def get_conversation_messages(self, conversation_id: str) -> list[ChatMessage]:
        """Messages in chronological order; empty for unknown conversations."""
        data = await self._file.read()
        entry = data.get(conversation_id)
        if entry is None:
            return []
        return [
            self._file.parse(ChatMessage, f"{conversation_id}#{i}", m)
            for i, m in enumerate(entry.get("messages", []))
        ]
