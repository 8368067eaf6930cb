"""MemoryCreator — idempotent memory creation from conversation transcripts.

Creation is split in two so the completion call can happen anywhere:

1. ``prepare_memory_creation`` validates the command and checks whether a
   memory for the same conversation and category already exists.
2. ``store_memory`` parses the model response and persists the memory.

``create_memory`` runs both phases around a completion call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from recall.errors import ParseError, ValidationError
from recall.llm.parsing import parse_json_object
from recall.memory.models import MemoryCategory, MemoryRecord, SourceReference
from recall.memory.prompts import (
    ASSISTANT_PERSONA_PROMPT,
    CONVERSATION_MEMORY_PROMPT,
    USER_PROFILE_PROMPT,
)
from recall.storage import utc_now

if TYPE_CHECKING:
    from collections.abc import Sequence

    from recall.llm.client import CompletionFn
    from recall.memory.models import ChatMessage
    from recall.memory.store import MemoryStore

logger = logging.getLogger(__name__)

CHAT_SOURCE = "chat"
DEFAULT_IMPORTANCE = 3


@dataclass
class CreateMemoryCommand:
    conversation_id: str
    messages: Sequence[ChatMessage]
    category: MemoryCategory
    system_prompt: str
    created_by: str = "system"


def conversation_memory_command(
    conversation_id: str, messages: Sequence[ChatMessage], created_by: str = "system"
) -> CreateMemoryCommand:
    return CreateMemoryCommand(
        conversation_id=conversation_id,
        messages=messages,
        category=MemoryCategory.CONVERSATION,
        system_prompt=CONVERSATION_MEMORY_PROMPT,
        created_by=created_by,
    )


def user_profile_memory_command(
    conversation_id: str, messages: Sequence[ChatMessage], created_by: str = "system"
) -> CreateMemoryCommand:
    return CreateMemoryCommand(
        conversation_id=conversation_id,
        messages=messages,
        category=MemoryCategory.USER_PROFILE,
        system_prompt=USER_PROFILE_PROMPT,
        created_by=created_by,
    )


def assistant_persona_memory_command(
    conversation_id: str, messages: Sequence[ChatMessage], created_by: str = "system"
) -> CreateMemoryCommand:
    return CreateMemoryCommand(
        conversation_id=conversation_id,
        messages=messages,
        category=MemoryCategory.ASSISTANT_PERSONA,
        system_prompt=ASSISTANT_PERSONA_PROMPT,
        created_by=created_by,
    )


@dataclass
class MemoryPreparation:
    """Everything needed to call the model and store its answer."""

    system_prompt: str
    messages: list[dict[str, str]]
    conversation_id: str
    category: MemoryCategory
    message_count: int
    created_by: str
    replaces: list[str] = field(default_factory=list)


def _parse_memory_response(text: str) -> tuple[str, str]:
    data = parse_json_object(text)
    title = data.get("title")
    memory = data.get("memory")
    if not isinstance(title, str) or not title.strip():
        msg = "Memory response is missing a non-empty 'title'"
        raise ParseError(msg)
    if not isinstance(memory, str) or not memory.strip():
        msg = "Memory response is missing a non-empty 'memory'"
        raise ParseError(msg)
    return title.strip(), memory.strip()


class MemoryCreator:
    """Creates at most one memory per (conversation, category).

    Args:
        memory_store: Where memories are looked up and persisted.
        overwrite: Replace an existing memory instead of skipping creation.
    """

    def __init__(self, memory_store: MemoryStore, *, overwrite: bool = False) -> None:
        self._store = memory_store
        self.overwrite = overwrite

    async def _existing(self, conversation_id: str, category: MemoryCategory) -> list[MemoryRecord]:
        memories = await self._store.find_by_source(CHAT_SOURCE, conversation_id)
        return [m for m in memories if m.category == category]

    async def prepare_memory_creation(
        self, command: CreateMemoryCommand
    ) -> MemoryPreparation | None:
        """Validate *command* and return a preparation, or None if already done.

        Raises ``ValidationError`` for a blank conversation id or no messages.
        """
        if not command.conversation_id or not command.conversation_id.strip():
            msg = "conversation_id is required"
            raise ValidationError(msg)
        if not command.messages:
            msg = "At least one message is required to create a memory"
            raise ValidationError(msg)

        existing = await self._existing(command.conversation_id, command.category)
        if existing and not self.overwrite:
            logger.debug(
                "Memory [%s] already exists for conversation %s",
                command.category,
                command.conversation_id,
            )
            return None

        return MemoryPreparation(
            system_prompt=command.system_prompt,
            messages=[m.to_llm_message() for m in command.messages],
            conversation_id=command.conversation_id,
            category=command.category,
            message_count=len(command.messages),
            created_by=command.created_by,
            replaces=[m.id for m in existing],
        )

    async def store_memory(self, preparation: MemoryPreparation, response: str) -> MemoryRecord:
        """Parse the model's ``{"title", "memory"}`` answer and persist it.

        Raises ``ParseError`` if the answer does not have that shape.
        """
        title, content = _parse_memory_response(response)

        if not self.overwrite:
            # Another caller may have stored one since preparation
            existing = await self._existing(preparation.conversation_id, preparation.category)
            if existing:
                logger.info(
                    "Memory [%s] for conversation %s appeared meanwhile, keeping it",
                    preparation.category,
                    preparation.conversation_id,
                )
                return existing[0]

        source = SourceReference(
            type=CHAT_SOURCE,
            reference=preparation.conversation_id,
            title="Conversation",
            timestamp=utc_now(),
        )
        record = await self._store.create_memory(
            title=title,
            content=content,
            category=preparation.category,
            importance=DEFAULT_IMPORTANCE,
            sources=[source],
            metadata={
                "conversationId": preparation.conversation_id,
                "messageCount": preparation.message_count,
                "createdFrom": "conversation",
                "createdBy": preparation.created_by,
            },
        )

        if self.overwrite:
            for memory_id in preparation.replaces:
                await self._store.delete_memory(memory_id)
        return record

    async def create_memory(
        self, command: CreateMemoryCommand, complete: CompletionFn
    ) -> MemoryRecord | None:
        """Prepare, call the model, store. Returns None when nothing was needed."""
        preparation = await self.prepare_memory_creation(command)
        if preparation is None:
            return None
        response = await complete(preparation.system_prompt, preparation.messages)
        return await self.store_memory(preparation, response)
