"""MemoryCreationJob — derive memories from every conversation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from recall.errors import StorageError
from recall.memory.creator import (
    assistant_persona_memory_command,
    conversation_memory_command,
    user_profile_memory_command,
)
from recall.scheduler.models import BaseJob, JobResult

if TYPE_CHECKING:
    from recall.conversations import ConversationStore
    from recall.llm.client import CompletionFn
    from recall.memory.creator import MemoryCreator

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_CREATION_SCHEDULE = "*/5 * * * *"
MIN_MESSAGES = 2

COMMAND_FACTORIES = (
    conversation_memory_command,
    user_profile_memory_command,
    assistant_persona_memory_command,
)


class MemoryCreationJob(BaseJob):
    """Creates conversation, user profile and assistant persona memories.

    ``MemoryCreator`` skips (conversation, category) pairs that already have
    a memory, so repeated runs only call the model for new conversations.
    """

    name = "memory-creation"
    description = "Create memories from conversations"

    def __init__(
        self,
        conversation_store: ConversationStore,
        memory_creator: MemoryCreator,
        complete: CompletionFn,
        schedule: str = DEFAULT_MEMORY_CREATION_SCHEDULE,
    ) -> None:
        self._conversations = conversation_store
        self._creator = memory_creator
        self._complete = complete
        self.schedule = schedule

    async def execute(self) -> JobResult:
        try:
            conversations = await self._conversations.get_conversations()
        except StorageError as exc:
            logger.exception("Cannot list conversations for memory creation")
            return self.failure(str(exc))
        created = skipped = failed = 0
        for conversation in conversations:
            try:
                messages = await self._conversations.get_conversation_messages(conversation.id)
            except Exception:
                logger.exception("Failed to load conversation %s", conversation.id)
                failed += 1
                continue
            if len(messages) < MIN_MESSAGES:
                continue

            for factory in COMMAND_FACTORIES:
                command = factory(conversation.id, messages, created_by=self.name)
                try:
                    memory = await self._creator.create_memory(command, self._complete)
                except Exception:
                    logger.exception(
                        "Failed to create %s memory for conversation %s",
                        command.category,
                        conversation.id,
                    )
                    failed += 1
                    continue
                if memory is None:
                    skipped += 1
                else:
                    created += 1
                    logger.info(
                        "Created %s memory %s for conversation %s",
                        command.category,
                        memory.id,
                        conversation.id,
                    )

        data = {"created": created, "skipped": skipped, "failed": failed}
        return self.success(f"Created {created} memor{'y' if created == 1 else 'ies'}", data)
