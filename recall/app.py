"""Application wiring — builds every store, provider, service and job from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from recall.conversations import ConversationStore
from recall.jobs import ConversationIndexingJob, MemoryCreationJob, MemoryIndexingJob
from recall.llm.client import complete_chat
from recall.memory.context import MemoryAugmenter
from recall.memory.creator import MemoryCreator
from recall.memory.resolver import QueryResolver
from recall.memory.search import FALLBACK_DIMENSIONS, MemorySearchService
from recall.memory.store import MemoryStore
from recall.query import QueryExtractor
from recall.scheduler import JobScheduler
from recall.vector.embeddings import create_embedding_provider
from recall.vector.store import VectorStore

if TYPE_CHECKING:
    from recall.config import Settings
    from recall.llm.client import CompletionFn
    from recall.scheduler import BaseJob
    from recall.vector.embeddings import EmbeddingProvider

logger = logging.getLogger(__name__)


@dataclass
class App:
    """Every long-lived component, constructed once."""

    vector_store: VectorStore
    memory_store: MemoryStore
    conversation_store: ConversationStore
    embedding_provider: EmbeddingProvider | None
    complete: CompletionFn
    search: MemorySearchService
    extractor: QueryExtractor
    resolver: QueryResolver
    creator: MemoryCreator
    augmenter: MemoryAugmenter
    scheduler: JobScheduler
    jobs: list[BaseJob] = field(default_factory=list)


def build_app(settings: Settings) -> App:
    """Construct the application and register its background jobs.

    The memory creation job is only registered when completions are
    configured and ``memory_creation_enabled`` is set.
    """
    vector_store = VectorStore(settings.resolve_path("vector"))
    memory_store = MemoryStore(settings.resolve_path("memory"))
    conversation_store = ConversationStore(settings.resolve_path("conversation"))
    embedding_provider = create_embedding_provider(settings)
    complete: CompletionFn = complete_chat

    fallback_dimensions = (
        embedding_provider.dimension if embedding_provider is not None else FALLBACK_DIMENSIONS
    )
    search = MemorySearchService(
        vector_store, memory_store, embedding_provider, fallback_dimensions=fallback_dimensions
    )
    extractor = QueryExtractor(complete)
    resolver = QueryResolver(search)
    creator = MemoryCreator(memory_store)
    augmenter = MemoryAugmenter(extractor, resolver, memory_store)

    jobs: list[BaseJob] = [
        ConversationIndexingJob(
            conversation_store,
            vector_store,
            embedding_provider,
            schedule=settings.conversation_indexing_schedule,
        ),
        MemoryIndexingJob(
            memory_store,
            vector_store,
            embedding_provider,
            schedule=settings.memory_indexing_schedule,
        ),
    ]
    if settings.memory_creation_enabled and settings.completions_enabled:
        jobs.append(
            MemoryCreationJob(
                conversation_store,
                creator,
                complete,
                schedule=settings.memory_creation_schedule,
            )
        )
    elif settings.memory_creation_enabled:
        logger.warning("Memory creation disabled, set ANTHROPIC_API_KEY to enable it")

    scheduler = JobScheduler(
        timezone=settings.scheduler_timezone,
        tick_seconds=settings.scheduler_tick_seconds,
    )
    for job in jobs:
        scheduler.add_job(job)

    return App(
        vector_store=vector_store,
        memory_store=memory_store,
        conversation_store=conversation_store,
        embedding_provider=embedding_provider,
        complete=complete,
        search=search,
        extractor=extractor,
        resolver=resolver,
        creator=creator,
        augmenter=augmenter,
        scheduler=scheduler,
        jobs=jobs,
    )
