"""Background jobs run by the job scheduler."""

from recall.jobs.indexing import ConversationIndexingJob, MemoryIndexingJob
from recall.jobs.memory_creation import MemoryCreationJob

__all__ = ["ConversationIndexingJob", "MemoryCreationJob", "MemoryIndexingJob"]
