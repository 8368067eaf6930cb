"""MemoryStore — file-backed persistence for memory records."""

from __future__ import annotations

import logging
import re
import uuid
from typing import TYPE_CHECKING, Any

import pydantic

from recall.errors import NotFoundError, StorageError, ValidationError
from recall.memory.models import MemoryCategory, MemoryRecord, SourceReference
from recall.storage import JsonFileStore, utc_now

if TYPE_CHECKING:
    from collections.abc import Iterable
    from pathlib import Path

logger = logging.getLogger(__name__)

_UPDATABLE_FIELDS = {
    "title",
    "content",
    "tags",
    "importance",
    "category",
    "sources",
    "embedding",
    "embedding_model",
    "metadata",
}

_SORT_KEYS = {"created_at", "updated_at", "importance"}


class MemoryStore:
    """Persists ``MemoryRecord`` objects in a JSON file keyed by id.

    Args:
        path: Store file location.
    """

    def __init__(self, path: Path) -> None:
        self._file = JsonFileStore(path)

    @property
    def path(self) -> Path:
        return self._file.path

    async def _records(self) -> list[MemoryRecord]:
        """All records in storage order."""
        data = await self._file.read()
        return [self._file.parse(MemoryRecord, key, doc) for key, doc in data.items()]

    # -- Write ---------------------------------------------------------------

    async def create_memory(
        self,
        *,
        title: str,
        content: str,
        category: MemoryCategory = MemoryCategory.OTHER,
        importance: int = 3,
        tags: Iterable[str] = (),
        sources: list[SourceReference] | None = None,
        metadata: dict[str, Any] | None = None,
        embedding: list[float] | None = None,
        embedding_model: str | None = None,
    ) -> MemoryRecord:
        """Persist a new memory with a fresh id and timestamps."""
        now = utc_now()
        record = MemoryRecord(
            id=str(uuid.uuid4()),
            title=title,
            content=content,
            created_at=now,
            updated_at=now,
            tags=set(tags),
            importance=importance,
            category=category,
            sources=sources or [],
            metadata=metadata or {},
            embedding=embedding,
            embedding_model=embedding_model,
        )
        async with self._file.transaction() as data:
            data[record.id] = record.to_document()
        logger.info("Stored memory [%s]: %s", record.category, record.title[:80])
        return record

    async def update_memory(self, memory_id: str, **updates: Any) -> MemoryRecord:
        """Apply partial updates and bump ``updated_at``.

        Raises ``NotFoundError`` if *memory_id* is unknown.
        """
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Cannot update memory fields: {', '.join(sorted(unknown))}"
            raise ValidationError(msg)
        async with self._file.transaction() as data:
            doc = data.get(memory_id)
            if doc is None:
                msg = f"Memory not found: {memory_id}"
                raise NotFoundError(msg)
            merged = self._file.parse(MemoryRecord, memory_id, doc).model_dump()
            merged.update(updates)
            merged["updated_at"] = utc_now()
            try:
                updated = MemoryRecord.model_validate(merged)
            except pydantic.ValidationError as exc:
                msg = f"Invalid update for memory {memory_id}: {exc}"
                raise ValidationError(msg) from exc
            data[memory_id] = updated.to_document()
        return updated

    # -- Read ----------------------------------------------------------------

    async def get_memory(self, memory_id: str) -> MemoryRecord | None:
        data = await self._file.read()
        doc = data.get(memory_id)
        return self._file.parse(MemoryRecord, memory_id, doc) if doc else None

    async def list_memories(
        self,
        *,
        category: MemoryCategory | None = None,
        sort_by: str = "updated_at",
        descending: bool = True,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[MemoryRecord]:
        """Return memories, optionally filtered by category, sorted and paginated."""
        if sort_by not in _SORT_KEYS:
            msg = f"Cannot sort memories by {sort_by!r}"
            raise ValidationError(msg)
        records = await self._records()
        if category is not None:
            records = [r for r in records if r.category == category]
        records.sort(key=lambda r: getattr(r, sort_by), reverse=descending)
        end = None if limit is None else offset + limit
        return records[offset:end]

    async def scan_memories(self) -> tuple[list[MemoryRecord], list[str]]:
        """Every readable memory in storage order, plus the ids of malformed records."""
        data = await self._file.read()
        records: list[MemoryRecord] = []
        invalid: list[str] = []
        for key, doc in data.items():
            try:
                records.append(self._file.parse(MemoryRecord, key, doc))
            except StorageError as exc:
                logger.warning("Skipping malformed memory %s: %s", key, exc)
                invalid.append(key)
        return records, invalid

    async def find_by_source(self, source_type: str, reference: str) -> list[MemoryRecord]:
        """Memories with a source matching both *source_type* and *reference*."""
        return [r for r in await self._records() if r.has_source(source_type, reference)]

    async def latest_by_category(self, category: MemoryCategory) -> MemoryRecord | None:
        """The most recently created memory of *category*, if any."""
        matches = await self.list_memories(category=category, sort_by="created_at", limit=1)
        return matches[0] if matches else None

    async def find_by_text(self, query: str, limit: int = 10) -> list[MemoryRecord]:
        """Lexical search over title and content.

        Counts case-insensitive occurrences of the whole query; title hits
        weigh double. Records without a hit are excluded.
        """
        needle = query.strip().lower()
        if not needle:
            return []
        pattern = re.compile(re.escape(needle))

        scored: list[tuple[float, MemoryRecord]] = []
        for record in await self._records():
            title_hits = len(pattern.findall(record.title.lower()))
            content_hits = len(pattern.findall(record.content.lower()))
            score = min(1.0, (title_hits * 2 + content_hits) / 10)
            if score > 0:
                scored.append((score, record))
        scored.sort(key=lambda item: item[0], reverse=True)
        return [record for _, record in scored[:limit]]

    # -- Delete --------------------------------------------------------------

    async def delete_memory(self, memory_id: str) -> bool:
        """Delete a memory by id. Returns True if it existed."""
        async with self._file.transaction() as data:
            removed = data.pop(memory_id, None) is not None
        if removed:
            logger.info("Deleted memory: %s", memory_id)
        return removed
