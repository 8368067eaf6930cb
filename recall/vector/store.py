"""VectorStore — file-backed embedding records with linear-scan cosine search."""

from __future__ import annotations

import logging
import math
import uuid
from typing import TYPE_CHECKING, Any

import pydantic

from recall.errors import NotFoundError, ValidationError
from recall.storage import JsonFileStore, utc_now
from recall.vector.models import VectorRecord, VectorSearchResult

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence
    from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SEARCH_LIMIT = 15

# Fields callers may change through update_vector(); id and timestamps are managed here.
_UPDATABLE_FIELDS = {"embedding", "embedding_model", "source_id", "source_type", "metadata"}


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity over the common prefix of *a* and *b*.

    Returns 0.0 when either vector has zero norm.
    """
    length = min(len(a), len(b))
    dot = na = nb = 0.0
    for i in range(length):
        x, y = a[i], b[i]
        dot += x * y
        na += x * x
        nb += y * y
    if na == 0 or nb == 0:
        return 0.0
    return dot / (math.sqrt(na) * math.sqrt(nb))


def fake_embed(text: str, dims: int) -> list[float]:
    """Deterministic pseudo-embedding for offline use and tests.

    Character codes are folded into *dims* buckets and the result is
    L2-normalised. Not a semantic embedding: similar vectors only mean
    similar character distributions.
    """
    if dims <= 0:
        msg = f"dims must be positive, got {dims}"
        raise ValidationError(msg)
    vec = [0.0] * dims
    for i, ch in enumerate(text):
        vec[i % dims] += ord(ch) / 255
    norm = math.sqrt(sum(v * v for v in vec)) or 1.0
    return [v / norm for v in vec]


class VectorStore:
    """Persists ``VectorRecord`` rows in a JSON file and searches them.

    Records are independent rows: several records may point at the same
    ``(source_id, source_type)``. Search is an O(n) scan over every row.

    Args:
        path: Store file location.
    """

    def __init__(self, path: Path) -> None:
        self._file = JsonFileStore(path)

    @property
    def path(self) -> Path:
        return self._file.path

    # -- Internal helpers ------------------------------------------------------

    async def _records(self) -> list[VectorRecord]:
        """All records in storage order."""
        data = await self._file.read()
        return [self._file.parse(VectorRecord, key, doc) for key, doc in data.items()]

    def _check_dimension(self, data: dict[str, Any], record: VectorRecord) -> None:
        """Reject an embedding whose length differs from existing rows of the same model."""
        for key, doc in data.items():
            if key == record.id:
                continue
            existing = self._file.parse(VectorRecord, key, doc)
            if existing.embedding_model != record.embedding_model:
                continue
            if len(existing.embedding) != len(record.embedding):
                msg = (
                    f"Embedding length {len(record.embedding)} does not match "
                    f"{len(existing.embedding)} for model {record.embedding_model!r}"
                )
                raise ValidationError(msg)
            return

    # -- CRUD ------------------------------------------------------------------

    async def store(
        self,
        *,
        embedding: list[float],
        embedding_model: str,
        source_id: str,
        source_type: str,
        metadata: dict[str, Any] | None = None,
    ) -> VectorRecord:
        """Insert a new record with a fresh id and timestamps."""
        now = utc_now()
        record = VectorRecord(
            id=str(uuid.uuid4()),
            embedding=embedding,
            embedding_model=embedding_model,
            source_id=source_id,
            source_type=source_type,
            metadata=metadata or {},
            created_at=now,
            updated_at=now,
        )
        async with self._file.transaction() as data:
            self._check_dimension(data, record)
            data[record.id] = record.to_document()
        logger.debug("Stored vector %s for %s %s", record.id, source_type, source_id)
        return record

    async def get_vector(self, vector_id: str) -> VectorRecord | None:
        data = await self._file.read()
        doc = data.get(vector_id)
        return self._file.parse(VectorRecord, vector_id, doc) if doc else None

    async def update_vector(self, vector_id: str, **updates: Any) -> VectorRecord:
        """Apply partial updates to a record and bump ``updated_at``.

        Raises ``NotFoundError`` if *vector_id* is unknown.
        """
        unknown = set(updates) - _UPDATABLE_FIELDS
        if unknown:
            msg = f"Cannot update vector fields: {', '.join(sorted(unknown))}"
            raise ValidationError(msg)
        async with self._file.transaction() as data:
            doc = data.get(vector_id)
            if doc is None:
                msg = f"Vector not found: {vector_id}"
                raise NotFoundError(msg)
            existing = self._file.parse(VectorRecord, vector_id, doc)
            updated = existing.model_copy(update={**updates, "updated_at": utc_now()})
            try:
                updated = VectorRecord.model_validate(updated.model_dump())
            except pydantic.ValidationError as exc:
                msg = f"Invalid update for vector {vector_id}: {exc}"
                raise ValidationError(msg) from exc
            self._check_dimension(data, updated)
            data[vector_id] = updated.to_document()
        return updated

    async def delete_vector(self, vector_id: str) -> None:
        """Remove a record. Unknown ids are ignored."""
        async with self._file.transaction() as data:
            if data.pop(vector_id, None) is not None:
                logger.debug("Deleted vector %s", vector_id)

    async def count(self) -> int:
        data = await self._file.read()
        return len(data)

    # -- Queries ---------------------------------------------------------------

    async def get_vectors_by_source(self, source_id: str, source_type: str) -> list[VectorRecord]:
        return [
            r for r in await self._records()
            if r.source_id == source_id and r.source_type == source_type
        ]

    async def get_vectors_by_sources(
        self, source_ids: Iterable[str], source_type: str
    ) -> list[VectorRecord]:
        wanted = set(source_ids)
        return [
            r for r in await self._records()
            if r.source_id in wanted and r.source_type == source_type
        ]

    async def search_similar(
        self,
        query_vector: Sequence[float],
        *,
        limit: int = DEFAULT_SEARCH_LIMIT,
        min_score: float = 0.0,
        source_type: str | None = None,
    ) -> list[VectorSearchResult]:
        """Rank stored records by cosine similarity to *query_vector*.

        Scores below *min_score* are dropped and at most *limit* results are
        returned, best first. Equal scores keep storage order.
        """
        records = await self._records()
        if source_type is not None:
            records = [r for r in records if r.source_type == source_type]

        scored = [
            VectorSearchResult(record=r, score=cosine_similarity(query_vector, r.embedding))
            for r in records
        ]
        scored = [s for s in scored if s.score >= min_score]
        # list.sort is stable, so ties stay in storage order
        scored.sort(key=lambda s: s.score, reverse=True)
        return scored[: max(limit, 0)]

    @staticmethod
    def fake_embed(text: str, dims: int) -> list[float]:
        return fake_embed(text, dims)
