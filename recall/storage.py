"""Async JSON-document file store shared by the vector, memory and conversation stores.

Each store file holds a single JSON object keyed by record id.  Every
operation reads the whole file, mutates it in memory and writes it back.
Blocking file I/O runs in ``asyncio.to_thread()``; an ``asyncio.Lock``
serialises read-modify-write cycles within one process.  Two processes
writing the same file can still lose updates.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import tempfile
from contextlib import asynccontextmanager, suppress
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TypeVar

import pydantic
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from recall.errors import StorageError

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=BaseModel)


def utc_now() -> datetime:
    return datetime.now(UTC)


class RecordModel(BaseModel):
    """Base for persisted records: snake_case attributes, camelCase on disk."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_document(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible dict written to the store file."""
        return self.model_dump(mode="json", by_alias=True)


def _read_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        msg = f"Cannot read store file {path}: {exc}"
        raise StorageError(msg) from exc
    if not text.strip():
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        msg = f"Store file {path} is not valid JSON: {exc}"
        raise StorageError(msg) from exc
    if not isinstance(data, dict):
        msg = f"Store file {path} must contain a JSON object, got {type(data).__name__}"
        raise StorageError(msg)
    return data


def _write_file(path: Path, data: dict[str, Any]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    except OSError as exc:
        msg = f"Cannot write store file {path}: {exc}"
        raise StorageError(msg) from exc
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=2)
        os.replace(tmp_name, path)
    except (OSError, TypeError, ValueError) as exc:
        with suppress(OSError):
            os.unlink(tmp_name)
        msg = f"Cannot write store file {path}: {exc}"
        raise StorageError(msg) from exc


class JsonFileStore:
    """A JSON object on disk, mapping record ids to record dicts.

    Args:
        path: Location of the store file. Created (empty) on first write.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def read(self) -> dict[str, Any]:
        """Return the whole store. A missing file reads as empty.

        Raises ``StorageError`` when the file exists but is unreadable or corrupt.
        """
        try:
            return await asyncio.to_thread(_read_file, self._path)
        except StorageError:
            logger.error("Store unreadable: %s", self._path)
            raise

    def parse(self, model: type[R], record_id: str, doc: Any) -> R:
        """Validate one stored record, raising ``StorageError`` if it is malformed."""
        try:
            return model.model_validate(doc)
        except pydantic.ValidationError as exc:
            msg = f"Store file {self._path} has an invalid record {record_id!r}: {exc}"
            raise StorageError(msg) from exc

    async def write(self, data: dict[str, Any]) -> None:
        """Replace the whole store atomically."""
        await asyncio.to_thread(_write_file, self._path, data)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[dict[str, Any]]:
        """Read, yield for in-place mutation, then write back.

        Nothing is written if the body raises.
        """
        async with self._lock:
            data = await self.read()
            yield data
            await self.write(data)
