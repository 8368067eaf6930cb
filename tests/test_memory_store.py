"""Tests for MemoryStore — file-backed memory records."""

import json

import pytest

from recall.errors import NotFoundError, StorageError, ValidationError
from recall.memory.models import MemoryCategory, SourceReference, parse_category
from recall.memory.store import MemoryStore

# -- create / get ----------------------------------------------------------------


async def test_create_and_get(memory_store: MemoryStore) -> None:
    created = await memory_store.create_memory(
        title="Likes coffee",
        content="The user drinks espresso every morning.",
        category=MemoryCategory.PREFERENCE,
        tags=["coffee"],
    )

    fetched = await memory_store.get_memory(created.id)
    assert fetched is not None
    assert fetched.title == "Likes coffee"
    assert fetched.category == MemoryCategory.PREFERENCE
    assert fetched.tags == {"coffee"}
    assert fetched.importance == 3


async def test_get_unknown_returns_none(memory_store: MemoryStore) -> None:
    assert await memory_store.get_memory("missing") is None


async def test_persisted_document_is_camel_case(memory_store: MemoryStore) -> None:
    created = await memory_store.create_memory(
        title="t",
        content="c",
        sources=[SourceReference(type="chat", reference="conv_1")],
        embedding_model="m",
    )

    doc = json.loads(memory_store.path.read_text())[created.id]
    assert doc["embeddingModel"] == "m"
    assert "createdAt" in doc
    assert doc["sources"][0]["reference"] == "conv_1"


async def test_importance_is_bounded(memory_store: MemoryStore) -> None:
    with pytest.raises(ValueError):
        await memory_store.create_memory(title="t", content="c", importance=9)


# -- update / delete ---------------------------------------------------------------


async def test_update_memory(memory_store: MemoryStore) -> None:
    created = await memory_store.create_memory(title="old", content="c")

    updated = await memory_store.update_memory(created.id, title="new", metadata={"k": 1})

    assert updated.title == "new"
    assert updated.metadata == {"k": 1}
    assert updated.updated_at >= created.updated_at
    assert (await memory_store.get_memory(created.id)).title == "new"


async def test_update_unknown_raises(memory_store: MemoryStore) -> None:
    with pytest.raises(NotFoundError):
        await memory_store.update_memory("missing", title="x")


async def test_update_rejects_unknown_fields(memory_store: MemoryStore) -> None:
    created = await memory_store.create_memory(title="t", content="c")
    with pytest.raises(ValidationError):
        await memory_store.update_memory(created.id, created_at="yesterday")


async def test_update_rejects_invalid_values(memory_store: MemoryStore) -> None:
    created = await memory_store.create_memory(title="t", content="c")
    with pytest.raises(ValidationError):
        await memory_store.update_memory(created.id, importance=9)
    assert (await memory_store.get_memory(created.id)).importance == 3


async def test_delete_memory(memory_store: MemoryStore) -> None:
    created = await memory_store.create_memory(title="t", content="c")

    assert await memory_store.delete_memory(created.id) is True
    assert await memory_store.delete_memory(created.id) is False
    assert await memory_store.get_memory(created.id) is None


# -- queries -----------------------------------------------------------------------


async def test_list_memories_filters_and_sorts(memory_store: MemoryStore) -> None:
    a = await memory_store.create_memory(title="a", content="c", category=MemoryCategory.TASK)
    await memory_store.create_memory(title="b", content="c", category=MemoryCategory.GOAL)
    c = await memory_store.create_memory(title="c", content="c", category=MemoryCategory.TASK)

    tasks = await memory_store.list_memories(category=MemoryCategory.TASK, sort_by="created_at")

    assert [m.id for m in tasks] == [c.id, a.id]


async def test_list_memories_paginates(memory_store: MemoryStore) -> None:
    for i in range(5):
        await memory_store.create_memory(title=f"m{i}", content="c")

    page = await memory_store.list_memories(sort_by="created_at", descending=False, offset=1, limit=2)

    assert [m.title for m in page] == ["m1", "m2"]


async def test_list_memories_rejects_bad_sort(memory_store: MemoryStore) -> None:
    with pytest.raises(ValidationError):
        await memory_store.list_memories(sort_by="title")


async def test_find_by_source(memory_store: MemoryStore) -> None:
    source = SourceReference(type="chat", reference="conv_1")
    hit = await memory_store.create_memory(title="t", content="c", sources=[source])
    await memory_store.create_memory(
        title="t", content="c", sources=[SourceReference(type="url", reference="conv_1")]
    )

    found = await memory_store.find_by_source("chat", "conv_1")

    assert [m.id for m in found] == [hit.id]


async def test_latest_by_category(memory_store: MemoryStore) -> None:
    await memory_store.create_memory(title="old", content="c", category=MemoryCategory.USER_PROFILE)
    newest = await memory_store.create_memory(
        title="new", content="c", category=MemoryCategory.USER_PROFILE
    )

    latest = await memory_store.latest_by_category(MemoryCategory.USER_PROFILE)

    assert latest.id == newest.id
    assert await memory_store.latest_by_category(MemoryCategory.GOAL) is None


async def test_find_by_text_weights_title(memory_store: MemoryStore) -> None:
    body = await memory_store.create_memory(title="Notes", content="python and more python")
    title = await memory_store.create_memory(title="Python tips", content="python")
    await memory_store.create_memory(title="Cooking", content="pasta")

    results = await memory_store.find_by_text("PYTHON")

    assert [m.id for m in results] == [title.id, body.id]


async def test_find_by_text_blank_query(memory_store: MemoryStore) -> None:
    await memory_store.create_memory(title="t", content="c")
    assert await memory_store.find_by_text("   ") == []


# -- parse_category ----------------------------------------------------------------


def test_parse_category_is_case_insensitive() -> None:
    assert parse_category("User_Profile") == MemoryCategory.USER_PROFILE
    assert parse_category(" task ") == MemoryCategory.TASK


def test_parse_category_unknown_maps_to_other() -> None:
    assert parse_category("weather") == MemoryCategory.OTHER


# -- malformed records -------------------------------------------------------------


def _add_malformed(memory_store: MemoryStore) -> None:
    data = json.loads(memory_store.path.read_text())
    data["bad"] = {"id": "bad", "title": "Broken", "content": "python", "importance": 9}
    memory_store.path.write_text(json.dumps(data))


async def test_malformed_record_raises_storage_error(memory_store: MemoryStore) -> None:
    good = await memory_store.create_memory(title="Python", content="likes python")
    _add_malformed(memory_store)

    with pytest.raises(StorageError, match="'bad'"):
        await memory_store.list_memories()
    with pytest.raises(StorageError):
        await memory_store.find_by_text("python")
    with pytest.raises(StorageError):
        await memory_store.get_memory("bad")
    assert (await memory_store.get_memory(good.id)).title == "Python"


async def test_scan_memories_skips_malformed(memory_store: MemoryStore) -> None:
    good = await memory_store.create_memory(title="Python", content="likes python")
    _add_malformed(memory_store)

    records, invalid = await memory_store.scan_memories()

    assert [r.id for r in records] == [good.id]
    assert invalid == ["bad"]
