"""Tests for ConversationStore."""

import json

import pytest

from recall.conversations import ConversationStore, make_conversation_id
from recall.errors import StorageError, ValidationError
from recall.memory.models import ChatMessage


async def test_add_message_creates_conversation(conversation_store: ConversationStore) -> None:
    await conversation_store.add_message("conv_1", ChatMessage(role="user", content="hi"))
    await conversation_store.add_message("conv_1", ChatMessage(role="assistant", content="hello"))

    conversations = await conversation_store.get_conversations()
    assert [c.id for c in conversations] == ["conv_1"]
    assert conversations[0].created_at
    assert conversations[0].updated_at >= conversations[0].created_at

    messages = await conversation_store.get_conversation_messages("conv_1")
    assert [(m.role, m.content) for m in messages] == [("user", "hi"), ("assistant", "hello")]


async def test_file_layout(conversation_store: ConversationStore) -> None:
    await conversation_store.add_message("conv_1", ChatMessage(id="m1", role="user", content="hi"))

    data = json.loads(conversation_store._file.path.read_text())
    assert data["conv_1"]["metadata"]["id"] == "conv_1"
    assert "updatedAt" in data["conv_1"]["metadata"]
    assert data["conv_1"]["messages"][0]["content"] == "hi"


async def test_unknown_conversation_has_no_messages(conversation_store: ConversationStore) -> None:
    assert await conversation_store.get_conversation_messages("nope") == []


async def test_malformed_entries_raise_storage_error(conversation_store: ConversationStore) -> None:
    await conversation_store.add_message("conv_1", ChatMessage(role="user", content="hi"))
    path = conversation_store._file.path
    data = json.loads(path.read_text())
    data["conv_1"]["messages"].append({"content": "no role"})
    data["conv_2"] = {"messages": []}
    path.write_text(json.dumps(data))

    with pytest.raises(StorageError, match="conv_1#1"):
        await conversation_store.get_conversation_messages("conv_1")
    with pytest.raises(StorageError, match="'conv_2'"):
        await conversation_store.get_conversations()


async def test_blank_id_rejected(conversation_store: ConversationStore) -> None:
    with pytest.raises(ValidationError):
        await conversation_store.add_message("  ", ChatMessage(role="user", content="hi"))


def test_make_conversation_id_is_unique() -> None:
    a, b = make_conversation_id(), make_conversation_id()
    assert a.startswith("conv_")
    assert a != b
