"""Unit tests for chat repository database interactions."""

from __future__ import annotations

from datetime import UTC, datetime
import json

import asyncpg
import pytest

from tests.conftest import FakeDatabaseService
from vortex_chat.api.schemas.chat import ChatMessage
from vortex_chat.core.errors import ChatError
from vortex_chat.services.chat_repository import ChatRepository

CHAT_ROW = {
    "id": "c0ffee00-0000-0000-0000-000000000001",
    "user_id": "user-1",
    "title": "Weather",
    "visibility": "private",
    "created_at": datetime(2026, 3, 1, tzinfo=UTC),
}


@pytest.mark.asyncio
async def test_save_messages_is_idempotent_on_message_id(fake_database_service: FakeDatabaseService) -> None:
    repository = ChatRepository(database=fake_database_service)
    message = ChatMessage(
        id="m-1",
        chat_id=CHAT_ROW["id"],
        role="user",
        parts=[{"type": "text", "text": "hi"}],
        created_at=datetime.now(UTC),
    )

    await repository.save_messages([message])
    await repository.save_messages([])

    [(query, rows)] = fake_database_service.executemany_calls
    assert "ON CONFLICT (id) DO NOTHING" in query
    assert rows[0][:3] == ("m-1", CHAT_ROW["id"], "user")
    assert json.loads(rows[0][3]) == [{"type": "text", "text": "hi"}]


@pytest.mark.asyncio
async def test_messages_are_read_in_creation_order_and_decoded(fake_database_service: FakeDatabaseService) -> None:
    fake_database_service.fetch_result = [
        {
            "id": "m-1",
            "chat_id": CHAT_ROW["id"],
            "role": "assistant",
            "parts": '[{"type": "text", "text": "hello"}]',
            "attachments": "[]",
            "created_at": datetime(2026, 3, 1, tzinfo=UTC),
        }
    ]
    repository = ChatRepository(database=fake_database_service)

    [message] = await repository.get_messages_by_chat_id(CHAT_ROW["id"])

    assert message.parts == [{"type": "text", "text": "hello"}]
    assert "ORDER BY created_at ASC" in fake_database_service.fetch_calls[0][0]


@pytest.mark.asyncio
async def test_delete_removes_dependents_before_chat(fake_database_service: FakeDatabaseService) -> None:
    fake_database_service.fetchrow_result = CHAT_ROW
    repository = ChatRepository(database=fake_database_service)

    deleted = await repository.delete_chat_by_id(CHAT_ROW["id"])

    assert deleted is not None and deleted.title == "Weather"
    statements = [query for query, _ in fake_database_service.execute_calls]
    assert statements[0].startswith("DELETE FROM streams")
    assert statements[1].startswith("DELETE FROM messages")
    assert "DELETE FROM chats" in fake_database_service.fetchrow_calls[0][0]


@pytest.mark.asyncio
async def test_stream_ids_and_message_counts(fake_database_service: FakeDatabaseService) -> None:
    fake_database_service.fetch_result = [{"id": "s-1"}, {"id": "s-2"}]
    fake_database_service.fetchval_result = 7
    repository = ChatRepository(database=fake_database_service)

    stream_id = await repository.create_stream_id(chat_id=CHAT_ROW["id"])

    assert stream_id
    assert await repository.get_stream_ids_by_chat_id(CHAT_ROW["id"]) == ["s-1", "s-2"]
    assert await repository.get_message_count_by_user_id(user_id="user-1", difference_in_hours=24) == 7
    query, args = fake_database_service.fetchval_calls[0]
    assert "m.role = 'user'" in query
    assert args[0] == "user-1"


@pytest.mark.asyncio
async def test_missing_chat_is_none(fake_database_service: FakeDatabaseService) -> None:
    repository = ChatRepository(database=fake_database_service)

    assert await repository.get_chat_by_id(CHAT_ROW["id"]) is None


@pytest.mark.asyncio
async def test_postgres_errors_become_database_chat_errors(fake_database_service: FakeDatabaseService) -> None:
    async def failing_execute(query: str, *args):
        raise asyncpg.PostgresError("relation does not exist")

    fake_database_service.execute = failing_execute  # type: ignore[method-assign]
    repository = ChatRepository(database=fake_database_service)

    with pytest.raises(ChatError) as exc_info:
        await repository.save_chat(chat_id=CHAT_ROW["id"], user_id="user-1", title="t", visibility="private")

    assert exc_info.value.code == "bad_request:database"
    assert exc_info.value.cause == "Failed to save chat"
