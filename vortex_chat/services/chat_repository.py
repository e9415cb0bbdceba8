from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from datetime import UTC, datetime, timedelta
import json
import logging
from typing import Any
import uuid

import asyncpg

from vortex_chat.api.schemas.chat import Chat, ChatMessage, Visibility
from vortex_chat.core.errors import ChatError
from vortex_chat.services.contracts import DatabaseServiceProtocol

logger = logging.getLogger(__name__)

CHAT_SCHEMA = """
CREATE TABLE IF NOT EXISTS chats (
  id uuid PRIMARY KEY,
  user_id text NOT NULL,
  title text NOT NULL,
  visibility text NOT NULL DEFAULT 'private',
  created_at timestamptz NOT NULL DEFAULT NOW()
);
CREATE TABLE IF NOT EXISTS messages (
  id uuid PRIMARY KEY,
  chat_id uuid NOT NULL REFERENCES chats (id),
  role text NOT NULL,
  parts jsonb NOT NULL,
  attachments jsonb NOT NULL DEFAULT '[]'::jsonb,
  created_at timestamptz NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS messages_chat_created_idx ON messages (chat_id, created_at);
CREATE TABLE IF NOT EXISTS streams (
  id uuid PRIMARY KEY,
  chat_id uuid NOT NULL REFERENCES chats (id),
  created_at timestamptz NOT NULL DEFAULT NOW()
);
CREATE INDEX IF NOT EXISTS streams_chat_created_idx ON streams (chat_id, created_at);
"""


def _json_column(value: Any) -> Any:
    # asyncpg hands jsonb back as text unless a codec is registered.
    if isinstance(value, str):
        return json.loads(value)
    return value


def _chat_from_row(row: Mapping[str, Any]) -> Chat:
    return Chat(
        id=str(row["id"]),
        user_id=str(row["user_id"]),
        title=row["title"],
        visibility=row["visibility"],
        created_at=row["created_at"],
    )


def _message_from_row(row: Mapping[str, Any]) -> ChatMessage:
    return ChatMessage(
        id=str(row["id"]),
        chat_id=str(row["chat_id"]),
        role=row["role"],
        parts=_json_column(row["parts"]),
        attachments=_json_column(row["attachments"]) or [],
        created_at=row["created_at"],
    )


@contextmanager
def _database_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except asyncpg.PostgresError as exc:
        logger.exception("chat repository operation failed", extra={"operation": operation})
        raise ChatError("bad_request:database", f"Failed to {operation}") from exc


class ChatRepository:
    """Persistence for chats, their messages and their stream ids."""

    def __init__(self, database: DatabaseServiceProtocol) -> None:
        self._database = database

    async def ensure_schema(self) -> None:
        await self._database.execute(CHAT_SCHEMA)

    async def save_chat(self, *, chat_id: str, user_id: str, title: str, visibility: Visibility) -> None:
        with _database_errors("save chat"):
            await self._database.execute(
                """
                INSERT INTO chats (id, user_id, title, visibility, created_at)
                VALUES ($1::uuid, $2, $3, $4, NOW())
                """,
                chat_id,
                user_id,
                title,
                visibility,
            )

    async def get_chat_by_id(self, chat_id: str) -> Chat | None:
        with _database_errors("get chat by id"):
            row = await self._database.fetchrow(
                """
                SELECT id::text AS id, user_id, title, visibility, created_at
                FROM chats
                WHERE id = $1::uuid
                """,
                chat_id,
            )
        return _chat_from_row(row) if row is not None else None

    async def delete_chat_by_id(self, chat_id: str) -> Chat | None:
        """Delete a chat with its streams and messages; returns the removed chat."""
        with _database_errors("delete chat by id"):
            await self._database.execute("DELETE FROM streams WHERE chat_id = $1::uuid", chat_id)
            await self._database.execute("DELETE FROM messages WHERE chat_id = $1::uuid", chat_id)
            row = await self._database.fetchrow(
                """
                DELETE FROM chats
                WHERE id = $1::uuid
                RETURNING id::text AS id, user_id, title, visibility, created_at
                """,
                chat_id,
            )
        return _chat_from_row(row) if row is not None else None

    async def save_messages(self, messages: Sequence[ChatMessage]) -> None:
        if not messages:
            return
        with _database_errors("save messages"):
            # Message ids are client supplied; replays of the same id are no-ops.
            await self._database.executemany(
                """
                INSERT INTO messages (id, chat_id, role, parts, attachments, created_at)
                VALUES ($1::uuid, $2::uuid, $3, $4::jsonb, $5::jsonb, $6)
                ON CONFLICT (id) DO NOTHING
                """,
                [
                    (
                        message.id,
                        message.chat_id,
                        message.role,
                        json.dumps(message.parts),
                        json.dumps(message.attachments),
                        message.created_at,
                    )
                    for message in messages
                ],
            )

    async def get_messages_by_chat_id(self, chat_id: str) -> list[ChatMessage]:
        with _database_errors("get messages by chat id"):
            rows = await self._database.fetch(
                """
                SELECT id::text AS id, chat_id::text AS chat_id, role, parts, attachments, created_at
                FROM messages
                WHERE chat_id = $1::uuid
                ORDER BY created_at ASC
                """,
                chat_id,
            )
        return [_message_from_row(row) for row in rows]

    async def create_stream_id(self, *, stream_id: str | None = None, chat_id: str) -> str:
        stream_id = stream_id or str(uuid.uuid4())
        with _database_errors("create stream id"):
            await self._database.execute(
                "INSERT INTO streams (id, chat_id, created_at) VALUES ($1::uuid, $2::uuid, NOW())",
                stream_id,
                chat_id,
            )
        return stream_id

    async def get_stream_ids_by_chat_id(self, chat_id: str) -> list[str]:
        with _database_errors("get stream ids by chat id"):
            rows = await self._database.fetch(
                """
                SELECT id::text AS id
                FROM streams
                WHERE chat_id = $1::uuid
                ORDER BY created_at ASC
                """,
                chat_id,
            )
        return [str(row["id"]) for row in rows]

    async def get_message_count_by_user_id(self, *, user_id: str, difference_in_hours: int) -> int:
        since = datetime.now(UTC) - timedelta(hours=difference_in_hours)
        with _database_errors("get message count by user id"):
            count = await self._database.fetchval(
                """
                SELECT COUNT(m.id)
                FROM messages m
                JOIN chats c ON c.id = m.chat_id
                WHERE c.user_id = $1
                  AND m.role = 'user'
                  AND m.created_at >= $2
                """,
                user_id,
                since,
            )
        return int(count or 0)
