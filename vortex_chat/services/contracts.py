from __future__ import annotations

from collections.abc import AsyncIterator, Sequence
from typing import Any, Protocol

import asyncpg

from vortex_chat.api.schemas.auth import SessionUser
from vortex_chat.api.schemas.chat import Chat, ChatMessage, ChatRequest, RequestHints, Visibility
from vortex_chat.services.chat_stream import ChatStreamEvent


class DatabaseServiceProtocol(Protocol):
    """Abstraction for async SQL execution against the chat Postgres store."""

    async def connect(self) -> None:
        """Initialize underlying DB resources before request handling begins."""

    async def disconnect(self) -> None:
        """Release open DB resources during application shutdown."""

    async def fetchrow(self, query: str, *args: object) -> asyncpg.Record | None:
        """Execute a query and return a single row, or ``None`` when no row matches."""

    async def fetch(self, query: str, *args: object) -> Sequence[asyncpg.Record]:
        """Execute a query and return all matching rows."""

    async def fetchval(self, query: str, *args: object) -> Any:
        """Execute a query and return the first column of the first row."""

    async def execute(self, query: str, *args: object) -> str:
        """Execute a write statement and return the backend status string."""

    async def executemany(self, query: str, args: Sequence[Sequence[object]]) -> None:
        """Execute one write statement for each argument tuple inside a transaction."""


class ChatRepositoryProtocol(Protocol):
    """Persistence contract for chats, messages and stream handles."""

    async def save_chat(self, *, chat_id: str, user_id: str, title: str, visibility: Visibility) -> None:
        """Create a chat owned by ``user_id``."""

    async def get_chat_by_id(self, chat_id: str) -> Chat | None:
        """Load a chat, or ``None`` when it does not exist."""

    async def delete_chat_by_id(self, chat_id: str) -> Chat | None:
        """Delete a chat together with its messages and streams."""

    async def save_messages(self, messages: Sequence[ChatMessage]) -> None:
        """Persist messages; re-saving an existing message id is a no-op."""

    async def get_messages_by_chat_id(self, chat_id: str) -> list[ChatMessage]:
        """Return a chat's messages ordered by creation time."""

    async def create_stream_id(self, *, stream_id: str | None = None, chat_id: str) -> str:
        """Record a new stream handle for a chat and return its id."""

    async def get_stream_ids_by_chat_id(self, chat_id: str) -> list[str]:
        """Return a chat's stream ids in creation order."""

    async def get_message_count_by_user_id(self, *, user_id: str, difference_in_hours: int) -> int:
        """Count user-authored messages within the trailing window."""


class AuthServiceProtocol(Protocol):
    """Bearer-token validation contract."""

    def principal_from_bearer(self, bearer_token: str | None) -> SessionUser | None:
        """Validate and decode bearer access token into a principal."""


class RegistryClientProtocol(Protocol):
    """Read contract for the public capability-provider registry."""

    async def list_servers(self, query: str | None = None) -> list[dict[str, Any]]:
        """Return every result page for ``query``."""

    async def aclose(self) -> None:
        """Release HTTP resources during shutdown."""


class ChatServiceProtocol(Protocol):
    """High-level chat orchestration contract used by HTTP/SSE endpoints."""

    async def create_generation(
        self,
        *,
        principal: SessionUser,
        payload: ChatRequest,
        hints: RequestHints,
    ) -> AsyncIterator[ChatStreamEvent]:
        """Persist the user message, start generation, and return the live event stream."""

    async def resume_generation(self, *, principal: SessionUser, chat_id: str) -> AsyncIterator[ChatStreamEvent]:
        """Reattach to the most recent generation of a chat."""

    async def delete_chat(self, *, principal: SessionUser, chat_id: str) -> Chat:
        """Delete a chat owned by the principal and return it."""
