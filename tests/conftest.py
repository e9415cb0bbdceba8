"""Shared test utilities and fixtures for chat backend tests."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import asynccontextmanager
from datetime import UTC, datetime
import json
from types import SimpleNamespace
from typing import Any

import pytest
import punq
from langchain_core.messages import AIMessageChunk, BaseMessage

from vortex_chat.agents.tools.mcp import RemoteCallResult, RemoteOperation
from vortex_chat.api.schemas.chat import Chat, ChatMessage
from vortex_chat.core.settings import Settings


class FakeDatabaseService:
    """Records SQL traffic at the external DB boundary and answers with canned rows."""

    def __init__(self) -> None:
        self.fetchrow_calls: list[tuple[str, tuple]] = []
        self.fetch_calls: list[tuple[str, tuple]] = []
        self.fetchval_calls: list[tuple[str, tuple]] = []
        self.execute_calls: list[tuple[str, tuple]] = []
        self.executemany_calls: list[tuple[str, list]] = []
        self.fetchrow_result: dict[str, Any] | None = None
        self.fetch_result: list[dict[str, Any]] = []
        self.fetchval_result: Any = 0

    async def connect(self) -> None:
        return None

    async def disconnect(self) -> None:
        return None

    async def fetchrow(self, query: str, *args):
        self.fetchrow_calls.append((query, args))
        return self.fetchrow_result

    async def fetch(self, query: str, *args):
        self.fetch_calls.append((query, args))
        return self.fetch_result

    async def fetchval(self, query: str, *args):
        self.fetchval_calls.append((query, args))
        return self.fetchval_result

    async def execute(self, query: str, *args):
        self.execute_calls.append((query, args))
        return "INSERT 0 1"

    async def executemany(self, query: str, args):
        self.executemany_calls.append((query, list(args)))


class FakeChatRepository:
    """In-memory repository that keeps the call order observable."""

    def __init__(self, *, message_count: int = 0) -> None:
        self.chats: dict[str, Chat] = {}
        self.messages: list[ChatMessage] = []
        self.streams: list[tuple[str, str]] = []
        self.message_count = message_count
        self.events: list[str] = []

    async def save_chat(self, *, chat_id: str, user_id: str, title: str, visibility: str) -> None:
        self.events.append("save_chat")
        self.chats[chat_id] = Chat(
            id=chat_id,
            user_id=user_id,
            title=title,
            visibility=visibility,
            created_at=datetime.now(UTC),
        )

    async def get_chat_by_id(self, chat_id: str) -> Chat | None:
        return self.chats.get(chat_id)

    async def delete_chat_by_id(self, chat_id: str) -> Chat | None:
        self.events.append("delete_chat")
        self.messages = [message for message in self.messages if message.chat_id != chat_id]
        self.streams = [stream for stream in self.streams if stream[1] != chat_id]
        return self.chats.pop(chat_id, None)

    async def save_messages(self, messages: Sequence[ChatMessage]) -> None:
        known = {message.id for message in self.messages}
        for message in messages:
            self.events.append(f"save_message:{message.role}")
            if message.id not in known:
                self.messages.append(message)

    async def get_messages_by_chat_id(self, chat_id: str) -> list[ChatMessage]:
        return [message for message in self.messages if message.chat_id == chat_id]

    async def create_stream_id(self, *, stream_id: str | None = None, chat_id: str) -> str:
        stream_id = stream_id or f"stream-{len(self.streams) + 1}"
        self.streams.append((stream_id, chat_id))
        return stream_id

    async def get_stream_ids_by_chat_id(self, chat_id: str) -> list[str]:
        return [stream_id for stream_id, owner in self.streams if owner == chat_id]

    async def get_message_count_by_user_id(self, *, user_id: str, difference_in_hours: int) -> int:
        return self.message_count


class FakeProviderConnection:
    def __init__(self, provider: FakeProvider) -> None:
        self._provider = provider

    async def list_operations(self) -> list[RemoteOperation]:
        return list(self._provider.operations)

    async def call_operation(self, name: str, arguments: dict[str, Any]) -> RemoteCallResult:
        self._provider.calls.append((name, arguments))
        if self._provider.call_error is not None:
            raise self._provider.call_error
        return self._provider.results.get(name, RemoteCallResult())


class FakeProvider:
    """Capability provider double; counts every connection it hands out."""

    def __init__(
        self,
        operations: Sequence[RemoteOperation] = (),
        results: dict[str, RemoteCallResult] | None = None,
        *,
        connect_error: Exception | None = None,
        call_error: Exception | None = None,
    ) -> None:
        self.operations = list(operations)
        self.results = results or {}
        self.connect_error = connect_error
        self.call_error = call_error
        self.opened = 0
        self.closed = 0
        self.client_names: list[str] = []
        self.calls: list[tuple[str, dict[str, Any]]] = []

    @asynccontextmanager
    async def connect(self, url: str, *, client_name: str) -> AsyncIterator[FakeProviderConnection]:
        self.client_names.append(client_name)
        if self.connect_error is not None:
            raise self.connect_error
        self.opened += 1
        try:
            yield FakeProviderConnection(self)
        finally:
            self.closed += 1


class ScriptedChatModel:
    """Chat model double that replays one list of chunks per generation step."""

    def __init__(self, steps: Sequence[Sequence[AIMessageChunk]]) -> None:
        self._steps = [list(step) for step in steps]
        self.bound_tools: list[dict[str, Any]] | None = None
        self.contexts: list[list[BaseMessage]] = []

    def bind_tools(self, tools: Sequence[dict[str, Any]]) -> ScriptedChatModel:
        self.bound_tools = list(tools)
        return self

    async def astream(self, messages: Sequence[BaseMessage]) -> AsyncIterator[AIMessageChunk]:
        self.contexts.append(list(messages))
        index = len(self.contexts) - 1
        step = self._steps[index] if index < len(self._steps) else [AIMessageChunk(content="")]
        for chunk in step:
            yield chunk


def text_chunk(text: str) -> AIMessageChunk:
    return AIMessageChunk(content=text)


def tool_call_chunk(name: str, args: dict[str, Any], call_id: str) -> AIMessageChunk:
    return AIMessageChunk(
        content="",
        tool_call_chunks=[{"name": name, "args": json.dumps(args), "id": call_id, "index": 0}],
    )


class FakePubSub:
    def __init__(self, redis: FakeRedis) -> None:
        self._redis = redis
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.channels: list[str] = []
        self.closed = False

    async def subscribe(self, channel: str) -> None:
        self.channels.append(channel)
        self._redis.subscribers.setdefault(channel, []).append(self._queue)

    async def unsubscribe(self) -> None:
        for channel in self.channels:
            queues = self._redis.subscribers.get(channel, [])
            if self._queue in queues:
                queues.remove(self._queue)

    async def aclose(self) -> None:
        self.closed = True

    async def listen(self) -> AsyncIterator[dict[str, Any]]:
        while True:
            yield await self._queue.get()


class FakeRedis:
    """Minimal redis.asyncio stand-in covering string keys and pub/sub."""

    def __init__(self) -> None:
        self.values: dict[str, str] = {}
        self.subscribers: dict[str, list[asyncio.Queue[dict[str, Any]]]] = {}
        self.published: list[tuple[str, str]] = []
        self.closed = False

    async def set(self, key: str, value: str, ex: int | None = None) -> None:
        self.values[key] = value

    async def get(self, key: str) -> str | None:
        return self.values.get(key)

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        queues = list(self.subscribers.get(channel, []))
        for queue in queues:
            queue.put_nowait({"type": "message", "channel": channel, "data": message})
        return len(queues)

    def pubsub(self) -> FakePubSub:
        return FakePubSub(self)

    async def aclose(self) -> None:
        self.closed = True


class FakeStreamContextProvider:
    def __init__(self, context) -> None:
        self.context = context

    async def get(self):
        return self.context


async def collect(events: AsyncIterator[Any]) -> list[Any]:
    return [event async for event in events]


@pytest.fixture
def fake_database_service() -> FakeDatabaseService:
    return FakeDatabaseService()


@pytest.fixture
def fake_repository() -> FakeChatRepository:
    return FakeChatRepository()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def test_settings() -> Settings:
    return Settings()


def build_test_request(
    container: punq.Container,
    *,
    headers: dict[str, str] | None = None,
    query_params: dict[str, str] | None = None,
):
    """Build a request-shaped object using a real punq container in app state."""

    return SimpleNamespace(
        app=SimpleNamespace(state=SimpleNamespace(container=container)),
        headers=headers or {},
        query_params=query_params or {},
    )


def build_test_container(bindings: dict[object, object]) -> punq.Container:
    """Create a punq container and bind protocol/service keys to test doubles."""

    container = punq.Container()
    for key, value in bindings.items():
        container.register(key, instance=value)
    return container


def wait_until(predicate: Callable[[], bool]) -> Callable[[], Any]:
    async def _wait() -> None:
        for _ in range(200):
            if predicate():
                return
            await asyncio.sleep(0)
        raise AssertionError("condition not reached")

    return _wait
