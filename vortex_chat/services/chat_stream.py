from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
import json
from typing import Any, Literal, NotRequired, TypedDict


class TextEventData(TypedDict):
    text: str


class ToolCallEventData(TypedDict):
    tool_call_id: str
    tool_name: str
    args: dict[str, Any]


class ToolResultEventData(TypedDict):
    tool_call_id: str | None
    tool_name: str
    result: str
    payload: NotRequired[Any]


class ErrorEventData(TypedDict):
    message: str
    tool_call_id: NotRequired[str | None]


class AppendMessageEventData(TypedDict):
    message: str


class FinishEventData(TypedDict):
    reason: str


ChatStreamEventType = Literal["text", "reasoning", "tool-call", "tool-result", "error", "append-message", "finish"]


class ChatStreamEvent(TypedDict):
    type: ChatStreamEventType
    data: (
        TextEventData
        | ToolCallEventData
        | ToolResultEventData
        | ErrorEventData
        | AppendMessageEventData
        | FinishEventData
    )


def encode_sse_event(event: ChatStreamEvent) -> str:
    return f"event: {event['type']}\ndata: {json.dumps(event['data'], default=str)}\n\n"


async def encode_sse_stream(events: AsyncIterator[ChatStreamEvent]) -> AsyncIterator[str]:
    async for event in events:
        yield encode_sse_event(event)


async def empty_stream() -> AsyncIterator[ChatStreamEvent]:
    return
    yield  # pragma: no cover


_CLOSED = object()


class ChannelClosedError(RuntimeError):
    """Raised when writing to an output channel that has already been closed."""


class OutputChannel:
    """Append-only event channel for one generation with any number of readers.

    Writers are the generation loop and tool adapters. Readers attach through
    :meth:`subscribe` and receive events written after the moment they attached.
    """

    def __init__(self) -> None:
        self._subscribers: list[asyncio.Queue[ChatStreamEvent | object]] = []
        self._closed = False
        self._written = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def written(self) -> int:
        return self._written

    async def write(self, event: ChatStreamEvent) -> None:
        if self._closed:
            raise ChannelClosedError("output channel is closed")
        self._written += 1
        for queue in list(self._subscribers):
            queue.put_nowait(event)

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        for queue in list(self._subscribers):
            queue.put_nowait(_CLOSED)

    def subscribe(self) -> AsyncIterator[ChatStreamEvent]:
        # Registration happens here, not on first iteration, so no event written
        # between subscribe() and the first __anext__ is lost.
        queue: asyncio.Queue[ChatStreamEvent | object] = asyncio.Queue()
        if self._closed:
            queue.put_nowait(_CLOSED)
        else:
            self._subscribers.append(queue)
        return self._drain(queue)

    async def _drain(self, queue: asyncio.Queue[ChatStreamEvent | object]) -> AsyncIterator[ChatStreamEvent]:
        try:
            while True:
                event = await queue.get()
                if event is _CLOSED:
                    return
                yield event  # type: ignore[misc]
        finally:
            if queue in self._subscribers:
                self._subscribers.remove(queue)
