"""Redis-backed resumable streams.

A generation's :class:`OutputChannel` is relayed onto a Redis pub/sub channel
while it is live. Any process can reattach by stream id and receives events from
the moment it subscribed; nothing is replayed.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Callable
import json
import logging

from redis.asyncio import Redis

from vortex_chat.core.settings import Settings
from vortex_chat.services.chat_stream import ChatStreamEvent, OutputChannel

logger = logging.getLogger(__name__)

STATE_LIVE = "live"
STATE_DONE = "done"
_DONE_SENTINEL = json.dumps({"type": "__done__"})


class ResumableStreamContext:
    """Publishes live channels and resumes them by stream id."""

    def __init__(self, redis: Redis, key_prefix: str = "vortex:streams", ttl_seconds: int = 300) -> None:
        self._redis = redis
        self._key_prefix = key_prefix.strip(":")
        self._ttl_seconds = ttl_seconds
        self._relays: set[asyncio.Task[None]] = set()

    def _state_key(self, stream_id: str) -> str:
        return f"{self._key_prefix}:{stream_id}:state"

    def _events_channel(self, stream_id: str) -> str:
        return f"{self._key_prefix}:{stream_id}:events"

    async def publish(self, stream_id: str, channel: OutputChannel) -> None:
        """Mark ``stream_id`` live and relay ``channel`` until it closes."""

        events = channel.subscribe()
        await self._redis.set(self._state_key(stream_id), STATE_LIVE, ex=self._ttl_seconds)
        task = asyncio.create_task(self._relay(stream_id, events))
        self._relays.add(task)
        task.add_done_callback(self._relays.discard)

    async def _relay(self, stream_id: str, events: AsyncIterator[ChatStreamEvent]) -> None:
        channel_name = self._events_channel(stream_id)
        try:
            async for event in events:
                await self._redis.publish(channel_name, json.dumps(event, default=str))
        except Exception:
            logger.exception("resumable stream relay failed", extra={"stream_id": stream_id})
        finally:
            await self._redis.set(self._state_key(stream_id), STATE_DONE, ex=self._ttl_seconds)
            await self._redis.publish(channel_name, _DONE_SENTINEL)
            logger.debug("resumable stream finished", extra={"stream_id": stream_id})

    async def resume_stream(self, stream_id: str) -> AsyncIterator[ChatStreamEvent] | None:
        """Attach to a live stream, or return ``None`` when it is not live."""

        pubsub = self._redis.pubsub()
        # Subscribe before reading the state so a finish in between is not missed.
        await pubsub.subscribe(self._events_channel(stream_id))
        state = await self._redis.get(self._state_key(stream_id))
        if state != STATE_LIVE:
            await pubsub.unsubscribe()
            await pubsub.aclose()
            logger.debug("stream is not live", extra={"stream_id": stream_id, "state": state})
            return None
        return self._follow(pubsub)

    async def _follow(self, pubsub) -> AsyncIterator[ChatStreamEvent]:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                data = message["data"]
                if data == _DONE_SENTINEL:
                    return
                yield json.loads(data)
        finally:
            await pubsub.unsubscribe()
            await pubsub.aclose()

    async def wait_for_relays(self) -> None:
        if self._relays:
            await asyncio.gather(*list(self._relays), return_exceptions=True)


class StreamContextProvider:
    """Process-wide resumable stream context, created once on first use.

    Concurrent first callers share one initialization. A missing ``REDIS_URL``
    is remembered; the provider keeps answering ``None`` without retrying.
    """

    def __init__(self, settings: Settings, redis_factory: Callable[[str], Redis] | None = None) -> None:
        self._settings = settings
        self._redis_factory = redis_factory or (lambda url: Redis.from_url(url, decode_responses=True))
        self._lock = asyncio.Lock()
        self._initialized = False
        self._context: ResumableStreamContext | None = None
        self._redis: Redis | None = None

    async def get(self) -> ResumableStreamContext | None:
        if self._initialized:
            return self._context
        async with self._lock:
            if self._initialized:
                return self._context
            if not self._settings.redis_url:
                logger.info("resumable streams are disabled due to missing REDIS_URL")
            else:
                self._redis = self._redis_factory(self._settings.redis_url)
                self._context = ResumableStreamContext(
                    self._redis,
                    key_prefix=self._settings.resumable_stream_key_prefix,
                    ttl_seconds=self._settings.resumable_stream_ttl_seconds,
                )
                logger.info("resumable stream context initialized")
            self._initialized = True
            return self._context

    async def close(self) -> None:
        if self._context is not None:
            await self._context.wait_for_relays()
        if self._redis is not None:
            await self._redis.aclose()
            self._redis = None
