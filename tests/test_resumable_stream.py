from __future__ import annotations

import asyncio

import pytest

from tests.conftest import FakeRedis, collect, wait_until
from vortex_chat.core.settings import Settings
from vortex_chat.services.chat_stream import OutputChannel
from vortex_chat.services.resumable_stream import ResumableStreamContext, StreamContextProvider


@pytest.mark.asyncio
async def test_resume_of_unknown_or_finished_stream_returns_none(fake_redis: FakeRedis) -> None:
    context = ResumableStreamContext(fake_redis, key_prefix="test:streams")

    assert await context.resume_stream("missing") is None

    channel = OutputChannel()
    await context.publish("stream-1", channel)
    await channel.close()
    await context.wait_for_relays()

    assert fake_redis.values["test:streams:stream-1:state"] == "done"
    assert await context.resume_stream("stream-1") is None
    assert fake_redis.subscribers["test:streams:stream-1:events"] == []


@pytest.mark.asyncio
async def test_resumed_reader_receives_events_from_attachment_until_done(fake_redis: FakeRedis) -> None:
    context = ResumableStreamContext(fake_redis, key_prefix="test:streams")
    channel = OutputChannel()
    await context.publish("stream-1", channel)

    await channel.write({"type": "text", "data": {"text": "before"}})
    await wait_until(lambda: len(fake_redis.published) == 1)()

    resumed = await context.resume_stream("stream-1")
    assert resumed is not None
    reader = asyncio.create_task(collect(resumed))

    await channel.write({"type": "text", "data": {"text": "after"}})
    await channel.write({"type": "finish", "data": {"reason": "stop"}})
    await channel.close()

    events = await asyncio.wait_for(reader, timeout=1)
    assert events == [
        {"type": "text", "data": {"text": "after"}},
        {"type": "finish", "data": {"reason": "stop"}},
    ]


@pytest.mark.asyncio
async def test_provider_is_disabled_without_redis_url() -> None:
    created: list[str] = []
    provider = StreamContextProvider(Settings(REDIS_URL=None), redis_factory=lambda url: created.append(url))

    assert await provider.get() is None
    assert await provider.get() is None
    assert created == []


@pytest.mark.asyncio
async def test_concurrent_first_use_initializes_once(fake_redis: FakeRedis) -> None:
    created: list[str] = []

    def factory(url: str) -> FakeRedis:
        created.append(url)
        return fake_redis

    provider = StreamContextProvider(Settings(REDIS_URL="redis://cache:6379/0"), redis_factory=factory)

    contexts = await asyncio.gather(*(provider.get() for _ in range(5)))

    assert created == ["redis://cache:6379/0"]
    assert all(context is contexts[0] for context in contexts)
    assert contexts[0] is not None

    await provider.close()
    assert fake_redis.closed is True
