from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator, Sequence
from datetime import UTC, datetime
import logging

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import BaseMessage

from vortex_chat.agents.factory import ChatModelFactory, TitleGenerator
from vortex_chat.agents.generation import GenerationLoopDriver, GenerationResult
from vortex_chat.agents.messages import build_assistant_message, build_user_message, to_model_messages
from vortex_chat.agents.prompts import system_prompt
from vortex_chat.agents.tools import ChatTool, LocalToolAdapter, OpenMeteoWeather, build_static_tools, merge_tools
from vortex_chat.agents.tools.mcp import CapabilityLoader, ProviderConnector, build_remote_tools
from vortex_chat.api.schemas.auth import SessionUser
from vortex_chat.api.schemas.chat import REASONING_MODEL_ID, Chat, ChatRequest, RequestHints
from vortex_chat.core.entitlements import entitlements_for
from vortex_chat.core.errors import ChatError
from vortex_chat.core.settings import Settings
from vortex_chat.services.chat_stream import ChatStreamEvent, OutputChannel, empty_stream
from vortex_chat.services.contracts import ChatRepositoryProtocol
from vortex_chat.services.resumable_stream import StreamContextProvider

logger = logging.getLogger(__name__)

GENERATION_ERROR_MESSAGE = "Oops, an error occurred!"
GENERATION_TIMEOUT_MESSAGE = "The response took too long and was stopped."
RATE_LIMIT_WINDOW_HOURS = 24


class ChatService:
    """Use-case service for chat generation, resumption and deletion."""

    def __init__(
        self,
        settings: Settings,
        repository: ChatRepositoryProtocol,
        model_factory: ChatModelFactory,
        title_generator: TitleGenerator,
        capability_loader: CapabilityLoader,
        connector: ProviderConnector,
        stream_contexts: StreamContextProvider,
        weather: OpenMeteoWeather,
    ) -> None:
        self._settings = settings
        self._repository = repository
        self._model_factory = model_factory
        self._title_generator = title_generator
        self._capability_loader = capability_loader
        self._connector = connector
        self._stream_contexts = stream_contexts
        self._static_tools = build_static_tools(weather=weather)
        self._generations: set[asyncio.Task[None]] = set()

    async def create_generation(
        self,
        *,
        principal: SessionUser,
        payload: ChatRequest,
        hints: RequestHints,
    ) -> AsyncIterator[ChatStreamEvent]:
        chat_id = str(payload.id)
        await self._enforce_rate_limit(principal)

        chat = await self._repository.get_chat_by_id(chat_id)
        if chat is None:
            title = await self._title_generator.generate(payload.message)
            await self._repository.save_chat(
                chat_id=chat_id,
                user_id=principal.user_id,
                title=title,
                visibility=payload.selected_visibility_type,
            )
            logger.info("created chat", extra={"chat_id": chat_id, "user_id": principal.user_id})
        elif chat.user_id != principal.user_id:
            raise ChatError("forbidden:chat")

        previous_messages = await self._repository.get_messages_by_chat_id(chat_id)
        user_message = build_user_message(chat_id, payload.message)
        history = to_model_messages([*previous_messages, user_message])
        await self._repository.save_messages([user_message])

        reasoning_only = payload.selected_chat_model == REASONING_MODEL_ID
        channel = OutputChannel()
        tools = await self._request_tools(
            channel,
            provider_url=str(payload.mcp_server_url) if payload.mcp_server_url else None,
            reasoning_only=reasoning_only,
        )
        model = self._model_factory.build(payload.selected_chat_model)
        prompt = system_prompt(
            regular_prompt=self._settings.regular_prompt,
            selected_chat_model=payload.selected_chat_model,
            hints=hints,
        )

        stream_id = await self._repository.create_stream_id(chat_id=chat_id)
        response_events = channel.subscribe()
        stream_context = await self._stream_contexts.get()
        if stream_context is not None:
            await stream_context.publish(stream_id, channel)

        task = asyncio.create_task(
            self._generate(
                chat_id=chat_id,
                channel=channel,
                model=model,
                history=history,
                prompt=prompt,
                tools=tools,
                reasoning_only=reasoning_only,
            )
        )
        # Generation outlives the request so a dropped client can still resume.
        self._generations.add(task)
        task.add_done_callback(self._generations.discard)
        logger.info(
            "generation started",
            extra={"chat_id": chat_id, "stream_id": stream_id, "tool_count": len(tools), "reasoning_only": reasoning_only},
        )
        return response_events

    async def _enforce_rate_limit(self, principal: SessionUser) -> None:
        message_count = await self._repository.get_message_count_by_user_id(
            user_id=principal.user_id,
            difference_in_hours=RATE_LIMIT_WINDOW_HOURS,
        )
        entitlements = entitlements_for(principal.user_type, self._settings)
        if message_count > entitlements.max_messages_per_day:
            logger.info("rate limit exceeded", extra={"user_id": principal.user_id, "message_count": message_count})
            raise ChatError("rate_limit:chat")

    async def _request_tools(
        self,
        channel: OutputChannel,
        *,
        provider_url: str | None,
        reasoning_only: bool,
    ) -> list[ChatTool]:
        if reasoning_only or not self._model_factory.supports_tools:
            return []

        static_tools = [LocalToolAdapter(tool=tool, channel=channel) for tool in self._static_tools]
        dynamic_tools: list[ChatTool] = []
        if provider_url:
            specs = await self._capability_loader.load(provider_url)
            dynamic_tools.extend(
                build_remote_tools(
                    specs,
                    channel=channel,
                    connector=self._connector,
                    client_name=self._settings.mcp_tool_client_name,
                )
            )
        return merge_tools(static_tools, dynamic_tools)

    async def _generate(
        self,
        *,
        chat_id: str,
        channel: OutputChannel,
        model: BaseChatModel,
        history: Sequence[BaseMessage],
        prompt: str,
        tools: Sequence[ChatTool],
        reasoning_only: bool,
    ) -> None:
        driver = GenerationLoopDriver(model=model, channel=channel, max_steps=self._settings.chat_max_steps)
        finish_reason = "error"
        try:
            async with asyncio.timeout(self._settings.chat_max_duration_seconds):
                result = await driver.run(
                    history=history,
                    system_prompt=prompt,
                    tools=tools,
                    reasoning_only=reasoning_only,
                )
        except TimeoutError:
            logger.warning("generation exceeded its time limit", extra={"chat_id": chat_id})
            await channel.write({"type": "error", "data": {"message": GENERATION_TIMEOUT_MESSAGE}})
        except Exception:
            logger.exception("generation failed", extra={"chat_id": chat_id})
            await channel.write({"type": "error", "data": {"message": GENERATION_ERROR_MESSAGE}})
        else:
            finish_reason = result.finish_reason
            await self._persist_assistant_message(chat_id, result)
        finally:
            await channel.write({"type": "finish", "data": {"reason": finish_reason}})
            await channel.close()

    async def _persist_assistant_message(self, chat_id: str, result: GenerationResult) -> None:
        assistant_message = build_assistant_message(chat_id, result.response_messages)
        if assistant_message is None:
            logger.error("no assistant message found in generation output", extra={"chat_id": chat_id})
            return
        try:
            await self._repository.save_messages([assistant_message])
        except Exception:
            logger.exception("failed to save assistant message", extra={"chat_id": chat_id})
            return
        logger.info(
            "assistant message saved",
            extra={"chat_id": chat_id, "message_id": assistant_message.id, "steps": result.steps},
        )

    async def resume_generation(self, *, principal: SessionUser, chat_id: str) -> AsyncIterator[ChatStreamEvent]:
        chat = await self._repository.get_chat_by_id(chat_id)
        if chat is None:
            raise ChatError("not_found:chat")
        if chat.visibility == "private" and chat.user_id != principal.user_id:
            raise ChatError("forbidden:chat")

        stream_ids = await self._repository.get_stream_ids_by_chat_id(chat_id)
        if not stream_ids:
            raise ChatError("not_found:stream")
        recent_stream_id = stream_ids[-1]

        stream_context = await self._stream_contexts.get()
        if stream_context is not None:
            live_events = await stream_context.resume_stream(recent_stream_id)
            if live_events is not None:
                logger.debug("resuming live stream", extra={"chat_id": chat_id, "stream_id": recent_stream_id})
                return live_events

        return await self._restore_recent_message(chat_id)

    async def _restore_recent_message(self, chat_id: str) -> AsyncIterator[ChatStreamEvent]:
        messages = await self._repository.get_messages_by_chat_id(chat_id)
        most_recent = messages[-1] if messages else None
        if most_recent is None or most_recent.role != "assistant":
            return empty_stream()

        age_seconds = (datetime.now(UTC) - most_recent.created_at).total_seconds()
        if age_seconds > self._settings.resume_freshness_seconds:
            logger.debug("latest assistant message is too old to restore", extra={"chat_id": chat_id, "age_seconds": age_seconds})
            return empty_stream()

        async def _append_message() -> AsyncIterator[ChatStreamEvent]:
            yield {"type": "append-message", "data": {"message": most_recent.model_dump_json()}}

        return _append_message()

    async def delete_chat(self, *, principal: SessionUser, chat_id: str) -> Chat:
        chat = await self._repository.get_chat_by_id(chat_id)
        if chat is None:
            raise ChatError("not_found:chat")
        if chat.user_id != principal.user_id:
            raise ChatError("forbidden:chat")

        deleted = await self._repository.delete_chat_by_id(chat_id)
        if deleted is None:
            raise ChatError("not_found:chat")
        logger.info("deleted chat", extra={"chat_id": chat_id, "user_id": principal.user_id})
        return deleted

    async def wait_for_generations(self) -> None:
        if self._generations:
            await asyncio.gather(*list(self._generations), return_exceptions=True)
