from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
import logging
from typing import Any, Literal
import uuid

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, AIMessageChunk, BaseMessage, SystemMessage, ToolMessage

from vortex_chat.agents.messages import extract_reasoning, extract_text
from vortex_chat.agents.tools.contracts import ChatTool
from vortex_chat.services.chat_stream import OutputChannel

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 5

FinishReason = Literal["stop", "max_steps"]


@dataclass
class GenerationResult:
    finish_reason: FinishReason
    steps: int
    response_messages: list[BaseMessage] = field(default_factory=list)


def active_tools(tools: Sequence[ChatTool], *, reasoning_only: bool) -> list[ChatTool]:
    """Tools offered to the model; reasoning-only generations get none."""

    if reasoning_only:
        return []
    return list(tools)


def _to_message(aggregate: AIMessageChunk | None) -> AIMessage:
    message_id = str(uuid.uuid4())
    if aggregate is None:
        return AIMessage(content="", id=message_id)
    return AIMessage(
        content=aggregate.content,
        additional_kwargs=aggregate.additional_kwargs,
        response_metadata=aggregate.response_metadata,
        tool_calls=aggregate.tool_calls,
        invalid_tool_calls=aggregate.invalid_tool_calls,
        id=message_id,
    )


class GenerationLoopDriver:
    """Drives a bounded multi-step model/tool loop and streams its output.

    Each step streams one model turn. Text and reasoning deltas go straight to the
    output channel; requested tool calls are dispatched by name, one after another,
    and their narratives are appended to the context for the next step. The loop
    ends when a turn requests no tools or after ``max_steps`` turns.
    """

    def __init__(self, *, model: BaseChatModel, channel: OutputChannel, max_steps: int = DEFAULT_MAX_STEPS) -> None:
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self._model = model
        self._channel = channel
        self._max_steps = max_steps

    async def run(
        self,
        *,
        history: Sequence[BaseMessage],
        system_prompt: str,
        tools: Sequence[ChatTool],
        reasoning_only: bool = False,
    ) -> GenerationResult:
        offered = active_tools(tools, reasoning_only=reasoning_only)
        tools_by_name = {tool.name: tool for tool in offered}
        runnable: Any = self._model.bind_tools([tool.definition for tool in offered]) if offered else self._model

        context: list[BaseMessage] = [SystemMessage(content=system_prompt), *history]
        response_messages: list[BaseMessage] = []

        for step in range(1, self._max_steps + 1):
            logger.debug("starting generation step", extra={"step": step, "tool_count": len(offered)})
            message = await self._stream_step(runnable, context)
            context.append(message)
            response_messages.append(message)

            if not message.tool_calls and not message.invalid_tool_calls:
                return GenerationResult(finish_reason="stop", steps=step, response_messages=response_messages)

            for tool_message in await self._run_tool_calls(message, tools_by_name):
                context.append(tool_message)
                response_messages.append(tool_message)

        logger.info("generation stopped at step limit", extra={"max_steps": self._max_steps})
        return GenerationResult(finish_reason="max_steps", steps=self._max_steps, response_messages=response_messages)

    async def _stream_step(self, runnable: Any, context: list[BaseMessage]) -> AIMessage:
        aggregate: AIMessageChunk | None = None
        async for chunk in runnable.astream(context):
            if not isinstance(chunk, AIMessageChunk):
                continue
            reasoning = extract_reasoning(chunk)
            if reasoning:
                await self._channel.write({"type": "reasoning", "data": {"text": reasoning}})
            text = extract_text(chunk.content)
            if text:
                await self._channel.write({"type": "text", "data": {"text": text}})
            aggregate = chunk if aggregate is None else aggregate + chunk
        return _to_message(aggregate)

    async def _run_tool_calls(self, message: AIMessage, tools_by_name: dict[str, ChatTool]) -> list[ToolMessage]:
        results: list[ToolMessage] = []
        for tool_call in message.tool_calls:
            tool_call_id = str(tool_call.get("id") or uuid.uuid4())
            name = tool_call["name"]
            args = tool_call.get("args") or {}
            await self._channel.write(
                {"type": "tool-call", "data": {"tool_call_id": tool_call_id, "tool_name": name, "args": args}}
            )

            tool = tools_by_name.get(name)
            if tool is None:
                logger.warning("model requested unknown tool", extra={"tool_name": name})
                narrative = f"Tool {name} is not available. Available tools: {', '.join(sorted(tools_by_name)) or 'none'}."
                await self._channel.write(
                    {"type": "error", "data": {"message": f"Unknown tool {name}", "tool_call_id": tool_call_id}}
                )
            else:
                narrative = await tool.invoke(args, tool_call_id=tool_call_id)
            results.append(ToolMessage(content=narrative, tool_call_id=tool_call_id, name=name))

        for invalid_call in message.invalid_tool_calls:
            tool_call_id = str(invalid_call.get("id") or uuid.uuid4())
            name = str(invalid_call.get("name") or "unknown")
            narrative = f"Invalid arguments for tool {name}: {invalid_call.get('error') or 'arguments could not be parsed'}"
            await self._channel.write({"type": "error", "data": {"message": narrative, "tool_call_id": tool_call_id}})
            results.append(ToolMessage(content=narrative, tool_call_id=tool_call_id, name=name, status="error"))
        return results
