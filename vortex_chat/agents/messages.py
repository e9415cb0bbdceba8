"""Conversion between persisted chat messages and langchain message objects."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
import logging
from typing import Any

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage, ToolMessage

from vortex_chat.api.schemas.chat import ChatMessage, UserMessagePayload

logger = logging.getLogger(__name__)


def extract_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return ""

    parsed: list[str] = []
    for item in content:
        if isinstance(item, str):
            parsed.append(item)
            continue
        item_type = item.get("type") if isinstance(item, dict) else getattr(item, "type", None)
        if item_type != "text":
            continue
        text = item.get("text", "") if isinstance(item, dict) else getattr(item, "text", "")
        if text:
            parsed.append(text)
    return "".join(parsed)


def extract_reasoning(message: BaseMessage) -> str:
    reasoning = message.additional_kwargs.get("reasoning_content")
    if isinstance(reasoning, str) and reasoning:
        return reasoning
    if not isinstance(message.content, list):
        return ""

    parsed: list[str] = []
    for item in message.content:
        if not isinstance(item, dict):
            continue
        if item.get("type") == "thinking" and item.get("thinking"):
            parsed.append(str(item["thinking"]))
        elif item.get("type") == "reasoning":
            summary = item.get("summary")
            if isinstance(summary, list):
                parsed.extend(str(entry.get("text", "")) for entry in summary if isinstance(entry, dict))
            elif item.get("reasoning"):
                parsed.append(str(item["reasoning"]))
    return "".join(parsed)


def build_user_message(chat_id: str, payload: UserMessagePayload) -> ChatMessage:
    return ChatMessage(
        id=str(payload.id),
        chat_id=chat_id,
        role="user",
        parts=[part.model_dump() for part in payload.parts],
        attachments=[attachment.model_dump(mode="json") for attachment in payload.attachments],
        created_at=datetime.now(UTC),
    )


def _user_content(message: ChatMessage) -> str | list[dict[str, Any]]:
    text = "\n".join(str(part.get("text", "")) for part in message.parts if part.get("type") == "text")
    images = [attachment for attachment in message.attachments if str(attachment.get("content_type", "")).startswith("image/")]
    if not images:
        return text
    blocks: list[dict[str, Any]] = [{"type": "text", "text": text}] if text else []
    blocks.extend({"type": "image_url", "image_url": {"url": str(attachment["url"])}} for attachment in images)
    return blocks


def _assistant_messages(message: ChatMessage) -> list[BaseMessage]:
    converted: list[BaseMessage] = []
    texts: list[str] = []
    invocations: list[dict[str, Any]] = []

    def flush() -> None:
        completed = [invocation for invocation in invocations if invocation.get("state") == "result"]
        if not texts and not completed:
            return
        converted.append(
            AIMessage(
                content="".join(texts),
                tool_calls=[
                    {
                        "name": invocation["tool_name"],
                        "args": invocation.get("args") or {},
                        "id": invocation["tool_call_id"],
                        "type": "tool_call",
                    }
                    for invocation in completed
                ],
            )
        )
        converted.extend(
            ToolMessage(
                content=str(invocation.get("result", "")),
                tool_call_id=invocation["tool_call_id"],
                name=invocation["tool_name"],
            )
            for invocation in completed
        )
        texts.clear()
        invocations.clear()

    for part in message.parts:
        part_type = part.get("type")
        if part_type == "step-start":
            flush()
        elif part_type == "text":
            texts.append(str(part.get("text", "")))
        elif part_type == "tool-invocation" and isinstance(part.get("tool_invocation"), dict):
            invocations.append(part["tool_invocation"])
    flush()
    return converted


def to_model_messages(messages: Sequence[ChatMessage]) -> list[BaseMessage]:
    """Rebuild model history from persisted messages in creation order."""

    converted: list[BaseMessage] = []
    for message in messages:
        if message.role == "user":
            converted.append(HumanMessage(content=_user_content(message), id=message.id))
        elif message.role == "assistant":
            converted.extend(_assistant_messages(message))
        elif message.role == "system":
            converted.append(SystemMessage(content=extract_text(message.parts)))
        else:
            logger.debug("skipping message with unsupported role", extra={"role": message.role, "message_id": message.id})
    return converted


def build_assistant_message(chat_id: str, response_messages: Sequence[BaseMessage]) -> ChatMessage | None:
    """Fold one generation's step outputs into a single assistant message.

    The id is taken from the trailing assistant message. Returns ``None`` when the
    response holds no identifiable assistant message.
    """

    assistant_messages = [message for message in response_messages if isinstance(message, AIMessage)]
    if not assistant_messages or not assistant_messages[-1].id:
        return None

    parts: list[dict[str, Any]] = []
    invocations: dict[str, dict[str, Any]] = {}
    for message in response_messages:
        if isinstance(message, AIMessage):
            parts.append({"type": "step-start"})
            reasoning = extract_reasoning(message)
            if reasoning:
                parts.append({"type": "reasoning", "reasoning": reasoning})
            text = extract_text(message.content)
            if text:
                parts.append({"type": "text", "text": text})
            for tool_call in message.tool_calls:
                invocation = {
                    "tool_call_id": tool_call["id"],
                    "tool_name": tool_call["name"],
                    "args": tool_call["args"],
                    "state": "call",
                }
                invocations[str(tool_call["id"])] = invocation
                parts.append({"type": "tool-invocation", "tool_invocation": invocation})
        elif isinstance(message, ToolMessage):
            invocation = invocations.get(message.tool_call_id)
            if invocation is None:
                continue
            invocation["state"] = "result"
            invocation["result"] = extract_text(message.content)

    return ChatMessage(
        id=str(assistant_messages[-1].id),
        chat_id=chat_id,
        role="assistant",
        parts=parts,
        attachments=[],
        created_at=datetime.now(UTC),
    )
