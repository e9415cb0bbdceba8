from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
import uuid

from pydantic import AnyHttpUrl, BaseModel, Field

ChatModelId = Literal["chat-model", "chat-model-reasoning"]
REASONING_MODEL_ID = "chat-model-reasoning"
Visibility = Literal["public", "private"]
MessageRole = Literal["user", "assistant", "system", "tool"]


class TextPart(BaseModel):
    type: Literal["text"] = "text"
    text: str = Field(..., min_length=1, max_length=2000)


class Attachment(BaseModel):
    url: AnyHttpUrl = Field(..., description="Location of the uploaded file")
    name: str = Field(..., min_length=1, max_length=2000)
    content_type: Literal["image/png", "image/jpg", "image/jpeg"] = Field(..., description="MIME type of the upload")


class UserMessagePayload(BaseModel):
    id: uuid.UUID = Field(..., description="Client-generated message id; also the idempotency key")
    created_at: datetime = Field(..., description="Client-side creation time")
    role: Literal["user"] = "user"
    content: str = Field(..., min_length=1, max_length=2000)
    parts: list[TextPart] = Field(..., min_length=1)
    attachments: list[Attachment] = Field(default_factory=list)


class ChatRequest(BaseModel):
    id: uuid.UUID = Field(..., description="Chat id; a new chat is created when it does not exist yet")
    message: UserMessagePayload
    selected_chat_model: ChatModelId
    selected_visibility_type: Visibility
    mcp_server_url: AnyHttpUrl | None = Field(
        default=None,
        description="Optional MCP capability provider whose tools are offered for this request",
    )


class Chat(BaseModel):
    id: str
    user_id: str
    title: str
    visibility: Visibility
    created_at: datetime


class ChatMessage(BaseModel):
    """Persisted message; ``parts`` hold text, reasoning, step-start and tool-invocation parts."""

    id: str
    chat_id: str
    role: MessageRole
    parts: list[dict[str, Any]]
    attachments: list[dict[str, Any]] = Field(default_factory=list)
    created_at: datetime


class RequestHints(BaseModel):
    latitude: str | None = None
    longitude: str | None = None
    city: str | None = None
    country: str | None = None
