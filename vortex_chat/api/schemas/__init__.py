from vortex_chat.api.schemas.auth import SessionUser
from vortex_chat.api.schemas.chat import (
    Attachment,
    Chat,
    ChatMessage,
    ChatRequest,
    RequestHints,
    TextPart,
    UserMessagePayload,
)

__all__ = [
    "Attachment",
    "Chat",
    "ChatMessage",
    "ChatRequest",
    "RequestHints",
    "TextPart",
    "SessionUser",
    "UserMessagePayload",
]
