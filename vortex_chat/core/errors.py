"""Error taxonomy surfaced to API clients.

Codes follow ``"<kind>:<surface>"`` so clients can branch on the kind while the
surface keeps the user-facing message specific (``not_found:chat`` versus
``not_found:stream``).
"""

from __future__ import annotations

from typing import Literal

from fastapi.responses import JSONResponse

ErrorKind = Literal["bad_request", "unauthorized", "forbidden", "not_found", "rate_limit", "offline"]
ErrorSurface = Literal["api", "chat", "auth", "database", "stream", "history"]

_STATUS_BY_KIND: dict[str, int] = {
    "bad_request": 400,
    "unauthorized": 401,
    "forbidden": 403,
    "not_found": 404,
    "rate_limit": 429,
    "offline": 503,
}

_MESSAGES_BY_CODE: dict[str, str] = {
    "bad_request:api": "The request couldn't be processed. Please check your input and try again.",
    "unauthorized:auth": "You need to sign in before continuing.",
    "forbidden:auth": "Your account does not have access to this feature.",
    "rate_limit:chat": "You have exceeded your maximum number of messages for the day. Please try again later.",
    "not_found:chat": "The requested chat was not found. Please check the chat ID and try again.",
    "forbidden:chat": "This chat belongs to another user. Please check the chat ID and try again.",
    "unauthorized:chat": "You need to sign in to view this chat. Please sign in and try again.",
    "offline:chat": "We're having trouble sending your message. Please check your internet connection and try again.",
    "not_found:stream": "No resumable stream was found for this chat.",
}

_GENERIC_MESSAGE = "Something went wrong. Please try again later."


class ChatError(Exception):
    """Client-facing failure carrying a taxonomy code and HTTP status."""

    def __init__(self, code: str, cause: str | None = None) -> None:
        kind, _, surface = code.partition(":")
        if kind not in _STATUS_BY_KIND or not surface:
            raise ValueError(f"unknown chat error code: {code!r}")
        self.code = code
        self.kind = kind
        self.surface = surface
        self.cause = cause
        self.status_code = _STATUS_BY_KIND[kind]
        self.message = _MESSAGES_BY_CODE.get(code, _GENERIC_MESSAGE)
        super().__init__(self.message)

    def to_response(self) -> JSONResponse:
        # Database failures stay generic for the client; the cause is only logged.
        if self.surface == "database":
            return JSONResponse(
                status_code=self.status_code,
                content={"code": "", "message": _GENERIC_MESSAGE},
            )
        return JSONResponse(
            status_code=self.status_code,
            content={"code": self.code, "message": self.message, "cause": self.cause},
        )
