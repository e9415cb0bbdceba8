from __future__ import annotations

import json

import pytest

from vortex_chat.core.errors import ChatError


@pytest.mark.parametrize(
    ("code", "status"),
    [
        ("bad_request:api", 400),
        ("unauthorized:chat", 401),
        ("forbidden:chat", 403),
        ("not_found:stream", 404),
        ("rate_limit:chat", 429),
        ("offline:chat", 503),
    ],
)
def test_kind_maps_to_status(code: str, status: int) -> None:
    assert ChatError(code).status_code == status


def test_response_body_carries_code_message_and_cause() -> None:
    response = ChatError("not_found:chat", "chat 1").to_response()

    body = json.loads(response.body)
    assert response.status_code == 404
    assert body["code"] == "not_found:chat"
    assert body["cause"] == "chat 1"
    assert "not found" in body["message"]


def test_database_errors_stay_generic() -> None:
    response = ChatError("bad_request:database", "Failed to save chat").to_response()

    body = json.loads(response.body)
    assert body == {"code": "", "message": "Something went wrong. Please try again later."}


def test_unknown_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        ChatError("teapot:chat")
