"""Reduce heterogeneous provider call results to one narrative for the model.

Rules are evaluated in order and the first matching rule produces the result.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
import json
import logging
from typing import Any

from vortex_chat.agents.tools.mcp.connection import RemoteCallResult

logger = logging.getLogger(__name__)

JSON_RESPONSE_MARKER = " succeeded. Response:\n"
MAX_JSON_CHARS = 3000
RAW_PREVIEW_CHARS = 200

GENERIC_SUCCESS_NARRATIVE = "Tool executed successfully."
NON_TEXT_NARRATIVE = "Received non-text or empty content from the tool."


@dataclass(frozen=True)
class NormalizedResult:
    narrative: str
    payload: Any = None
    is_error: bool = False


@dataclass(frozen=True)
class NormalizationRule:
    name: str
    matches: Callable[[RemoteCallResult], bool]
    apply: Callable[[RemoteCallResult], NormalizedResult]


def _first_item(result: RemoteCallResult) -> dict[str, Any] | None:
    return result.content[0] if result.content else None


def _first_text(result: RemoteCallResult) -> str | None:
    item = _first_item(result)
    if not isinstance(item, dict) or item.get("type") != "text":
        return None
    text = item.get("text")
    return text if isinstance(text, str) and text else None


def _error_message(error: Any) -> str:
    if isinstance(error, dict) and error.get("message"):
        return str(error["message"])
    message = getattr(error, "message", None)
    if message:
        return str(message)
    if isinstance(error, str):
        return error
    return json.dumps(error, default=str)


def _has_top_level_error(result: RemoteCallResult) -> bool:
    return result.is_error or result.error is not None


def _narrate_top_level_error(result: RemoteCallResult) -> NormalizedResult:
    if result.error is not None:
        detail = _error_message(result.error)
    else:
        detail = _first_text(result) or "Unknown error"
    return NormalizedResult(narrative=f"Tool execution failed: {detail}", is_error=True)


def _has_embedded_json(result: RemoteCallResult) -> bool:
    text = _first_text(result)
    return text is not None and (JSON_RESPONSE_MARKER + "{") in text


def _narrate_embedded_json(result: RemoteCallResult) -> NormalizedResult:
    text = _first_text(result) or ""
    json_text = text[text.index(JSON_RESPONSE_MARKER) + len(JSON_RESPONSE_MARKER) :]
    try:
        data, _ = json.JSONDecoder().raw_decode(json_text)
    except json.JSONDecodeError as exc:
        logger.warning("failed to parse embedded tool JSON", extra={"error": str(exc)})
        return NormalizedResult(
            narrative=(
                "Received a response that appeared to be JSON, but it couldn't be parsed. "
                f"Raw text started with: {text[:RAW_PREVIEW_CHARS]}... Error: {exc}"
            )
        )

    if isinstance(data, dict) and data.get("error"):
        return NormalizedResult(
            narrative=f"The tool reported an error in its response: {_error_message(data['error'])}.",
            payload=data,
            is_error=True,
        )

    serialized = json.dumps(data, separators=(",", ":"), default=str)
    if len(serialized) > MAX_JSON_CHARS:
        keys = ", ".join(data.keys()) if isinstance(data, dict) else ""
        return NormalizedResult(
            narrative=(
                "The tool call was successful and returned a large JSON data object with the following "
                f"top-level keys: {keys}. You may need to request specific parts of the data if the summary "
                "is insufficient."
            ),
            payload=data,
        )
    return NormalizedResult(
        narrative=(
            "The tool call was successful and returned the following JSON data. "
            f"Analyze this data to display it: {serialized}"
        ),
        payload=data,
    )


def _has_text(result: RemoteCallResult) -> bool:
    return _first_text(result) is not None


def _narrate_text(result: RemoteCallResult) -> NormalizedResult:
    return NormalizedResult(narrative=_first_text(result) or "")


def _has_content(result: RemoteCallResult) -> bool:
    return bool(result.content)


def _narrate_non_text(result: RemoteCallResult) -> NormalizedResult:
    logger.debug("non-text tool content received", extra={"content_type": (_first_item(result) or {}).get("type")})
    return NormalizedResult(narrative=NON_TEXT_NARRATIVE)


def _always(_: RemoteCallResult) -> bool:
    return True


def _narrate_success(_: RemoteCallResult) -> NormalizedResult:
    return NormalizedResult(narrative=GENERIC_SUCCESS_NARRATIVE)


NORMALIZATION_RULES: tuple[NormalizationRule, ...] = (
    NormalizationRule("top_level_error", _has_top_level_error, _narrate_top_level_error),
    NormalizationRule("embedded_json", _has_embedded_json, _narrate_embedded_json),
    NormalizationRule("plain_text", _has_text, _narrate_text),
    NormalizationRule("non_text", _has_content, _narrate_non_text),
    NormalizationRule("empty", _always, _narrate_success),
)


def normalize_result(result: RemoteCallResult) -> NormalizedResult:
    for rule in NORMALIZATION_RULES:
        if rule.matches(result):
            return rule.apply(result)
    raise AssertionError("normalization rules must end with a catch-all")
