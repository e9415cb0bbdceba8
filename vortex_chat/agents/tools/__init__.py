from __future__ import annotations

from collections.abc import Sequence
import logging

from vortex_chat.agents.tools.contracts import ChatTool
from vortex_chat.agents.tools.local import LocalToolAdapter
from vortex_chat.agents.tools.static import OpenMeteoWeather, build_static_tools

logger = logging.getLogger(__name__)


def merge_tools(static_tools: Sequence[ChatTool], dynamic_tools: Sequence[ChatTool]) -> list[ChatTool]:
    """Combine static and provider tools into one set with unique names.

    A provider tool whose name is already taken is dropped; static tools always win.
    """

    merged: dict[str, ChatTool] = {}
    for tool in static_tools:
        if tool.name in merged:
            raise ValueError(f"duplicate static tool name {tool.name!r}")
        merged[tool.name] = tool

    for tool in dynamic_tools:
        if tool.name in merged:
            logger.warning("rejecting provider tool that collides with an existing tool", extra={"tool_name": tool.name})
            continue
        merged[tool.name] = tool
    return list(merged.values())


__all__ = [
    "ChatTool",
    "LocalToolAdapter",
    "OpenMeteoWeather",
    "build_static_tools",
    "merge_tools",
]
