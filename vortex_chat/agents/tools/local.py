from __future__ import annotations

import json
import logging
from typing import Any

from langchain_core.tools import BaseTool
from langchain_core.utils.function_calling import convert_to_openai_tool

from vortex_chat.agents.tools.contracts import ChatTool
from vortex_chat.services.chat_stream import ChatStreamEvent, OutputChannel

logger = logging.getLogger(__name__)


def _result_text(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, default=str)


class LocalToolAdapter(ChatTool):
    """Runs an in-process langchain tool and mirrors its outcome onto the output channel."""

    def __init__(self, *, tool: BaseTool, channel: OutputChannel) -> None:
        self.name = tool.name
        self._tool = tool
        self._channel = channel

    @property
    def definition(self) -> dict[str, Any]:
        return convert_to_openai_tool(self._tool)

    async def invoke(self, arguments: dict[str, Any], *, tool_call_id: str | None = None) -> str:
        logger.info("executing static tool", extra={"tool_name": self.name, "tool_call_id": tool_call_id})
        try:
            result = await self._tool.ainvoke(arguments)
        except Exception as exc:
            logger.exception("static tool execution failed", extra={"tool_name": self.name})
            await self._channel.write(
                {
                    "type": "error",
                    "data": {"message": f"Tool {self.name} execution error: {exc}", "tool_call_id": tool_call_id},
                }
            )
            return f"Error executing tool {self.name}: {exc}"

        narrative = _result_text(result)
        event: ChatStreamEvent = {
            "type": "tool-result",
            "data": {"tool_call_id": tool_call_id, "tool_name": self.name, "result": narrative},
        }
        if not isinstance(result, str):
            event["data"]["payload"] = result  # type: ignore[typeddict-unknown-key]
        await self._channel.write(event)
        return narrative
