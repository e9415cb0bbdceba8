from __future__ import annotations

import logging
from typing import Any

from vortex_chat.agents.tools.contracts import ChatTool
from vortex_chat.agents.tools.mcp.connection import ProviderConnector
from vortex_chat.agents.tools.mcp.loader import ToolSpec
from vortex_chat.agents.tools.mcp.normalization import normalize_result
from vortex_chat.services.chat_stream import ChatStreamEvent, OutputChannel

logger = logging.getLogger(__name__)


class RemoteToolAdapter(ChatTool):
    """Binds one provider operation as a tool with a fresh connection per call."""

    def __init__(
        self,
        *,
        spec: ToolSpec,
        channel: OutputChannel,
        connector: ProviderConnector,
        client_name: str,
    ) -> None:
        self.name = spec.name
        self._spec = spec
        self._channel = channel
        self._connector = connector
        self._client_name = client_name

    @property
    def spec(self) -> ToolSpec:
        return self._spec

    @property
    def definition(self) -> dict[str, Any]:
        return {
            "type": "function",
            "function": {
                "name": self._spec.name,
                "description": self._spec.description,
                "parameters": self._spec.arguments_model.model_json_schema(),
            },
        }

    async def invoke(self, arguments: dict[str, Any], *, tool_call_id: str | None = None) -> str:
        logger.info(
            "executing provider tool",
            extra={"tool_name": self._spec.remote_name, "provider_url": self._spec.provider_url, "tool_call_id": tool_call_id},
        )
        try:
            validated = self._spec.arguments_model.model_validate(arguments).model_dump(by_alias=True, exclude_unset=True)
            async with self._connector(self._spec.provider_url, client_name=self._client_name) as connection:
                raw_result = await connection.call_operation(self._spec.remote_name, validated)
        except Exception as exc:
            logger.exception("provider tool execution failed", extra={"tool_name": self._spec.remote_name})
            await self._channel.write(
                {
                    "type": "error",
                    "data": {
                        "message": f"Tool {self.name} execution error: {exc}",
                        "tool_call_id": tool_call_id,
                    },
                }
            )
            return f"Error executing tool {self.name}: {exc}"

        result = normalize_result(raw_result)
        event: ChatStreamEvent = {
            "type": "tool-result",
            "data": {"tool_call_id": tool_call_id, "tool_name": self.name, "result": result.narrative},
        }
        if result.payload is not None:
            event["data"]["payload"] = result.payload  # type: ignore[typeddict-unknown-key]
        await self._channel.write(event)
        return result.narrative


def build_remote_tools(
    specs: dict[str, ToolSpec],
    *,
    channel: OutputChannel,
    connector: ProviderConnector,
    client_name: str,
) -> list[RemoteToolAdapter]:
    return [
        RemoteToolAdapter(spec=spec, channel=channel, connector=connector, client_name=client_name)
        for spec in specs.values()
    ]
