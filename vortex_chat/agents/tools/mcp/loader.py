from __future__ import annotations

from dataclasses import dataclass, field
import logging

from pydantic import BaseModel

from vortex_chat.agents.tools.mcp.connection import ProviderConnector, RemoteOperation
from vortex_chat.agents.tools.mcp.parameters import ParamSpec, build_arguments_model, translate_input_schema

logger = logging.getLogger(__name__)

_DEFAULT_DESCRIPTION = "No description provided by MCP server."


@dataclass(frozen=True)
class ToolSpec:
    """Per-request description of one provider operation exposed as a tool."""

    name: str
    description: str
    parameters: tuple[ParamSpec, ...]
    provider_url: str
    remote_name: str
    arguments_model: type[BaseModel] = field(compare=False, repr=False)


def build_tool_spec(operation: RemoteOperation, provider_url: str) -> ToolSpec:
    parameters = translate_input_schema(operation.input_schema)
    return ToolSpec(
        name=operation.name,
        description=operation.description or _DEFAULT_DESCRIPTION,
        parameters=parameters,
        provider_url=provider_url,
        remote_name=operation.name,
        arguments_model=build_arguments_model(operation.name, parameters),
    )


class CapabilityLoader:
    """Discovers provider operations and turns them into tool specs.

    Loading never raises: any failure is logged and yields an empty mapping so a
    chat request can continue without provider tools.
    """

    def __init__(self, *, connector: ProviderConnector, client_name: str) -> None:
        self._connector = connector
        self._client_name = client_name

    async def load(self, provider_url: str) -> dict[str, ToolSpec]:
        logger.info("loading provider tools", extra={"provider_url": provider_url})
        try:
            async with self._connector(provider_url, client_name=self._client_name) as connection:
                operations = await connection.list_operations()

            specs: dict[str, ToolSpec] = {}
            for operation in operations:
                if operation.name in specs:
                    raise ValueError(f"provider advertised duplicate operation {operation.name!r}")
                specs[operation.name] = build_tool_spec(operation, provider_url)
        except Exception:
            logger.exception("failed to load provider tools", extra={"provider_url": provider_url})
            return {}

        if not specs:
            logger.info("provider advertised no tools", extra={"provider_url": provider_url})
        else:
            logger.info(
                "loaded provider tools",
                extra={"provider_url": provider_url, "tool_names": sorted(specs)},
            )
        return specs
