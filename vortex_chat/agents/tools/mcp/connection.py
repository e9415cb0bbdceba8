from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field
from datetime import timedelta
import logging
from typing import Any, Protocol

from mcp import ClientSession
from mcp.client.streamable_http import streamablehttp_client
from mcp.types import Implementation

from vortex_chat import __version__

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RemoteOperation:
    """One callable operation advertised by a capability provider."""

    name: str
    description: str | None = None
    input_schema: dict[str, Any] | None = None


@dataclass(frozen=True)
class RemoteCallResult:
    """Raw outcome of a remote operation call, before normalization."""

    content: list[dict[str, Any]] = field(default_factory=list)
    is_error: bool = False
    error: Any = None


class ProviderConnection(Protocol):
    """Short-lived connection to one capability provider."""

    async def list_operations(self) -> list[RemoteOperation]:
        """Return every operation the provider advertises."""

    async def call_operation(self, name: str, arguments: dict[str, Any]) -> RemoteCallResult:
        """Invoke one operation and return its raw result."""


class ProviderConnector(Protocol):
    def __call__(self, url: str, *, client_name: str) -> AbstractAsyncContextManager[ProviderConnection]: ...


class McpProviderConnection:
    """Capability-provider connection backed by an initialized MCP client session."""

    def __init__(self, session: ClientSession) -> None:
        self._session = session

    async def list_operations(self) -> list[RemoteOperation]:
        result = await self._session.list_tools()
        return [
            RemoteOperation(name=tool.name, description=tool.description, input_schema=tool.inputSchema)
            for tool in result.tools
        ]

    async def call_operation(self, name: str, arguments: dict[str, Any]) -> RemoteCallResult:
        result = await self._session.call_tool(name, arguments)
        return RemoteCallResult(
            content=[item.model_dump(mode="json") for item in result.content],
            is_error=bool(result.isError),
            error=getattr(result, "error", None),
        )


def mcp_connector(timeout_seconds: float) -> ProviderConnector:
    """Build a connector that opens one streamable-HTTP MCP session per use."""

    @asynccontextmanager
    async def _connect(url: str, *, client_name: str) -> AsyncIterator[ProviderConnection]:
        logger.debug("opening capability provider connection", extra={"provider_url": url, "client_name": client_name})
        async with streamablehttp_client(url, timeout=timedelta(seconds=timeout_seconds)) as (read_stream, write_stream, _):
            async with ClientSession(
                read_stream,
                write_stream,
                client_info=Implementation(name=client_name, version=__version__),
            ) as session:
                await session.initialize()
                yield McpProviderConnection(session)
        logger.debug("capability provider connection closed", extra={"provider_url": url})

    return _connect
