from vortex_chat.agents.tools.mcp.adapter import RemoteToolAdapter, build_remote_tools
from vortex_chat.agents.tools.mcp.connection import (
    McpProviderConnection,
    ProviderConnection,
    ProviderConnector,
    RemoteCallResult,
    RemoteOperation,
    mcp_connector,
)
from vortex_chat.agents.tools.mcp.loader import CapabilityLoader, ToolSpec, build_tool_spec
from vortex_chat.agents.tools.mcp.normalization import NormalizedResult, normalize_result
from vortex_chat.agents.tools.mcp.parameters import ParamKind, ParamSpec, build_arguments_model, translate_input_schema

__all__ = [
    "CapabilityLoader",
    "McpProviderConnection",
    "NormalizedResult",
    "ParamKind",
    "ParamSpec",
    "ProviderConnection",
    "ProviderConnector",
    "RemoteCallResult",
    "RemoteOperation",
    "RemoteToolAdapter",
    "ToolSpec",
    "build_arguments_model",
    "build_remote_tools",
    "build_tool_spec",
    "mcp_connector",
    "normalize_result",
    "translate_input_schema",
]
