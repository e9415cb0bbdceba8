from __future__ import annotations

from typing import Any, Protocol


class ChatTool(Protocol):
    """A tool the generation loop can offer to the model and dispatch calls to.

    ``definition`` is the OpenAI-style function schema bound to the model.
    ``invoke`` never raises: failures come back as a narrative and are reported
    on the output channel.
    """

    name: str

    @property
    def definition(self) -> dict[str, Any]: ...

    async def invoke(self, arguments: dict[str, Any], *, tool_call_id: str | None = None) -> str: ...
