from __future__ import annotations

from vortex_chat.api.schemas.chat import REASONING_MODEL_ID, RequestHints

_DYNAMIC_TOOLS_NOTE = (
    "Note: If a user provides an MCP Server URL, additional tools may be dynamically loaded from that server. "
    "These tools will be available for use alongside the standard tools."
)

_STATIC_TOOLS_NOTE = """
Tool policy:
- Use get_weather when the user asks about current or upcoming weather and you know the coordinates.
- Use render_react to show interactive UI. The code must define a component named "Component".
"""

TITLE_PROMPT = """
- you will generate a short title based on the first message a user begins a conversation with
- ensure it is not more than 80 characters long
- the title should be a summary of the user's message
- do not use quotes or colons
"""


def request_prompt(hints: RequestHints) -> str:
    return (
        "About the origin of user's request:\n"
        f"- lat: {hints.latitude}\n"
        f"- lon: {hints.longitude}\n"
        f"- city: {hints.city}\n"
        f"- country: {hints.country}\n"
    )


def system_prompt(*, regular_prompt: str, selected_chat_model: str, hints: RequestHints) -> str:
    """Assemble the system prompt; reasoning-only generations get no tool guidance."""

    sections = [regular_prompt.strip(), request_prompt(hints).strip()]
    if selected_chat_model != REASONING_MODEL_ID:
        sections.extend([_STATIC_TOOLS_NOTE.strip(), _DYNAMIC_TOOLS_NOTE])
    return "\n\n".join(sections)
