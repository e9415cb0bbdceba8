from __future__ import annotations

import httpx
import pytest

from tests.conftest import collect
from vortex_chat.agents.tools import LocalToolAdapter, OpenMeteoWeather, build_static_tools, merge_tools
from vortex_chat.agents.tools.static import WeatherToolError
from vortex_chat.services.chat_stream import OutputChannel


def _weather(handler) -> OpenMeteoWeather:
    client = httpx.AsyncClient(base_url="https://weather.test", transport=httpx.MockTransport(handler))
    return OpenMeteoWeather(base_url="https://weather.test", client=client)


@pytest.mark.asyncio
async def test_forecast_requests_open_meteo_with_coordinates() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"current": {"temperature_2m": 21.5}})

    weather = _weather(handler)

    forecast = await weather.forecast(latitude=41.9, longitude=12.5)

    assert forecast == {"current": {"temperature_2m": 21.5}}
    assert seen[0].url.path == "/v1/forecast"
    assert seen[0].url.params["latitude"] == "41.9"
    assert seen[0].url.params["timezone"] == "auto"
    await weather.aclose()


@pytest.mark.asyncio
async def test_forecast_wraps_http_errors() -> None:
    weather = _weather(lambda request: httpx.Response(503))

    with pytest.raises(WeatherToolError):
        await weather.forecast(latitude=0, longitude=0)


@pytest.mark.asyncio
async def test_static_tool_result_is_streamed_with_payload() -> None:
    weather = _weather(lambda request: httpx.Response(200, json={"current": {"temperature_2m": 18}}))
    tools = {tool.name: tool for tool in build_static_tools(weather=weather)}
    channel = OutputChannel()
    adapter = LocalToolAdapter(tool=tools["get_weather"], channel=channel)
    events = channel.subscribe()

    narrative = await adapter.invoke({"latitude": 41.9, "longitude": 12.5}, tool_call_id="call-1")
    await channel.close()

    assert narrative == '{"current": {"temperature_2m": 18}}'
    [event] = await collect(events)
    assert event["type"] == "tool-result"
    assert event["data"]["payload"] == {"current": {"temperature_2m": 18}}
    assert adapter.definition["function"]["name"] == "get_weather"


@pytest.mark.asyncio
async def test_static_tool_failure_becomes_error_event_and_narrative() -> None:
    weather = _weather(lambda request: httpx.Response(500))
    tools = {tool.name: tool for tool in build_static_tools(weather=weather)}
    channel = OutputChannel()
    adapter = LocalToolAdapter(tool=tools["get_weather"], channel=channel)
    events = channel.subscribe()

    narrative = await adapter.invoke({"latitude": 1, "longitude": 2}, tool_call_id="call-2")
    await channel.close()

    assert narrative.startswith("Error executing tool get_weather:")
    assert [event["type"] for event in await collect(events)] == ["error"]


@pytest.mark.asyncio
async def test_render_react_hands_component_back() -> None:
    tools = {tool.name: tool for tool in build_static_tools(weather=_weather(lambda request: httpx.Response(200)))}

    result = await tools["render_react"].ainvoke({"code": "function Component() { return null; }"})

    assert result == {"code": "function Component() { return null; }", "scope": {}}


class NamedTool:
    def __init__(self, name: str) -> None:
        self.name = name


def test_provider_tool_colliding_with_static_name_is_dropped() -> None:
    static = [NamedTool("get_weather"), NamedTool("render_react")]
    provider_weather = NamedTool("get_weather")
    lookup = NamedTool("lookup")

    merged = merge_tools(static, [provider_weather, lookup])

    assert [tool.name for tool in merged] == ["get_weather", "render_react", "lookup"]
    assert merged[0] is static[0]


def test_duplicate_static_tool_names_are_rejected() -> None:
    with pytest.raises(ValueError):
        merge_tools([NamedTool("a"), NamedTool("a")], [])
