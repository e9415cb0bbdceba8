from __future__ import annotations

import logging
from typing import Any

import httpx
from langchain_core.tools import StructuredTool

logger = logging.getLogger(__name__)

_WEATHER_TIMEOUT_SECONDS = 10.0


class WeatherToolError(RuntimeError):
    """Raised when the weather service cannot answer a forecast request."""


class OpenMeteoWeather:
    """Open-Meteo forecast client used by the ``get_weather`` tool."""

    def __init__(self, *, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self._client = client if client is not None else httpx.AsyncClient(base_url=base_url, timeout=_WEATHER_TIMEOUT_SECONDS)

    async def forecast(self, *, latitude: float, longitude: float) -> dict[str, Any]:
        try:
            response = await self._client.get(
                "/v1/forecast",
                params={
                    "latitude": latitude,
                    "longitude": longitude,
                    "current": "temperature_2m",
                    "hourly": "temperature_2m",
                    "daily": "sunrise,sunset",
                    "timezone": "auto",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("weather lookup failed", extra={"error": str(exc)})
            raise WeatherToolError(f"weather lookup failed: {exc}") from exc
        return response.json()

    async def aclose(self) -> None:
        await self._client.aclose()


def build_static_tools(*, weather: OpenMeteoWeather) -> list[StructuredTool]:
    """Build the tools offered to every non-reasoning chat request."""

    async def _get_weather(latitude: float, longitude: float) -> dict[str, Any]:
        return await weather.forecast(latitude=latitude, longitude=longitude)

    async def _render_react(code: str, scope: dict[str, Any] | None = None) -> dict[str, Any]:
        # Rendering happens client-side; the tool only hands the component back.
        return {"code": code, "scope": scope or {}}

    return [
        StructuredTool.from_function(
            coroutine=_get_weather,
            name="get_weather",
            description="Get the current weather at a location given its latitude and longitude.",
        ),
        StructuredTool.from_function(
            coroutine=_render_react,
            name="render_react",
            description=(
                "Render a React component with the provided code. The code should be a complete React "
                'component named "Component". Optional scope injects additional dependencies.'
            ),
        ),
    ]
