from fastapi import Request

from vortex_chat.api.schemas.chat import RequestHints


def get_request_hints(request: Request) -> RequestHints:
    """Read request-origin geolocation from edge proxy headers."""

    return RequestHints(
        latitude=request.headers.get("x-vercel-ip-latitude"),
        longitude=request.headers.get("x-vercel-ip-longitude"),
        city=request.headers.get("x-vercel-ip-city"),
        country=request.headers.get("x-vercel-ip-country"),
    )
