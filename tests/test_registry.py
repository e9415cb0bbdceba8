from __future__ import annotations

import json

import httpx
import pytest

from tests.conftest import build_test_container, build_test_request
from vortex_chat.api.routers.registry import list_registry_servers
from vortex_chat.services.contracts import RegistryClientProtocol
from vortex_chat.services.registry_client import RegistryError, SmitheryRegistryClient


def _client(handler) -> SmitheryRegistryClient:
    http = httpx.AsyncClient(base_url="https://registry.test", transport=httpx.MockTransport(handler))
    return SmitheryRegistryClient(base_url="https://registry.test", bearer_auth="registry-token", client=http)


@pytest.mark.asyncio
async def test_list_servers_collects_every_page() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        page = int(request.url.params["page"])
        return httpx.Response(
            200,
            json={"servers": [{"qualifiedName": f"server-{page}"}], "pagination": {"currentPage": page, "totalPages": 2}},
        )

    pages = await _client(handler).list_servers("weather")

    assert [page["servers"][0]["qualifiedName"] for page in pages] == ["server-1", "server-2"]
    assert seen[0].url.params["q"] == "weather"
    assert seen[0].headers["authorization"] == "Bearer registry-token"


@pytest.mark.asyncio
async def test_list_servers_wraps_upstream_failures() -> None:
    with pytest.raises(RegistryError):
        await _client(lambda request: httpx.Response(401, json={"error": "bad token"})).list_servers()


class FailingRegistry:
    async def list_servers(self, query=None):
        raise RegistryError("upstream timed out")


@pytest.mark.asyncio
async def test_router_reports_registry_failure() -> None:
    request = build_test_request(build_test_container({RegistryClientProtocol: FailingRegistry()}))

    response = await list_registry_servers(request=request, q="weather")

    assert response.status_code == 500
    assert json.loads(response.body) == {"error": "Failed to fetch from registry", "details": "upstream timed out"}
