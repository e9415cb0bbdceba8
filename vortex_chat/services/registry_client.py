from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)

_DEFAULT_PAGE_SIZE = 50
_MAX_PAGES = 100


class RegistryError(RuntimeError):
    """Raised when the server registry cannot be read."""


class SmitheryRegistryClient:
    """Lists capability-provider servers from the Smithery registry."""

    def __init__(
        self,
        *,
        base_url: str,
        bearer_auth: str = "",
        page_size: int = _DEFAULT_PAGE_SIZE,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if bearer_auth:
            headers["Authorization"] = f"Bearer {bearer_auth}"
        self._client = client if client is not None else httpx.AsyncClient(base_url=base_url, timeout=15.0)
        self._headers = headers
        self._page_size = page_size

    async def list_servers(self, query: str | None = None) -> list[dict[str, Any]]:
        pages: list[dict[str, Any]] = []
        page = 1
        while page <= _MAX_PAGES:
            params: dict[str, Any] = {"page": page, "pageSize": self._page_size}
            if query:
                params["q"] = query
            try:
                response = await self._client.get("/servers", params=params, headers=self._headers)
                response.raise_for_status()
                body = response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.warning("registry request failed", extra={"page": page, "error": str(exc)})
                raise RegistryError(str(exc)) from exc

            pages.append(body)
            pagination = body.get("pagination") or {}
            total_pages = int(pagination.get("totalPages") or 1)
            if page >= total_pages:
                break
            page += 1

        logger.debug("registry listing collected", extra={"pages": len(pages), "query": query})
        return pages

    async def aclose(self) -> None:
        await self._client.aclose()
