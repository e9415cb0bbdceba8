import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse

from vortex_chat.dependency_injection import get_container
from vortex_chat.services.contracts import RegistryClientProtocol
from vortex_chat.services.registry_client import RegistryError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/registry", tags=["registry"])


@router.get("/servers", summary="Search the public capability-provider registry")
async def list_registry_servers(request: Request, q: str | None = Query(default=None)) -> JSONResponse:
    registry = get_container(request).resolve(RegistryClientProtocol)
    try:
        pages = await registry.list_servers(q)
    except RegistryError as exc:
        logger.error("registry lookup failed", extra={"query": q})
        return JSONResponse(
            status_code=500,
            content={"error": "Failed to fetch from registry", "details": str(exc)},
        )
    return JSONResponse(content=pages)
