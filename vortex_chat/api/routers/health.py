import logging

import punq
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from vortex_chat import __version__
from vortex_chat.dependency_injection import get_container
from vortex_chat.services.contracts import DatabaseServiceProtocol

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


@router.get("/healthz")
def healthz() -> dict[str, str]:
    return {"status": "ok", "version": __version__}


@router.get("/readyz")
async def readyz(container: punq.Container = Depends(get_container)) -> JSONResponse:
    """Report ready once the database answers a trivial query."""

    database_service = container.resolve(DatabaseServiceProtocol)
    try:
        await database_service.fetchval("SELECT 1")
    except Exception:
        logger.exception("readiness check failed")
        return JSONResponse(status_code=503, content={"status": "unavailable"})
    return JSONResponse(content={"status": "ready"})
