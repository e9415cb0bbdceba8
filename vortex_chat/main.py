from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, PlainTextResponse

from vortex_chat.agents.tools import OpenMeteoWeather
from vortex_chat.api.router import api_router
from vortex_chat.api.routers.health import router as health_router
from vortex_chat.core.errors import ChatError
from vortex_chat.core.logging import configure_logging
from vortex_chat.core.settings import get_settings
from vortex_chat.dependency_injection import build_container
from vortex_chat.services.chat_repository import ChatRepository
from vortex_chat.services.chat_service import ChatService
from vortex_chat.services.contracts import (
    ChatRepositoryProtocol,
    ChatServiceProtocol,
    DatabaseServiceProtocol,
    RegistryClientProtocol,
)
from vortex_chat.services.resumable_stream import StreamContextProvider

settings = get_settings()
configure_logging(settings.effective_log_level)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("starting chat backend", extra={"app_env": settings.app_env})

    container = build_container(settings)
    database_service = container.resolve(DatabaseServiceProtocol)
    await database_service.connect()
    logger.info("database connection pool initialized")

    repository = container.resolve(ChatRepositoryProtocol)
    if isinstance(repository, ChatRepository):
        await repository.ensure_schema()

    app.state.settings = settings
    app.state.container = container

    try:
        yield
    finally:
        chat_service = container.resolve(ChatServiceProtocol)
        if isinstance(chat_service, ChatService):
            await chat_service.wait_for_generations()
        await container.resolve(StreamContextProvider).close()
        await container.resolve(RegistryClientProtocol).aclose()
        await container.resolve(OpenMeteoWeather).aclose()
        await database_service.disconnect()
        logger.info("chat backend shutdown complete")


async def chat_error_handler(request: Request, exc: ChatError) -> JSONResponse:
    if exc.surface == "database":
        logger.error("database error", extra={"code": exc.code, "cause": exc.cause})
    return exc.to_response()


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("request validation failed", extra={"path": request.url.path, "error_count": len(exc.errors())})
    return ChatError("bad_request:api").to_response()


async def unhandled_error_handler(request: Request, exc: Exception) -> PlainTextResponse:
    logger.exception("unhandled request error", extra={"path": request.url.path})
    return PlainTextResponse("Internal Server Error", status_code=500)


app = FastAPI(
    title="Vortex Chat Backend",
    version="0.1.0",
    docs_url="/docs" if settings.enable_swagger else None,
    redoc_url="/redoc" if settings.enable_swagger else None,
    openapi_url="/openapi.json" if settings.enable_swagger else None,
    lifespan=lifespan,
)
app.add_exception_handler(ChatError, chat_error_handler)
app.add_exception_handler(RequestValidationError, validation_error_handler)
app.add_exception_handler(Exception, unhandled_error_handler)

app.include_router(health_router)
app.include_router(api_router, prefix="/api")
