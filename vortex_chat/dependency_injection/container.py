from __future__ import annotations

import punq
from fastapi import Request

from vortex_chat.agents.factory import ChatModelFactory, TitleGenerator
from vortex_chat.agents.tools import OpenMeteoWeather
from vortex_chat.agents.tools.mcp import CapabilityLoader, ProviderConnector, mcp_connector
from vortex_chat.core.settings import Settings
from vortex_chat.services.auth_service import AuthService
from vortex_chat.services.chat_repository import ChatRepository
from vortex_chat.services.chat_service import ChatService
from vortex_chat.services.contracts import (
    AuthServiceProtocol,
    ChatRepositoryProtocol,
    ChatServiceProtocol,
    DatabaseServiceProtocol,
    RegistryClientProtocol,
)
from vortex_chat.services.database_service import DatabaseService
from vortex_chat.services.registry_client import SmitheryRegistryClient
from vortex_chat.services.resumable_stream import StreamContextProvider


def build_container(settings: Settings) -> punq.Container:
    container = punq.Container()
    container.register(Settings, instance=settings)

    container.register(
        DatabaseServiceProtocol,
        factory=lambda: DatabaseService(dsn=settings.chat_db_dsn),
        scope=punq.Scope.singleton,
    )
    connector = mcp_connector(timeout_seconds=settings.mcp_timeout_seconds)
    container.register(ProviderConnector, instance=connector)
    container.register(
        CapabilityLoader,
        factory=lambda: CapabilityLoader(connector=connector, client_name=settings.mcp_client_name),
        scope=punq.Scope.singleton,
    )
    container.register(
        OpenMeteoWeather,
        factory=lambda: OpenMeteoWeather(base_url=settings.weather_api_base_url),
        scope=punq.Scope.singleton,
    )
    container.register(
        RegistryClientProtocol,
        factory=lambda: SmitheryRegistryClient(
            base_url=settings.smithery_registry_url,
            bearer_auth=settings.smithery_bearer_auth,
        ),
        scope=punq.Scope.singleton,
    )
    container.register(StreamContextProvider, factory=lambda: StreamContextProvider(settings), scope=punq.Scope.singleton)
    container.register(ChatModelFactory, factory=ChatModelFactory, scope=punq.Scope.singleton)
    container.register(TitleGenerator, factory=TitleGenerator, scope=punq.Scope.singleton)
    container.register(ChatRepositoryProtocol, factory=ChatRepository, scope=punq.Scope.singleton)
    container.register(AuthServiceProtocol, factory=AuthService, scope=punq.Scope.singleton)
    container.register(ChatServiceProtocol, factory=ChatService, scope=punq.Scope.singleton)

    return container


def get_container(request: Request) -> punq.Container:
    return request.app.state.container
