"""Dependency injection container assembly utilities."""

from vortex_chat.dependency_injection.container import build_container, get_container

__all__ = ["build_container", "get_container"]
