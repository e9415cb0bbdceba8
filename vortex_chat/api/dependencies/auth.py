import logging

from fastapi import Request

from vortex_chat.api.schemas.auth import SessionUser
from vortex_chat.core.errors import ChatError
from vortex_chat.dependency_injection import get_container
from vortex_chat.services.contracts import AuthServiceProtocol

logger = logging.getLogger(__name__)


def _bearer_token(request: Request) -> str | None:
    scheme, _, token = request.headers.get("authorization", "").partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


async def get_optional_auth_context(request: Request) -> SessionUser | None:
    """Session user from the bearer token, or ``None`` for anonymous requests."""

    auth_service = get_container(request).resolve(AuthServiceProtocol)
    user = auth_service.principal_from_bearer(_bearer_token(request))
    if user is not None:
        logger.debug("request authenticated", extra={"user_id": user.user_id, "user_type": user.user_type})
    return user


async def get_required_auth_context(request: Request) -> SessionUser:
    user = await get_optional_auth_context(request)
    if user is None:
        raise ChatError("unauthorized:chat")
    return user
