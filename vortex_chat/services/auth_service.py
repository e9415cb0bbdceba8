from datetime import UTC, datetime, timedelta
import logging

import jwt
from pydantic import ValidationError

from vortex_chat.api.schemas.auth import SessionUser
from vortex_chat.core.settings import Settings

logger = logging.getLogger(__name__)


class JwtTokenValidator:
    """HS256 JWT codec; the ``type`` claim carries the entitlement tier."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def issue_access_token(self, principal: SessionUser) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": principal.user_id,
            "email": principal.email,
            "name": principal.display_name,
            "type": principal.user_type,
            "iat": int(now.timestamp()),
            "exp": int((now + timedelta(seconds=self._settings.auth_access_token_ttl_seconds)).timestamp()),
        }
        return jwt.encode(payload, self._settings.auth_jwt_secret, algorithm=self._settings.auth_jwt_algorithm)

    def decode(self, token: str) -> SessionUser:
        payload = jwt.decode(
            token,
            self._settings.auth_jwt_secret,
            algorithms=[self._settings.auth_jwt_algorithm],
        )
        return SessionUser(
            user_id=payload["sub"],
            email=payload.get("email", ""),
            display_name=payload.get("name", ""),
            user_type=payload.get("type", "regular"),
        )


class AuthService:
    """Resolves request principals from bearer access tokens."""

    def __init__(self, settings: Settings) -> None:
        self._token_validator = JwtTokenValidator(settings)

    def issue_access_token(self, principal: SessionUser) -> str:
        logger.debug("issuing access token", extra={"user_id": principal.user_id})
        return self._token_validator.issue_access_token(principal)

    def principal_from_bearer(self, bearer_token: str | None) -> SessionUser | None:
        if not bearer_token:
            return None
        try:
            return self._token_validator.decode(bearer_token)
        except (jwt.PyJWTError, KeyError, ValidationError):
            logger.info("bearer token validation failed")
            return None
