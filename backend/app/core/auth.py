"""Authentication module exposing the ``require_auth`` FastAPI dependency.

Tokens are issued elsewhere; this service only verifies them. The user id in
the token subject is an opaque string.

When ``settings.auth_enabled`` is False the caller's identity is taken from
the ``X-User-Id`` header (falling back to ``settings.dev_user_id``) so the
development workflow and multi-user testing need no token issuer.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..database import get_settings
from .token_factory import decode_token
from ..exceptions import AuthenticationError

logger = logging.getLogger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

USER_ID_MAX_LENGTH = 50


@dataclass(frozen=True)
class AuthContext:
    """Resolved caller identity available to every endpoint."""

    user_id: str


def _checked_user_id(user_id: Optional[str]) -> str:
    user_id = (user_id or "").strip()
    if not user_id or len(user_id) > USER_ID_MAX_LENGTH:
        raise AuthenticationError("Invalid user identity")
    return user_id


def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
    x_user_id: Optional[str] = Header(default=None),
) -> AuthContext:
    """Return the caller's AuthContext or raise 401."""
    settings = get_settings(request)

    if not settings.auth_enabled:
        return AuthContext(user_id=_checked_user_id(x_user_id or settings.dev_user_id))

    if credentials is None:
        raise AuthenticationError("Missing authentication token")

    payload = decode_token(
        credentials.credentials, settings.jwt_secret_key, settings.jwt_algorithm
    )
    if payload is None:
        logger.warning("Rejected bearer token", extra={"path": request.url.path})
        raise AuthenticationError("Invalid or expired token")

    return AuthContext(user_id=_checked_user_id(payload.sub))
