"""Request authentication for the JWT and shared local-token auth modes."""

from __future__ import annotations

from dataclasses import dataclass
from hmac import compare_digest
from typing import TYPE_CHECKING
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.auth_mode import AuthMode
from app.core.config import settings
from app.core.logging import get_logger
from app.core.security import decode_access_token
from app.db.session import get_session
from app.models.users import User
from app.services.task_policy import Actor
from app.services.users import ensure_bootstrap_admin

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)
SECURITY_DEP = Depends(security)
SESSION_DEP = Depends(get_session)


@dataclass
class AuthContext:
    """Authenticated user resolved from the bearer token."""

    user: User

    @property
    def actor(self) -> Actor:
        return Actor.from_user(self.user)


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Not authenticated",
        headers={"WWW-Authenticate": "Bearer"},
    )


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value.lower().startswith("bearer "):
        return None
    token = value.split(" ", maxsplit=1)[1].strip()
    return token or None


def _parse_subject(claims: dict[str, object]) -> UUID | None:
    subject = claims.get("sub")
    if not isinstance(subject, str):
        return None
    try:
        return UUID(subject)
    except ValueError:
        return None


async def _resolve_local_user(token: str, session: AsyncSession) -> User | None:
    expected = settings.local_auth_token.strip()
    if not expected or not compare_digest(token, expected):
        return None
    return await ensure_bootstrap_admin(session)


async def _resolve_jwt_user(token: str, session: AsyncSession) -> User | None:
    try:
        claims = decode_access_token(token)
    except jwt.InvalidTokenError as exc:
        logger.info("auth.token.invalid", extra={"error_type": exc.__class__.__name__})
        return None
    user_id = _parse_subject(claims)
    if user_id is None:
        return None
    # Reload on every request so role changes take effect immediately.
    return await User.objects.by_id(user_id).first(session)


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = SECURITY_DEP,
    session: AsyncSession = SESSION_DEP,
) -> AuthContext:
    """Resolve the authenticated user for the configured auth mode, else 401."""
    token = _extract_bearer_token(request.headers.get("Authorization"))
    if token is None:
        raise _unauthorized()
    if settings.auth_mode == AuthMode.LOCAL:
        user = await _resolve_local_user(token, session)
    else:
        user = await _resolve_jwt_user(token, session)
    if user is None:
        raise _unauthorized()
    return AuthContext(user=user)
