"""Reusable FastAPI dependencies for the acting user and role checks.

Routers compose these instead of re-implementing permission checks.
"""

from __future__ import annotations

from fastapi import Depends

from app.core.auth import AuthContext, get_auth_context
from app.db.session import get_session
from app.services.errors import ForbiddenError
from app.services.messaging.broker import get_broker
from app.services.task_policy import Actor

AUTH_DEP = Depends(get_auth_context)
SESSION_DEP = Depends(get_session)
BROKER_DEP = Depends(get_broker)


def get_actor(auth: AuthContext = AUTH_DEP) -> Actor:
    """Return the acting user's identity and current role."""
    return auth.actor


def require_admin_auth(auth: AuthContext = AUTH_DEP) -> AuthContext:
    """Require an authenticated admin user."""
    if not auth.actor.is_admin:
        raise ForbiddenError("Admin access required")
    return auth


ACTOR_DEP = Depends(get_actor)
ADMIN_AUTH_DEP = Depends(require_admin_auth)
