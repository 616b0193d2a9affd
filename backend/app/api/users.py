"""User directory and role management endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter

from app.api.deps import ACTOR_DEP, AUTH_DEP, SESSION_DEP
from app.schemas.users import UserRead, UserRoleUpdate
from app.services.users import list_users, set_user_role

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.core.auth import AuthContext
    from app.services.task_policy import Actor

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=list[UserRead])
async def list_all_users(
    session: AsyncSession = SESSION_DEP,
    _auth: AuthContext = AUTH_DEP,
) -> list[UserRead]:
    users = await list_users(session)
    return [UserRead.model_validate(user.model_dump()) for user in users]


@router.get("/me", response_model=UserRead)
async def get_me(auth: AuthContext = AUTH_DEP) -> UserRead:
    """Return the authenticated user's profile."""
    return UserRead.model_validate(auth.user.model_dump())


@router.put("/{user_id}/role", response_model=UserRead)
async def update_user_role(
    user_id: UUID,
    payload: UserRoleUpdate,
    session: AsyncSession = SESSION_DEP,
    actor: Actor = ACTOR_DEP,
) -> UserRead:
    """Change a user's role. Admin only."""
    user = await set_user_role(session, actor=actor, user_id=user_id, role=payload.role)
    return UserRead.model_validate(user.model_dump())
