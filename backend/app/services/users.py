"""Account registration, login, role management, and bootstrap seeding."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlmodel import col

from app.core.config import settings
from app.core.logging import get_logger
from app.core.security import hash_password, verify_password
from app.models.users import User, UserRole
from app.services.audit import record_audit
from app.services.errors import ConflictError, ForbiddenError, NotFoundError
from app.services.task_policy import can_set_user_role

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.services.task_policy import Actor

logger = get_logger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    return await User.objects.filter_by(email=normalize_email(email)).first(session)


async def require_user(session: AsyncSession, user_id: UUID) -> User:
    """Load a user or raise NotFoundError."""
    user = await User.objects.by_id(user_id).first(session)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def register_user(
    session: AsyncSession,
    *,
    username: str,
    email: str,
    password: str,
    role: UserRole = UserRole.EMPLOYEE,
) -> User:
    """Create an account. Username and email must both be unused."""
    username = username.strip()
    email = normalize_email(email)
    existing = await User.objects.filter(
        (col(User.username) == username) | (col(User.email) == email),
    ).first(session)
    if existing is not None:
        logger.info("user.register.conflict", extra={"username": username})
        raise ConflictError("Username or email already registered")
    user = User(
        username=username,
        email=email,
        password_hash=hash_password(password),
        role=role.value,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    logger.info("user.register.success", extra={"user_id": str(user.id), "role": user.role})
    return user


async def authenticate_user(session: AsyncSession, *, email: str, password: str) -> User | None:
    """Return the user for valid credentials, otherwise None."""
    user = await get_user_by_email(session, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("user.login.failed")
        return None
    return user


async def list_users(session: AsyncSession) -> list[User]:
    return await User.objects.order_by(func.lower(col(User.username))).all(session)


async def set_user_role(
    session: AsyncSession,
    *,
    actor: Actor,
    user_id: UUID,
    role: UserRole,
) -> User:
    """Change a user's role. Admin only."""
    decision = can_set_user_role(actor)
    if not decision.allowed:
        logger.info(
            "user.role.forbidden",
            extra={"actor_id": str(actor.user_id), "target_id": str(user_id)},
        )
        raise ForbiddenError(decision.reason)
    user = await require_user(session, user_id)
    previous = user.role
    user.role = role.value
    session.add(user)
    await record_audit(
        session,
        actor_id=actor.user_id,
        action="user.role.update",
        target_type="user",
        target_id=user.id,
        payload={"from": previous, "to": user.role},
    )
    await session.commit()
    await session.refresh(user)
    logger.info(
        "user.role.updated",
        extra={"user_id": str(user.id), "from_role": previous, "to_role": user.role},
    )
    return user


async def ensure_bootstrap_admin(session: AsyncSession) -> User:
    """Create the configured bootstrap admin unless its email is taken."""
    existing = await get_user_by_email(session, settings.bootstrap_admin_email)
    if existing is not None:
        return existing
    admin = User(
        username=settings.bootstrap_admin_username,
        email=normalize_email(settings.bootstrap_admin_email),
        password_hash=hash_password(settings.bootstrap_admin_password),
        role=UserRole.ADMIN.value,
    )
    session.add(admin)
    await session.commit()
    await session.refresh(admin)
    logger.info("user.bootstrap_admin.created", extra={"user_id": str(admin.id)})
    return admin
