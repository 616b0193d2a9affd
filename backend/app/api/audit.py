"""Audit trail query endpoint."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter
from sqlmodel import col

from app.api.deps import ADMIN_AUTH_DEP, SESSION_DEP
from app.db.pagination import paginate
from app.models.audit_entries import AuditEntry
from app.schemas.audit import AuditEntryRead
from app.schemas.pagination import DefaultLimitOffsetPage

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.core.auth import AuthContext

router = APIRouter(prefix="/audit", tags=["audit"])


def _to_reads(entries: Sequence[AuditEntry]) -> list[AuditEntryRead]:
    return [AuditEntryRead.model_validate(entry, from_attributes=True) for entry in entries]


@router.get("", response_model=DefaultLimitOffsetPage[AuditEntryRead])
async def list_audit_entries(
    session: AsyncSession = SESSION_DEP,
    _auth: AuthContext = ADMIN_AUTH_DEP,
    action: str | None = None,
    actor_id: UUID | None = None,
) -> DefaultLimitOffsetPage[AuditEntryRead]:
    """List audit entries newest first. Admin only."""
    query = AuditEntry.objects.all()
    if action is not None:
        query = query.filter(col(AuditEntry.action) == action)
    if actor_id is not None:
        query = query.filter(col(AuditEntry.actor_id) == actor_id)
    statement = query.order_by(col(AuditEntry.created_at).desc(), col(AuditEntry.id)).statement
    return await paginate(session, statement, transformer=_to_reads)
