"""Append-only audit trail for task and user mutations."""

from __future__ import annotations

from typing import TYPE_CHECKING

from app.core.time import utcnow
from app.models.audit_entries import AuditEntry

if TYPE_CHECKING:
    from uuid import UUID

    from sqlmodel.ext.asyncio.session import AsyncSession


async def record_audit(
    session: AsyncSession,
    *,
    actor_id: UUID,
    action: str,
    target_type: str = "",
    target_id: UUID | None = None,
    payload: dict[str, object] | None = None,
    commit: bool = False,
) -> AuditEntry:
    """Stage an audit entry on `session`.

    By default the entry is only added to the session so that it commits in
    the same transaction as the mutation it describes.
    """
    entry = AuditEntry(
        actor_id=actor_id,
        action=action,
        target_type=target_type,
        target_id=target_id,
        payload=payload,
        created_at=utcnow(),
    )
    session.add(entry)
    if commit:
        await session.commit()
        await session.refresh(entry)
    return entry
