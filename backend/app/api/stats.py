"""Performance statistics endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter

from app.api.deps import AUTH_DEP, SESSION_DEP
from app.schemas.stats import TopPerformersResponse
from app.services.stats import get_top_performers

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.core.auth import AuthContext

router = APIRouter(prefix="/stats", tags=["stats"])


@router.get("/top-performers", response_model=TopPerformersResponse)
async def top_performers(
    session: AsyncSession = SESSION_DEP,
    _auth: AuthContext = AUTH_DEP,
) -> TopPerformersResponse:
    """Top assignees by finished tasks over the last 7 and 30 days."""
    return await get_top_performers(session)
