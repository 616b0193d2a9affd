"""Top performer aggregation over trailing windows of finished tasks."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlmodel import col, select

from app.core.config import settings
from app.core.time import utcnow
from app.models.tasks import DONE_STATUSES, Task
from app.models.users import User
from app.schemas.stats import TopPerformerRead, TopPerformersResponse

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

WEEKLY_WINDOW_DAYS = 7
MONTHLY_WINDOW_DAYS = 30


async def top_performers(
    session: AsyncSession,
    *,
    days: int,
    now: datetime | None = None,
    limit: int | None = None,
) -> list[TopPerformerRead]:
    """Rank assignees by completed or approved tasks updated in the last `days`.

    Ties keep the order in which users first finished work in the window.
    """
    since = (now or utcnow()) - timedelta(days=days)
    tasks_completed = func.count(col(Task.id)).label("tasks_completed")
    statement = (
        select(col(User.id), col(User.username), tasks_completed)
        .join(Task, col(Task.assigned_to) == col(User.id))
        .where(col(Task.status).in_(DONE_STATUSES))
        .where(col(Task.updated_at) >= since)
        .group_by(col(User.id), col(User.username))
        .order_by(
            tasks_completed.desc(),
            func.min(col(Task.updated_at)),
            col(User.username),
        )
        .limit(limit or settings.stats_top_n)
    )
    rows = (await session.exec(statement)).all()
    return [
        TopPerformerRead(user_id=user_id, username=username, tasks_completed=count)
        for user_id, username, count in rows
    ]


async def get_top_performers(
    session: AsyncSession,
    *,
    now: datetime | None = None,
) -> TopPerformersResponse:
    current = now or utcnow()
    return TopPerformersResponse(
        weekly=await top_performers(session, days=WEEKLY_WINDOW_DAYS, now=current),
        monthly=await top_performers(session, days=MONTHLY_WINDOW_DAYS, now=current),
    )
