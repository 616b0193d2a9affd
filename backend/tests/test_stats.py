# ruff: noqa: INP001
"""Top performer aggregation tests."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from app.models.tasks import Task
from app.models.users import User
from app.services.stats import get_top_performers, top_performers

NOW = datetime(2026, 10, 19, 12, 0, 0)


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


def _task(user: User, *, status: str, days_ago: float) -> Task:
    updated = NOW - timedelta(days=days_ago)
    return Task(
        title="t",
        description="d",
        status=status,
        due_date=NOW,
        assigned_to=user.id,
        created_by=user.id,
        created_at=updated,
        updated_at=updated,
    )


@pytest.mark.asyncio
async def test_weekly_window_counts_only_recent_finished_tasks() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            alice = User(username="alice", email="alice@example.com", password_hash="x")
            bob = User(username="bob", email="bob@example.com", password_hash="x")
            session.add_all([alice, bob])
            session.add_all(
                [
                    _task(alice, status="completed", days_ago=1),
                    _task(alice, status="approved", days_ago=2),
                    _task(alice, status="rejected", days_ago=1),
                    _task(alice, status="in_progress", days_ago=1),
                    _task(bob, status="completed", days_ago=3),
                    _task(bob, status="completed", days_ago=8),
                    _task(bob, status="approved", days_ago=20),
                    _task(bob, status="approved", days_ago=31),
                ],
            )
            await session.commit()

            result = await get_top_performers(session, now=NOW)

            assert [(row.username, row.tasks_completed) for row in result.weekly] == [
                ("alice", 2),
                ("bob", 1),
            ]
            assert [(row.username, row.tasks_completed) for row in result.monthly] == [
                ("bob", 3),
                ("alice", 2),
            ]
            assert result.weekly[0].user_id == alice.id
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_window_boundary_is_inclusive_and_limit_applies() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = [
                User(username=f"user{i:02d}", email=f"user{i}@example.com", password_hash="x")
                for i in range(12)
            ]
            session.add_all(users)
            session.add_all([_task(user, status="completed", days_ago=7) for user in users])
            await session.commit()

            rows = await top_performers(session, days=7, now=NOW)
            capped = await top_performers(session, days=7, now=NOW, limit=3)

            assert len(rows) == 10
            assert all(row.tasks_completed == 1 for row in rows)
            assert len(capped) == 3
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_no_finished_work_yields_empty_lists() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            result = await get_top_performers(session, now=NOW)

            assert result.weekly == []
            assert result.monthly == []
    finally:
        await engine.dispose()
