# ruff: noqa: INP001
"""Task store tests covering the review workflow end to end."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlmodel import SQLModel, col
from sqlmodel.ext.asyncio.session import AsyncSession

from app.models.audit_entries import AuditEntry
from app.models.tasks import Task
from app.models.users import User, UserRole
from app.services import tasks as task_service
from app.services.errors import ForbiddenError, NotFoundError, ValidationError
from app.services.task_policy import Actor, WorkflowOptions
from app.services.users import set_user_role


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


def _user(username: str, role: UserRole) -> User:
    return User(
        username=username,
        email=f"{username}@example.com",
        password_hash="not-a-real-hash",
        role=role.value,
    )


async def _seed_users(session: AsyncSession) -> dict[str, User]:
    users = {
        "admin": _user("admin", UserRole.ADMIN),
        "lead": _user("lead", UserRole.TEAM_LEAD),
        "alice": _user("alice", UserRole.EMPLOYEE),
        "bob": _user("bob", UserRole.EMPLOYEE),
    }
    session.add_all(users.values())
    await session.commit()
    return users


async def _create(session: AsyncSession, users: dict[str, User], **overrides: object):
    fields: dict[str, object] = {
        "title": "Quarterly report",
        "description": "Compile Q3 numbers.",
        "due_date": datetime.now(UTC) + timedelta(days=3),
        "assigned_to": users["alice"].id,
    }
    fields.update(overrides)
    return await task_service.create_task(
        session,
        actor=Actor.from_user(users["admin"]),
        **fields,
    )


@pytest.mark.asyncio
async def test_complete_reject_recomplete_scenario(sent_notifications: list[object]) -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            alice = Actor.from_user(users["alice"])
            lead = Actor.from_user(users["lead"])

            created = await _create(session, users)
            assert created.status == "pending"
            assert created.completion_percentage == 0
            assert created.created_by == users["admin"].id
            assert created.assigned_username == "alice"
            assert created.creator_username == "admin"

            completed = await task_service.complete_task(session, actor=alice, task_id=created.id)
            assert completed.status == "completed"
            assert completed.completion_percentage == 100

            rejected = await task_service.reject_task(session, actor=lead, task_id=created.id)
            assert rejected.status == "rejected"
            assert rejected.completion_percentage == 70

            strict = WorkflowOptions(allow_recompletion_after_rejection=False)
            with pytest.raises(ForbiddenError):
                await task_service.complete_task(
                    session,
                    actor=alice,
                    task_id=created.id,
                    options=strict,
                )

            again = await task_service.complete_task(session, actor=alice, task_id=created.id)
            assert again.status == "completed"
            assert again.completion_percentage == 100

            approved = await task_service.approve_task(session, actor=lead, task_id=created.id)
            assert approved.status == "approved"
            assert approved.completion_percentage == 100

            actions = [
                entry.action
                for entry in await AuditEntry.objects.filter(
                    col(AuditEntry.target_id) == created.id,
                ).order_by(col(AuditEntry.created_at)).all(session)
            ]
            assert actions == [
                "task.create",
                "task.complete",
                "task.reject",
                "task.complete",
                "task.approve",
            ]
        event_types = [notification.event_type for notification in sent_notifications]
        assert event_types == [
            "task.assigned",
            "task.completed",
            "task.rejected",
            "task.completed",
            "task.approved",
        ]
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_non_assignee_employee_cannot_complete_and_task_is_unchanged() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            created = await _create(session, users)

            with pytest.raises(ForbiddenError) as exc_info:
                await task_service.complete_task(
                    session,
                    actor=Actor.from_user(users["bob"]),
                    task_id=created.id,
                )
            assert exc_info.value.status_code == 403

            reloaded = await task_service.get_task_read(session, created.id)
            assert reloaded.status == "pending"
            assert reloaded.completion_percentage == 0
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_employee_cannot_approve_and_review_requires_completion() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            created = await _create(session, users)

            with pytest.raises(ForbiddenError, match="Only completed tasks"):
                await task_service.approve_task(
                    session,
                    actor=Actor.from_user(users["lead"]),
                    task_id=created.id,
                )

            await task_service.complete_task(
                session,
                actor=Actor.from_user(users["alice"]),
                task_id=created.id,
            )
            with pytest.raises(ForbiddenError, match="team lead or admin"):
                await task_service.approve_task(
                    session,
                    actor=Actor.from_user(users["alice"]),
                    task_id=created.id,
                )
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_transition_percentage_overrides_requested_percentage() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            created = await _create(session, users)

            updated = await task_service.update_task(
                session,
                actor=Actor.from_user(users["alice"]),
                task_id=created.id,
                updates={"status": "completed", "completion_percentage": 40},
            )

            assert updated.completion_percentage == 100
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_generic_update_moves_to_in_progress_and_refreshes_updated_at() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            created = await _create(session, users)

            updated = await task_service.update_task(
                session,
                actor=Actor.from_user(users["bob"]),
                task_id=created.id,
                updates={"status": "in_progress", "completion_percentage": 35, "title": "Q3 report"},
            )

            assert updated.status == "in_progress"
            assert updated.completion_percentage == 35
            assert updated.title == "Q3 report"
            assert updated.updated_at >= created.updated_at
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_update_rejects_unknown_fields_and_bad_values_without_writing() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            created = await _create(session, users)
            admin = Actor.from_user(users["admin"])
            alice_id = users["alice"].id

            with pytest.raises(ValidationError, match="created_by"):
                await task_service.update_task(
                    session,
                    actor=admin,
                    task_id=created.id,
                    updates={"created_by": users["bob"].id},
                )
            with pytest.raises(ValidationError, match="between 0 and 100"):
                await task_service.update_task(
                    session,
                    actor=admin,
                    task_id=created.id,
                    updates={"completion_percentage": 101},
                )
            with pytest.raises(ValidationError, match="existing user"):
                await task_service.update_task(
                    session,
                    actor=admin,
                    task_id=created.id,
                    updates={"assigned_to": uuid4()},
                )
            with pytest.raises(ValidationError, match="assigned_to"):
                await task_service.update_task(
                    session,
                    actor=admin,
                    task_id=created.id,
                    updates={"title": "Renamed", "assigned_to": None},
                )

            # A later valid update must not carry the rejected title along.
            updated = await task_service.update_task(
                session,
                actor=admin,
                task_id=created.id,
                updates={"completion_percentage": 10},
            )
            assert updated.title == "Quarterly report"
            assert updated.completion_percentage == 10
            assert updated.assigned_to == alice_id
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_reassignment_updates_join_data() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            created = await _create(session, users)

            updated = await task_service.update_task(
                session,
                actor=Actor.from_user(users["admin"]),
                task_id=created.id,
                updates={"assigned_to": users["bob"].id},
            )

            assert updated.assigned_to == users["bob"].id
            assert updated.assigned_username == "bob"
            bob_tasks = await task_service.list_tasks_for_user(session, users["bob"].id)
            assert [task.id for task in bob_tasks] == [created.id]
            assert await task_service.list_tasks_for_user(session, users["alice"].id) == []
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_create_and_delete_are_admin_only() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            lead = Actor.from_user(users["lead"])

            with pytest.raises(ForbiddenError):
                await task_service.create_task(
                    session,
                    actor=lead,
                    title="t",
                    description="d",
                    due_date=datetime.now(UTC),
                    assigned_to=users["alice"].id,
                )
            created = await _create(session, users)
            with pytest.raises(ForbiddenError):
                await task_service.delete_task(session, actor=lead, task_id=created.id)

            admin = Actor.from_user(users["admin"])
            await task_service.delete_task(session, actor=admin, task_id=created.id)
            assert await Task.objects.by_id(created.id).first(session) is None
            with pytest.raises(NotFoundError):
                await task_service.delete_task(session, actor=admin, task_id=created.id)
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_create_requires_existing_assignee() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)

            with pytest.raises(ValidationError, match="assigned_to"):
                await _create(session, users, assigned_to=uuid4())
            assert await task_service.list_tasks(session) == []
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_unknown_task_is_not_found() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)

            with pytest.raises(NotFoundError):
                await task_service.complete_task(
                    session,
                    actor=Actor.from_user(users["admin"]),
                    task_id=uuid4(),
                )
    finally:
        await engine.dispose()


@pytest.mark.asyncio
async def test_role_change_is_visible_in_task_listing() -> None:
    engine = await _make_engine()
    try:
        async with AsyncSession(engine, expire_on_commit=False) as session:
            users = await _seed_users(session)
            await _create(session, users)

            with pytest.raises(ForbiddenError):
                await set_user_role(
                    session,
                    actor=Actor.from_user(users["bob"]),
                    user_id=users["alice"].id,
                    role=UserRole.TEAM_LEAD,
                )
            await set_user_role(
                session,
                actor=Actor.from_user(users["admin"]),
                user_id=users["alice"].id,
                role=UserRole.TEAM_LEAD,
            )

            listed = await task_service.list_tasks(session)
            assert [task.assigned_role for task in listed] == [UserRole.TEAM_LEAD]
    finally:
        await engine.dispose()
