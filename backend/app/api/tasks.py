"""Task CRUD and status transition endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from fastapi import APIRouter, status

from app.api.deps import ACTOR_DEP, AUTH_DEP, SESSION_DEP
from app.schemas.common import OkResponse
from app.schemas.errors import ErrorResponse
from app.schemas.tasks import TaskCreate, TaskRead, TaskUpdate
from app.services import tasks as task_service

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.core.auth import AuthContext
    from app.services.task_policy import Actor

router = APIRouter(prefix="/tasks", tags=["tasks"])

_MUTATION_RESPONSES: dict[int | str, dict[str, object]] = {
    status.HTTP_403_FORBIDDEN: {"model": ErrorResponse},
    status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
}


@router.get("", response_model=list[TaskRead])
async def list_tasks(
    session: AsyncSession = SESSION_DEP,
    _auth: AuthContext = AUTH_DEP,
) -> list[TaskRead]:
    """List every task, newest first, with assignee and creator names."""
    return await task_service.list_tasks(session)


@router.get("/user/{user_id}", response_model=list[TaskRead])
async def list_tasks_for_user(
    user_id: UUID,
    session: AsyncSession = SESSION_DEP,
    _auth: AuthContext = AUTH_DEP,
) -> list[TaskRead]:
    return await task_service.list_tasks_for_user(session, user_id)


@router.get("/{task_id}", response_model=TaskRead, responses=_MUTATION_RESPONSES)
async def get_task(
    task_id: UUID,
    session: AsyncSession = SESSION_DEP,
    _auth: AuthContext = AUTH_DEP,
) -> TaskRead:
    return await task_service.get_task_read(session, task_id)


@router.post(
    "",
    response_model=TaskRead,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_403_FORBIDDEN: {"model": ErrorResponse}},
)
async def create_task(
    payload: TaskCreate,
    session: AsyncSession = SESSION_DEP,
    actor: Actor = ACTOR_DEP,
) -> TaskRead:
    """Create a task. Admin only."""
    return await task_service.create_task(
        session,
        actor=actor,
        title=payload.title,
        description=payload.description,
        due_date=payload.due_date,
        assigned_to=payload.assigned_to,
        created_by=payload.created_by,
        status=payload.status,
        completion_percentage=payload.completion_percentage,
        attachment_url=payload.attachment_url,
    )


@router.patch("/{task_id}", response_model=TaskRead, responses=_MUTATION_RESPONSES)
@router.put("/{task_id}", response_model=TaskRead, responses=_MUTATION_RESPONSES)
async def update_task(
    task_id: UUID,
    payload: TaskUpdate,
    session: AsyncSession = SESSION_DEP,
    actor: Actor = ACTOR_DEP,
) -> TaskRead:
    """Apply a partial update; status changes go through the workflow policy."""
    return await task_service.update_task(
        session,
        actor=actor,
        task_id=task_id,
        updates=payload.model_dump(exclude_unset=True),
    )


@router.post("/{task_id}/complete", response_model=TaskRead, responses=_MUTATION_RESPONSES)
async def complete_task(
    task_id: UUID,
    session: AsyncSession = SESSION_DEP,
    actor: Actor = ACTOR_DEP,
) -> TaskRead:
    return await task_service.complete_task(session, actor=actor, task_id=task_id)


@router.post("/{task_id}/approve", response_model=TaskRead, responses=_MUTATION_RESPONSES)
async def approve_task(
    task_id: UUID,
    session: AsyncSession = SESSION_DEP,
    actor: Actor = ACTOR_DEP,
) -> TaskRead:
    return await task_service.approve_task(session, actor=actor, task_id=task_id)


@router.post("/{task_id}/reject", response_model=TaskRead, responses=_MUTATION_RESPONSES)
async def reject_task(
    task_id: UUID,
    session: AsyncSession = SESSION_DEP,
    actor: Actor = ACTOR_DEP,
) -> TaskRead:
    return await task_service.reject_task(session, actor=actor, task_id=task_id)


@router.delete("/{task_id}", response_model=OkResponse, responses=_MUTATION_RESPONSES)
async def delete_task(
    task_id: UUID,
    session: AsyncSession = SESSION_DEP,
    actor: Actor = ACTOR_DEP,
) -> OkResponse:
    """Delete a task. Admin only."""
    await task_service.delete_task(session, actor=actor, task_id=task_id)
    return OkResponse()
