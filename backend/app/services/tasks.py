"""Task store operations guarded by the task authorization policy.

Every mutation loads the task, evaluates the policy against that state, and
only then applies fields validated by the allow-listed parsers below. A request
either commits all of its changes in one transaction or none of them.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

from sqlalchemy.orm import aliased
from sqlmodel import col, select

from app.core.config import settings
from app.core.logging import get_logger
from app.core.time import utcnow
from app.models.tasks import (
    COMPLETED_PERCENTAGE,
    REJECTED_PERCENTAGE,
    Task,
    TaskStatus,
)
from app.models.users import User
from app.schemas.tasks import TaskRead
from app.services.audit import record_audit
from app.services.errors import ForbiddenError, NotFoundError, ValidationError
from app.services.task_notifications import TaskNotification, enqueue_notification
from app.services.task_policy import (
    WorkflowOptions,
    can_create_task,
    can_delete_task,
    evaluate_task_update,
)

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlmodel.ext.asyncio.session import AsyncSession
    from sqlmodel.sql.expression import Select

    from app.services.task_policy import Actor

logger = get_logger(__name__)

_Assignee = aliased(User, name="assignee")
_Creator = aliased(User, name="creator")

# Status transitions with a dedicated audit action and notification.
_TRANSITION_AUDIT_ACTIONS = {
    TaskStatus.COMPLETED.value: "task.complete",
    TaskStatus.APPROVED.value: "task.approve",
    TaskStatus.REJECTED.value: "task.reject",
}
_TRANSITION_EVENTS = {
    TaskStatus.COMPLETED.value: "task.completed",
    TaskStatus.APPROVED.value: "task.approved",
    TaskStatus.REJECTED.value: "task.rejected",
}
_TRANSITION_PERCENTAGES = {
    TaskStatus.COMPLETED.value: COMPLETED_PERCENTAGE,
    TaskStatus.REJECTED.value: REJECTED_PERCENTAGE,
}


def workflow_options() -> WorkflowOptions:
    """Build workflow switches from the current settings."""
    return WorkflowOptions(
        allow_recompletion_after_rejection=settings.allow_recompletion_after_rejection,
        restrict_task_field_edits=settings.restrict_task_field_edits,
    )


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def _required_text(field_name: str, value: object) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field_name} must be a non-empty string")
    return value.strip()


def _percentage(value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 100:
        raise ValidationError("completion_percentage must be an integer between 0 and 100")
    return value


def _status_value(value: object) -> str:
    try:
        return TaskStatus(value).value
    except ValueError as exc:
        raise ValidationError(f"Unknown task status: {value!r}") from exc


def _parse_title(value: object) -> str:
    return _required_text("title", value)


def _parse_description(value: object) -> str:
    return _required_text("description", value)


def _parse_due_date(value: object) -> datetime:
    if not isinstance(value, datetime):
        raise ValidationError("due_date must be a datetime")
    return _naive_utc(value)


def _parse_assigned_to(value: object) -> UUID:
    if not isinstance(value, UUID):
        raise ValidationError("assigned_to must be a user id")
    return value


def _parse_attachment_url(value: object) -> str | None:
    if value is not None and not isinstance(value, str):
        raise ValidationError("attachment_url must be a string or null")
    return value or None


# The only columns an update may write.
_FIELD_PARSERS: dict[str, Callable[[object], Any]] = {
    "title": _parse_title,
    "description": _parse_description,
    "status": _status_value,
    "completion_percentage": _percentage,
    "due_date": _parse_due_date,
    "assigned_to": _parse_assigned_to,
    "attachment_url": _parse_attachment_url,
}
UPDATABLE_FIELDS = frozenset(_FIELD_PARSERS)


def _stage_updates(updates: dict[str, Any]) -> dict[str, Any]:
    """Validate every requested value before any of them touches the task."""
    return {name: _FIELD_PARSERS[name](value) for name, value in updates.items()}


def _read_statement() -> Select[Any]:
    return (
        select(Task, _Assignee.username, _Assignee.role, _Creator.username)
        .outerjoin(_Assignee, col(Task.assigned_to) == _Assignee.id)
        .outerjoin(_Creator, col(Task.created_by) == _Creator.id)
    )


def _to_read(
    task: Task,
    assigned_username: str | None,
    assigned_role: str | None,
    creator_username: str | None,
) -> TaskRead:
    return TaskRead.model_validate(
        {
            **task.model_dump(),
            "assigned_username": assigned_username,
            "assigned_role": assigned_role,
            "creator_username": creator_username,
        },
    )


async def _read_rows(session: AsyncSession, statement: Select[Any]) -> list[TaskRead]:
    rows = (await session.exec(statement)).all()
    return [_to_read(*row) for row in rows]


async def get_task_read(session: AsyncSession, task_id: UUID) -> TaskRead:
    """Load one task with its join data, or raise NotFoundError."""
    rows = await _read_rows(session, _read_statement().where(col(Task.id) == task_id))
    if not rows:
        raise NotFoundError("Task not found")
    return rows[0]


async def list_tasks(session: AsyncSession) -> list[TaskRead]:
    statement = _read_statement().order_by(col(Task.created_at).desc(), col(Task.id))
    return await _read_rows(session, statement)


async def list_tasks_for_user(session: AsyncSession, user_id: UUID) -> list[TaskRead]:
    statement = (
        _read_statement()
        .where(col(Task.assigned_to) == user_id)
        .order_by(col(Task.created_at).desc(), col(Task.id))
    )
    return await _read_rows(session, statement)


async def _require_task(session: AsyncSession, task_id: UUID) -> Task:
    task = await Task.objects.by_id(task_id).first(session)
    if task is None:
        raise NotFoundError("Task not found")
    return task


async def _require_existing_user(session: AsyncSession, user_id: UUID, *, field: str) -> None:
    if await User.objects.by_id(user_id).first(session) is None:
        raise ValidationError(f"{field} does not reference an existing user")


def _notify(event_type: str, task: Task, *, targets: list[UUID], actor: Actor) -> None:
    enqueue_notification(
        TaskNotification(
            event_type=event_type,
            task_id=task.id,
            target_user_ids=targets,
            payload={"title": task.title, "status": task.status, "actor_id": str(actor.user_id)},
        ),
    )


async def create_task(
    session: AsyncSession,
    *,
    actor: Actor,
    title: str,
    description: str,
    due_date: datetime,
    assigned_to: UUID,
    created_by: UUID | None = None,
    status: TaskStatus | str = TaskStatus.PENDING,
    completion_percentage: int = 0,
    attachment_url: str | None = None,
) -> TaskRead:
    """Create a task. Admin only; assignee and creator must exist."""
    decision = can_create_task(actor)
    if not decision.allowed:
        logger.info("task.create.forbidden", extra={"actor_id": str(actor.user_id)})
        raise ForbiddenError(decision.reason)
    creator_id = created_by or actor.user_id
    await _require_existing_user(session, assigned_to, field="assigned_to")
    await _require_existing_user(session, creator_id, field="created_by")

    now = utcnow()
    task = Task(
        title=_required_text("title", title),
        description=_required_text("description", description),
        status=_status_value(status),
        completion_percentage=_percentage(completion_percentage),
        due_date=_naive_utc(due_date),
        assigned_to=assigned_to,
        created_by=creator_id,
        attachment_url=attachment_url or None,
        created_at=now,
        updated_at=now,
    )
    session.add(task)
    await record_audit(
        session,
        actor_id=actor.user_id,
        action="task.create",
        target_type="task",
        target_id=task.id,
        payload={"assigned_to": str(assigned_to), "status": task.status},
    )
    await session.commit()
    logger.info(
        "task.create.success",
        extra={"task_id": str(task.id), "assigned_to": str(assigned_to)},
    )
    _notify("task.assigned", task, targets=[task.assigned_to], actor=actor)
    return await get_task_read(session, task.id)


async def update_task(
    session: AsyncSession,
    *,
    actor: Actor,
    task_id: UUID,
    updates: dict[str, Any],
    options: WorkflowOptions | None = None,
) -> TaskRead:
    """Apply a partial update after the policy approves the whole request.

    `updates` may only name fields in `UPDATABLE_FIELDS`. A transition into
    `completed` or `rejected` fixes the completion percentage to 100 or 70
    regardless of any percentage in the same request.
    """
    unknown = sorted(set(updates) - UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(unknown)}")
    if not updates:
        raise ValidationError("No fields to update")

    task = await _require_task(session, task_id)
    current_status = task.status
    new_status = _status_value(updates["status"]) if "status" in updates else None
    decision = evaluate_task_update(
        actor,
        current_status=current_status,
        assigned_to=task.assigned_to,
        new_status=new_status,
        edits_other_fields=any(name != "status" for name in updates),
        options=options or workflow_options(),
    )
    if not decision.allowed:
        logger.info(
            "task.update.forbidden",
            extra={
                "task_id": str(task.id),
                "actor_id": str(actor.user_id),
                "from_status": current_status,
                "to_status": new_status,
                "reason": decision.reason,
            },
        )
        raise ForbiddenError(decision.reason)

    staged = _stage_updates(updates)
    if "assigned_to" in staged:
        await _require_existing_user(session, staged["assigned_to"], field="assigned_to")

    for name, value in staged.items():
        setattr(task, name, value)
    transitioned = new_status is not None and new_status != current_status
    if transitioned and new_status in _TRANSITION_PERCENTAGES:
        task.completion_percentage = _TRANSITION_PERCENTAGES[new_status]
    task.updated_at = utcnow()
    session.add(task)

    transition = new_status if transitioned and new_status in _TRANSITION_EVENTS else None
    await record_audit(
        session,
        actor_id=actor.user_id,
        action=_TRANSITION_AUDIT_ACTIONS[transition] if transition else "task.update",
        target_type="task",
        target_id=task.id,
        payload={
            "fields": sorted(updates),
            "from_status": current_status,
            "to_status": task.status,
        },
    )
    await session.commit()
    logger.info(
        "task.update.success",
        extra={
            "task_id": str(task.id),
            "fields": sorted(updates),
            "from_status": current_status,
            "to_status": task.status,
        },
    )
    if transition is not None:
        targets = [task.created_by] if transition == TaskStatus.COMPLETED.value else [task.assigned_to]
        _notify(_TRANSITION_EVENTS[transition], task, targets=targets, actor=actor)
    elif "assigned_to" in updates:
        _notify("task.assigned", task, targets=[task.assigned_to], actor=actor)
    return await get_task_read(session, task.id)


async def complete_task(
    session: AsyncSession,
    *,
    actor: Actor,
    task_id: UUID,
    options: WorkflowOptions | None = None,
) -> TaskRead:
    return await update_task(
        session,
        actor=actor,
        task_id=task_id,
        updates={"status": TaskStatus.COMPLETED.value},
        options=options,
    )


async def approve_task(
    session: AsyncSession,
    *,
    actor: Actor,
    task_id: UUID,
    options: WorkflowOptions | None = None,
) -> TaskRead:
    return await update_task(
        session,
        actor=actor,
        task_id=task_id,
        updates={"status": TaskStatus.APPROVED.value},
        options=options,
    )


async def reject_task(
    session: AsyncSession,
    *,
    actor: Actor,
    task_id: UUID,
    options: WorkflowOptions | None = None,
) -> TaskRead:
    return await update_task(
        session,
        actor=actor,
        task_id=task_id,
        updates={"status": TaskStatus.REJECTED.value},
        options=options,
    )


async def delete_task(session: AsyncSession, *, actor: Actor, task_id: UUID) -> None:
    """Delete a task. Admin only."""
    decision = can_delete_task(actor)
    if not decision.allowed:
        logger.info("task.delete.forbidden", extra={"actor_id": str(actor.user_id)})
        raise ForbiddenError(decision.reason)
    task = await _require_task(session, task_id)
    await record_audit(
        session,
        actor_id=actor.user_id,
        action="task.delete",
        target_type="task",
        target_id=task.id,
        payload={"title": task.title},
    )
    await session.delete(task)
    await session.commit()
    logger.info("task.delete.success", extra={"task_id": str(task_id)})
