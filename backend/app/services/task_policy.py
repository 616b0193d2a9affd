"""Authorization policy for task mutations.

Every function here is a pure predicate over the actor, the task state loaded
in the current request, and the requested change. Nothing touches the
database, so callers must evaluate the policy before applying any field.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from app.models.tasks import REVIEW_STATUSES, TaskStatus
from app.models.users import UserRole

if TYPE_CHECKING:
    from uuid import UUID

    from app.models.users import User

REVIEWER_ROLES = frozenset({UserRole.TEAM_LEAD.value, UserRole.ADMIN.value})


@dataclass(frozen=True)
class Actor:
    """Identity and role of the user issuing a request."""

    user_id: UUID
    role: str

    @classmethod
    def from_user(cls, user: User) -> Actor:
        return cls(user_id=user.id, role=user.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value


@dataclass(frozen=True)
class WorkflowOptions:
    """Deployment switches for the optional workflow rules."""

    allow_recompletion_after_rejection: bool = True
    restrict_task_field_edits: bool = False


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: str = ""


ALLOW = PolicyDecision(allowed=True)


def _deny(reason: str) -> PolicyDecision:
    return PolicyDecision(allowed=False, reason=reason)


def evaluate_completion(
    actor: Actor,
    *,
    current_status: str,
    assigned_to: UUID,
    options: WorkflowOptions,
) -> PolicyDecision:
    """Decide whether `actor` may move a task into `completed`."""
    if current_status == TaskStatus.COMPLETED.value:
        return _deny("Task is already completed")
    if current_status == TaskStatus.REJECTED.value and not options.allow_recompletion_after_rejection:
        return _deny("Rejected tasks cannot be completed again")
    if actor.user_id != assigned_to and not actor.is_admin:
        return _deny("Only the assigned user or an admin can mark a task as completed")
    return ALLOW


def evaluate_review(actor: Actor, *, current_status: str) -> PolicyDecision:
    """Decide whether `actor` may approve or reject a task."""
    if current_status != TaskStatus.COMPLETED.value:
        return _deny("Only completed tasks can be approved or rejected")
    if actor.role not in REVIEWER_ROLES:
        return _deny("Only a team lead or admin can approve or reject tasks")
    return ALLOW


def evaluate_field_edit(
    actor: Actor,
    *,
    assigned_to: UUID,
    options: WorkflowOptions,
) -> PolicyDecision:
    """Decide whether `actor` may edit non-review task fields."""
    if not options.restrict_task_field_edits:
        return ALLOW
    if actor.user_id == assigned_to or actor.role in REVIEWER_ROLES:
        return ALLOW
    return _deny("Only the assigned user, a team lead, or an admin can edit this task")


def evaluate_task_update(
    actor: Actor,
    *,
    current_status: str,
    assigned_to: UUID,
    new_status: str | None,
    edits_other_fields: bool,
    options: WorkflowOptions | None = None,
) -> PolicyDecision:
    """Evaluate a task update request as a whole.

    `new_status` is the status requested by the caller, or `None` when the
    update leaves status alone. Moving between `pending` and `in_progress`
    counts as a plain field edit.
    """
    opts = options or WorkflowOptions()
    status_is_plain_edit = False
    if new_status == TaskStatus.COMPLETED.value:
        decision = evaluate_completion(
            actor,
            current_status=current_status,
            assigned_to=assigned_to,
            options=opts,
        )
        if not decision.allowed:
            return decision
    elif new_status in REVIEW_STATUSES and new_status != current_status:
        decision = evaluate_review(actor, current_status=current_status)
        if not decision.allowed:
            return decision
    elif new_status is not None:
        status_is_plain_edit = new_status != current_status

    if edits_other_fields or status_is_plain_edit:
        return evaluate_field_edit(actor, assigned_to=assigned_to, options=opts)
    return ALLOW


def can_create_task(actor: Actor) -> PolicyDecision:
    if actor.is_admin:
        return ALLOW
    return _deny("Only an admin can create tasks")


def can_delete_task(actor: Actor) -> PolicyDecision:
    if actor.is_admin:
        return ALLOW
    return _deny("Only an admin can delete tasks")


def can_set_user_role(actor: Actor) -> PolicyDecision:
    if actor.is_admin:
        return ALLOW
    return _deny("Only an admin can change user roles")
