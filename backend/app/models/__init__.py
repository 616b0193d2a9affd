"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from app.models.audit_entries import AuditEntry
from app.models.messages import Message
from app.models.tasks import Task
from app.models.users import User

__all__ = [
    "AuditEntry",
    "Message",
    "Task",
    "User",
]
