"""Public schema exports shared across API route modules."""

from app.schemas.audit import AuditEntryRead
from app.schemas.common import OkResponse
from app.schemas.messages import (
    MessageCreate,
    MessageDeleteAck,
    MessageRead,
    MessageUpdate,
    TypingAck,
    TypingUpdate,
)
from app.schemas.stats import TopPerformerRead, TopPerformersResponse
from app.schemas.tasks import TaskCreate, TaskRead, TaskUpdate
from app.schemas.users import (
    AuthTokenResponse,
    LoginRequest,
    UserRead,
    UserRegister,
    UserRoleUpdate,
)

__all__ = [
    "AuditEntryRead",
    "AuthTokenResponse",
    "LoginRequest",
    "MessageCreate",
    "MessageDeleteAck",
    "MessageRead",
    "MessageUpdate",
    "OkResponse",
    "TaskCreate",
    "TaskRead",
    "TaskUpdate",
    "TopPerformerRead",
    "TopPerformersResponse",
    "TypingAck",
    "TypingUpdate",
    "UserRead",
    "UserRegister",
    "UserRoleUpdate",
]
