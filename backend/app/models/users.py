"""User account model and role constants."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from sqlmodel import Field

from app.core.time import utcnow
from app.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class UserRole(str, Enum):
    """Workflow roles, from least to most privileged."""

    EMPLOYEE = "employee"
    TEAM_LEAD = "team_lead"
    ADMIN = "admin"



class User(QueryModel, table=True):
    """Registered account; the password hash never leaves the service layer."""

    __tablename__ = "users"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    username: str = Field(unique=True, index=True)
    email: str = Field(unique=True, index=True)
    password_hash: str
    role: str = Field(default=UserRole.EMPLOYEE.value, index=True)
    created_at: datetime = Field(default_factory=utcnow)
