"""User API schemas for registration, login, and read operations."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import Field
from sqlmodel import SQLModel

from app.models.users import UserRole

RUNTIME_ANNOTATION_TYPES = (datetime, UUID)


class UserRead(SQLModel):
    """Public user payload; never includes credential material."""

    id: UUID = Field(
        description="Internal user UUID.",
        examples=["11111111-1111-1111-1111-111111111111"],
    )
    username: str = Field(description="Unique login handle.", examples=["alex"])
    email: str = Field(description="Unique email address.", examples=["alex@example.com"])
    role: UserRole = Field(description="Workflow role.", examples=["employee"])
    created_at: datetime


class UserRoleUpdate(SQLModel):
    """Payload for an admin changing a user's role."""

    role: UserRole = Field(examples=["team_lead"])


class UserRegister(SQLModel):
    """Self-service registration payload. New accounts are employees."""

    username: str = Field(min_length=1, max_length=64, examples=["alex"])
    email: str = Field(min_length=3, max_length=254, examples=["alex@example.com"])
    password: str = Field(min_length=1, examples=["correct horse battery staple"])


class LoginRequest(SQLModel):
    """Credentials exchanged for an access token."""

    email: str = Field(min_length=1, examples=["alex@example.com"])
    password: str = Field(min_length=1)


class AuthTokenResponse(UserRead):
    """User payload plus the bearer token issued for it."""

    token: str | None = Field(
        default=None,
        description="Bearer token for the `Authorization` header; null in local auth mode.",
    )
    token_type: str = "bearer"
