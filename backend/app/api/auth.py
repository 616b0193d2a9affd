"""Registration and password login endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, status

from app.api.deps import SESSION_DEP
from app.core.auth_mode import AuthMode
from app.core.config import settings
from app.core.security import create_access_token
from app.schemas.errors import ErrorResponse
from app.schemas.users import AuthTokenResponse, LoginRequest, UserRegister
from app.services.users import authenticate_user, register_user

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from app.models.users import User

router = APIRouter(prefix="/auth", tags=["auth"])


def _token_response(user: User) -> AuthTokenResponse:
    token = None
    if settings.auth_mode == AuthMode.JWT:
        token = create_access_token(
            subject=str(user.id),
            claims={"username": user.username, "role": user.role},
        )
    return AuthTokenResponse.model_validate({**user.model_dump(), "token": token})


@router.post(
    "/register",
    response_model=AuthTokenResponse,
    status_code=status.HTTP_201_CREATED,
    responses={status.HTTP_409_CONFLICT: {"model": ErrorResponse}},
)
async def register(
    payload: UserRegister,
    session: AsyncSession = SESSION_DEP,
) -> AuthTokenResponse:
    """Create an employee account and return it with an access token."""
    user = await register_user(
        session,
        username=payload.username,
        email=payload.email,
        password=payload.password,
    )
    return _token_response(user)


@router.post(
    "/login",
    response_model=AuthTokenResponse,
    responses={status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse}},
)
async def login(
    payload: LoginRequest,
    session: AsyncSession = SESSION_DEP,
) -> AuthTokenResponse:
    if settings.auth_mode != AuthMode.JWT:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Password login is disabled when AUTH_MODE=local",
        )
    user = await authenticate_user(session, email=payload.email, password=payload.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )
    return _token_response(user)
