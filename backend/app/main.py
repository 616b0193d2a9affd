"""FastAPI application entrypoint and router wiring for the backend."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import APIRouter, FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_pagination import add_pagination
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.api.audit import router as audit_router
from app.api.auth import router as auth_router
from app.api.messages import router as messages_router
from app.api.stats import router as stats_router
from app.api.tasks import router as tasks_router
from app.api.users import router as users_router
from app.core.config import settings
from app.core.error_handling import install_error_handling
from app.core.logging import configure_logging, get_logger
from app.db.session import async_engine, async_session_maker, init_db
from app.schemas.health import HealthStatusResponse
from app.services.users import ensure_bootstrap_admin

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

configure_logging()
logger = get_logger(__name__)
OPENAPI_TAGS = [
    {"name": "auth", "description": "Account registration and password login."},
    {"name": "health", "description": "Service liveness/readiness probes."},
    {"name": "users", "description": "User directory and role management."},
    {"name": "tasks", "description": "Task assignment and the review workflow."},
    {"name": "stats", "description": "Top performer statistics."},
    {"name": "messages", "description": "Direct messages and the chat event stream."},
    {"name": "audit", "description": "Audit trail of task and role changes."},
]


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    """Initialize the schema and bootstrap admin before serving requests."""
    logger.info(
        "app.lifecycle.starting",
        extra={"environment": settings.environment, "db_auto_migrate": settings.db_auto_migrate},
    )
    await init_db()
    async with async_session_maker() as session:
        await ensure_bootstrap_admin(session)
    logger.info("app.lifecycle.started")
    try:
        yield
    finally:
        logger.info("app.lifecycle.stopped")


app = FastAPI(
    title="Taskflow API",
    version="0.1.0",
    lifespan=lifespan,
    openapi_tags=OPENAPI_TAGS,
)

origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-Id"],
    )
    logger.info("app.cors.enabled", extra={"origins_count": len(origins)})
else:
    logger.info("app.cors.disabled")

install_error_handling(app)


@app.get("/health", tags=["health"], response_model=HealthStatusResponse)
def health() -> HealthStatusResponse:
    """Lightweight liveness probe endpoint."""
    return HealthStatusResponse(ok=True)


@app.get("/healthz", tags=["health"], response_model=HealthStatusResponse)
def healthz() -> HealthStatusResponse:
    """Alias liveness probe endpoint for platform compatibility."""
    return HealthStatusResponse(ok=True)


@app.get(
    "/readyz",
    tags=["health"],
    response_model=HealthStatusResponse,
    responses={status.HTTP_503_SERVICE_UNAVAILABLE: {"model": HealthStatusResponse}},
)
async def readyz() -> HealthStatusResponse | JSONResponse:
    """Readiness probe; fails while the database is unreachable."""
    try:
        async with async_engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.warning("app.readiness.database_unavailable", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"ok": False},
        )
    return HealthStatusResponse(ok=True)


api_v1 = APIRouter(prefix="/api/v1")
api_v1.include_router(auth_router)
api_v1.include_router(users_router)
api_v1.include_router(tasks_router)
api_v1.include_router(stats_router)
api_v1.include_router(messages_router)
api_v1.include_router(audit_router)
app.include_router(api_v1)

add_pagination(app)
logger.debug("app.routes.registered", extra={"count": len(app.routes)})
