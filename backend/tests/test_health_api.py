# ruff: noqa: INP001
"""Smoke tests for the assembled application and its probes."""

from __future__ import annotations

import pytest
from httpx import ASGITransport, AsyncClient

from app.main import app


@pytest.mark.asyncio
@pytest.mark.parametrize("path", ["/health", "/healthz", "/readyz"])
async def test_probes_report_ok(path: str) -> None:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://testserver") as client:
        resp = await client.get(path)

    assert resp.status_code == 200
    assert resp.json() == {"ok": True}
    assert resp.headers.get("X-Request-Id")


def test_api_routes_are_mounted_under_v1() -> None:
    paths = {getattr(route, "path", "") for route in app.routes}

    for expected in (
        "/api/v1/auth/register",
        "/api/v1/auth/login",
        "/api/v1/users/me",
        "/api/v1/users/{user_id}/role",
        "/api/v1/tasks",
        "/api/v1/tasks/{task_id}/complete",
        "/api/v1/tasks/{task_id}/approve",
        "/api/v1/tasks/{task_id}/reject",
        "/api/v1/stats/top-performers",
        "/api/v1/messages/stream",
        "/api/v1/audit",
    ):
        assert expected in paths
