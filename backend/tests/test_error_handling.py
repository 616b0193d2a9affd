# ruff: noqa

from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel, Field
from starlette.requests import Request

from app.core import error_handling
from app.core.error_handling import (
    REQUEST_ID_HEADER,
    _error_payload,
    _get_request_id,
    _http_exception_exception_handler,
    _request_validation_exception_handler,
    install_error_handling,
)
from app.services.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError


def _app_raising(exc: Exception) -> FastAPI:
    app = FastAPI()
    install_error_handling(app)

    @app.get("/raise")
    def _raise() -> None:
        raise exc

    return app


@pytest.mark.parametrize(
    ("exc", "status_code", "detail"),
    [
        (ForbiddenError("Only the assigned user or an admin can mark a task as completed"), 403, "Only the assigned user or an admin can mark a task as completed"),
        (NotFoundError(), 404, "Not found"),
        (ValidationError("assigned_to does not reference an existing user"), 422, "assigned_to does not reference an existing user"),
        (ConflictError(), 409, "Conflict"),
    ],
)
def test_service_errors_render_status_detail_and_request_id(
    exc: Exception,
    status_code: int,
    detail: str,
) -> None:
    client = TestClient(_app_raising(exc))
    resp = client.get("/raise")

    assert resp.status_code == status_code
    body = resp.json()
    assert body["detail"] == detail
    assert isinstance(body.get("request_id"), str) and body["request_id"]
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_request_validation_error_lists_field_errors():
    class Payload(BaseModel):
        completion_percentage: int = Field(ge=0, le=100)

    app = FastAPI()
    install_error_handling(app)

    @app.post("/tasks")
    def create(payload: Payload) -> dict[str, int]:
        return {"completion_percentage": payload.completion_percentage}

    client = TestClient(app)
    resp = client.post("/tasks", json={"completion_percentage": 150})

    assert resp.status_code == 422
    body = resp.json()
    assert isinstance(body["detail"], list)
    assert body["detail"][0]["loc"][-1] == "completion_percentage"
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_request_validation_error_handles_bytes_input_without_500():
    class Payload(BaseModel):
        content: str

    app = FastAPI()
    install_error_handling(app)

    @app.put("/messages")
    def edit(payload: Payload) -> dict[str, str]:
        return {"content": payload.content}

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.put(
        "/messages",
        content=b"plain-text-body",
        headers={"content-type": "text/plain"},
    )

    assert resp.status_code == 422
    assert isinstance(resp.json()["detail"], list)


def test_unhandled_exception_returns_500_with_request_id():
    client = TestClient(_app_raising(RuntimeError("boom")), raise_server_exceptions=False)
    resp = client.get("/raise")

    assert resp.status_code == 500
    body = resp.json()
    assert body["detail"] == "Internal Server Error"
    assert resp.headers.get(REQUEST_ID_HEADER) == body["request_id"]


def test_response_validation_error_returns_500():
    class Out(BaseModel):
        title: str = Field(min_length=1)

    app = FastAPI()
    install_error_handling(app)

    @app.get("/bad", response_model=Out)
    def bad() -> dict[str, str]:
        return {"title": ""}

    client = TestClient(app, raise_server_exceptions=False)
    resp = client.get("/bad")

    assert resp.status_code == 500
    assert resp.json()["detail"] == "Internal Server Error"


def test_client_provided_request_id_is_trimmed_and_preserved():
    client = TestClient(_app_raising(NotFoundError("Task not found")))
    resp = client.get("/raise", headers={REQUEST_ID_HEADER: "  req-123  "})

    assert resp.status_code == 404
    assert resp.json()["request_id"] == "req-123"
    assert resp.headers.get(REQUEST_ID_HEADER) == "req-123"


def test_slow_request_emits_slow_log(monkeypatch: pytest.MonkeyPatch) -> None:
    warnings: list[tuple[str, dict[str, object]]] = []

    def _fake_warning(message: str, *args: object, **kwargs: object) -> None:
        extra = kwargs.get("extra")
        warnings.append((message, extra if isinstance(extra, dict) else {}))

    perf_ticks = iter((10.0, 10.5))
    monkeypatch.setattr(error_handling.settings, "request_log_slow_ms", 250)
    monkeypatch.setattr(error_handling, "perf_counter", lambda: next(perf_ticks))
    monkeypatch.setattr(error_handling.logger, "warning", _fake_warning)

    app = FastAPI()
    install_error_handling(app)

    @app.get("/slow")
    def slow() -> dict[str, bool]:
        return {"ok": True}

    resp = TestClient(app).get("/slow")

    assert resp.status_code == 200
    assert any(
        message == "http.request.slow"
        and extra.get("slow_threshold_ms") == 250
        and extra.get("path") == "/slow"
        for message, extra in warnings
    )


def test_health_routes_skip_access_log_by_default(monkeypatch: pytest.MonkeyPatch) -> None:
    infos: list[str] = []
    monkeypatch.setattr(error_handling.settings, "request_log_include_health", False)
    monkeypatch.setattr(error_handling.logger, "info", lambda message, *a, **k: infos.append(message))

    app = FastAPI()
    install_error_handling(app)

    @app.get("/readyz")
    def readyz() -> dict[str, bool]:
        return {"ok": True}

    resp = TestClient(app).get("/readyz")

    assert resp.status_code == 200
    assert isinstance(resp.headers.get(REQUEST_ID_HEADER), str)
    assert "http.request.complete" not in infos


def test_get_request_id_ignores_missing_or_invalid_state() -> None:
    for state in ({}, {"request_id": 123}, {"request_id": ""}):
        req = Request({"type": "http", "headers": [], "state": state})
        assert _get_request_id(req) is None


def test_error_payload_omits_request_id_when_none() -> None:
    assert _error_payload(detail="x", request_id=None) == {"detail": "x"}


@pytest.mark.asyncio
async def test_handlers_reject_unexpected_exception_types() -> None:
    req = Request({"type": "http", "headers": [], "state": {}})
    with pytest.raises(TypeError, match="Expected RequestValidationError"):
        await _request_validation_exception_handler(req, Exception("x"))
    with pytest.raises(TypeError, match="Expected StarletteHTTPException"):
        await _http_exception_exception_handler(req, Exception("x"))


def test_json_safe_decodes_bytes_and_stringifies_unknown_values() -> None:
    assert error_handling._json_safe(b"\xff") == "�"
    assert error_handling._json_safe(bytearray(b"ok")) == "ok"
    assert error_handling._json_safe({"ids": (1, 2)}) == {"ids": [1, 2]}

    class Weird:
        def __str__(self) -> str:
            return "weird"

    assert error_handling._json_safe(Weird()) == "weird"
