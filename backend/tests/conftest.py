# ruff: noqa: INP001
"""Pytest configuration shared across backend tests."""

import os
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Tests should fail fast if auth-mode wiring breaks, but still need deterministic
# defaults during import-time settings initialization, regardless of shell env.
os.environ["AUTH_MODE"] = "jwt"
os.environ["JWT_SECRET_KEY"] = "test-jwt-secret-0123456789-0123456789-0123456789"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"
os.environ["DB_AUTO_MIGRATE"] = "false"
os.environ["BOOTSTRAP_ADMIN_PASSWORD"] = "test-admin-password"


@pytest.fixture(autouse=True)
def sent_notifications(monkeypatch: pytest.MonkeyPatch) -> list[object]:
    """Capture task notifications instead of pushing them to Redis."""
    sent: list[object] = []

    def _capture(notification: object) -> bool:
        sent.append(notification)
        return True

    monkeypatch.setattr("app.services.tasks.enqueue_notification", _capture)
    return sent
