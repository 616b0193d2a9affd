# ruff: noqa: INP001
"""Settings validation tests for auth-mode configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.auth_mode import AuthMode
from app.core.config import Settings


def test_local_mode_requires_non_empty_token() -> None:
    with pytest.raises(
        ValidationError,
        match="LOCAL_AUTH_TOKEN must be at least 50 characters and non-placeholder when AUTH_MODE=local",
    ):
        Settings(
            _env_file=None,
            auth_mode=AuthMode.LOCAL,
            local_auth_token="",
        )


def test_local_mode_requires_minimum_length() -> None:
    with pytest.raises(
        ValidationError,
        match="LOCAL_AUTH_TOKEN must be at least 50 characters and non-placeholder when AUTH_MODE=local",
    ):
        Settings(
            _env_file=None,
            auth_mode=AuthMode.LOCAL,
            local_auth_token="x" * 49,
        )


def test_local_mode_rejects_placeholder_token() -> None:
    with pytest.raises(
        ValidationError,
        match="LOCAL_AUTH_TOKEN must be at least 50 characters and non-placeholder when AUTH_MODE=local",
    ):
        Settings(
            _env_file=None,
            auth_mode=AuthMode.LOCAL,
            local_auth_token="change-me",
        )


def test_local_mode_accepts_real_token() -> None:
    token = "a" * 50
    settings = Settings(
        _env_file=None,
        auth_mode=AuthMode.LOCAL,
        local_auth_token=token,
    )

    assert settings.auth_mode == AuthMode.LOCAL
    assert settings.local_auth_token == token


def test_jwt_mode_requires_secret_key() -> None:
    with pytest.raises(
        ValidationError,
        match="JWT_SECRET_KEY must be set and non-empty when AUTH_MODE=jwt",
    ):
        Settings(
            _env_file=None,
            auth_mode=AuthMode.JWT,
            jwt_secret_key="   ",
        )


def test_workflow_flags_default_to_permissive_behaviour() -> None:
    settings = Settings(_env_file=None, auth_mode=AuthMode.JWT, jwt_secret_key="secret")

    assert settings.allow_recompletion_after_rejection is True
    assert settings.restrict_task_field_edits is False
    assert settings.access_token_expire_minutes == 1440
    assert settings.stats_top_n == 10


def test_dev_environment_enables_auto_migrate_unless_set(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("DB_AUTO_MIGRATE", raising=False)
    dev = Settings(_env_file=None, environment="dev", jwt_secret_key="secret")
    explicit = Settings(
        _env_file=None,
        environment="dev",
        jwt_secret_key="secret",
        db_auto_migrate=False,
    )

    assert dev.db_auto_migrate is True
    assert explicit.db_auto_migrate is False


def test_non_dev_environment_requires_bootstrap_admin_password(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.delenv("BOOTSTRAP_ADMIN_PASSWORD", raising=False)

    with pytest.raises(ValidationError, match="BOOTSTRAP_ADMIN_PASSWORD must be set explicitly"):
        Settings(_env_file=None, environment="production", jwt_secret_key="secret")
    with pytest.raises(ValidationError, match="BOOTSTRAP_ADMIN_PASSWORD must be set explicitly"):
        Settings(
            _env_file=None,
            environment="production",
            jwt_secret_key="secret",
            bootstrap_admin_password="   ",
        )

    configured = Settings(
        _env_file=None,
        environment="production",
        jwt_secret_key="secret",
        bootstrap_admin_password="a-real-password",
    )
    dev = Settings(_env_file=None, environment="dev", jwt_secret_key="secret")

    assert configured.bootstrap_admin_password == "a-real-password"
    assert dev.bootstrap_admin_password == "admin123"
