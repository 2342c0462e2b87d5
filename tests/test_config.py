from __future__ import annotations

from pathlib import Path

import allure
import pytest

from work_router.config import (
    ConnectionManagementMode,
    DatabaseSettings,
    SecuritySettings,
    Settings,
    UserContextSettings,
)

pytestmark = [
    allure.epic("Routing Core"),
    allure.feature("Configuration"),
]


def test_from_env_defaults() -> None:
    settings = Settings.from_env()

    assert settings.db_path == Path(".work_router.db")
    assert settings.database.busy_timeout_ms == 5000
    assert settings.database.connection_mode is ConnectionManagementMode.AUTOCOMMIT
    assert settings.security.security_enabled is False
    assert settings.security.lowercase_access_ids is True
    assert settings.user_context.access_ids == ("default_user",)


def test_from_env_reads_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORK_ROUTER_DB_PATH", "/tmp/routing.db")
    monkeypatch.setenv("WORK_ROUTER_BUSY_TIMEOUT_MS", "250")
    monkeypatch.setenv("WORK_ROUTER_CONNECTION_MODE", " Explicit ")
    monkeypatch.setenv("WORK_ROUTER_SECURITY_ENABLED", "yes")
    monkeypatch.setenv("WORK_ROUTER_LOWERCASE_ACCESS_IDS", "off")
    monkeypatch.setenv("WORK_ROUTER_USER_ID", "Max")
    monkeypatch.setenv("WORK_ROUTER_GROUP_IDS", "team-a, team-b,,team-a")

    settings = Settings.from_env()

    assert settings.db_path == Path("/tmp/routing.db")
    assert settings.database.busy_timeout_ms == 250
    assert settings.database.connection_mode is ConnectionManagementMode.EXPLICIT
    assert settings.security.security_enabled is True
    assert settings.security.lowercase_access_ids is False
    assert settings.user_context.access_ids == ("Max", "team-a", "team-b")


def test_explicit_db_path_wins_over_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    monkeypatch.setenv("WORK_ROUTER_DB_PATH", "/tmp/ignored.db")

    settings = Settings.from_env(db_path=tmp_path / "cli.db")

    assert settings.db_path == tmp_path / "cli.db"


def test_invalid_boolean_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORK_ROUTER_SECURITY_ENABLED", "maybe")

    with pytest.raises(ValueError, match="WORK_ROUTER_SECURITY_ENABLED"):
        Settings.from_env()


def test_invalid_connection_mode_is_rejected(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("WORK_ROUTER_CONNECTION_MODE", "pooled")

    with pytest.raises(ValueError, match="WORK_ROUTER_CONNECTION_MODE"):
        Settings.from_env()


def test_validate_rejects_non_positive_busy_timeout() -> None:
    settings = Settings(database=DatabaseSettings(busy_timeout_ms=0))

    with pytest.raises(ValueError, match="WORK_ROUTER_BUSY_TIMEOUT_MS"):
        settings.validate()


def test_validate_requires_identity_when_security_enabled() -> None:
    settings = Settings(
        security=SecuritySettings(security_enabled=True),
        user_context=UserContextSettings(user_id="", group_ids=()),
    )

    with pytest.raises(ValueError, match="WORK_ROUTER_USER_ID"):
        settings.validate()


def test_group_only_identity_is_accepted() -> None:
    settings = Settings(
        security=SecuritySettings(security_enabled=True),
        user_context=UserContextSettings(user_id="", group_ids=("ops",)),
    )

    settings.validate()
    assert settings.user_context.access_ids == ("ops",)
