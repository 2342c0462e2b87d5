"""Shared test fixtures."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from work_router.config import (
    ConnectionManagementMode,
    DatabaseSettings,
    SecuritySettings,
    Settings,
    UserContextSettings,
)
from work_router.engine import WorkRouterEngine

EngineFactory = Callable[..., WorkRouterEngine]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "WORK_ROUTER_DB_PATH",
        "WORK_ROUTER_BUSY_TIMEOUT_MS",
        "WORK_ROUTER_CONNECTION_MODE",
        "WORK_ROUTER_SECURITY_ENABLED",
        "WORK_ROUTER_LOWERCASE_ACCESS_IDS",
        "WORK_ROUTER_USER_ID",
        "WORK_ROUTER_GROUP_IDS",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def make_engine(tmp_path: Path) -> Iterator[EngineFactory]:
    """Build migrated engines over one SQLite file per test."""

    engines: list[WorkRouterEngine] = []

    def _make(
        *,
        security_enabled: bool = False,
        lowercase_access_ids: bool = True,
        user_id: str = "user-1",
        group_ids: tuple[str, ...] = (),
        connection_mode: ConnectionManagementMode = ConnectionManagementMode.AUTOCOMMIT,
    ) -> WorkRouterEngine:
        settings = Settings(
            database=DatabaseSettings(
                db_path=tmp_path / "work-router.db",
                connection_mode=connection_mode,
            ),
            security=SecuritySettings(
                security_enabled=security_enabled,
                lowercase_access_ids=lowercase_access_ids,
            ),
            user_context=UserContextSettings(user_id=user_id, group_ids=group_ids),
        )
        engine = WorkRouterEngine.from_settings(settings)
        engine.init_schema()
        engines.append(engine)
        return engine

    yield _make
    for engine in engines:
        engine.close()


@pytest.fixture()
def engine(make_engine: EngineFactory) -> WorkRouterEngine:
    return make_engine()
