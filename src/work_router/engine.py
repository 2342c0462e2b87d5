"""Wiring of storage, connection lifecycle and services."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from sqlmodel import Session

from work_router.classification.service import ClassificationService
from work_router.config import ConnectionManagementMode, Settings
from work_router.monitor.service import TaskMonitorService
from work_router.security import IdentityContext, StaticIdentityContext
from work_router.storage.alembic_runner import upgrade_head
from work_router.storage.common import build_sqlite_engine
from work_router.storage.repository import SQLiteStorageAdapter
from work_router.storage.session import ConnectionManager
from work_router.task.service import TaskService
from work_router.workbasket.service import WorkbasketService

logger = logging.getLogger(__name__)


class WorkRouterEngine:
    """Entry point that owns the database engine and exposes the services.

    >>> engine = WorkRouterEngine.from_settings(Settings.from_env())  # doctest: +SKIP
    >>> engine.init_schema()  # doctest: +SKIP
    >>> engine.classifications.get_classification("L10000", "DOMAIN_A")  # doctest: +SKIP
    """

    def __init__(self, *, settings: Settings, identity: IdentityContext) -> None:
        self.settings = settings
        self.identity = identity
        self.db_engine = build_sqlite_engine(
            db_path=settings.db_path,
            busy_timeout_ms=settings.database.busy_timeout_ms,
        )
        self.connections = ConnectionManager(
            self.db_engine,
            settings.database.connection_mode,
        )
        self.storage = SQLiteStorageAdapter(self.connections)
        self.classifications = ClassificationService(storage=self.storage)
        self.workbaskets = WorkbasketService(
            storage=self.storage,
            identity=identity,
            security_settings=settings.security,
        )
        self.tasks = TaskService(
            storage=self.storage,
            classifications=self.classifications,
            workbaskets=self.workbaskets,
        )
        self.monitor = TaskMonitorService(storage=self.storage)

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        identity: IdentityContext | None = None,
    ) -> WorkRouterEngine:
        settings.validate()
        return cls(
            settings=settings,
            identity=identity or StaticIdentityContext.from_settings(settings),
        )

    def init_schema(self) -> None:
        """Apply database migrations up to the latest revision."""

        self.settings.db_path.parent.mkdir(parents=True, exist_ok=True)
        upgrade_head(self.settings.db_path)
        logger.info("Schema is up to date at %s", self.settings.db_path)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run several service calls in one transaction that commits at the end."""

        with self.connections.transaction() as session:
            yield session

    def set_connection_management_mode(self, mode: ConnectionManagementMode) -> None:
        if self.connections.in_transaction:
            raise RuntimeError("Cannot switch connection management mode inside a transaction.")
        self.connections.mode = ConnectionManagementMode(mode)
        logger.debug("Connection management mode set to %s", self.connections.mode.value)

    def close(self) -> None:
        self.db_engine.dispose()
