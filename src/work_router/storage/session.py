"""Connection lifecycle: one storage session per outermost call."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from work_router.config import ConnectionManagementMode

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Scopes storage work to an acquired session and always releases it.

    In ``AUTOCOMMIT`` mode every outermost :meth:`scope` owns its session and
    commits on success. In ``EXPLICIT`` mode work must run inside
    :meth:`transaction`, which owns one session across several calls and
    commits or rolls back once. Nested scopes on the same thread participate
    in the session that is already open.
    """

    def __init__(
        self,
        engine: Engine,
        mode: ConnectionManagementMode = ConnectionManagementMode.AUTOCOMMIT,
    ) -> None:
        self.engine = engine
        self.mode = mode
        self._local = threading.local()

    @property
    def in_transaction(self) -> bool:
        return self._active_session() is not None

    @contextmanager
    def scope(self) -> Iterator[Session]:
        """Yield the session that storage work on this thread must use."""

        active = self._active_session()
        if active is not None:
            yield active
            return
        if self.mode is ConnectionManagementMode.EXPLICIT:
            raise RuntimeError(
                "Connection management mode is explicit: "
                "wrap storage calls in engine.transaction().",
            )
        with self._owned_session() as session:
            yield session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Open a caller-controlled transaction spanning several calls."""

        if self._active_session() is not None:
            raise RuntimeError("A transaction is already open on this thread.")
        with self._owned_session() as session:
            yield session

    def _active_session(self) -> Session | None:
        return getattr(self._local, "session", None)

    @contextmanager
    def _owned_session(self) -> Iterator[Session]:
        session = Session(self.engine, expire_on_commit=False)
        self._local.session = session
        pending: BaseException | None = None
        try:
            yield session
            session.commit()
        except BaseException as error:
            pending = error
            _rollback(session, error)
            raise
        finally:
            self._local.session = None
            _release(session, pending)


def _rollback(session: Session, error: BaseException) -> None:
    try:
        session.rollback()
    except SQLAlchemyError as rollback_error:
        logger.warning(
            "Rollback failed while handling %s: %s",
            type(error).__name__,
            rollback_error,
        )
        error.add_note(f"rollback failed: {rollback_error}")


def _release(session: Session, pending: BaseException | None) -> None:
    try:
        session.close()
    except SQLAlchemyError as release_error:
        if pending is None:
            raise
        logger.warning(
            "Releasing storage session failed while handling %s: %s",
            type(pending).__name__,
            release_error,
        )
        pending.add_note(f"session release failed: {release_error}")
