"""Error taxonomy shared by services, query builders and the storage adapter."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class WorkRouterError(Exception):
    """Base error raised by the routing core."""

    message: str
    code: str = "work_router_error"

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class InvalidArgumentError(WorkRouterError):
    """Required input is missing, empty or malformed."""

    code: str = "invalid_argument"


@dataclass(slots=True)
class NotFoundError(WorkRouterError):
    """Lookup did not match any persisted entity."""

    code: str = "not_found"


@dataclass(slots=True)
class ClassificationNotFoundError(NotFoundError):
    key: str | None = None
    domain: str | None = None
    code: str = "classification_not_found"


@dataclass(slots=True)
class WorkbasketNotFoundError(NotFoundError):
    workbasket_id: str | None = None
    code: str = "workbasket_not_found"


@dataclass(slots=True)
class TaskNotFoundError(NotFoundError):
    task_id: str | None = None
    code: str = "task_not_found"


@dataclass(slots=True)
class AlreadyExistsError(WorkRouterError):
    """Create would violate a uniqueness constraint."""

    code: str = "already_exists"


@dataclass(slots=True)
class ClassificationAlreadyExistsError(AlreadyExistsError):
    key: str | None = None
    domain: str | None = None
    code: str = "classification_already_exists"


@dataclass(slots=True)
class WorkbasketAlreadyExistsError(AlreadyExistsError):
    key: str | None = None
    code: str = "workbasket_already_exists"


@dataclass(slots=True)
class AccessEntryAlreadyExistsError(AlreadyExistsError):
    workbasket_key: str | None = None
    access_id: str | None = None
    code: str = "access_entry_already_exists"


@dataclass(slots=True)
class NotAuthorizedError(WorkRouterError):
    """Entity exists but the caller lacks the required permission."""

    code: str = "not_authorized"


@dataclass(slots=True)
class AmbiguousResultError(WorkRouterError):
    """A single-result query matched more than one row."""

    code: str = "ambiguous_result"


@dataclass(slots=True)
class InvalidStateError(WorkRouterError):
    """Requested task state transition is not allowed."""

    code: str = "invalid_state"
