"""Immutable filter criteria handed to the storage adapter.

Every tuple-valued dimension is OR-ed internally; an empty tuple places no
constraint on that dimension. Dimensions combine with AND.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

from work_router.models import WorkbasketPermission, WorkbasketType


class QueryName(str, Enum):
    """Named criteria queries understood by the storage adapter."""

    CLASSIFICATIONS = "query_classification"
    WORKBASKETS = "query_workbasket"


@dataclass(slots=True, frozen=True)
class ClassificationCriteria:
    key: tuple[str, ...] = ()
    parent_classification_key: tuple[str, ...] = ()
    category: tuple[str, ...] = ()
    type: tuple[str, ...] = ()
    domain: tuple[str, ...] = ()
    valid_in_domain: bool | None = None
    created: tuple[date, ...] = ()
    name: tuple[str, ...] = ()
    description_like: str | None = None
    priority: tuple[int, ...] = ()
    service_level: tuple[str, ...] = ()
    application_entry_point: tuple[str, ...] = ()
    custom_fields: tuple[str, ...] = ()
    valid_from: tuple[date, ...] = ()
    valid_until: tuple[date, ...] = ()


@dataclass(slots=True, frozen=True)
class WorkbasketCriteria:
    key: tuple[str, ...] = ()
    domain: tuple[str, ...] = ()
    type: tuple[WorkbasketType, ...] = ()
    name: tuple[str, ...] = ()
    created_after: datetime | None = None
    created_before: datetime | None = None
    modified_after: datetime | None = None
    modified_before: datetime | None = None
    description_like: str | None = None
    owner: tuple[str, ...] = ()
    access_ids: tuple[str, ...] = ()
    permission: WorkbasketPermission | None = None

    @property
    def is_authorization_scoped(self) -> bool:
        return self.permission is not None and bool(self.access_ids)
