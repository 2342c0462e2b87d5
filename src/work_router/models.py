"""Domain models for classifications, workbaskets, tasks and monitoring."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum, Flag, auto
from typing import Any

from work_router.errors import InvalidArgumentError

ROOT_DOMAIN = ""
DEFAULT_VALID_UNTIL = date(9999, 12, 31)
CUSTOM_FIELD_COUNT = 10
ORG_LEVEL_COUNT = 4


class WorkbasketType(str, Enum):
    """Kinds of workbaskets."""

    GROUP = "GROUP"
    PERSONAL = "PERSONAL"
    TOPIC = "TOPIC"
    CLEARANCE = "CLEARANCE"


class TaskState(str, Enum):
    """Task lifecycle states."""

    READY = "READY"
    CLAIMED = "CLAIMED"
    COMPLETED = "COMPLETED"
    TERMINATED = "TERMINATED"


class WorkbasketPermission(Flag):
    """Permission flags granted by an access control entry.

    Flags combine with ``|``; a requested combination is granted only when
    every flag in it is granted.
    """

    OPEN = auto()
    READ = auto()
    APPEND = auto()
    TRANSFER = auto()
    DISTRIBUTE = auto()
    CUSTOM_1 = auto()
    CUSTOM_2 = auto()
    CUSTOM_3 = auto()
    CUSTOM_4 = auto()
    CUSTOM_5 = auto()
    CUSTOM_6 = auto()
    CUSTOM_7 = auto()
    CUSTOM_8 = auto()

    @classmethod
    def none(cls) -> WorkbasketPermission:
        return cls(0)

    @classmethod
    def combine(cls, permissions: Any) -> WorkbasketPermission:
        """Fold a single flag or an iterable of flags into one flag set."""

        if isinstance(permissions, cls):
            return permissions
        if isinstance(permissions, str):
            raise InvalidArgumentError(
                f"Expected workbasket permission flags, got {permissions!r}; use from_names().",
            )
        combined = cls(0)
        for permission in permissions:
            if not isinstance(permission, cls):
                raise InvalidArgumentError(f"Unknown workbasket permission: {permission!r}")
            combined |= permission
        return combined

    @classmethod
    def from_names(cls, names: Any) -> WorkbasketPermission:
        combined = cls(0)
        for name in names:
            try:
                combined |= cls[name.strip().upper()]
            except KeyError as error:
                raise InvalidArgumentError(f"Unknown workbasket permission: {name!r}") from error
        return combined

    def members(self) -> list[WorkbasketPermission]:
        return [flag for flag in type(self) if flag in self]


@dataclass(slots=True)
class Classification:
    """Taxonomy entry; ``domain == ""`` marks the domain-independent root variant."""

    key: str
    domain: str = ROOT_DOMAIN
    id: str = ""
    parent_classification_key: str = ""
    category: str = ""
    type: str = ""
    valid_in_domain: bool = True
    created: datetime | None = None
    modified: datetime | None = None
    name: str = ""
    description: str = ""
    priority: int = 0
    service_level: str = ""
    application_entry_point: str = ""
    custom_1: str = ""
    custom_2: str = ""
    custom_3: str = ""
    custom_4: str = ""
    custom_5: str = ""
    custom_6: str = ""
    custom_7: str = ""
    custom_8: str = ""
    custom_9: str = ""
    custom_10: str = ""
    valid_from: date | None = None
    valid_until: date | None = None

    @property
    def is_root(self) -> bool:
        return self.domain == ROOT_DOMAIN


@dataclass(slots=True)
class ClassificationNode:
    """Classification with its children, as returned by the classification tree."""

    classification: Classification
    children: list[ClassificationNode] = field(default_factory=list)

    def walk(self) -> Iterator[Classification]:
        """Yield this node's classification and all descendants, depth first."""

        yield self.classification
        for child in self.children:
            yield from child.walk()


@dataclass(slots=True)
class Workbasket:
    """Queue into which tasks are filed."""

    key: str
    name: str = ""
    domain: str = ""
    type: WorkbasketType = WorkbasketType.GROUP
    id: str = ""
    description: str = ""
    owner: str = ""
    created: datetime | None = None
    modified: datetime | None = None
    custom_1: str = ""
    custom_2: str = ""
    custom_3: str = ""
    custom_4: str = ""
    custom_5: str = ""
    custom_6: str = ""
    custom_7: str = ""
    custom_8: str = ""
    custom_9: str = ""
    custom_10: str = ""
    org_level_1: str = ""
    org_level_2: str = ""
    org_level_3: str = ""
    org_level_4: str = ""


@dataclass(slots=True)
class AccessControlEntry:
    """Grants one access id a set of permissions on a workbasket."""

    workbasket_key: str
    access_id: str
    permissions: WorkbasketPermission = field(default_factory=WorkbasketPermission.none)
    id: str = ""

    def grants(self, required: WorkbasketPermission) -> bool:
        return (self.permissions & required) == required


@dataclass(slots=True)
class ObjectReference:
    """Compound pointer to a business object in an external system."""

    company: str = ""
    system: str = ""
    system_instance: str = ""
    type: str = ""
    value: str = ""


@dataclass(slots=True)
class Attachment:
    """Document or business object attached to a task."""

    classification_key: str
    object_reference: ObjectReference = field(default_factory=ObjectReference)
    channel: str = ""
    received: datetime | None = None
    custom_attributes: dict[str, Any] = field(default_factory=dict)
    classification_domain: str = ""
    id: str = ""
    task_id: str = ""
    created: datetime | None = None
    modified: datetime | None = None


@dataclass(slots=True)
class Task:
    """Work item filed into exactly one workbasket."""

    workbasket_id: str
    classification_key: str
    name: str = ""
    description: str = ""
    priority: int = 0
    owner: str = ""
    planned: datetime | None = None
    due: datetime | None = None
    primary_object_reference: ObjectReference = field(default_factory=ObjectReference)
    custom_attributes: dict[str, Any] = field(default_factory=dict)
    attachments: list[Attachment] = field(default_factory=list)
    id: str = ""
    state: TaskState = TaskState.READY
    classification_id: str = ""
    classification_domain: str = ""
    created: datetime | None = None
    modified: datetime | None = None
    claimed: datetime | None = None
    completed: datetime | None = None


@dataclass(slots=True, frozen=True)
class TaskStateCount:
    """Number of tasks observed in one state."""

    state: TaskState
    count: int


@dataclass(slots=True, frozen=True)
class WorkbasketDueCount:
    """Number of matching tasks due since a threshold, for one workbasket."""

    workbasket_id: str
    count: int
