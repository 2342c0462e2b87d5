"""SQLModel-backed storage adapter for the routing core."""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, col, delete, select

from work_router.errors import (
    AccessEntryAlreadyExistsError,
    AmbiguousResultError,
    ClassificationAlreadyExistsError,
    ClassificationNotFoundError,
    InvalidArgumentError,
    TaskNotFoundError,
    WorkbasketAlreadyExistsError,
    WorkbasketNotFoundError,
)
from work_router.models import (
    AccessControlEntry,
    Attachment,
    Classification,
    ObjectReference,
    Task,
    TaskState,
    TaskStateCount,
    Workbasket,
    WorkbasketDueCount,
    WorkbasketPermission,
    WorkbasketType,
)
from work_router.query.criteria import ClassificationCriteria, QueryName, WorkbasketCriteria
from work_router.storage.common import as_utc, to_db_datetime
from work_router.storage.predicates import (
    PERMISSION_COLUMNS,
    classification_conditions,
    workbasket_conditions,
)
from work_router.storage.session import ConnectionManager
from work_router.storage.sqlmodel_models import (
    AttachmentRow,
    ClassificationRow,
    DistributionTargetRow,
    TaskRow,
    WorkbasketAccessRow,
    WorkbasketRow,
)

logger = logging.getLogger(__name__)

_CLASSIFICATION_FIELDS = (
    "id",
    "key",
    "parent_classification_key",
    "category",
    "type",
    "domain",
    "valid_in_domain",
    "name",
    "description",
    "priority",
    "service_level",
    "application_entry_point",
    *(f"custom_{index}" for index in range(1, 11)),
    "valid_from",
    "valid_until",
)
_WORKBASKET_FIELDS = (
    "id",
    "key",
    "name",
    "domain",
    "description",
    "owner",
    *(f"custom_{index}" for index in range(1, 11)),
    *(f"org_level_{index}" for index in range(1, 5)),
)


class SQLiteStorageAdapter:
    """Executes criteria queries and typed lookups against the routing tables.

    Every public method runs inside ``connections.scope()``, so it either
    participates in an open transaction or owns a short-lived session.
    """

    def __init__(self, connections: ConnectionManager) -> None:
        self.connections = connections

    def execute(self, query_name: QueryName, criteria: Any) -> list[Any]:
        with self.connections.scope() as session:
            statement = self._criteria_statement(query_name, criteria)
            rows = session.exec(statement).all()
            return [self._map_row(query_name, row) for row in rows]

    def execute_one(self, query_name: QueryName, criteria: Any) -> Any | None:
        with self.connections.scope() as session:
            statement = self._criteria_statement(query_name, criteria).limit(2)
            rows = session.exec(statement).all()
            if len(rows) > 1:
                raise AmbiguousResultError(
                    f"{query_name.value} matched more than one row for {criteria!r}.",
                )
            if not rows:
                return None
            return self._map_row(query_name, rows[0])

    def execute_paged(
        self,
        query_name: QueryName,
        criteria: Any,
        offset: int,
        limit: int,
    ) -> list[Any]:
        if offset < 0 or limit < 0:
            raise InvalidArgumentError(
                f"offset and limit must be >= 0 (offset={offset}, limit={limit}).",
            )
        with self.connections.scope() as session:
            statement = self._criteria_statement(query_name, criteria).offset(offset).limit(limit)
            rows = session.exec(statement).all()
            return [self._map_row(query_name, row) for row in rows]

    def execute_count(self, query_name: QueryName, criteria: Any) -> int:
        with self.connections.scope() as session:
            subquery = self._criteria_statement(query_name, criteria).subquery()
            total = session.exec(select(func.count()).select_from(subquery)).one()
            return int(total)

    def find_classification(self, key: str, domain: str) -> Classification | None:
        with self.connections.scope() as session:
            row = self._classification_row(session, key=key, domain=domain)
            return _classification_from_row(row) if row is not None else None

    def find_classification_by_id(self, classification_id: str) -> Classification | None:
        with self.connections.scope() as session:
            row = session.get(ClassificationRow, classification_id)
            return _classification_from_row(row) if row is not None else None

    def list_classifications_with_key(self, key: str) -> list[Classification]:
        with self.connections.scope() as session:
            rows = session.exec(
                select(ClassificationRow)
                .where(ClassificationRow.key == key)
                .order_by(col(ClassificationRow.domain), col(ClassificationRow.id)),
            ).all()
            return [_classification_from_row(row) for row in rows]

    def list_all_classifications(self) -> list[Classification]:
        with self.connections.scope() as session:
            rows = session.exec(select(ClassificationRow).order_by(col(ClassificationRow.id))).all()
            return [_classification_from_row(row) for row in rows]

    def insert_classification(self, classification: Classification) -> None:
        with self.connections.scope() as session:
            existing = self._classification_row(
                session,
                key=classification.key,
                domain=classification.domain,
            )
            if existing is not None:
                raise _classification_exists(classification)
            row = ClassificationRow(
                created=classification.created,
                modified=classification.modified,
                **{name: getattr(classification, name) for name in _CLASSIFICATION_FIELDS},
            )
            session.add(row)
            try:
                session.flush()
            except IntegrityError as error:
                raise _classification_exists(classification) from error

    def update_classification(self, classification: Classification) -> None:
        with self.connections.scope() as session:
            row = session.get(ClassificationRow, classification.id)
            if row is None:
                raise ClassificationNotFoundError(
                    f"Classification not found: id={classification.id}",
                    key=classification.key,
                    domain=classification.domain,
                )
            clash = self._classification_row(
                session,
                key=classification.key,
                domain=classification.domain,
            )
            if clash is not None and clash.id != row.id:
                raise _classification_exists(classification)
            for name in _CLASSIFICATION_FIELDS:
                setattr(row, name, getattr(classification, name))
            row.modified = classification.modified
            session.add(row)
            try:
                session.flush()
            except IntegrityError as error:
                raise _classification_exists(classification) from error

    def find_workbasket(self, workbasket_id: str) -> Workbasket | None:
        with self.connections.scope() as session:
            row = session.get(WorkbasketRow, workbasket_id)
            return _workbasket_from_row(row) if row is not None else None

    def find_workbasket_by_key(self, key: str) -> Workbasket | None:
        with self.connections.scope() as session:
            row = session.exec(select(WorkbasketRow).where(WorkbasketRow.key == key)).one_or_none()
            return _workbasket_from_row(row) if row is not None else None

    def list_workbaskets(self) -> list[Workbasket]:
        with self.connections.scope() as session:
            rows = session.exec(select(WorkbasketRow).order_by(col(WorkbasketRow.id))).all()
            return [_workbasket_from_row(row) for row in rows]

    def insert_workbasket(self, workbasket: Workbasket) -> None:
        with self.connections.scope() as session:
            existing = session.exec(
                select(WorkbasketRow.id).where(WorkbasketRow.key == workbasket.key),
            ).first()
            if existing is not None:
                raise _workbasket_exists(workbasket)
            row = WorkbasketRow(
                created=workbasket.created,
                modified=workbasket.modified,
                type=workbasket.type.value,
                **{name: getattr(workbasket, name) for name in _WORKBASKET_FIELDS},
            )
            session.add(row)
            try:
                session.flush()
            except IntegrityError as error:
                raise _workbasket_exists(workbasket) from error

    def update_workbasket(self, workbasket: Workbasket) -> None:
        with self.connections.scope() as session:
            row = self._workbasket_row(session, workbasket.id)
            if row.key != workbasket.key:
                raise InvalidArgumentError(
                    f"Workbasket key is immutable (id={workbasket.id}, key={row.key}).",
                )
            for name in _WORKBASKET_FIELDS:
                setattr(row, name, getattr(workbasket, name))
            row.type = workbasket.type.value
            row.modified = workbasket.modified
            session.add(row)
            session.flush()

    def list_distribution_targets(self, source_id: str) -> list[Workbasket]:
        with self.connections.scope() as session:
            self._workbasket_row(session, source_id)
            rows = session.exec(
                select(WorkbasketRow)
                .join(
                    DistributionTargetRow,
                    col(DistributionTargetRow.target_id) == col(WorkbasketRow.id),
                )
                .where(DistributionTargetRow.source_id == source_id)
                .order_by(col(WorkbasketRow.id)),
            ).all()
            return [_workbasket_from_row(row) for row in rows]

    def replace_distribution_targets(self, source_id: str, target_ids: Sequence[str]) -> None:
        with self.connections.scope() as session:
            self._workbasket_row(session, source_id)
            unique_targets = list(dict.fromkeys(target_ids))
            for target_id in unique_targets:
                self._workbasket_row(session, target_id)
            session.exec(
                delete(DistributionTargetRow).where(
                    col(DistributionTargetRow.source_id) == source_id,
                ),
            )
            for target_id in unique_targets:
                session.add(DistributionTargetRow(source_id=source_id, target_id=target_id))
            session.flush()

    def add_distribution_target(self, source_id: str, target_id: str) -> bool:
        with self.connections.scope() as session:
            self._workbasket_row(session, source_id)
            self._workbasket_row(session, target_id)
            existing = session.get(DistributionTargetRow, (source_id, target_id))
            if existing is not None:
                return False
            session.add(DistributionTargetRow(source_id=source_id, target_id=target_id))
            session.flush()
            return True

    def remove_distribution_target(self, source_id: str, target_id: str) -> bool:
        with self.connections.scope() as session:
            existing = session.get(DistributionTargetRow, (source_id, target_id))
            if existing is None:
                return False
            session.delete(existing)
            session.flush()
            return True

    def insert_access_entry(self, entry: AccessControlEntry) -> None:
        with self.connections.scope() as session:
            workbasket = session.exec(
                select(WorkbasketRow.id).where(WorkbasketRow.key == entry.workbasket_key),
            ).first()
            if workbasket is None:
                raise WorkbasketNotFoundError(
                    f"Workbasket not found: key={entry.workbasket_key}",
                )
            existing = session.exec(
                select(WorkbasketAccessRow.id).where(
                    WorkbasketAccessRow.workbasket_key == entry.workbasket_key,
                    WorkbasketAccessRow.access_id == entry.access_id,
                ),
            ).first()
            if existing is not None:
                raise _access_entry_exists(entry)
            row = WorkbasketAccessRow(
                id=entry.id,
                workbasket_key=entry.workbasket_key,
                access_id=entry.access_id,
                **_permission_columns(entry.permissions),
            )
            session.add(row)
            try:
                session.flush()
            except IntegrityError as error:
                raise _access_entry_exists(entry) from error

    def update_access_entry(self, entry: AccessControlEntry) -> None:
        with self.connections.scope() as session:
            row = session.get(WorkbasketAccessRow, entry.id)
            if row is None:
                raise InvalidArgumentError(f"Access entry not found: id={entry.id}")
            for name, value in _permission_columns(entry.permissions).items():
                setattr(row, name, value)
            session.add(row)
            session.flush()

    def delete_access_entry(self, entry_id: str) -> bool:
        with self.connections.scope() as session:
            row = session.get(WorkbasketAccessRow, entry_id)
            if row is None:
                return False
            session.delete(row)
            session.flush()
            return True

    def list_access_entries(self, workbasket_key: str) -> list[AccessControlEntry]:
        with self.connections.scope() as session:
            rows = session.exec(
                select(WorkbasketAccessRow)
                .where(WorkbasketAccessRow.workbasket_key == workbasket_key)
                .order_by(col(WorkbasketAccessRow.access_id)),
            ).all()
            return [_access_entry_from_row(row) for row in rows]

    def insert_task(self, task: Task) -> None:
        with self.connections.scope() as session:
            reference = task.primary_object_reference
            session.add(
                TaskRow(
                    id=task.id,
                    created=task.created,
                    modified=task.modified,
                    claimed=task.claimed,
                    completed=task.completed,
                    planned=task.planned,
                    due=task.due,
                    name=task.name,
                    description=task.description,
                    priority=task.priority,
                    state=task.state.value,
                    classification_id=task.classification_id,
                    classification_key=task.classification_key,
                    classification_domain=task.classification_domain,
                    workbasket_id=task.workbasket_id,
                    owner=task.owner,
                    por_company=reference.company,
                    por_system=reference.system,
                    por_system_instance=reference.system_instance,
                    por_type=reference.type,
                    por_value=reference.value,
                    custom_attributes_json=_dump_attributes(task.custom_attributes),
                ),
            )
            # Attachments reference the task row.
            session.flush()
            for attachment in task.attachments:
                reference = attachment.object_reference
                session.add(
                    AttachmentRow(
                        id=attachment.id,
                        task_id=task.id,
                        created=attachment.created,
                        modified=attachment.modified,
                        classification_key=attachment.classification_key,
                        classification_domain=attachment.classification_domain,
                        ref_company=reference.company,
                        ref_system=reference.system,
                        ref_system_instance=reference.system_instance,
                        ref_type=reference.type,
                        ref_value=reference.value,
                        channel=attachment.channel,
                        received=attachment.received,
                        custom_attributes_json=_dump_attributes(attachment.custom_attributes),
                    ),
                )
            session.flush()

    def find_task(self, task_id: str) -> Task | None:
        with self.connections.scope() as session:
            row = session.get(TaskRow, task_id)
            if row is None:
                return None
            attachments = session.exec(
                select(AttachmentRow)
                .where(AttachmentRow.task_id == task_id)
                .order_by(col(AttachmentRow.id)),
            ).all()
            return _task_from_row(row, attachments)

    def update_task_state(self, task: Task) -> None:
        with self.connections.scope() as session:
            row = session.get(TaskRow, task.id)
            if row is None:
                raise TaskNotFoundError(f"Task not found: id={task.id}", task_id=task.id)
            row.state = task.state.value
            row.owner = task.owner
            row.claimed = task.claimed
            row.completed = task.completed
            row.modified = task.modified
            session.add(row)
            session.flush()

    def count_tasks_by_state(self, states: Sequence[TaskState]) -> list[TaskStateCount]:
        with self.connections.scope() as session:
            rows = session.exec(
                select(TaskRow.state, func.count())
                .where(col(TaskRow.state).in_(_state_values(states)))
                .group_by(col(TaskRow.state))
                .order_by(col(TaskRow.state)),
            ).all()
            return [
                TaskStateCount(state=TaskState(state), count=int(count)) for state, count in rows
            ]

    def count_tasks_due_since(
        self,
        *,
        workbasket_id: str,
        threshold: datetime,
        states: Sequence[TaskState],
    ) -> int:
        with self.connections.scope() as session:
            total = session.exec(
                select(func.count())
                .select_from(TaskRow)
                .where(
                    TaskRow.workbasket_id == workbasket_id,
                    col(TaskRow.due) >= to_db_datetime(threshold),
                    col(TaskRow.state).in_(_state_values(states)),
                ),
            ).one()
            return int(total)

    def count_tasks_due_since_by_workbasket(
        self,
        *,
        threshold: datetime,
        states: Sequence[TaskState],
    ) -> list[WorkbasketDueCount]:
        with self.connections.scope() as session:
            rows = session.exec(
                select(TaskRow.workbasket_id, func.count())
                .where(
                    col(TaskRow.due) >= to_db_datetime(threshold),
                    col(TaskRow.state).in_(_state_values(states)),
                )
                .group_by(col(TaskRow.workbasket_id))
                .order_by(col(TaskRow.workbasket_id)),
            ).all()
            return [
                WorkbasketDueCount(workbasket_id=workbasket_id, count=int(count))
                for workbasket_id, count in rows
            ]

    def _criteria_statement(self, query_name: QueryName, criteria: Any) -> Any:
        logger.debug("Building %s statement for %r", query_name.value, criteria)
        if query_name is QueryName.CLASSIFICATIONS:
            if not isinstance(criteria, ClassificationCriteria):
                raise TypeError(f"{query_name.value} expects ClassificationCriteria")
            return (
                select(ClassificationRow)
                .where(*classification_conditions(criteria))
                .order_by(col(ClassificationRow.id))
            )
        if query_name is QueryName.WORKBASKETS:
            if not isinstance(criteria, WorkbasketCriteria):
                raise TypeError(f"{query_name.value} expects WorkbasketCriteria")
            return (
                select(WorkbasketRow)
                .where(*workbasket_conditions(criteria))
                .order_by(col(WorkbasketRow.id))
            )
        raise ValueError(f"Unsupported query: {query_name!r}")

    def _map_row(self, query_name: QueryName, row: Any) -> Any:
        if query_name is QueryName.CLASSIFICATIONS:
            return _classification_from_row(row)
        return _workbasket_from_row(row)

    def _classification_row(
        self,
        session: Session,
        *,
        key: str,
        domain: str,
    ) -> ClassificationRow | None:
        return session.exec(
            select(ClassificationRow).where(
                ClassificationRow.key == key,
                ClassificationRow.domain == domain,
            ),
        ).one_or_none()

    def _workbasket_row(self, session: Session, workbasket_id: str) -> WorkbasketRow:
        row = session.get(WorkbasketRow, workbasket_id)
        if row is None:
            raise WorkbasketNotFoundError(
                f"Workbasket not found: id={workbasket_id}",
                workbasket_id=workbasket_id,
            )
        return row


def _classification_from_row(row: ClassificationRow) -> Classification:
    return Classification(
        created=as_utc(row.created),
        modified=as_utc(row.modified),
        **{name: getattr(row, name) for name in _CLASSIFICATION_FIELDS},
    )


def _workbasket_from_row(row: WorkbasketRow) -> Workbasket:
    return Workbasket(
        type=WorkbasketType(row.type),
        created=as_utc(row.created),
        modified=as_utc(row.modified),
        **{name: getattr(row, name) for name in _WORKBASKET_FIELDS},
    )


def _access_entry_from_row(row: WorkbasketAccessRow) -> AccessControlEntry:
    permissions = WorkbasketPermission.none()
    for flag, column in PERMISSION_COLUMNS.items():
        if getattr(row, column):
            permissions |= flag
    return AccessControlEntry(
        id=row.id,
        workbasket_key=row.workbasket_key,
        access_id=row.access_id,
        permissions=permissions,
    )


def _task_from_row(row: TaskRow, attachments: Iterable[AttachmentRow]) -> Task:
    return Task(
        id=row.id,
        workbasket_id=row.workbasket_id,
        classification_id=row.classification_id,
        classification_key=row.classification_key,
        classification_domain=row.classification_domain,
        name=row.name,
        description=row.description,
        priority=row.priority,
        owner=row.owner,
        state=TaskState(row.state),
        created=as_utc(row.created),
        modified=as_utc(row.modified),
        claimed=as_utc(row.claimed),
        completed=as_utc(row.completed),
        planned=as_utc(row.planned),
        due=as_utc(row.due),
        primary_object_reference=ObjectReference(
            company=row.por_company,
            system=row.por_system,
            system_instance=row.por_system_instance,
            type=row.por_type,
            value=row.por_value,
        ),
        custom_attributes=json.loads(row.custom_attributes_json),
        attachments=[_attachment_from_row(item) for item in attachments],
    )


def _attachment_from_row(row: AttachmentRow) -> Attachment:
    return Attachment(
        id=row.id,
        task_id=row.task_id,
        classification_key=row.classification_key,
        classification_domain=row.classification_domain,
        object_reference=ObjectReference(
            company=row.ref_company,
            system=row.ref_system,
            system_instance=row.ref_system_instance,
            type=row.ref_type,
            value=row.ref_value,
        ),
        channel=row.channel,
        received=as_utc(row.received),
        custom_attributes=json.loads(row.custom_attributes_json),
        created=as_utc(row.created),
        modified=as_utc(row.modified),
    )


def _permission_columns(permissions: WorkbasketPermission) -> dict[str, bool]:
    return {column: flag in permissions for flag, column in PERMISSION_COLUMNS.items()}


def _dump_attributes(attributes: dict[str, Any]) -> str:
    return json.dumps(attributes, ensure_ascii=False, sort_keys=True, default=str)


def _state_values(states: Sequence[TaskState]) -> list[str]:
    return [TaskState(state).value for state in states]


def _classification_exists(classification: Classification) -> ClassificationAlreadyExistsError:
    return ClassificationAlreadyExistsError(
        "Classification already exists: "
        f"key={classification.key!r} domain={classification.domain!r}",
        key=classification.key,
        domain=classification.domain,
    )


def _workbasket_exists(workbasket: Workbasket) -> WorkbasketAlreadyExistsError:
    return WorkbasketAlreadyExistsError(
        f"Workbasket already exists: key={workbasket.key!r}",
        key=workbasket.key,
    )


def _access_entry_exists(entry: AccessControlEntry) -> AccessEntryAlreadyExistsError:
    return AccessEntryAlreadyExistsError(
        "Access entry already exists: "
        f"workbasket_key={entry.workbasket_key!r} access_id={entry.access_id!r}",
        workbasket_key=entry.workbasket_key,
        access_id=entry.access_id,
    )
