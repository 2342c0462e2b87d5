"""Translate criteria objects into SQL predicates."""

from __future__ import annotations

from datetime import date
from typing import Any

from sqlalchemy import ColumnElement, and_, func, or_
from sqlmodel import col, select

from work_router.models import CUSTOM_FIELD_COUNT, WorkbasketPermission
from work_router.query.criteria import ClassificationCriteria, WorkbasketCriteria
from work_router.storage.common import to_db_datetime
from work_router.storage.sqlmodel_models import (
    ClassificationRow,
    WorkbasketAccessRow,
    WorkbasketRow,
)

PERMISSION_COLUMNS: dict[WorkbasketPermission, str] = {
    WorkbasketPermission.OPEN: "perm_open",
    WorkbasketPermission.READ: "perm_read",
    WorkbasketPermission.APPEND: "perm_append",
    WorkbasketPermission.TRANSFER: "perm_transfer",
    WorkbasketPermission.DISTRIBUTE: "perm_distribute",
    WorkbasketPermission.CUSTOM_1: "perm_custom_1",
    WorkbasketPermission.CUSTOM_2: "perm_custom_2",
    WorkbasketPermission.CUSTOM_3: "perm_custom_3",
    WorkbasketPermission.CUSTOM_4: "perm_custom_4",
    WorkbasketPermission.CUSTOM_5: "perm_custom_5",
    WorkbasketPermission.CUSTOM_6: "perm_custom_6",
    WorkbasketPermission.CUSTOM_7: "perm_custom_7",
    WorkbasketPermission.CUSTOM_8: "perm_custom_8",
}

_CLASSIFICATION_CUSTOM_COLUMNS = tuple(
    f"custom_{index}" for index in range(1, CUSTOM_FIELD_COUNT + 1)
)


def classification_conditions(criteria: ClassificationCriteria) -> list[ColumnElement[bool]]:
    """Build the AND-ed predicate list for a classification query."""

    conditions: list[ColumnElement[bool]] = []
    _add_in(conditions, ClassificationRow.key, criteria.key)
    _add_in(
        conditions,
        ClassificationRow.parent_classification_key,
        criteria.parent_classification_key,
    )
    _add_in(conditions, ClassificationRow.category, criteria.category)
    _add_in(conditions, ClassificationRow.type, criteria.type)
    _add_in(conditions, ClassificationRow.domain, criteria.domain)
    if criteria.valid_in_domain is not None:
        conditions.append(col(ClassificationRow.valid_in_domain) == criteria.valid_in_domain)
    if criteria.created:
        conditions.append(
            func.date(col(ClassificationRow.created)).in_(_iso_dates(criteria.created)),
        )
    _add_in(conditions, ClassificationRow.name, criteria.name)
    if criteria.description_like is not None:
        conditions.append(col(ClassificationRow.description).like(criteria.description_like))
    _add_in(conditions, ClassificationRow.priority, criteria.priority)
    _add_in(conditions, ClassificationRow.service_level, criteria.service_level)
    _add_in(
        conditions,
        ClassificationRow.application_entry_point,
        criteria.application_entry_point,
    )
    if criteria.custom_fields:
        conditions.append(
            or_(
                *(
                    col(getattr(ClassificationRow, name)).in_(criteria.custom_fields)
                    for name in _CLASSIFICATION_CUSTOM_COLUMNS
                ),
            ),
        )
    _add_in(conditions, ClassificationRow.valid_from, criteria.valid_from)
    _add_in(conditions, ClassificationRow.valid_until, criteria.valid_until)
    return conditions


def workbasket_conditions(criteria: WorkbasketCriteria) -> list[ColumnElement[bool]]:
    """Build the AND-ed predicate list for a workbasket query."""

    conditions: list[ColumnElement[bool]] = []
    _add_in(conditions, WorkbasketRow.key, criteria.key)
    _add_in(conditions, WorkbasketRow.domain, criteria.domain)
    _add_in(conditions, WorkbasketRow.type, tuple(item.value for item in criteria.type))
    _add_in(conditions, WorkbasketRow.name, criteria.name)
    if criteria.created_after is not None:
        conditions.append(col(WorkbasketRow.created) >= to_db_datetime(criteria.created_after))
    if criteria.created_before is not None:
        conditions.append(col(WorkbasketRow.created) <= to_db_datetime(criteria.created_before))
    if criteria.modified_after is not None:
        conditions.append(col(WorkbasketRow.modified) >= to_db_datetime(criteria.modified_after))
    if criteria.modified_before is not None:
        conditions.append(col(WorkbasketRow.modified) <= to_db_datetime(criteria.modified_before))
    if criteria.description_like is not None:
        conditions.append(col(WorkbasketRow.description).like(criteria.description_like))
    _add_in(conditions, WorkbasketRow.owner, criteria.owner)
    if criteria.is_authorization_scoped and criteria.permission is not None:
        conditions.append(
            access_granted(access_ids=criteria.access_ids, permission=criteria.permission),
        )
    return conditions


def access_granted(
    *,
    access_ids: tuple[str, ...],
    permission: WorkbasketPermission,
) -> ColumnElement[bool]:
    """EXISTS an access entry for one of ``access_ids`` granting every flag in ``permission``."""

    flag_conditions = [
        col(getattr(WorkbasketAccessRow, PERMISSION_COLUMNS[flag])).is_(True)
        for flag in permission.members()
    ]
    return (
        select(WorkbasketAccessRow.id)
        .where(
            col(WorkbasketAccessRow.workbasket_key) == col(WorkbasketRow.key),
            col(WorkbasketAccessRow.access_id).in_(access_ids),
            and_(*flag_conditions),
        )
        .exists()
    )


def _add_in(
    conditions: list[ColumnElement[bool]],
    column: Any,
    values: tuple[Any, ...],
) -> None:
    if values:
        conditions.append(col(column).in_(values))


def _iso_dates(values: tuple[date, ...]) -> list[str]:
    return [value.isoformat() for value in values]
