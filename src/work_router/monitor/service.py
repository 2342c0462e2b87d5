"""Aggregate task counts for monitoring dashboards."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import UTC, datetime, time, timedelta

from work_router.errors import InvalidArgumentError
from work_router.models import TaskState, TaskStateCount, WorkbasketDueCount
from work_router.storage.common import utc_today
from work_router.storage.repository import SQLiteStorageAdapter

logger = logging.getLogger(__name__)


class TaskMonitorService:
    """Counts tasks by state and by due date."""

    def __init__(self, *, storage: SQLiteStorageAdapter) -> None:
        self.storage = storage

    def count_by_state(self, states: Sequence[TaskState]) -> list[TaskStateCount]:
        """Counts for the requested states; states without tasks are omitted."""

        return self.storage.count_tasks_by_state(_require_states(states))

    def count_for_workbasket_since(
        self,
        workbasket_id: str,
        days_in_past: int,
        states: Sequence[TaskState],
    ) -> int:
        threshold = due_threshold(days_in_past)
        logger.debug(
            "Counting tasks of workbasket %s due since %s",
            workbasket_id,
            threshold.isoformat(),
        )
        return self.storage.count_tasks_due_since(
            workbasket_id=workbasket_id,
            threshold=threshold,
            states=_require_states(states),
        )

    def count_by_workbasket_since(
        self,
        days_in_past: int,
        states: Sequence[TaskState],
    ) -> list[WorkbasketDueCount]:
        return self.storage.count_tasks_due_since_by_workbasket(
            threshold=due_threshold(days_in_past),
            states=_require_states(states),
        )


def due_threshold(days_in_past: int) -> datetime:
    """Midnight UTC of ``today - days_in_past``; negative values look ahead."""

    day = utc_today() - timedelta(days=days_in_past)
    return datetime.combine(day, time.min, tzinfo=UTC)


def _require_states(states: Sequence[TaskState]) -> list[TaskState]:
    if not states:
        raise InvalidArgumentError("At least one task state is required.")
    return [TaskState(state) for state in states]
