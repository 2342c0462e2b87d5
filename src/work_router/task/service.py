"""Task filing and state transitions."""

from __future__ import annotations

import logging
from dataclasses import replace

from work_router.classification.service import ClassificationService
from work_router.errors import InvalidArgumentError, InvalidStateError, TaskNotFoundError
from work_router.models import Attachment, Task, TaskState, WorkbasketPermission
from work_router.service_level import parse_service_level
from work_router.storage.common import as_utc, new_id, utc_now
from work_router.storage.repository import SQLiteStorageAdapter
from work_router.workbasket.service import WorkbasketService

logger = logging.getLogger(__name__)

TASK_ID_PREFIX = "TKI"
ATTACHMENT_ID_PREFIX = "TAI"

_ALLOWED_TRANSITIONS: dict[TaskState, frozenset[TaskState]] = {
    TaskState.READY: frozenset({TaskState.CLAIMED, TaskState.TERMINATED}),
    TaskState.CLAIMED: frozenset({TaskState.COMPLETED, TaskState.TERMINATED}),
    TaskState.COMPLETED: frozenset(),
    TaskState.TERMINATED: frozenset(),
}


class TaskService:
    """Files tasks into workbaskets and moves them through their lifecycle."""

    def __init__(
        self,
        *,
        storage: SQLiteStorageAdapter,
        classifications: ClassificationService,
        workbaskets: WorkbasketService,
    ) -> None:
        self.storage = storage
        self.classifications = classifications
        self.workbaskets = workbaskets

    def create_task(self, task: Task) -> Task:
        """File ``task`` into its workbasket.

        The classification is resolved in the workbasket's domain and
        snapshotted onto the task; ``due`` defaults to ``planned`` plus the
        classification service level.
        """

        if not task.workbasket_id:
            raise InvalidArgumentError("Task requires a workbasket id.")
        if not task.classification_key:
            raise InvalidArgumentError("Task requires a classification key.")

        workbasket = self.workbaskets.get_workbasket(task.workbasket_id)
        self.workbaskets.check_authorization(workbasket.key, WorkbasketPermission.APPEND)
        classification = self.classifications.get_classification(
            task.classification_key,
            workbasket.domain,
        )

        now = utc_now()
        planned = as_utc(task.planned) or now
        due = as_utc(task.due)
        if due is None and classification.service_level:
            due = planned + parse_service_level(classification.service_level)

        task_id = new_id(TASK_ID_PREFIX)
        created = replace(
            task,
            id=task_id,
            state=TaskState.READY,
            classification_id=classification.id,
            classification_domain=classification.domain,
            created=now,
            modified=now,
            claimed=None,
            completed=None,
            planned=planned,
            due=due or planned,
            attachments=[
                self._prepare_attachment(item, task_id=task_id, domain=workbasket.domain)
                for item in task.attachments
            ],
        )
        self.storage.insert_task(created)
        logger.info(
            "Filed task %s into workbasket %s (classification %s, domain %r)",
            created.id,
            workbasket.key,
            classification.key,
            classification.domain,
        )
        return created

    def get_task(self, task_id: str) -> Task:
        task = self.storage.find_task(task_id)
        if task is None:
            raise TaskNotFoundError(f"Task not found: id={task_id}", task_id=task_id)
        return task

    def claim_task(self, task_id: str, owner: str | None = None) -> Task:
        task = self.get_task(task_id)
        _require_transition(task, TaskState.CLAIMED)
        now = utc_now()
        claimed = replace(
            task,
            state=TaskState.CLAIMED,
            owner=owner if owner is not None else task.owner,
            claimed=now,
            modified=now,
        )
        self.storage.update_task_state(claimed)
        logger.info("Task %s claimed by %r", task_id, claimed.owner)
        return claimed

    def complete_task(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        _require_transition(task, TaskState.COMPLETED)
        now = utc_now()
        completed = replace(task, state=TaskState.COMPLETED, completed=now, modified=now)
        self.storage.update_task_state(completed)
        logger.info("Task %s completed", task_id)
        return completed

    def terminate_task(self, task_id: str) -> Task:
        task = self.get_task(task_id)
        _require_transition(task, TaskState.TERMINATED)
        now = utc_now()
        terminated = replace(task, state=TaskState.TERMINATED, completed=now, modified=now)
        self.storage.update_task_state(terminated)
        logger.info("Task %s terminated", task_id)
        return terminated

    def _prepare_attachment(
        self,
        attachment: Attachment,
        *,
        task_id: str,
        domain: str,
    ) -> Attachment:
        classification = self.classifications.get_classification(
            attachment.classification_key,
            domain,
        )
        now = utc_now()
        return replace(
            attachment,
            id=new_id(ATTACHMENT_ID_PREFIX),
            task_id=task_id,
            classification_domain=classification.domain,
            created=now,
            modified=now,
            received=as_utc(attachment.received) or now,
        )


def _require_transition(task: Task, target: TaskState) -> None:
    if target not in _ALLOWED_TRANSITIONS[task.state]:
        raise InvalidStateError(
            f"Task {task.id} cannot move from {task.state.value} to {target.value}.",
        )
