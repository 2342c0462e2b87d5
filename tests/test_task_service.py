from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import UTC, datetime, timedelta

import allure
import pytest

from work_router.engine import WorkRouterEngine
from work_router.errors import (
    ClassificationNotFoundError,
    InvalidArgumentError,
    InvalidStateError,
    NotAuthorizedError,
    TaskNotFoundError,
    WorkbasketNotFoundError,
)
from work_router.models import (
    AccessControlEntry,
    Attachment,
    ObjectReference,
    Task,
    TaskState,
    Workbasket,
    WorkbasketPermission,
)

EngineFactory = Callable[..., WorkRouterEngine]

pytestmark = [
    allure.epic("Routing Core"),
    allure.feature("Task Lifecycle"),
]

PLANNED = datetime(2026, 3, 2, 8, 0, tzinfo=UTC)


def _setup(engine: WorkRouterEngine) -> Workbasket:
    engine.classifications.create_classification(
        replace(engine.classifications.new_classification("L10000"), service_level="P2D"),
    )
    engine.classifications.create_classification(
        replace(
            engine.classifications.new_classification("L10000", "DOMAIN_A"),
            service_level="PT4H",
        ),
    )
    engine.classifications.create_classification(
        engine.classifications.new_classification("DOCTYPE_DEFAULT"),
    )
    return engine.workbaskets.create_workbasket(Workbasket(key="GPK_KSC", domain="DOMAIN_A"))


def test_create_task_snapshots_domain_classification(engine: WorkRouterEngine) -> None:
    workbasket = _setup(engine)

    task = engine.tasks.create_task(
        Task(
            workbasket_id=workbasket.id,
            classification_key="L10000",
            name="Change address",
            planned=PLANNED,
            primary_object_reference=ObjectReference(
                company="MyCompany1",
                system="MySystem1",
                system_instance="MyInstance1",
                type="MyType1",
                value="00000001",
            ),
            custom_attributes={"channel": "mail", "pages": 3},
        ),
    )

    assert task.id.startswith("TKI:")
    assert task.state is TaskState.READY
    assert task.classification_domain == "DOMAIN_A"
    assert task.due == PLANNED + timedelta(hours=4)

    stored = engine.tasks.get_task(task.id)
    assert stored.classification_id == task.classification_id
    assert stored.due == PLANNED + timedelta(hours=4)
    assert stored.primary_object_reference.value == "00000001"
    assert stored.custom_attributes == {"channel": "mail", "pages": 3}


def test_create_task_falls_back_to_root_classification(engine: WorkRouterEngine) -> None:
    _setup(engine)
    other = engine.workbaskets.create_workbasket(Workbasket(key="OTHER", domain="DOMAIN_B"))

    task = engine.tasks.create_task(
        Task(workbasket_id=other.id, classification_key="L10000", planned=PLANNED),
    )

    assert task.classification_domain == ""
    assert task.due == PLANNED + timedelta(days=2)


def test_explicit_due_is_kept(engine: WorkRouterEngine) -> None:
    workbasket = _setup(engine)
    due = PLANNED + timedelta(days=10)

    task = engine.tasks.create_task(
        Task(workbasket_id=workbasket.id, classification_key="L10000", planned=PLANNED, due=due),
    )

    assert engine.tasks.get_task(task.id).due == due


def test_attachments_are_persisted_with_resolved_classification(
    engine: WorkRouterEngine,
) -> None:
    workbasket = _setup(engine)

    task = engine.tasks.create_task(
        Task(
            workbasket_id=workbasket.id,
            classification_key="L10000",
            attachments=[
                Attachment(
                    classification_key="DOCTYPE_DEFAULT",
                    channel="E-MAIL",
                    object_reference=ObjectReference(value="doc-1"),
                    custom_attributes={"pages": 2},
                ),
            ],
        ),
    )

    stored = engine.tasks.get_task(task.id)
    assert len(stored.attachments) == 1
    attachment = stored.attachments[0]
    assert attachment.id.startswith("TAI:")
    assert attachment.task_id == task.id
    assert attachment.classification_domain == ""
    assert attachment.channel == "E-MAIL"
    assert attachment.object_reference.value == "doc-1"
    assert attachment.custom_attributes == {"pages": 2}
    assert attachment.received is not None


def test_create_task_validates_references(engine: WorkRouterEngine) -> None:
    workbasket = _setup(engine)

    with pytest.raises(InvalidArgumentError):
        engine.tasks.create_task(Task(workbasket_id="", classification_key="L10000"))
    with pytest.raises(WorkbasketNotFoundError):
        engine.tasks.create_task(Task(workbasket_id="WBI:missing", classification_key="L10000"))
    with pytest.raises(ClassificationNotFoundError):
        engine.tasks.create_task(Task(workbasket_id=workbasket.id, classification_key="NOPE"))


def test_create_task_requires_append_when_security_enabled(make_engine: EngineFactory) -> None:
    engine = make_engine(security_enabled=True, user_id="user_1_1")
    workbasket = _setup(engine)
    task = Task(workbasket_id=workbasket.id, classification_key="L10000")

    with pytest.raises(NotAuthorizedError):
        engine.tasks.create_task(task)

    engine.workbaskets.create_access_entry(
        AccessControlEntry(
            workbasket_key="GPK_KSC",
            access_id="user_1_1",
            permissions=WorkbasketPermission.APPEND,
        ),
    )
    assert engine.tasks.create_task(task).state is TaskState.READY


def test_lifecycle_claim_then_complete(engine: WorkRouterEngine) -> None:
    workbasket = _setup(engine)
    task = engine.tasks.create_task(Task(workbasket_id=workbasket.id, classification_key="L10000"))

    claimed = engine.tasks.claim_task(task.id, owner="user_1_1")
    completed = engine.tasks.complete_task(task.id)

    assert claimed.state is TaskState.CLAIMED
    assert claimed.claimed is not None
    assert completed.state is TaskState.COMPLETED
    stored = engine.tasks.get_task(task.id)
    assert stored.state is TaskState.COMPLETED
    assert stored.owner == "user_1_1"
    assert stored.completed is not None


def test_illegal_transitions_are_rejected(engine: WorkRouterEngine) -> None:
    workbasket = _setup(engine)
    task = engine.tasks.create_task(Task(workbasket_id=workbasket.id, classification_key="L10000"))

    with pytest.raises(InvalidStateError):
        engine.tasks.complete_task(task.id)

    engine.tasks.terminate_task(task.id)
    with pytest.raises(InvalidStateError):
        engine.tasks.claim_task(task.id)
    assert engine.tasks.get_task(task.id).state is TaskState.TERMINATED


def test_unknown_task_fails(engine: WorkRouterEngine) -> None:
    with pytest.raises(TaskNotFoundError):
        engine.tasks.get_task("TKI:missing")
