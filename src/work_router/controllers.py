"""Controllers for work-router CLI commands."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path

from work_router.config import Settings
from work_router.engine import WorkRouterEngine
from work_router.models import (
    Classification,
    ClassificationNode,
    TaskState,
    Workbasket,
    WorkbasketPermission,
    WorkbasketType,
)


@dataclass(slots=True)
class SchemaInitCommand:
    """CLI input for schema migration."""

    db_path: Path | None


@dataclass(slots=True)
class ClassificationCreateCommand:
    """CLI input for classification creation."""

    db_path: Path | None
    key: str
    domain: str
    name: str
    category: str
    type: str
    parent_key: str
    service_level: str
    priority: int


@dataclass(slots=True)
class ClassificationShowCommand:
    """CLI input for resolving one classification."""

    db_path: Path | None
    key: str
    domain: str


@dataclass(slots=True)
class ClassificationListCommand:
    """CLI input for classification listing."""

    db_path: Path | None
    keys: tuple[str, ...]
    domains: tuple[str, ...]
    categories: tuple[str, ...]
    offset: int | None
    limit: int | None


@dataclass(slots=True)
class ClassificationTreeCommand:
    """CLI input for the classification tree."""

    db_path: Path | None


@dataclass(slots=True)
class WorkbasketCreateCommand:
    """CLI input for workbasket creation."""

    db_path: Path | None
    key: str
    name: str
    domain: str
    type: str
    owner: str
    targets: tuple[str, ...]


@dataclass(slots=True)
class WorkbasketListCommand:
    """CLI input for workbasket listing."""

    db_path: Path | None
    domains: tuple[str, ...]
    permissions: tuple[str, ...]
    access_ids: tuple[str, ...]


@dataclass(slots=True)
class WorkbasketTargetsCommand:
    """CLI input for distribution target listing."""

    db_path: Path | None
    workbasket_id: str


@dataclass(slots=True)
class MonitorStatesCommand:
    """CLI input for task counts per state."""

    db_path: Path | None
    states: tuple[str, ...]


@dataclass(slots=True)
class MonitorWorkbasketsCommand:
    """CLI input for due task counts per workbasket."""

    db_path: Path | None
    days_in_past: int
    states: tuple[str, ...]


class WorkRouterCliController:
    """Coordinates work-router command execution."""

    def init_schema(self, command: SchemaInitCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _engine(settings):
            pass
        return [f"Schema is up to date: {settings.db_path}"]

    def create_classification(self, command: ClassificationCreateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _engine(settings) as engine:
            classification = engine.classifications.new_classification(
                command.key,
                command.domain,
            )
            classification.name = command.name
            classification.category = command.category
            classification.type = command.type
            classification.parent_classification_key = command.parent_key
            classification.service_level = command.service_level
            classification.priority = command.priority
            created = engine.classifications.create_classification(classification)
        return [f"Classification created: {_classification_line(created)}"]

    def show_classification(self, command: ClassificationShowCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _engine(settings) as engine:
            classification = engine.classifications.get_classification(
                command.key,
                command.domain,
            )
        return [
            _classification_line(classification),
            f"name={classification.name!r} category={classification.category!r} "
            f"type={classification.type!r} priority={classification.priority} "
            f"service_level={classification.service_level or '-'} "
            f"parent={classification.parent_classification_key or '-'}",
            f"valid_from={classification.valid_from} valid_until={classification.valid_until}",
        ]

    def list_classifications(self, command: ClassificationListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _engine(settings) as engine:
            query = (
                engine.classifications.create_classification_query()
                .key(*command.keys)
                .domain(*command.domains)
                .category(*command.categories)
            )
            total = query.count()
            if command.offset is None and command.limit is None:
                classifications = query.list()
            else:
                limit = command.limit if command.limit is not None else total
                classifications = query.list(command.offset or 0, limit)

        if not classifications:
            return ["No classifications found."]
        lines = [f"Classifications: showing={len(classifications)} total={total}"]
        lines.extend(_classification_line(item) for item in classifications)
        return lines

    def classification_tree(self, command: ClassificationTreeCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _engine(settings) as engine:
            roots = engine.classifications.get_classification_tree()
        if not roots:
            return ["No classifications found."]
        lines: list[str] = []
        for root in roots:
            _render_node(root, depth=0, lines=lines)
        return lines

    def create_workbasket(self, command: WorkbasketCreateCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _engine(settings) as engine:
            created = engine.workbaskets.create_workbasket(
                Workbasket(
                    key=command.key,
                    name=command.name,
                    domain=command.domain,
                    type=WorkbasketType(command.type.upper()),
                    owner=command.owner,
                ),
                distribution_targets=command.targets,
            )
        return [f"Workbasket created: {_workbasket_line(created)}"]

    def list_workbaskets(self, command: WorkbasketListCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _engine(settings) as engine:
            query = engine.workbaskets.create_workbasket_query().domain(*command.domains)
            if command.permissions:
                permission = WorkbasketPermission.from_names(command.permissions)
                if command.access_ids:
                    query = query.with_permission(permission, *command.access_ids)
                else:
                    query = query.with_caller_permission(permission)
            workbaskets = query.list()

        if not workbaskets:
            return ["No workbaskets found."]
        return [_workbasket_line(item) for item in workbaskets]

    def list_distribution_targets(self, command: WorkbasketTargetsCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        with _engine(settings) as engine:
            targets = engine.workbaskets.get_distribution_targets(command.workbasket_id)
        if not targets:
            return [f"Workbasket {command.workbasket_id} has no distribution targets."]
        return [_workbasket_line(item) for item in targets]

    def count_by_state(self, command: MonitorStatesCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        states = _parse_states(command.states)
        with _engine(settings) as engine:
            counts = engine.monitor.count_by_state(states)
        if not counts:
            return ["No tasks in the selected states."]
        return [f"{item.state.value}: {item.count}" for item in counts]

    def count_by_workbasket(self, command: MonitorWorkbasketsCommand) -> list[str]:
        settings = Settings.from_env(db_path=command.db_path)
        states = _parse_states(command.states)
        with _engine(settings) as engine:
            counts = engine.monitor.count_by_workbasket_since(command.days_in_past, states)
        if not counts:
            return ["No tasks due in the selected window."]
        return [f"{item.workbasket_id}: {item.count}" for item in counts]


@contextmanager
def _engine(settings: Settings) -> Iterator[WorkRouterEngine]:
    engine = WorkRouterEngine.from_settings(settings)
    try:
        engine.init_schema()
        with engine.transaction():
            yield engine
    finally:
        engine.close()


def _parse_states(values: tuple[str, ...]) -> list[TaskState]:
    if not values:
        return list(TaskState)
    states: list[TaskState] = []
    for value in values:
        try:
            states.append(TaskState(value.strip().upper()))
        except ValueError as error:
            allowed = ", ".join(state.value for state in TaskState)
            raise ValueError(
                f"Unknown task state: {value!r}. Expected one of: {allowed}.",
            ) from error
    return states


def _classification_line(classification: Classification) -> str:
    return (
        f"{classification.id} key={classification.key} "
        f"domain={classification.domain or '<root>'}"
    )


def _workbasket_line(workbasket: Workbasket) -> str:
    return (
        f"{workbasket.id} key={workbasket.key} type={workbasket.type.value} "
        f"domain={workbasket.domain or '-'} name={workbasket.name!r}"
    )


def _render_node(node: ClassificationNode, *, depth: int, lines: list[str]) -> None:
    item = node.classification
    lines.append(f"{'  ' * depth}{item.key} [{item.domain or '<root>'}] {item.name}".rstrip())
    for child in node.children:
        _render_node(child, depth=depth + 1, lines=lines)
