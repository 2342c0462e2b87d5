"""CLI entrypoint for work-router."""

from collections.abc import Callable
from pathlib import Path
from typing import TypeVar

import rich_click as click

from work_router import __version__
from work_router.controllers import (
    ClassificationCreateCommand,
    ClassificationListCommand,
    ClassificationShowCommand,
    ClassificationTreeCommand,
    MonitorStatesCommand,
    MonitorWorkbasketsCommand,
    SchemaInitCommand,
    WorkbasketCreateCommand,
    WorkbasketListCommand,
    WorkbasketTargetsCommand,
    WorkRouterCliController,
)
from work_router.errors import WorkRouterError

click.rich_click.USE_MARKDOWN = True
CONTROLLER = WorkRouterCliController()

CommandT = TypeVar("CommandT")

STATE_CHOICES = click.Choice(["READY", "CLAIMED", "COMPLETED", "TERMINATED"], case_sensitive=False)
WORKBASKET_TYPE_CHOICES = click.Choice(
    ["GROUP", "PERSONAL", "TOPIC", "CLEARANCE"],
    case_sensitive=False,
)


@click.group()
@click.version_option(version=__version__, prog_name="work-router")
def work_router() -> None:
    """Task routing core: classifications, workbaskets and task monitoring."""


@work_router.group()
def schema() -> None:
    """Database schema commands."""


@schema.command("init")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def schema_init(db_path: Path | None) -> None:
    """Create or upgrade the routing tables."""

    _run(CONTROLLER.init_schema, SchemaInitCommand(db_path=db_path))


@work_router.group()
def classification() -> None:
    """Classification commands."""


@classification.command("create")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--key", required=True, help="Classification key.")
@click.option("--domain", default="", help="Domain; empty for the root variant.")
@click.option("--name", default="", help="Display name.")
@click.option("--category", default="", help="Category, for example EXTERNAL.")
@click.option("--type", "type_", default="", help="Classification type, for example TASK.")
@click.option("--parent-key", default="", help="Key of the parent classification.")
@click.option(
    "--service-level",
    default="",
    help="ISO-8601 duration such as `P1D` or `PT8H`.",
)
@click.option("--priority", type=int, default=0, show_default=True, help="Priority.")
def classification_create(
    db_path: Path | None,
    key: str,
    domain: str,
    name: str,
    category: str,
    type_: str,
    parent_key: str,
    service_level: str,
    priority: int,
) -> None:
    """Create a classification variant for one domain."""

    _run(
        CONTROLLER.create_classification,
        ClassificationCreateCommand(
            db_path=db_path,
            key=key,
            domain=domain,
            name=name,
            category=category,
            type=type_,
            parent_key=parent_key,
            service_level=service_level,
            priority=priority,
        ),
    )


@classification.command("show")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.argument("key")
@click.option("--domain", default="", help="Domain to resolve in; falls back to the root.")
def classification_show(db_path: Path | None, key: str, domain: str) -> None:
    """Resolve a classification for a domain."""

    _run(
        CONTROLLER.show_classification,
        ClassificationShowCommand(db_path=db_path, key=key, domain=domain),
    )


@classification.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--key", "keys", multiple=True, help="Key filter. Can be repeated.")
@click.option("--domain", "domains", multiple=True, help="Domain filter. Can be repeated.")
@click.option("--category", "categories", multiple=True, help="Category filter. Can be repeated.")
@click.option("--offset", type=click.IntRange(min=0), default=None, help="Rows to skip.")
@click.option("--limit", type=click.IntRange(min=0), default=None, help="Maximum rows to show.")
def classification_list(
    db_path: Path | None,
    keys: tuple[str, ...],
    domains: tuple[str, ...],
    categories: tuple[str, ...],
    offset: int | None,
    limit: int | None,
) -> None:
    """List classifications matching the filters, ordered by id."""

    _run(
        CONTROLLER.list_classifications,
        ClassificationListCommand(
            db_path=db_path,
            keys=keys,
            domains=domains,
            categories=categories,
            offset=offset,
            limit=limit,
        ),
    )


@classification.command("tree")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def classification_tree(db_path: Path | None) -> None:
    """Print the classification hierarchy per domain."""

    _run(CONTROLLER.classification_tree, ClassificationTreeCommand(db_path=db_path))


@work_router.group()
def workbasket() -> None:
    """Workbasket commands."""


@workbasket.command("create")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--key", required=True, help="Unique workbasket key.")
@click.option("--name", default="", help="Display name.")
@click.option("--domain", default="", help="Domain the workbasket belongs to.")
@click.option(
    "--type",
    "type_",
    type=WORKBASKET_TYPE_CHOICES,
    default="GROUP",
    show_default=True,
    help="Workbasket type.",
)
@click.option("--owner", default="", help="Owner access id.")
@click.option(
    "--target",
    "targets",
    multiple=True,
    help="Distribution target workbasket id. Can be repeated.",
)
def workbasket_create(
    db_path: Path | None,
    key: str,
    name: str,
    domain: str,
    type_: str,
    owner: str,
    targets: tuple[str, ...],
) -> None:
    """Create a workbasket."""

    _run(
        CONTROLLER.create_workbasket,
        WorkbasketCreateCommand(
            db_path=db_path,
            key=key,
            name=name,
            domain=domain,
            type=type_,
            owner=owner,
            targets=targets,
        ),
    )


@workbasket.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--domain", "domains", multiple=True, help="Domain filter. Can be repeated.")
@click.option(
    "--permission",
    "permissions",
    multiple=True,
    help="Required permission such as `APPEND`. Can be repeated; all must be granted.",
)
@click.option(
    "--access-id",
    "access_ids",
    multiple=True,
    help="Access id to check permissions for. Defaults to the configured caller.",
)
def workbasket_list(
    db_path: Path | None,
    domains: tuple[str, ...],
    permissions: tuple[str, ...],
    access_ids: tuple[str, ...],
) -> None:
    """List workbaskets, optionally only those the access ids may use."""

    _run(
        CONTROLLER.list_workbaskets,
        WorkbasketListCommand(
            db_path=db_path,
            domains=domains,
            permissions=permissions,
            access_ids=access_ids,
        ),
    )


@workbasket.command("targets")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.argument("workbasket_id")
def workbasket_targets(db_path: Path | None, workbasket_id: str) -> None:
    """List the distribution targets of a workbasket."""

    _run(
        CONTROLLER.list_distribution_targets,
        WorkbasketTargetsCommand(db_path=db_path, workbasket_id=workbasket_id),
    )


@work_router.group()
def monitor() -> None:
    """Task monitoring commands."""


@monitor.command("states")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--state",
    "states",
    type=STATE_CHOICES,
    multiple=True,
    help="Task state to count. Can be repeated; defaults to all states.",
)
def monitor_states(db_path: Path | None, states: tuple[str, ...]) -> None:
    """Count tasks per state."""

    _run(CONTROLLER.count_by_state, MonitorStatesCommand(db_path=db_path, states=states))


@monitor.command("workbaskets")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--days",
    "days_in_past",
    type=int,
    default=0,
    show_default=True,
    help="Count tasks due on or after today minus this many days.",
)
@click.option(
    "--state",
    "states",
    type=STATE_CHOICES,
    multiple=True,
    help="Task state to count. Can be repeated; defaults to all states.",
)
def monitor_workbaskets(db_path: Path | None, days_in_past: int, states: tuple[str, ...]) -> None:
    """Count due tasks per workbasket."""

    _run(
        CONTROLLER.count_by_workbasket,
        MonitorWorkbasketsCommand(db_path=db_path, days_in_past=days_in_past, states=states),
    )


def _run(handler: Callable[[CommandT], list[str]], command: CommandT) -> None:
    try:
        lines = handler(command)
    except (WorkRouterError, ValueError) as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    work_router()
