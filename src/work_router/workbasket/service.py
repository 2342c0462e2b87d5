"""Workbasket maintenance, distribution targets and access control."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace

from work_router.config import SecuritySettings
from work_router.errors import (
    InvalidArgumentError,
    NotAuthorizedError,
    WorkbasketNotFoundError,
)
from work_router.models import AccessControlEntry, Workbasket, WorkbasketPermission
from work_router.query.workbasket_query import WorkbasketQuery
from work_router.security import IdentityContext, normalize_access_ids
from work_router.storage.common import new_id, utc_now
from work_router.storage.repository import SQLiteStorageAdapter

logger = logging.getLogger(__name__)

WORKBASKET_ID_PREFIX = "WBI"
ACCESS_ENTRY_ID_PREFIX = "WAI"


class WorkbasketService:
    """Maintains workbaskets and answers who may work on which basket."""

    def __init__(
        self,
        *,
        storage: SQLiteStorageAdapter,
        identity: IdentityContext,
        security_settings: SecuritySettings,
    ) -> None:
        self.storage = storage
        self.identity = identity
        self.security_settings = security_settings

    def create_workbasket(
        self,
        workbasket: Workbasket,
        distribution_targets: Sequence[str] = (),
    ) -> Workbasket:
        if not workbasket.key:
            raise InvalidArgumentError("Workbasket key must not be empty.")
        now = utc_now()
        created = replace(
            workbasket,
            id=new_id(WORKBASKET_ID_PREFIX),
            created=now,
            modified=now,
        )
        with self.storage.connections.scope():
            self.storage.insert_workbasket(created)
            if distribution_targets:
                self.storage.replace_distribution_targets(created.id, distribution_targets)
        logger.info("Created workbasket %s key=%s", created.id, created.key)
        return created

    def get_workbasket(self, workbasket_id: str) -> Workbasket:
        workbasket = self.storage.find_workbasket(workbasket_id)
        if workbasket is None:
            raise WorkbasketNotFoundError(
                f"Workbasket not found: id={workbasket_id}",
                workbasket_id=workbasket_id,
            )
        return workbasket

    def get_workbasket_by_key(self, key: str) -> Workbasket:
        workbasket = self.storage.find_workbasket_by_key(key)
        if workbasket is None:
            raise WorkbasketNotFoundError(f"Workbasket not found: key={key}")
        return workbasket

    def list_workbaskets(self) -> list[Workbasket]:
        return self.storage.list_workbaskets()

    def update_workbasket(self, workbasket: Workbasket) -> Workbasket:
        updated = replace(workbasket, modified=utc_now())
        self.storage.update_workbasket(updated)
        logger.info("Updated workbasket %s", updated.id)
        return self.get_workbasket(updated.id)

    def get_distribution_targets(self, workbasket_id: str) -> list[Workbasket]:
        """Workbaskets one hop away from ``workbasket_id``, ordered by id."""

        return self.storage.list_distribution_targets(workbasket_id)

    def set_distribution_targets(self, workbasket_id: str, target_ids: Sequence[str]) -> None:
        """Replace the whole target list of ``workbasket_id``."""

        self.storage.replace_distribution_targets(workbasket_id, target_ids)
        logger.info(
            "Workbasket %s now distributes to %d target(s)",
            workbasket_id,
            len(set(target_ids)),
        )

    def add_distribution_target(self, workbasket_id: str, target_id: str) -> bool:
        return self.storage.add_distribution_target(workbasket_id, target_id)

    def remove_distribution_target(self, workbasket_id: str, target_id: str) -> bool:
        return self.storage.remove_distribution_target(workbasket_id, target_id)

    def create_access_entry(self, entry: AccessControlEntry) -> AccessControlEntry:
        access_ids = normalize_access_ids(
            [entry.access_id],
            lowercase=self.identity.should_lowercase_access_ids(),
        )
        if not access_ids:
            raise InvalidArgumentError("Access entry requires an access id.")
        created = replace(entry, id=new_id(ACCESS_ENTRY_ID_PREFIX), access_id=access_ids[0])
        self.storage.insert_access_entry(created)
        logger.info(
            "Granted %s on workbasket %s to %s",
            _permission_names(created.permissions),
            created.workbasket_key,
            created.access_id,
        )
        return created

    def update_access_entry(self, entry: AccessControlEntry) -> AccessControlEntry:
        self.storage.update_access_entry(entry)
        return entry

    def delete_access_entry(self, entry_id: str) -> bool:
        return self.storage.delete_access_entry(entry_id)

    def list_access_entries(self, workbasket_key: str) -> list[AccessControlEntry]:
        return self.storage.list_access_entries(workbasket_key)

    def find_by_permission(
        self,
        permissions: WorkbasketPermission | Iterable[WorkbasketPermission],
        access_id: str,
    ) -> list[Workbasket]:
        """Workbaskets where ``access_id`` holds every flag in ``permissions``."""

        return self.create_workbasket_query().with_permission(permissions, access_id).list()

    def check_authorization(self, workbasket_key: str, permission: WorkbasketPermission) -> None:
        """Raise ``NotAuthorizedError`` unless the caller holds ``permission``."""

        if not self.security_settings.security_enabled:
            return
        query = self.create_workbasket_query().key(workbasket_key)
        if query.with_caller_permission(permission).count() > 0:
            return
        if query.count() == 0:
            raise WorkbasketNotFoundError(f"Workbasket not found: key={workbasket_key}")
        access_ids = normalize_access_ids(
            self.identity.current_access_ids(),
            lowercase=self.identity.should_lowercase_access_ids(),
        )
        logger.warning(
            "Denied %s on workbasket %s for %s",
            _permission_names(permission),
            workbasket_key,
            ",".join(access_ids),
        )
        raise NotAuthorizedError(
            f"Not authorized: {_permission_names(permission)} on workbasket {workbasket_key}.",
        )

    def create_workbasket_query(self, identity: IdentityContext | None = None) -> WorkbasketQuery:
        return WorkbasketQuery(storage=self.storage, identity=identity or self.identity)


def _permission_names(permission: WorkbasketPermission) -> str:
    return "|".join(flag.name or "" for flag in permission.members())
