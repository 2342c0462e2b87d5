"""Dynamic workbasket query with an optional authorization filter."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import ClassVar

from work_router.errors import InvalidArgumentError
from work_router.models import WorkbasketPermission, WorkbasketType
from work_router.query.base import BaseQuery
from work_router.query.criteria import QueryName, WorkbasketCriteria
from work_router.security import IdentityContext, StaticIdentityContext, normalize_access_ids

logger = logging.getLogger(__name__)


@dataclass(slots=True, frozen=True)
class WorkbasketQuery(BaseQuery):
    """Filters workbaskets; ``with_permission`` narrows to authorized baskets."""

    query_name: ClassVar[QueryName] = QueryName.WORKBASKETS

    criteria: WorkbasketCriteria = field(default_factory=WorkbasketCriteria)
    identity: IdentityContext = field(default_factory=StaticIdentityContext)

    def key(self, *keys: str) -> WorkbasketQuery:
        return self._with(key=keys)

    def domain(self, *domains: str) -> WorkbasketQuery:
        return self._with(domain=domains)

    def type(self, *types: WorkbasketType | str) -> WorkbasketQuery:
        return self._with(type=tuple(_workbasket_type(item) for item in types))

    def name(self, *names: str) -> WorkbasketQuery:
        return self._with(name=names)

    def created_after(self, moment: datetime | None) -> WorkbasketQuery:
        return self._with(created_after=moment)

    def created_before(self, moment: datetime | None) -> WorkbasketQuery:
        return self._with(created_before=moment)

    def modified_after(self, moment: datetime | None) -> WorkbasketQuery:
        return self._with(modified_after=moment)

    def modified_before(self, moment: datetime | None) -> WorkbasketQuery:
        return self._with(modified_before=moment)

    def description_like(self, pattern: str | None) -> WorkbasketQuery:
        return self._with(description_like=pattern)

    def owner(self, *owners: str) -> WorkbasketQuery:
        return self._with(owner=owners)

    def with_permission(
        self,
        permission: WorkbasketPermission | Iterable[WorkbasketPermission] | None,
        *access_ids: str,
    ) -> WorkbasketQuery:
        """Keep workbaskets where one of ``access_ids`` holds every requested flag."""

        combined = _require_permission(permission)
        normalized = normalize_access_ids(
            access_ids,
            lowercase=self.identity.should_lowercase_access_ids(),
        )
        if not normalized:
            raise InvalidArgumentError("with_permission() requires at least one access id.")
        return self._with(permission=combined, access_ids=normalized)

    def with_caller_permission(
        self,
        permission: WorkbasketPermission | Iterable[WorkbasketPermission] | None,
    ) -> WorkbasketQuery:
        """Same filter as ``with_permission`` using the caller's access ids."""

        combined = _require_permission(permission)
        normalized = normalize_access_ids(
            self.identity.current_access_ids(),
            lowercase=self.identity.should_lowercase_access_ids(),
        )
        if not normalized:
            raise InvalidArgumentError("The identity context yields no access ids.")
        logger.debug("Scoping workbasket query to caller access ids %s", normalized)
        return self._with(permission=combined, access_ids=normalized)

    def _with(self, **changes: object) -> WorkbasketQuery:
        return replace(self, criteria=replace(self.criteria, **changes))


def _require_permission(
    permission: WorkbasketPermission | Iterable[WorkbasketPermission] | None,
) -> WorkbasketPermission:
    if permission is None:
        raise InvalidArgumentError("A workbasket permission is required.")
    combined = WorkbasketPermission.combine(permission)
    if not combined:
        raise InvalidArgumentError("A workbasket permission is required.")
    return combined


def _workbasket_type(value: WorkbasketType | str) -> WorkbasketType:
    try:
        return WorkbasketType(value)
    except ValueError as error:
        raise InvalidArgumentError(f"Unknown workbasket type: {value!r}") from error
