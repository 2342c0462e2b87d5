"""Dynamic classification query."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date
from typing import ClassVar

from work_router.query.base import BaseQuery
from work_router.query.criteria import ClassificationCriteria, QueryName


@dataclass(slots=True, frozen=True)
class ClassificationQuery(BaseQuery):
    """Filters classifications by a fixed set of dimensions.

    Each setter replaces one dimension and returns a new query; calling a
    setter without values removes the constraint.

    >>> query.category("c1").domain("T").list()  # doctest: +SKIP
    """

    query_name: ClassVar[QueryName] = QueryName.CLASSIFICATIONS

    criteria: ClassificationCriteria = field(default_factory=ClassificationCriteria)

    def key(self, *keys: str) -> ClassificationQuery:
        return self._with(key=keys)

    def parent_classification_key(self, *keys: str) -> ClassificationQuery:
        return self._with(parent_classification_key=keys)

    def category(self, *categories: str) -> ClassificationQuery:
        return self._with(category=categories)

    def type(self, *types: str) -> ClassificationQuery:
        return self._with(type=types)

    def domain(self, *domains: str) -> ClassificationQuery:
        return self._with(domain=domains)

    def valid_in_domain(self, valid_in_domain: bool | None) -> ClassificationQuery:
        return self._with(valid_in_domain=valid_in_domain)

    def created(self, *days: date) -> ClassificationQuery:
        """Match classifications created on any of the given calendar days."""
        return self._with(created=days)

    def name(self, *names: str) -> ClassificationQuery:
        return self._with(name=names)

    def description_like(self, pattern: str | None) -> ClassificationQuery:
        """SQL LIKE match; ``%`` and ``_`` wildcards pass through unescaped."""
        return self._with(description_like=pattern)

    def priority(self, *priorities: int) -> ClassificationQuery:
        return self._with(priority=priorities)

    def service_level(self, *service_levels: str) -> ClassificationQuery:
        return self._with(service_level=service_levels)

    def application_entry_point(self, *entry_points: str) -> ClassificationQuery:
        return self._with(application_entry_point=entry_points)

    def custom_fields(self, *values: str) -> ClassificationQuery:
        """Match when any of the ten custom columns equals any of ``values``."""
        return self._with(custom_fields=values)

    def valid_from(self, *days: date) -> ClassificationQuery:
        return self._with(valid_from=days)

    def valid_until(self, *days: date) -> ClassificationQuery:
        return self._with(valid_until=days)

    def _with(self, **changes: object) -> ClassificationQuery:
        return replace(self, criteria=replace(self.criteria, **changes))
