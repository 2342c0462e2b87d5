"""Execution contract shared by the classification and workbasket queries."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, ClassVar, Protocol

from work_router.errors import InvalidArgumentError
from work_router.query.criteria import QueryName

logger = logging.getLogger(__name__)


class CriteriaStorage(Protocol):
    """Storage port that evaluates criteria objects."""

    def execute(self, query_name: QueryName, criteria: Any) -> list[Any]:
        raise NotImplementedError

    def execute_one(self, query_name: QueryName, criteria: Any) -> Any | None:
        raise NotImplementedError

    def execute_paged(
        self,
        query_name: QueryName,
        criteria: Any,
        offset: int,
        limit: int,
    ) -> list[Any]:
        raise NotImplementedError

    def execute_count(self, query_name: QueryName, criteria: Any) -> int:
        raise NotImplementedError


@dataclass(slots=True, frozen=True)
class BaseQuery:
    """Immutable query: setters return a new query, execution re-reads storage."""

    query_name: ClassVar[QueryName]

    storage: CriteriaStorage

    def list(self, offset: int | None = None, limit: int | None = None) -> list[Any]:
        """Return all matches ordered by id, or the ``[offset, offset + limit)`` window."""

        if offset is None and limit is None:
            logger.debug("entry to list(), criteria = %s", self.criteria)
            result = self.storage.execute(self.query_name, self.criteria)
            logger.debug("exit from list(). Returning %d resulting objects", len(result))
            return result

        if offset is None or limit is None:
            raise InvalidArgumentError("offset and limit must be given together.")
        if offset < 0 or limit < 0:
            raise InvalidArgumentError(
                f"offset and limit must be >= 0 (offset={offset}, limit={limit}).",
            )
        logger.debug(
            "entry to list(offset = %d, limit = %d), criteria = %s",
            offset,
            limit,
            self.criteria,
        )
        result = self.storage.execute_paged(self.query_name, self.criteria, offset, limit)
        logger.debug("exit from list(offset, limit). Returning %d resulting objects", len(result))
        return result

    def single(self) -> Any | None:
        """Return the only match, ``None`` when nothing matches.

        Raises ``AmbiguousResultError`` when more than one row matches.
        """

        logger.debug("entry to single(), criteria = %s", self.criteria)
        result = self.storage.execute_one(self.query_name, self.criteria)
        logger.debug("exit from single(). Returning result %s", result)
        return result

    def count(self) -> int:
        return self.storage.execute_count(self.query_name, self.criteria)
