"""Caller identity supplied by the authentication layer."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from work_router.config import Settings


@runtime_checkable
class IdentityContext(Protocol):
    """Request-scoped view of who is calling."""

    def current_access_ids(self) -> Sequence[str]:
        """Return the user id and group ids of the caller."""
        raise NotImplementedError

    def should_lowercase_access_ids(self) -> bool:
        """Return True when access ids compare case-insensitively."""
        raise NotImplementedError


@dataclass(slots=True, frozen=True)
class StaticIdentityContext:
    """Identity context with a fixed set of access ids."""

    access_ids: tuple[str, ...] = ()
    lowercase_access_ids: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> StaticIdentityContext:
        return cls(
            access_ids=settings.user_context.access_ids,
            lowercase_access_ids=settings.security.lowercase_access_ids,
        )

    def current_access_ids(self) -> Sequence[str]:
        return self.access_ids

    def should_lowercase_access_ids(self) -> bool:
        return self.lowercase_access_ids


def normalize_access_ids(access_ids: Iterable[str], *, lowercase: bool) -> tuple[str, ...]:
    """Strip, drop blanks and duplicates, lower-casing first when configured."""

    normalized: list[str] = []
    seen: set[str] = set()
    for access_id in access_ids:
        if access_id is None:
            continue
        value = access_id.strip()
        if lowercase:
            value = value.lower()
        if not value or value in seen:
            continue
        seen.add(value)
        normalized.append(value)
    return tuple(normalized)
