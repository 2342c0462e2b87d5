"""Runtime configuration for the routing core."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path


class ConnectionManagementMode(str, Enum):
    """How storage sessions map onto transactions."""

    AUTOCOMMIT = "autocommit"
    EXPLICIT = "explicit"


@dataclass(slots=True)
class DatabaseSettings:
    """Storage settings."""

    db_path: Path = Path(".work_router.db")
    busy_timeout_ms: int = 5_000
    connection_mode: ConnectionManagementMode = ConnectionManagementMode.AUTOCOMMIT


@dataclass(slots=True)
class SecuritySettings:
    """Authorization settings."""

    security_enabled: bool = False
    lowercase_access_ids: bool = True


@dataclass(slots=True)
class UserContextSettings:
    """Identity of the caller when no external authentication layer is wired in."""

    user_id: str = "default_user"
    group_ids: tuple[str, ...] = ()

    @property
    def access_ids(self) -> tuple[str, ...]:
        ids = [self.user_id, *self.group_ids] if self.user_id else list(self.group_ids)
        return tuple(dict.fromkeys(ids))


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    database: DatabaseSettings = field(default_factory=DatabaseSettings)
    security: SecuritySettings = field(default_factory=SecuritySettings)
    user_context: UserContextSettings = field(default_factory=UserContextSettings)

    @property
    def db_path(self) -> Path:
        return self.database.db_path

    @classmethod
    def from_env(cls, db_path: Path | None = None) -> Settings:
        """Load settings from environment with sane defaults for local development."""

        return cls(
            database=DatabaseSettings(
                db_path=db_path or Path(os.getenv("WORK_ROUTER_DB_PATH", ".work_router.db")),
                busy_timeout_ms=int(os.getenv("WORK_ROUTER_BUSY_TIMEOUT_MS", "5000")),
                connection_mode=_parse_connection_mode(
                    os.getenv("WORK_ROUTER_CONNECTION_MODE", "autocommit"),
                ),
            ),
            security=SecuritySettings(
                security_enabled=_env_bool("WORK_ROUTER_SECURITY_ENABLED", default=False),
                lowercase_access_ids=_env_bool(
                    "WORK_ROUTER_LOWERCASE_ACCESS_IDS",
                    default=True,
                ),
            ),
            user_context=UserContextSettings(
                user_id=os.getenv("WORK_ROUTER_USER_ID", "default_user").strip(),
                group_ids=_collect_csv("WORK_ROUTER_GROUP_IDS"),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if settings cannot drive the engine."""

        if self.database.busy_timeout_ms <= 0:
            raise ValueError("WORK_ROUTER_BUSY_TIMEOUT_MS must be > 0.")
        if self.security.security_enabled and not self.user_context.access_ids:
            raise ValueError(
                "WORK_ROUTER_USER_ID or WORK_ROUTER_GROUP_IDS is required "
                "when WORK_ROUTER_SECURITY_ENABLED is on.",
            )


def _parse_connection_mode(value: str) -> ConnectionManagementMode:
    normalized = value.strip().lower()
    try:
        return ConnectionManagementMode(normalized)
    except ValueError as error:
        allowed = ", ".join(mode.value for mode in ConnectionManagementMode)
        raise ValueError(
            f"Invalid WORK_ROUTER_CONNECTION_MODE: {value!r}. Expected one of: {allowed}.",
        ) from error


def _collect_csv(name: str) -> tuple[str, ...]:
    raw = os.getenv(name, "").strip()
    if not raw:
        return ()
    values: list[str] = []
    seen: set[str] = set()
    for part in raw.split(","):
        normalized = part.strip()
        if not normalized or normalized in seen:
            continue
        seen.add(normalized)
        values.append(normalized)
    return tuple(values)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ValueError(f"Invalid boolean value for {name}: {value!r}")
