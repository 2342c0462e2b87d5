"""ISO-8601 day/time durations used as classification service levels."""

from __future__ import annotations

import re
from datetime import timedelta

from work_router.errors import InvalidArgumentError

# PnDTnHnMn.nS; calendar units (years, months) are not fixed-length and are rejected.
_DURATION_PATTERN = re.compile(
    r"""
    ^(?P<sign>[-+]?)P
    (?:(?P<days>[-+]?\d+)D)?
    (?:T
        (?:(?P<hours>[-+]?\d+)H)?
        (?:(?P<minutes>[-+]?\d+)M)?
        (?:(?P<seconds>[-+]?\d+)(?:[.,](?P<fraction>\d{0,9}))?S)?
    )?$
    """,
    re.IGNORECASE | re.VERBOSE,
)


def parse_service_level(value: str) -> timedelta:
    """Parse a service level such as ``P1D`` or ``PT8H30M`` into a timedelta."""

    match = _DURATION_PATTERN.match(value.strip())
    if match is None or _is_empty_duration(value, match):
        raise InvalidArgumentError(
            f"Invalid service level {value!r}: expected an ISO-8601 duration like 'P1DT2H'.",
        )

    fraction = match.group("fraction") or ""
    seconds = _int(match.group("seconds"))
    micros = int(fraction.ljust(6, "0")[:6]) if fraction else 0
    if seconds < 0 or (match.group("seconds") or "").startswith("-"):
        micros = -micros

    duration = timedelta(
        days=_int(match.group("days")),
        hours=_int(match.group("hours")),
        minutes=_int(match.group("minutes")),
        seconds=seconds,
        microseconds=micros,
    )
    if match.group("sign") == "-":
        return -duration
    return duration


def validate_service_level(value: str) -> None:
    """Raise ``InvalidArgumentError`` unless ``value`` is empty or a valid duration."""

    if value:
        parse_service_level(value)


def _int(raw: str | None) -> int:
    return int(raw) if raw else 0


def _is_empty_duration(value: str, match: re.Match[str]) -> bool:
    components = ("days", "hours", "minutes", "seconds")
    if all(match.group(name) is None for name in components):
        return True
    # "P1DT" has a dangling time designator without any time component.
    time_components = ("hours", "minutes", "seconds")
    has_time_designator = "T" in value.upper().split("P", 1)[1]
    return has_time_designator and all(match.group(name) is None for name in time_components)
