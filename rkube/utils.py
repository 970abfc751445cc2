"""Small helpers shared across the package."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime, timezone

_TIMESTAMP = re.compile(r"^(\d{4}-\d{2}-\d{2})[T ](\d{2}:\d{2}:\d{2})(?:\.(\d+))?$")


def first_error_or_ok(results: Iterable[object]) -> None:
    """Raise the first exception found among ``results``; otherwise return None."""
    for result in results:
        if isinstance(result, BaseException):
            raise result


def _parse_timestamp(value: object) -> datetime:
    """Parse a naive ISO-8601 timestamp, accepting up to nanosecond precision."""
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise ValueError(f"invalid timestamp {value!r}")
    match = _TIMESTAMP.match(value)
    if match is None:
        raise ValueError(f"invalid timestamp {value!r}")
    day, clock, fraction = match.groups()
    parsed = datetime.strptime(f"{day}T{clock}", "%Y-%m-%dT%H:%M:%S")
    if fraction:
        parsed = parsed.replace(microsecond=int(fraction[:6].ljust(6, "0")))
    return parsed


def _format_timestamp(value: datetime) -> str:
    """Format a timestamp as naive UTC ISO-8601 text."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value.isoformat()


def _display_local(value: datetime) -> str:
    """Render a naive UTC timestamp in the local time zone with its offset."""
    local = value.replace(tzinfo=timezone.utc).astimezone()
    text = local.strftime("%Y-%m-%d %H:%M:%S")
    if local.microsecond:
        text += f".{local.microsecond:06d}"
    offset = local.strftime("%z")
    return f"{text} {offset[:3]}:{offset[3:5]}"


def _indent(text: str, prefix: str = "    ") -> str:
    """Prefix every non-empty line of ``text``."""
    return "".join(
        prefix + line if line.strip("\n") else line
        for line in text.splitlines(keepends=True)
    )