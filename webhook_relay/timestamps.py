"""Strict RFC 3339 timestamps for CloudEvents ``time`` attributes."""
import re
from datetime import datetime, timedelta, timezone

from .errors import MalformedTimestamp

_RFC3339 = re.compile(
    r"^(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})"
    r"T(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:\.(?P<fraction>\d{1,9}))?"
    r"(?P<offset>Z|[+-]\d{2}:\d{2})$"
)


def parse_rfc3339(value: str) -> datetime:
    """
    Parse an RFC 3339 date-time into an aware datetime.

    Only the single ``YYYY-MM-DDTHH:MM:SS[.frac](Z|+HH:MM)`` form is accepted.
    Fractional seconds beyond microseconds are truncated.

    Raises:
        MalformedTimestamp: If the value is empty or not RFC 3339.
    """
    match = _RFC3339.match(value or "")
    if match is None:
        raise MalformedTimestamp(f"ce-time {value!r} is not an RFC 3339 timestamp")

    parts = match.groupdict()
    fraction = (parts["fraction"] or "").ljust(6, "0")[:6]
    try:
        tz = _parse_offset(parts["offset"])
        return datetime(
            int(parts["year"]),
            int(parts["month"]),
            int(parts["day"]),
            int(parts["hour"]),
            int(parts["minute"]),
            int(parts["second"]),
            int(fraction),
            tzinfo=tz,
        )
    except ValueError as e:
        raise MalformedTimestamp(f"ce-time {value!r} is out of range: {e}") from e


def _parse_offset(offset: str) -> timezone:
    if offset == "Z":
        return timezone.utc
    hours, minutes = int(offset[1:3]), int(offset[4:6])
    if hours > 23 or minutes > 59:
        raise ValueError(f"offset {offset} out of range")
    delta = timedelta(hours=hours, minutes=minutes)
    return timezone(-delta if offset[0] == "-" else delta)


def format_rfc3339(value: datetime) -> str:
    """
    Render a datetime as RFC 3339.

    Trailing zeros of the fraction are dropped and a zero offset is written
    as ``Z``. Naive datetimes are treated as UTC.
    """
    text = (
        f"{value.year:04d}-{value.month:02d}-{value.day:02d}"
        f"T{value.hour:02d}:{value.minute:02d}:{value.second:02d}"
    )
    if value.microsecond:
        text += f".{value.microsecond:06d}".rstrip("0")

    offset = value.utcoffset()
    if not offset:
        return text + "Z"
    minutes = int(offset.total_seconds()) // 60
    sign = "+" if minutes >= 0 else "-"
    hours, minutes = divmod(abs(minutes), 60)
    return f"{text}{sign}{hours:02d}:{minutes:02d}"
