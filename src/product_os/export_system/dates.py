"""
Timestamp parsing and display formatting for exported markdown.

Display follows US locale conventions: dates as M/D/YYYY, times as
h:MM:SS AM/PM. Timezone-aware timestamps are shown in local time; bare
dates ("2024-01-01") are shown as-is.
"""

from datetime import date, datetime, timezone

from ..exceptions import InvalidTimestampError


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 timestamp or date, returning None if malformed."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    text = value.strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    try:
        parsed = date.fromisoformat(text)
    except ValueError:
        return None
    return datetime(parsed.year, parsed.month, parsed.day)


def to_utc_timestamp(value: str | datetime) -> str:
    """Normalize to the stored form, e.g. 2024-06-01T04:00:00.000Z.

    Offsets are converted to UTC; naive values and bare dates are taken as
    UTC, so a date means midnight UTC.

    Raises:
        InvalidTimestampError: If the value cannot be parsed
    """
    moment = parse_timestamp(value)
    if moment is None:
        raise InvalidTimestampError(str(value))
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def _local(moment: datetime) -> datetime:
    return moment.astimezone() if moment.tzinfo is not None else moment


def format_date(value: str | datetime | None) -> str:
    """Format as M/D/YYYY; malformed input is returned unchanged."""
    moment = parse_timestamp(value)
    if moment is None:
        return "" if value is None else str(value)
    moment = _local(moment)
    return f"{moment.month}/{moment.day}/{moment.year}"


def format_metadata_date(value: str | None) -> str | None:
    """Format an optional metadata date; None when absent or malformed."""
    if parse_timestamp(value) is None:
        return None
    return format_date(value)


def format_time(value: str | datetime) -> str:
    """Format as h:MM:SS AM/PM."""
    moment = parse_timestamp(value)
    if moment is None:
        return str(value)
    moment = _local(moment)
    hour = moment.hour % 12 or 12
    suffix = "AM" if moment.hour < 12 else "PM"
    return f"{hour}:{moment.minute:02d}:{moment.second:02d} {suffix}"
