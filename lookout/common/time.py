"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def ensure_utc(value: dt.datetime) -> dt.datetime:
    """Return ``value`` in UTC, treating naive datetimes as UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.UTC)
    return value.astimezone(dt.UTC)


def parse_aware_iso(raw: str | None, *, name: str = "as_of") -> dt.datetime | None:
    """Parse an ISO 8601 timestamp, requiring timezone information.

    Parameters
    ----------
    raw
        ISO format timestamp string, or None.
    name
        Argument name quoted in the error message.

    Returns
    -------
    dt.datetime | None
        Parsed datetime with timezone, or None if input was None.

    Raises
    ------
    ValueError
        If the string is not ISO 8601 or lacks timezone information.

    """
    if raw is None:
        return None
    parsed = dt.datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        msg = (
            f"{name} must include timezone information, got naive datetime: "
            f"{raw!r}. Use ISO format with offset (e.g., '2024-03-10T00:00:00Z' "
            f"or '2024-03-10T00:00:00+00:00')."
        )
        raise ValueError(msg)
    return parsed
