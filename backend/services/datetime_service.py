"""Datetime helpers: lax input -> strict timezone-aware output."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pendulum


def parse_datetime(value: str | datetime, default_tz: str = "UTC") -> datetime:
    """Parse a lax datetime string into a timezone-aware datetime.

    Accepts ISO 8601 variants (``2026-02-02T22:21:29Z``, ``2026-02-02 22:21+00``)
    as well as bare dates. Missing timezone defaults to ``default_tz``.
    Raises ValueError for unparseable input.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            tz = pendulum.timezone(default_tz)
            value = value.replace(tzinfo=tz)  # type: ignore[arg-type]
        return value

    try:
        parsed = pendulum.parse(value.strip(), tz=default_tz, strict=False)
    except ValueError as exc:
        raise ValueError(f"Invalid datetime: {value!r}") from exc
    if not isinstance(parsed, pendulum.DateTime):
        # pendulum.parse returns Date for date-only strings
        parsed = pendulum.datetime(
            parsed.year, parsed.month, parsed.day, tz=default_tz  # type: ignore[union-attr]
        )
    return parsed  # type: ignore[return-value]


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def format_iso(dt: datetime) -> str:
    """Format datetime as ISO 8601 for storage and JSON serialization."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.isoformat()


def is_expired(expires_at: str | None, leeway_seconds: int = 60) -> bool:
    """Return True when ``expires_at`` is missing, unparseable or within the leeway."""
    if not expires_at:
        return True
    try:
        expires = parse_datetime(expires_at)
    except ValueError:
        return True
    return expires <= now_utc() + timedelta(seconds=leeway_seconds)
