"""Time helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(tz=timezone.utc)


def isoformat_z(value: datetime) -> str:
    """Render a datetime as ``YYYY-MM-DDTHH:MM:SS.mmmZ`` in UTC."""
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def minutes_ago(minutes: int, *, now: datetime | None = None) -> datetime:
    return (now or utc_now()) - timedelta(minutes=minutes)


def parse_timestamp(value: object) -> datetime:
    """Parse an ISO-8601 string or epoch seconds into an aware UTC datetime.

    Raises ``ValueError`` when the value cannot be interpreted, and
    ``OverflowError`` or ``OSError`` for epoch values outside the platform range.
    """
    if isinstance(value, bool):
        raise ValueError(f"Unsupported timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if not isinstance(value, str) or not value.strip():
        raise ValueError(f"Unsupported timestamp: {value!r}")

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def epoch_seconds(value: datetime) -> int:
    return int(value.timestamp())
