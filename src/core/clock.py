"""Time helpers shared by the scheduler, garden and aggregator."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_aware(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def days_since(then: datetime | None, now: datetime | None = None) -> float:
    """
    Calculate days elapsed since a timestamp.

    Args:
        then: Earlier timestamp (can be naive or aware)
        now: Current time (defaults to UTC now)

    Returns:
        Days elapsed as float, never negative; 0.0 when then is None
    """
    if then is None:
        return 0.0
    now = ensure_aware(now) if now is not None else utcnow()
    delta = now - ensure_aware(then)
    return max(0.0, delta.total_seconds() / 86400.0)
