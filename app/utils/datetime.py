from __future__ import annotations
from datetime import datetime, UTC

__all__ = ["utc_now", "isoformat_z"]


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(UTC)


def isoformat_z(dt: datetime | None = None) -> str:
    """ISO-8601 timestamp in UTC with a trailing ``Z`` (defaults to now)."""
    dt = dt or utc_now()
    if dt.tzinfo is not None:
        dt = dt.astimezone(UTC).replace(tzinfo=None)
    return dt.isoformat() + "Z"
