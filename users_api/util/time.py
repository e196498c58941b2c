from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def utcnow_iso() -> str:
    """Current UTC time as ISO-8601 string with Z."""
    return utcnow().replace(microsecond=0).isoformat().replace("+00:00", "Z")


def to_epoch(dt: datetime) -> int:
    return int(dt.timestamp())


def from_epoch(ts: int | float) -> datetime:
    return datetime.fromtimestamp(ts, tz=timezone.utc)
