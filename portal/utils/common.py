"""
Common utility functions used across models, services and routes.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Naive UTC now. All persisted timestamps are naive UTC."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def iso_format(dt: datetime) -> str:
    """Format datetime as ISO string with Z suffix."""
    return dt.isoformat() + "Z"


def iso_or_none(dt: Optional[datetime]) -> Optional[str]:
    return iso_format(dt) if dt is not None else None


def epoch_ms(dt: datetime) -> int:
    """Milliseconds since the epoch for a naive UTC datetime."""
    return int(dt.replace(tzinfo=timezone.utc).timestamp() * 1000)


def module_key(module_id: int) -> str:
    """JSON object keys for per-module maps are stringified module numbers."""
    return str(int(module_id))


def to_naive_utc(dt: datetime) -> datetime:
    """Normalize a possibly tz-aware datetime to the naive UTC form used in the database."""
    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)
