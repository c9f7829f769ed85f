from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4


def utcnow() -> datetime:
    # timezone-aware UTC; SQLite hands back naive values, see as_utc()
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    """
    SQLite drops tzinfo on the way out. Treat naive values as UTC so
    Python-side comparisons against utcnow() never mix naive and aware.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def new_id() -> str:
    """Opaque string identifier for every table except members."""
    return uuid4().hex
