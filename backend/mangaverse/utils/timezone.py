"""
Timezone utilities for MangaVerse.
Library records arrive from an external store with a mix of naive and aware
timestamps; everything is compared in UTC.
"""
from datetime import datetime, timezone
from typing import Optional

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utc_now() -> datetime:
    """Current UTC datetime with timezone info."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is UTC and timezone-aware.
    If timezone-naive, assumes it's already UTC and adds UTC timezone.
    If timezone-aware, converts to UTC.
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def recency_key(dt: Optional[datetime]) -> datetime:
    """Sort key for 'most recent first' orderings; missing timestamps sort last."""
    return ensure_utc(dt) or EPOCH
