"""Timezone-aware UTC helpers shared by models, schemas and the analyzer."""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Return `value` as an aware UTC datetime.

    Naive values are taken to already be UTC; SQLite hands them back that
    way even for timezone-aware columns.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
