# app/core/time_utils.py
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    """
    Normalize to aware UTC. Naive values are taken to be UTC already.

    Columns are written as aware UTC values, but some drivers (SQLite)
    hand them back without tzinfo and compare stored text, so offsets
    from other zones must be converted before a query.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
