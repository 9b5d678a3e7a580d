# backend/personalhub/core/datetimes.py
from datetime import datetime
from typing import Optional


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Timestamps are stored as naive local time; offset-aware input is converted."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone().replace(tzinfo=None)
