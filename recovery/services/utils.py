"""
Shared utility functions for adaptation services.
"""
from datetime import datetime, timezone
from typing import Iterable, List

from recovery.models.feedback import FeedbackRecord

def as_utc(value: datetime) -> datetime:
    """Treat naive timestamps as UTC so they compare with aware ones."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)

def sort_chronologically(records: Iterable[FeedbackRecord]) -> List[FeedbackRecord]:
    """
    Sort feedback records oldest to newest by creation time.

    Example:
        >>> window = sort_chronologically(store_records)
        >>> latest = window[-1]
    """
    return sorted(records, key=lambda r: as_utc(r.created_at))

def is_chronological(records: List[FeedbackRecord]) -> bool:
    """Check if records are already ordered oldest to newest."""
    return all(
        as_utc(a.created_at) <= as_utc(b.created_at)
        for a, b in zip(records, records[1:])
    )
