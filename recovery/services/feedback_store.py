"""
Append-only feedback record store.

Records are never mutated or removed once appended; a correction is a new
record. Reads return immutable snapshots so an evaluation never observes a
partially applied append.

Typical usage:
    store = FeedbackStore()
    store.append(record)
    window = store.get_window("ex-1", limit=5)  # oldest -> newest
"""
from threading import Lock
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from aws_lambda_powertools import Logger
from pydantic import ValidationError

from recovery.models.feedback import FeedbackRecord
from recovery.services.exceptions import FeedbackStoreError
from recovery.services.utils import sort_chronologically

logger = Logger()

class FeedbackStore:
    """In-memory, thread-safe store of feedback records grouped by exercise."""

    def __init__(self):
        self._records: Dict[str, List[FeedbackRecord]] = {}
        self._lock = Lock()

    def append(self, record: Union[FeedbackRecord, Mapping[str, Any]]) -> FeedbackRecord:
        """
        Append a feedback record.

        Args:
            record: FeedbackRecord or raw payload to validate

        Returns:
            The stored record

        Raises:
            FeedbackStoreError: If the payload is not a valid feedback record
        """
        if not isinstance(record, FeedbackRecord):
            try:
                record = FeedbackRecord.model_validate(dict(record))
            except (ValidationError, TypeError, ValueError) as e:
                logger.warning("Rejected invalid feedback record", extra={
                    "error": str(e),
                    "error_type": e.__class__.__name__
                })
                raise FeedbackStoreError(f"Invalid feedback record: {str(e)}")

        with self._lock:
            self._records.setdefault(record.exercise_id, []).append(record)

        logger.info("Feedback record appended", extra={
            "exercise_id": record.exercise_id,
            "session_id": record.session_id,
            "pain_level": record.pain_level,
            "difficulty_rating": record.difficulty_rating
        })
        return record

    def get_window(self, exercise_id: str, limit: Optional[int] = None) -> Tuple[FeedbackRecord, ...]:
        """
        Snapshot the most recent records for an exercise.

        Args:
            exercise_id: Exercise to read
            limit: Optional number of most recent records to return

        Returns:
            Tuple of records ordered oldest to newest
        """
        with self._lock:
            records = tuple(self._records.get(exercise_id, ()))
        ordered = sort_chronologically(records)
        if limit is not None:
            ordered = ordered[-limit:] if limit > 0 else []
        return tuple(ordered)

    def get_all(self) -> Tuple[FeedbackRecord, ...]:
        """Snapshot every stored record, ordered oldest to newest."""
        with self._lock:
            records = [r for group in self._records.values() for r in group]
        return tuple(sort_chronologically(records))

    def exercise_ids(self) -> List[str]:
        """Exercise IDs that have at least one record."""
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        with self._lock:
            return sum(len(group) for group in self._records.values())
