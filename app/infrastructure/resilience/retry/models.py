"""Work-queue retry models.

This module defines the core data structures for the retry system. The
records are generic; module-specific data lives in ``payload``.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class RetryResult(Enum):
    """Outcome of processing a retry record.

    Values:
        SUCCESS: Operation completed successfully, remove from queue
        RETRY: Operation failed but is retryable, schedule for retry
        PERMANENT_FAILURE: Operation failed permanently, move to DLQ
    """

    SUCCESS = "success"
    RETRY = "retry"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass
class RetryRecord:
    """Queued operation awaiting (re)processing.

    Fields:
        operation_type: Namespace identifier (e.g., "localization.auto_translate")
        payload: Module-specific data
        dedup_key: Optional key; while a record with the same key is queued,
            saving another one returns the existing id
        priority: Higher values are fetched first among due records
        id: Unique identifier (assigned by store)
        attempts: Number of failed attempts so far
        last_error: Last error message encountered
        created_at / updated_at: Timestamps
        next_retry_at: When the record becomes due

    Example:
        record = RetryRecord(
            operation_type="localization.auto_translate",
            payload={"translation_id": "abc", "target_language": "FR"},
            dedup_key="room_type|rt-1|name|FR",
        )
    """

    operation_type: str
    payload: Dict[str, Any]
    dedup_key: Optional[str] = None
    priority: int = 0

    id: Optional[str] = None
    attempts: int = 0
    last_error: Optional[str] = None

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    next_retry_at: Optional[datetime] = None

    # Set by processors on a failed attempt; not persisted
    retry_after: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate required fields."""
        if not self.operation_type:
            raise ValueError("operation_type is required")
        if not isinstance(self.payload, dict):
            raise ValueError("payload must be a dictionary")

    def to_document(self) -> Dict[str, Any]:
        """Serialize for a document store."""
        return {
            "id": self.id,
            "operation_type": self.operation_type,
            "payload": self.payload,
            "dedup_key": self.dedup_key,
            "priority": self.priority,
            "attempts": self.attempts,
            "last_error": self.last_error,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "next_retry_at": self.next_retry_at.isoformat() if self.next_retry_at else None,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "RetryRecord":
        def _dt(value: Any) -> Optional[datetime]:
            if value is None or isinstance(value, datetime):
                return value
            return datetime.fromisoformat(value)

        return cls(
            operation_type=doc["operation_type"],
            payload=dict(doc.get("payload") or {}),
            dedup_key=doc.get("dedup_key"),
            priority=int(doc.get("priority") or 0),
            id=doc.get("id"),
            attempts=int(doc.get("attempts") or 0),
            last_error=doc.get("last_error"),
            created_at=_dt(doc.get("created_at")) or datetime.now(timezone.utc),
            updated_at=_dt(doc.get("updated_at")) or datetime.now(timezone.utc),
            next_retry_at=_dt(doc.get("next_retry_at")),
        )
