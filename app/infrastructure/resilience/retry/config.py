"""Retry system configuration."""

from dataclasses import dataclass
from typing import Any


@dataclass
class RetryConfig:
    """Configuration for retry system behavior.

    Attributes:
        max_attempts: Maximum number of attempts before moving to DLQ
        base_delay_seconds: Base delay for exponential backoff (first retry)
        max_delay_seconds: Maximum delay between retries
        batch_size: Number of records to process in a single batch
        claim_lease_seconds: How long a worker can hold a claim on a record
    """

    max_attempts: int = 5
    base_delay_seconds: int = 30
    max_delay_seconds: int = 1800
    batch_size: int = 10
    claim_lease_seconds: int = 120

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.base_delay_seconds < 1:
            raise ValueError("base_delay_seconds must be at least 1")
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError("max_delay_seconds must be >= base_delay_seconds")
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.claim_lease_seconds < 1:
            raise ValueError("claim_lease_seconds must be at least 1")

    @classmethod
    def from_settings(cls, retry_settings: Any) -> "RetryConfig":
        """Build from ``RetrySettings``."""
        return cls(
            max_attempts=retry_settings.max_attempts,
            base_delay_seconds=retry_settings.base_delay_seconds,
            max_delay_seconds=retry_settings.max_delay_seconds,
            batch_size=retry_settings.batch_size,
            claim_lease_seconds=retry_settings.claim_lease_seconds,
        )

    def delay_for(self, attempts: int, retry_after: int | None = None) -> int:
        """Exponential backoff: base_delay * 2^attempts, capped, at least retry_after."""
        delay = min(self.base_delay_seconds * (2**attempts), self.max_delay_seconds)
        if retry_after:
            delay = max(delay, retry_after)
        return delay
