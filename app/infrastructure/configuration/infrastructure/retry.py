"""Work-queue (retry system) infrastructure settings."""

from pydantic import Field

from infrastructure.configuration.base import InfrastructureSettings


class RetrySettings(InfrastructureSettings):
    """Configuration for the queue that runs automatic translations.

    Work items are claimed by a worker, retried with exponential backoff and
    dead-lettered once the maximum number of attempts is reached.

    Environment Variables:
        RETRY_BACKEND: 'memory' (process-local) or 'document' (stored in the
            configured document store, durable with the DynamoDB backend)
        RETRY_MAX_ATTEMPTS: Maximum attempts before the dead-letter queue
        RETRY_BASE_DELAY_SECONDS: Base exponential backoff delay
        RETRY_MAX_DELAY_SECONDS: Maximum backoff delay
        RETRY_BATCH_SIZE: Items processed per batch
        RETRY_CLAIM_LEASE_SECONDS: Claim duration

    Exponential Backoff:
        Delay calculation: min(base_delay * (2 ^ attempt), max_delay)

    Example:
        ```python
        settings = get_settings()
        config = RetryConfig(max_attempts=settings.retry.max_attempts)
        ```
    """

    backend: str = Field(
        default="memory",
        alias="RETRY_BACKEND",
        description="Work queue backend: 'memory' or 'document'",
    )
    max_attempts: int = Field(
        default=5,
        alias="RETRY_MAX_ATTEMPTS",
        description="Maximum attempts before moving to DLQ",
    )
    base_delay_seconds: int = Field(
        default=30,
        alias="RETRY_BASE_DELAY_SECONDS",
        description="Base delay for exponential backoff (seconds)",
    )
    max_delay_seconds: int = Field(
        default=1800,
        alias="RETRY_MAX_DELAY_SECONDS",
        description="Maximum delay for exponential backoff (seconds)",
    )
    batch_size: int = Field(
        default=10,
        alias="RETRY_BATCH_SIZE",
        description="Number of work items to process per batch",
    )
    claim_lease_seconds: int = Field(
        default=120,
        alias="RETRY_CLAIM_LEASE_SECONDS",
        description="Duration to hold a claim on a work item (seconds)",
    )
