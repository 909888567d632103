"""Operation status enumeration.

Status codes for operation results. Statuses describe whether an outcome is
retryable; the precise failure kind travels in ``OperationResult.error_code``.
"""

from enum import Enum


class OperationStatus(Enum):
    """Status codes for operation results.

    Attributes:
        SUCCESS: Operation completed successfully
        TRANSIENT_ERROR: Retryable error (network, timeout, rate limit, 5xx)
        PERMANENT_ERROR: Non-retryable error (bad request, invalid payload)
        UNAUTHORIZED: Credentials missing or rejected by the remote service
        NOT_FOUND: Remote resource or document not found
    """

    SUCCESS = "success"
    TRANSIENT_ERROR = "transient_error"
    PERMANENT_ERROR = "permanent_error"
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
