"""Errors raised by the localization components.

Every error carries a ``kind`` from ``ErrorKind``; validation and conflict
errors also name the offending field path.
"""

from typing import Any, Dict, Optional

from infrastructure.operations import OperationResult, OperationStatus
from modules.localization.domain.enums import ErrorKind


class LocalizationError(Exception):
    """Base class for localization failures.

    Attributes:
        kind: ErrorKind of the failure
        message: human-readable message
        field: offending field path, when known
        details: additional structured details
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.field = field
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        details = dict(self.details)
        if self.field:
            details["field"] = self.field
        return {"kind": self.kind.value, "message": self.message, "details": details}


class InvalidInputError(LocalizationError):
    kind = ErrorKind.VALIDATION


class NotFoundError(LocalizationError):
    kind = ErrorKind.NOT_FOUND


class ConflictError(LocalizationError):
    kind = ErrorKind.CONFLICT


class WorkflowStateError(LocalizationError):
    """Raised when a transition is not allowed from the row's current stage."""

    kind = ErrorKind.WORKFLOW_STATE


class ProviderUnavailableError(LocalizationError):
    kind = ErrorKind.PROVIDER_UNAVAILABLE


class ProviderTimeoutError(LocalizationError):
    kind = ErrorKind.TIMEOUT


class PermissionDeniedError(LocalizationError):
    kind = ErrorKind.PERMISSION


class InternalError(LocalizationError):
    kind = ErrorKind.INTERNAL


_ERRORS_BY_KIND = {
    cls.kind.value: cls
    for cls in (
        InvalidInputError,
        NotFoundError,
        ConflictError,
        WorkflowStateError,
        ProviderUnavailableError,
        ProviderTimeoutError,
        PermissionDeniedError,
        InternalError,
    )
}


def error_from_result(result: OperationResult) -> LocalizationError:
    """Convert a failed OperationResult into the matching LocalizationError."""
    kind = result.error_code
    if kind not in _ERRORS_BY_KIND:
        if result.status == OperationStatus.NOT_FOUND:
            kind = ErrorKind.NOT_FOUND.value
        elif result.status == OperationStatus.UNAUTHORIZED:
            kind = ErrorKind.PERMISSION.value
        else:
            kind = ErrorKind.INTERNAL.value
    details = result.data if isinstance(result.data, dict) else {}
    return _ERRORS_BY_KIND[kind](result.message, details=dict(details))
