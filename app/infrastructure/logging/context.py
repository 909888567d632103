"""Scoped structlog context for HTTP requests and queued work items.

Usage:
    from infrastructure.logging import bind_request_context

    with bind_request_context(correlation_id="req-123", user_id="u-42"):
        logger.info("processing_request")
"""

import uuid
from contextlib import contextmanager
from typing import Any, Dict, Generator, Optional

import structlog


@contextmanager
def _bound(context: Dict[str, Any]) -> Generator[None, None, None]:
    # restores whatever the enclosing scope had bound under the same keys
    previous = structlog.contextvars.get_contextvars()
    structlog.contextvars.bind_contextvars(**context)
    try:
        yield
    finally:
        structlog.contextvars.unbind_contextvars(*context.keys())
        restore = {k: previous[k] for k in context if k in previous}
        if restore:
            structlog.contextvars.bind_contextvars(**restore)


@contextmanager
def bind_request_context(
    correlation_id: Optional[str] = None,
    user_email: Optional[str] = None,
    user_id: Optional[str] = None,
    request_path: Optional[str] = None,
    request_method: Optional[str] = None,
    **extra_context: Any,
) -> Generator[None, None, None]:
    """Bind request metadata to every log entry emitted inside the block.

    Args:
        correlation_id: Request identifier; generated when missing.
        user_email: Caller email from the upstream auth layer.
        user_id: Caller id from the upstream auth layer.
        request_path: HTTP path, e.g. ``/api/v1/translations/pending``.
        request_method: HTTP method.
        **extra_context: Additional key-value pairs.
    """
    context: Dict[str, Any] = {"correlation_id": correlation_id or str(uuid.uuid4())}
    optional = {
        "user_email": user_email,
        "user_id": user_id,
        "request_path": request_path,
        "request_method": request_method,
    }
    context.update({k: v for k, v in optional.items() if v is not None})
    context.update(extra_context)
    with _bound(context):
        yield


@contextmanager
def bind_work_item_context(
    record_id: Optional[str], operation_type: str, dedup_key: Optional[str] = None
) -> Generator[None, None, None]:
    """Bind a queued work item to the log entries of its processing.

    The record id doubles as correlation id so a worker pass can be followed
    from claim to outcome.
    """
    context: Dict[str, Any] = {
        "correlation_id": record_id or str(uuid.uuid4()),
        "operation_type": operation_type,
    }
    if dedup_key:
        context["work_key"] = dedup_key
    with _bound(context):
        yield


def get_correlation_id() -> Optional[str]:
    """Correlation id bound in the current context, if any."""
    return structlog.contextvars.get_contextvars().get("correlation_id")
