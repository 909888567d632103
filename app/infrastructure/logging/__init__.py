"""Structured logging built on structlog.

Public API:
    - configure_logging(): one-time setup (console in development, JSON in
      production, silent under pytest)
    - get_logger() / get_module_logger(): bound loggers
    - bind_request_context(): request-scoped context for HTTP handlers
    - bind_work_item_context(): context for one queued auto-translation item
    - get_correlation_id(): correlation id of the current scope

Processors in ``formatters`` redact provider credentials and shorten
translation texts before rendering.

Example:
    from infrastructure.logging import get_module_logger

    logger = get_module_logger()
    logger.info("translation_approved", translation_id=row.id)
"""

from infrastructure.logging.setup import (
    configure_logging,
    get_logger,
    get_module_logger,
)

from infrastructure.logging.context import (
    bind_request_context,
    bind_work_item_context,
    get_correlation_id,
)

from infrastructure.logging.formatters import (
    add_app_info,
    mask_sensitive_data,
    truncate_large_values,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "get_module_logger",
    "bind_request_context",
    "bind_work_item_context",
    "get_correlation_id",
    "add_app_info",
    "mask_sensitive_data",
    "truncate_large_values",
]
