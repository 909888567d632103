"""Resilience patterns: circuit breakers and the retrying work queue."""

from infrastructure.resilience.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerOpenError,
    CircuitBreakerRegistry,
    CircuitState,
)
from infrastructure.resilience.retry import (
    DocumentRetryStore,
    InMemoryRetryStore,
    RetryConfig,
    RetryProcessor,
    RetryRecord,
    RetryResult,
    RetryStore,
    RetryWorker,
    create_retry_store,
)

__all__ = [
    # Circuit Breaker
    "CircuitBreaker",
    "CircuitBreakerOpenError",
    "CircuitBreakerRegistry",
    "CircuitState",
    # Retry System
    "RetryRecord",
    "RetryResult",
    "RetryConfig",
    "RetryStore",
    "InMemoryRetryStore",
    "DocumentRetryStore",
    "RetryWorker",
    "RetryProcessor",
    "create_retry_store",
]
