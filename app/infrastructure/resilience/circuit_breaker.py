"""Circuit breaker implementation for provider resilience.

The circuit breaker tracks consecutive failures of a remote dependency:
1. CLOSED state: Normal operation, requests pass through
2. OPEN state: Fast-fail requests without calling the dependency
3. HALF_OPEN state: Test recovery with limited requests

State transitions:
- CLOSED -> OPEN: After failure_threshold consecutive failures
- OPEN -> HALF_OPEN: After timeout period expires
- HALF_OPEN -> CLOSED: After successful request
- HALF_OPEN -> OPEN: If request fails

Callers that already work with explicit results (the translation provider
gateway) use ``allow_request`` / ``record_success`` / ``record_failure``
directly; ``call`` and ``call_async`` wrap plain callables.
"""

import threading
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

from infrastructure.logging import get_module_logger

logger = get_module_logger()


class CircuitState(Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpenError(Exception):
    """Raised when circuit breaker is open and request is rejected."""


class CircuitBreaker:
    """Circuit breaker for a single remote dependency.

    Args:
        name: Name of the circuit (typically provider name)
        failure_threshold: Number of consecutive failures before opening
        timeout_seconds: Seconds to wait before attempting recovery (HALF_OPEN)
        half_open_max_calls: Max requests to allow in HALF_OPEN state
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        timeout_seconds: int = 60,
        half_open_max_calls: int = 3,
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout_seconds = timeout_seconds
        self.half_open_max_calls = half_open_max_calls

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._last_failure_time: Optional[datetime] = None
        self._last_error: Optional[str] = None
        self._half_open_calls = 0

        self._lock = threading.Lock()

    @property
    def state(self) -> CircuitState:
        """Get current circuit state (OPEN turns HALF_OPEN once the timeout expires)."""
        with self._lock:
            if self._state == CircuitState.OPEN and self._should_attempt_reset():
                self._transition_to_half_open()
            return self._state

    @property
    def is_healthy(self) -> bool:
        """Advisory health: False only while the circuit is OPEN."""
        return self.state != CircuitState.OPEN

    def allow_request(self) -> bool:
        """Reserve a slot for one request; False when the circuit rejects it."""
        with self._lock:
            if self._state == CircuitState.OPEN:
                if not self._should_attempt_reset():
                    logger.debug(
                        "circuit_breaker_open",
                        name=self.name,
                        failure_count=self._failure_count,
                    )
                    return False
                self._transition_to_half_open()

            if self._state == CircuitState.HALF_OPEN:
                if self._half_open_calls >= self.half_open_max_calls:
                    logger.debug(
                        "circuit_breaker_half_open_limit",
                        name=self.name,
                        calls=self._half_open_calls,
                    )
                    return False
                self._half_open_calls += 1
            return True

    def record_success(self) -> None:
        """Record a successful request."""
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._success_count += 1
                logger.info(
                    "circuit_breaker_success_half_open",
                    name=self.name,
                    success_count=self._success_count,
                )
                self._transition_to_closed()
            elif self._failure_count > 0:
                logger.debug(
                    "circuit_breaker_failure_count_reset",
                    name=self.name,
                    previous_failures=self._failure_count,
                )
                self._failure_count = 0

    def record_failure(self, reason: str = "") -> None:
        """Record a failed request."""
        with self._lock:
            self._failure_count += 1
            self._last_failure_time = datetime.now(timezone.utc)
            self._last_error = reason or None

            if self._state == CircuitState.HALF_OPEN:
                logger.warning("circuit_breaker_recovery_failed", name=self.name, error=reason)
                self._transition_to_open()
            elif self._failure_count >= self.failure_threshold:
                if self._state != CircuitState.OPEN:
                    logger.error(
                        "circuit_breaker_threshold_exceeded",
                        name=self.name,
                        failure_count=self._failure_count,
                        threshold=self.failure_threshold,
                        error=reason,
                    )
                    self._transition_to_open()
            else:
                logger.warning(
                    "circuit_breaker_failure",
                    name=self.name,
                    failure_count=self._failure_count,
                    threshold=self.failure_threshold,
                    error=reason,
                )

    def _release_half_open_slot(self) -> None:
        with self._lock:
            if self._state == CircuitState.HALF_OPEN and self._half_open_calls > 0:
                self._half_open_calls -= 1

    def call(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        """Execute a synchronous function through the circuit breaker.

        Raises:
            CircuitBreakerOpenError: If circuit is open
            Exception: Any exception raised by func
        """
        if not self.allow_request():
            raise CircuitBreakerOpenError(f"Circuit breaker '{self.name}' is OPEN.")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            self.record_failure(str(e))
            raise
        finally:
            self._release_half_open_slot()
        self.record_success()
        return result

    async def call_async(self, func: Callable[..., Awaitable[Any]], *args, **kwargs) -> Any:
        """Await a coroutine function through the circuit breaker."""
        if not self.allow_request():
            raise CircuitBreakerOpenError(f"Circuit breaker '{self.name}' is OPEN.")
        try:
            result = await func(*args, **kwargs)
        except Exception as e:
            self.record_failure(str(e))
            raise
        finally:
            self._release_half_open_slot()
        self.record_success()
        return result

    def _should_attempt_reset(self) -> bool:
        if self._last_failure_time is None:
            return True
        elapsed = datetime.now(timezone.utc) - self._last_failure_time
        return elapsed >= timedelta(seconds=self.timeout_seconds)

    def _transition_to_closed(self) -> None:
        logger.info("circuit_breaker_closed", name=self.name)
        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0

    def _transition_to_open(self) -> None:
        logger.error(
            "circuit_breaker_opened",
            name=self.name,
            timeout_seconds=self.timeout_seconds,
        )
        self._state = CircuitState.OPEN
        self._half_open_calls = 0

    def _transition_to_half_open(self) -> None:
        logger.info("circuit_breaker_half_open", name=self.name)
        self._state = CircuitState.HALF_OPEN
        self._failure_count = 0
        self._success_count = 0
        self._half_open_calls = 0

    def get_stats(self) -> dict:
        """Get circuit breaker statistics."""
        state = self.state
        with self._lock:
            return {
                "name": self.name,
                "state": state.value,
                "failure_count": self._failure_count,
                "success_count": self._success_count,
                "last_failure_time": (
                    self._last_failure_time.isoformat() if self._last_failure_time else None
                ),
                "last_error": self._last_error,
                "half_open_calls": self._half_open_calls,
            }

    def reset(self) -> None:
        """Manually reset circuit breaker (for testing/admin operations)."""
        with self._lock:
            logger.info("circuit_breaker_manual_reset", name=self.name)
            self._transition_to_closed()


class CircuitBreakerRegistry:
    """Process-scoped set of circuit breakers, one per dependency name.

    Held by whichever context object owns the dependencies; there is no
    module-level registry.
    """

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout_seconds: int = 60,
        half_open_max_calls: int = 1,
    ) -> None:
        self.failure_threshold = failure_threshold
        self.timeout_seconds = timeout_seconds
        self.half_open_max_calls = half_open_max_calls
        self._breakers: dict[str, CircuitBreaker] = {}
        self._lock = threading.Lock()

    def get(self, name: str) -> CircuitBreaker:
        """Return the breaker for ``name``, creating it on first use."""
        with self._lock:
            breaker = self._breakers.get(name)
            if breaker is None:
                breaker = CircuitBreaker(
                    name,
                    failure_threshold=self.failure_threshold,
                    timeout_seconds=self.timeout_seconds,
                    half_open_max_calls=self.half_open_max_calls,
                )
                self._breakers[name] = breaker
            return breaker

    def get_all_stats(self) -> dict[str, dict]:
        with self._lock:
            breakers = list(self._breakers.values())
        return {cb.name: cb.get_stats() for cb in breakers}

    def get_open(self) -> list[str]:
        with self._lock:
            breakers = list(self._breakers.values())
        return [cb.name for cb in breakers if cb.state == CircuitState.OPEN]
