"""Circuit breaker for calls to external services.

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Service failing, requests fail immediately (fail fast)
- HALF_OPEN: Timeout elapsed, one trial request decides the next state

Request handlers run in a threadpool, so state transitions are guarded by a
lock. The wrapped call itself runs outside the lock.
"""
import threading
import time
from enum import Enum
from typing import Any, Callable, Tuple, Type

from doctors_portal.logging_config import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(Exception):
    """Raised when circuit breaker is open (fail fast)."""

    def __init__(self, name: str, retry_after: float):
        super().__init__(f"Circuit '{name}' is OPEN. Retry after {retry_after:.1f}s")
        self.name = name
        self.retry_after = retry_after


class CircuitBreaker:
    """
    Counts consecutive failures of an external dependency.

    Args:
        name: Dependency name used in logs and errors
        failure_threshold: Consecutive failures before opening the circuit
        timeout: Seconds to stay open before allowing a half-open trial
        counted_exceptions: Exception types that count as failures; anything
            else propagates without touching the breaker
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        timeout: float = 60,
        counted_exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    ):
        self.name = name
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.counted_exceptions = counted_exceptions
        self.failure_count = 0
        self.last_failure_time = None
        self._state = CircuitState.CLOSED
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        return self._state.value

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute ``func`` under breaker protection.

        Raises:
            CircuitBreakerOpen: If circuit is open (fail fast)
            Exception: Whatever ``func`` raises
        """
        self._before_call()
        try:
            result = func(*args, **kwargs)
        except self.counted_exceptions:
            self._on_failure()
            raise
        self._on_success()
        return result

    def _before_call(self):
        with self._lock:
            if self._state != CircuitState.OPEN:
                return
            elapsed = time.monotonic() - (self.last_failure_time or 0)
            if elapsed >= self.timeout:
                self._state = CircuitState.HALF_OPEN
                logger.info("circuit_half_open", circuit=self.name)
                return
            raise CircuitBreakerOpen(self.name, max(0.0, self.timeout - elapsed))

    def _on_success(self):
        with self._lock:
            self.failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info("circuit_closed", circuit=self.name)

    def _on_failure(self):
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.monotonic()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning("circuit_reopened", circuit=self.name)
            elif self.failure_count >= self.failure_threshold and self._state == CircuitState.CLOSED:
                self._state = CircuitState.OPEN
                logger.error(
                    "circuit_opened",
                    circuit=self.name,
                    failures=self.failure_count,
                    timeout=self.timeout,
                )
