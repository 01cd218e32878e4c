"""Circuit breaker for store access.

Purpose: Fail fast with StoreUnavailableError when the database keeps
failing, instead of piling up requests that block on connection timeouts.

States:
- CLOSED: Normal operation, calls pass through
- OPEN: Store failing, calls fail immediately
- HALF_OPEN: Testing if the store recovered, one trial call at a time

Only infrastructure failures count. Domain outcomes such as a lost slot
claim pass through without touching the failure counter.
"""
import threading
import time
from enum import Enum
from typing import Any, Callable, Tuple, Type

from appointment_engine.errors import StoreUnavailableError
from appointment_engine.logging_config import get_logger

logger = get_logger(__name__)


class CircuitState(Enum):
    """Circuit breaker states."""
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitBreakerOpen(StoreUnavailableError):
    """Raised when circuit breaker is open (fail fast)."""
    code = "CIRCUIT_OPEN"


class CircuitBreaker:
    """Circuit breaker for store calls."""

    def __init__(
        self,
        failure_threshold: int = 5,
        timeout: int = 30,
        failure_exceptions: Tuple[Type[BaseException], ...] = (StoreUnavailableError,)
    ):
        """
        Initialize circuit breaker.

        Args:
            failure_threshold: Number of failures before opening circuit
            timeout: Seconds to wait before attempting half-open
            failure_exceptions: Exception types that count as failures
        """
        self.failure_threshold = failure_threshold
        self.timeout = timeout
        self.failure_exceptions = failure_exceptions
        self.failure_count = 0
        self.last_failure_time = None
        self._state = CircuitState.CLOSED
        self._trial_in_flight = False
        self._lock = threading.Lock()

    @property
    def state(self) -> str:
        """Get current state as string."""
        return self._state.value

    def call(self, func: Callable, *args, **kwargs) -> Any:
        """
        Execute function with circuit breaker protection.

        Args:
            func: Function to call
            *args, **kwargs: Arguments to pass to function

        Returns:
            Function result

        Raises:
            CircuitBreakerOpen: If circuit is open (fail fast)
            Exception: If function raises exception
        """
        with self._lock:
            if self._state == CircuitState.OPEN:
                if self._should_attempt_reset():
                    self._state = CircuitState.HALF_OPEN
                    logger.info("circuit_half_open")
                else:
                    raise CircuitBreakerOpen(
                        f"Store circuit is OPEN. "
                        f"Retry after {self._time_until_retry():.1f}s"
                    )

            # Only one caller tests recovery; the rest keep failing fast
            is_trial = self._state == CircuitState.HALF_OPEN
            if is_trial:
                if self._trial_in_flight:
                    raise CircuitBreakerOpen(
                        "Store circuit is HALF_OPEN. Recovery check in progress"
                    )
                self._trial_in_flight = True

        try:
            result = func(*args, **kwargs)
        except self.failure_exceptions:
            self._on_failure()
            raise
        except Exception:
            # The store answered; the outcome was a domain error
            self._on_success()
            raise
        finally:
            if is_trial:
                with self._lock:
                    self._trial_in_flight = False

        self._on_success()
        return result

    def _should_attempt_reset(self) -> bool:
        """Check if enough time passed to attempt half-open."""
        if self.last_failure_time is None:
            return True

        elapsed = time.time() - self.last_failure_time
        return elapsed >= self.timeout

    def _time_until_retry(self) -> float:
        """Calculate seconds until retry allowed."""
        if self.last_failure_time is None:
            return 0

        elapsed = time.time() - self.last_failure_time
        return max(0, self.timeout - elapsed)

    def _on_success(self):
        """Handle successful call."""
        with self._lock:
            self.failure_count = 0
            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.CLOSED
                logger.info("circuit_closed")

    def _on_failure(self):
        """Handle failed call."""
        with self._lock:
            self.failure_count += 1
            self.last_failure_time = time.time()

            if self._state == CircuitState.HALF_OPEN:
                self._state = CircuitState.OPEN
                logger.warning("circuit_reopened")
            elif self.failure_count >= self.failure_threshold:
                self._state = CircuitState.OPEN
                logger.error(
                    "circuit_opened",
                    failures=self.failure_count,
                    timeout=self.timeout
                )
