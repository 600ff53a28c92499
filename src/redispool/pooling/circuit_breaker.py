"""
Circuit Breaker for resource creation

Stops the pool from hammering a backend that keeps refusing new
connections. After `failure_threshold` consecutive create failures the
circuit opens; once `recovery_timeout` has elapsed a single trial create
is allowed (half-open) and `success_threshold` consecutive successes
close the circuit again.
"""

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states"""
    CLOSED = "closed"      # Normal operation
    OPEN = "open"          # Blocking creates
    HALF_OPEN = "half_open"  # Testing recovery


class CircuitBreaker:
    """Tracks consecutive factory failures for one pool"""

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: float = 30.0,
        success_threshold: int = 1,
        on_state_change: Optional[Callable[[CircuitState, Dict[str, Any]], None]] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self.success_threshold = success_threshold
        self.on_state_change = on_state_change
        self._clock = clock

        self.state = CircuitState.CLOSED
        self.consecutive_failures = 0
        self.consecutive_successes = 0
        self.total_failures = 0
        self.total_successes = 0
        self.opened_at: Optional[float] = None
        self._trial_in_flight = False

    def retry_after(self) -> float:
        """Seconds until a trial create will be allowed"""
        if self.state != CircuitState.OPEN or self.opened_at is None:
            return 0.0
        return max(0.0, self.opened_at + self.recovery_timeout - self._clock())

    def allow_request(self) -> bool:
        """Check whether a create may be issued now; claims the trial slot when half-open"""
        if self.state == CircuitState.CLOSED:
            return True

        if self.state == CircuitState.OPEN:
            if not self._recovery_elapsed():
                return False
            self.state = CircuitState.HALF_OPEN
            self.consecutive_successes = 0
            logger.info("Circuit half-open, allowing a trial create")

        if self._trial_in_flight:
            return False
        self._trial_in_flight = True
        return True

    def record_success(self) -> None:
        self._trial_in_flight = False
        self.consecutive_failures = 0
        self.consecutive_successes += 1
        self.total_successes += 1

        if (self.state == CircuitState.HALF_OPEN and
                self.consecutive_successes >= self.success_threshold):
            self._close()

    def record_failure(self) -> None:
        self._trial_in_flight = False
        self.consecutive_successes = 0
        self.consecutive_failures += 1
        self.total_failures += 1

        if self.state == CircuitState.HALF_OPEN:
            # Failed during recovery test
            self._open("recovery_failed")
        elif (self.state == CircuitState.CLOSED and
                self.consecutive_failures >= self.failure_threshold):
            self._open("failure_threshold")

    def _recovery_elapsed(self) -> bool:
        return self.opened_at is not None and self._clock() - self.opened_at >= self.recovery_timeout

    def _open(self, reason: str) -> None:
        self.state = CircuitState.OPEN
        self.opened_at = self._clock()
        logger.warning(
            f"Circuit opened ({reason}) after {self.consecutive_failures} consecutive failures"
        )
        self._notify({
            "reason": reason,
            "failures": self.consecutive_failures,
            "recovery_timeout": self.recovery_timeout,
        })

    def _close(self) -> None:
        self.state = CircuitState.CLOSED
        self.opened_at = None
        self.consecutive_failures = 0
        logger.info("Circuit closed, resource creation resumed")
        self._notify({"successes": self.consecutive_successes})

    def _notify(self, data: Dict[str, Any]) -> None:
        if self.on_state_change:
            self.on_state_change(self.state, data)

    def get_stats(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "total_failures": self.total_failures,
            "total_successes": self.total_successes,
            "retry_after": self.retry_after(),
        }
