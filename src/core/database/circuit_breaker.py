"""
Circuit breaker for database transactions.

Purpose
-------
Fail fast while the database is unreachable instead of piling up unlock
requests behind dead connections.

States
------
- CLOSED: requests pass; consecutive infrastructure failures are counted.
- OPEN: requests are rejected until the recovery timeout elapses.
- HALF_OPEN: a limited number of trial requests pass; one success closes
  the circuit, one failure re-opens it.

Only persistence failures are recorded. Game-rule rejections such as a
repeated unlock roll back their transaction but never count as failures;
the database answered, so they count as successes. A cancelled request
hands its trial slot back with `release_trial()`.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from src.core.config.config import Config
from src.core.logging.logger import get_logger

logger = get_logger(__name__)


class CircuitState(str, Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class CircuitBreakerMetrics:
    state: CircuitState
    failure_count: int
    success_count: int
    consecutive_failures: int
    total_requests: int
    rejected_requests: int
    last_failure_time: Optional[float]


class CircuitBreaker:
    """
    Async-safe circuit breaker guarded by an `asyncio.Lock`.

    Parameters
    ----------
    failure_threshold:
        Consecutive failures before the circuit opens.
    recovery_timeout:
        Seconds to stay OPEN before allowing a trial request.
    half_open_max_requests:
        Trial requests allowed while HALF_OPEN.
    clock:
        Monotonic time source; injectable for tests.
    """

    def __init__(
        self,
        failure_threshold: Optional[int] = None,
        recovery_timeout: Optional[float] = None,
        half_open_max_requests: int = 1,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._failure_threshold = failure_threshold or Config.CIRCUIT_BREAKER_FAILURE_THRESHOLD
        self._recovery_timeout = (
            recovery_timeout
            if recovery_timeout is not None
            else float(Config.CIRCUIT_BREAKER_RECOVERY_TIMEOUT)
        )
        self._half_open_max_requests = half_open_max_requests
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._lock = asyncio.Lock()

        self._consecutive_failures = 0
        self._failure_count = 0
        self._success_count = 0
        self._total_requests = 0
        self._rejected_requests = 0
        self._half_open_trials = 0
        self._last_failure_time: Optional[float] = None

    @property
    def state(self) -> CircuitState:
        return self._state

    @property
    def consecutive_failures(self) -> int:
        return self._consecutive_failures

    def retry_after(self) -> float:
        """Seconds until an OPEN circuit will admit a trial request."""
        if self._state != CircuitState.OPEN or self._last_failure_time is None:
            return 0.0
        elapsed = self._clock() - self._last_failure_time
        return max(0.0, self._recovery_timeout - elapsed)

    async def allow_request(self) -> bool:
        async with self._lock:
            self._total_requests += 1

            if self._state == CircuitState.CLOSED:
                return True

            if self._state == CircuitState.OPEN:
                if self.retry_after() > 0:
                    self._rejected_requests += 1
                    return False
                self._transition(CircuitState.HALF_OPEN)

            if self._half_open_trials < self._half_open_max_requests:
                self._half_open_trials += 1
                return True

            self._rejected_requests += 1
            return False

    async def record_success(self) -> None:
        async with self._lock:
            self._success_count += 1
            self._consecutive_failures = 0
            if self._state == CircuitState.HALF_OPEN:
                self._transition(CircuitState.CLOSED)

    def release_trial(self) -> None:
        """Return an unused HALF_OPEN trial slot without judging the backend."""
        if self._state == CircuitState.HALF_OPEN and self._half_open_trials > 0:
            self._half_open_trials -= 1

    async def record_failure(self) -> None:
        async with self._lock:
            self._failure_count += 1
            self._consecutive_failures += 1
            self._last_failure_time = self._clock()

            logger.warning(
                "Circuit breaker recorded failure",
                extra={
                    "state": self._state.value,
                    "consecutive_failures": self._consecutive_failures,
                    "failure_threshold": self._failure_threshold,
                },
            )

            if self._state == CircuitState.HALF_OPEN or (
                self._state == CircuitState.CLOSED
                and self._consecutive_failures >= self._failure_threshold
            ):
                self._transition(CircuitState.OPEN)

    def _transition(self, new_state: CircuitState) -> None:
        if new_state == self._state:
            return

        old_state = self._state
        self._state = new_state
        self._half_open_trials = 0
        if new_state == CircuitState.CLOSED:
            self._consecutive_failures = 0

        log = logger.error if new_state == CircuitState.OPEN else logger.info
        log(
            "Circuit breaker state changed",
            extra={
                "old_state": old_state.value,
                "new_state": new_state.value,
                "consecutive_failures": self._consecutive_failures,
                "recovery_timeout_seconds": self._recovery_timeout,
            },
        )

    def get_metrics(self) -> CircuitBreakerMetrics:
        return CircuitBreakerMetrics(
            state=self._state,
            failure_count=self._failure_count,
            success_count=self._success_count,
            consecutive_failures=self._consecutive_failures,
            total_requests=self._total_requests,
            rejected_requests=self._rejected_requests,
            last_failure_time=self._last_failure_time,
        )

    async def reset(self) -> None:
        """Force the circuit CLOSED; administrative and test use only."""
        async with self._lock:
            self._transition(CircuitState.CLOSED)
            self._failure_count = 0
            self._success_count = 0
            self._total_requests = 0
            self._rejected_requests = 0
