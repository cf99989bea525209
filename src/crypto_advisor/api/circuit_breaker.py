"""Consecutive-failure circuit breaker shared by every gateway call."""
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from crypto_advisor.config import (FAILURE_RESET_SECONDS,
                                   MAX_CONSECUTIVE_FAILURES)

logger = logging.getLogger(__name__)


@dataclass
class CircuitBreaker:
    """Counts consecutive failures and opens after `max_consecutive_failures`.

    While open every request short-circuits. Once `failure_reset_time`
    seconds have passed since the last failure the counter drops back to 0
    on the next attempt. Any success resets the counter.

    One instance is shared by all sessions of a process (see the DI
    container), so a failing endpoint can transiently block unrelated calls.
    """

    max_consecutive_failures: int = MAX_CONSECUTIVE_FAILURES
    failure_reset_time: float = FAILURE_RESET_SECONDS
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)
    consecutive_failures: int = 0
    last_failure_time: float | None = None

    def before_request(self) -> bool:
        """Apply the cooldown reset and report whether a request may proceed."""
        now = self.clock()
        if (
            self.last_failure_time is None
            or now - self.last_failure_time > self.failure_reset_time
        ):
            self.consecutive_failures = 0
        return not self.is_open

    @property
    def is_open(self) -> bool:
        return self.consecutive_failures >= self.max_consecutive_failures

    def record_success(self) -> None:
        self.consecutive_failures = 0

    def record_failure(self) -> None:
        self.consecutive_failures += 1
        self.last_failure_time = self.clock()
        if self.consecutive_failures == self.max_consecutive_failures:
            logger.warning(
                "Circuit opened after %d consecutive failures; cooling down %.0fs",
                self.consecutive_failures,
                self.failure_reset_time,
            )

    def reset(self) -> None:
        self.consecutive_failures = 0
        self.last_failure_time = None

    def snapshot(self) -> dict[str, object]:
        return {
            "consecutive_failures": self.consecutive_failures,
            "last_failure_time": self.last_failure_time,
            "is_open": self.is_open,
        }
