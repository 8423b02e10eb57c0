"""Exponential-backoff retry policy for remote calls.

A policy is a stateless value: the attempt loop lives in `attempt()` and
keeps no state between calls, so one policy instance can be reused freely.
The operation signals the outcome of each attempt by its return value:

  True      : success, stop retrying
  False     : retryable failure, sleep then try again
  raises    : permanent failure, propagates immediately

Delay before attempt k+1 (k = 0-based index of the failed attempt):
    initial_delay_ms * scale_factor ** k
No sleep happens after the final attempt.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 5
DEFAULT_INITIAL_DELAY_MS = 1000
DEFAULT_SCALE_FACTOR = 2.0


class RetriesExhaustedError(Exception):
    """Raised when every attempt of a policy reported a retryable failure."""

    def __init__(self, attempts: int):
        self.attempts = attempts
        super().__init__(f"Operation failed after {attempts} attempt(s)")


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    initial_delay_ms: int = DEFAULT_INITIAL_DELAY_MS
    scale_factor: float = DEFAULT_SCALE_FACTOR

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1 (got {self.max_attempts})")
        if self.initial_delay_ms < 0:
            raise ValueError(f"initial_delay_ms must be >= 0 (got {self.initial_delay_ms})")
        if self.scale_factor <= 0:
            raise ValueError(f"scale_factor must be > 0 (got {self.scale_factor})")

    def delay_ms(self, attempt_index: int) -> float:
        """Delay to wait after the failed attempt at `attempt_index` (0-based)."""
        return self.initial_delay_ms * (self.scale_factor ** attempt_index)

    def attempt(
        self,
        operation: Callable[[], bool],
        sleep: Callable[[float], None] = time.sleep,
    ) -> int:
        """Run `operation` until it returns True or the budget is spent.

        Returns:
            The number of attempts made (1-based), on success.

        Raises:
            RetriesExhaustedError: If all `max_attempts` attempts returned False.
            Exception: Whatever `operation` raises, unchanged.
        """
        for attempt_index in range(self.max_attempts):
            if operation():
                return attempt_index + 1

            if attempt_index + 1 < self.max_attempts:
                delay = self.delay_ms(attempt_index)
                logger.debug(
                    "Attempt %d/%d failed; retrying in %.0f ms",
                    attempt_index + 1, self.max_attempts, delay,
                )
                sleep(delay / 1000.0)

        raise RetriesExhaustedError(self.max_attempts)
