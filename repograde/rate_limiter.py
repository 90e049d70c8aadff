import logging
import random

from repograde.consts import PIPELINE_BACKOFF_INITIAL_DELAY, PIPELINE_BACKOFF_MAX_DELAY

logger = logging.getLogger(__name__)


class RateLimiter:
    """Retry delay calculator with exponential backoff and jitter."""

    def __init__(
        self,
        initial_delay: float = PIPELINE_BACKOFF_INITIAL_DELAY,
        max_delay: float = PIPELINE_BACKOFF_MAX_DELAY,
        backoff_factor: float = 2.0,
        jitter_factor: float = 0.1,
    ):
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.backoff_factor = backoff_factor
        self.jitter_factor = jitter_factor
        self._current_delay = initial_delay
        self._consecutive_errors = 0

    def reset(self) -> None:
        """Reset delay after a successful attempt."""
        self._current_delay = self.initial_delay
        self._consecutive_errors = 0

    def backoff(self) -> float:
        """Return the delay before the next attempt.

        The first failure waits initial_delay; each further failure
        multiplies it by backoff_factor, capped at max_delay.
        """
        if self._consecutive_errors > 0:
            self._current_delay = min(self._current_delay * self.backoff_factor, self.max_delay)
        self._consecutive_errors += 1
        # +/- jitter_factor of the delay
        jitter = self._current_delay * self.jitter_factor * (2 * random.random() - 1)
        delay = max(0.0, self._current_delay + jitter)
        logger.debug(f"Backoff #{self._consecutive_errors}: {delay:.2f}s")
        return delay

    @property
    def consecutive_errors(self) -> int:
        return self._consecutive_errors
