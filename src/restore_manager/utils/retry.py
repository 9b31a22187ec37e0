"""Bounded polling with exponential backoff.

Used to wait for the restore subsystem to reflect a change (a freshly created
checkpoint shows up in the inventory a few seconds late). Provider actions
themselves are never retried.
"""

import logging
import time
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryManager:
    """
    Polls a check until it yields a result or attempts run out.

    GOTCHA: Backoff delay is capped at max_delay
    """

    def __init__(
        self,
        max_attempts: int = 5,
        initial_delay: float = 1.0,
        backoff_factor: float = 2.0,
        max_delay: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize retry manager.

        Args:
            max_attempts: Maximum number of check calls
            initial_delay: Delay after the first miss (seconds)
            backoff_factor: Exponential backoff multiplier
            max_delay: Maximum delay between attempts (seconds)
            sleep: Sleep function, replaceable in tests
        """
        self.max_attempts = max_attempts
        self.initial_delay = initial_delay
        self.backoff_factor = backoff_factor
        self.max_delay = max_delay
        self._sleep = sleep

    def calculate_delay(self, attempt: int) -> float:
        """
        Calculate delay after a given attempt.

        Args:
            attempt: Attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        return min(self.initial_delay * self.backoff_factor**attempt, self.max_delay)

    def poll(self, check: Callable[[], Optional[T]], description: str = "condition") -> Optional[T]:
        """
        Call check until it returns something other than None.

        Args:
            check: Callable returning a result or None
            description: Label for log messages

        Returns:
            The first non-None result, or None when attempts are exhausted
        """
        for attempt in range(self.max_attempts):
            result = check()
            if result is not None:
                return result

            if attempt < self.max_attempts - 1:
                delay = self.calculate_delay(attempt)
                logger.debug(
                    f"Waiting for {description} (attempt {attempt + 1}/{self.max_attempts}), "
                    f"retrying in {delay:.2f}s..."
                )
                self._sleep(delay)

        logger.warning(f"Gave up waiting for {description} after {self.max_attempts} attempts")
        return None
