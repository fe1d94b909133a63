"""
Backoff executor.

Every external call in the pipeline (discovery, scoring, persistence,
notifications) goes through `execute`, which retries with jittered
exponential backoff and always re-raises the last failure.
"""

import logging
import random
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from typing import TypeVar

from autoapply.config import settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _always_retry(error: Exception) -> bool:
    return True


@dataclass(frozen=True)
class BackoffOptions:
    """Retry policy for a single call."""

    max_retries: int = field(default_factory=lambda: settings.backoff_max_retries)
    base_delay: float = field(default_factory=lambda: settings.backoff_base_delay)  # seconds
    max_delay: float = field(default_factory=lambda: settings.backoff_max_delay)  # seconds
    should_retry: Callable[[Exception], bool] = _always_retry

    def with_predicate(self, should_retry: Callable[[Exception], bool]) -> "BackoffOptions":
        return replace(self, should_retry=should_retry)


class BackoffExecutor:
    """Runs operations with jittered exponential backoff."""

    def __init__(
        self,
        sleep: Callable[[float], None] = time.sleep,
        rand: Callable[[], float] = random.random,
    ):
        self._sleep = sleep
        self._rand = rand

    def delay_for(self, attempt: int, options: BackoffOptions) -> float:
        """Delay before the retry that follows `attempt` (0-based)."""
        return min(options.max_delay, self._rand() * options.base_delay * (2**attempt))

    def execute(self, operation: Callable[[], T], options: BackoffOptions | None = None) -> T:
        options = options or BackoffOptions()
        attempts = max(1, options.max_retries)

        for attempt in range(attempts):
            try:
                return operation()
            except Exception as e:
                if not options.should_retry(e) or attempt == attempts - 1:
                    raise

                delay = self.delay_for(attempt, options)
                logger.info(f"Retry attempt {attempt + 1}/{attempts} in {delay:.2f}s after: {e}")
                self._sleep(delay)

        # Unreachable: the last attempt either returns or raises
        raise RuntimeError("backoff loop exited without a result")