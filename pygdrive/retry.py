"""Retry policy with capped exponential backoff."""

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable

from .utils import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_MAX_RETRY_DELAY,
    DEFAULT_RETRY_DELAY,
    DEFAULT_UPLOAD_MAX_DELAY,
    DEFAULT_UPLOAD_MAX_RETRIES,
    DEFAULT_UPLOAD_MIN_DELAY,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackoffPolicy:
    """Retry schedule with increasing delay, bounded above and below.

    The delay before retry ``attempt`` (0-based) is
    ``min_delay * 2 ** attempt`` with +/- 25% jitter, clamped to
    ``[min_delay, max_delay]``.

    Examples:
        >>> policy = BackoffPolicy(max_retries=5, min_delay=1.0, max_delay=8.0)
        >>> policy.should_retry(4)
        True
        >>> policy.should_retry(5)
        False
    """

    max_retries: int
    min_delay: float
    max_delay: float
    jitter: bool = True
    sleep: Callable[[float], None] = time.sleep

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must not be negative")
        if self.min_delay < 0 or self.max_delay < self.min_delay:
            raise ValueError("delays must satisfy 0 <= min_delay <= max_delay")

    def should_retry(self, attempt: int) -> bool:
        """Return True if retry number ``attempt`` (0-based) is allowed."""
        return attempt < self.max_retries

    def delay(self, attempt: int) -> float:
        """Calculate the delay in seconds before retry ``attempt``."""
        # Cap the exponent so huge attempt counts do not overflow
        base_delay = self.min_delay * (2 ** min(attempt, 32))
        if self.jitter:
            base_delay += base_delay * 0.25 * (2 * random.random() - 1)
        return max(self.min_delay, min(self.max_delay, base_delay))

    def wait(self, attempt: int) -> float:
        """Sleep for the delay of ``attempt`` and return it."""
        delay = self.delay(attempt)
        if delay > 0:
            logger.debug("Backing off %.2fs before retry %d", delay, attempt + 1)
            self.sleep(delay)
        return delay

    @classmethod
    def for_uploads(cls) -> "BackoffPolicy":
        """Policy for chunk uploads: effectively retry until the network recovers."""
        return cls(
            max_retries=DEFAULT_UPLOAD_MAX_RETRIES,
            min_delay=DEFAULT_UPLOAD_MIN_DELAY,
            max_delay=DEFAULT_UPLOAD_MAX_DELAY,
        )

    @classmethod
    def for_requests(cls) -> "BackoffPolicy":
        """Policy for ordinary metadata requests."""
        return cls(
            max_retries=DEFAULT_MAX_RETRIES,
            min_delay=DEFAULT_RETRY_DELAY,
            max_delay=DEFAULT_MAX_RETRY_DELAY,
        )

    @classmethod
    def immediate(cls, max_retries: int = 3) -> "BackoffPolicy":
        """Policy without any delay, mostly useful in tests."""
        return cls(max_retries=max_retries, min_delay=0.0, max_delay=0.0, jitter=False)
