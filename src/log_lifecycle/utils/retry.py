"""Exponential backoff shared by page fetches and retention changes."""

import random
import time
from typing import Callable, TypeVar

from log_lifecycle.utils.errors import error_handler
from log_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')


class RetryStrategy:
    """Retries transient CloudWatch Logs failures with exponential backoff.

    The walker and the inventory never retry on their own; the reconciler
    owns one strategy per run and applies it to page fetches and mutations.
    Whether an error is transient is decided by ``error_handler``.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 30.0,
        exponential_base: float = 2.0,
        jitter: bool = True
    ):
        """Initialize retry strategy.

        Args:
            max_retries: Retries after the first attempt (0 disables retrying)
            base_delay: Seconds to wait before the first retry
            max_delay: Upper bound for a single wait
            exponential_base: Growth factor between consecutive waits
            jitter: Add up to 10% random delay so parallel workers spread out
        """
        self.max_retries = max_retries
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.exponential_base = exponential_base
        self.jitter = jitter

    def should_retry(self, error: Exception, attempt: int) -> bool:
        """True when ``error`` is transient and ``attempt`` (0-based) has retries left."""
        return attempt < self.max_retries and error_handler.is_retryable(error)

    def get_delay(self, attempt: int) -> float:
        """Seconds to wait after the failed ``attempt`` (0-based)."""
        delay = min(self.base_delay * self.exponential_base ** attempt, self.max_delay)
        if self.jitter:
            delay += random.uniform(0, delay * 0.1)
        return delay

    def wait(self, attempt: int, error: Exception) -> None:
        """Log the failure and sleep before the next attempt."""
        delay = self.get_delay(attempt)
        logger.warning(
            f"Attempt {attempt + 1}/{self.max_retries + 1} failed "
            f"({type(error).__name__}: {error}); retrying in {delay:.2f}s"
        )
        time.sleep(delay)

    def execute_with_retry(self, func: Callable[..., T], *args, **kwargs) -> T:
        """Call ``func`` until it succeeds or fails permanently.

        Raises:
            The last exception, once it is not transient or retries are
            exhausted
        """
        attempt = 0
        while True:
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                if not self.should_retry(e, attempt):
                    logger.debug(f"Giving up after {attempt + 1} attempt(s): {e}")
                    raise
                self.wait(attempt, e)
                attempt += 1
                continue
            if attempt:
                logger.info(f"Succeeded after {attempt} retries")
            return result
