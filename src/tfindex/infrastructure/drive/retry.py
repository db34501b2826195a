"""Backoff for Drive API requests.

Drive answers quota pressure with 429 or with a 403 whose reason is
``rateLimitExceeded``/``userRateLimitExceeded``, and asks clients to back
off exponentially. A ``Retry-After`` header, when present, sets a floor on
the wait.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import TypeVar

from .errors import NonRetryableError, RemoteStorageError, RetryableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class BackoffPolicy:
    """How often and how long to wait between attempts of one Drive request.

    Attributes:
        max_retries: Attempts after the first one; 0 disables retrying.
        base_delay: Seconds before the first retry.
        max_delay: Upper bound for any single wait, ``Retry-After`` included.
        multiplier: Growth factor applied per attempt.
    """

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 32.0
    multiplier: float = 2.0

    def delay_for(self, attempt: int, error: RetryableError) -> float:
        delay = self.base_delay * (self.multiplier**attempt)
        if error.retry_after is not None:
            delay = max(delay, error.retry_after)
        return min(delay, self.max_delay)


def call_with_backoff(
    request: Callable[[], T],
    policy: BackoffPolicy,
    description: str = "Drive request",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Run one Drive API call, retrying rate limits and transient failures.

    Args:
        request: Performs a single HTTP exchange
        policy: Retry count and delays
        description: Names the request in log lines and errors
        sleep: Sleep function, replaceable in tests

    Raises:
        NonRetryableError: On the first occurrence
        RemoteStorageError: Once the policy's retries are used up
    """
    attempts = policy.max_retries + 1
    for attempt in range(attempts):
        try:
            return request()
        except NonRetryableError:
            raise
        except RetryableError as e:
            if attempt == policy.max_retries:
                logger.error(f"{description} gave up after {attempts} attempts: {e}")
                raise RemoteStorageError(
                    f"{description} failed after {attempts} attempts: {e}"
                ) from e
            delay = policy.delay_for(attempt, e)
            logger.warning(
                f"{description} attempt {attempt + 1}/{attempts} failed: {e}. "
                f"Retrying in {delay:.1f}s"
            )
            sleep(delay)

    # max_retries < 0
    raise RemoteStorageError(f"{description} was not attempted")
