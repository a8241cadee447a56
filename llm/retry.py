"""
NovelWeaver - Rate Limit Retry
Exponential backoff for oracle calls that hit rate limiting

Only rate-limit failures are retried. Anything else propagates on the
first attempt. When every attempt is rate limited, QuotaExceededError is
raised instead of the last underlying error.

Usage:
    from llm.retry import retry_with_backoff

    metadata = retry_with_backoff(lambda: call_oracle(query))
"""

import time
from typing import Callable, Optional, TypeVar

from core.errors import QuotaExceededError
from core.logger import log_warning, log_error

T = TypeVar('T')

QUOTA_EXCEEDED_MESSAGE = "API quota exceeded. Please try again later or slow down."

_RATE_LIMIT_MARKERS = ("429", "quota", "exhausted")


def is_rate_limit_error(error: BaseException) -> bool:
    """
    Decide whether a failure is rate limiting.

    Checks a 429 status on the common attribute names, then falls back
    to the message text.
    """
    for attr in ("status_code", "status", "code"):
        if getattr(error, attr, None) == 429:
            return True

    if getattr(error, "error_type", None) == "rate_limited":
        return True

    message = str(error).lower()
    return any(marker in message for marker in _RATE_LIMIT_MARKERS)


def retry_with_backoff(
    operation: Callable[[], T],
    max_attempts: int = 3,
    initial_delay: float = 2.0,
    backoff_multiplier: float = 2.0,
    sleep: Optional[Callable[[float], None]] = None,
    label: str = "Oracle call"
) -> T:
    """
    Run an operation, retrying only on rate limiting.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Total attempts, including the first
        initial_delay: Seconds to wait after the first rate-limited attempt
        backoff_multiplier: Factor applied to the delay after each wait
        sleep: Sleep function (defaults to time.sleep)
        label: Name used in log messages

    Returns:
        The operation's result

    Raises:
        QuotaExceededError: If every attempt was rate limited
        Exception: Any non-rate-limit failure, unchanged
    """
    sleep = sleep or time.sleep
    delay = initial_delay

    for attempt in range(max_attempts):
        try:
            return operation()
        except Exception as e:
            if not is_rate_limit_error(e):
                raise

            if attempt >= max_attempts - 1:
                log_error(f"{label}: rate limited on all {max_attempts} attempts")
                raise QuotaExceededError(QUOTA_EXCEEDED_MESSAGE) from e

            log_warning(
                f"{label}: rate limit hit (attempt {attempt + 1}/{max_attempts}), "
                f"retrying in {delay:.1f}s..."
            )
            sleep(delay)
            delay *= backoff_multiplier

    # Only reachable with max_attempts < 1
    raise QuotaExceededError(QUOTA_EXCEEDED_MESSAGE)
