"""
Retry helper for calls to the remote generative-language service.

Only transient failures (503-class status codes or an explicit
"overloaded" signal) are retried. Everything else propagates immediately.
"""
import random
import time
from typing import Callable, Optional, TypeVar

from .config import (
    MAX_RETRIES,
    RETRY_BASE_DELAY_SECONDS,
    RETRY_MAX_JITTER_SECONDS,
    TRANSIENT_STATUS_CODES
)
from .logger import setup_logger

logger = setup_logger("retry")

T = TypeVar("T")


def _status_code(exc: BaseException) -> Optional[int]:
    code = getattr(exc, "status_code", None)
    if code is None:
        response = getattr(exc, "response", None)
        code = getattr(response, "status_code", None)
    return code if isinstance(code, int) else None


def is_transient_error(exc: BaseException) -> bool:
    """
    Decide whether a failed remote call is worth retrying.

    Args:
        exc: Exception raised by the remote call

    Returns:
        True for 503-class status codes or "overloaded" messages
    """
    if getattr(exc, "transient", False) is True:
        return True
    if _status_code(exc) in TRANSIENT_STATUS_CODES:
        return True
    message = str(exc).lower()
    return "overloaded" in message or "503" in message


def retry_with_backoff(
    fn: Callable[[], T],
    max_retries: int = MAX_RETRIES,
    base_delay: float = RETRY_BASE_DELAY_SECONDS,
    max_jitter: float = RETRY_MAX_JITTER_SECONDS,
    is_retryable: Callable[[BaseException], bool] = is_transient_error,
    sleep: Callable[[float], None] = time.sleep,
    rng: Optional[random.Random] = None
) -> T:
    """
    Call fn, retrying transient failures with exponential backoff plus jitter.

    The delay before retry n (0-based) is base_delay * 2**n plus a uniform
    jitter in [0, max_jitter).

    Args:
        fn: Zero-argument callable performing the remote call
        max_retries: Retries after the first attempt
        base_delay: Base delay in seconds
        max_jitter: Upper bound of the random jitter in seconds
        is_retryable: Classifier for exceptions worth retrying
        sleep: Sleep function (injected in tests)
        rng: Random source for jitter

    Returns:
        The value returned by fn

    Raises:
        The last exception once retries are exhausted, or the first
        non-retryable exception.
    """
    rng = rng or random.Random()
    attempt = 0
    while True:
        try:
            return fn()
        except Exception as e:
            if attempt >= max_retries or not is_retryable(e):
                raise
            delay = base_delay * (2 ** attempt) + rng.random() * max_jitter
            logger.warning(
                f"Attempt {attempt + 1} failed ({e}), retrying in {delay:.2f}s..."
            )
            sleep(delay)
            attempt += 1
