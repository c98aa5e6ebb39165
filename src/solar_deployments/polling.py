"""Polling helper for transaction confirmation."""

import time
from typing import Callable, Optional, TypeVar

from .constants import POLL_INTERVAL
from .exceptions import ConfirmationTimeoutError

T = TypeVar("T")


def poll(
    check: Callable[[], Optional[T]],
    interval: float = POLL_INTERVAL,
    timeout: Optional[float] = None,
    description: str = "transaction",
) -> T:
    """
    Call check until it returns something other than None.

    Args:
        check: Returns None while the awaited condition does not hold
        interval: Seconds between calls
        timeout: Caller-supplied deadline in seconds (None waits forever)
        description: Used in the timeout message

    Returns:
        First non-None value returned by check

    Raises:
        ConfirmationTimeoutError: If the deadline passes first
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    while True:
        result = check()
        if result is not None:
            return result

        if deadline is None:
            time.sleep(interval)
            continue

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ConfirmationTimeoutError(
                f"Timed out after {timeout}s waiting for {description}"
            )
        time.sleep(min(interval, remaining))
