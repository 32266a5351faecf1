"""
Blocking wait helpers.

Every device observation in this service is a sleep-then-poll cycle; there
is no push notification and no cancellation token. These helpers are the
only place the scanning code sleeps, so tests can patch
``core.polling.time.sleep`` once.
"""

from __future__ import annotations

import time
from typing import Callable, Optional, TypeVar

T = TypeVar("T")


def delay(milliseconds: int) -> None:
    """Block the calling thread for the given number of milliseconds."""
    time.sleep(milliseconds / 1000.0)


def poll_until(
    fetch: Callable[[], T],
    predicate: Callable[[T], bool],
    interval_ms: int,
    max_attempts: Optional[int] = None,
    delay_first: bool = False,
    on_retry: Optional[Callable[[int, T], None]] = None,
) -> T:
    """
    Fetch repeatedly until the predicate holds.

    Args:
        fetch: Performs one synchronous query (one device round trip)
        predicate: Decides whether the fetched value ends the wait
        interval_ms: Sleep between attempts
        max_attempts: Attempt ceiling (None waits forever)
        delay_first: Sleep before the first fetch instead of after it
        on_retry: Called with (attempt number, value) for every value
            that did not satisfy the predicate

    Returns:
        The last fetched value. When max_attempts is exhausted this is a
        value that failed the predicate; callers classify it themselves.
    """
    attempt = 0
    while True:
        if delay_first:
            delay(interval_ms)

        value = fetch()
        attempt += 1

        if predicate(value):
            return value

        if on_retry is not None:
            on_retry(attempt, value)

        if not delay_first:
            delay(interval_ms)

        if max_attempts is not None and attempt >= max_attempts:
            return value
