"""
Exponential backoff and the transport retry loop.

Two loops in a batch get wait between attempts: the iterator, when the
service hands back unprocessed keys, and `retry`, when the request itself
fails with a retryable error. Both draw their delays from an
`ExponentialBackoff` and both wait through `pause`, so a caller-owned
cancellation event can interrupt either one.
"""

import random
import threading
import time
from collections.abc import Callable
from typing import TypeVar

from ._logging import logger
from .config import DEFAULT_BACKOFF, BackoffConfig
from .exceptions import BatchCancelledError, DynabatchError, is_retryable

R = TypeVar("R")

Sleep = Callable[[float], None]


class ExponentialBackoff:
    """
    Stateful exponential backoff counter.

    `next_backoff()` returns the next delay in seconds, or None once
    `max_elapsed_time` has passed since the last `reset()`.
    Not thread-safe: each iterator owns its own instance.
    """

    def __init__(
        self,
        config: BackoffConfig = DEFAULT_BACKOFF,
        clock: Callable[[], float] = time.monotonic,
        rand: Callable[[], float] = random.random,
    ) -> None:
        self.config = config
        self._clock = clock
        self._rand = rand
        self.reset()

    def reset(self) -> None:
        self.current_interval = self.config.initial_interval
        self.attempts = 0
        self._started_at = self._clock()

    @property
    def elapsed(self) -> float:
        return self._clock() - self._started_at

    def next_backoff(self) -> float | None:
        cfg = self.config
        if cfg.max_elapsed_time is not None and self.elapsed > cfg.max_elapsed_time:
            return None

        delta = cfg.randomization_factor * self.current_interval
        low = self.current_interval - delta
        high = self.current_interval + delta
        delay = low + self._rand() * (high - low)

        self.current_interval = min(self.current_interval * cfg.multiplier, cfg.max_interval)
        self.attempts += 1
        return delay


def pause(delay: float, cancel: threading.Event | None = None, sleep: Sleep = time.sleep) -> bool:
    """
    Blocks for `delay` seconds. Returns True if `cancel` fired instead.

    With the default `time.sleep` the wait happens on the event, so setting
    it wakes the caller early. An injected `sleep` is always honoured; the
    event is then checked before and after it.
    """
    if cancel is None:
        sleep(delay)
        return False
    if sleep is time.sleep:
        return cancel.wait(delay)
    if cancel.is_set():
        return True
    sleep(delay)
    return cancel.is_set()


def retry(
    operation: Callable[[], R],
    backoff: ExponentialBackoff,
    cancel: threading.Event | None = None,
    sleep: Sleep = time.sleep,
    table_name: str | None = None,
) -> R:
    """
    Runs `operation` until it succeeds.

    Retryable transport errors (throttling, timeouts, 5xx, dropped connections)
    are retried after a backoff delay for as long as the policy allows; with the
    default policy that is forever. Any other error, or a retryable one once the
    policy gives up, propagates to the caller.

    Raises:
        BatchCancelledError: If `cancel` is set before or while waiting.
    """
    backoff.reset()
    while True:
        if cancel is not None and cancel.is_set():
            raise BatchCancelledError()
        try:
            return operation()
        except DynabatchError as e:
            if not is_retryable(e):
                raise
            delay = backoff.next_backoff()
            if delay is None:
                logger.warning(
                    "Giving up on transport retries",
                    extra={
                        "table": table_name,
                        "attempts": backoff.attempts,
                        "error": type(e).__name__,
                    },
                )
                raise
            logger.warning(
                "Retrying batch request",
                extra={
                    "table": table_name,
                    "attempt": backoff.attempts,
                    "delay": round(delay, 3),
                    "error": type(e).__name__,
                },
            )
            if pause(delay, cancel, sleep):
                raise BatchCancelledError(original_error=e) from e
