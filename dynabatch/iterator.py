"""
The BatchGetItem results iterator.

The iterator is a small state machine:

    IDLE -> FETCHING -> BUFFERED -> (BACKOFF -> FETCHING) -> EXHAUSTED
                                 \\-> FAILED (from any state)

`next()` drives it until an item is decoded or a terminal state is reached.
Buffered items are decoded without touching the network. When a page runs
out and the service reported unprocessed keys, the iterator waits for the
next backoff delay and requests exactly those keys again; neither loop has a
time limit, so bounded latency requires a caller-owned cancellation event.

Errors never escape next(): they become the terminal error, readable through
`err`. Iterating with `for` or calling all() raises it instead.
"""

import threading
import time
from collections.abc import Iterator
from enum import Enum
from typing import TYPE_CHECKING, TypeVar

from ._logging import logger, redact_keys
from .backoff import ExponentialBackoff, Sleep, pause, retry
from .config import DEFAULT_BACKOFF, BackoffConfig
from .exceptions import (
    BatchCancelledError,
    DecodeError,
    DynabatchError,
    ItemNotFoundError,
)
from .pagination import ResponsePage
from .request import PendingRequest

if TYPE_CHECKING:
    from .decoding import Decoder
    from .request import BatchGet
    from .transport import Transport

T = TypeVar("T")


class IterState(str, Enum):
    IDLE = "idle"
    FETCHING = "fetching"
    BUFFERED = "buffered"
    BACKOFF = "backoff"
    EXHAUSTED = "exhausted"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (IterState.EXHAUSTED, IterState.FAILED)


class BatchGetIterator(Iterator[T]):
    """
    Lazily fetches and decodes the items of a BatchGet.

    Not safe for concurrent use: drive each iterator from one thread.

    Usage:
        it = batch.iter(model=Movie)
        while it.next():
            print(it.item)
        if it.err is not None:
            ...
    """

    def __init__(
        self,
        batch_get: "BatchGet",
        decoder: "Decoder[T]",
        transport: "Transport",
        backoff: BackoffConfig = DEFAULT_BACKOFF,
        sleep: Sleep = time.sleep,
    ) -> None:
        self.batch_get = batch_get
        self.table_name = batch_get.batch.table.name
        self.decoder = decoder
        self.transport = transport
        self.sleep = sleep

        self.state = IterState.IDLE
        self.item: T | None = None
        # Placeholders until the first fetch; state decides which are meaningful
        self.page = ResponsePage()
        self.cursor = 0
        self.pending = PendingRequest(self.table_name, keys=[])
        self.delivered = 0
        self.pages = 0

        # Unprocessed-key waits keep growing across pages; transport retries
        # restart from the initial interval on every request.
        self.page_backoff = ExponentialBackoff(backoff)
        self.retry_backoff = ExponentialBackoff(backoff)

        self._err: DynabatchError | None = None

    @property
    def err(self) -> DynabatchError | None:
        """The error that stopped iteration, or None. Check it once next() returns False."""
        return self._err

    def next(self, cancel: threading.Event | None = None) -> bool:
        """
        Advances to the next item, storing it in `self.item`.

        Returns False when the batch is complete or failed; check `err` to
        tell them apart. Once False has been returned every further call
        returns False without sending requests.

        Args:
            cancel: Event that aborts backoff waits and further requests when set
        """
        while True:
            if self.state.is_terminal:
                return False

            if self.state is IterState.BUFFERED:
                if self.cursor < len(self.page.items):
                    return self._decode_current()
                if self.page.has_more:
                    self.state = IterState.BACKOFF
                else:
                    self._finish()

            elif self.state is IterState.IDLE:
                self._start()

            elif self.state is IterState.BACKOFF:
                self._backoff(cancel)

            elif self.state is IterState.FETCHING:
                self._fetch(cancel)

    # --- TRANSITIONS ---

    def _start(self) -> None:
        try:
            self.pending = self.batch_get.build()
        except DynabatchError as e:
            self._fail(e)
            return

        logger.info(
            "Starting batch get",
            extra={
                "table": self.table_name,
                "operation": "batch_get",
                "key_count": len(self.pending.keys),
                "keys": redact_keys(self.pending.keys),
                "consistent": self.pending.consistent_read,
            },
        )
        self.state = IterState.FETCHING

    def _backoff(self, cancel: threading.Event | None) -> None:
        self.pending = self.pending.with_keys(self.page.unprocessed_keys)
        self.cursor = 0

        delay = self.page_backoff.next_backoff()
        if delay is None:
            # Only reachable with a bounded max_elapsed_time.
            self._fail(
                DynabatchError(
                    f"Gave up on {len(self.pending.keys)} unprocessed keys "
                    f"after {self.page_backoff.attempts} attempts"
                )
            )
            return

        logger.info(
            "Retrying unprocessed keys",
            extra={
                "table": self.table_name,
                "operation": "batch_get",
                "unprocessed": len(self.pending.keys),
                "delay": round(delay, 3),
            },
        )
        if pause(delay, cancel, self.sleep):
            self._fail(BatchCancelledError())
            return
        self.state = IterState.FETCHING

    def _fetch(self, cancel: threading.Event | None) -> None:
        request = self.pending.to_request()

        try:
            response = retry(
                lambda: self.transport(request),
                self.retry_backoff,
                cancel=cancel,
                sleep=self.sleep,
                table_name=self.table_name,
            )
        except DynabatchError as e:
            self._fail(e)
            return
        except Exception as e:
            self._fail(DynabatchError(f"Batch request failed: {e!s}", original_error=e))
            return

        page = ResponsePage.from_response(response, self.table_name)
        self.page = page
        self.cursor = 0
        self.pages += 1

        logger.debug(
            "Fetched batch page",
            extra={
                "table": self.table_name,
                "operation": "batch_get",
                "page": self.pages,
                "items": page.count,
                "unprocessed": len(page.unprocessed_keys),
            },
        )

        # Only an empty result for the whole operation means "not found";
        # an empty page after items were delivered just ends the batch.
        if not page.items and not page.has_more and self.delivered == 0:
            self._fail(ItemNotFoundError(self.table_name, len(self.pending.keys)))
            return

        self.state = IterState.BUFFERED

    def _decode_current(self) -> bool:
        raw = self.page.items[self.cursor]
        self.cursor += 1
        try:
            self.item = self.decoder(raw)
        except DynabatchError as e:
            self._fail(e)
            return False
        except Exception as e:
            self._fail(DecodeError(f"Failed to decode item: {e!s}", item=raw, original_error=e))
            return False
        self.delivered += 1
        return True

    def _finish(self) -> None:
        self.state = IterState.EXHAUSTED
        logger.info(
            "Batch get complete",
            extra={
                "table": self.table_name,
                "operation": "batch_get",
                "items": self.delivered,
                "pages": self.pages,
            },
        )

    def _fail(self, error: DynabatchError) -> None:
        self._err = error
        self.state = IterState.FAILED
        self.item = None
        logger.warning(
            "Batch get stopped",
            extra={
                "table": self.table_name,
                "operation": "batch_get",
                "error": type(error).__name__,
                "items": self.delivered,
                "pages": self.pages,
            },
        )

    # --- PYTHON ITERATOR PROTOCOL ---

    def __iter__(self) -> "BatchGetIterator[T]":
        return self

    def __next__(self) -> T:
        if self.next():
            return self.item  # type: ignore[return-value]
        if self._err is not None:
            raise self._err
        raise StopIteration

    def all(
        self, out: list[T] | None = None, cancel: threading.Event | None = None
    ) -> list[T]:
        """
        Drains the iterator into `out` (or a new list) and returns it.

        Raises:
            DynabatchError: The terminal error, after every item decoded
                before it has been appended
        """
        if out is None:
            out = []
        while self.next(cancel):
            out.append(self.item)  # type: ignore[arg-type]
        if self._err is not None:
            raise self._err
        return out
