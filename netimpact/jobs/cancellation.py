"""
Cooperative cancellation and progress reporting for batched scans
"""

import logging
import threading
from typing import Callable, Iterator, Optional, Sequence, TypeVar

logger = logging.getLogger("Jobs")

T = TypeVar("T")

# (processed, total, percent)
ProgressCallback = Callable[[int, int, int], None]


class CancellationToken:
    """
    Thread-safe cancellation flag

    Long-running scans check the token between batches, so cancel() may be
    called from another thread or from an event-loop callback.
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: str = "cancelled") -> None:
        self.reason = reason
        self._event.set()
        logger.debug(f"Cancellation requested: {reason}")

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"


class ProgressReporter:
    """
    Emits monotonically increasing integer percentages

    Reports are only sent at batch boundaries and only when the
    percentage moves, except for the final 100 which is always sent.
    """

    def __init__(self, total: int, callback: Optional[ProgressCallback] = None):
        self.total = total
        self.callback = callback
        self.last_percent = -1

    def percent_for(self, processed: int) -> int:
        if self.total <= 0:
            return 100
        return min(100, (processed * 100) // self.total)

    def report(self, processed: int) -> None:
        percent = self.percent_for(processed)
        if percent <= self.last_percent:
            return
        self.last_percent = percent
        if self.callback is not None:
            self.callback(processed, self.total, percent)

    def finish(self) -> None:
        if self.last_percent < 100:
            self.last_percent = 100
            if self.callback is not None:
                self.callback(self.total, self.total, 100)


def is_cancelled(token: Optional[CancellationToken]) -> bool:
    return token is not None and token.cancelled


def iter_batches(items: Sequence[T], batch_size: int) -> Iterator[Sequence[T]]:
    """Split work into consecutive slices of at most batch_size items"""
    for start in range(0, len(items), batch_size):
        yield items[start:start + batch_size]
