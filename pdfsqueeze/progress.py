"""Progress reporting and cancellation for compression calls."""

import threading
from typing import Callable, Optional

from .errors import CompressionCancelled

# (completed_units, total_units, label)
ProgressCallback = Callable[[int, int, str], None]


class CancellationToken:
    """Thread-safe flag a caller sets to stop a running compression."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self):
        if self._event.is_set():
            raise CompressionCancelled("Compression cancelled")


def check_cancelled(cancel: Optional[CancellationToken]):
    if cancel is not None:
        cancel.raise_if_cancelled()


def report(progress: Optional[ProgressCallback], completed: int, total: int, label: str = ""):
    """Report progress if a callback is set."""
    if progress:
        progress(completed, total, label)


class BatchProgress:
    """
    Maps per-document progress onto a single 0-100 scale for a batch.

    Document i of n owns the span [i/n * 100, (i+1)/n * 100]. Values lower
    than the last one reported are clamped so the caller never sees progress
    go backwards, even when a target size search re-processes pages.
    """

    TOTAL = 100

    def __init__(self, callback: Optional[ProgressCallback], document_count: int):
        self.callback = callback
        self.document_count = max(1, document_count)
        self.last = 0

    def _emit(self, value: float, label: str):
        completed = max(self.last, min(self.TOTAL, int(value)))
        self.last = completed
        report(self.callback, completed, self.TOTAL, label)

    def for_document(self, index: int) -> ProgressCallback:
        """Return a callback that scales one document's progress into the batch."""
        span = self.TOTAL / self.document_count
        start = index * span
        prefix = f"File {index + 1}/{self.document_count}: " if self.document_count > 1 else ""

        def callback(completed: int, total: int, label: str):
            fraction = completed / total if total else 1.0
            self._emit(start + fraction * span, prefix + label)

        return callback

    def document_done(self, index: int, label: str = ""):
        self._emit((index + 1) * self.TOTAL / self.document_count, label)
