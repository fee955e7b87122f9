"""Inter-chunk wait primitives."""

from __future__ import annotations

import threading


class Pacer:
    """Cancellable wall-clock wait used between chunks of one response."""

    def __init__(self) -> None:
        self._cancelled = threading.Event()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def wait(self, delay_ms: int) -> bool:
        """Wait `delay_ms`; return False if the pacer was cancelled meanwhile."""
        if delay_ms <= 0:
            return not self.cancelled
        return not self._cancelled.wait(delay_ms / 1000.0)

    def cancel(self) -> None:
        self._cancelled.set()


class RecordingPacer(Pacer):
    """Pacer that records requested waits without sleeping."""

    def __init__(self) -> None:
        super().__init__()
        self.waits: list[int] = []

    def wait(self, delay_ms: int) -> bool:
        self.waits.append(delay_ms)
        return not self.cancelled
