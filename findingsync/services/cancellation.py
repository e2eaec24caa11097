"""Cooperative cancellation passed down the reconciliation call chain."""

import threading


class CancellationToken:
    """Thread-safe cancellation flag, checked at file boundaries.

    Work already committed when cancellation is observed is kept.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def __repr__(self) -> str:
        return f"CancellationToken(cancelled={self.cancelled})"
