"""Cooperative cancellation for store calls.

Store backends check the token right before they commit a batch. Once the
commit happened the token is ignored, so a late cancel never undoes durable
work and an early cancel never leaves a partial write behind.
"""

from __future__ import annotations

import threading
import time

from .exceptions import StoreCancelledError


class CancellationToken:
    """Thread-safe cancellation flag with an optional deadline.

    Examples:
        >>> token = CancellationToken(timeout=5.0)
        >>> token.is_cancelled()
        False
        >>> token.cancel()
        >>> token.is_cancelled()
        True
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._event = threading.Event()
        self._deadline = None if timeout is None else time.monotonic() + float(timeout)

    def cancel(self) -> None:
        self._event.set()

    def is_cancelled(self) -> bool:
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def raise_if_cancelled(self, what: str = "operation") -> None:
        if self.is_cancelled():
            raise StoreCancelledError(f"{what} cancelled before commit")


def check_cancelled(token: CancellationToken | None, what: str = "operation") -> None:
    """Raise StoreCancelledError when ``token`` is set; ``None`` means never cancelled."""
    if token is not None:
        token.raise_if_cancelled(what)
