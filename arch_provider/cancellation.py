# arch_provider/cancellation.py

import threading
import time
from typing import Optional


class OperationCancelledError(Exception):
    pass


class CancellationToken:
    """
    Shared between the asyncio side and the worker threads running model
    round-trips. Threads poll it at every checkpoint; either an explicit
    cancel() or an elapsed deadline trips it.
    """

    def __init__(self, timeout: Optional[float] = None):
        self._event = threading.Event()
        self._reason = "cancelled"
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self, reason: str = "cancelled") -> None:
        self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel("timed out")
            return True
        return False

    def remaining(self) -> Optional[float]:
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self, where: str = "") -> None:
        if self.cancelled:
            suffix = f" ({where})" if where else ""
            raise OperationCancelledError(f"Operation {self._reason}{suffix}")