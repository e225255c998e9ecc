"""Gate between frame capture and inference: one request in flight, extra frames dropped."""
from __future__ import annotations

import logging
import threading
from typing import Callable, Generic, TypeVar

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class CaptureThrottle(Generic[T]):
    """Admit at most one in-flight unit of work.

    ``submit`` hands the item to ``start`` together with a ``done`` callback
    and returns True; while that work is outstanding every further item is
    dropped and ``submit`` returns False. The work is considered finished once
    ``done`` is called, from any thread.
    """

    def __init__(self, start: Callable[[T, Callable[[], None]], None]) -> None:
        self._start = start
        self._gate = threading.Lock()
        self._stats = threading.Lock()
        self.dropped = 0

    @property
    def busy(self) -> bool:
        return self._gate.locked()

    def submit(self, item: T) -> bool:
        if not self._gate.acquire(blocking=False):
            with self._stats:
                self.dropped += 1
            return False

        once = threading.Lock()

        def done() -> None:
            if once.acquire(blocking=False):
                self._gate.release()

        try:
            self._start(item, done)
        except Exception:
            done()
            raise
        return True
