"""Minimal dispatch primitives: a main-thread callback queue and a join group."""
from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, List, Optional, Tuple

LOGGER = logging.getLogger(__name__)


class MainQueue:
    """FIFO of callbacks executed by whichever thread drains it.

    The display loop drains this queue, so everything posted here runs on the
    thread that owns the UI state.
    """

    def __init__(self) -> None:
        self._pending: "queue.SimpleQueue[Callable[[], None]]" = queue.SimpleQueue()

    def post(self, callback: Callable[[], None]) -> None:
        self._pending.put(callback)

    def drain(self, limit: Optional[int] = None) -> int:
        """Run pending callbacks and return how many ran."""

        ran = 0
        while limit is None or ran < limit:
            try:
                callback = self._pending.get_nowait()
            except queue.Empty:
                break
            ran += 1
            try:
                callback()
            except Exception:
                LOGGER.exception("Main queue callback failed")
        return ran

    def empty(self) -> bool:
        return self._pending.empty()


class DispatchGroup:
    """Counts outstanding tasks; notify callbacks are posted once the count hits zero."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._pending = 0
        self._observers: List[Tuple[MainQueue, Callable[[], None]]] = []

    def enter(self) -> None:
        with self._cond:
            self._pending += 1

    def leave(self) -> None:
        with self._cond:
            if self._pending <= 0:
                raise RuntimeError("DispatchGroup.leave() called more times than enter()")
            self._pending -= 1
            if self._pending:
                return
            observers, self._observers = self._observers, []
            self._cond.notify_all()
        for target, callback in observers:
            target.post(callback)

    def notify(self, target: MainQueue, callback: Callable[[], None]) -> None:
        with self._cond:
            if self._pending:
                self._observers.append((target, callback))
                return
        target.post(callback)

    def wait(self, timeout: Optional[float] = None) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._pending == 0, timeout=timeout)
