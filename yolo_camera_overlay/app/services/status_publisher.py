"""Push per-frame status updates to an optional backend endpoint."""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import requests

from ..config.settings import AppSettings
from ..models import Rect
from .capture_throttle import CaptureThrottle

LOGGER = logging.getLogger(__name__)


@dataclass
class StatusUpdate:
    elapsed: float
    detections: List[Dict[str, Any]] = field(default_factory=list)
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat(timespec="milliseconds")
    )

    @property
    def fps(self) -> float:
        return 1.0 / self.elapsed if self.elapsed > 0 else 0.0

    @staticmethod
    def describe(label: str, rect: Rect) -> Dict[str, Any]:
        return {
            "label": label,
            "rect": [round(rect.x, 2), round(rect.y, 2), round(rect.width, 2), round(rect.height, 2)],
        }

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "elapsed": self.elapsed,
            "fps": self.fps,
            "detections": self.detections,
        }


class StatusPublisher:
    """Deliver status updates from a background worker so rendering never waits.

    At most one update is outstanding; updates published while it is still
    being delivered are dropped, so a dead endpoint never builds a backlog.
    """

    def __init__(
        self,
        settings: AppSettings,
        session: Optional[requests.Session] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        sleep: Optional[Callable[[float], Any]] = None,
    ) -> None:
        self.settings = settings
        self.endpoint = settings.status_endpoint
        self.enabled = bool(settings.push_status and settings.status_endpoint)
        self._session = session or requests.Session()
        self._executor = executor
        self._closing = threading.Event()
        self._sleep = sleep or self._closing.wait
        self._gate: CaptureThrottle[Dict[str, Any]] = CaptureThrottle(self._submit)
        self._last_future: Optional[Future] = None
        if self.enabled and self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="status")

    @property
    def dropped(self) -> int:
        return self._gate.dropped

    @property
    def busy(self) -> bool:
        return self._gate.busy

    def connect(self) -> bool:
        """Probe the endpoint once so a misconfigured URL shows up at startup."""

        if not self.enabled:
            return False
        try:
            response = self._session.get(self.endpoint, timeout=self.settings.status_timeout)
        except requests.RequestException as exc:
            LOGGER.warning("Status endpoint %s unreachable: %s", self.endpoint, exc)
            return False
        LOGGER.info("Status endpoint %s connected (%d)", self.endpoint, response.status_code)
        return True

    def connect_in_background(self) -> Optional[Future]:
        """Run ``connect`` on the worker so startup does not wait on the network."""

        if not self.enabled or self._executor is None:
            return None
        return self._executor.submit(self.connect)

    def publish(self, update: StatusUpdate) -> Optional[Future]:
        if not self.enabled or self._executor is None or self._closing.is_set():
            return None
        if not self._gate.submit(update.to_dict()):
            LOGGER.debug("Previous status update still in flight; skipping this one")
            return None
        return self._last_future

    def _submit(self, payload: Dict[str, Any], done: Callable[[], None]) -> None:
        future = self._executor.submit(self._post_with_retry, payload)
        self._last_future = future
        future.add_done_callback(lambda _: done())

    def _post_with_retry(self, payload: Dict[str, Any]) -> bool:
        max_retries = self.settings.status_max_retries
        backoff = 0.5
        for attempt in range(max_retries + 1):
            try:
                response = self._session.post(self.endpoint, json=payload, timeout=self.settings.status_timeout)
                if response.status_code >= 400:
                    raise requests.HTTPError(f"Received status {response.status_code}")
                LOGGER.debug("Status update delivered")
                return True
            except requests.RequestException as exc:
                LOGGER.warning(
                    "Failed to deliver status update (attempt %d/%d): %s", attempt + 1, max_retries + 1, exc
                )
                if attempt < max_retries:
                    self._sleep(backoff)
                    backoff *= 2
            if self._closing.is_set():
                LOGGER.info("Publisher closed; dropping status update")
                return False
        LOGGER.error("Dropping status update after %d attempts", max_retries + 1)
        return False

    def close(self) -> None:
        """Stop without waiting for retries of an update that is still in flight."""

        self._closing.set()
        if self._executor is not None:
            self._executor.shutdown(wait=False, cancel_futures=True)
        self._session.close()
        if self._gate.dropped:
            LOGGER.debug("Skipped %d status updates while the endpoint was busy", self._gate.dropped)
