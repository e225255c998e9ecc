"""Run predictions on a background worker and deliver results on the main queue."""
from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Optional, Protocol

from ..models import PredictionResult
from ..utils.dispatch import MainQueue

LOGGER = logging.getLogger(__name__)

MAX_BUFFERS_IN_FLIGHT = 3


class Network(Protocol):
    def predict(self, frame: Any) -> PredictionResult:
        ...


class InferenceRunner:
    """Encodes predictions on a single worker with a bounded number of buffers in flight."""

    def __init__(self, inflight_buffers: int = MAX_BUFFERS_IN_FLIGHT, executor: Optional[ThreadPoolExecutor] = None) -> None:
        self.inflight_buffers = max(1, int(inflight_buffers))
        self._inflight = threading.BoundedSemaphore(self.inflight_buffers)
        self._executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="inference")

    def predict(
        self,
        network: Network,
        frame: Any,
        queue: MainQueue,
        completion: Callable[[PredictionResult], None],
    ) -> Future:
        """Schedule ``network.predict(frame)``; ``completion`` runs on ``queue``.

        Blocks the calling thread while every buffer is in flight.
        """

        self._inflight.acquire()
        try:
            return self._executor.submit(self._run, network, frame, queue, completion)
        except RuntimeError:
            self._inflight.release()
            raise

    def _run(
        self,
        network: Network,
        frame: Any,
        queue: MainQueue,
        completion: Callable[[PredictionResult], None],
    ) -> PredictionResult:
        start = time.perf_counter()
        try:
            result = network.predict(frame)
        except Exception:
            LOGGER.exception("Prediction failed; delivering an empty result")
            result = PredictionResult()
        finally:
            self._inflight.release()
        result.elapsed = time.perf_counter() - start
        queue.post(lambda: completion(result))
        return result

    def close(self) -> None:
        self._executor.shutdown(wait=True)
