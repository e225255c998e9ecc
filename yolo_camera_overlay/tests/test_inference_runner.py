from __future__ import annotations

import logging
import threading
from typing import List, Optional

import pytest

from yolo_camera_overlay.app.models import Detection, PredictionResult, Rect
from yolo_camera_overlay.app.services.inference_runner import InferenceRunner
from yolo_camera_overlay.app.utils.dispatch import DispatchGroup, MainQueue


class FakeNetwork:
    def __init__(self, error: Optional[Exception] = None, gate: Optional[threading.Event] = None) -> None:
        self.error = error
        self.gate = gate
        self.frames: List[str] = []

    def predict(self, frame: str) -> PredictionResult:
        self.frames.append(frame)
        if self.gate is not None:
            self.gate.wait(timeout=2)
        if self.error is not None:
            raise self.error
        return PredictionResult(predictions=[Detection(class_index=11, score=0.8, rect=Rect(1, 2, 3, 4))])


def test_completion_runs_when_main_queue_drains() -> None:
    runner = InferenceRunner(3)
    queue = MainQueue()
    results: List[PredictionResult] = []
    try:
        future = runner.predict(FakeNetwork(), "frame", queue, results.append)
        future.result(timeout=2)

        assert results == []
        assert queue.drain() == 1
    finally:
        runner.close()

    assert len(results) == 1
    assert results[0].predictions[0].class_name == "dog"
    assert results[0].elapsed >= 0.0


def test_failed_prediction_delivers_empty_result() -> None:
    runner = InferenceRunner(3)
    queue = MainQueue()
    results: List[PredictionResult] = []
    try:
        runner.predict(FakeNetwork(error=RuntimeError("boom")), "frame", queue, results.append).result(timeout=2)
        queue.drain()
    finally:
        runner.close()

    assert results[0].predictions == []
    assert results[0].debug_image is None


def test_inflight_buffers_bound_outstanding_requests() -> None:
    gate = threading.Event()
    network = FakeNetwork(gate=gate)
    runner = InferenceRunner(2)
    queue = MainQueue()
    runner.predict(network, "frame-1", queue, lambda result: None)
    runner.predict(network, "frame-2", queue, lambda result: None)

    third = threading.Thread(target=runner.predict, args=(network, "frame-3", queue, lambda result: None))
    third.start()
    third.join(timeout=0.2)
    blocked = third.is_alive()

    gate.set()
    third.join(timeout=2)
    runner.close()

    assert blocked
    assert not third.is_alive()
    assert network.frames == ["frame-1", "frame-2", "frame-3"]
    assert queue.drain() == 3


def test_main_queue_keeps_draining_after_a_failing_callback(caplog: pytest.LogCaptureFixture) -> None:
    queue = MainQueue()
    calls: List[str] = []

    def broken() -> None:
        raise ValueError("bad callback")

    queue.post(broken)
    queue.post(lambda: calls.append("after"))

    with caplog.at_level(logging.ERROR):
        assert queue.drain() == 2

    assert calls == ["after"]
    assert "Main queue callback failed" in caplog.text


def test_main_queue_drain_limit() -> None:
    queue = MainQueue()
    for _ in range(3):
        queue.post(lambda: None)

    assert queue.drain(limit=2) == 2
    assert not queue.empty()
    assert queue.drain() == 1
    assert queue.empty()


def test_dispatch_group_notifies_once_every_task_left() -> None:
    group = DispatchGroup()
    queue = MainQueue()
    calls: List[str] = []
    group.enter()
    group.enter()
    group.notify(queue, lambda: calls.append("ready"))

    group.leave()
    queue.drain()
    assert calls == []

    group.leave()
    queue.drain()
    assert calls == ["ready"]
    assert group.wait(timeout=0)


def test_dispatch_group_notify_without_pending_tasks_posts_immediately() -> None:
    group = DispatchGroup()
    queue = MainQueue()
    calls: List[str] = []

    group.notify(queue, lambda: calls.append("ready"))
    queue.drain()

    assert calls == ["ready"]


def test_dispatch_group_rejects_unbalanced_leave() -> None:
    with pytest.raises(RuntimeError):
        DispatchGroup().leave()
