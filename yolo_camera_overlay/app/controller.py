"""Wires capture, prediction and rendering together for the live overlay."""
from __future__ import annotations

import logging
import threading
import time
from typing import Callable, List, Optional

import cv2
import numpy as np

from .config.settings import AppSettings
from .errors import CameraSetupError, StartupError
from .models import PredictionResult, Rect
from .services.capture_throttle import CaptureThrottle
from .services.inference_runner import InferenceRunner, Network
from .services.palette import ClassColor, build_palette
from .services.predictor import YOLOPredictor, resolve_device
from .services.renderer import DetectionRenderer, OverlayLayer
from .services.sprite import PacmanSprite
from .services.status_publisher import StatusPublisher, StatusUpdate
from .services.video_capture import VideoCapture
from .utils.dispatch import DispatchGroup, MainQueue
from .utils.timing import format_elapsed, time_it

LOGGER = logging.getLogger(__name__)

LABEL_COLOR_BGR = (255, 255, 255)


class CameraController:
    """Owns the view state; everything that touches it runs on the main queue."""

    def __init__(
        self,
        settings: AppSettings,
        *,
        video_capture: Optional[VideoCapture] = None,
        network_factory: Optional[Callable[[str], Network]] = None,
        device_resolver: Callable[[str, bool], str] = resolve_device,
        runner: Optional[InferenceRunner] = None,
        publisher: Optional[StatusPublisher] = None,
        main_queue: Optional[MainQueue] = None,
    ) -> None:
        self.settings = settings
        self.main_queue = main_queue or MainQueue()
        self.video_capture = video_capture or VideoCapture(settings.video_source())
        self.runner = runner
        self.network: Optional[Network] = None
        self.device: Optional[str] = None
        self.publisher = publisher or StatusPublisher(settings)
        self._network_factory = network_factory or self._build_network
        self._device_resolver = device_resolver

        self.view_bounds = Rect(0.0, 0.0, float(settings.view_width), float(settings.view_height))
        self.colors: List[ClassColor] = build_palette()
        self.renderer = DetectionRenderer(
            self.colors,
            settings.view_width,
            settings.view_height,
            slot_count=settings.overlay_slots,
            threshold=settings.display_threshold,
            input_size=settings.input_size,
        )
        self.overlay = OverlayLayer()
        self.sprite = PacmanSprite(settings.view_width) if settings.show_sprite else None
        self.throttle: CaptureThrottle[np.ndarray] = CaptureThrottle(self.predict)

        self.time_label = ""
        self.debug_image: Optional[np.ndarray] = None
        self.results_shown = 0
        self.startup_group = DispatchGroup()
        self.ready = threading.Event()
        self.setup_error: Optional[StartupError] = None

    # Startup

    def view_did_load(self) -> None:
        """Check the device, then set up camera and network in parallel.

        Raises StartupError subclasses when a precondition fails.
        """

        self.time_label = ""
        self.device = self._device_resolver(self.settings.device, self.settings.require_acceleration)

        self.video_capture.delegate = self
        self.video_capture.fps = self.settings.capture_fps

        self.startup_group.enter()
        self.video_capture.set_up(
            (self.settings.capture_width, self.settings.capture_height),
            self._camera_ready,
        )

        self.startup_group.enter()
        self.create_neural_network(self.startup_group.leave)

        self.startup_group.notify(self.main_queue, self._finish_startup)
        self.publisher.connect_in_background()

    def _camera_ready(self, success: bool) -> None:
        if success:
            self.main_queue.post(self.resize_preview_layer)
        else:
            self.setup_error = CameraSetupError(f"Unable to open video source: {self.video_capture.source}")
        self.startup_group.leave()

    def create_neural_network(self, completion: Callable[[], None]) -> None:
        if self.runner is None:
            self.runner = InferenceRunner(self.settings.inflight_buffers)

        # Loading the weights can take a few seconds, so build off the main thread.
        def _build() -> None:
            try:
                with time_it("Setting up neural network"):
                    self.network = self._network_factory(self.device or "cpu")
            except Exception as exc:
                LOGGER.exception("Neural network setup failed")
                self.setup_error = StartupError(f"Unable to build neural network: {exc}")
            self.main_queue.post(completion)

        threading.Thread(target=_build, name="network-setup", daemon=True).start()

    def _build_network(self, device: str) -> Network:
        return YOLOPredictor(
            device,
            self.settings.inflight_buffers,
            self.settings.model_path,
            confidence=self.settings.confidence_threshold,
            iou=self.settings.iou_threshold,
            input_size=self.settings.input_size,
            max_detections=self.settings.max_detections,
            debug_image=self.settings.show_debug_image,
        )

    def _finish_startup(self) -> None:
        if self.setup_error is not None:
            return
        self.renderer.attach(self.overlay)
        self.video_capture.start()
        self.ready.set()

    # Layout

    def resize_preview_layer(self) -> None:
        layer = self.video_capture.preview_layer
        if layer is not None:
            layer.frame = self.view_bounds

    def view_will_layout(self, view_width: float, view_height: float) -> None:
        self.view_bounds = Rect(0.0, 0.0, float(view_width), float(view_height))
        self.renderer.resize(view_width, view_height)
        if self.sprite is not None:
            self.sprite.resize(view_width)
        self.resize_preview_layer()

    # Capture and prediction

    def did_capture_frame(self, capture: VideoCapture, frame: np.ndarray, timestamp: float) -> None:
        self.throttle.submit(frame)

    def predict(self, frame: np.ndarray, done: Optional[Callable[[], None]] = None) -> None:
        if self.runner is None or self.network is None:
            raise RuntimeError("predict() called before the neural network was created")

        def completion(result: PredictionResult) -> None:
            try:
                self.show(result)
            finally:
                if done is not None:
                    done()

        self.runner.predict(self.network, frame, self.main_queue, completion)

    def show(self, result: PredictionResult) -> None:
        self.renderer.show(result.predictions)
        if result.debug_image is not None:
            self.debug_image = result.debug_image
        self.time_label = format_elapsed(result.elapsed)
        self.results_shown += 1
        self.publisher.publish(
            StatusUpdate(
                elapsed=result.elapsed,
                detections=[
                    StatusUpdate.describe(slot.label, slot.frame)
                    for slot in self.renderer.slots
                    if slot.visible and slot.frame is not None
                ],
            )
        )

    # Main thread

    def tick(self, now: Optional[float] = None) -> int:
        ran = self.main_queue.drain()
        if self.sprite is not None and self.ready.is_set():
            self.sprite.tick(now)
        return ran

    def is_idle(self) -> bool:
        return self.main_queue.empty() and not self.throttle.busy

    def render(self, now: Optional[float] = None) -> np.ndarray:
        width, height = int(self.view_bounds.width), int(self.view_bounds.height)
        canvas = np.zeros((height, width, 3), dtype=np.uint8)
        layer = self.video_capture.preview_layer
        if layer is not None:
            layer.draw(canvas)
        self.overlay.draw(canvas, font_scale=self.settings.overlay_font_scale)
        if self.time_label:
            cv2.putText(
                canvas,
                self.time_label,
                (10, max(20, height - 20)),
                cv2.FONT_HERSHEY_SIMPLEX,
                self.settings.overlay_font_scale,
                LABEL_COLOR_BGR,
                1,
                lineType=cv2.LINE_AA,
            )
        if self.sprite is not None:
            self.sprite.draw(canvas, now if now is not None else time.monotonic())
        return canvas

    def shutdown(self) -> None:
        self.video_capture.stop()
        if self.runner is not None:
            self.runner.close()
        self.publisher.close()
        if self.throttle.dropped:
            LOGGER.debug("Throttle dropped %d frames while inference was busy", self.throttle.dropped)
