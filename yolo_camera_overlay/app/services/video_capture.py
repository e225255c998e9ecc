"""Camera frame source built on OpenCV."""
from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Optional, Protocol, Tuple, Union

import cv2
import numpy as np

from ..models import Rect
from ..utils.geometry import aspect_fit
from ..utils.video import apply_preset, open_video_source

LOGGER = logging.getLogger(__name__)

PRESET_640x480 = (640, 480)


class VideoCaptureDelegate(Protocol):
    def did_capture_frame(self, capture: "VideoCapture", frame: np.ndarray, timestamp: float) -> None:
        ...


class PreviewLayer:
    """Latest camera image plus the rectangle it occupies on screen."""

    def __init__(self) -> None:
        self.frame = Rect(0.0, 0.0, 0.0, 0.0)
        self._image: Optional[np.ndarray] = None
        self._lock = threading.Lock()

    def update(self, image: np.ndarray) -> None:
        with self._lock:
            self._image = image

    @property
    def image(self) -> Optional[np.ndarray]:
        with self._lock:
            return self._image

    def draw(self, canvas: np.ndarray) -> Optional[Rect]:
        """Draw the image aspect-fit into ``frame`` and return where it landed."""

        image = self.image
        if image is None:
            return None
        height, width = image.shape[:2]
        target = aspect_fit((width, height), self.frame)
        x, y = int(round(target.x)), int(round(target.y))
        w, h = int(round(target.width)), int(round(target.height))
        canvas_h, canvas_w = canvas.shape[:2]
        w = min(w, canvas_w - max(0, x))
        h = min(h, canvas_h - max(0, y))
        if w <= 0 or h <= 0 or x < 0 or y < 0:
            return None
        canvas[y : y + h, x : x + w] = cv2.resize(image, (w, h), interpolation=cv2.INTER_AREA)
        return target


class VideoCapture:
    """Delivers camera frames to a delegate on a reader thread.

    Frames that arrive sooner than ``1 / fps`` seconds after the last delivered
    frame are discarded before the delegate sees them; the preview layer still
    receives every frame.
    """

    def __init__(
        self,
        source: Union[int, str] = 0,
        capture_factory: Callable[[Union[int, str]], Any] = open_video_source,
    ) -> None:
        self.source = source
        self.fps = 15
        self.delegate: Optional[VideoCaptureDelegate] = None
        self.preview_layer: Optional[PreviewLayer] = None
        self.resolution: Optional[Tuple[int, int]] = None
        self._capture_factory = capture_factory
        self._capture: Any = None
        self._thread: Optional[threading.Thread] = None
        self._stop_event = threading.Event()
        self._last_timestamp: Optional[float] = None
        self.finished = threading.Event()

    def set_up(
        self,
        session_preset: Tuple[int, int] = PRESET_640x480,
        completion: Optional[Callable[[bool], None]] = None,
    ) -> threading.Thread:
        """Open and configure the camera on a background thread, then call ``completion``."""

        def _configure() -> None:
            success = False
            try:
                capture = self._capture_factory(self.source)
                self.resolution = apply_preset(capture, session_preset)
                self._capture = capture
                self.preview_layer = PreviewLayer()
                success = True
            except (RuntimeError, cv2.error) as exc:
                LOGGER.error("Camera setup failed: %s", exc)
            if completion is not None:
                completion(success)

        thread = threading.Thread(target=_configure, name="capture-setup", daemon=True)
        thread.start()
        return thread

    def start(self) -> None:
        if self._capture is None:
            raise RuntimeError("VideoCapture.start() called before a successful set_up()")
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop_event.clear()
        self.finished.clear()
        self._thread = threading.Thread(target=self._read_loop, name="capture", daemon=True)
        self._thread.start()
        LOGGER.info("Capture started at %d fps", self.fps)

    def stop(self) -> None:
        self._stop_event.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join(timeout=2.0)
        self._thread = None
        if self._capture is not None:
            LOGGER.info("Releasing video source")
            self._capture.release()
            self._capture = None

    def should_deliver(self, timestamp: float) -> bool:
        """Return True when enough time has passed since the last delivered frame."""

        if self.fps <= 0:
            return True
        if self._last_timestamp is not None and timestamp - self._last_timestamp < 1.0 / self.fps:
            return False
        self._last_timestamp = timestamp
        return True

    def _read_loop(self) -> None:
        try:
            while not self._stop_event.is_set():
                ok, frame = self._capture.read()
                if not ok or frame is None:
                    LOGGER.info("End of stream reached")
                    break
                timestamp = time.monotonic()
                if self.preview_layer is not None:
                    self.preview_layer.update(frame)
                if not self.should_deliver(timestamp):
                    continue
                if self.delegate is not None:
                    self.delegate.did_capture_frame(self, frame, timestamp)
        except Exception:
            LOGGER.exception("Capture loop stopped unexpectedly")
        finally:
            self.finished.set()
