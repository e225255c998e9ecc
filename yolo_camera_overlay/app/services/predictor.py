"""YOLO predictor evaluated in a square network input space."""
from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import cv2
import numpy as np

try:  # pragma: no cover - import guarded for environments without the inference stack
    import torch
    from ultralytics import YOLO
except ImportError as exc:  # pragma: no cover
    raise ImportError(
        "ultralytics and torch are required for prediction. Install dependencies via "
        "`pip install -e .` before running the overlay."
    ) from exc

from ..errors import AccelerationUnsupportedError, DeviceUnavailableError
from ..models import Detection, PredictionResult, label_index
from ..utils.geometry import xyxy_to_rect

LOGGER = logging.getLogger(__name__)


def _mps_available() -> bool:
    backend = getattr(torch.backends, "mps", None)
    return bool(backend is not None and backend.is_available())


def resolve_device(requested: str = "auto", require_acceleration: bool = False) -> str:
    """Check the startup preconditions and return the torch device to run on.

    Raises DeviceUnavailableError when the requested device does not exist and
    AccelerationUnsupportedError when acceleration is required but only the
    CPU is left.
    """

    requested = (requested or "auto").strip().lower()
    if requested == "auto":
        if torch.cuda.is_available():
            device = "cuda:0"
        elif _mps_available():
            device = "mps"
        else:
            device = "cpu"
    elif requested.startswith("cuda"):
        if not torch.cuda.is_available():
            raise DeviceUnavailableError("Error: this machine does not support CUDA")
        _, _, raw_index = requested.partition(":")
        index = int(raw_index) if raw_index else 0
        if index >= torch.cuda.device_count():
            raise DeviceUnavailableError(f"Error: CUDA device {index} does not exist")
        device = f"cuda:{index}"
    elif requested == "mps":
        if not _mps_available():
            raise DeviceUnavailableError("Error: this machine does not support Metal Performance Shaders")
        device = "mps"
    elif requested == "cpu":
        device = "cpu"
    else:
        raise DeviceUnavailableError(f"Error: unknown device '{requested}'")

    if require_acceleration and device == "cpu":
        raise AccelerationUnsupportedError("Error: this device does not support accelerated inference")
    LOGGER.info("Using inference device %s", device)
    return device


class YOLOPredictor:
    """Encapsulates YOLO inference on frames resized to ``input_size`` squared.

    Boxes come back in that square space; model classes are mapped onto the
    VOC labels by name and anything without a VOC counterpart is dropped.
    """

    def __init__(
        self,
        device: str,
        inflight_buffers: int,
        model_path: Path,
        *,
        confidence: float = 0.3,
        iou: float = 0.5,
        input_size: int = 416,
        max_detections: int = 10,
        debug_image: bool = False,
        model: Optional[Any] = None,
    ) -> None:
        self.device = device
        self.input_size = input_size
        self.confidence = confidence
        self.iou = iou
        self.max_detections = max_detections
        self.debug_image = debug_image
        if model is None:
            LOGGER.info("Loading YOLO model from %s", model_path)
            model = YOLO(str(model_path))
        self._model = model
        self._class_map = self._build_class_map(self._model.names)
        self._buffers = [
            np.empty((input_size, input_size, 3), dtype=np.uint8) for _ in range(max(1, inflight_buffers))
        ]
        self._next_buffer = 0
        self._buffer_lock = threading.Lock()

    @staticmethod
    def _build_class_map(names: Mapping[int, str]) -> Dict[int, int]:
        class_map: Dict[int, int] = {}
        for class_id, name in dict(names).items():
            index = label_index(str(name))
            if index is not None:
                class_map[int(class_id)] = index
        if not class_map:
            LOGGER.warning("Model classes do not overlap the VOC labels; nothing will be detected")
        return class_map

    def _input_buffer(self) -> np.ndarray:
        with self._buffer_lock:
            buffer = self._buffers[self._next_buffer]
            self._next_buffer = (self._next_buffer + 1) % len(self._buffers)
        return buffer

    def prepare(self, frame: np.ndarray) -> np.ndarray:
        """Resize a BGR frame into the next input buffer."""

        buffer = self._input_buffer()
        cv2.resize(frame, (self.input_size, self.input_size), dst=buffer, interpolation=cv2.INTER_LINEAR)
        return buffer

    def predict(self, frame: np.ndarray) -> PredictionResult:
        """Run inference on a frame and return up to ``max_detections`` detections."""

        image = self.prepare(frame)
        results = self._model.predict(
            image,
            imgsz=self.input_size,
            conf=self.confidence,
            iou=self.iou,
            max_det=self.max_detections,
            device=self.device,
            verbose=False,
        )
        detections: List[Detection] = []
        for result in results:
            boxes = result.boxes
            if boxes is None or len(boxes) == 0:
                continue
            xyxy = boxes.xyxy.cpu().numpy()
            conf = boxes.conf.cpu().numpy()
            cls = boxes.cls.cpu().numpy().astype(int)
            for (x1, y1, x2, y2), score, class_id in zip(xyxy, conf, cls):
                class_index = self._class_map.get(int(class_id))
                if class_index is None:
                    continue
                detections.append(
                    Detection(class_index=class_index, score=float(score), rect=xyxy_to_rect(x1, y1, x2, y2))
                )
        detections.sort(key=lambda detection: detection.score, reverse=True)
        detections = detections[: self.max_detections]
        LOGGER.debug("Detected %d objects", len(detections))
        debug = image.copy() if self.debug_image else None
        return PredictionResult(predictions=detections, debug_image=debug)
