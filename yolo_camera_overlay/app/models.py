"""Shared data models for the camera overlay."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import numpy as np

# The labels for the 20 Pascal VOC classes, indexed by class index.
LABELS: List[str] = [
    "aeroplane", "bicycle", "bird", "boat", "bottle", "bus", "car", "cat",
    "chair", "cow", "diningtable", "dog", "horse", "motorbike", "person",
    "pottedplant", "sheep", "sofa", "train", "tvmonitor",
]

# COCO-style model class names that differ from their VOC spelling.
CLASS_ALIASES = {
    "airplane": "aeroplane",
    "motorcycle": "motorbike",
    "dining table": "diningtable",
    "potted plant": "pottedplant",
    "couch": "sofa",
    "tv": "tvmonitor",
}


def label_index(name: str) -> Optional[int]:
    """Return the VOC class index for a model class name, if there is one."""

    key = name.strip().lower()
    key = CLASS_ALIASES.get(key, key)
    try:
        return LABELS.index(key)
    except ValueError:
        return None


@dataclass(frozen=True)
class Rect:
    """Axis-aligned box with a top-left origin."""

    x: float
    y: float
    width: float
    height: float

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height


@dataclass(frozen=True)
class Detection:
    """A single network output in the square input space."""

    class_index: int
    score: float
    rect: Rect

    @property
    def class_name(self) -> str:
        return LABELS[self.class_index]


@dataclass
class PredictionResult:
    predictions: List[Detection] = field(default_factory=list)
    elapsed: float = 0.0
    debug_image: Optional[np.ndarray] = None
