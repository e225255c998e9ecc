"""Detection renderer: maps predictions onto a fixed set of reusable overlay slots."""
from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import cv2
import numpy as np

from ..models import LABELS, Detection, Rect
from ..utils.geometry import transform_rect
from .palette import ClassColor

LOGGER = logging.getLogger(__name__)

DEFAULT_SLOT_COUNT = 10
DEFAULT_DISPLAY_THRESHOLD = 0.7


class OverlayLayer:
    """Ordered collection of drawables composited on top of the video preview."""

    def __init__(self) -> None:
        self.sublayers: List["OverlaySlot"] = []

    def add_sublayer(self, sublayer: "OverlaySlot") -> None:
        if sublayer not in self.sublayers:
            self.sublayers.append(sublayer)

    def draw(self, canvas: np.ndarray, font_scale: float = 0.5) -> None:
        for sublayer in self.sublayers:
            sublayer.draw(canvas, font_scale=font_scale)


class OverlaySlot:
    """One bounding box widget: a stroked rectangle plus a filled label tag."""

    LINE_WIDTH = 3

    def __init__(self) -> None:
        self.visible = False
        self.frame: Optional[Rect] = None
        self.label = ""
        self.color: Optional[ClassColor] = None

    def add_to_layer(self, layer: OverlayLayer) -> None:
        layer.add_sublayer(self)

    def show(self, frame: Rect, label: str, color: ClassColor) -> None:
        self.visible = True
        self.frame = frame
        self.label = label
        self.color = color

    def hide(self) -> None:
        self.visible = False

    def draw(self, canvas: np.ndarray, font_scale: float = 0.5) -> None:
        if not self.visible or self.frame is None or self.color is None:
            return
        color = self.color.bgr
        x1, y1 = int(round(self.frame.x)), int(round(self.frame.y))
        x2, y2 = int(round(self.frame.max_x)), int(round(self.frame.max_y))
        cv2.rectangle(canvas, (x1, y1), (x2, y2), color, self.LINE_WIDTH)
        if not self.label:
            return
        font = cv2.FONT_HERSHEY_SIMPLEX
        (text_w, text_h), baseline = cv2.getTextSize(self.label, font, font_scale, 1)
        pad = 2
        tag_left = max(0, x1 - 1)
        tag_top = max(0, y1 - text_h - baseline - pad * 2)
        cv2.rectangle(canvas, (tag_left, tag_top), (tag_left + text_w + pad * 2, tag_top + text_h + baseline + pad * 2), color, -1)
        cv2.putText(
            canvas,
            self.label,
            (tag_left + pad, tag_top + pad + text_h),
            font,
            font_scale,
            (255, 255, 255),
            1,
            lineType=cv2.LINE_AA,
        )


def format_label(class_name: str, score: float) -> str:
    return f"{class_name} {score * 100:.1f}"


class DetectionRenderer:
    """Binds the latest predictions to the overlay slots.

    Slot ``i`` always corresponds to prediction ``i``. A prediction under the
    display threshold leaves its slot exactly as it was; slots past the end of
    the prediction list are hidden; predictions past the last slot are dropped.
    """

    def __init__(
        self,
        palette: Sequence[ClassColor],
        view_width: float,
        view_height: float,
        *,
        labels: Sequence[str] = LABELS,
        slot_count: int = DEFAULT_SLOT_COUNT,
        threshold: float = DEFAULT_DISPLAY_THRESHOLD,
        input_size: int = 416,
    ) -> None:
        if len(palette) < len(labels):
            raise ValueError(f"Palette has {len(palette)} colors for {len(labels)} labels")
        self.palette = list(palette)
        self.labels = list(labels)
        self.threshold = threshold
        self.input_size = input_size
        self.view_width = float(view_width)
        self.view_height = float(view_height)
        self.slots: List[OverlaySlot] = [OverlaySlot() for _ in range(slot_count)]

    def resize(self, view_width: float, view_height: float) -> None:
        self.view_width = float(view_width)
        self.view_height = float(view_height)

    def attach(self, layer: OverlayLayer) -> None:
        for slot in self.slots:
            slot.add_to_layer(layer)

    def show(self, predictions: Sequence[Detection]) -> List[str]:
        """Update every slot from ``predictions`` and return the labels shown."""

        shown: List[str] = []
        for index, slot in enumerate(self.slots):
            if index >= len(predictions):
                slot.hide()
                continue
            prediction = predictions[index]
            if prediction.score < self.threshold:
                continue
            rect = transform_rect(prediction.rect, self.view_width, self.view_height, self.input_size)
            label = format_label(self.labels[prediction.class_index], prediction.score)
            slot.show(rect, label, self.palette[prediction.class_index])
            LOGGER.debug(label)
            shown.append(label)
        return shown
