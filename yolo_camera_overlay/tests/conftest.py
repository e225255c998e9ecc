from __future__ import annotations

from typing import Dict, List, Optional, Sequence, Tuple, Type

import cv2
import numpy as np
import pytest


class FakeCapture:
    """Stands in for cv2.VideoCapture, replaying a fixed list of frames."""

    def __init__(self, frames: Sequence[np.ndarray], size: Optional[Tuple[int, int]] = None) -> None:
        self.frames: List[np.ndarray] = list(frames)
        self.properties: Dict[int, float] = {}
        self.size = size
        self.released = False
        self.reads = 0

    def isOpened(self) -> bool:
        return True

    def set(self, prop: int, value: float) -> bool:
        self.properties[prop] = value
        return True

    def get(self, prop: int) -> float:
        if self.size is not None and prop == cv2.CAP_PROP_FRAME_WIDTH:
            return float(self.size[0])
        if self.size is not None and prop == cv2.CAP_PROP_FRAME_HEIGHT:
            return float(self.size[1])
        return self.properties.get(prop, 0.0)

    def read(self) -> Tuple[bool, Optional[np.ndarray]]:
        self.reads += 1
        if not self.frames:
            return False, None
        return True, self.frames.pop(0)

    def release(self) -> None:
        self.released = True


@pytest.fixture()
def fake_capture() -> Type[FakeCapture]:
    return FakeCapture


@pytest.fixture()
def vga_frames() -> List[np.ndarray]:
    return [np.full((480, 640, 3), index, dtype=np.uint8) for index in range(1, 6)]
