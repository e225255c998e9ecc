"""Decorative Pac-Man sprite that hops across the view."""
from __future__ import annotations

import time
from typing import List, Optional, Sequence, Tuple

import cv2
import numpy as np

Point = Tuple[float, float]

EYE: Sequence[Point] = (
    (50.47, 5.69), (47.65, 5.69), (47.65, 8.41), (50.47, 8.41),
)

BODY: Sequence[Point] = (
    (61.47, 0.41), (61.47, 3.04), (64.25, 3.04), (64.25, 5.93), (67.3, 5.93),
    (67.3, 8.56), (61.47, 8.56), (61.47, 11.34), (56.18, 11.34), (56.18, 13.75),
    (50.47, 13.75), (50.47, 16.53), (47.75, 16.48), (47.75, 19.31), (50.47, 19.15),
    (50.47, 21.87), (56.18, 21.87), (56.18, 24.65), (61.47, 24.65), (61.47, 27.37),
    (67.3, 27.37), (67.3, 30.0), (64.25, 30.0), (64.25, 32.78), (61.47, 32.78),
    (61.47, 35.56), (40.6, 35.61), (40.6, 32.78), (37.66, 32.78), (37.66, 30.25),
    (35.34, 30.25), (35.34, 27.48), (32.4, 27.48), (32.4, 8.96), (35.34, 8.96),
    (35.34, 6.23), (37.66, 6.23), (37.66, 3.1), (40.6, 3.1), (40.6, 0.41),
)

YELLOW_BGR = (0, 255, 255)
EYE_BGR = (0, 0, 0)


class PacmanSprite:
    """Moves one segment (a quarter of the view) per step, animated over ``duration``.

    Once the sprite sits in the last segment the next step sends it back to
    the first one.
    """

    BALL_SIZE = 25.0
    TOP = 100.0

    def __init__(self, view_width: float, duration: float = 2.5, step_interval: float = 1.0) -> None:
        self.view_width = float(view_width)
        self.duration = duration
        self.step_interval = step_interval
        self.x = self.initial_offset
        self._from_x = self.x
        self._started_at: Optional[float] = None
        self._next_step_at: Optional[float] = None

    @property
    def segment_width(self) -> float:
        return self.view_width / 4.0

    @property
    def initial_offset(self) -> float:
        return (self.segment_width / 2.0) - (self.BALL_SIZE / 2.0)

    def resize(self, view_width: float) -> None:
        self.view_width = float(view_width)

    def step(self, now: Optional[float] = None) -> float:
        """Start the animation towards the next segment and return the target x."""

        now = time.monotonic() if now is None else now
        self._from_x = self.position(now)
        if self.x > (self.view_width - self.segment_width):
            self.x = self.initial_offset
        else:
            self.x = self.x + self.segment_width
        self._started_at = now
        return self.x

    def position(self, now: Optional[float] = None) -> float:
        """Current on-screen x, interpolated between the previous and target x."""

        if self._started_at is None:
            return self.x
        now = time.monotonic() if now is None else now
        progress = min(1.0, max(0.0, (now - self._started_at) / self.duration))
        return self._from_x + (self.x - self._from_x) * progress

    def tick(self, now: Optional[float] = None) -> None:
        """Advance one step each ``step_interval`` seconds."""

        now = time.monotonic() if now is None else now
        if self._next_step_at is None or now >= self._next_step_at:
            self.step(now)
            self._next_step_at = now + self.step_interval

    def polygons(self, now: Optional[float] = None) -> List[np.ndarray]:
        origin_x = self.position(now)
        return [
            np.array([(origin_x + px, self.TOP + py) for px, py in points], dtype=np.int32)
            for points in (BODY, EYE)
        ]

    def draw(self, canvas: np.ndarray, now: Optional[float] = None) -> None:
        body, eye = self.polygons(now)
        cv2.fillPoly(canvas, [body], YELLOW_BGR, lineType=cv2.LINE_AA)
        cv2.fillPoly(canvas, [eye], EYE_BGR)
