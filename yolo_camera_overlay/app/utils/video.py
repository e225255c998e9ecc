"""OpenCV capture helpers."""
from __future__ import annotations

import logging
from typing import Tuple, Union

import cv2

LOGGER = logging.getLogger(__name__)


def open_video_source(source: Union[int, str]) -> cv2.VideoCapture:
    """Open a video capture object from an integer index or file path."""

    capture = cv2.VideoCapture(source)
    if not capture.isOpened():
        raise RuntimeError(f"Unable to open video source: {source}")
    LOGGER.info("Video source %s opened successfully", source)
    return capture


def apply_preset(capture: cv2.VideoCapture, preset: Tuple[int, int]) -> Tuple[int, int]:
    """Request a capture resolution and return what the device actually delivers."""

    width, height = preset
    capture.set(cv2.CAP_PROP_FRAME_WIDTH, width)
    capture.set(cv2.CAP_PROP_FRAME_HEIGHT, height)
    # Keep the driver queue short so stale frames are not delivered late.
    capture.set(cv2.CAP_PROP_BUFFERSIZE, 1)
    actual = (
        int(capture.get(cv2.CAP_PROP_FRAME_WIDTH)) or width,
        int(capture.get(cv2.CAP_PROP_FRAME_HEIGHT)) or height,
    )
    LOGGER.debug("Capture preset %sx%s -> %sx%s", width, height, *actual)
    return actual

