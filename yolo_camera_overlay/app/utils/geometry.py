"""Geometry helpers for mapping network boxes onto the view."""
from __future__ import annotations

from typing import Tuple

from ..models import Rect

PREVIEW_ASPECT = 4.0 / 3.0


def preview_region(view_width: float, view_height: float, aspect: float = PREVIEW_ASPECT) -> Rect:
    """Return the letterboxed preview area: full view width, centered vertically."""

    width = float(view_width)
    height = width / aspect
    top = (float(view_height) - height) / 2.0
    return Rect(0.0, top, width, height)


def transform_rect(
    rect: Rect,
    view_width: float,
    view_height: float,
    input_size: int = 416,
) -> Rect:
    """Translate and scale a box from the square input space into view coordinates.

    The preview is as wide as the view, has a 4:3 aspect ratio and may be
    letterboxed at the top and bottom.
    """

    region = preview_region(view_width, view_height)
    scale_x = region.width / input_size
    scale_y = region.height / input_size
    return Rect(
        x=rect.x * scale_x,
        y=rect.y * scale_y + region.y,
        width=rect.width * scale_x,
        height=rect.height * scale_y,
    )


def xyxy_to_rect(x1: float, y1: float, x2: float, y2: float) -> Rect:
    return Rect(float(x1), float(y1), float(x2 - x1), float(y2 - y1))


def aspect_fit(
    content_size: Tuple[int, int],
    bounds: Rect,
) -> Rect:
    """Fit content (width, height) inside bounds, preserving aspect and centering it."""

    content_w, content_h = content_size
    if content_w <= 0 or content_h <= 0 or bounds.width <= 0 or bounds.height <= 0:
        return Rect(bounds.x, bounds.y, 0.0, 0.0)
    scale = min(bounds.width / content_w, bounds.height / content_h)
    width = content_w * scale
    height = content_h * scale
    return Rect(
        bounds.x + (bounds.width - width) / 2.0,
        bounds.y + (bounds.height - height) / 2.0,
        width,
        height,
    )
