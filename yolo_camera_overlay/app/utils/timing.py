"""Timing helpers."""
from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Generator

LOGGER = logging.getLogger(__name__)


@contextmanager
def time_it(label: str) -> Generator[None, None, None]:
    """Log how long the wrapped block took."""

    start = time.perf_counter()
    try:
        yield
    finally:
        LOGGER.info("%s took %.5f seconds", label, time.perf_counter() - start)


def format_elapsed(elapsed: float) -> str:
    """Return the elapsed-time label shown under the preview."""

    fps = 1.0 / elapsed if elapsed > 0 else 0.0
    return f"Elapsed {elapsed:.5f} seconds ({fps:.2f} FPS)"
