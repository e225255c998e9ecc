"""Fixed class-to-color palette for the overlay boxes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Tuple

RED_LEVELS = (0.2, 0.4, 0.6, 0.8, 1.0)
GREEN_LEVELS = (0.3, 0.7)
BLUE_LEVELS = (0.4, 0.8)


@dataclass(frozen=True)
class ClassColor:
    red: float
    green: float
    blue: float
    alpha: float = 1.0

    @property
    def bgr(self) -> Tuple[int, int, int]:
        """Color as an OpenCV BGR byte tuple."""

        return (
            int(round(self.blue * 255)),
            int(round(self.green * 255)),
            int(round(self.red * 255)),
        )


def build_palette() -> List[ClassColor]:
    """Make one color per class, 20 classes in total.

    Red varies slowest and blue fastest, so the list order never changes.
    """

    colors: List[ClassColor] = []
    for red in RED_LEVELS:
        for green in GREEN_LEVELS:
            for blue in BLUE_LEVELS:
                colors.append(ClassColor(red=red, green=green, blue=blue, alpha=1.0))
    return colors
