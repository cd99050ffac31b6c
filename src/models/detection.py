"""
Detection models for face detection results.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple

# Side length of the base detection window, in detection-grid pixels.
WINDOW_SIZE = 24


@dataclass(frozen=True)
class BoundingBox:
    """
    A bounding box in pixel coordinates.
    
    Attributes:
        x1: Left edge x coordinate.
        y1: Top edge y coordinate.
        x2: Right edge x coordinate.
        y2: Bottom edge y coordinate.
    """
    x1: float
    y1: float
    x2: float
    y2: float

    def as_int_tuple(self) -> Tuple[int, int, int, int]:
        """Return as integer (x1, y1, x2, y2) tuple."""
        return (int(self.x1), int(self.y1), int(self.x2), int(self.y2))

    @classmethod
    def from_xywh(cls, x: float, y: float, w: float, h: float) -> "BoundingBox":
        """Create from (x, y, width, height) format."""
        return cls(x1=x, y1=y, x2=x + w, y2=y + h)


@dataclass(frozen=True)
class Detection:
    """
    A single accepted detection window.
    
    Attributes:
        x: Window left edge in the coordinate space the search ran in.
        y: Window top edge in the same space.
        scale_factor: Window scale relative to the 24px base window (>= 1).
        confidence: Signed cascade margin (sum of stump weight * vote).
    """
    x: float
    y: float
    scale_factor: float = 1.0
    confidence: float = 0.0

    @property
    def size(self) -> float:
        """Side length of the (square) window."""
        return WINDOW_SIZE * self.scale_factor

    @property
    def bbox(self) -> BoundingBox:
        return BoundingBox.from_xywh(self.x, self.y, self.size, self.size)

    def rescaled(self, factor: float) -> "Detection":
        """
        Map the detection into another coordinate space.

        Position and scale factor are both multiplied by ``factor``; the
        confidence is unchanged.
        """
        return replace(
            self,
            x=self.x * factor,
            y=self.y * factor,
            scale_factor=self.scale_factor * factor,
        )

