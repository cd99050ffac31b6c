"""
Haar-like feature descriptors and their evaluation over integral images.

A feature is a rectangle relative to the detection window's top-left corner,
split into "black" and "white" parts according to its shape. Its response is
the black-minus-white intensity difference, normalized by the standard
deviation of the covered region.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Callable, Tuple, Union

import numpy as np

from .integral import IntegralImages

# Floor applied to the variance before taking the square root.
MIN_VARIANCE = 1e-6


class FeatureType(IntEnum):
    """Feature shapes, numbered as in the training data."""
    EDGE_HORIZONTAL = 0
    EDGE_VERTICAL = 1
    THREE_HORIZONTAL = 2
    THREE_VERTICAL = 3
    FOUR_BOTTOM_TO_TOP = 4
    FOUR_TOP_TO_BOTTOM = 5

    @classmethod
    def parse(cls, value: Union[int, str, "FeatureType"]) -> "FeatureType":
        """
        Accept an integer code, an enum name ("THREE_VERTICAL") or the
        CamelCase name used in training exports ("ThreeVertical").
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.replace("_", "").replace("-", "").lower()
            for member in cls:
                if member.name.replace("_", "").lower() == key:
                    return member
            raise ValueError(f"Unknown feature shape: {value!r}")
        try:
            return cls(int(value))
        except ValueError:
            raise ValueError(f"Unknown feature shape: {value!r}") from None


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves going up (2.5 -> 3, -2.5 -> -2)."""
    return int(math.floor(value + 0.5))


def _cell(grid: np.ndarray, row: int, col: int) -> float:
    rows, cols = grid.shape
    if 0 <= row < rows and 0 <= col < cols:
        return float(grid[row, col])
    return 0.0


def region_sum(grid: np.ndarray, x: int, y: int, w: int, h: int) -> float:
    """
    Sum of the w x h rectangle whose top-left pixel is (x, y).

    Grid cells outside the table contribute zero, so rectangles that run
    past the frame border under-count instead of failing.
    """
    total = _cell(grid, y + h, x + w)
    if x > 0:
        total -= _cell(grid, y + h, x)
    if y > 0:
        total -= _cell(grid, y, x + w)
    if x > 0 and y > 0:
        total += _cell(grid, y, x)
    return total


def _cells(grid: np.ndarray, rows: np.ndarray, cols: np.ndarray) -> np.ndarray:
    n_rows, n_cols = grid.shape
    rows, cols = np.broadcast_arrays(rows, cols)
    inside = (rows >= 0) & (rows < n_rows) & (cols >= 0) & (cols < n_cols)
    values = grid[np.clip(rows, 0, n_rows - 1), np.clip(cols, 0, n_cols - 1)]
    return np.where(inside, values, 0.0)


def region_sums(grid: np.ndarray, x: np.ndarray, y: np.ndarray, w: int, h: int) -> np.ndarray:
    """
    region_sum for many rectangles of the same size at once.

    Corners with a non-positive coordinate land on the zero border or
    outside the table, so the result matches region_sum cell for cell.
    """
    return (
        _cells(grid, y + h, x + w)
        - _cells(grid, y + h, x)
        - _cells(grid, y, x + w)
        + _cells(grid, y, x)
    )


@dataclass(frozen=True)
class HaarFeature:
    """
    Immutable feature descriptor in base-window (24x24) units.

    Attributes:
        shape: Feature shape.
        width: Width of the whole feature rectangle.
        height: Height of the whole feature rectangle.
        offset_x: Horizontal offset from the window's left edge.
        offset_y: Vertical offset from the window's top edge.
    """
    shape: FeatureType
    width: int
    height: int
    offset_x: int
    offset_y: int

    def scaled_rect(self, window_x: int, window_y: int, scale_factor: float) -> Tuple[int, int, int, int]:
        """Return (x, y, w, h) of the feature in frame coordinates."""
        x = int(math.floor(self.offset_x * scale_factor)) + window_x
        y = int(math.floor(self.offset_y * scale_factor)) + window_y
        w = round_half_up(self.width * scale_factor)
        h = round_half_up(self.height * scale_factor)
        return x, y, w, h

    def apply(
        self,
        integral: IntegralImages,
        window_x: int,
        window_y: int,
        scale_factor: float,
    ) -> float:
        """
        Evaluate the feature for one window.
        
        Args:
            integral: Integral images of the current frame.
            window_x: Window left edge.
            window_y: Window top edge.
            scale_factor: Window scale relative to the base window.
        
        Returns:
            (black - white) / stddev of the feature region, or the raw
            difference when the variance estimate is not positive.
        """
        x, y, w, h = self.scaled_rect(window_x, window_y, scale_factor)

        total = region_sum(integral.sum, x, y, w, h)
        squared = region_sum(integral.squared, x, y, w, h)
        area = w * h

        mean = total / area
        variance = squared / area - mean * mean
        std_dev = math.sqrt(max(variance, MIN_VARIANCE))

        black, white = self.black_white(integral.sum, x, y, w, h, total)
        raw = black - white

        # Non-positive variance returns the unnormalized difference.
        if variance > 0:
            return raw / std_dev
        return raw

    def apply_many(
        self,
        integral: IntegralImages,
        window_xs: np.ndarray,
        window_ys: np.ndarray,
        scale_factor: float,
    ) -> np.ndarray:
        """
        Evaluate the feature for many windows of one scale.

        Returns an array of responses, element i being what apply() gives
        for (window_xs[i], window_ys[i]).
        """
        dx, dy, w, h = self.scaled_rect(0, 0, scale_factor)
        x = np.asarray(window_xs) + dx
        y = np.asarray(window_ys) + dy

        total = region_sums(integral.sum, x, y, w, h)
        squared = region_sums(integral.squared, x, y, w, h)
        area = w * h

        mean = total / area
        variance = squared / area - mean * mean
        std_dev = np.sqrt(np.maximum(variance, MIN_VARIANCE))

        black, white = self.black_white(integral.sum, x, y, w, h, total, region=region_sums)
        raw = black - white

        return np.where(variance > 0, raw / std_dev, raw)

    def black_white(
        self,
        grid: np.ndarray,
        x: int,
        y: int,
        w: int,
        h: int,
        total: float,
        region: Callable[..., Any] = region_sum,
    ) -> Tuple[Any, Any]:
        """
        Split the region total into (black, white) sums for this shape.

        With region=region_sums, x, y and total may be arrays.
        """
        half_w, half_h = w // 2, h // 2
        third_w, third_h = w // 3, h // 3
        shape = self.shape

        if shape == FeatureType.EDGE_HORIZONTAL:
            black = region(grid, x + half_w, y, half_w, h)
        elif shape == FeatureType.EDGE_VERTICAL:
            black = region(grid, x, y + half_h, w, half_h)
        elif shape == FeatureType.THREE_HORIZONTAL:
            black = region(grid, x + third_w, y, third_w, h)
        elif shape == FeatureType.THREE_VERTICAL:
            black = region(grid, x, y + third_h, w, third_h)
        elif shape == FeatureType.FOUR_BOTTOM_TO_TOP:
            black = (
                region(grid, x + half_w, y, half_w, half_h)
                + region(grid, x, y + half_h, half_w, half_h)
            )
        elif shape == FeatureType.FOUR_TOP_TO_BOTTOM:
            black = (
                region(grid, x, y, half_w, half_h)
                + region(grid, x + half_w, y + half_h, half_w, half_h)
            )
        else:
            black = 0.0

        white = total - black

        # White is taken from the unweighted black sum; doubling comes after.
        if shape in (FeatureType.THREE_HORIZONTAL, FeatureType.THREE_VERTICAL):
            black *= 2

        return black, white
