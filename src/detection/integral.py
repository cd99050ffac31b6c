"""
Summed-area (integral) image construction.

Two (H+1) x (W+1) grids are produced per frame: the running sum of the
normalized intensity and the running sum of its square. Row 0 and column 0
are always zero so region sums need no special casing at the top-left edge.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np


@dataclass(frozen=True)
class IntegralImages:
    """
    Accumulator grids for one frame.

    Attributes:
        sum: Summed-area table of normalized intensity (values in [0, 1]).
        squared: Summed-area table of squared normalized intensity.
    """
    sum: np.ndarray
    squared: np.ndarray

    @property
    def width(self) -> int:
        """Width of the source frame (grid width minus the sentinel column)."""
        return self.sum.shape[1] - 1

    @property
    def height(self) -> int:
        """Height of the source frame (grid height minus the sentinel row)."""
        return self.sum.shape[0] - 1


def normalized_intensity(pixels: np.ndarray) -> np.ndarray:
    """
    Grayscale intensity in [0, 1] as the mean of the first three channels.

    Args:
        pixels: Array of shape (H, W, C) with C >= 3.
    """
    rgb = pixels[..., :3].astype(np.float64)
    return rgb.sum(axis=2) / 3.0 / 255.0


class IntegralImageBuilder:
    """
    Builds integral images, reusing backing storage between frames.

    The grids returned by build() are read-only views over storage owned by
    the builder. They stay valid until the next call to build(), which
    recomputes every cell.

    Example:
        builder = IntegralImageBuilder()
        integral = builder.build(frame)
        total = integral.sum[-1, -1]
    """

    def __init__(self) -> None:
        self._sum: Optional[np.ndarray] = None
        self._squared: Optional[np.ndarray] = None
        self._size: Tuple[int, int] = (0, 0)

    def build(
        self,
        pixels: np.ndarray,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> IntegralImages:
        """
        Build the sum and squared-sum grids for a frame.
        
        Args:
            pixels: Either an (H, W, C) array or a flat interleaved buffer of
                length W * H * C (in which case width and height are required).
            width: Frame width, required for flat buffers.
            height: Frame height, required for flat buffers.
        
        Returns:
            IntegralImages with (H+1) x (W+1) grids.
        """
        pixels = np.asarray(pixels)
        if pixels.ndim == 1:
            pixels = pixels.reshape(height, width, -1)

        h, w = pixels.shape[:2]
        self._ensure_storage(w, h)

        values = normalized_intensity(pixels)
        self._fill(self._sum, values)
        self._fill(self._squared, values * values)

        return IntegralImages(sum=self._read_only(self._sum), squared=self._read_only(self._squared))

    def _ensure_storage(self, width: int, height: int) -> None:
        if self._sum is not None and self._size == (width, height):
            return
        self._sum = np.zeros((height + 1, width + 1), dtype=np.float64)
        self._squared = np.zeros((height + 1, width + 1), dtype=np.float64)
        self._size = (width, height)
        logging.debug(f"Allocated integral image grids: {width}x{height}")

    @staticmethod
    def _fill(grid: np.ndarray, values: np.ndarray) -> None:
        # Every cell is rewritten; nothing from the previous frame survives.
        grid[0, :] = 0.0
        grid[:, 0] = 0.0
        grid[1:, 1:] = values.cumsum(axis=0).cumsum(axis=1)

    @staticmethod
    def _read_only(grid: np.ndarray) -> np.ndarray:
        view = grid.view()
        view.flags.writeable = False
        return view


def build_integral_images(
    pixels: np.ndarray,
    width: Optional[int] = None,
    height: Optional[int] = None,
) -> IntegralImages:
    """Build integral images with freshly allocated storage."""
    return IntegralImageBuilder().build(pixels, width, height)
