"""
Still-image observation source.

Yields a single frame decoded from an image file, or from an array handed
in directly. Images larger than max_size are downsampled to fit, keeping
the aspect ratio.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Optional, Tuple

import cv2
import numpy as np

from models.frame import FrameData
from .base import ObservationSource, ObservationConfig


def fit_within(image: np.ndarray, max_size: Tuple[int, int]) -> np.ndarray:
    """Downsample image to fit in max_size (width, height); smaller images are returned as-is."""
    max_w, max_h = max_size
    h, w = image.shape[:2]
    if w <= max_w and h <= max_h:
        return image
    scale = min(max_w / w, max_h / h)
    new_size = (max(1, int(w * scale)), max(1, int(h * scale)))
    logging.info(f"Downsampled image from {w}x{h} to {new_size[0]}x{new_size[1]}")
    return cv2.resize(image, new_size, interpolation=cv2.INTER_AREA)


@dataclass
class ImageSourceConfig(ObservationConfig):
    """
    Configuration for still-image sources.
    
    Attributes:
        path: Image file path. Ignored when an image array is given directly.
        max_size: Largest (width, height) kept before downsampling.
    """
    path: Optional[str] = None
    max_size: Tuple[int, int] = (1280, 720)


class ImageSource(ObservationSource):
    """Observation source that produces one still image."""

    def __init__(self, config: ImageSourceConfig, image: Optional[np.ndarray] = None):
        super().__init__(config)
        self._image_config = config
        self._provided = image
        self._image: Optional[np.ndarray] = None
        self._consumed = False

    @property
    def is_finite(self) -> bool:
        return True

    def open(self) -> None:
        if self._is_open:
            return
        if self._provided is not None:
            image = self._provided
        else:
            path = self._image_config.path
            image = cv2.imread(path) if path else None
            if image is None:
                raise RuntimeError(f"Failed to read image {path!r}")
        self._image = fit_within(image, self._image_config.max_size)
        self._consumed = False
        self._frame_index = 0
        self._is_open = True

    def read(self) -> Optional[FrameData]:
        if not self._is_open or self._consumed:
            return None
        self._consumed = True
        self._frame_index += 1
        return FrameData.from_numpy(
            self._image,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def close(self) -> None:
        self._image = None
        self._is_open = False
