"""
OpenCV-based observation source.

Supports:
- USB webcams (device_id as int, e.g., 0)
- Video files (device_id as file path)
"""

from __future__ import annotations

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

import cv2
import numpy as np

from models.frame import FrameData
from .base import ObservationSource, ObservationConfig


@dataclass
class OpenCVSourceConfig(ObservationConfig):
    """
    Configuration for OpenCV-based observation sources.
    
    Attributes:
        device_id: Camera index (int) or video file path (str).
        buffer_size: OpenCV capture buffer size (reduces latency for live feeds).
        max_retries: Maximum attempts to open the device.
        swap_rb: Swap R/B channels (fixes RGB vs BGR issues).
        flip_horizontal: Mirror the frame (selfie view for front cameras).
    """
    device_id: Union[int, str] = 0
    buffer_size: int = 1
    max_retries: int = 3
    swap_rb: bool = False
    flip_horizontal: bool = False

    @classmethod
    def from_camera_config(cls, camera_cfg: Dict[str, Any], source_id: str = "camera") -> "OpenCVSourceConfig":
        """
        Adapter: Create OpenCVSourceConfig from the camera config dict.
        
        Args:
            camera_cfg: Camera configuration dict (from config.yaml).
            source_id: Identifier for this source.
        """
        resolution = camera_cfg.get("resolution")
        if resolution:
            resolution = tuple(resolution)
        
        return cls(
            source_id=source_id,
            resolution=resolution,
            fps=camera_cfg.get("fps"),
            device_id=camera_cfg.get("device_id", 0),
            buffer_size=camera_cfg.get("buffer_size", 1),
            max_retries=camera_cfg.get("max_retries", 3),
            swap_rb=camera_cfg.get("swap_rb", False),
            flip_horizontal=camera_cfg.get("flip_horizontal", False),
        )


class OpenCVSource(ObservationSource):
    """
    OpenCV-based observation source for cameras and video files.
    
    Example:
        config = OpenCVSourceConfig(device_id=0, resolution=(1280, 720))
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data.frame)
    """

    def __init__(self, config: OpenCVSourceConfig):
        super().__init__(config)
        self._opencv_config = config
        self._cap: Optional[cv2.VideoCapture] = None

    @property
    def device_id(self) -> Union[int, str]:
        return self._opencv_config.device_id

    @property
    def is_file(self) -> bool:
        """Check if this is a video file."""
        return isinstance(self.device_id, str) and os.path.exists(self.device_id)

    @property
    def is_finite(self) -> bool:
        return self.is_file

    def open(self) -> None:
        """Open the video source."""
        if self._is_open:
            return
        
        self._initialize()
        self._is_open = True
        self._frame_index = 0
        
        logging.info(
            f"OpenCVSource opened: source_id={self.source_id}, "
            f"device={self.device_id}, resolution={self._opencv_config.resolution}"
        )

    def _initialize(self) -> None:
        """Open the capture device, retrying with backoff."""
        attempts = max(1, self._opencv_config.max_retries)
        for attempt in range(attempts):
            if attempt > 0:
                wait_time = min(2 ** attempt, 10)
                logging.info(f"Retrying open (attempt {attempt + 1}/{attempts}) after {wait_time}s")
                time.sleep(wait_time)

            self._cap = cv2.VideoCapture(self.device_id)
            if self._cap.isOpened():
                break
            self._cap.release()
            self._cap = None
            logging.warning(f"Failed to open device {self.device_id}")
        else:
            raise RuntimeError(f"Failed to open device {self.device_id} after {attempts} attempts")

        # Only USB cameras honour capture properties
        if isinstance(self.device_id, int) and self._opencv_config.resolution:
            w, h = self._opencv_config.resolution
            self._cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
            self._cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
            if self._opencv_config.fps:
                self._cap.set(cv2.CAP_PROP_FPS, self._opencv_config.fps)
            self._cap.set(cv2.CAP_PROP_BUFFERSIZE, self._opencv_config.buffer_size)

    def read(self) -> Optional[FrameData]:
        """Read the next frame from the source."""
        if not self._is_open or self._cap is None:
            return None

        ret, frame = self._cap.read()
        if not ret or frame is None:
            if self.is_file:
                logging.info("End of video file reached")
            else:
                logging.warning(f"Failed to read frame from {self.device_id}")
            return None

        frame = self._apply_transforms(frame)
        self._frame_index += 1

        return FrameData.from_numpy(
            frame,
            timestamp=time.time(),
            frame_index=self._frame_index,
            source=self.source_id,
        )

    def _apply_transforms(self, frame: np.ndarray) -> np.ndarray:
        """Apply configured image transforms (flip, swap_rb)."""
        cfg = self._opencv_config
        if cfg.flip_horizontal:
            frame = cv2.flip(frame, 1)
        if cfg.swap_rb:
            frame = frame[..., ::-1].copy()
        return frame

    def close(self) -> None:
        """Close the video source and release resources."""
        if self._cap is not None:
            self._cap.release()
            self._cap = None
        self._is_open = False
        logging.info(f"OpenCVSource closed: source_id={self.source_id}")
