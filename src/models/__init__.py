"""
Typed models for the face detection application.
"""

from .frame import FrameData
from .detection import Detection, BoundingBox, WINDOW_SIZE
from .config import Config, CameraConfig, DetectionConfig

__all__ = [
    # Frame
    "FrameData",
    # Detection
    "Detection",
    "BoundingBox",
    "WINDOW_SIZE",
    # Config
    "Config",
    "CameraConfig",
    "DetectionConfig",
]
