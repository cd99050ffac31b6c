"""
Observation layer for pluggable frame sources.

Each source implements the ObservationSource interface and returns
FrameData objects, keeping capture details out of the detection pipeline.
"""

from .base import ObservationSource, ObservationConfig
from .opencv_source import OpenCVSource, OpenCVSourceConfig
from .image_source import ImageSource, ImageSourceConfig

__all__ = [
    "ObservationSource",
    "ObservationConfig",
    "OpenCVSource",
    "OpenCVSourceConfig",
    "ImageSource",
    "ImageSourceConfig",
]
