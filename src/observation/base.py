"""
ObservationSource interface for pluggable frame sources.

The detection pipeline works with any source that implements this contract:
- USB webcams
- Video files
- Still images
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

from models.frame import FrameData


@dataclass
class ObservationConfig:
    """
    Base configuration for observation sources.
    
    Attributes:
        source_id: Unique identifier for this source (e.g., "webcam", "upload").
        resolution: Target resolution as (width, height). None = use source default.
        fps: Target frames per second. None = use source default.
    """
    source_id: str = "default"
    resolution: Optional[Tuple[int, int]] = None
    fps: Optional[int] = None


class ObservationSource(ABC):
    """
    Abstract base class for observation sources.
    
    Lifecycle:
        1. Create instance with config
        2. Call open() to initialize the source
        3. Call read() repeatedly to get frames
        4. Call close() to release resources
    
    Can also be used as a context manager:
        with OpenCVSource(config) as source:
            for frame_data in source:
                process(frame_data)
    """

    def __init__(self, config: ObservationConfig):
        self._config = config
        self._is_open = False
        self._frame_index = 0

    @property
    def source_id(self) -> str:
        """Unique identifier for this source."""
        return self._config.source_id

    @property
    def is_open(self) -> bool:
        """Whether the source is currently open and ready to read."""
        return self._is_open

    @property
    def frame_index(self) -> int:
        """Current frame index (number of frames read since open)."""
        return self._frame_index

    @property
    def is_finite(self) -> bool:
        """True when running out of frames is normal (files, images)."""
        return False

    @abstractmethod
    def open(self) -> None:
        """
        Open/initialize the observation source.
        
        Raises:
            RuntimeError: If the source cannot be opened.
        """
        pass

    @abstractmethod
    def read(self) -> Optional[FrameData]:
        """
        Read the next frame from the source.
        
        Returns:
            FrameData, or None if no frame is available (end of input or error).
        """
        pass

    @abstractmethod
    def close(self) -> None:
        """Release the source. Safe to call multiple times."""
        pass

    def __enter__(self) -> "ObservationSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def __iter__(self) -> Iterator[FrameData]:
        """
        Iterate over frames until the source is exhausted.
        
        The source must be open before iterating.
        """
        if not self._is_open:
            raise RuntimeError("Source must be open before iterating")
        
        while True:
            frame_data = self.read()
            if frame_data is None:
                break
            yield frame_data
