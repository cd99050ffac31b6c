"""
Detection interfaces.

The pipeline only depends on this small contract so detectors can be
swapped (e.g. a stub in tests).
"""

from __future__ import annotations

from typing import Callable, List, Optional

import numpy as np

from models.detection import Detection


class Detector:
    """Detector interface returning detections in input-frame pixel space."""

    def detect(
        self,
        frame: np.ndarray,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> List[Detection]:
        raise NotImplementedError
