"""
Haar cascade face detector.

Ties the engine together for one frame: downsample to the detection grid,
build integral images, run the multi-scale search, merge, filter by
confidence, and map the results back to input-frame coordinates.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Tuple

import cv2
import numpy as np

from models.config import DetectionConfig
from models.detection import Detection
from .base import Detector
from .cascade import CascadeEvaluator
from .integral import IntegralImageBuilder, IntegralImages
from .merge import DEFAULT_MERGE_RADIUS, merge_detections
from .search import MultiScaleSearch, SearchParams
from .stumps import StumpBank


def find_faces(
    integral: IntegralImages,
    bank: StumpBank,
    step_size: float = 1.5,
    max_scale: float = 5.0,
    scale_step: float = 0.25,
    merge_radius: float = DEFAULT_MERGE_RADIUS,
) -> List[Detection]:
    """
    Search one frame's integral images and merge the raw detections.

    Results are in the integral image's coordinate space and are not
    filtered by confidence.
    """
    search = MultiScaleSearch(
        CascadeEvaluator(bank),
        SearchParams(step_size=step_size, max_scale=max_scale, scale_step=scale_step),
    )
    return merge_detections(search.run(integral), merge_radius)


class HaarCascadeDetector(Detector):
    """
    Face detector over a pre-trained stump bank.
    
    Example:
        detector = HaarCascadeDetector(StumpBank.load("data/stumps.json"))
        for face in detector.detect(frame):
            x1, y1, x2, y2 = face.bbox.as_int_tuple()
    """

    def __init__(
        self,
        bank: Optional[StumpBank] = None,
        detection_size: Tuple[int, int] = (240, 135),
        params: Optional[SearchParams] = None,
        merge_radius: float = DEFAULT_MERGE_RADIUS,
        confidence_threshold: float = 300.0,
    ):
        """
        Initialize the detector.
        
        Args:
            bank: Trained stumps. None or an empty bank detects nothing.
            detection_size: (width, height) of the grid frames are resized to.
            params: Sliding-window parameters.
            merge_radius: Per-axis clustering radius in detection-grid pixels.
            confidence_threshold: Merged detections must score strictly above this.
        """
        self.detection_size = detection_size
        self.merge_radius = merge_radius
        self.confidence_threshold = confidence_threshold
        self._builder = IntegralImageBuilder()
        self._search = MultiScaleSearch(CascadeEvaluator(bank or StumpBank()), params)
        self.last_raw_count = 0
        self.last_merged_count = 0

    @classmethod
    def from_config(cls, cfg: DetectionConfig) -> "HaarCascadeDetector":
        """Adapter: Create a detector from the detection config section."""
        return cls(
            bank=StumpBank.load(cfg.stumps_path),
            detection_size=(int(cfg.detection_width), int(cfg.detection_height)),
            params=SearchParams(
                step_size=float(cfg.step_size),
                max_scale=float(cfg.max_scale),
                scale_step=float(cfg.scale_step),
            ),
            merge_radius=float(cfg.merge_radius),
            confidence_threshold=float(cfg.confidence_threshold),
        )

    @property
    def bank(self) -> StumpBank:
        return self._search.evaluator.bank

    @property
    def params(self) -> SearchParams:
        return self._search.params

    def set_stumps(self, bank: StumpBank) -> None:
        """
        Replace the stump bank.

        The new search object is swapped in with a single assignment; a
        detect() call already in progress keeps using the old bank.
        """
        self._search = MultiScaleSearch(CascadeEvaluator(bank), self._search.params)
        logging.info(f"Detector stump bank replaced ({len(bank)} stumps)")

    def set_params(self, params: SearchParams) -> None:
        self._search = MultiScaleSearch(self._search.evaluator, params)

    def prepare(self, frame: np.ndarray) -> np.ndarray:
        """Resize (and if needed expand) a frame to the detection grid."""
        if frame.ndim == 2:
            frame = cv2.cvtColor(frame, cv2.COLOR_GRAY2BGR)
        width, height = self.detection_size
        if frame.shape[1] == width and frame.shape[0] == height:
            return frame
        return cv2.resize(frame, (width, height), interpolation=cv2.INTER_AREA)

    def find_faces(
        self,
        frame: np.ndarray,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> List[Detection]:
        """
        Merged detections in detection-grid coordinates, unfiltered.

        Raises:
            SearchCancelled: If should_cancel returned True mid-scan.
        """
        search = self._search
        integral = self._builder.build(self.prepare(frame))
        raw = search.run(integral, should_cancel=should_cancel)
        merged = merge_detections(raw, self.merge_radius)
        self.last_raw_count = len(raw)
        self.last_merged_count = len(merged)
        return merged

    def detect(
        self,
        frame: np.ndarray,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> List[Detection]:
        """
        Detect faces in a frame.
        
        Args:
            frame: H x W x C image (C >= 3) or H x W grayscale image.
            should_cancel: Optional callable polled between windows.
        
        Returns:
            Detections above the confidence threshold, in frame coordinates.
        """
        faces = self.find_faces(frame, should_cancel=should_cancel)
        kept = [f for f in faces if f.confidence > self.confidence_threshold]

        if faces:
            logging.debug(
                f"Detected {len(faces)} faces "
                f"({len(kept)} above threshold {self.confidence_threshold})"
            )

        factor = frame.shape[1] / self.detection_size[0]
        return [f.rescaled(factor) for f in kept]

    def get_info(self) -> Dict[str, Any]:
        """Summary of the detector state for logging."""
        return {
            "stumps": len(self.bank),
            "detection_size": self.detection_size,
            "step_size": self.params.step_size,
            "max_scale": self.params.max_scale,
            "scale_step": self.params.scale_step,
            "merge_radius": self.merge_radius,
            "confidence_threshold": self.confidence_threshold,
        }
