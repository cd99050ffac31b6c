"""
Exhaustive multi-scale sliding-window search.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterator, List, Optional, Tuple

import numpy as np

from models.detection import WINDOW_SIZE, Detection
from .cascade import CascadeEvaluator
from .integral import IntegralImages


class SearchCancelled(Exception):
    """Raised when a scan is abandoned between evaluation steps."""


@dataclass(frozen=True)
class SearchParams:
    """
    Sliding-window parameters.
    
    Attributes:
        step_size: Window stride at scale 1; scaled with the window.
        max_scale: Largest scale factor searched (inclusive).
        scale_step: Increment between successive scale factors.
    """
    step_size: float = 1.5
    max_scale: float = 5.0
    scale_step: float = 0.25


def iter_scales(max_scale: float, scale_step: float) -> Iterator[float]:
    """Yield 1.0, 1.0 + step, ... while the scale does not exceed max_scale."""
    scale = 1.0
    while scale <= max_scale:
        yield scale
        scale += scale_step


def window_origins(width: int, height: int, scale_factor: float, step_size: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Window origins for one scale as (xs, ys) arrays in row-major order.

    Windows whose far edge would reach the frame border are skipped.
    """
    side = int(math.floor(WINDOW_SIZE * scale_factor))
    # A stride below one pixel would never advance.
    stride = max(1, int(math.floor(step_size * scale_factor)))
    ys, xs = np.meshgrid(
        np.arange(0, max(height - side, 0), stride),
        np.arange(0, max(width - side, 0), stride),
        indexing="ij",
    )
    return xs.ravel(), ys.ravel()


def iter_windows(width: int, height: int, scale_factor: float, step_size: float) -> Iterator[Tuple[int, int]]:
    """Window origins (x, y) in row-major order for one scale."""
    xs, ys = window_origins(width, height, scale_factor, step_size)
    return zip(xs.tolist(), ys.tolist())


class MultiScaleSearch:
    """
    Runs the cascade over every window at every scale.

    Windows are independent; nothing is shared between evaluations other
    than the read-only integral images and stump bank.
    """

    def __init__(self, evaluator: CascadeEvaluator, params: Optional[SearchParams] = None):
        self._evaluator = evaluator
        self.params = params or SearchParams()

    @property
    def evaluator(self) -> CascadeEvaluator:
        return self._evaluator

    def run(
        self,
        integral: IntegralImages,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> List[Detection]:
        """
        Collect raw detections across all scales.
        
        Args:
            integral: Integral images of the frame to search.
            should_cancel: Optional callable polled before each scale and
                before each stump batch; when it returns True the scan stops.
        
        Returns:
            Detections ordered by ascending scale, then row-major position.
        
        Raises:
            SearchCancelled: If should_cancel returned True. Detections found
                so far are discarded.
        """
        params = self.params
        width, height = integral.width, integral.height
        detections: List[Detection] = []

        def poll() -> None:
            if should_cancel is not None and should_cancel():
                raise SearchCancelled(f"Search cancelled after {len(detections)} raw detections")

        for scale in iter_scales(params.max_scale, params.scale_step):
            xs, ys = window_origins(width, height, scale, params.step_size)
            if len(xs) == 0:
                continue

            poll()
            accepted, scores = self._evaluator.evaluate_many(integral, xs, ys, scale, before_stump=poll)
            detections.extend(
                Detection(x=int(xs[i]), y=int(ys[i]), scale_factor=scale, confidence=float(score))
                for i, score in zip(accepted, scores)
            )

        logging.debug(f"Multi-scale search found {len(detections)} raw detections")
        return detections
