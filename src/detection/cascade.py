"""
Attentional cascade over a stump bank.

Stumps are evaluated strictly in training order and their weighted votes
accumulate into a running score. At each checkpoint (a cumulative stump
count) a window whose score is not positive is rejected, so most non-face
windows are discarded after one or ten stumps.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional, Sequence, Tuple

import numpy as np

from models.detection import Detection
from .integral import IntegralImages
from .stumps import StumpBank

STAGE_CHECKPOINTS: Tuple[int, ...] = (1, 10, 100, 500, 2000, 4000, 6000)


@dataclass(frozen=True)
class CascadeResult:
    """
    Outcome of running the cascade on one window.

    Attributes:
        accepted: True if the window passed every checkpoint.
        score: Running score when evaluation stopped.
        stumps_evaluated: Number of stumps evaluated.
        stages_passed: Number of checkpoints passed.
    """
    accepted: bool
    score: float
    stumps_evaluated: int
    stages_passed: int


class CascadeEvaluator:
    """Evaluates windows against a fixed stump bank."""

    def __init__(self, bank: StumpBank, checkpoints: Sequence[int] = STAGE_CHECKPOINTS):
        self._bank = bank
        self._checkpoints = tuple(checkpoints)
        self._limit = min(len(bank), self._checkpoints[-1]) if self._checkpoints else len(bank)

    @property
    def bank(self) -> StumpBank:
        return self._bank

    def evaluate(
        self,
        integral: IntegralImages,
        window_x: int,
        window_y: int,
        scale_factor: float,
    ) -> CascadeResult:
        checkpoints = self._checkpoints
        score = 0.0
        stage = 0

        for i in range(self._limit):
            stump = self._bank[i]
            response = stump.feature.apply(integral, window_x, window_y, scale_factor)
            score += stump.weight * stump.vote(response, scale_factor)

            if stage < len(checkpoints) and i + 1 == checkpoints[stage]:
                if score <= 0:
                    return CascadeResult(False, score, i + 1, stage)
                stage += 1

        # A bank that runs out early is judged as if it hit the final checkpoint.
        if stage < len(checkpoints) and score <= 0:
            return CascadeResult(False, score, self._limit, stage)

        return CascadeResult(True, score, self._limit, stage)

    def evaluate_many(
        self,
        integral: IntegralImages,
        window_xs: np.ndarray,
        window_ys: np.ndarray,
        scale_factor: float,
        before_stump: Optional[Callable[[], None]] = None,
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Run the cascade over many windows of one scale.

        Each stump is evaluated over every window still alive; windows are
        dropped at the checkpoints exactly as evaluate() would drop them.

        Args:
            integral: Integral images of the current frame.
            window_xs: Window left edges.
            window_ys: Window top edges.
            scale_factor: Window scale shared by all windows.
            before_stump: Optional hook called before each stump. Exceptions
                it raises propagate and abandon the evaluation.

        Returns:
            (indices, scores) of the accepted windows, indices ascending.
        """
        checkpoints = self._checkpoints
        xs = np.asarray(window_xs)
        ys = np.asarray(window_ys)
        alive = np.arange(len(xs))
        scores = np.zeros(len(xs), dtype=np.float64)
        stage = 0

        for i in range(self._limit):
            if len(alive) == 0:
                break
            if before_stump is not None:
                before_stump()
            stump = self._bank[i]
            responses = stump.feature.apply_many(integral, xs[alive], ys[alive], scale_factor)
            scores += stump.weight * stump.votes(responses, scale_factor)

            if stage < len(checkpoints) and i + 1 == checkpoints[stage]:
                keep = scores > 0
                alive, scores = alive[keep], scores[keep]
                stage += 1

        if stage < len(checkpoints):
            keep = scores > 0
            alive, scores = alive[keep], scores[keep]

        return alive, scores

    def detect(
        self,
        integral: IntegralImages,
        window_x: int,
        window_y: int,
        scale_factor: float,
    ) -> Optional[Detection]:
        """Return a Detection for an accepted window, or None."""
        result = self.evaluate(integral, window_x, window_y, scale_factor)
        if not result.accepted:
            return None
        return Detection(x=window_x, y=window_y, scale_factor=scale_factor, confidence=result.score)
