"""
Tests for the multi-scale window search.
"""

import itertools

import numpy as np
import pytest

from detection.cascade import CascadeEvaluator
from detection.haar import FeatureType, HaarFeature
from detection.integral import build_integral_images
from detection.search import MultiScaleSearch, SearchCancelled, SearchParams, iter_scales, iter_windows, window_origins
from detection.stumps import Stump, StumpBank
from conftest import gray_frame, square_frame

_ALWAYS_YES = Stump(
    feature=HaarFeature(FeatureType.EDGE_HORIZONTAL, 4, 4, 0, 0),
    threshold=1e9,
    polarity=1,
    weight=1.0,
)


class TestIterScales:
    def test_default_range(self):
        scales = list(iter_scales(5.0, 0.25))
        assert len(scales) == 17
        assert scales[0] == 1.0
        assert scales[-1] == pytest.approx(5.0)

    def test_single_scale(self):
        assert list(iter_scales(1.0, 0.25)) == [1.0]

    def test_max_scale_is_inclusive(self):
        assert list(iter_scales(3.0, 1.0)) == [1.0, 2.0, 3.0]


class TestIterWindows:
    def test_row_major_order(self):
        windows = list(iter_windows(30, 30, 1.0, 1.5))
        # side 24, stride floor(1.5) = 1: x and y in 0..5
        assert len(windows) == 36
        assert windows[:3] == [(0, 0), (1, 0), (2, 0)]
        assert windows[6] == (0, 1)

    def test_window_may_not_reach_border(self):
        assert list(iter_windows(25, 25, 1.0, 1.0)) == [(0, 0)]
        assert list(iter_windows(24, 24, 1.0, 1.0)) == []

    def test_stride_and_side_scale(self):
        windows = list(iter_windows(60, 50, 2.0, 1.5))
        # side 48, stride 3
        assert windows == [(0, 0), (3, 0), (6, 0), (9, 0)]

    def test_sub_pixel_stride_still_advances(self):
        windows = list(iter_windows(26, 25, 1.0, 0.5))
        assert windows == [(0, 0), (1, 0)]


class TestMultiScaleSearch:
    def test_every_window_accepted(self):
        integral = build_integral_images(gray_frame(60, 50, 100))
        params = SearchParams(step_size=1.5, max_scale=2.0, scale_step=0.5)
        detections = MultiScaleSearch(CascadeEvaluator(StumpBank([_ALWAYS_YES])), params).run(integral)

        expected = [
            (x, y, s)
            for s in iter_scales(2.0, 0.5)
            for x, y in iter_windows(60, 50, s, 1.5)
        ]
        assert [(d.x, d.y, d.scale_factor) for d in detections] == expected

    def test_scales_ascend(self):
        integral = build_integral_images(gray_frame(60, 50, 100))
        params = SearchParams(max_scale=2.0, scale_step=0.5)
        detections = MultiScaleSearch(CascadeEvaluator(StumpBank([_ALWAYS_YES])), params).run(integral)
        scales = [d.scale_factor for d in detections]
        assert scales == sorted(scales)

    def test_empty_bank_on_mid_gray_frame(self):
        integral = build_integral_images(gray_frame(240, 135, 128))
        detections = MultiScaleSearch(CascadeEvaluator(StumpBank())).run(integral)
        assert detections == []

    def test_cancellation_discards_partial_results(self):
        integral = build_integral_images(gray_frame(60, 50, 100))
        params = SearchParams(max_scale=2.0, scale_step=0.5)
        search = MultiScaleSearch(CascadeEvaluator(StumpBank([_ALWAYS_YES])), params)
        calls = itertools.count()

        # Scale 1.0 completes; the poll before scale 1.5 cancels.
        with pytest.raises(SearchCancelled):
            search.run(integral, should_cancel=lambda: next(calls) >= 2)

    def test_cancellation_between_stumps(self):
        integral = build_integral_images(gray_frame(30, 30, 100))
        bank = StumpBank([_ALWAYS_YES] * 3)
        search = MultiScaleSearch(CascadeEvaluator(bank), SearchParams(max_scale=1.0))
        polls = []

        def should_cancel():
            polls.append(True)
            return len(polls) == 3

        with pytest.raises(SearchCancelled):
            search.run(integral, should_cancel=should_cancel)
        assert len(polls) == 3

    def test_polled_before_scale_and_each_stump(self):
        integral = build_integral_images(gray_frame(30, 30, 100))
        bank = StumpBank([_ALWAYS_YES] * 3)
        search = MultiScaleSearch(CascadeEvaluator(bank), SearchParams(max_scale=1.0))
        polls = []

        search.run(integral, should_cancel=lambda: polls.append(True) and False)

        assert len(polls) == 4

    def test_cancel_never_requested(self):
        integral = build_integral_images(gray_frame(30, 30, 100))
        search = MultiScaleSearch(CascadeEvaluator(StumpBank([_ALWAYS_YES])), SearchParams(max_scale=1.0))
        assert len(search.run(integral, should_cancel=lambda: False)) == 36


def _random_bank(rng, count):
    """A head-start stump followed by random stumps, so some windows pass and some fail."""
    stumps = [Stump(feature=_ALWAYS_YES.feature, threshold=1e9, polarity=1, weight=5.0)]
    for _ in range(count - 1):
        width = int(rng.integers(2, 13))
        height = int(rng.integers(2, 13))
        feature = HaarFeature(
            shape=FeatureType(int(rng.integers(0, 6))),
            width=width,
            height=height,
            offset_x=int(rng.integers(0, 25 - width)),
            offset_y=int(rng.integers(0, 25 - height)),
        )
        stumps.append(Stump(
            feature=feature,
            threshold=float(rng.normal(0.0, 2.0)),
            polarity=int(rng.choice([-1, 1])),
            weight=float(rng.uniform(0.1, 1.0)),
        ))
    return StumpBank(stumps)


def _scalar_search(integral, evaluator, params):
    """One cascade evaluation per window, in scan order."""
    found = []
    for scale in iter_scales(params.max_scale, params.scale_step):
        for x, y in iter_windows(integral.width, integral.height, scale, params.step_size):
            detection = evaluator.detect(integral, x, y, scale)
            if detection is not None:
                found.append(detection)
    return found


class TestBatchedSearchMatchesPerWindowCascade:
    @pytest.mark.parametrize("seed", [0, 1, 2])
    def test_random_frame_and_bank(self, seed):
        rng = np.random.default_rng(seed)
        frame = rng.integers(0, 256, size=(50, 60, 3), dtype=np.uint8)
        integral = build_integral_images(frame)
        evaluator = CascadeEvaluator(_random_bank(rng, 60))
        params = SearchParams(step_size=1.5, max_scale=2.0, scale_step=0.25)

        expected = _scalar_search(integral, evaluator, params)
        detections = MultiScaleSearch(evaluator, params).run(integral)

        assert expected
        assert detections == expected

    def test_square_frame_single_stump(self, square_bank):
        integral = build_integral_images(square_frame(64, 48, 20, 12, 24))
        evaluator = CascadeEvaluator(square_bank)
        params = SearchParams(max_scale=1.5, scale_step=0.25)

        assert MultiScaleSearch(evaluator, params).run(integral) == _scalar_search(integral, evaluator, params)

    def test_window_origins_match_iteration(self):
        xs, ys = window_origins(240, 135, 1.75, 1.5)
        assert list(zip(xs.tolist(), ys.tolist())) == list(iter_windows(240, 135, 1.75, 1.5))
        assert len(xs) == len(ys) > 0
