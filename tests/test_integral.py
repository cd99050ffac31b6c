"""
Tests for integral image construction and region sums.
"""

import numpy as np
import pytest

from detection.integral import IntegralImageBuilder, build_integral_images, normalized_intensity
from detection.haar import region_sum, region_sums
from conftest import gray_frame


def _random_frame(width, height, seed=0):
    rng = np.random.default_rng(seed)
    return rng.integers(0, 256, size=(height, width, 3), dtype=np.uint8)


class TestNormalizedIntensity:
    def test_mean_of_first_three_channels(self):
        pixels = np.array([[[30, 60, 90, 255]]], dtype=np.uint8)
        values = normalized_intensity(pixels)
        assert values.shape == (1, 1)
        assert values[0, 0] == pytest.approx(60 / 255)

    def test_white_is_one(self):
        values = normalized_intensity(gray_frame(3, 2, 255))
        np.testing.assert_array_equal(values, np.ones((2, 3)))


class TestIntegralImageBuilder:
    def test_grid_shape_and_zero_border(self):
        integral = build_integral_images(_random_frame(7, 5))
        assert integral.sum.shape == (6, 8)
        assert integral.squared.shape == (6, 8)
        assert integral.width == 7
        assert integral.height == 5
        assert np.all(integral.sum[0, :] == 0)
        assert np.all(integral.sum[:, 0] == 0)
        assert np.all(integral.squared[0, :] == 0)
        assert np.all(integral.squared[:, 0] == 0)

    def test_recurrence_holds(self):
        frame = _random_frame(9, 6, seed=3)
        values = normalized_intensity(frame)
        grid = build_integral_images(frame).sum
        for y in range(6):
            for x in range(9):
                expected = grid[y, x + 1] + grid[y + 1, x] - grid[y, x] + values[y, x]
                assert grid[y + 1, x + 1] == pytest.approx(expected)

    def test_squared_grid_uses_squared_values(self):
        frame = _random_frame(4, 4, seed=5)
        values = normalized_intensity(frame)
        integral = build_integral_images(frame)
        assert integral.squared[-1, -1] == pytest.approx(float((values ** 2).sum()))

    def test_flat_buffer_with_dimensions(self):
        frame = _random_frame(6, 4, seed=7)
        rgba = np.dstack([frame, np.full((4, 6), 255, dtype=np.uint8)])
        from_flat = build_integral_images(rgba.ravel(), width=6, height=4)
        from_array = build_integral_images(frame)
        np.testing.assert_allclose(from_flat.sum, from_array.sum)

    def test_reuse_overwrites_previous_frame(self):
        builder = IntegralImageBuilder()
        builder.build(gray_frame(10, 8, 255))
        integral = builder.build(gray_frame(10, 8, 0))
        assert np.all(integral.sum == 0)
        assert np.all(integral.squared == 0)

    def test_reallocates_on_size_change(self):
        builder = IntegralImageBuilder()
        builder.build(gray_frame(10, 8, 255))
        integral = builder.build(gray_frame(4, 3, 255))
        assert integral.sum.shape == (4, 5)
        assert integral.sum[-1, -1] == pytest.approx(12.0)

    def test_returned_grids_are_read_only(self):
        integral = build_integral_images(gray_frame(3, 3, 10))
        with pytest.raises(ValueError):
            integral.sum[1, 1] = 5.0


class TestRegionSum:
    def test_whole_grid_equals_total(self):
        frame = _random_frame(12, 9, seed=11)
        values = normalized_intensity(frame)
        integral = build_integral_images(frame)
        assert region_sum(integral.sum, 0, 0, 12, 9) == pytest.approx(float(values.sum()))

    @pytest.mark.parametrize("x,y,w,h", [(0, 0, 3, 3), (2, 1, 4, 5), (5, 6, 7, 2), (0, 4, 11, 1), (3, 0, 1, 9)])
    def test_uniform_grid_sub_rectangles(self, x, y, w, h):
        integral = build_integral_images(gray_frame(12, 10, 51))
        value = 51 / 255
        assert region_sum(integral.sum, x, y, w, h) == pytest.approx(value * w * h)

    def test_border_terms_at_origin(self):
        frame = _random_frame(8, 8, seed=2)
        values = normalized_intensity(frame)
        grid = build_integral_images(frame).sum
        assert region_sum(grid, 0, 3, 4, 2) == pytest.approx(float(values[3:5, 0:4].sum()))
        assert region_sum(grid, 3, 0, 2, 4) == pytest.approx(float(values[0:4, 3:5].sum()))

    def test_out_of_range_corner_contributes_zero(self):
        integral = build_integral_images(gray_frame(5, 5, 255))
        # Only the top-left corner (3, 3) lies inside the 6x6 grid.
        assert region_sum(integral.sum, 3, 3, 5, 5) == pytest.approx(9.0)

    def test_fully_outside_is_zero(self):
        integral = build_integral_images(gray_frame(5, 5, 255))
        assert region_sum(integral.sum, 20, 20, 3, 3) == 0.0

    def test_negative_indices_do_not_wrap(self):
        integral = build_integral_images(gray_frame(5, 5, 255))
        assert region_sum(integral.sum, 0, 0, -2, -2) == 0.0


class TestRegionSums:
    def test_matches_region_sum_per_corner(self):
        grid = build_integral_images(_random_frame(12, 9, seed=5)).sum
        xs = np.array([0, 3, 8, 11, 20, -2, 4])
        ys = np.array([0, 2, 5, 8, 1, 3, -1])

        sums = region_sums(grid, xs, ys, 4, 3)

        assert sums.tolist() == [region_sum(grid, int(x), int(y), 4, 3) for x, y in zip(xs, ys)]

    def test_out_of_range_corners_contribute_zero(self):
        integral = build_integral_images(gray_frame(5, 5, 255))
        sums = region_sums(integral.sum, np.array([3, 20]), np.array([3, 20]), 5, 5)
        assert sums[0] == pytest.approx(9.0)
        assert sums[1] == 0.0
