"""
Tests for palette interpolation and heatmap rendering.
"""

import numpy as np
import pandas as pd
import pytest

from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import InvalidArgumentError
from erexplore.viz.heatmap import quantize, render_heatmap
from erexplore.viz.palette import DivergingPalette, REFERENCE_PALETTE


class TestDivergingPalette:
    """Piecewise-linear color lookup."""

    def test_control_points_exact(self):
        for point in REFERENCE_PALETTE.points:
            np.testing.assert_allclose(REFERENCE_PALETTE.color_at(point.position), point.rgb)

    def test_low_is_blue_high_is_red(self):
        low = REFERENCE_PALETTE.color_at(0.0)
        high = REFERENCE_PALETTE.color_at(1.0)
        assert low[2] > low[0]
        assert high[0] > high[2]

    def test_midpoint_interpolation(self):
        palette = DivergingPalette([(0.0, 0, 0, 0), (1.0, 200, 100, 50)])
        np.testing.assert_allclose(palette.color_at(0.5), [100, 50, 25])
        np.testing.assert_allclose(palette.color_at(0.25), [50, 25, 12.5])

    def test_continuity_between_adjacent_points(self):
        points = REFERENCE_PALETTE.points
        for p1, p2 in zip(points[:-1], points[1:]):
            mid = REFERENCE_PALETTE.color_at((p1.position + p2.position) / 2)
            lo = np.minimum(p1.rgb, p2.rgb)
            hi = np.maximum(p1.rgb, p2.rgb)
            assert np.all(mid >= lo - 1e-9) and np.all(mid <= hi + 1e-9)

    def test_no_extrapolation_past_end_points(self):
        palette = DivergingPalette([(0.2, 10, 10, 10), (0.8, 90, 90, 90)])
        np.testing.assert_allclose(palette.color_at(0.0), [10, 10, 10])
        np.testing.assert_allclose(palette.color_at(1.0), [90, 90, 90])

    @pytest.mark.parametrize("position", [-0.01, 1.01, np.nan])
    def test_position_out_of_range(self, position):
        with pytest.raises(InvalidArgumentError, match="palette position"):
            REFERENCE_PALETTE.color_at(position)

    def test_unsorted_points_rejected(self):
        with pytest.raises(InvalidArgumentError, match="strictly increasing"):
            DivergingPalette([(0.5, 0, 0, 0), (0.2, 1, 1, 1)])

    def test_channel_range_checked(self):
        with pytest.raises(InvalidArgumentError, match=r"\[0, 255\]"):
            DivergingPalette([(0.0, 0, 0, 0), (1.0, 256, 0, 0)])

    def test_needs_two_points(self):
        with pytest.raises(InvalidArgumentError, match="at least two"):
            DivergingPalette([(0.0, 0, 0, 0)])

    def test_matplotlib_colormap(self):
        cmap = REFERENCE_PALETTE.to_matplotlib()
        np.testing.assert_allclose(
            np.array(cmap(0.0)[:3]) * 255, REFERENCE_PALETTE.color_at(0.0), atol=1.0
        )


class TestQuantize:
    """Clamp, rescale, bucket."""

    def test_bucket_formula(self):
        values = np.array([[-2.0, -1.0, 0.0, 1.0, 2.0]])
        buckets = quantize(values, n_colors=4, value_range=(-2.0, 2.0))
        # s = 0, .25, .5, .75, 1 -> floor(4s) capped at 3
        assert buckets.tolist() == [[0, 1, 2, 3, 3]]

    def test_values_clamped(self):
        buckets = quantize(np.array([[-100.0, 100.0]]), n_colors=8)
        assert buckets.tolist() == [[0, 7]]

    @pytest.mark.parametrize("value_range", [(1.0, 1.0), (2.0, -2.0)])
    def test_bad_range(self, value_range):
        with pytest.raises(InvalidArgumentError, match="value_range"):
            quantize(np.zeros((1, 1)), 4, value_range)

    def test_too_few_colors(self):
        with pytest.raises(InvalidArgumentError, match="n_colors"):
            quantize(np.zeros((1, 1)), 1)


class TestRenderHeatmap:
    """Grid rendering and orientation."""

    def _matrix(self):
        data = np.array([[-3.0, 0.0, 3.0], [1.0, -1.0, 0.5]])
        return ExpressionMatrix(data, pd.Index(["g1", "g2"]), pd.Index(["a", "b", "c"]))

    def test_colors_come_from_buckets(self):
        grid = render_heatmap(self._matrix(), n_colors=16)

        assert grid.rgb.shape == (2, 3, 3)
        assert grid.rgb.dtype == np.uint8
        np.testing.assert_array_equal(grid.rgb, grid.palette_colors[grid.buckets])

    def test_bucket_color_is_palette_position(self):
        grid = render_heatmap(self._matrix(), n_colors=16)
        expected = np.rint(REFERENCE_PALETTE.color_at(0.0)).astype(np.uint8)
        np.testing.assert_array_equal(grid.rgb[0, 0], expected)  # -3 clamps to bucket 0
        expected = np.rint(REFERENCE_PALETTE.color_at(1.0)).astype(np.uint8)
        np.testing.assert_array_equal(grid.rgb[0, 2], expected)

    def test_storage_never_reversed(self):
        top = render_heatmap(self._matrix(), top_to_bottom=True)
        bottom = render_heatmap(self._matrix(), top_to_bottom=False)

        np.testing.assert_array_equal(top.rgb, bottom.rgb)
        assert list(top.row_labels) == list(bottom.row_labels) == ["g1", "g2"]

    def test_orientation_flag(self):
        top = render_heatmap(self._matrix(), top_to_bottom=True)
        bottom = render_heatmap(self._matrix(), top_to_bottom=False)

        assert top.origin == "upper"
        assert bottom.origin == "lower"
        assert list(top.display_rows()) == ["g1", "g2"]
        assert list(bottom.display_rows()) == ["g2", "g1"]
        np.testing.assert_array_equal(bottom.display_rgb()[0], bottom.rgb[1])

    def test_reorder(self):
        grid = render_heatmap(self._matrix())
        reordered = grid.reorder([1, 0], [2, 0, 1])

        assert list(reordered.row_labels) == ["g2", "g1"]
        assert list(reordered.col_labels) == ["c", "a", "b"]
        np.testing.assert_array_equal(reordered.buckets[0, 0], grid.buckets[1, 2])

    def test_reorder_requires_permutation(self):
        with pytest.raises(InvalidArgumentError, match="permutation"):
            render_heatmap(self._matrix()).reorder([0, 0], None)

    def test_plain_array_input(self):
        grid = render_heatmap(np.zeros((3, 4)), n_colors=5)
        assert grid.shape == (3, 4)
        assert np.all(grid.buckets == 2)
