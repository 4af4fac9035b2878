"""
Heatmap color grids.

``render_heatmap`` turns a numeric matrix into a grid of palette colors:

    1. clamp every value into ``value_range`` (default [-2, 2] for z-scores)
    2. rescale the clamped value linearly into [0, 1]
    3. quantize into ``n_colors`` buckets
       bucket = min(floor(s * n_colors), n_colors - 1)
    4. color each cell with palette.color_at(bucket / (n_colors - 1))

Orientation:
    The grid is stored in matrix order (row 0 = first gene). Whether row 0
    is drawn at the top or the bottom is the explicit ``top_to_bottom``
    flag, honoured by ``display_rows``/``display_rgb`` and by the plotting
    helpers. Storage is never reversed to achieve an orientation.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import InvalidArgumentError
from erexplore.viz.palette import DivergingPalette, REFERENCE_PALETTE

__all__ = ['HeatmapGrid', 'render_heatmap', 'quantize']


@dataclass(frozen=True)
class HeatmapGrid:
    """
    Rendered heatmap.

    Attributes:
        rgb: uint8 array (n_rows, n_cols, 3) in matrix order
        buckets: int array (n_rows, n_cols) of palette bucket indices
        row_labels: Gene identifiers
        col_labels: Sample identifiers
        top_to_bottom: True if row 0 is displayed at the top
        value_range: (low, high) clamping range
        palette_colors: uint8 array (n_colors, 3), bucket -> color
    """
    rgb: np.ndarray
    buckets: np.ndarray
    row_labels: pd.Index
    col_labels: pd.Index
    top_to_bottom: bool
    value_range: tuple[float, float]
    palette_colors: np.ndarray

    @property
    def shape(self) -> tuple[int, int]:
        return self.buckets.shape

    @property
    def n_colors(self) -> int:
        return len(self.palette_colors)

    @property
    def origin(self) -> str:
        """matplotlib ``imshow`` origin matching the orientation flag."""
        return "upper" if self.top_to_bottom else "lower"

    def _display_order(self) -> np.ndarray:
        order = np.arange(self.shape[0])
        return order if self.top_to_bottom else order[::-1]

    def display_rows(self) -> pd.Index:
        """Row labels in the order they appear from the top of the image down."""
        return self.row_labels[self._display_order()]

    def display_rgb(self) -> np.ndarray:
        """Copy of the RGB grid with the top display row first (for raster export)."""
        return self.rgb[self._display_order()].copy()

    def reorder(
        self,
        row_order: Optional[Sequence[int]] = None,
        col_order: Optional[Sequence[int]] = None,
    ) -> HeatmapGrid:
        """New grid with rows/columns permuted (e.g. by dendrogram leaf order)."""
        rows = np.arange(self.shape[0]) if row_order is None else np.asarray(row_order, dtype=int)
        cols = np.arange(self.shape[1]) if col_order is None else np.asarray(col_order, dtype=int)
        if sorted(rows.tolist()) != list(range(self.shape[0])):
            raise InvalidArgumentError("row_order must be a permutation of the rows")
        if sorted(cols.tolist()) != list(range(self.shape[1])):
            raise InvalidArgumentError("col_order must be a permutation of the columns")
        return HeatmapGrid(
            rgb=self.rgb[np.ix_(rows, cols)],
            buckets=self.buckets[np.ix_(rows, cols)],
            row_labels=self.row_labels[rows],
            col_labels=self.col_labels[cols],
            top_to_bottom=self.top_to_bottom,
            value_range=self.value_range,
            palette_colors=self.palette_colors,
        )


def quantize(
    values: np.ndarray,
    n_colors: int,
    value_range: tuple[float, float] = (-2.0, 2.0),
) -> np.ndarray:
    """
    Map values to bucket indices 0..n_colors-1 after clamping.

    Raises:
        InvalidArgumentError: n_colors < 2, empty/inverted range, non-finite values
    """
    if n_colors < 2:
        raise InvalidArgumentError(f"n_colors must be >= 2, got {n_colors}")
    low, high = (float(v) for v in value_range)
    if not (np.isfinite(low) and np.isfinite(high)) or not low < high:
        raise InvalidArgumentError(
            f"value_range must be a finite (low, high) pair with low < high, got {value_range}"
        )
    values = np.asarray(values, dtype=float)
    if not np.all(np.isfinite(values)):
        raise InvalidArgumentError("heatmap input contains non-finite values")

    scaled = (np.clip(values, low, high) - low) / (high - low)
    return np.minimum(np.floor(scaled * n_colors), n_colors - 1).astype(int)


def render_heatmap(
    matrix: ExpressionMatrix | np.ndarray,
    n_colors: int = 64,
    value_range: tuple[float, float] = (-2.0, 2.0),
    top_to_bottom: bool = True,
    palette: DivergingPalette = REFERENCE_PALETTE,
) -> HeatmapGrid:
    """
    Render a matrix as a grid of palette colors.

    Args:
        matrix: ExpressionMatrix (genes × samples) or 2D array
        n_colors: Number of discrete palette buckets (>= 2)
        value_range: Clamping range (low, high)
        top_to_bottom: Display row 0 at the top
        palette: Color palette

    Returns:
        HeatmapGrid

    Raises:
        InvalidArgumentError: Invalid n_colors/value_range or non-finite input
    """
    if isinstance(matrix, ExpressionMatrix):
        values = matrix.data
        row_labels, col_labels = matrix.gene_ids, matrix.sample_ids
    else:
        values = np.asarray(matrix, dtype=float)
        if values.ndim != 2:
            raise InvalidArgumentError(f"expected a 2D matrix, got shape {values.shape}")
        row_labels = pd.RangeIndex(values.shape[0])
        col_labels = pd.RangeIndex(values.shape[1])

    buckets = quantize(values, n_colors, value_range)
    palette_colors = palette.colors(n_colors)

    return HeatmapGrid(
        rgb=palette_colors[buckets],
        buckets=buckets,
        row_labels=pd.Index(row_labels),
        col_labels=pd.Index(col_labels),
        top_to_bottom=bool(top_to_bottom),
        value_range=(float(value_range[0]), float(value_range[1])),
        palette_colors=palette_colors,
    )
