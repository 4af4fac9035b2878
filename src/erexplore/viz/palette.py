"""
Piecewise-linear diverging color palettes.

A palette is a sorted table of control points ``(position, r, g, b)``
with positions in [0, 1] and channels in [0, 255]. ``color_at`` linearly
interpolates each channel between the two control points surrounding the
requested position and never extrapolates past the end points.

The reference palette is ColorBrewer's 11-class RdBu scale ordered so that
low values are blue, the midpoint is near-white and high values are red,
which matches the usual convention for z-scored expression heatmaps.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np
from matplotlib.colors import LinearSegmentedColormap

from erexplore.exceptions import InvalidArgumentError

__all__ = ['ControlPoint', 'DivergingPalette', 'REFERENCE_PALETTE']


@dataclass(frozen=True)
class ControlPoint:
    position: float
    r: float
    g: float
    b: float

    @property
    def rgb(self) -> np.ndarray:
        return np.array([self.r, self.g, self.b], dtype=float)


class DivergingPalette:
    """
    Color lookup by linear interpolation between control points.

    Args:
        points: Sequence of (position, r, g, b) tuples or ControlPoints,
            strictly increasing in position

    Raises:
        InvalidArgumentError: Fewer than 2 points, unsorted or out-of-range
            positions, channels outside [0, 255]
    """

    def __init__(self, points: Sequence, name: str = "custom"):
        parsed = [p if isinstance(p, ControlPoint) else ControlPoint(*p) for p in points]
        if len(parsed) < 2:
            raise InvalidArgumentError("a palette needs at least two control points")

        positions = np.array([p.position for p in parsed], dtype=float)
        if np.any(positions < 0) or np.any(positions > 1):
            raise InvalidArgumentError("control point positions must lie in [0, 1]")
        if np.any(np.diff(positions) <= 0):
            raise InvalidArgumentError("control point positions must be strictly increasing")

        colors = np.array([p.rgb for p in parsed])
        if np.any(colors < 0) or np.any(colors > 255):
            raise InvalidArgumentError("color channels must lie in [0, 255]")

        self.name = name
        self._points = tuple(parsed)
        self._positions = positions
        self._colors = colors

    @property
    def points(self) -> tuple[ControlPoint, ...]:
        return self._points

    def color_at(self, position: float) -> np.ndarray:
        """
        RGB triple (floats in [0, 255]) at ``position``.

        Positions at or before the first control point return its color;
        positions at or beyond the last control point return the last color.

        Raises:
            InvalidArgumentError: If position is outside [0, 1] or not finite
        """
        position = float(position)
        if not np.isfinite(position) or position < 0 or position > 1:
            raise InvalidArgumentError(f"palette position must lie in [0, 1], got {position}")

        if position <= self._positions[0]:
            return self._colors[0].copy()
        if position >= self._positions[-1]:
            return self._colors[-1].copy()

        upper = int(np.searchsorted(self._positions, position, side="right"))
        lower = upper - 1
        p0, p1 = self._positions[lower], self._positions[upper]
        t = (position - p0) / (p1 - p0)
        return self._colors[lower] + t * (self._colors[upper] - self._colors[lower])

    def colors(self, n_colors: int) -> np.ndarray:
        """
        ``n_colors`` evenly spaced palette colors as uint8 RGB rows.

        Raises:
            InvalidArgumentError: If n_colors < 2
        """
        if n_colors < 2:
            raise InvalidArgumentError(f"n_colors must be >= 2, got {n_colors}")
        table = np.array([self.color_at(i / (n_colors - 1)) for i in range(n_colors)])
        return np.rint(table).astype(np.uint8)

    def to_matplotlib(self, n_colors: int = 256) -> LinearSegmentedColormap:
        """Equivalent matplotlib colormap for plotting."""
        stops = [(float(pos), tuple(color / 255.0)) for pos, color in zip(self._positions, self._colors)]
        return LinearSegmentedColormap.from_list(self.name, stops, N=n_colors)

    def __repr__(self) -> str:
        return f"DivergingPalette({self.name}, {len(self._points)} points)"


# ColorBrewer RdBu (11 classes), blue at 0.0, red at 1.0
REFERENCE_PALETTE = DivergingPalette(
    [
        (0.0, 5, 48, 97),
        (0.1, 33, 102, 172),
        (0.2, 67, 147, 195),
        (0.3, 146, 197, 222),
        (0.4, 209, 229, 240),
        (0.5, 247, 247, 247),
        (0.6, 253, 219, 199),
        (0.7, 244, 165, 130),
        (0.8, 214, 96, 77),
        (0.9, 178, 24, 43),
        (1.0, 103, 0, 31),
    ],
    name="RdBu_11",
)
