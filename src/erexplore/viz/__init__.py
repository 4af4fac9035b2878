"""
Visualization for the exploratory expression pipeline.

The numeric contract lives in ``palette`` (color interpolation) and
``heatmap`` (color grids). ``plots`` turns pipeline outputs into
matplotlib figures wrapped in ``Figure``/``FigureCollection``.

Examples
--------
>>> from erexplore.viz import render_heatmap, plot_heatmap
>>> grid = render_heatmap(standardized, n_colors=64, value_range=(-2, 2))
>>> plot_heatmap(grid).save("figures/heatmap.png")
"""

from erexplore.viz.palette import ControlPoint, DivergingPalette, REFERENCE_PALETTE
from erexplore.viz.heatmap import HeatmapGrid, render_heatmap, quantize
from erexplore.viz.core import Figure, FigureCollection
from erexplore.viz.styles import Palette, PALETTES, configure_style, format_pvalue
from erexplore.viz.plots import (
    plot_histogram,
    plot_sample_boxplots,
    plot_heatmap,
    plot_dendrogram,
    plot_embedding,
)

__all__ = [
    "ControlPoint",
    "DivergingPalette",
    "REFERENCE_PALETTE",
    "HeatmapGrid",
    "render_heatmap",
    "quantize",
    "Figure",
    "FigureCollection",
    "Palette",
    "PALETTES",
    "configure_style",
    "format_pvalue",
    "plot_histogram",
    "plot_sample_boxplots",
    "plot_heatmap",
    "plot_dendrogram",
    "plot_embedding",
]
