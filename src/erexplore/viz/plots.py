"""
matplotlib/seaborn renderings of the pipeline's numeric outputs.

Every function draws from a data structure the pipeline already computed
(Histogram, per-sample summary, HeatmapGrid, Dendrogram, Embedding) and
returns a ``Figure``; none of them recompute statistics.
"""

from __future__ import annotations

from typing import Optional

import matplotlib.pyplot as plt
import pandas as pd
import seaborn as sns
from scipy.cluster.hierarchy import dendrogram as scipy_dendrogram

from erexplore.stats.clustering import Dendrogram
from erexplore.stats.embedding import Embedding
from erexplore.stats.summaries import Histogram
from erexplore.viz.core import Figure
from erexplore.viz.heatmap import HeatmapGrid
from erexplore.viz.styles import Palette, PALETTES

__all__ = [
    'plot_histogram',
    'plot_sample_boxplots',
    'plot_heatmap',
    'plot_dendrogram',
    'plot_embedding',
]


def plot_histogram(hist: Histogram, title: str, xlabel: str = "expression") -> Figure:
    fig, ax = plt.subplots(figsize=(6, 4))
    ax.stairs(hist.counts, hist.edges, fill=True, color=PALETTES["default"].neutral)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("count")
    ax.set_title(title)
    return Figure(fig=fig, title=title, description=f"Histogram of {xlabel} values")


def plot_sample_boxplots(summary: pd.DataFrame, title: str, max_samples: int = 100) -> Figure:
    """
    Boxplots from ``summarize_samples`` output (whiskers at min/max).

    Only the first ``max_samples`` samples are drawn.
    """
    shown = summary.iloc[:max_samples]
    stats = [
        {
            "label": str(sample),
            "whislo": row["min"],
            "q1": row["q1"],
            "med": row["median"],
            "q3": row["q3"],
            "whishi": row["max"],
            "fliers": [],
        }
        for sample, row in shown.iterrows()
    ]
    fig, ax = plt.subplots(figsize=(max(6, 0.12 * len(stats)), 4))
    ax.bxp(stats, showfliers=False)
    ax.tick_params(axis="x", labelbottom=False)
    ax.set_xlabel(f"samples (first {len(stats)})")
    ax.set_title(title)
    return Figure(fig=fig, title=title, description="Per-sample expression distributions")


def plot_heatmap(grid: HeatmapGrid, title: str = "Expression heatmap") -> Figure:
    """
    Draw a HeatmapGrid; orientation follows ``grid.top_to_bottom``.
    """
    fig, ax = plt.subplots(figsize=(8, 6))
    ax.imshow(grid.rgb, aspect="auto", interpolation="nearest", origin=grid.origin)
    ax.set_xticks([])
    ax.set_yticks([])
    ax.set_xlabel(f"samples (n={grid.shape[1]})")
    ax.set_ylabel(f"genes (n={grid.shape[0]})")
    ax.set_title(title)
    return Figure(
        fig=fig,
        title=title,
        description=(
            f"{grid.n_colors} color buckets, values clamped to "
            f"[{grid.value_range[0]:g}, {grid.value_range[1]:g}]"
        ),
        metadata={"top_to_bottom": grid.top_to_bottom},
    )


def plot_dendrogram(tree: Dendrogram, title: Optional[str] = None) -> Figure:
    title = title or f"{tree.method.value} linkage ({tree.metric})"
    fig, ax = plt.subplots(figsize=(10, 4))
    scipy_dendrogram(
        tree.linkage_matrix,
        labels=[str(label) for label in tree.labels],
        no_labels=tree.n_leaves > 60,
        ax=ax,
        color_threshold=0,
        above_threshold_color=PALETTES["default"].neutral,
    )
    ax.set_ylabel("height")
    ax.set_title(title)
    return Figure(fig=fig, title=title, description=f"Dendrogram over {tree.n_leaves} leaves")


def plot_embedding(
    embedding: Embedding,
    groups: Optional[pd.Series] = None,
    title: str = "t-SNE",
    palette: Optional[Palette] = None,
) -> Figure:
    """Scatter of t-SNE coordinates, colored by ``groups`` (aligned by label) if given."""
    palette = palette or PALETTES["default"]
    coords = embedding.coordinates
    fig, ax = plt.subplots(figsize=(6, 5))
    if groups is None:
        ax.scatter(coords["tsne_1"], coords["tsne_2"], s=12, color=palette.neutral)
    else:
        hue = groups.reindex(coords.index).astype(object).fillna("<missing>").astype(str)
        levels = sorted(hue.unique())
        sns.scatterplot(
            x=coords["tsne_1"],
            y=coords["tsne_2"],
            hue=hue.values,
            hue_order=levels,
            palette=dict(zip(levels, palette.for_groups(levels))),
            s=18,
            ax=ax,
        )
        ax.legend(title=groups.name or "group")
    ax.set_title(title)
    return Figure(
        fig=fig,
        title=title,
        description=f"perplexity={embedding.perplexity:g}, seed={embedding.random_state}",
    )
