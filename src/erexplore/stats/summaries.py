"""
Descriptive summaries behind the exploratory plots.

- summarize_samples: per-sample distribution (boxplot statistics)
- expression_histogram: binned distribution of all values
- covariate_summary: value counts of a clinical variable, missing included
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np
import pandas as pd

from erexplore.core.covariates import CovariateTable
from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import InvalidArgumentError

__all__ = [
    'Histogram',
    'summarize_samples',
    'expression_histogram',
    'covariate_summary',
]


@dataclass(frozen=True)
class Histogram:
    """Bin counts and edges (len(edges) == len(counts) + 1)."""
    counts: np.ndarray
    edges: np.ndarray

    @property
    def centers(self) -> np.ndarray:
        return (self.edges[:-1] + self.edges[1:]) / 2


def summarize_samples(matrix: ExpressionMatrix) -> pd.DataFrame:
    """
    Per-sample min, quartiles, max and mean.

    Returns:
        DataFrame indexed by sample id with columns
        min, q1, median, q3, max, mean
    """
    if matrix.n_genes == 0:
        raise InvalidArgumentError("cannot summarize a matrix without genes")
    data = matrix.data
    q1, median, q3 = np.percentile(data, [25, 50, 75], axis=0)
    return pd.DataFrame(
        {
            "min": data.min(axis=0),
            "q1": q1,
            "median": median,
            "q3": q3,
            "max": data.max(axis=0),
            "mean": data.mean(axis=0),
        },
        index=matrix.sample_ids,
    )


def expression_histogram(matrix: ExpressionMatrix, bins: int = 50) -> Histogram:
    """Histogram of every value in the matrix."""
    if bins < 1:
        raise InvalidArgumentError(f"bins must be >= 1, got {bins}")
    counts, edges = np.histogram(matrix.data.ravel(), bins=bins)
    return Histogram(counts=counts, edges=edges)


def covariate_summary(table: CovariateTable, column: str) -> pd.Series:
    """Counts per category of a categorical covariate, with a "<missing>" entry if any."""
    values = table.categorical(column)
    counts = values.fillna("<missing>").value_counts()
    return counts.sort_index()
