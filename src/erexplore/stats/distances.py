"""
Pairwise distances over genes or samples.

Supported metrics form a closed set. Values coming from configuration or
the command line are parsed with ``DistanceMetric.parse`` and anything
unrecognized is rejected rather than mapped to a default.

    pearson    1 - Pearson r, range [0, 2]; zero-variance vectors are an error
    euclidean  L2 distance
    manhattan  L1 (city block) distance
    minkowski  Lp distance, p must be given explicitly (p >= 1)

Distances are computed with ``scipy.spatial.distance.pdist`` and returned
as a validated square DistanceMatrix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.spatial.distance import pdist, squareform

from erexplore.core.matrix import ExpressionMatrix
from erexplore.core.transform import degenerate_rows
from erexplore.exceptions import DegenerateRowError, InvalidArgumentError

logger = logging.getLogger(__name__)

__all__ = [
    'DistanceMetric',
    'DistanceMatrix',
    'pairwise_distances',
    'matrix_distances',
]

SYMMETRY_TOL = 1e-8


class DistanceMetric(Enum):
    """Distance metrics accepted by the clustering engine."""
    PEARSON = "pearson"
    EUCLIDEAN = "euclidean"
    MANHATTAN = "manhattan"
    MINKOWSKI = "minkowski"

    @classmethod
    def parse(cls, value) -> DistanceMetric:
        """
        Convert a user-supplied value to a DistanceMetric.

        Raises:
            InvalidArgumentError: If the value is not a known metric
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise InvalidArgumentError(
            f"Unknown distance metric {value!r}. "
            f"Choose from: {', '.join(m.value for m in cls)}"
        )


@dataclass(frozen=True)
class DistanceMatrix:
    """
    Symmetric, zero-diagonal distance matrix with item labels.

    Attributes:
        values: Square array (n × n)
        labels: Item identifiers (genes or samples), length n
        metric: Metric name that produced the values ("precomputed" if external)
    """
    values: np.ndarray
    labels: pd.Index
    metric: str = "precomputed"

    def __post_init__(self):
        values = np.asarray(self.values, dtype=float)
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise InvalidArgumentError(
                f"distance matrix must be square, got shape {values.shape}"
            )
        if len(self.labels) != values.shape[0]:
            raise InvalidArgumentError(
                f"labels length ({len(self.labels)}) must match matrix size ({values.shape[0]})"
            )
        if not np.all(np.isfinite(values)):
            raise InvalidArgumentError("distance matrix contains non-finite values")
        if not np.allclose(values, values.T, atol=SYMMETRY_TOL):
            raise InvalidArgumentError("distance matrix must be symmetric")
        if np.any(np.abs(np.diag(values)) > SYMMETRY_TOL):
            raise InvalidArgumentError("distance matrix must have a zero diagonal")
        if np.any(values < -SYMMETRY_TOL):
            raise InvalidArgumentError("distance matrix contains negative distances")

        values = values.copy()
        np.fill_diagonal(values, 0.0)
        values.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "labels", pd.Index(self.labels))

    @classmethod
    def from_frame(cls, df: pd.DataFrame, metric: str = "precomputed") -> DistanceMatrix:
        """Build from a square DataFrame whose index equals its columns."""
        if not df.index.equals(df.columns):
            raise InvalidArgumentError("distance frame index and columns must match")
        return cls(values=df.to_numpy(dtype=float), labels=pd.Index(df.index), metric=metric)

    @property
    def n_items(self) -> int:
        return self.values.shape[0]

    def condensed(self) -> np.ndarray:
        """Upper-triangle vector in SciPy's condensed layout."""
        return squareform(self.values, checks=False)

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame(self.values.copy(), index=self.labels, columns=self.labels)


def pairwise_distances(
    data: np.ndarray,
    metric: DistanceMetric | str,
    p: Optional[float] = None,
    labels: Optional[Sequence] = None,
) -> DistanceMatrix:
    """
    Distances between the rows of ``data``.

    Args:
        data: Matrix whose rows are the items to compare
        metric: DistanceMetric or its name
        p: Minkowski power (required for minkowski, ignored otherwise)
        labels: Row identifiers (default: 0..n-1)

    Returns:
        DistanceMatrix over rows

    Raises:
        InvalidArgumentError: Unknown metric, missing/invalid p, bad shape
        DegenerateRowError: Pearson distance with a zero-variance row
    """
    metric = DistanceMetric.parse(metric)
    data = np.asarray(data, dtype=float)
    if data.ndim != 2:
        raise InvalidArgumentError(f"expected a 2D matrix, got shape {data.shape}")
    if data.shape[0] < 1:
        raise InvalidArgumentError("cannot compute distances over zero items")
    if not np.all(np.isfinite(data)):
        raise InvalidArgumentError("input contains non-finite values")
    labels = pd.Index(labels if labels is not None else range(data.shape[0]))

    if metric is DistanceMetric.PEARSON:
        degenerate = degenerate_rows(data)
        if degenerate.any():
            bad = labels[degenerate].tolist()
            raise DegenerateRowError(
                f"Pearson distance is undefined for {len(bad)} zero-variance vectors "
                f"(first: {bad[:10]})",
                labels=bad,
            )
        condensed = pdist(data, metric="correlation")
    elif metric is DistanceMetric.EUCLIDEAN:
        condensed = pdist(data, metric="euclidean")
    elif metric is DistanceMetric.MANHATTAN:
        condensed = pdist(data, metric="cityblock")
    else:
        if p is None:
            raise InvalidArgumentError("minkowski distance requires an explicit power p")
        if not p >= 1:
            raise InvalidArgumentError(f"minkowski power p must be >= 1, got {p}")
        condensed = pdist(data, metric="minkowski", p=float(p))

    if metric is DistanceMetric.PEARSON:
        # Rounding can push 1 - r slightly outside [0, 2]
        condensed = np.clip(condensed, 0.0, 2.0)

    if data.shape[0] == 1:
        values = np.zeros((1, 1))
    else:
        values = squareform(condensed, checks=False)
    return DistanceMatrix(values=values, labels=labels, metric=metric.value)


def matrix_distances(
    matrix: ExpressionMatrix,
    metric: DistanceMetric | str,
    axis: Literal["samples", "genes"] = "samples",
    p: Optional[float] = None,
) -> DistanceMatrix:
    """
    Distances between samples (columns) or genes (rows) of an ExpressionMatrix.

    Raises:
        InvalidArgumentError: If axis is not "samples" or "genes"
    """
    if axis == "samples":
        return pairwise_distances(matrix.data.T, metric, p=p, labels=matrix.sample_ids)
    if axis == "genes":
        return pairwise_distances(matrix.data, metric, p=p, labels=matrix.gene_ids)
    raise InvalidArgumentError(f"axis must be 'samples' or 'genes', got {axis!r}")
