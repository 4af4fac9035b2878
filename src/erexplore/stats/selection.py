"""
Variance-based gene selection.

Rendering or clustering all ~20,000 genes is impractical and most of them
carry little between-sample signal. The most variable genes are kept for
heatmaps and clustering.

Variance convention:
    Sample variance (ddof=1, divide by n-1). Ties are broken by original
    row order (stable sort), so the result is reproducible.
"""

from __future__ import annotations

import logging

import numpy as np

from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

__all__ = ['row_variances', 'select_top_variance', 'top_variance_genes']


def row_variances(data: np.ndarray) -> np.ndarray:
    """Per-row sample variance (ddof=1)."""
    data = np.asarray(data, dtype=float)
    if data.ndim != 2:
        raise InvalidArgumentError(f"expected a 2D matrix, got shape {data.shape}")
    if data.shape[1] < 2:
        raise InvalidArgumentError("sample variance needs at least 2 columns")
    return np.var(data, axis=1, ddof=1)


def select_top_variance(data: np.ndarray, k: int) -> np.ndarray:
    """
    Indices of the k rows with the highest sample variance.

    Args:
        data: Matrix (rows = genes)
        k: Number of rows to keep, 1 <= k <= n_rows

    Returns:
        Integer array of length k, ordered by descending variance

    Raises:
        InvalidArgumentError: If k is out of range
    """
    data = np.asarray(data, dtype=float)
    n_rows = data.shape[0] if data.ndim == 2 else 0
    if k < 1:
        raise InvalidArgumentError(f"k must be >= 1, got {k}")
    if k > n_rows:
        raise InvalidArgumentError(f"k ({k}) exceeds row count ({n_rows})")

    variances = row_variances(data)
    # Stable sort on negated variance keeps original order among ties
    order = np.argsort(-variances, kind="stable")
    return order[:k]


def top_variance_genes(matrix: ExpressionMatrix, k: int) -> ExpressionMatrix:
    """Subset ``matrix`` to its k most variable genes (descending variance)."""
    indices = select_top_variance(matrix.data, k)
    logger.info(f"Selected top {k} of {matrix.n_genes} genes by variance")
    return matrix.select_genes(indices)
