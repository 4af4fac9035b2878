"""
Immutable expression transformations.

Raw RNA-seq counts are heavily right-skewed; exploratory plots and
distances are computed on log2 values, and heatmaps on row-standardized
(z-scored) values so every gene uses the same color scale.

Two layers are provided:

- Pure functions on arrays (``log_transform``, ``standardize_rows``)
- ``Transform`` subclasses operating on ExpressionMatrix, carrying a name
  and parameters for provenance logging

Neither layer modifies its input.

Degenerate rows:
    ``standardize_rows`` divides by the row standard deviation. Rows with
    zero variance raise DegenerateRowError by default. Passing
    ``on_degenerate="drop"`` removes them instead; the matrix-level
    transform logs which genes were removed.

Examples:
    >>> from erexplore.core.transform import LogTransform, RowStandardization
    >>> logged = LogTransform(pseudocount=1.0).apply(raw)
    >>> scaled = RowStandardization().apply(logged)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Literal

import numpy as np

from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import DegenerateRowError, InvalidArgumentError

logger = logging.getLogger(__name__)

__all__ = [
    'Transform',
    'LogTransform',
    'RowStandardization',
    'log_transform',
    'standardize_rows',
    'degenerate_rows',
]

VARIANCE_TOL = 1e-12


def log_transform(data: np.ndarray, pseudocount: float = 1.0) -> np.ndarray:
    """
    log2(X + pseudocount).

    Args:
        data: Non-negative raw values
        pseudocount: Strictly positive offset so zeros map to finite values

    Returns:
        New array of the same shape

    Raises:
        InvalidArgumentError: If pseudocount <= 0 or data has negative values
    """
    if not pseudocount > 0:
        raise InvalidArgumentError(f"pseudocount must be > 0, got {pseudocount}")
    data = np.asarray(data, dtype=float)
    if np.any(data < 0):
        raise InvalidArgumentError(
            "log_transform expects non-negative raw values; "
            f"found {int(np.sum(data < 0))} negative entries"
        )
    return np.log2(data + pseudocount)


def degenerate_rows(data: np.ndarray) -> np.ndarray:
    """Boolean mask of rows whose sample variance is zero (within tolerance)."""
    data = np.asarray(data, dtype=float)
    if data.shape[1] < 2:
        return np.ones(data.shape[0], dtype=bool)
    return np.var(data, axis=1, ddof=1) <= VARIANCE_TOL


def standardize_rows(
    data: np.ndarray,
    on_degenerate: Literal["raise", "drop"] = "raise",
) -> tuple[np.ndarray, np.ndarray]:
    """
    Row-wise z-scores: (x - row mean) / row standard deviation (ddof=1).

    Args:
        data: Matrix (rows are standardized independently)
        on_degenerate: "raise" to fail on zero-variance rows, "drop" to
            remove them from the output

    Returns:
        (standardized, kept) where ``kept`` is a boolean mask of input rows
        present in the output

    Raises:
        DegenerateRowError: If a zero-variance row is found and
            on_degenerate == "raise"
        InvalidArgumentError: For an unknown on_degenerate value
    """
    if on_degenerate not in ("raise", "drop"):
        raise InvalidArgumentError(
            f"on_degenerate must be 'raise' or 'drop', got {on_degenerate!r}"
        )
    data = np.asarray(data, dtype=float)
    degenerate = degenerate_rows(data)

    if degenerate.any() and on_degenerate == "raise":
        positions = np.flatnonzero(degenerate)
        raise DegenerateRowError(
            f"{len(positions)} rows have zero variance and cannot be standardized "
            f"(row positions: {positions[:10].tolist()})",
            labels=positions.tolist(),
        )

    kept = ~degenerate
    rows = data[kept]
    mean = rows.mean(axis=1, keepdims=True)
    std = rows.std(axis=1, ddof=1, keepdims=True)
    return (rows - mean) / std, kept


class Transform(ABC):
    """
    Base class for ExpressionMatrix transformations.

    Subclasses implement ``apply`` and never modify the input matrix.

    Attributes:
        name: Human-readable transformation name
        params: Parameters used, for logging and run summaries
        timestamp: When this transform instance was created
    """

    def __init__(self, name: str, params: dict[str, Any]) -> None:
        self.name = name
        self.params = params
        self.timestamp = datetime.now()

    @abstractmethod
    def apply(self, matrix: ExpressionMatrix) -> ExpressionMatrix:
        """Return a new, transformed matrix."""
        pass

    def validate(self, matrix: ExpressionMatrix) -> list[str]:
        """
        Check preconditions before applying the transformation.

        Returns:
            List of error messages (empty list = valid)
        """
        errors: list[str] = []
        if matrix.data.size == 0:
            errors.append("Cannot process empty matrix")
        return errors

    def __repr__(self) -> str:
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"


class LogTransform(Transform):
    """log2(X + pseudocount) applied to a raw count matrix."""

    def __init__(self, pseudocount: float = 1.0):
        if not pseudocount > 0:
            raise InvalidArgumentError(f"pseudocount must be > 0, got {pseudocount}")
        super().__init__(name="LogTransform", params={"pseudocount": pseudocount})
        self.pseudocount = pseudocount

    def validate(self, matrix: ExpressionMatrix) -> list[str]:
        errors = super().validate(matrix)
        if np.any(matrix.data < 0):
            errors.append("Matrix contains negative values - expected raw counts")
        return errors

    def apply(self, matrix: ExpressionMatrix) -> ExpressionMatrix:
        logger.info(f"Applying {self!r} to {matrix.n_genes} genes × {matrix.n_samples} samples")
        return matrix.with_data(log_transform(matrix.data, self.pseudocount))


class RowStandardization(Transform):
    """
    Per-gene z-scoring for heatmap display.

    Args:
        on_degenerate: "raise" (default) or "drop" zero-variance genes
    """

    def __init__(self, on_degenerate: Literal["raise", "drop"] = "raise"):
        if on_degenerate not in ("raise", "drop"):
            raise InvalidArgumentError(
                f"on_degenerate must be 'raise' or 'drop', got {on_degenerate!r}"
            )
        super().__init__(name="RowStandardization", params={"on_degenerate": on_degenerate})
        self.on_degenerate = on_degenerate

    def validate(self, matrix: ExpressionMatrix) -> list[str]:
        errors = super().validate(matrix)
        if matrix.n_samples < 2:
            errors.append("Need at least 2 samples to compute a row standard deviation")
        return errors

    def apply(self, matrix: ExpressionMatrix) -> ExpressionMatrix:
        degenerate = degenerate_rows(matrix.data)
        if degenerate.any():
            genes = matrix.gene_ids[degenerate].tolist()
            if self.on_degenerate == "raise":
                raise DegenerateRowError(
                    f"{len(genes)} genes have zero variance and cannot be standardized "
                    f"(first: {genes[:10]})",
                    labels=genes,
                )
            logger.warning(
                f"Dropping {len(genes)} zero-variance genes before standardization "
                f"(first: {genes[:10]})"
            )

        scaled, kept = standardize_rows(matrix.data, on_degenerate="drop")
        return ExpressionMatrix(
            data=scaled,
            gene_ids=matrix.gene_ids[kept],
            sample_ids=matrix.sample_ids,
        )
