"""
Sample alignment between an expression matrix and clinical tables.

Expression data and clinical annotations are produced by different
processes and rarely cover exactly the same samples, in the same order.
Every downstream plot and statistic assumes column j of the expression
matrix and row j of each clinical table describe the same tumor, so this
step establishes one canonical ordering (the sample key) and reindexes all
tables to it.

Contract:
    sample_key = sorted(samples(expr) ∩ samples(clin_a) ∩ samples(clin_b))

    - Empty intersection -> AlignmentError
    - Intersection smaller than ``min_samples`` -> AlignmentError
    - After reindexing, every table is re-checked against the key
    - Samples dropped from each table are reported, never discarded silently

Examples:
    >>> aligned = align_tables(expr, clinical_a, clinical_b, min_samples=50)
    >>> assert aligned.expression.sample_ids.equals(aligned.sample_key)
    >>> print(aligned.summary())
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

import pandas as pd

from erexplore.core.covariates import CovariateTable
from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import AlignmentError, InvalidArgumentError

logger = logging.getLogger(__name__)

__all__ = ['AlignedDataset', 'compute_sample_key', 'align_tables']


@dataclass(frozen=True)
class AlignedDataset:
    """
    Expression matrix and two clinical tables sharing one sample axis.

    Attributes:
        expression: ExpressionMatrix with columns == sample_key
        clinical_a: CovariateTable with rows == sample_key
        clinical_b: CovariateTable with rows == sample_key
        sample_key: Sorted common sample identifiers
        dropped: Per-table list of samples absent from the key
    """
    expression: ExpressionMatrix
    clinical_a: CovariateTable
    clinical_b: CovariateTable
    sample_key: pd.Index
    dropped: dict[str, list[str]] = field(default_factory=dict)

    @property
    def n_samples(self) -> int:
        return len(self.sample_key)

    def summary(self) -> str:
        lines = [f"AlignedDataset({self.n_samples} samples)"]
        for table, samples in self.dropped.items():
            lines.append(f"  {table}: dropped {len(samples)}")
        return "\n".join(lines)


def compute_sample_key(
    expression: ExpressionMatrix,
    clinical_a: CovariateTable,
    clinical_b: CovariateTable,
) -> pd.Index:
    """Sorted intersection of the three sample axes."""
    common = (
        set(expression.sample_ids)
        & set(clinical_a.sample_ids)
        & set(clinical_b.sample_ids)
    )
    return pd.Index(sorted(common, key=str), name="sample_id")


def _check_axis(name: str, axis: pd.Index, sample_key: pd.Index) -> None:
    if len(axis) != len(sample_key) or not axis.equals(sample_key):
        raise AlignmentError(
            f"{name} sample axis does not match the sample key after reindexing"
        )


def align_tables(
    expression: ExpressionMatrix,
    clinical_a: CovariateTable,
    clinical_b: CovariateTable,
    min_samples: int = 1,
) -> AlignedDataset:
    """
    Reindex all three tables to their sorted common sample set.

    Args:
        expression: Gene × sample expression matrix
        clinical_a: First clinical table (rows = samples)
        clinical_b: Second clinical table (rows = samples)
        min_samples: Minimum acceptable size of the common sample set

    Returns:
        AlignedDataset whose tables all expose ``sample_key`` in order

    Raises:
        InvalidArgumentError: If min_samples < 1
        AlignmentError: If the intersection is empty, below min_samples,
            or any table fails the post-reindex check
    """
    if min_samples < 1:
        raise InvalidArgumentError(f"min_samples must be >= 1, got {min_samples}")

    sample_key = compute_sample_key(expression, clinical_a, clinical_b)

    if len(sample_key) == 0:
        raise AlignmentError(
            "sample intersection is empty: expression and clinical tables share no "
            f"sample identifiers ({expression.n_samples} expression, "
            f"{clinical_a.n_samples} {clinical_a.name}, {clinical_b.n_samples} {clinical_b.name})"
        )
    if len(sample_key) < min_samples:
        raise AlignmentError(
            f"sample set below minimum size: {len(sample_key)} common samples, "
            f"min_samples={min_samples}"
        )

    key_set = set(sample_key)
    dropped = {
        "expression": [s for s in expression.sample_ids if s not in key_set],
        clinical_a.name: [s for s in clinical_a.sample_ids if s not in key_set],
        clinical_b.name: [s for s in clinical_b.sample_ids if s not in key_set],
    }
    for table, samples in dropped.items():
        if samples:
            logger.warning(
                f"{table}: {len(samples)} samples not present in all tables, "
                f"excluded (first: {samples[:5]})"
            )

    aligned_expression = expression.reindex_samples(sample_key)
    aligned_a = clinical_a.reindex_samples(sample_key)
    aligned_b = clinical_b.reindex_samples(sample_key)

    _check_axis("expression", aligned_expression.sample_ids, sample_key)
    _check_axis(clinical_a.name, aligned_a.sample_ids, sample_key)
    _check_axis(clinical_b.name, aligned_b.sample_ids, sample_key)

    logger.info(f"Aligned {len(sample_key)} samples across expression and clinical tables")

    return AlignedDataset(
        expression=aligned_expression,
        clinical_a=aligned_a,
        clinical_b=aligned_b,
        sample_key=sample_key,
        dropped=dropped,
    )
