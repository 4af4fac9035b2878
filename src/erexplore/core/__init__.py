"""
Core data structures for the exploratory expression pipeline.

1. ExpressionMatrix: gene × sample values with their identifiers
2. CovariateTable: sample × clinical-variable annotations
3. align_tables: canonical sample ordering across all tables
4. Transform: immutable matrix transformations (log, row z-scores)

Design Philosophy:
    - Immutability: all operations return new instances
    - Fail fast: misaligned or degenerate inputs raise immediately

Examples:
    >>> from erexplore.core import align_tables, LogTransform
    >>> aligned = align_tables(expr, clinical_a, clinical_b)
    >>> logged = LogTransform().apply(aligned.expression)
"""

from erexplore.core.matrix import ExpressionMatrix
from erexplore.core.covariates import CovariateKind, CovariateTable
from erexplore.core.alignment import AlignedDataset, align_tables, compute_sample_key
from erexplore.core.transform import (
    Transform,
    LogTransform,
    RowStandardization,
    log_transform,
    standardize_rows,
)

__all__ = [
    'ExpressionMatrix',
    'CovariateKind',
    'CovariateTable',
    'AlignedDataset',
    'align_tables',
    'compute_sample_key',
    'Transform',
    'LogTransform',
    'RowStandardization',
    'log_transform',
    'standardize_rows',
]
