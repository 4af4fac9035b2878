"""
Association between sample clusters and a categorical clinical variable.

Cluster assignments are cross-tabulated against a covariate (e.g. ER
status) and tested with Pearson's chi-square test of independence.

Low expected counts:
    The chi-square distribution is an asymptotic approximation that
    degrades when expected cell counts fall below 5. That condition is
    reported (``low_expected_count`` flag, UserWarning and log warning)
    and never turned into an error.
"""

from __future__ import annotations

import logging
import warnings
from dataclasses import dataclass

import numpy as np
import pandas as pd
from scipy.stats import chi2_contingency

from erexplore.exceptions import AlignmentError, InvalidArgumentError

logger = logging.getLogger(__name__)

__all__ = [
    'ChiSquareResult',
    'build_contingency',
    'chi_square_test',
    'MIN_EXPECTED_COUNT',
]

MIN_EXPECTED_COUNT = 5.0


@dataclass(frozen=True)
class ChiSquareResult:
    """
    Outcome of a chi-square test of independence.

    Attributes:
        statistic: Pearson chi-square statistic
        p_value: Upper-tail probability at ``dof`` degrees of freedom
        dof: (rows - 1) * (cols - 1)
        expected: Expected counts under independence (same layout as the table)
        low_expected_count: True if any expected count < 5
        min_expected: Smallest expected count
    """
    statistic: float
    p_value: float
    dof: int
    expected: pd.DataFrame
    low_expected_count: bool
    min_expected: float

    def to_dict(self) -> dict:
        return {
            "statistic": self.statistic,
            "p_value": self.p_value,
            "dof": self.dof,
            "low_expected_count": self.low_expected_count,
            "min_expected": self.min_expected,
        }


def build_contingency(labels: pd.Series, cluster_ids: pd.Series) -> pd.DataFrame:
    """
    Cross-tabulate covariate labels against cluster ids.

    Both inputs are Series indexed by sample identifier and must cover the
    same samples in the same order.

    Returns:
        DataFrame (sorted distinct labels × sorted distinct cluster ids) of
        integer counts, zero-filled

    Raises:
        AlignmentError: If the two inputs do not share one sample axis
        InvalidArgumentError: If a label is missing or inputs are empty
    """
    labels = pd.Series(labels)
    cluster_ids = pd.Series(cluster_ids)
    if len(labels) != len(cluster_ids) or not labels.index.equals(cluster_ids.index):
        raise AlignmentError(
            "labels and cluster ids must share the same sample identifiers in the same order"
        )
    if len(labels) == 0:
        raise InvalidArgumentError("cannot build a contingency table from zero items")
    if labels.isna().any():
        missing = labels.index[labels.isna()].tolist()
        raise InvalidArgumentError(
            f"{len(missing)} items have no covariate label (first: {missing[:10]}); "
            "filter them out before testing"
        )
    if cluster_ids.isna().any():
        raise InvalidArgumentError("cluster ids contain missing values")

    row_values = sorted(labels.unique(), key=str)
    col_values = sorted(cluster_ids.unique())

    table = pd.crosstab(labels.values, cluster_ids.values)
    table = table.reindex(index=row_values, columns=col_values, fill_value=0)
    table.index.name = labels.name or "label"
    table.columns.name = cluster_ids.name or "cluster"
    return table.astype(int)


def chi_square_test(table: pd.DataFrame, correction: bool = False) -> ChiSquareResult:
    """
    Pearson chi-square test of independence.

    Args:
        table: Contingency table of counts
        correction: Apply Yates' continuity correction (2 × 2 tables only);
            off by default so the statistic is the plain Pearson chi-square

    Returns:
        ChiSquareResult

    Raises:
        InvalidArgumentError: Fewer than 2 rows or columns, negative counts,
            or an all-zero row/column (expected counts undefined)
    """
    counts = np.asarray(table, dtype=float)
    if counts.ndim != 2 or counts.shape[0] < 2 or counts.shape[1] < 2:
        raise InvalidArgumentError(
            f"chi-square test needs at least a 2 × 2 table, got shape {counts.shape}"
        )
    if np.any(counts < 0):
        raise InvalidArgumentError("contingency table contains negative counts")
    if np.any(counts.sum(axis=0) == 0) or np.any(counts.sum(axis=1) == 0):
        raise InvalidArgumentError(
            "contingency table has an all-zero row or column; drop it before testing"
        )

    statistic, p_value, dof, expected = chi2_contingency(counts, correction=correction)

    min_expected = float(expected.min())
    low = min_expected < MIN_EXPECTED_COUNT
    if low:
        n_low = int(np.sum(expected < MIN_EXPECTED_COUNT))
        message = (
            f"{n_low} of {expected.size} expected counts are below {MIN_EXPECTED_COUNT:g} "
            f"(min {min_expected:.2f}); the chi-square approximation may be unreliable"
        )
        warnings.warn(message, UserWarning)
        logger.warning(message)

    if isinstance(table, pd.DataFrame):
        expected_df = pd.DataFrame(expected, index=table.index, columns=table.columns)
    else:
        expected_df = pd.DataFrame(expected)

    return ChiSquareResult(
        statistic=float(statistic),
        p_value=float(p_value),
        dof=int(dof),
        expected=expected_df,
        low_expected_count=low,
        min_expected=min_expected,
    )
