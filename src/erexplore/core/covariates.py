"""
Clinical covariate tables keyed by sample identifier.

A CovariateTable holds one row per sample and one column per clinical
variable (ER status, tumor stage, age, ...). Columns are classified as
categorical or numeric so downstream code knows whether a variable can be
cross-tabulated against cluster assignments.
"""

from __future__ import annotations

from enum import Enum

import numpy as np
import pandas as pd
from pandas.api.types import is_bool_dtype, is_numeric_dtype

from erexplore.exceptions import AlignmentError, InvalidArgumentError

__all__ = ['CovariateKind', 'CovariateTable']


class CovariateKind(Enum):
    """Type of a clinical variable."""
    CATEGORICAL = "categorical"
    NUMERIC = "numeric"


def _infer_kind(series: pd.Series) -> CovariateKind:
    if is_bool_dtype(series) or not is_numeric_dtype(series):
        return CovariateKind.CATEGORICAL
    return CovariateKind.NUMERIC


class CovariateTable:
    """
    Immutable sample × covariate table.

    Attributes:
        frame: Copy of the underlying DataFrame (index = sample identifiers)
        kinds: Mapping column name -> CovariateKind
        name: Label used in log and error messages (e.g. "clinical_a")

    Raises:
        TypeError: If ``frame`` is not a DataFrame
        ValueError: If sample identifiers are duplicated
    """

    def __init__(self, frame: pd.DataFrame, name: str = "covariates", kinds=None):
        if not isinstance(frame, pd.DataFrame):
            raise TypeError(f"frame must be pd.DataFrame, got {type(frame)}")
        if frame.index.has_duplicates:
            dups = list(frame.index[frame.index.duplicated()].unique()[:10])
            raise ValueError(f"{name}: duplicated sample identifiers {dups}")

        self._frame = frame.copy()
        self._name = name
        inferred = {col: _infer_kind(frame[col]) for col in frame.columns}
        if kinds:
            for col, kind in kinds.items():
                if col not in inferred:
                    raise InvalidArgumentError(f"{name}: unknown covariate '{col}'")
                inferred[col] = CovariateKind(kind)
        self._kinds = inferred

    @property
    def frame(self) -> pd.DataFrame:
        return self._frame.copy()

    @property
    def name(self) -> str:
        return self._name

    @property
    def sample_ids(self) -> pd.Index:
        return self._frame.index

    @property
    def columns(self) -> list[str]:
        return list(self._frame.columns)

    @property
    def kinds(self) -> dict[str, CovariateKind]:
        return dict(self._kinds)

    @property
    def n_samples(self) -> int:
        return len(self._frame)

    def kind(self, column: str) -> CovariateKind:
        if column not in self._kinds:
            raise InvalidArgumentError(
                f"{self._name}: unknown covariate '{column}'. "
                f"Available: {self.columns}"
            )
        return self._kinds[column]

    def column(self, column: str) -> pd.Series:
        """Return a copy of one covariate column (index = sample ids)."""
        self.kind(column)
        return self._frame[column].copy()

    def categorical(self, column: str) -> pd.Series:
        """
        Return a categorical column as strings, preserving missing values.

        Raises:
            InvalidArgumentError: If the column is numeric
        """
        if self.kind(column) is not CovariateKind.CATEGORICAL:
            raise InvalidArgumentError(
                f"{self._name}: covariate '{column}' is numeric, expected categorical"
            )
        series = self._frame[column]
        return series.where(series.isna(), series.astype(str))

    def reindex_samples(self, sample_key: pd.Index) -> CovariateTable:
        """
        Reorder rows to exactly ``sample_key``.

        Raises:
            AlignmentError: If any identifier in ``sample_key`` is absent
        """
        positions = self._frame.index.get_indexer(sample_key)
        if np.any(positions < 0):
            missing = list(sample_key[positions < 0][:10])
            raise AlignmentError(
                f"{self._name} lacks {int(np.sum(positions < 0))} samples of the "
                f"sample key (first: {missing})"
            )
        frame = self._frame.iloc[positions]
        frame.index = pd.Index(sample_key, name=self._frame.index.name)
        return CovariateTable(frame, name=self._name, kinds=self._kinds)

    def __repr__(self) -> str:
        kinds = ", ".join(f"{c}:{k.value}" for c, k in self._kinds.items())
        return f"CovariateTable({self._name}: {self.n_samples} samples; {kinds})"
