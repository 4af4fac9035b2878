"""
Core data structure for gene expression matrices.

ExpressionMatrix couples a dense numeric array with its gene and sample
identifiers and keeps them consistent through every subsetting and
reordering operation.

Biological Context:
    - Rows = genes (transcripts measured by RNA-seq or microarray)
    - Columns = samples (tumors, one expression profile each)
    - Values = raw counts on load, log2 or z-scores after transformation

    Clinical annotations live in separate CovariateTable objects. The
    alignment step is what guarantees the sample axis of an
    ExpressionMatrix and of every CovariateTable are identical.

Engineering Design:
    - Immutable: the array is flagged read-only and every operation
      returns a new instance. There is no backup/restore API; keep the
      loaded matrix around for as long as you need it.
    - Validated: the constructor checks shape and label consistency.

Examples:
    >>> import numpy as np
    >>> import pandas as pd
    >>> from erexplore.core.matrix import ExpressionMatrix
    >>>
    >>> matrix = ExpressionMatrix(
    ...     data=np.array([[10, 20], [30, 40]]),
    ...     gene_ids=pd.Index(["ESR1", "GATA3"]),
    ...     sample_ids=pd.Index(["TCGA-A1", "TCGA-A2"]),
    ... )
    >>> subset = matrix.select_samples(np.array([True, False]))
"""

from __future__ import annotations

from typing import Sequence

import numpy as np
import pandas as pd

from erexplore.exceptions import AlignmentError, InvalidArgumentError

__all__ = ['ExpressionMatrix']


def _frozen(data: np.ndarray) -> np.ndarray:
    """Return a float copy of ``data`` that cannot be written to."""
    arr = np.array(data, dtype=float, copy=True)
    arr.setflags(write=False)
    return arr


class ExpressionMatrix:
    """
    Immutable gene × sample expression matrix.

    Attributes:
        data: Numerical matrix (genes × samples), read-only
        gene_ids: Row identifiers (gene symbols, Ensembl IDs, ...)
        sample_ids: Column identifiers (sample barcodes)

    Shape Invariants:
        - data.shape[0] == len(gene_ids)
        - data.shape[1] == len(sample_ids)
        - gene_ids and sample_ids are unique
    """

    def __init__(
        self,
        data: np.ndarray,
        gene_ids: pd.Index,
        sample_ids: pd.Index,
    ):
        """
        Initialize ExpressionMatrix with validation.

        Args:
            data: Expression matrix (genes × samples)
            gene_ids: Row identifiers
            sample_ids: Column identifiers

        Raises:
            TypeError: If data or labels have the wrong type
            ValueError: If shapes are inconsistent or labels are duplicated
        """
        if not isinstance(data, np.ndarray):
            raise TypeError(f"data must be np.ndarray, got {type(data)}")
        if not isinstance(gene_ids, pd.Index):
            raise TypeError(f"gene_ids must be pd.Index, got {type(gene_ids)}")
        if not isinstance(sample_ids, pd.Index):
            raise TypeError(f"sample_ids must be pd.Index, got {type(sample_ids)}")

        if data.ndim != 2:
            raise ValueError(f"data must be 2D, got shape {data.shape}")

        n_genes, n_samples = data.shape
        if len(gene_ids) != n_genes:
            raise ValueError(
                f"gene_ids length ({len(gene_ids)}) must match data rows ({n_genes})"
            )
        if len(sample_ids) != n_samples:
            raise ValueError(
                f"sample_ids length ({len(sample_ids)}) must match data columns ({n_samples})"
            )
        if gene_ids.has_duplicates:
            raise ValueError("gene_ids must be unique")
        if sample_ids.has_duplicates:
            raise ValueError("sample_ids must be unique")

        self._data = _frozen(data)
        self._gene_ids = gene_ids
        self._sample_ids = sample_ids

    @classmethod
    def from_frame(cls, df: pd.DataFrame) -> ExpressionMatrix:
        """Build a matrix from a DataFrame indexed by gene with one column per sample."""
        return cls(
            data=df.to_numpy(dtype=float),
            gene_ids=pd.Index(df.index),
            sample_ids=pd.Index(df.columns),
        )

    @property
    def data(self) -> np.ndarray:
        """Expression matrix (genes × samples)."""
        return self._data

    @property
    def gene_ids(self) -> pd.Index:
        """Row identifiers."""
        return self._gene_ids

    @property
    def sample_ids(self) -> pd.Index:
        """Column identifiers."""
        return self._sample_ids

    @property
    def shape(self) -> tuple[int, int]:
        """Matrix dimensions (n_genes, n_samples)."""
        return self._data.shape

    @property
    def n_genes(self) -> int:
        return self._data.shape[0]

    @property
    def n_samples(self) -> int:
        return self._data.shape[1]

    def to_frame(self) -> pd.DataFrame:
        """Return a (writable) DataFrame copy, genes as index."""
        return pd.DataFrame(
            self._data.copy(), index=self._gene_ids, columns=self._sample_ids
        )

    def with_data(self, data: np.ndarray) -> ExpressionMatrix:
        """New matrix with the same labels and replacement values."""
        return ExpressionMatrix(data=data, gene_ids=self._gene_ids, sample_ids=self._sample_ids)

    def validate_counts(self) -> None:
        """
        Check the raw-count invariant (finite, non-negative).

        Raises:
            InvalidArgumentError: If any value is negative or not finite
        """
        if not np.all(np.isfinite(self._data)):
            raise InvalidArgumentError("expression matrix contains non-finite values")
        if np.any(self._data < 0):
            n_negative = int(np.sum(self._data < 0))
            raise InvalidArgumentError(
                f"expression matrix contains {n_negative} negative values; raw counts must be >= 0"
            )

    def select_samples(self, mask: np.ndarray | pd.Series) -> ExpressionMatrix:
        """
        Subset matrix by samples (columns) with a boolean mask.

        Raises:
            ValueError: If mask length doesn't match n_samples
        """
        if isinstance(mask, pd.Series):
            mask = mask.values
        mask = np.asarray(mask, dtype=bool)
        if len(mask) != self.n_samples:
            raise ValueError(
                f"mask length ({len(mask)}) must match n_samples ({self.n_samples})"
            )
        return ExpressionMatrix(
            data=self._data[:, mask],
            gene_ids=self._gene_ids,
            sample_ids=self._sample_ids[mask],
        )

    def select_genes(self, selector: np.ndarray | pd.Series | Sequence[int]) -> ExpressionMatrix:
        """
        Subset matrix by genes (rows).

        Accepts either a boolean mask of length n_genes or an array of
        integer row positions (kept in the given order).

        Raises:
            ValueError: If a boolean mask has the wrong length
        """
        if isinstance(selector, pd.Series):
            selector = selector.values
        selector = np.asarray(selector)
        if selector.dtype == bool:
            if len(selector) != self.n_genes:
                raise ValueError(
                    f"mask length ({len(selector)}) must match n_genes ({self.n_genes})"
                )
        else:
            selector = selector.astype(int)
        return ExpressionMatrix(
            data=self._data[selector, :],
            gene_ids=self._gene_ids[selector],
            sample_ids=self._sample_ids,
        )

    def reindex_samples(self, sample_key: pd.Index) -> ExpressionMatrix:
        """
        Reorder columns to exactly ``sample_key``.

        Raises:
            AlignmentError: If any identifier in ``sample_key`` is absent
        """
        positions = self._sample_ids.get_indexer(sample_key)
        if np.any(positions < 0):
            missing = list(sample_key[positions < 0][:10])
            raise AlignmentError(
                f"expression matrix lacks {int(np.sum(positions < 0))} samples of the "
                f"sample key (first: {missing})"
            )
        return ExpressionMatrix(
            data=self._data[:, positions],
            gene_ids=self._gene_ids,
            sample_ids=pd.Index(sample_key),
        )

    def reorder(self, gene_order=None, sample_order=None) -> ExpressionMatrix:
        """Reorder rows and/or columns by integer positions (e.g. dendrogram leaf order)."""
        data = self._data
        gene_ids = self._gene_ids
        sample_ids = self._sample_ids
        if gene_order is not None:
            gene_order = np.asarray(gene_order, dtype=int)
            data = data[gene_order, :]
            gene_ids = gene_ids[gene_order]
        if sample_order is not None:
            sample_order = np.asarray(sample_order, dtype=int)
            data = data[:, sample_order]
            sample_ids = sample_ids[sample_order]
        return ExpressionMatrix(data=data, gene_ids=gene_ids, sample_ids=sample_ids)

    def __repr__(self) -> str:
        if self.n_genes == 0 or self.n_samples == 0:
            return f"ExpressionMatrix({self.n_genes} genes × {self.n_samples} samples)"
        return (
            f"ExpressionMatrix({self.n_genes} genes × {self.n_samples} samples)\n"
            f"  Genes: {self.gene_ids[0]}...{self.gene_ids[-1]}\n"
            f"  Samples: {self.sample_ids[0]}...{self.sample_ids[-1]}"
        )

    def __str__(self) -> str:
        return self.__repr__()
