"""
Loaders for the expression matrix and the clinical tables.

Expected layouts:

Expression matrix (genes × samples)::

    gene_id,TCGA-A1-A0SB,TCGA-A1-A0SD
    ESR1,10533,212
    GATA3,8812,97

    - First column: gene identifiers (unique)
    - Remaining columns: one per sample (unique headers)
    - Values: raw counts, finite and >= 0
      (z-scored or log outputs written by erexplore are not valid input)

Clinical table (samples × covariates)::

    sample_id,er_status,stage
    TCGA-A1-A0SB,Positive,Stage II

    - One column holds sample identifiers (first column by default)
    - Remaining columns are covariates, categorical or numeric
    - Leading ``#`` lines (cBioPortal metadata) are skipped

Every structural problem raises LoadError naming the file; the loaders
never drop or repair rows on their own. Tables are returned exactly as
read; alignment is a separate step.

Examples:
    >>> from erexplore.io.loaders import load_dataset
    >>> dataset = load_dataset("expr.tsv", "clinical_patient.tsv", "clinical_sample.tsv")
    >>> print(dataset.expression)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from erexplore.core.covariates import CovariateTable
from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import LoadError
from erexplore.io.formats import delimiter_for_suffix, leading_comment_lines, sniff_delimiter

logger = logging.getLogger(__name__)

__all__ = [
    'LoadedDataset',
    'load_expression_matrix',
    'load_covariate_table',
    'load_dataset',
]


@dataclass(frozen=True)
class LoadedDataset:
    """The three input tables, unmodified."""
    expression: ExpressionMatrix
    clinical_a: CovariateTable
    clinical_b: CovariateTable


def _check_file(path: Path) -> Path:
    path = Path(path)
    if not path.exists():
        raise LoadError("file not found", path)
    if not path.is_file():
        raise LoadError("path is not a file", path)
    return path


def _resolve_delimiter(path: Path, delimiter: Optional[str]) -> str:
    if delimiter is not None:
        return delimiter
    return delimiter_for_suffix(path) or sniff_delimiter(path)


def _read_table(path: Path, delimiter: str, **kwargs) -> pd.DataFrame:
    try:
        return pd.read_csv(path, sep=delimiter, **kwargs)
    except pd.errors.EmptyDataError as e:
        raise LoadError("file is empty", path) from e
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError) as e:
        raise LoadError(f"malformed table ({e})", path) from e


def _duplicated_header(path: Path, delimiter: str) -> list[str]:
    header = _read_table(path, delimiter, header=None, nrows=1, dtype=str)
    values = pd.Index(header.iloc[0].tolist())
    return values[values.duplicated()].unique().tolist()


def load_expression_matrix(path: Path | str, delimiter: Optional[str] = None) -> ExpressionMatrix:
    """
    Load a gene × sample count matrix.

    Args:
        path: CSV/TSV file, first column = gene ids
        delimiter: Field separator (default: from suffix, else sniffed)

    Returns:
        ExpressionMatrix with the values as stored on disk

    Raises:
        LoadError: Missing/empty file, duplicate gene or sample ids,
            non-numeric, missing, infinite or negative values
    """
    path = _check_file(path)
    delimiter = _resolve_delimiter(path, delimiter)

    duplicated = _duplicated_header(path, delimiter)
    if duplicated:
        raise LoadError(f"duplicate sample columns {duplicated[:10]}", path)

    df = _read_table(path, delimiter, index_col=0)
    if df.shape[0] == 0:
        raise LoadError("expression matrix contains no genes (rows)", path)
    if df.shape[1] == 0:
        raise LoadError("expression matrix contains no samples (columns)", path)

    if df.index.isna().any():
        raise LoadError("expression matrix has rows without a gene identifier", path)
    if df.index.duplicated().any():
        dups = df.index[df.index.duplicated()].unique().tolist()
        raise LoadError(f"duplicate gene identifiers {dups[:10]}", path)

    numeric = df.apply(pd.to_numeric, errors="coerce")
    bad = numeric.isna() & df.notna()
    if bad.to_numpy().any():
        rows, cols = np.nonzero(bad.to_numpy())
        examples = [
            f"{df.index[r]}/{df.columns[c]}={df.iat[r, c]!r}" for r, c in zip(rows[:5], cols[:5])
        ]
        raise LoadError(f"non-numeric expression values ({', '.join(examples)})", path)

    data = numeric.to_numpy(dtype=float)
    if np.isnan(data).any():
        raise LoadError(f"{int(np.isnan(data).sum())} missing expression values", path)
    if np.isinf(data).any():
        raise LoadError(f"{int(np.isinf(data).sum())} infinite expression values", path)
    if (data < 0).any():
        raise LoadError(
            f"{int((data < 0).sum())} negative values; expected raw counts", path
        )

    matrix = ExpressionMatrix(
        data=data,
        gene_ids=pd.Index(df.index.astype(str), name="gene_id"),
        sample_ids=pd.Index(df.columns.astype(str), name="sample_id"),
    )
    logger.info(f"Loaded {matrix.n_genes} genes × {matrix.n_samples} samples from {path}")
    return matrix


def load_covariate_table(
    path: Path | str,
    sample_col: Optional[str] = None,
    name: Optional[str] = None,
    delimiter: Optional[str] = None,
) -> CovariateTable:
    """
    Load a sample × covariate clinical table.

    Args:
        path: CSV/TSV file
        sample_col: Column holding sample identifiers (default: first column)
        name: Table name used in messages (default: file stem)
        delimiter: Field separator (default: from suffix, else sniffed)

    Raises:
        LoadError: Missing/empty file, unknown sample column, missing or
            duplicated sample identifiers
    """
    path = _check_file(path)
    delimiter = _resolve_delimiter(path, delimiter)
    # cBioPortal metadata block above the header
    skip = leading_comment_lines(path)
    df = _read_table(path, delimiter, skiprows=skip)

    if df.shape[1] == 0:
        raise LoadError("clinical table has no columns", path)

    if sample_col is None:
        sample_col = df.columns[0]
    elif sample_col not in df.columns:
        raise LoadError(
            f"sample column '{sample_col}' not found (columns: {list(df.columns)[:10]})", path
        )

    if df[sample_col].isna().any():
        raise LoadError(f"{int(df[sample_col].isna().sum())} rows lack a sample identifier", path)

    df = df.set_index(df[sample_col].astype(str)).drop(columns=[sample_col])
    df.index.name = "sample_id"
    if df.index.duplicated().any():
        dups = df.index[df.index.duplicated()].unique().tolist()
        raise LoadError(f"duplicate sample identifiers {dups[:10]}", path)

    table = CovariateTable(df, name=name or path.stem)
    logger.info(f"Loaded {table.n_samples} samples × {len(table.columns)} covariates from {path}")
    return table


def load_dataset(
    expression_path: Path | str,
    clinical_a_path: Path | str,
    clinical_b_path: Path | str,
    sample_col_a: Optional[str] = None,
    sample_col_b: Optional[str] = None,
) -> LoadedDataset:
    """Load all three inputs; the clinical tables are named clinical_a / clinical_b."""
    return LoadedDataset(
        expression=load_expression_matrix(expression_path),
        clinical_a=load_covariate_table(clinical_a_path, sample_col=sample_col_a, name="clinical_a"),
        clinical_b=load_covariate_table(clinical_b_path, sample_col=sample_col_b, name="clinical_b"),
    )
