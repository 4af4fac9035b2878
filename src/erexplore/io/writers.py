"""
Writers for pipeline outputs.

Every table is written as CSV with its index as the first column, so the
files load directly in R, Excel or pandas. Writes are atomic (temp file +
rename); parent directories are created as needed.

Output conventions:
    - expression matrices: first column gene_id, one column per sample
    - cluster assignments: sample_id, cluster
    - embeddings: sample_id, tsne_1, tsne_2
    - contingency tables: covariate value × cluster id counts
    - run summary: JSON

Examples:
    >>> from erexplore.io.writers import write_expression_matrix
    >>> write_expression_matrix(result.top_genes, Path("out/top_genes.csv"))
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import pandas as pd

from erexplore.core.matrix import ExpressionMatrix
from erexplore.stats.embedding import Embedding
from erexplore.utils.fileio import atomic_write_frame, atomic_write_json

logger = logging.getLogger(__name__)

__all__ = [
    'write_expression_matrix',
    'write_sample_key',
    'write_cluster_assignments',
    'write_embedding',
    'write_contingency_table',
    'write_run_summary',
]


def write_expression_matrix(matrix: ExpressionMatrix, path: Path | str) -> Path:
    """
    Write an ExpressionMatrix to CSV.

    The layout matches load_expression_matrix, but only raw count matrices
    can be read back: log-transformed or z-scored outputs such as
    standardized.csv carry negative values, which the loader rejects.

    Raises:
        TypeError: If matrix is not an ExpressionMatrix
        ValueError: If matrix is empty
    """
    if not isinstance(matrix, ExpressionMatrix):
        raise TypeError(f"matrix must be ExpressionMatrix, got {type(matrix)}")
    if matrix.data.size == 0:
        raise ValueError("Cannot write empty matrix")

    path = Path(path)
    atomic_write_frame(path, matrix.to_frame())
    logger.info(f"Wrote {matrix.n_genes} × {matrix.n_samples} matrix to {path}")
    return path


def write_sample_key(sample_key: pd.Index, path: Path | str) -> Path:
    path = Path(path)
    frame = pd.DataFrame(index=pd.Index(sample_key, name="sample_id"))
    frame["position"] = range(len(sample_key))
    atomic_write_frame(path, frame)
    logger.info(f"Wrote sample key ({len(sample_key)} samples) to {path}")
    return path


def write_cluster_assignments(assignments: pd.Series, path: Path | str) -> Path:
    """Write a leaf label → cluster id series."""
    path = Path(path)
    frame = assignments.rename("cluster").to_frame()
    frame.index.name = frame.index.name or "sample_id"
    atomic_write_frame(path, frame)
    logger.info(
        f"Wrote {len(assignments)} cluster assignments "
        f"({assignments.nunique()} clusters) to {path}"
    )
    return path


def write_embedding(embedding: Embedding, path: Path | str) -> Path:
    path = Path(path)
    frame = embedding.coordinates.copy()
    frame.index.name = frame.index.name or "sample_id"
    atomic_write_frame(path, frame)
    logger.info(f"Wrote {len(frame)} embedding coordinates to {path}")
    return path


def write_contingency_table(table: pd.DataFrame, path: Path | str) -> Path:
    path = Path(path)
    atomic_write_frame(path, table)
    logger.info(f"Wrote {table.shape[0]} × {table.shape[1]} contingency table to {path}")
    return path


def write_run_summary(summary: dict[str, Any], path: Path | str) -> Path:
    """Write the run summary (parameters, counts, test results) as JSON."""
    path = Path(path)
    atomic_write_json(path, summary)
    logger.info(f"Wrote run summary to {path}")
    return path
