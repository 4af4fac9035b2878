"""
I/O module for loading the analysis inputs and writing its results.

Key Functions:
    - load_expression_matrix: gene × sample count matrix (CSV/TSV)
    - load_covariate_table: sample × covariate clinical table
    - load_dataset: all three inputs in one call
    - write_*: atomic CSV/JSON writers for pipeline outputs

Design Philosophy:
    - Malformed inputs raise LoadError naming the file
    - Tables are returned unmodified; alignment happens in erexplore.core

Examples:
    >>> from erexplore.io import load_dataset
    >>> dataset = load_dataset("expr.tsv", "patient.tsv", "sample.tsv")
    >>> print(dataset.expression)
"""

from erexplore.io.formats import sniff_delimiter, delimiter_for_suffix
from erexplore.io.loaders import (
    LoadedDataset,
    load_expression_matrix,
    load_covariate_table,
    load_dataset,
)
from erexplore.io.writers import (
    write_expression_matrix,
    write_sample_key,
    write_cluster_assignments,
    write_embedding,
    write_contingency_table,
    write_run_summary,
)

__all__ = [
    'sniff_delimiter',
    'delimiter_for_suffix',
    'LoadedDataset',
    'load_expression_matrix',
    'load_covariate_table',
    'load_dataset',
    'write_expression_matrix',
    'write_sample_key',
    'write_cluster_assignments',
    'write_embedding',
    'write_contingency_table',
    'write_run_summary',
]
