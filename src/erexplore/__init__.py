"""
erexplore - Exploratory clustering of expression data against clinical covariates

Aligns an expression matrix with two clinical tables, selects and
standardizes high-variance genes, renders heatmaps, clusters genes and
samples, embeds samples with t-SNE and tests sample clusters against a
categorical clinical variable such as ER status.
"""

__version__ = "0.1.0"

from erexplore.core.matrix import ExpressionMatrix
from erexplore.core.covariates import CovariateTable
from erexplore.core.transform import Transform
from erexplore.exceptions import (
    ExploreError,
    LoadError,
    AlignmentError,
    InvalidArgumentError,
    DegenerateRowError,
    SubmissionError,
)

__all__ = [
    "ExpressionMatrix",
    "CovariateTable",
    "Transform",
    "ExploreError",
    "LoadError",
    "AlignmentError",
    "InvalidArgumentError",
    "DegenerateRowError",
    "SubmissionError",
]
