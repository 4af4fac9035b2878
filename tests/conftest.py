"""
Pytest configuration and shared fixtures.

Provides synthetic expression matrices and clinical tables shaped like a
TCGA breast cancer download: a raw count matrix (genes × samples), a
patient-level table carrying ER status and a sample-level table.
"""

import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest
from pathlib import Path

from erexplore.core.covariates import CovariateTable
from erexplore.core.matrix import ExpressionMatrix


def generate_synthetic_expression_matrix(
    n_genes: int,
    n_samples: int,
    n_informative: int = 10,
    effect_size: float = 3.0,
    seed: int = 42,
) -> tuple[ExpressionMatrix, np.ndarray]:
    """
    Generate a raw count matrix with two planted sample groups.

    Args:
        n_genes: Number of genes
        n_samples: Number of samples
        n_informative: Genes whose mean differs between the groups
        effect_size: log2 fold change of informative genes
        seed: Random seed for reproducibility

    Returns:
        (matrix, group) where ``group`` is a boolean array marking the
        first group (half of the samples, interleaved)

    Design:
        - Per-gene baseline means are log-normal (realistic for RNA-seq)
        - Counts are Poisson around the per-sample mean, so no gene has
          zero variance
        - The first ``n_informative`` genes are up in the first group
    """
    rng = np.random.RandomState(seed)

    base = rng.lognormal(mean=5, sigma=1, size=(n_genes, 1))
    group = np.arange(n_samples) % 2 == 0
    log_fc = np.zeros((n_genes, n_samples))
    log_fc[:n_informative, group] = effect_size
    means = base * np.power(2.0, log_fc) * rng.uniform(0.8, 1.2, size=(1, n_samples))
    data = rng.poisson(means).astype(float)

    gene_ids = pd.Index([f"GENE_{i:04d}" for i in range(n_genes)], name="gene_id")
    sample_ids = pd.Index(
        [f"TCGA-{i // 100:02d}-{i:04d}-01" for i in range(n_samples)], name="sample_id"
    )
    return ExpressionMatrix(data=data, gene_ids=gene_ids, sample_ids=sample_ids), group


def generate_clinical_tables(
    sample_ids: pd.Index,
    group: np.ndarray,
    n_missing_status: int = 0,
    seed: int = 42,
) -> tuple[CovariateTable, CovariateTable]:
    """
    Patient (ER status, age) and sample (sample type) tables.

    ER status follows ``group`` ("Positive" for the first group); the
    first ``n_missing_status`` samples get no status.
    """
    rng = np.random.RandomState(seed)
    status = np.where(group, "Positive", "Negative").astype(object)
    status[:n_missing_status] = np.nan

    patient = pd.DataFrame(
        {
            "ER_STATUS_BY_IHC": status,
            "AGE": rng.randint(30, 90, size=len(sample_ids)),
        },
        index=pd.Index(sample_ids, name="sample_id"),
    )
    sample = pd.DataFrame(
        {"SAMPLE_TYPE": ["Primary"] * len(sample_ids)},
        index=pd.Index(sample_ids, name="sample_id"),
    )
    return (
        CovariateTable(patient, name="clinical_a"),
        CovariateTable(sample, name="clinical_b"),
    )


def make_two_block_matrix(noise: float = 0.1, seed: int = 0) -> ExpressionMatrix:
    """
    10 genes × 20 samples with two planted sample blocks.

    Samples 0-9 have genes 0-4 high and genes 5-9 low; samples 10-19 the
    reverse.
    """
    rng = np.random.RandomState(seed)
    data = np.zeros((10, 20))
    data[:5, :10] = 10.0
    data[5:, 10:] = 10.0
    data += rng.normal(0, noise, size=data.shape)
    return ExpressionMatrix(
        data=data,
        gene_ids=pd.Index([f"G{i}" for i in range(10)]),
        sample_ids=pd.Index([f"S{i:02d}" for i in range(20)]),
    )


@pytest.fixture
def small_dataset():
    """60 genes × 30 samples with matching clinical tables."""
    matrix, group = generate_synthetic_expression_matrix(n_genes=60, n_samples=30, seed=42)
    clinical_a, clinical_b = generate_clinical_tables(matrix.sample_ids, group)
    return matrix, clinical_a, clinical_b, group


@pytest.fixture
def two_block_matrix():
    return make_two_block_matrix()


def save_expression_csv(matrix: ExpressionMatrix, path: Path, sep: str = ","):
    """Write an ExpressionMatrix the way the loaders expect it."""
    df = matrix.to_frame()
    df.index.name = "gene_id"
    df.to_csv(path, sep=sep)


def save_covariates_csv(table: CovariateTable, path: Path, sep: str = ","):
    frame = table.frame
    frame.index.name = "sample_id"
    frame.reset_index().to_csv(path, sep=sep, index=False)


@pytest.fixture
def dataset_files(tmp_path, small_dataset):
    """The small dataset written to disk (TSV expression, CSV clinical)."""
    matrix, clinical_a, clinical_b, _ = small_dataset
    files = {
        "expression": tmp_path / "expression.tsv",
        "clinical_a": tmp_path / "clinical_patient.csv",
        "clinical_b": tmp_path / "clinical_sample.csv",
    }
    save_expression_csv(matrix, files["expression"], sep="\t")
    save_covariates_csv(clinical_a, files["clinical_a"])
    save_covariates_csv(clinical_b, files["clinical_b"])
    return files
