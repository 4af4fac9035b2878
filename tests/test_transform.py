"""
Tests for the log transform, row standardization and top-variance selection.
"""

import numpy as np
import pandas as pd
import pytest

from erexplore.core.matrix import ExpressionMatrix
from erexplore.core.transform import (
    LogTransform,
    RowStandardization,
    degenerate_rows,
    log_transform,
    standardize_rows,
)
from erexplore.exceptions import DegenerateRowError, InvalidArgumentError
from erexplore.stats.selection import row_variances, select_top_variance, top_variance_genes


class TestLogTransform:
    """log2(X + pseudocount)."""

    def test_round_trip(self):
        rng = np.random.RandomState(0)
        data = rng.poisson(50, size=(20, 8)).astype(float)
        data[0, 0] = 0.0

        logged = log_transform(data, pseudocount=1.0)

        np.testing.assert_allclose(np.power(2.0, logged) - 1.0, data, atol=1e-9)

    def test_zero_maps_to_finite(self):
        logged = log_transform(np.zeros((2, 2)), pseudocount=0.5)
        assert np.all(np.isfinite(logged))
        np.testing.assert_allclose(logged, -1.0)

    @pytest.mark.parametrize("pseudocount", [0.0, -1.0])
    def test_non_positive_pseudocount(self, pseudocount):
        with pytest.raises(InvalidArgumentError, match="pseudocount must be > 0"):
            log_transform(np.ones((2, 2)), pseudocount=pseudocount)

    def test_negative_values_rejected(self):
        with pytest.raises(InvalidArgumentError, match="non-negative"):
            log_transform(np.array([[1.0, -2.0]]))

    def test_transform_class_keeps_labels(self, small_dataset):
        matrix, _, _, _ = small_dataset
        logged = LogTransform(pseudocount=1.0).apply(matrix)

        assert logged.gene_ids.equals(matrix.gene_ids)
        assert logged.sample_ids.equals(matrix.sample_ids)
        np.testing.assert_allclose(logged.data, np.log2(matrix.data + 1.0))

    def test_repr_records_params(self):
        assert repr(LogTransform(pseudocount=2.0)) == "LogTransform(pseudocount=2.0)"


class TestStandardizeRows:
    """Row z-scores with sample standard deviation."""

    def test_mean_zero_variance_one(self):
        rng = np.random.RandomState(1)
        data = rng.normal(5, 3, size=(15, 12))

        scaled, kept = standardize_rows(data)

        assert kept.all()
        np.testing.assert_allclose(scaled.mean(axis=1), 0.0, atol=1e-12)
        np.testing.assert_allclose(scaled.var(axis=1, ddof=1), 1.0, atol=1e-12)

    def test_degenerate_row_raises_by_default(self):
        data = np.array([[1.0, 2.0, 3.0], [4.0, 4.0, 4.0]])
        with pytest.raises(DegenerateRowError) as exc_info:
            standardize_rows(data)
        assert exc_info.value.labels == [1]

    def test_degenerate_row_dropped(self):
        data = np.array([[1.0, 2.0, 3.0], [4.0, 4.0, 4.0], [0.0, 1.0, 0.0]])

        scaled, kept = standardize_rows(data, on_degenerate="drop")

        assert kept.tolist() == [True, False, True]
        assert scaled.shape == (2, 3)

    def test_single_column_is_degenerate(self):
        assert degenerate_rows(np.ones((3, 1))).all()

    def test_unknown_policy(self):
        with pytest.raises(InvalidArgumentError, match="on_degenerate"):
            standardize_rows(np.ones((2, 3)), on_degenerate="skip")

    def test_class_names_degenerate_genes(self):
        matrix = ExpressionMatrix(
            np.array([[1.0, 2.0, 3.0], [5.0, 5.0, 5.0]]),
            pd.Index(["ESR1", "FLAT"]),
            pd.Index(["a", "b", "c"]),
        )
        with pytest.raises(DegenerateRowError, match="zero variance") as exc_info:
            RowStandardization().apply(matrix)
        assert exc_info.value.labels == ["FLAT"]

    def test_class_drop_keeps_gene_labels(self):
        matrix = ExpressionMatrix(
            np.array([[1.0, 2.0, 3.0], [5.0, 5.0, 5.0], [3.0, 1.0, 2.0]]),
            pd.Index(["ESR1", "FLAT", "GATA3"]),
            pd.Index(["a", "b", "c"]),
        )
        scaled = RowStandardization(on_degenerate="drop").apply(matrix)
        assert list(scaled.gene_ids) == ["ESR1", "GATA3"]

    def test_validate_needs_two_samples(self):
        matrix = ExpressionMatrix(np.ones((2, 1)), pd.Index(["a", "b"]), pd.Index(["s"]))
        assert RowStandardization().validate(matrix)


class TestTopVariance:
    """Gene selection by sample variance."""

    def test_uses_sample_variance(self):
        data = np.array([[1.0, 2.0, 3.0, 4.0]])
        np.testing.assert_allclose(row_variances(data), [np.var(data, ddof=1)])

    def test_returns_k_highest(self):
        rng = np.random.RandomState(3)
        data = rng.normal(0, 1, size=(50, 10)) * rng.uniform(0.1, 5, size=(50, 1))

        selected = select_top_variance(data, 7)

        variances = row_variances(data)
        assert len(selected) == 7
        unselected = np.setdiff1d(np.arange(50), selected)
        assert variances[selected].min() >= variances[unselected].max()
        assert np.all(np.diff(variances[selected]) <= 0)

    def test_ties_keep_original_order(self):
        data = np.array([
            [0.0, 1.0],
            [0.0, 2.0],
            [0.0, 2.0],
            [0.0, 1.0],
        ])
        assert select_top_variance(data, 3).tolist() == [1, 2, 0]

    def test_k_exceeds_rows(self):
        with pytest.raises(InvalidArgumentError, match="exceeds row count"):
            select_top_variance(np.ones((3, 4)), 4)

    def test_k_below_one(self):
        with pytest.raises(InvalidArgumentError, match="k must be >= 1"):
            select_top_variance(np.ones((3, 4)), 0)

    def test_informative_genes_selected(self, small_dataset):
        matrix, _, _, _ = small_dataset
        logged = LogTransform().apply(matrix)

        top = top_variance_genes(logged, 10)

        assert set(top.gene_ids) == {f"GENE_{i:04d}" for i in range(10)}
