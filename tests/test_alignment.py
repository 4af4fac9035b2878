"""
Tests for ExpressionMatrix, CovariateTable and sample alignment.
"""

import numpy as np
import pandas as pd
import pytest

from erexplore.core.alignment import align_tables, compute_sample_key
from erexplore.core.covariates import CovariateKind, CovariateTable
from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import AlignmentError, InvalidArgumentError


def _matrix(samples, n_genes=3):
    data = np.arange(n_genes * len(samples), dtype=float).reshape(n_genes, len(samples))
    return ExpressionMatrix(
        data=data,
        gene_ids=pd.Index([f"G{i}" for i in range(n_genes)]),
        sample_ids=pd.Index(samples),
    )


def _table(samples, name, values=None):
    values = values if values is not None else [f"v_{s}" for s in samples]
    return CovariateTable(pd.DataFrame({"status": values}, index=pd.Index(samples)), name=name)


class TestExpressionMatrix:
    """Construction invariants and immutability."""

    def test_data_is_read_only(self):
        matrix = _matrix(["a", "b"])
        with pytest.raises(ValueError):
            matrix.data[0, 0] = 99.0

    def test_input_array_not_shared(self):
        data = np.ones((2, 2))
        matrix = ExpressionMatrix(data, pd.Index(["g1", "g2"]), pd.Index(["s1", "s2"]))
        data[0, 0] = 5.0
        assert matrix.data[0, 0] == 1.0

    def test_duplicate_gene_ids_rejected(self):
        with pytest.raises(ValueError, match="gene_ids must be unique"):
            ExpressionMatrix(np.ones((2, 2)), pd.Index(["g", "g"]), pd.Index(["s1", "s2"]))

    def test_shape_mismatch_rejected(self):
        with pytest.raises(ValueError, match="sample_ids length"):
            ExpressionMatrix(np.ones((2, 3)), pd.Index(["g1", "g2"]), pd.Index(["s1", "s2"]))

    def test_validate_counts_rejects_negative(self):
        matrix = ExpressionMatrix(
            np.array([[1.0, -1.0]]), pd.Index(["g"]), pd.Index(["s1", "s2"])
        )
        with pytest.raises(InvalidArgumentError, match="negative"):
            matrix.validate_counts()

    def test_reindex_missing_sample(self):
        with pytest.raises(AlignmentError, match="lacks 1 samples"):
            _matrix(["a", "b"]).reindex_samples(pd.Index(["a", "z"]))

    def test_select_genes_keeps_given_order(self):
        matrix = _matrix(["a", "b"], n_genes=4)
        subset = matrix.select_genes([2, 0])
        assert list(subset.gene_ids) == ["G2", "G0"]
        np.testing.assert_array_equal(subset.data[0], matrix.data[2])


class TestCovariateTable:
    """Column typing and categorical access."""

    def test_kinds_inferred(self, small_dataset):
        _, clinical_a, _, _ = small_dataset
        assert clinical_a.kind("ER_STATUS_BY_IHC") is CovariateKind.CATEGORICAL
        assert clinical_a.kind("AGE") is CovariateKind.NUMERIC

    def test_categorical_preserves_missing(self):
        table = _table(["a", "b", "c"], "t", values=["Positive", np.nan, "Negative"])
        values = table.categorical("status")
        assert values.isna().tolist() == [False, True, False]
        assert values["a"] == "Positive"

    def test_numeric_column_not_categorical(self, small_dataset):
        _, clinical_a, _, _ = small_dataset
        with pytest.raises(InvalidArgumentError, match="numeric"):
            clinical_a.categorical("AGE")

    def test_unknown_column(self, small_dataset):
        _, clinical_a, _, _ = small_dataset
        with pytest.raises(InvalidArgumentError, match="unknown covariate"):
            clinical_a.column("NOT_A_COLUMN")

    def test_duplicate_samples_rejected(self):
        with pytest.raises(ValueError, match="duplicated sample identifiers"):
            _table(["a", "a"], "t")


class TestAlignment:
    """Sample key computation and reindexing."""

    def test_sorted_intersection(self):
        expr = _matrix(["s3", "s1", "s2", "s9"])
        clin_a = _table(["s2", "s3", "s1"], "clinical_a")
        clin_b = _table(["s1", "s2", "s3", "s7"], "clinical_b")

        key = compute_sample_key(expr, clin_a, clin_b)
        assert list(key) == ["s1", "s2", "s3"]

    def test_all_tables_share_sample_axis(self):
        expr = _matrix(["s3", "s1", "s2", "s9"])
        clin_a = _table(["s2", "s3", "s1"], "clinical_a")
        clin_b = _table(["s1", "s2", "s3", "s7"], "clinical_b")

        aligned = align_tables(expr, clin_a, clin_b)

        assert list(aligned.expression.sample_ids) == ["s1", "s2", "s3"]
        assert list(aligned.clinical_a.sample_ids) == ["s1", "s2", "s3"]
        assert list(aligned.clinical_b.sample_ids) == ["s1", "s2", "s3"]
        assert aligned.n_samples == 3

    def test_values_follow_their_sample(self):
        expr = _matrix(["s3", "s1", "s2"])
        clin_a = _table(["s2", "s3", "s1"], "clinical_a")
        clin_b = _table(["s1", "s2", "s3"], "clinical_b")

        aligned = align_tables(expr, clin_a, clin_b)

        np.testing.assert_array_equal(
            aligned.expression.data[:, 0], expr.data[:, 1]  # s1 was column 1
        )
        assert aligned.clinical_a.categorical("status")["s2"] == "v_s2"

    def test_dropped_samples_recorded(self):
        expr = _matrix(["s1", "s2", "s9"])
        clin_a = _table(["s1", "s2"], "clinical_a")
        clin_b = _table(["s1", "s2", "s7"], "clinical_b")

        aligned = align_tables(expr, clin_a, clin_b)

        assert aligned.dropped["expression"] == ["s9"]
        assert aligned.dropped["clinical_a"] == []
        assert aligned.dropped["clinical_b"] == ["s7"]

    def test_inputs_not_mutated(self):
        expr = _matrix(["s2", "s1"])
        clin_a = _table(["s2", "s1"], "clinical_a")
        clin_b = _table(["s1", "s2"], "clinical_b")

        align_tables(expr, clin_a, clin_b)

        assert list(expr.sample_ids) == ["s2", "s1"]
        assert list(clin_a.sample_ids) == ["s2", "s1"]

    def test_empty_intersection(self):
        with pytest.raises(AlignmentError, match="sample intersection is empty"):
            align_tables(_matrix(["a"]), _table(["b"], "clinical_a"), _table(["a"], "clinical_b"))

    def test_below_minimum_size(self):
        with pytest.raises(AlignmentError, match="sample set below minimum size"):
            align_tables(
                _matrix(["a", "b"]),
                _table(["a", "b"], "clinical_a"),
                _table(["a", "b"], "clinical_b"),
                min_samples=3,
            )

    def test_invalid_minimum(self):
        with pytest.raises(InvalidArgumentError, match="min_samples"):
            align_tables(
                _matrix(["a"]), _table(["a"], "clinical_a"), _table(["a"], "clinical_b"),
                min_samples=0,
            )
