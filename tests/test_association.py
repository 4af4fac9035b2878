"""
Tests for contingency tables, the chi-square test and descriptive summaries.
"""

import warnings

import numpy as np
import pandas as pd
import pytest

from erexplore.core.covariates import CovariateTable
from erexplore.core.transform import LogTransform
from erexplore.exceptions import AlignmentError, InvalidArgumentError
from erexplore.stats.association import build_contingency, chi_square_test
from erexplore.stats.summaries import covariate_summary, expression_histogram, summarize_samples


class TestBuildContingency:
    """Cross-tabulation of labels against cluster ids."""

    def test_sorted_and_zero_filled(self):
        index = pd.Index(["s1", "s2", "s3", "s4"])
        labels = pd.Series(["Positive", "Negative", "Positive", "Positive"], index=index)
        clusters = pd.Series([2, 1, 2, 3], index=index)

        table = build_contingency(labels, clusters)

        assert list(table.index) == ["Negative", "Positive"]
        assert list(table.columns) == [1, 2, 3]
        assert table.loc["Negative"].tolist() == [1, 0, 0]
        assert table.loc["Positive"].tolist() == [0, 2, 1]
        assert table.to_numpy().sum() == 4

    def test_misaligned_inputs(self):
        labels = pd.Series(["a", "b"], index=["s1", "s2"])
        clusters = pd.Series([1, 2], index=["s2", "s1"])
        with pytest.raises(AlignmentError, match="same sample identifiers"):
            build_contingency(labels, clusters)

    def test_missing_label(self):
        index = pd.Index(["s1", "s2"])
        labels = pd.Series(["a", np.nan], index=index)
        with pytest.raises(InvalidArgumentError, match="no covariate label"):
            build_contingency(labels, pd.Series([1, 2], index=index))

    def test_empty_input(self):
        with pytest.raises(InvalidArgumentError, match="zero items"):
            build_contingency(pd.Series([], dtype=object), pd.Series([], dtype=int))


class TestChiSquare:
    """Pearson chi-square test of independence."""

    def test_independent_table_has_large_p(self):
        # Counts exactly proportional to row sum × column sum / total
        table = pd.DataFrame([[20, 30], [40, 60]], index=["Negative", "Positive"])

        result = chi_square_test(table)

        assert result.statistic == pytest.approx(0.0, abs=1e-12)
        assert result.p_value > 0.5
        assert result.dof == 1

    def test_random_independent_tables(self):
        rng = np.random.RandomState(0)
        p_values = []
        for _ in range(50):
            labels = rng.choice(["Negative", "Positive"], size=200)
            clusters = rng.choice([1, 2, 3], size=200)
            index = pd.RangeIndex(200)
            table = build_contingency(pd.Series(labels, index=index), pd.Series(clusters, index=index))
            p_values.append(chi_square_test(table).p_value)
        # Under independence p is uniform: roughly half exceed 0.5
        assert 0.2 < np.mean(np.array(p_values) > 0.5) < 0.8

    def test_planted_association_has_small_p(self):
        table = pd.DataFrame([[30, 0], [0, 30]], index=["Negative", "Positive"], columns=[1, 2])
        result = chi_square_test(table)
        assert result.p_value < 0.01

    def test_no_continuity_correction_by_default(self):
        table = pd.DataFrame([[12, 8], [5, 15]])
        plain = chi_square_test(table)
        corrected = chi_square_test(table, correction=True)
        assert plain.statistic > corrected.statistic

    def test_dof(self):
        table = pd.DataFrame(np.full((3, 4), 10))
        assert chi_square_test(table).dof == 6

    def test_expected_counts_keep_labels(self):
        table = pd.DataFrame([[10, 20], [30, 40]], index=["a", "b"], columns=[1, 2])
        result = chi_square_test(table)
        assert list(result.expected.index) == ["a", "b"]
        assert result.expected.to_numpy().sum() == pytest.approx(100.0)

    def test_low_expected_count_is_flagged(self):
        table = pd.DataFrame([[3, 1], [1, 3]])
        with pytest.warns(UserWarning, match="expected counts are below 5"):
            result = chi_square_test(table)
        assert result.low_expected_count
        assert result.min_expected == pytest.approx(2.0)

    def test_adequate_counts_not_flagged(self):
        table = pd.DataFrame([[30, 10], [10, 30]])
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = chi_square_test(table)
        assert not result.low_expected_count

    def test_too_small_table(self):
        with pytest.raises(InvalidArgumentError, match="2 × 2"):
            chi_square_test(pd.DataFrame([[5, 7]]))

    def test_zero_column(self):
        with pytest.raises(InvalidArgumentError, match="all-zero"):
            chi_square_test(pd.DataFrame([[5, 0], [7, 0]]))

    def test_to_dict(self):
        result = chi_square_test(pd.DataFrame([[30, 10], [10, 30]]))
        assert set(result.to_dict()) == {
            "statistic", "p_value", "dof", "low_expected_count", "min_expected",
        }


class TestSummaries:
    """Descriptive summaries behind the exploratory plots."""

    def test_sample_summary(self, small_dataset):
        matrix, _, _, _ = small_dataset
        summary = summarize_samples(LogTransform().apply(matrix))

        assert summary.index.equals(matrix.sample_ids)
        assert list(summary.columns) == ["min", "q1", "median", "q3", "max", "mean"]
        assert np.all(summary["min"] <= summary["q1"])
        assert np.all(summary["q3"] <= summary["max"])

    def test_histogram_counts_every_value(self, small_dataset):
        matrix, _, _, _ = small_dataset
        hist = expression_histogram(matrix, bins=20)

        assert hist.counts.sum() == matrix.data.size
        assert len(hist.edges) == 21
        assert len(hist.centers) == 20

    def test_histogram_bins(self, small_dataset):
        matrix, _, _, _ = small_dataset
        with pytest.raises(InvalidArgumentError, match="bins"):
            expression_histogram(matrix, bins=0)

    def test_covariate_summary_counts_missing(self):
        table = CovariateTable(
            pd.DataFrame({"ER": ["Positive", "Negative", np.nan, "Positive"]},
                         index=["a", "b", "c", "d"])
        )
        counts = covariate_summary(table, "ER")
        assert counts.to_dict() == {"<missing>": 1, "Negative": 1, "Positive": 2}
