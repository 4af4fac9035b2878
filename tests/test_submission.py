"""
Tests for answer recording and the submission collaborator.
"""

from types import SimpleNamespace

import pytest

from erexplore.cli.config import AnalysisConfig
from erexplore.exceptions import InvalidArgumentError, SubmissionError
from erexplore.stats.clustering import Linkage
from erexplore.stats.distances import DistanceMetric
from erexplore.submission import SubmissionAnswers, SubmissionClient, submit_answers


class RecordingClient:
    """In-memory collaborator that records every call."""

    def __init__(self, submission_id="sub-001"):
        self.submission_id = submission_id
        self.calls = []

    def submit(self, module_id, payload):
        self.calls.append((module_id, payload))
        return self.submission_id


class FailingClient:
    def submit(self, module_id, payload):
        raise ConnectionError("grader unreachable")


def _answers(**overrides):
    values = dict(distance_metric="euclidean", clustering_method="complete", n_clusters=2, p_value=0.003)
    values.update(overrides)
    return SubmissionAnswers(**values)


class TestSubmissionAnswers:
    """Local validation of the recorded answers."""

    def test_strings_parsed_to_enums(self):
        answers = _answers(distance_metric="Pearson", clustering_method="AVERAGE")
        assert answers.distance_metric is DistanceMetric.PEARSON
        assert answers.clustering_method is Linkage.AVERAGE

    def test_to_dict_uses_plain_values(self):
        assert _answers().to_dict() == {
            "distance_metric": "euclidean",
            "clustering_method": "complete",
            "n_clusters": 2,
            "p_value": 0.003,
        }

    def test_unknown_metric(self):
        with pytest.raises(InvalidArgumentError, match="Unknown distance metric"):
            _answers(distance_metric="cosine")

    @pytest.mark.parametrize("n_clusters", [0, -1])
    def test_n_clusters_positive(self, n_clusters):
        with pytest.raises(InvalidArgumentError, match="n_clusters"):
            _answers(n_clusters=n_clusters)

    @pytest.mark.parametrize("n_clusters", [2.5, True])
    def test_n_clusters_integer(self, n_clusters):
        with pytest.raises(InvalidArgumentError, match="integer"):
            _answers(n_clusters=n_clusters)

    @pytest.mark.parametrize("p_value", [-0.1, 1.5])
    def test_p_value_range(self, p_value):
        with pytest.raises(InvalidArgumentError, match="p_value"):
            _answers(p_value=p_value)

    def test_from_result(self):
        config = AnalysisConfig.from_dict(
            {"clustering": {"metric": "manhattan", "linkage": "single", "n_clusters": 3}}
        )
        result = SimpleNamespace(config=config, chi_square=SimpleNamespace(p_value=0.2))

        answers = SubmissionAnswers.from_result(result)

        assert answers.distance_metric is DistanceMetric.MANHATTAN
        assert answers.clustering_method is Linkage.SINGLE
        assert answers.n_clusters == 3
        assert answers.p_value == 0.2


class TestSubmitAnswers:
    """Hand-off to the external collaborator."""

    def test_protocol(self):
        assert isinstance(RecordingClient(), SubmissionClient)

    def test_returns_submission_id(self):
        client = RecordingClient()

        receipt = submit_answers(client, "er-status-clustering", _answers())

        assert receipt == "sub-001"
        assert client.calls == [("er-status-clustering", _answers().to_dict())]

    def test_collaborator_failure_is_wrapped(self):
        with pytest.raises(SubmissionError, match="grader unreachable") as exc_info:
            submit_answers(FailingClient(), "module-1", _answers())
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_empty_receipt(self):
        with pytest.raises(SubmissionError, match="no submission id"):
            submit_answers(RecordingClient(submission_id=""), "module-1", _answers())

    @pytest.mark.parametrize("module_id", ["", "   ", None])
    def test_module_id_required(self, module_id):
        client = RecordingClient()
        with pytest.raises(InvalidArgumentError, match="module_id"):
            submit_answers(client, module_id, _answers())
        assert client.calls == []

    def test_answers_type_checked(self):
        with pytest.raises(InvalidArgumentError, match="SubmissionAnswers"):
            submit_answers(RecordingClient(), "module-1", {"n_clusters": 2})
