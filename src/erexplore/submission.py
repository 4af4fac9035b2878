"""
Recording and submitting the answers of an exploratory analysis.

The remote grading service is an external collaborator: anything that
implements ``submit(module_id, payload) -> submission_id``. Answers are
validated locally before the call; every failure raised by the
collaborator (authentication, network, bad response) is re-raised as
``SubmissionError`` with the original exception chained.

Examples:
    >>> answers = SubmissionAnswers.from_result(result)
    >>> receipt = submit_answers(client, "er-status-clustering", answers)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from erexplore.exceptions import InvalidArgumentError, SubmissionError
from erexplore.stats.clustering import Linkage
from erexplore.stats.distances import DistanceMetric

logger = logging.getLogger(__name__)

__all__ = ['SubmissionAnswers', 'SubmissionClient', 'submit_answers']


@runtime_checkable
class SubmissionClient(Protocol):
    """Anything that accepts a module id plus answers and returns a submission id."""

    def submit(self, module_id: str, payload: dict[str, Any]) -> str:
        ...


@dataclass(frozen=True)
class SubmissionAnswers:
    """
    The four recorded answers of the analysis.

    Attributes:
        distance_metric: Metric used for clustering
        clustering_method: Linkage used for clustering
        n_clusters: Number of sample clusters cut from the dendrogram
        p_value: Chi-square p-value of clusters vs. the covariate
    """
    distance_metric: DistanceMetric
    clustering_method: Linkage
    n_clusters: int
    p_value: float

    def __post_init__(self):
        object.__setattr__(self, "distance_metric", DistanceMetric.parse(self.distance_metric))
        object.__setattr__(self, "clustering_method", Linkage.parse(self.clustering_method))
        if isinstance(self.n_clusters, bool) or int(self.n_clusters) != self.n_clusters:
            raise InvalidArgumentError(f"n_clusters must be an integer, got {self.n_clusters!r}")
        if self.n_clusters < 1:
            raise InvalidArgumentError(f"n_clusters must be >= 1, got {self.n_clusters}")
        if not 0.0 <= self.p_value <= 1.0:
            raise InvalidArgumentError(f"p_value must be in [0, 1], got {self.p_value}")
        object.__setattr__(self, "n_clusters", int(self.n_clusters))
        object.__setattr__(self, "p_value", float(self.p_value))

    @classmethod
    def from_result(cls, result) -> SubmissionAnswers:
        """Answers recorded from an ``ExploratoryResult``."""
        return cls(
            distance_metric=result.config.clustering.metric,
            clustering_method=result.config.clustering.linkage,
            n_clusters=result.config.clustering.n_clusters,
            p_value=result.chi_square.p_value,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "distance_metric": self.distance_metric.value,
            "clustering_method": self.clustering_method.value,
            "n_clusters": self.n_clusters,
            "p_value": self.p_value,
        }


def submit_answers(client: SubmissionClient, module_id: str, answers: SubmissionAnswers) -> str:
    """
    Send answers to the submission collaborator.

    Returns:
        The submission id returned by the collaborator

    Raises:
        InvalidArgumentError: Empty module id or answers of the wrong type
        SubmissionError: The collaborator failed or returned no id
    """
    if not isinstance(module_id, str) or not module_id.strip():
        raise InvalidArgumentError("module_id must be a non-empty string")
    if not isinstance(answers, SubmissionAnswers):
        raise InvalidArgumentError(
            f"answers must be SubmissionAnswers, got {type(answers).__name__}"
        )

    payload = answers.to_dict()
    logger.info(f"Submitting answers for module '{module_id}': {payload}")
    try:
        submission_id = client.submit(module_id, payload)
    except Exception as e:
        raise SubmissionError(f"submission for module '{module_id}' failed: {e}") from e

    if not submission_id:
        raise SubmissionError(f"submission for module '{module_id}' returned no submission id")
    logger.info(f"Submission accepted: {submission_id}")
    return str(submission_id)
