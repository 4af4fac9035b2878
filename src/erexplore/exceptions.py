"""
Error taxonomy for the exploratory analysis pipeline.

Every failure that aborts an analysis step derives from ``ExploreError`` so
callers can catch the whole family at once. Errors describing a bad value
(alignment, arguments, degenerate rows) also derive from ``ValueError``.

Propagation policy:
    All of these are raised at the point of detection and never replaced by
    a silent default. In particular a sample that is missing from one of the
    input tables is always surfaced, because silent misalignment between
    expression and clinical data corrupts every downstream result.
"""

from __future__ import annotations

__all__ = [
    'ExploreError',
    'LoadError',
    'AlignmentError',
    'InvalidArgumentError',
    'DegenerateRowError',
    'SubmissionError',
]


class ExploreError(Exception):
    """Base class for all pipeline errors."""
    pass


class LoadError(ExploreError):
    """Raised when an input table is missing or malformed."""

    def __init__(self, message: str, path=None):
        self.path = path
        if path is not None:
            message = f"{message}: {path}"
        super().__init__(message)


class AlignmentError(ExploreError, ValueError):
    """Raised when sample sets disagree or an ordering check fails."""
    pass


class InvalidArgumentError(ExploreError, ValueError):
    """Raised for out-of-range parameters (k, perplexity, pseudocount, ...)."""
    pass


class DegenerateRowError(ExploreError, ValueError):
    """
    Raised when a zero-variance vector is met where a variance is divided by.

    Attributes:
        labels: Identifiers of the offending rows (genes or samples).
    """

    def __init__(self, message: str, labels=None):
        self.labels = list(labels) if labels is not None else []
        super().__init__(message)


class SubmissionError(ExploreError):
    """Raised when the external submission collaborator fails."""
    pass
