"""Shared argparse type validators for CLI parameter bounds checking.

These validators produce clear error messages when users pass invalid
values (e.g., ``--n-clusters 0``, ``--perplexity 0.5``). They are
intended to be used as the ``type=`` argument in ``add_argument()``.
"""

from __future__ import annotations

import argparse

from erexplore.stats.embedding import MIN_ITERATIONS


def _positive_int(value: str) -> int:
    """argparse type for positive integers (> 0)."""
    ivalue = int(value)
    if ivalue <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive integer")
    return ivalue


def _positive_float(value: str) -> float:
    """argparse type for positive floats (> 0)."""
    fvalue = float(value)
    if fvalue <= 0:
        raise argparse.ArgumentTypeError(f"{value} is not a positive float")
    return fvalue


def _minkowski_power(value: str) -> float:
    """argparse type for a Minkowski power p (>= 1)."""
    fvalue = float(value)
    if fvalue < 1:
        raise argparse.ArgumentTypeError(f"{value} is not a valid Minkowski power (must be >= 1)")
    return fvalue


def _perplexity(value: str) -> float:
    """argparse type for t-SNE perplexity (> 1; the upper bound depends on the data)."""
    fvalue = float(value)
    if fvalue <= 1:
        raise argparse.ArgumentTypeError(f"{value} is not a valid perplexity (must be > 1)")
    return fvalue


def _iterations(value: str) -> int:
    """argparse type for the t-SNE iteration budget."""
    ivalue = int(value)
    if ivalue < MIN_ITERATIONS:
        raise argparse.ArgumentTypeError(
            f"{value} is below the minimum of {MIN_ITERATIONS} iterations"
        )
    return ivalue


def _color_count(value: str) -> int:
    """argparse type for the number of heatmap colors (>= 2)."""
    ivalue = int(value)
    if ivalue < 2:
        raise argparse.ArgumentTypeError(f"{value} is not a valid color count (must be >= 2)")
    return ivalue
