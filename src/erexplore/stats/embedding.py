"""
t-SNE embedding of samples from a precomputed distance matrix.

t-SNE is stochastic and non-convex: two runs with different seeds give
different (equally valid) layouts. Reproducibility is controlled
explicitly through ``random_state``; ``None`` means a fresh random seed.

The optimizer always runs the full iteration budget. Only malformed input
(non-square, asymmetric, negative or non-finite distances, perplexity out
of range) raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np
import pandas as pd
from sklearn.manifold import TSNE

from erexplore.exceptions import InvalidArgumentError
from erexplore.stats.distances import DistanceMatrix

logger = logging.getLogger(__name__)

__all__ = ['Embedding', 'tsne_embed', 'MIN_ITERATIONS']

# scikit-learn refuses fewer optimizer iterations than this
MIN_ITERATIONS = 250


@dataclass(frozen=True)
class Embedding:
    """
    2-D coordinates per item.

    Attributes:
        coordinates: DataFrame with columns ["tsne_1", "tsne_2"], index = item labels
        kl_divergence: Final Kullback-Leibler divergence reported by the optimizer
        perplexity: Perplexity used
        random_state: Seed used (None if unseeded)
    """
    coordinates: pd.DataFrame
    kl_divergence: float
    perplexity: float
    random_state: Optional[int]

    @property
    def labels(self) -> pd.Index:
        return self.coordinates.index


def tsne_embed(
    distances: DistanceMatrix | np.ndarray,
    perplexity: float = 30.0,
    max_iterations: int = 1000,
    random_state: Optional[int] = None,
) -> Embedding:
    """
    Embed the items of a distance matrix in two dimensions.

    Args:
        distances: DistanceMatrix (or square array) over N items
        perplexity: Effective neighbourhood size, 1 < perplexity < N
            (2-50 is the practical range)
        max_iterations: Fixed optimizer budget (>= 250)
        random_state: Seed for reproducible layouts; None for unseeded runs

    Returns:
        Embedding with one row per item

    Raises:
        InvalidArgumentError: Malformed distances or out-of-range parameters
    """
    if not isinstance(distances, DistanceMatrix):
        values = np.asarray(distances, dtype=float)
        if values.ndim != 2 or values.shape[0] != values.shape[1]:
            raise InvalidArgumentError(
                f"distance matrix must be square, got shape {values.shape}"
            )
        distances = DistanceMatrix(values=values, labels=pd.RangeIndex(values.shape[0]))

    n = distances.n_items
    if not 1 < perplexity < n:
        raise InvalidArgumentError(
            f"perplexity must satisfy 1 < perplexity < N (N={n}), got {perplexity}"
        )
    if max_iterations < MIN_ITERATIONS:
        raise InvalidArgumentError(
            f"max_iterations must be >= {MIN_ITERATIONS}, got {max_iterations}"
        )
    if random_state is None:
        logger.info("t-SNE random_state not set; layout will not be reproducible")

    tsne = TSNE(
        n_components=2,
        perplexity=perplexity,
        metric="precomputed",
        init="random",
        max_iter=max_iterations,
        random_state=random_state,
    )
    coords = tsne.fit_transform(np.array(distances.values))

    logger.info(
        f"t-SNE: {n} items, perplexity={perplexity}, "
        f"iterations={max_iterations}, KL={tsne.kl_divergence_:.4f}"
    )

    return Embedding(
        coordinates=pd.DataFrame(coords, index=distances.labels, columns=["tsne_1", "tsne_2"]),
        kl_divergence=float(tsne.kl_divergence_),
        perplexity=float(perplexity),
        random_state=random_state,
    )
