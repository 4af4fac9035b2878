"""
Hierarchical agglomerative clustering with deterministic tie-breaking.

Clusters are merged greedily by smallest inter-cluster distance, with
cluster-to-cluster distances updated by the Lance-Williams recurrence:

    single    d(i∪j, k) = min(d(i,k), d(j,k))
    complete  d(i∪j, k) = max(d(i,k), d(j,k))
    average   d(i∪j, k) = (n_i d(i,k) + n_j d(j,k)) / (n_i + n_j)   (UPGMA)

Tie-break:
    Every active cluster is identified by the smallest leaf index it
    contains. When several pairs share the minimal distance exactly, the
    pair (a, b), a < b, that is lexicographically smallest by those leaf
    indices is merged first. The result therefore depends only on the
    distance values and the leaf order, not on library iteration order.

The resulting Dendrogram stores its merges in SciPy's linkage-matrix
layout ``[child_a, child_b, height, size]`` so it can be drawn with
``scipy.cluster.hierarchy.dendrogram``.

Examples:
    >>> distances = matrix_distances(matrix, "euclidean", axis="samples")
    >>> tree = hierarchical_cluster(distances, "complete")
    >>> clusters = cut_tree(tree, k=2)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional

import numpy as np
import pandas as pd
from scipy.cluster.hierarchy import leaves_list

from erexplore.core.matrix import ExpressionMatrix
from erexplore.exceptions import InvalidArgumentError
from erexplore.stats.distances import DistanceMatrix, DistanceMetric, matrix_distances

logger = logging.getLogger(__name__)

__all__ = [
    'Linkage',
    'Merge',
    'Dendrogram',
    'BiclusterResult',
    'hierarchical_cluster',
    'cut_tree',
    'cluster_axes',
]


class Linkage(Enum):
    """Rules for the distance between two clusters."""
    AVERAGE = "average"
    COMPLETE = "complete"
    SINGLE = "single"

    @classmethod
    def parse(cls, value) -> Linkage:
        """
        Convert a user-supplied value to a Linkage.

        Raises:
            InvalidArgumentError: If the value is not a known linkage
        """
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        for member in cls:
            if member.value == key:
                return member
        raise InvalidArgumentError(
            f"Unknown linkage method {value!r}. "
            f"Choose from: {', '.join(m.value for m in cls)}"
        )


class Merge(NamedTuple):
    """One internal node: children are leaf indices (< N) or N + merge step."""
    left: int
    right: int
    height: float
    size: int


@dataclass(frozen=True)
class Dendrogram:
    """
    Binary merge tree over N labelled leaves.

    Attributes:
        linkage_matrix: (N-1) × 4 array, SciPy linkage layout
        labels: Leaf identifiers, length N
        method: Linkage rule used
        metric: Distance metric name of the input
    """
    linkage_matrix: np.ndarray
    labels: pd.Index
    method: Linkage
    metric: str = "precomputed"

    def __post_init__(self):
        z = np.asarray(self.linkage_matrix, dtype=float)
        n = len(self.labels)
        if n < 1:
            raise InvalidArgumentError("a dendrogram needs at least one leaf")
        if z.shape != (n - 1, 4):
            raise InvalidArgumentError(
                f"linkage matrix for {n} leaves must have shape ({n - 1}, 4), got {z.shape}"
            )
        z = z.copy()
        z.setflags(write=False)
        object.__setattr__(self, "linkage_matrix", z)
        object.__setattr__(self, "labels", pd.Index(self.labels))

    @property
    def n_leaves(self) -> int:
        return len(self.labels)

    @property
    def heights(self) -> np.ndarray:
        return self.linkage_matrix[:, 2].copy()

    @property
    def merges(self) -> list[Merge]:
        return [
            Merge(int(row[0]), int(row[1]), float(row[2]), int(row[3]))
            for row in self.linkage_matrix
        ]

    def leaf_order(self) -> np.ndarray:
        """Leaf positions in left-to-right plotting order."""
        if self.n_leaves == 1:
            return np.array([0])
        return leaves_list(self.linkage_matrix)

    def ordered_labels(self) -> pd.Index:
        return self.labels[self.leaf_order()]


@dataclass(frozen=True)
class BiclusterResult:
    """Independent row (gene) and column (sample) clusterings of one matrix."""
    gene_dendrogram: Dendrogram
    sample_dendrogram: Dendrogram
    gene_distances: DistanceMatrix
    sample_distances: DistanceMatrix

    def ordered(self, matrix: ExpressionMatrix) -> ExpressionMatrix:
        """Matrix with rows and columns in dendrogram leaf order."""
        return matrix.reorder(
            gene_order=self.gene_dendrogram.leaf_order(),
            sample_order=self.sample_dendrogram.leaf_order(),
        )


def _lance_williams(
    method: Linkage,
    d_ik: np.ndarray,
    d_jk: np.ndarray,
    n_i: int,
    n_j: int,
) -> np.ndarray:
    if method is Linkage.SINGLE:
        return np.minimum(d_ik, d_jk)
    if method is Linkage.COMPLETE:
        return np.maximum(d_ik, d_jk)
    return (n_i * d_ik + n_j * d_jk) / (n_i + n_j)


def hierarchical_cluster(
    distances: DistanceMatrix,
    linkage: Linkage | str,
) -> Dendrogram:
    """
    Agglomerative clustering of the items of a distance matrix.

    Args:
        distances: Square distance matrix over N items
        linkage: Linkage rule (enum or name)

    Returns:
        Dendrogram with N-1 merges; heights are non-decreasing for the
        supported linkages

    Raises:
        InvalidArgumentError: Unknown linkage
    """
    method = Linkage.parse(linkage)
    n = distances.n_items
    z = np.zeros((max(n - 1, 0), 4))

    dist = np.array(distances.values, dtype=float)
    np.fill_diagonal(dist, np.inf)
    lower = np.tril(np.ones((n, n), dtype=bool))

    sizes = np.ones(n, dtype=int)
    node_ids = np.arange(n)

    for step in range(n - 1):
        # Row-major argmin over the upper triangle picks the smallest
        # (a, b) slot pair among exact ties; slot == smallest leaf index.
        candidates = np.where(lower, np.inf, dist)
        flat = int(np.argmin(candidates))
        a, b = divmod(flat, n)
        height = float(candidates[a, b])

        left, right = sorted((int(node_ids[a]), int(node_ids[b])))
        merged_size = int(sizes[a] + sizes[b])
        z[step] = (left, right, height, merged_size)

        updated = _lance_williams(method, dist[a], dist[b], sizes[a], sizes[b])
        dist[a, :] = updated
        dist[:, a] = updated
        dist[a, a] = np.inf
        dist[b, :] = np.inf
        dist[:, b] = np.inf

        sizes[a] = merged_size
        node_ids[a] = n + step

    logger.info(
        f"Clustered {n} items with {method.value} linkage on {distances.metric} distances"
    )
    return Dendrogram(
        linkage_matrix=z,
        labels=distances.labels,
        method=method,
        metric=distances.metric,
    )


def cut_tree(dendrogram: Dendrogram, k: int) -> pd.Series:
    """
    Flat clustering with exactly k groups.

    The k-1 highest merges (the last k-1 in merge order) are undone and
    every leaf is assigned to its connected component below the cut.
    Cluster ids 1..k are numbered by first appearance in leaf index order.

    Args:
        dendrogram: Tree over N leaves
        k: Number of clusters, 1 <= k <= N

    Returns:
        Series mapping leaf label -> cluster id (int), named "cluster"

    Raises:
        InvalidArgumentError: If k < 1 or k exceeds the leaf count
    """
    n = dendrogram.n_leaves
    if k < 1:
        raise InvalidArgumentError(f"k must be >= 1, got {k}")
    if k > n:
        raise InvalidArgumentError(f"k ({k}) exceeds leaf count ({n})")

    members: dict[int, list[int]] = {leaf: [leaf] for leaf in range(n)}
    for step, merge in enumerate(dendrogram.merges[: n - k]):
        members[n + step] = members.pop(merge.left) + members.pop(merge.right)

    component = np.empty(n, dtype=int)
    for node, leaves in members.items():
        component[leaves] = node

    cluster_of: dict[int, int] = {}
    ids = np.empty(n, dtype=int)
    for leaf in range(n):
        node = int(component[leaf])
        if node not in cluster_of:
            cluster_of[node] = len(cluster_of) + 1
        ids[leaf] = cluster_of[node]

    return pd.Series(ids, index=dendrogram.labels, name="cluster")


def cluster_axes(
    matrix: ExpressionMatrix,
    metric: DistanceMetric | str,
    linkage: Linkage | str,
    p: Optional[float] = None,
) -> BiclusterResult:
    """Cluster genes and samples of ``matrix`` independently."""
    gene_distances = matrix_distances(matrix, metric, axis="genes", p=p)
    sample_distances = matrix_distances(matrix, metric, axis="samples", p=p)
    return BiclusterResult(
        gene_dendrogram=hierarchical_cluster(gene_distances, linkage),
        sample_dendrogram=hierarchical_cluster(sample_distances, linkage),
        gene_distances=gene_distances,
        sample_distances=sample_distances,
    )
