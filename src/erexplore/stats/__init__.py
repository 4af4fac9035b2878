"""
Statistical components of the exploratory pipeline.

- selection: top-variance gene selection
- distances: pairwise distances (pearson, euclidean, manhattan, minkowski)
- clustering: hierarchical clustering, dendrograms and tree cutting
- embedding: t-SNE from precomputed distances
- association: contingency tables and chi-square tests
- summaries: descriptive statistics behind histograms and boxplots
"""

from erexplore.stats.selection import row_variances, select_top_variance, top_variance_genes
from erexplore.stats.distances import (
    DistanceMetric,
    DistanceMatrix,
    pairwise_distances,
    matrix_distances,
)
from erexplore.stats.clustering import (
    Linkage,
    Dendrogram,
    BiclusterResult,
    hierarchical_cluster,
    cut_tree,
    cluster_axes,
)
from erexplore.stats.embedding import Embedding, tsne_embed
from erexplore.stats.association import ChiSquareResult, build_contingency, chi_square_test
from erexplore.stats.summaries import (
    Histogram,
    summarize_samples,
    expression_histogram,
    covariate_summary,
)

__all__ = [
    'row_variances',
    'select_top_variance',
    'top_variance_genes',
    'DistanceMetric',
    'DistanceMatrix',
    'pairwise_distances',
    'matrix_distances',
    'Linkage',
    'Dendrogram',
    'BiclusterResult',
    'hierarchical_cluster',
    'cut_tree',
    'cluster_axes',
    'Embedding',
    'tsne_embed',
    'ChiSquareResult',
    'build_contingency',
    'chi_square_test',
    'Histogram',
    'summarize_samples',
    'expression_histogram',
    'covariate_summary',
]
