"""
End-to-end exploratory analysis: align, transform, select, render, cluster,
embed, and test the clusters against a clinical covariate.

Every stage consumes immutable inputs and returns a new value, so the
loaded tables stay untouched and every intermediate is kept on the result
for inspection, plotting and writing.

Examples:
    >>> from erexplore.cli.config import AnalysisConfig
    >>> from erexplore.io import load_dataset
    >>> from erexplore.pipeline import run_exploratory_analysis
    >>>
    >>> data = load_dataset("expr.tsv", "patient.tsv", "sample.tsv")
    >>> config = AnalysisConfig()
    >>> config.embedding.random_state = 42
    >>> result = run_exploratory_analysis(data.expression, data.clinical_a, data.clinical_b, config)
    >>> print(result.chi_square.p_value)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Optional

import pandas as pd

from erexplore import __version__
from erexplore.cli.config import AnalysisConfig
from erexplore.core.alignment import AlignedDataset, align_tables
from erexplore.core.covariates import CovariateTable
from erexplore.core.matrix import ExpressionMatrix
from erexplore.core.transform import LogTransform, RowStandardization, Transform
from erexplore.exceptions import InvalidArgumentError
from erexplore.io.loaders import load_dataset
from erexplore.stats.association import ChiSquareResult, build_contingency, chi_square_test
from erexplore.stats.clustering import BiclusterResult, cluster_axes, cut_tree
from erexplore.stats.distances import DistanceMetric
from erexplore.stats.embedding import Embedding, tsne_embed
from erexplore.stats.selection import top_variance_genes
from erexplore.viz.heatmap import HeatmapGrid, render_heatmap

logger = logging.getLogger(__name__)

__all__ = ['ExploratoryResult', 'run_exploratory_analysis', 'run_from_config']


@dataclass(frozen=True)
class ExploratoryResult:
    """
    All intermediate and final outputs of one analysis run.

    Attributes:
        config: Configuration the run used
        aligned: Expression and clinical tables on the common sample key
        log_expression: log2(counts + pseudocount) over all genes
        top_genes: Top-variance genes (log scale)
        standardized: Row z-scores of ``top_genes``
        heatmap: Color grid of ``standardized`` (dendrogram order if configured)
        clusters: Gene and sample dendrograms with their distance matrices
        assignments: Sample -> cluster id (1..k)
        embedding: 2-D t-SNE coordinates of the samples
        labels: Covariate values of the samples used in the test
        contingency: Covariate value × cluster counts
        chi_square: Independence test of ``contingency``
        transforms: Transform objects applied, in order
    """
    config: AnalysisConfig
    aligned: AlignedDataset
    log_expression: ExpressionMatrix
    top_genes: ExpressionMatrix
    standardized: ExpressionMatrix
    heatmap: HeatmapGrid
    clusters: BiclusterResult
    assignments: pd.Series
    embedding: Embedding
    labels: pd.Series
    contingency: pd.DataFrame
    chi_square: ChiSquareResult
    transforms: list[Transform] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        """JSON-ready run summary (parameters, sizes, test results)."""
        cluster_sizes = self.assignments.value_counts().sort_index()
        return {
            "erexplore_version": __version__,
            "config": self.config.to_dict(),
            "samples": {
                "aligned": self.aligned.n_samples,
                "tested": int(len(self.labels)),
                "dropped": {table: len(s) for table, s in self.aligned.dropped.items()},
            },
            "genes": {
                "input": self.log_expression.n_genes,
                "selected": self.top_genes.n_genes,
                "standardized": self.standardized.n_genes,
            },
            "transforms": [repr(t) for t in self.transforms],
            "clusters": {str(k): int(v) for k, v in cluster_sizes.items()},
            "embedding": {
                "kl_divergence": self.embedding.kl_divergence,
                "perplexity": self.embedding.perplexity,
                "random_state": self.embedding.random_state,
            },
            "chi_square": self.chi_square.to_dict(),
        }


def _covariate_labels(
    table: CovariateTable,
    column: str,
    assignments: pd.Series,
) -> tuple[pd.Series, pd.Series]:
    """Covariate labels and cluster ids restricted to samples with a label."""
    labels = table.categorical(column)
    present = labels.notna()
    if not present.all():
        missing = labels.index[~present].tolist()
        logger.warning(
            f"{table.name}.{column}: {len(missing)} samples have no value and are "
            f"excluded from the association test (first: {missing[:10]})"
        )
    labels = labels[present]
    return labels, assignments.loc[labels.index]


def run_exploratory_analysis(
    expression: ExpressionMatrix,
    clinical_a: CovariateTable,
    clinical_b: CovariateTable,
    config: Optional[AnalysisConfig] = None,
) -> ExploratoryResult:
    """
    Run the full exploratory pipeline on loaded tables.

    Args:
        expression: Raw gene × sample count matrix
        clinical_a: First clinical table
        clinical_b: Second clinical table
        config: Analysis parameters (defaults if None)

    Returns:
        ExploratoryResult with every intermediate

    Raises:
        AlignmentError: Sample sets do not overlap enough
        InvalidArgumentError: A parameter is out of range for the data
        DegenerateRowError: Zero-variance genes with on_degenerate="raise"
            (or zero-variance vectors under the Pearson metric)
    """
    config = config or AnalysisConfig()
    expression.validate_counts()

    logger.info("Step 1/6: aligning samples")
    aligned = align_tables(
        expression, clinical_a, clinical_b, min_samples=config.alignment.min_samples
    )

    logger.info("Step 2/6: transforming expression")
    log_step = LogTransform(pseudocount=config.transform.pseudocount)
    errors = log_step.validate(aligned.expression)
    if errors:
        raise InvalidArgumentError("; ".join(errors))
    log_expression = log_step.apply(aligned.expression)

    top_genes = top_variance_genes(log_expression, config.selection.n_genes)
    logger.info(f"Selected {top_genes.n_genes} top-variance genes")

    scale_step = RowStandardization(on_degenerate=config.transform.on_degenerate)
    errors = scale_step.validate(top_genes)
    if errors:
        raise InvalidArgumentError("; ".join(errors))
    standardized = scale_step.apply(top_genes)

    logger.info("Step 3/6: clustering genes and samples")
    metric = DistanceMetric.parse(config.clustering.metric)
    p = config.clustering.minkowski_p if metric is DistanceMetric.MINKOWSKI else None
    clusters = cluster_axes(standardized, metric, config.clustering.linkage, p=p)
    assignments = cut_tree(clusters.sample_dendrogram, config.clustering.n_clusters)
    assignments = assignments.rename_axis("sample_id")

    logger.info("Step 4/6: rendering heatmap")
    heatmap = render_heatmap(
        standardized,
        n_colors=config.heatmap.n_colors,
        value_range=tuple(config.heatmap.value_range),
        top_to_bottom=config.heatmap.top_to_bottom,
    )
    if config.heatmap.order_by_dendrogram:
        heatmap = heatmap.reorder(
            clusters.gene_dendrogram.leaf_order(),
            clusters.sample_dendrogram.leaf_order(),
        )

    logger.info("Step 5/6: embedding samples with t-SNE")
    embedding = tsne_embed(
        clusters.sample_distances,
        perplexity=config.embedding.perplexity,
        max_iterations=config.embedding.max_iterations,
        random_state=config.embedding.random_state,
    )

    logger.info("Step 6/6: testing cluster association")
    table = aligned.clinical_a if config.association.table == "clinical_a" else aligned.clinical_b
    labels, cluster_ids = _covariate_labels(table, config.association.column, assignments)
    contingency = build_contingency(labels, cluster_ids)
    chi_square = chi_square_test(contingency, correction=config.association.correction)
    logger.info(
        f"{config.association.column} vs. {config.clustering.n_clusters} clusters: "
        f"chi2={chi_square.statistic:.3f}, dof={chi_square.dof}, p={chi_square.p_value:.3g}"
    )

    return ExploratoryResult(
        config=config,
        aligned=aligned,
        log_expression=log_expression,
        top_genes=top_genes,
        standardized=standardized,
        heatmap=heatmap,
        clusters=clusters,
        assignments=assignments,
        embedding=embedding,
        labels=labels,
        contingency=contingency,
        chi_square=chi_square,
        transforms=[log_step, scale_step],
    )


def run_from_config(config: AnalysisConfig) -> ExploratoryResult:
    """Load the inputs named in ``config.inputs`` and run the pipeline."""
    inputs = config.inputs
    missing = [
        name for name in ("expression", "clinical_a", "clinical_b")
        if getattr(inputs, name) is None
    ]
    if missing:
        raise InvalidArgumentError(f"Missing input paths in config: {', '.join(missing)}")

    data = load_dataset(
        inputs.expression,
        inputs.clinical_a,
        inputs.clinical_b,
        sample_col_a=inputs.sample_col_a,
        sample_col_b=inputs.sample_col_b,
    )
    return run_exploratory_analysis(data.expression, data.clinical_a, data.clinical_b, config)
