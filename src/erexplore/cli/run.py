"""
erexplore run - full exploratory analysis of one dataset.

Loads an expression matrix and two clinical tables, aligns them on their
common samples, log-transforms and z-scores the top-variance genes,
clusters genes and samples, embeds samples with t-SNE and tests the sample
clusters against a clinical covariate.

Usage:
    erexplore run --expression expr.tsv --clinical-a patient.tsv \\
        --clinical-b sample.tsv --output results/ --seed 42 --figures

Outputs (in --output):
    sample_key.csv            Common samples, in analysis order
    top_genes.csv             log2 expression of the selected genes
    standardized.csv          Row z-scores of the selected genes
    cluster_assignments.csv   Sample -> cluster id
    embedding.csv             t-SNE coordinates
    contingency.csv           Covariate value × cluster counts
    expected_counts.csv       Expected counts under independence
    run_summary.json          Parameters, sizes and chi-square result
    figures/                  Optional plots and report.html (--figures)
"""

from __future__ import annotations

import argparse
import logging
from datetime import datetime
from pathlib import Path

from erexplore.cli._validators import (
    _color_count,
    _iterations,
    _minkowski_power,
    _perplexity,
    _positive_float,
    _positive_int,
)
from erexplore.stats.clustering import Linkage
from erexplore.stats.distances import DistanceMetric


def register_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the run subcommand."""
    parser = subparsers.add_parser(
        "run",
        help="Align, transform, cluster, embed and test one dataset",
        description=(
            "Exploratory clustering of an expression matrix and association "
            "of the sample clusters with a clinical covariate. Parameters not "
            "given on the command line come from --config, then from defaults."
        )
    )

    # Input/output
    parser.add_argument("--config", "-c", type=Path, default=None,
                        help="YAML or JSON analysis config")
    parser.add_argument("--expression", "-e", type=Path, default=None,
                        help="Expression matrix (genes x samples, raw counts)")
    parser.add_argument("--clinical-a", type=Path, default=None,
                        help="First clinical table (samples x covariates)")
    parser.add_argument("--clinical-b", type=Path, default=None,
                        help="Second clinical table (samples x covariates)")
    parser.add_argument("--sample-col-a", default=None,
                        help="Sample id column of --clinical-a (default: first column)")
    parser.add_argument("--sample-col-b", default=None,
                        help="Sample id column of --clinical-b (default: first column)")
    parser.add_argument("--output", "-o", type=Path, required=True,
                        help="Output directory for results")

    # Alignment and transforms
    parser.add_argument("--min-samples", type=_positive_int, default=None,
                        help="Minimum number of common samples (default: 1)")
    parser.add_argument("--pseudocount", type=_positive_float, default=None,
                        help="Pseudocount for log2(x + pseudocount) (default: 1)")
    parser.add_argument("--on-degenerate", choices=["raise", "drop"], default=None,
                        help="Zero-variance genes: fail or drop them (default: raise)")
    parser.add_argument("--n-genes", type=_positive_int, default=None,
                        help="Number of top-variance genes (default: 500)")

    # Heatmap
    parser.add_argument("--n-colors", type=_color_count, default=None,
                        help="Number of heatmap color buckets (default: 64)")
    parser.add_argument("--value-range", type=float, nargs=2, metavar=("LOW", "HIGH"),
                        default=None, help="Heatmap clamping range (default: -2 2)")
    parser.add_argument("--top-to-bottom", action=argparse.BooleanOptionalAction, default=None,
                        help="Draw the first gene row at the top (default: yes)")
    parser.add_argument("--order-by-dendrogram", action=argparse.BooleanOptionalAction,
                        default=None, help="Order heatmap rows/columns by dendrogram (default: yes)")

    # Clustering
    parser.add_argument("--metric", choices=[m.value for m in DistanceMetric], default=None,
                        help="Distance metric (default: euclidean)")
    parser.add_argument("--linkage", choices=[l.value for l in Linkage], default=None,
                        help="Linkage method (default: complete)")
    parser.add_argument("--minkowski-p", type=_minkowski_power, default=None,
                        help="Minkowski power p (default: 3)")
    parser.add_argument("--n-clusters", type=_positive_int, default=None,
                        help="Number of sample clusters cut from the tree (default: 2)")

    # Embedding
    parser.add_argument("--perplexity", type=_perplexity, default=None,
                        help="t-SNE perplexity, 1 < perplexity < n_samples (default: 30)")
    parser.add_argument("--max-iterations", type=_iterations, default=None,
                        help="t-SNE iteration budget (default: 1000)")
    parser.add_argument("--seed", type=int, default=None,
                        help="t-SNE random seed (default: unseeded, not reproducible)")

    # Association
    parser.add_argument("--association-table", choices=["clinical_a", "clinical_b"], default=None,
                        help="Clinical table holding the tested covariate (default: clinical_a)")
    parser.add_argument("--association-column", default=None,
                        help="Categorical covariate tested against clusters "
                             "(default: ER_STATUS_BY_IHC)")
    parser.add_argument("--yates", action=argparse.BooleanOptionalAction, default=None,
                        help="Apply Yates' continuity correction to 2x2 tables (default: no)")

    # Figures and logging
    parser.add_argument("--figures", action="store_true",
                        help="Also write figures and an HTML report")
    parser.add_argument("--figure-format", choices=["png", "pdf", "svg"], default="png",
                        help="Figure file format (default: png)")
    parser.add_argument("--verbose", "-v", action="store_true",
                        help="Debug-level logging")

    parser.set_defaults(func=run_analysis)


def _write_outputs(result, output_dir: Path) -> dict[str, Path]:
    from erexplore.io.writers import (
        write_cluster_assignments,
        write_contingency_table,
        write_embedding,
        write_expression_matrix,
        write_run_summary,
        write_sample_key,
    )

    summary = result.summary()
    summary["timestamp"] = datetime.now().isoformat()

    return {
        "sample_key": write_sample_key(result.aligned.sample_key, output_dir / "sample_key.csv"),
        "top_genes": write_expression_matrix(result.top_genes, output_dir / "top_genes.csv"),
        "standardized": write_expression_matrix(
            result.standardized, output_dir / "standardized.csv"
        ),
        "assignments": write_cluster_assignments(
            result.assignments, output_dir / "cluster_assignments.csv"
        ),
        "embedding": write_embedding(result.embedding, output_dir / "embedding.csv"),
        "contingency": write_contingency_table(result.contingency, output_dir / "contingency.csv"),
        "expected": write_contingency_table(
            result.chi_square.expected, output_dir / "expected_counts.csv"
        ),
        "summary": write_run_summary(summary, output_dir / "run_summary.json"),
    }


def _write_figures(result, output_dir: Path, format: str) -> list[Path]:
    from erexplore.stats.summaries import expression_histogram, summarize_samples
    from erexplore.viz import (
        FigureCollection,
        configure_style,
        format_pvalue,
        plot_dendrogram,
        plot_embedding,
        plot_heatmap,
        plot_histogram,
        plot_sample_boxplots,
    )

    palette = configure_style("notebook")
    column = result.config.association.column

    figures = FigureCollection()
    figures.add("raw_histogram", plot_histogram(
        expression_histogram(result.aligned.expression), "Raw counts", xlabel="count"))
    figures.add("log_histogram", plot_histogram(
        expression_histogram(result.log_expression), "log2 expression", xlabel="log2(count + pc)"))
    figures.add("sample_boxplots", plot_sample_boxplots(
        summarize_samples(result.log_expression), "log2 expression per sample"))
    figures.add("heatmap", plot_heatmap(
        result.heatmap, f"Top {result.standardized.n_genes} genes (z-score)"))
    figures.add("sample_dendrogram", plot_dendrogram(result.clusters.sample_dendrogram))
    figures.add("embedding_covariate", plot_embedding(
        result.embedding,
        groups=result.labels.rename(column),
        title=f"t-SNE colored by {column}",
        palette=palette,
    ))
    figures.add("embedding_clusters", plot_embedding(
        result.embedding,
        groups=result.assignments.astype(str),
        title=f"t-SNE colored by cluster ({format_pvalue(result.chi_square.p_value)})",
        palette=palette,
    ))

    figure_dir = output_dir / "figures"
    paths = figures.save_all(figure_dir, format=format)
    paths.append(figures.to_html_report(figure_dir / "report.html"))
    figures.close_all()
    return paths


def run_analysis(args: argparse.Namespace) -> int:
    """Execute the run command."""
    from erexplore.cli.config import (
        config_from_args,
        load_config,
        merge_config_with_args,
        validate_config,
    )
    from erexplore.exceptions import ExploreError
    from erexplore.pipeline import run_from_config

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    logger = logging.getLogger(__name__)

    # Load and merge config file if provided
    if args.config:
        print(f"Loading configuration from: {args.config}")
        try:
            config = load_config(args.config)
            validate_config(config)
            args = merge_config_with_args(config, args, getattr(args, "raw_args", None))
        except (FileNotFoundError, ValueError) as e:
            print(f"ERROR: Config file error: {e}")
            return 1

    try:
        config = config_from_args(args)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    for name, flag in (("expression", "--expression"),
                       ("clinical_a", "--clinical-a"),
                       ("clinical_b", "--clinical-b")):
        if getattr(config.inputs, name) is None:
            print(f"ERROR: {flag} is required (via CLI or config file)")
            return 1

    start_time = datetime.now()
    print(f"\n{'='*70}")
    print("  Exploratory Expression Analysis")
    print(f"{'='*70}")
    print(f"Started: {start_time.strftime('%Y-%m-%d %H:%M:%S')}\n")

    try:
        result = run_from_config(config)
    except ExploreError as e:
        logger.error(f"Analysis failed: {e}")
        print(f"ERROR: {e}")
        return 1

    args.output.mkdir(parents=True, exist_ok=True)
    _write_outputs(result, args.output)
    if args.figures:
        paths = _write_figures(result, args.output, args.figure_format)
        logger.info(f"Wrote {len(paths)} figure files to {args.output / 'figures'}")

    chi = result.chi_square
    print(f"\n{'='*70}")
    print("  Results")
    print(f"{'='*70}")
    print(f"  Samples analyzed:  {result.aligned.n_samples}")
    print(f"  Genes selected:    {result.standardized.n_genes}")
    print(f"  Clustering:        {config.clustering.metric} / {config.clustering.linkage}, "
          f"k={config.clustering.n_clusters}")
    print(f"  Cluster sizes:     "
          + ", ".join(f"{k}: {v}" for k, v in result.assignments.value_counts().sort_index().items()))
    print(f"  Chi-square:        {chi.statistic:.3f} (dof={chi.dof}), p = {chi.p_value:.3g}")
    if chi.low_expected_count:
        print(f"  WARNING: expected counts below 5 (min {chi.min_expected:.2f}); "
              f"the p-value is approximate")
    print(f"  Elapsed:           {datetime.now() - start_time}")

    logger.info(f"Results saved to: {args.output}")
    return 0
