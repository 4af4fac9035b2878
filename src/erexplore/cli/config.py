"""
Configuration file support for the erexplore CLI.

Supports YAML and JSON config files with CLI argument override. The
config file mirrors ``AnalysisConfig``::

    inputs:
      expression: data/data_mrna_seq_v2_rsem.txt
      clinical_a: data/data_clinical_patient.txt
      clinical_b: data/data_clinical_sample.txt
    selection:
      n_genes: 500
    clustering:
      metric: euclidean
      linkage: complete
      n_clusters: 2
    embedding:
      perplexity: 30
      random_state: 42
    association:
      table: clinical_a
      column: ER_STATUS_BY_IHC
"""

import json
from argparse import Namespace
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml

from erexplore.exceptions import InvalidArgumentError
from erexplore.stats.clustering import Linkage
from erexplore.stats.distances import DistanceMetric
from erexplore.stats.embedding import MIN_ITERATIONS


@dataclass
class InputsConfig:
    """Input file locations."""
    expression: Optional[Path] = None
    clinical_a: Optional[Path] = None
    clinical_b: Optional[Path] = None
    sample_col_a: Optional[str] = None
    sample_col_b: Optional[str] = None


@dataclass
class AlignmentConfig:
    """Sample alignment configuration."""
    min_samples: int = 1


@dataclass
class TransformConfig:
    """Log transform and row standardization configuration."""
    pseudocount: float = 1.0
    on_degenerate: str = "raise"


@dataclass
class SelectionConfig:
    """Top-variance gene selection configuration."""
    n_genes: int = 500


@dataclass
class HeatmapConfig:
    """Heatmap rendering configuration."""
    n_colors: int = 64
    value_range: Tuple[float, float] = (-2.0, 2.0)
    top_to_bottom: bool = True
    order_by_dendrogram: bool = True


@dataclass
class ClusteringConfig:
    """Distance metric, linkage and tree cut configuration."""
    metric: str = "euclidean"
    linkage: str = "complete"
    minkowski_p: float = 3.0
    n_clusters: int = 2


@dataclass
class EmbeddingConfig:
    """t-SNE configuration. random_state=None gives an unseeded run."""
    perplexity: float = 30.0
    max_iterations: int = 1000
    random_state: Optional[int] = None


@dataclass
class AssociationConfig:
    """Covariate tested against the sample clusters."""
    table: str = "clinical_a"
    column: str = "ER_STATUS_BY_IHC"
    correction: bool = False


@dataclass
class AnalysisConfig:
    """
    Complete configuration schema for ``erexplore run``.

    Mirrors the CLI argument structure for consistency.
    """
    inputs: InputsConfig = field(default_factory=InputsConfig)
    alignment: AlignmentConfig = field(default_factory=AlignmentConfig)
    transform: TransformConfig = field(default_factory=TransformConfig)
    selection: SelectionConfig = field(default_factory=SelectionConfig)
    heatmap: HeatmapConfig = field(default_factory=HeatmapConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    embedding: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    association: AssociationConfig = field(default_factory=AssociationConfig)

    @classmethod
    def from_dict(cls, config: Dict[str, Any]) -> "AnalysisConfig":
        """
        Build a config from a (validated) dictionary.

        Unknown sections or keys raise InvalidArgumentError.
        """
        validate_config(config)
        sections = {}
        for section in fields(cls):
            values = dict(config.get(section.name) or {})
            section_cls = section.default_factory
            known = {f.name for f in fields(section_cls)}
            unknown = set(values) - known
            if unknown:
                raise InvalidArgumentError(
                    f"Unknown keys in config section '{section.name}': {sorted(unknown)}"
                )
            if section.name == "inputs":
                values = {
                    k: Path(v) if v is not None and k in ("expression", "clinical_a", "clinical_b") else v
                    for k, v in values.items()
                }
            if "value_range" in values:
                values["value_range"] = tuple(float(v) for v in values["value_range"])
            sections[section.name] = section_cls(**values)
        return cls(**sections)

    def to_dict(self) -> Dict[str, Any]:
        """Plain-dict view (paths as strings) for run summaries."""
        data = asdict(self)
        for key, value in data["inputs"].items():
            if isinstance(value, Path):
                data["inputs"][key] = str(value)
        data["heatmap"]["value_range"] = list(data["heatmap"]["value_range"])
        return data


def load_config(config_path: Path) -> Dict[str, Any]:
    """
    Load configuration from YAML or JSON file.

    Parameters:
        config_path: Path to config file (.yaml, .yml, or .json)

    Returns:
        Dictionary with configuration values

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If file format is unsupported or invalid

    Examples:
        >>> config = load_config(Path("analysis.yaml"))
        >>> print(config['clustering']['linkage'])
        complete
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    suffix = config_path.suffix.lower()

    try:
        with open(config_path, 'r') as f:
            if suffix in ('.yaml', '.yml'):
                config = yaml.safe_load(f)
            elif suffix == '.json':
                config = json.load(f)
            else:
                raise ValueError(
                    f"Unsupported config format: {suffix}. "
                    f"Use .yaml, .yml, or .json"
                )
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    return config


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    Checks section names, enum choices (metric, linkage, degenerate-row
    policy, association table) and numeric ranges that can be checked
    without data. Data-dependent bounds (k <= gene count, perplexity < N)
    are enforced by the pipeline stages themselves.

    Raises:
        InvalidArgumentError: If configuration is invalid
    """
    known_sections = {f.name for f in fields(AnalysisConfig)}
    unknown = set(config) - known_sections
    if unknown:
        raise InvalidArgumentError(
            f"Unknown config sections {sorted(unknown)}. "
            f"Choose from: {', '.join(sorted(known_sections))}"
        )
    for name in known_sections:
        if config.get(name) is not None and not isinstance(config[name], dict):
            raise InvalidArgumentError(f"Config section '{name}' must be a mapping")

    clustering = config.get('clustering') or {}
    if 'metric' in clustering:
        DistanceMetric.parse(clustering['metric'])
    if 'linkage' in clustering:
        Linkage.parse(clustering['linkage'])
    if 'minkowski_p' in clustering:
        p = clustering['minkowski_p']
        if not _is_number(p) or p < 1:
            raise InvalidArgumentError(f"Minkowski power p must be a number >= 1, got: {p}")
    if 'n_clusters' in clustering:
        k = clustering['n_clusters']
        if not isinstance(k, int) or isinstance(k, bool) or k < 1:
            raise InvalidArgumentError(f"n_clusters must be a positive integer, got: {k}")

    transform = config.get('transform') or {}
    if 'pseudocount' in transform:
        pseudocount = transform['pseudocount']
        if not _is_number(pseudocount) or pseudocount <= 0:
            raise InvalidArgumentError(f"Pseudocount must be positive number, got: {pseudocount}")
    if 'on_degenerate' in transform and transform['on_degenerate'] not in ('raise', 'drop'):
        raise InvalidArgumentError(
            f"Invalid on_degenerate policy '{transform['on_degenerate']}'. Choose from: raise, drop"
        )

    alignment = config.get('alignment') or {}
    if 'min_samples' in alignment:
        m = alignment['min_samples']
        if not isinstance(m, int) or isinstance(m, bool) or m < 1:
            raise InvalidArgumentError(f"min_samples must be a positive integer, got: {m}")

    selection = config.get('selection') or {}
    if 'n_genes' in selection:
        n = selection['n_genes']
        if not isinstance(n, int) or isinstance(n, bool) or n < 1:
            raise InvalidArgumentError(f"n_genes must be a positive integer, got: {n}")

    heatmap = config.get('heatmap') or {}
    if 'n_colors' in heatmap:
        n = heatmap['n_colors']
        if not isinstance(n, int) or isinstance(n, bool) or n < 2:
            raise InvalidArgumentError(f"n_colors must be an integer >= 2, got: {n}")
    if 'value_range' in heatmap:
        vr = heatmap['value_range']
        if (
            not isinstance(vr, (list, tuple))
            or len(vr) != 2
            or not all(_is_number(v) for v in vr)
            or not vr[0] < vr[1]
        ):
            raise InvalidArgumentError(f"value_range must be [low, high] with low < high, got: {vr}")

    embedding = config.get('embedding') or {}
    if 'perplexity' in embedding:
        perplexity = embedding['perplexity']
        if not _is_number(perplexity) or perplexity <= 1:
            raise InvalidArgumentError(f"Perplexity must be a number > 1, got: {perplexity}")
    if 'max_iterations' in embedding:
        iters = embedding['max_iterations']
        if not isinstance(iters, int) or isinstance(iters, bool) or iters < MIN_ITERATIONS:
            raise InvalidArgumentError(
                f"max_iterations must be an integer >= {MIN_ITERATIONS}, got: {iters}"
            )
    if embedding.get('random_state') is not None:
        seed = embedding['random_state']
        if not isinstance(seed, int) or isinstance(seed, bool):
            raise InvalidArgumentError(f"random_state must be an integer or null, got: {seed}")

    association = config.get('association') or {}
    if 'table' in association and association['table'] not in ('clinical_a', 'clinical_b'):
        raise InvalidArgumentError(
            f"Invalid association table '{association['table']}'. "
            f"Choose from: clinical_a, clinical_b"
        )


def _merge_value(cli_value: Any, config_value: Any, was_explicitly_set: bool) -> Any:
    """
    Merge a single config value with CLI argument.

    Rules:
    - CLI args ALWAYS override config if explicitly set
    - If CLI arg not set, use config value
    - If neither set, keep CLI default
    """
    if was_explicitly_set:
        return cli_value
    if config_value is not None:
        return config_value
    return cli_value


# (section, key) in the config file -> argparse destination
ARG_MAPPING: Dict[Tuple[str, str], str] = {
    ('inputs', 'expression'): 'expression',
    ('inputs', 'clinical_a'): 'clinical_a',
    ('inputs', 'clinical_b'): 'clinical_b',
    ('inputs', 'sample_col_a'): 'sample_col_a',
    ('inputs', 'sample_col_b'): 'sample_col_b',
    ('alignment', 'min_samples'): 'min_samples',
    ('transform', 'pseudocount'): 'pseudocount',
    ('transform', 'on_degenerate'): 'on_degenerate',
    ('selection', 'n_genes'): 'n_genes',
    ('heatmap', 'n_colors'): 'n_colors',
    ('heatmap', 'value_range'): 'value_range',
    ('heatmap', 'top_to_bottom'): 'top_to_bottom',
    ('heatmap', 'order_by_dendrogram'): 'order_by_dendrogram',
    ('clustering', 'metric'): 'metric',
    ('clustering', 'linkage'): 'linkage',
    ('clustering', 'minkowski_p'): 'minkowski_p',
    ('clustering', 'n_clusters'): 'n_clusters',
    ('embedding', 'perplexity'): 'perplexity',
    ('embedding', 'max_iterations'): 'max_iterations',
    ('embedding', 'random_state'): 'seed',
    ('association', 'table'): 'association_table',
    ('association', 'column'): 'association_column',
    ('association', 'correction'): 'yates',
}


# Short flags defined by ``erexplore run`` -> argparse destination
SHORT_TO_LONG: Dict[str, str] = {
    'c': 'config',
    'e': 'expression',
    'o': 'output',
    'v': 'verbose',
}


def _explicit_args(cli_args: Optional[List[str]]) -> set:
    explicit = set()
    for arg in cli_args or []:
        if arg.startswith('--'):
            name = arg[2:].split('=', 1)[0]
            if name.startswith('no-'):
                name = name[3:]
            explicit.add(name.replace('-', '_'))
        elif arg.startswith('-') and len(arg) >= 2 and arg[1] in SHORT_TO_LONG:
            # "-e path" or the attached form "-epath"
            explicit.add(SHORT_TO_LONG[arg[1]])
    return explicit


def merge_config_with_args(
    config: Dict[str, Any],
    args: Namespace,
    cli_args: Optional[List[str]] = None,
) -> Namespace:
    """
    Merge config file values with CLI arguments.

    Priority (highest to lowest):
    1. Explicitly provided CLI arguments
    2. Config file values
    3. CLI argument defaults

    Parameters:
        config: Configuration dictionary from load_config()
        args: Parsed CLI arguments (argparse.Namespace)
        cli_args: Raw CLI arguments list (for detecting explicit values)
                  If None, assumes all args are defaults

    Returns:
        Updated Namespace with merged values
    """
    explicit = _explicit_args(cli_args)
    merged = Namespace(**vars(args))

    for (section, key), arg_name in ARG_MAPPING.items():
        section_values = config.get(section) or {}
        if key not in section_values:
            continue
        config_value = section_values[key]
        if config_value is not None and key in ('expression', 'clinical_a', 'clinical_b'):
            config_value = Path(config_value)
        setattr(
            merged,
            arg_name,
            _merge_value(getattr(merged, arg_name, None), config_value, arg_name in explicit),
        )

    return merged


def config_from_args(args: Namespace) -> AnalysisConfig:
    """Build an AnalysisConfig from a (merged) argparse namespace."""
    config: Dict[str, Any] = {}
    for (section, key), arg_name in ARG_MAPPING.items():
        value = getattr(args, arg_name, None)
        if value is None:
            continue
        if isinstance(value, Path):
            value = str(value)
        config.setdefault(section, {})[key] = value
    return AnalysisConfig.from_dict(config)
