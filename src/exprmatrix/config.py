"""
Configuration file support for exprmatrix pipelines.

Supports YAML and JSON config files describing engine settings and an ordered
list of transform steps:

    engine:
      annotation_delimiter: ";"
      key_annotation: "Gene Symbol"
      equal_variance: false
    transforms:
      - threshold: {lo: 1, hi: 65535}
      - log: {base: 2}
      - quantile: {}
      - collapse: {rule: max_stdev}
      - zscore: {axis: row}
"""

import json
import logging
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

import yaml

from exprmatrix.core.annotated import NAME_ANNOTATION, AnnotatableMatrix
from exprmatrix.core.group import GroupSpec, MatrixGroup
from exprmatrix.core.transform import Transform
from exprmatrix.stats.collapse import DEFAULT_DELIMITER
from exprmatrix.transforms import (
    CollapseTransform,
    GroupZScoreTransform,
    LogTransform,
    NormalizeTransform,
    QuantileNormalizeTransform,
    RowFilterTransform,
    ThresholdTransform,
    TransposeTransform,
    ZScoreTransform,
)

logger = logging.getLogger(__name__)


@dataclass
class EngineConfig:
    """Engine-wide defaults applied to transforms built from a config."""
    annotation_delimiter: str = DEFAULT_DELIMITER
    key_annotation: str = NAME_ANNOTATION
    equal_variance: bool = False

    @classmethod
    def from_dict(cls, values: Optional[Dict[str, Any]]) -> "EngineConfig":
        """
        Build from the ``engine`` section of a config.

        Unknown keys are logged and ignored.
        """
        if not values:
            return cls()

        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            logger.warning(f"Ignoring unknown engine settings: {unknown}")

        return cls(**{k: v for k, v in values.items() if k in known})


def load_config(config_path: Union[str, Path]) -> Dict[str, Any]:
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
        >>> config = load_config(Path("pipeline.yaml"))   # doctest: +SKIP
        >>> config['transforms'][0]
        {'log': {'base': 2}}
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
        raise ValueError(f"Invalid YAML in config file: {e}")
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}")

    if config is None:
        return {}

    if not isinstance(config, dict):
        raise ValueError("Config file must contain a dictionary/mapping at top level")

    logger.info(f"Loaded config {config_path} ({len(config.get('transforms') or [])} transforms)")
    return config


def _group(entry: Any) -> GroupSpec:
    """Group from a mapping ({name, patterns, columns, annotation}) or an index list."""
    if isinstance(entry, dict):
        return MatrixGroup(
            name=entry.get('name', ''),
            patterns=tuple(entry.get('patterns', ())),
            columns=tuple(entry.get('columns', ())),
            annotation=entry.get('annotation', NAME_ANNOTATION),
        )
    if isinstance(entry, (list, tuple)):
        return [int(c) for c in entry]
    raise ValueError(f"Column group must be a mapping or an index list, got: {entry!r}")


def _log(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return LogTransform(base=params.get('base', 2.0))


def _threshold(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return ThresholdTransform(lo=params['lo'], hi=params['hi'])


def _zscore(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return ZScoreTransform(axis=params.get('axis', 'row'))


def _group_zscore(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return GroupZScoreTransform([_group(g) for g in params.get('groups', [])])


def _normalize(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return NormalizeTransform(method=params.get('method', 'quantile'))


def _quantile(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return QuantileNormalizeTransform()


def _collapse(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return CollapseTransform(
        key=params.get('key', engine.key_annotation),
        rule=params.get('rule', 'max_stdev'),
        g1=_group(params['g1']) if 'g1' in params else None,
        g2=_group(params['g2']) if 'g2' in params else None,
        annotation=params.get('annotation'),
        delimiter=params.get('delimiter', engine.annotation_delimiter),
        equal_variance=params.get('equal_variance', engine.equal_variance),
    )


def _transpose(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return TransposeTransform()


def _filter(params: Dict[str, Any], engine: EngineConfig) -> Transform:
    return RowFilterTransform(**params)


TRANSFORM_BUILDERS: Dict[str, Callable[[Dict[str, Any], EngineConfig], Transform]] = {
    'log': _log,
    'threshold': _threshold,
    'zscore': _zscore,
    'group_zscore': _group_zscore,
    'normalize': _normalize,
    'quantile': _quantile,
    'collapse': _collapse,
    'transpose': _transpose,
    'filter': _filter,
}


def build_transforms(config: Dict[str, Any]) -> List[Transform]:
    """
    Build the ordered transform list of a config.

    Each entry of ``config['transforms']`` is either a step name or a
    single-key mapping ``{name: params}``.

    Raises:
        ValueError: If an entry is malformed or names an unknown step
    """
    engine = EngineConfig.from_dict(config.get('engine'))
    steps = config.get('transforms') or []
    if not isinstance(steps, list):
        raise ValueError(f"'transforms' must be a list, got: {type(steps).__name__}")

    transforms: List[Transform] = []
    for entry in steps:
        if isinstance(entry, str):
            name, params = entry, {}
        elif isinstance(entry, dict) and len(entry) == 1:
            name, params = next(iter(entry.items()))
            params = params or {}
        else:
            raise ValueError(f"Transform entry must be a name or a single-key mapping, got: {entry!r}")

        if name not in TRANSFORM_BUILDERS:
            raise ValueError(
                f"Unknown transform '{name}'. "
                f"Choose from: {', '.join(TRANSFORM_BUILDERS)}"
            )
        if not isinstance(params, dict):
            raise ValueError(f"Parameters of transform '{name}' must be a mapping, got: {params!r}")

        try:
            transforms.append(TRANSFORM_BUILDERS[name](params, engine))
        except KeyError as e:
            raise ValueError(f"Transform '{name}' is missing parameter {e}") from None
        except TypeError as e:
            raise ValueError(f"Invalid parameters for transform '{name}': {e}") from None

    return transforms


def run_pipeline(matrix: AnnotatableMatrix, transforms: Sequence[Transform]) -> AnnotatableMatrix:
    """
    Apply transforms in order.

    Raises:
        ValueError: If a transform's validate() reports errors
    """
    for step, transform in enumerate(transforms, start=1):
        errors = transform.validate(matrix)
        if errors:
            raise ValueError(f"Step {step} {transform!r} cannot be applied: {'; '.join(errors)}")

        matrix = transform.apply(matrix)
        logger.info(f"Step {step}/{len(transforms)} {transform.name}: {matrix.row_count}x{matrix.column_count}")

    return matrix
