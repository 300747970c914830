"""
Concrete Transform steps for expression-matrix pipelines.

Each step wraps one operation from ``exprmatrix.ops`` or ``exprmatrix.stats``
so that a preprocessing chain can be declared in a config file and replayed:

    log -> threshold -> quantile -> collapse -> zscore

Every ``apply`` returns a new AnnotatableMatrix; the input is never modified.
"""

from __future__ import annotations

import logging
from typing import Optional, Sequence

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.group import GroupSpec, MatrixGroup
from exprmatrix.core.transform import Transform
from exprmatrix.ops import elementwise
from exprmatrix.ops.transpose import transpose
from exprmatrix.stats import filters
from exprmatrix.stats.collapse import DEFAULT_DELIMITER, CollapseRule, collapse
from exprmatrix.stats.normalization import NormalizationMethod, normalize_matrix
from exprmatrix.stats.zscore import column_zscore, group_zscore, row_zscore, zscore

logger = logging.getLogger(__name__)

__all__ = [
    'LogTransform',
    'ThresholdTransform',
    'ZScoreTransform',
    'GroupZScoreTransform',
    'NormalizeTransform',
    'QuantileNormalizeTransform',
    'CollapseTransform',
    'TransposeTransform',
    'RowFilterTransform',
]


class LogTransform(Transform):
    """
    Logarithm of every valid value.

    Non-positive values become NaN or -inf; run ThresholdTransform first
    when the data contains zeros.
    """

    def __init__(self, base: float = 2.0):
        super().__init__(name="LogTransform", params={"base": base})
        self.base = base

    def validate(self, matrix: AnnotatableMatrix) -> list[str]:
        errors = super().validate(matrix)
        if self.base <= 0 or self.base == 1:
            errors.append(f"Log base must be positive and not 1, got {self.base}")
        return errors

    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        logger.info(f"Applying {self!r}")
        return elementwise.log(matrix, self.base)


class ThresholdTransform(Transform):
    """Clamp every valid value into ``[lo, hi]``."""

    def __init__(self, lo: float, hi: float):
        super().__init__(name="ThresholdTransform", params={"lo": lo, "hi": hi})
        self.lo = lo
        self.hi = hi

    def validate(self, matrix: AnnotatableMatrix) -> list[str]:
        errors = super().validate(matrix)
        if self.lo > self.hi:
            errors.append(f"Lower bound {self.lo} exceeds upper bound {self.hi}")
        return errors

    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        logger.info(f"Applying {self!r}")
        return elementwise.threshold(matrix, self.lo, self.hi)


class ZScoreTransform(Transform):
    """
    Z-score standardization.

    Params:
        axis: None for one mean/sd over the whole matrix, "row" or "column"
              for per-slice statistics
    """

    AXES = (None, "row", "column")

    def __init__(self, axis: Optional[str] = "row"):
        if axis not in self.AXES:
            raise ValueError(f"axis must be one of {self.AXES}, got {axis!r}")
        super().__init__(name="ZScoreTransform", params={"axis": axis})
        self.axis = axis

    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        logger.info(f"Applying {self!r}")
        if self.axis == "row":
            return row_zscore(matrix)
        if self.axis == "column":
            return column_zscore(matrix)
        return zscore(matrix)


class GroupZScoreTransform(Transform):
    """Z-score each row against the unweighted mean/sd of its column groups."""

    def __init__(self, groups: Sequence[GroupSpec]):
        super().__init__(
            name="GroupZScoreTransform",
            params={"groups": [g.name if isinstance(g, MatrixGroup) else list(g) for g in groups]},
        )
        self.groups = list(groups)

    def validate(self, matrix: AnnotatableMatrix) -> list[str]:
        errors = super().validate(matrix)
        if not self.groups:
            errors.append("No column groups given")
        return errors

    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        logger.info(f"Applying {self!r}")
        return group_zscore(matrix, self.groups)


class NormalizeTransform(Transform):
    """Column normalization by NormalizationMethod (quantile, median_ratio, min_max, none)."""

    def __init__(self, method: NormalizationMethod | str = NormalizationMethod.QUANTILE):
        method = NormalizationMethod(method)
        super().__init__(name="NormalizeTransform", params={"method": method.value})
        self.method = method

    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        logger.info(f"Applying {self!r}")
        return normalize_matrix(matrix, self.method).matrix


class QuantileNormalizeTransform(NormalizeTransform):
    """Quantile normalization: every column gets the same value distribution."""

    def __init__(self):
        super().__init__(NormalizationMethod.QUANTILE)
        self.name = "QuantileNormalizeTransform"
        self.params = {}


class CollapseTransform(Transform):
    """
    Collapse rows sharing a key annotation to the best-scoring row.

    Params:
        key: Row annotation whose text defines duplicate rows
        rule: CollapseRule or its value string
        g1, g2: Column groups (MIN_TTEST only)
        annotation: Numeric row annotation (MAX_ANNOTATION only)
        delimiter: Separator for merged annotations
        equal_variance: Student t-test instead of Welch (MIN_TTEST only)
    """

    def __init__(
        self,
        key: str,
        rule: CollapseRule | str = CollapseRule.MAX_STDEV,
        g1: Optional[GroupSpec] = None,
        g2: Optional[GroupSpec] = None,
        annotation: Optional[str] = None,
        delimiter: str = DEFAULT_DELIMITER,
        equal_variance: bool = False,
    ):
        rule = CollapseRule(rule)
        super().__init__(
            name="CollapseTransform",
            params={"key": key, "rule": rule.value, "annotation": annotation, "delimiter": delimiter},
        )
        self.key = key
        self.rule = rule
        self.g1 = g1
        self.g2 = g2
        self.annotation = annotation
        self.delimiter = delimiter
        self.equal_variance = equal_variance

    def validate(self, matrix: AnnotatableMatrix) -> list[str]:
        errors = super().validate(matrix)
        if self.key not in matrix.row_annotation_names:
            errors.append(f"Key annotation '{self.key}' not found in rows")
        if self.rule == CollapseRule.MIN_TTEST and (self.g1 is None or self.g2 is None):
            errors.append("min_ttest collapse needs two column groups")
        if self.rule == CollapseRule.MAX_ANNOTATION:
            if self.annotation is None:
                errors.append("max_annotation collapse needs an annotation name")
            elif self.annotation not in matrix.row_annotation_names:
                errors.append(f"Score annotation '{self.annotation}' not found in rows")
        return errors

    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        logger.info(f"Applying {self!r}")
        return collapse(
            matrix,
            self.key,
            self.rule,
            g1=self.g1,
            g2=self.g2,
            annotation=self.annotation,
            delimiter=self.delimiter,
            equal_variance=self.equal_variance,
        )


class TransposeTransform(Transform):
    """Swap rows and columns together with their annotation tables."""

    def __init__(self):
        super().__init__(name="TransposeTransform", params={})

    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        logger.info(f"Applying {self!r}")
        return transpose(matrix)


class RowFilterTransform(Transform):
    """
    Keep a subset of rows.

    Exactly one criterion is used, checked in this order:

        regex       annotation text fully matches (keep=False inverts)
        min_sd      population stdev >= min_sd
        min_mean    mean >= min_mean
        min_exp     at least min_samples values >= min_exp
    """

    def __init__(
        self,
        annotation: Optional[str] = None,
        regex: Optional[str] = None,
        keep: bool = True,
        min_sd: Optional[float] = None,
        min_mean: Optional[float] = None,
        min_exp: Optional[float] = None,
        min_samples: int = 1,
    ):
        params = {
            "annotation": annotation,
            "regex": regex,
            "keep": keep,
            "min_sd": min_sd,
            "min_mean": min_mean,
            "min_exp": min_exp,
            "min_samples": min_samples,
        }
        super().__init__(
            name="RowFilterTransform",
            params={k: v for k, v in params.items() if v is not None},
        )
        if regex is None and min_sd is None and min_mean is None and min_exp is None:
            raise ValueError("RowFilterTransform needs one of regex, min_sd, min_mean, min_exp")
        self.annotation = annotation or "name"
        self.regex = regex
        self.keep = keep
        self.min_sd = min_sd
        self.min_mean = min_mean
        self.min_exp = min_exp
        self.min_samples = min_samples

    def validate(self, matrix: AnnotatableMatrix) -> list[str]:
        errors = super().validate(matrix)
        if self.regex is not None and self.annotation not in matrix.row_annotation_names:
            errors.append(f"Filter annotation '{self.annotation}' not found in rows")
        return errors

    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        logger.info(f"Applying {self!r}")
        if self.regex is not None:
            return filters.filter_rows(matrix, self.annotation, self.regex, keep=self.keep)
        if self.min_sd is not None:
            return filters.stdev_filter(matrix, self.min_sd)
        if self.min_mean is not None:
            return filters.mean_filter(matrix, self.min_mean)
        return filters.min_exp_filter(matrix, self.min_exp, self.min_samples)
