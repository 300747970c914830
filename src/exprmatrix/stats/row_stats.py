"""
Per-row statistics written back as numeric row annotations.

Each function returns a view of the input (same inner matrix, copied
annotations) with one extra row annotation. These annotations can then drive
``collapse_max_annotation`` or row filters.

    add_row_sums          "Sum"
    add_row_means         "Mean"
    add_row_medians       "Median"
    add_row_modes         "Mode"
    add_iqr               "IQR"
    add_quart_coeff_disp  "QuartCoeffDisp"
    add_t_stat            "T-Stat"  (undefined statistics become 1.0)
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.group import GroupSpec
from exprmatrix.core.policy import INVALID_T_STAT
from exprmatrix.ops.apply import row_eval, row_mean, row_median, row_mode, row_sum
from exprmatrix.stats.two_sample import t_stat
from exprmatrix.utils import statistics

__all__ = [
    'SUM_ANNOTATION',
    'MEAN_ANNOTATION',
    'MEDIAN_ANNOTATION',
    'MODE_ANNOTATION',
    'IQR_ANNOTATION',
    'QUART_COEFF_DISP_ANNOTATION',
    'T_STAT_ANNOTATION',
    'add_row_annotation',
    'add_row_sums',
    'add_row_means',
    'add_row_medians',
    'add_row_modes',
    'add_iqr',
    'add_quart_coeff_disp',
    'add_t_stat',
]

SUM_ANNOTATION = "Sum"
MEAN_ANNOTATION = "Mean"
MEDIAN_ANNOTATION = "Median"
MODE_ANNOTATION = "Mode"
IQR_ANNOTATION = "IQR"
QUART_COEFF_DISP_ANNOTATION = "QuartCoeffDisp"
T_STAT_ANNOTATION = "T-Stat"


def add_row_annotation(m: AnnotatableMatrix, name: str, values: np.ndarray) -> AnnotatableMatrix:
    """View of ``m`` with ``values`` stored as row annotation ``name``."""
    ret = m.view()
    ret.set_row_annotations(name, [float(v) for v in values])
    return ret


def _per_row(m: AnnotatableMatrix, stat: Callable[[np.ndarray], float]) -> np.ndarray:
    return np.array([stat(m.row_as_double(i)) for i in range(m.row_count)], dtype=np.float64)


def add_row_sums(m: AnnotatableMatrix) -> AnnotatableMatrix:
    return add_row_annotation(m, SUM_ANNOTATION, row_eval(m, row_sum))


def add_row_means(m: AnnotatableMatrix) -> AnnotatableMatrix:
    return add_row_annotation(m, MEAN_ANNOTATION, row_eval(m, row_mean))


def add_row_medians(m: AnnotatableMatrix) -> AnnotatableMatrix:
    return add_row_annotation(m, MEDIAN_ANNOTATION, row_eval(m, row_median))


def add_row_modes(m: AnnotatableMatrix) -> AnnotatableMatrix:
    return add_row_annotation(m, MODE_ANNOTATION, row_eval(m, row_mode))


def add_iqr(m: AnnotatableMatrix) -> AnnotatableMatrix:
    """Interquartile range of each row."""
    return add_row_annotation(m, IQR_ANNOTATION, _per_row(m, statistics.iqr))


def add_quart_coeff_disp(m: AnnotatableMatrix) -> AnnotatableMatrix:
    """Quartile coefficient of dispersion of each row."""
    return add_row_annotation(m, QUART_COEFF_DISP_ANNOTATION, _per_row(m, statistics.quart_coeff_disp))


def add_t_stat(m: AnnotatableMatrix, g1: GroupSpec, g2: GroupSpec) -> AnnotatableMatrix:
    """Welch t statistic of group 1 vs group 2 for each row."""
    stats = t_stat(m, g1, g2)
    stats[~np.isfinite(stats)] = INVALID_T_STAT
    return add_row_annotation(m, T_STAT_ANNOTATION, stats)
