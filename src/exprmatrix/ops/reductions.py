"""
Whole-matrix and per-row/per-column summary statistics.

All reductions consider valid numbers only; TEXT, EMPTY, NaN and infinite
cells are ignored.

Edge cases:
    - ``min`` of a matrix with no valid number is +MAX_FLOAT and ``max`` is
      -MAX_FLOAT (the untouched seeds of the scan)
    - ``sum``, ``mean``, ``median`` and ``mode`` return NULL_NUMBER instead
    - per-row/per-column vectors hold NULL_NUMBER for all-invalid slices
"""

from __future__ import annotations

import numpy as np

from exprmatrix.core.cell import MAX_FLOAT, NULL_NUMBER
from exprmatrix.ops.apply import (
    MatrixLike,
    col_eval,
    inner,
    row_eval,
    row_max,
    row_mean,
    row_median,
    row_min,
    row_mode,
    row_pop_stdev,
    row_sum,
)
from exprmatrix.utils import statistics

__all__ = [
    'min',
    'max',
    'sum',
    'mean',
    'median',
    'mode',
    'row_sums',
    'row_means',
    'row_medians',
    'row_modes',
    'row_stdevs',
    'row_maxs',
    'row_mins',
    'column_sums',
    'column_means',
    'column_medians',
    'column_modes',
    'column_stdevs',
]


def min(m: MatrixLike) -> float:  # noqa: A001
    """Smallest valid number; +MAX_FLOAT when there is none."""
    values = inner(m).valid_values()
    return float(values.min()) if values.size else MAX_FLOAT


def max(m: MatrixLike) -> float:  # noqa: A001
    """Largest valid number; -MAX_FLOAT when there is none."""
    values = inner(m).valid_values()
    return float(values.max()) if values.size else -MAX_FLOAT


def sum(m: MatrixLike) -> float:  # noqa: A001
    values = inner(m).valid_values()
    return float(values.sum()) if values.size else NULL_NUMBER


def mean(m: MatrixLike) -> float:
    values = inner(m).valid_values()
    return float(values.mean()) if values.size else NULL_NUMBER


def median(m: MatrixLike) -> float:
    values = inner(m).valid_values()
    return float(np.median(values)) if values.size else NULL_NUMBER


def mode(m: MatrixLike) -> float:
    return statistics.mode(inner(m).valid_values())


def row_sums(m: MatrixLike) -> np.ndarray:
    return row_eval(m, row_sum)


def row_means(m: MatrixLike) -> np.ndarray:
    return row_eval(m, row_mean)


def row_medians(m: MatrixLike) -> np.ndarray:
    return row_eval(m, row_median)


def row_modes(m: MatrixLike) -> np.ndarray:
    return row_eval(m, row_mode)


def row_stdevs(m: MatrixLike) -> np.ndarray:
    """Population standard deviation of each row."""
    return row_eval(m, row_pop_stdev)


def row_maxs(m: MatrixLike) -> np.ndarray:
    return row_eval(m, row_max)


def row_mins(m: MatrixLike) -> np.ndarray:
    return row_eval(m, row_min)


def column_sums(m: MatrixLike) -> np.ndarray:
    return col_eval(m, row_sum)


def column_means(m: MatrixLike) -> np.ndarray:
    return col_eval(m, row_mean)


def column_medians(m: MatrixLike) -> np.ndarray:
    return col_eval(m, row_median)


def column_modes(m: MatrixLike) -> np.ndarray:
    return col_eval(m, row_mode)


def column_stdevs(m: MatrixLike) -> np.ndarray:
    return col_eval(m, row_pop_stdev)
