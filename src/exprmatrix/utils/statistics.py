"""
Shared 1-D statistical helpers.

Used by the row/column reducers, the z-score and collapse code, and the
row-statistics annotations. Every function takes a 1-D array, ignores
non-finite values, and returns NaN when nothing valid is left.

Functions:
    pop_stdev: Population standard deviation (ddof = 0)
    tied_rank: Average ranks with ties sharing the mean of their positions
    mode: Most frequent value (smallest wins ties)
    iqr: Interquartile range
    quart_coeff_disp: Quartile coefficient of dispersion
"""

from __future__ import annotations

import numpy as np
from scipy.stats import rankdata

__all__ = [
    'finite',
    'pop_stdev',
    'tied_rank',
    'mode',
    'iqr',
    'quart_coeff_disp',
]


def finite(values: np.ndarray) -> np.ndarray:
    """Float64 copy of the finite entries of ``values``."""
    values = np.asarray(values, dtype=np.float64).ravel()
    return values[np.isfinite(values)]


def pop_stdev(values: np.ndarray) -> float:
    """
    Population standard deviation sqrt(sum((x - mean)^2) / n).

    Example:
        >>> pop_stdev(np.array([1.0, 2.0, 3.0, 4.0]))
        1.118033988749895
    """
    values = finite(values)
    if values.size == 0:
        return float('nan')
    return float(np.std(values, ddof=0))


def tied_rank(values: np.ndarray) -> np.ndarray:
    """
    1-based ranks where tied values share the average of their positions.

    Example:
        >>> tied_rank(np.array([10.0, 20.0, 20.0, 30.0]))
        array([1. , 2.5, 2.5, 4. ])
    """
    return rankdata(np.asarray(values, dtype=np.float64), method='average')


def mode(values: np.ndarray) -> float:
    """Most frequent finite value; the smallest such value when several tie."""
    values = finite(values)
    if values.size == 0:
        return float('nan')
    uniques, counts = np.unique(values, return_counts=True)
    return float(uniques[np.argmax(counts)])


def iqr(values: np.ndarray) -> float:
    """Q3 - Q1 with linear interpolation between order statistics."""
    values = finite(values)
    if values.size == 0:
        return float('nan')
    q1, q3 = np.percentile(values, [25, 75])
    return float(q3 - q1)


def quart_coeff_disp(values: np.ndarray) -> float:
    """
    Quartile coefficient of dispersion (Q3 - Q1) / (Q3 + Q1).

    A scale-free spread measure, robust to outliers. NaN when Q3 + Q1 == 0.
    """
    values = finite(values)
    if values.size == 0:
        return float('nan')
    q1, q3 = np.percentile(values, [25, 75])
    denominator = q3 + q1
    if denominator == 0:
        return float('nan')
    return float((q3 - q1) / denominator)
