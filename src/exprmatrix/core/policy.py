"""
Numeric degeneracy conventions.

Statistics over expression data routinely hit degenerate input: constant
rows (sd = 0), rows with too few valid values for a test, NaN p-values. These
resolve silently to fixed values rather than raising.
"""

from __future__ import annotations

import numpy as np

__all__ = [
    'ZERO_SD_SCORE',
    'INVALID_P_VALUE',
    'INVALID_T_STAT',
    'zscore_or_zero',
    'sanitize_p_value',
    'sanitize_p_values',
]

ZERO_SD_SCORE: float = 0.0
"""Z-score assigned to every value when the standard deviation is 0."""

INVALID_P_VALUE: float = 1.0
"""P-value substituted for NaN/infinite test results."""

INVALID_T_STAT: float = 1.0
"""T statistic substituted for NaN/infinite results when written as an annotation."""


def zscore_or_zero(values: np.ndarray, mean: float, sd: float) -> np.ndarray:
    """
    (values - mean) / sd, with ZERO_SD_SCORE when sd is 0 or not finite
    and for every invalid input value.
    """
    values = np.asarray(values, dtype=np.float64)
    if sd == 0 or not np.isfinite(sd) or not np.isfinite(mean):
        return np.full(values.shape, ZERO_SD_SCORE)
    out = (values - mean) / sd
    out[~np.isfinite(values)] = ZERO_SD_SCORE
    return out


def sanitize_p_value(p: float) -> float:
    return float(p) if np.isfinite(p) else INVALID_P_VALUE


def sanitize_p_values(p: np.ndarray, fill: float = INVALID_P_VALUE) -> np.ndarray:
    """Copy of ``p`` with NaN/inf replaced by ``fill``."""
    p = np.array(p, dtype=np.float64)
    p[~np.isfinite(p)] = fill
    return p
