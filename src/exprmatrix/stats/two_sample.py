"""
Per-row two-sample tests between two column groups.

For each row, the valid values in the group 1 columns are compared with the
valid values in the group 2 columns. Rows without enough valid values, or
with constant data, produce NaN from scipy; p-values are then replaced with
INVALID_P_VALUE (1.0) so that they never look significant.

Functions:
    t_test: Two-tailed t-test p-values (Welch by default)
    t_stat: Welch t statistics (group 1 minus group 2)
    mann_whitney: Two-sided Mann-Whitney U p-values
"""

from __future__ import annotations

import logging
import warnings
from typing import Callable

import numpy as np
from scipy.stats import mannwhitneyu, ttest_ind

from exprmatrix.core.group import GroupSpec, resolve_columns
from exprmatrix.core.policy import sanitize_p_values
from exprmatrix.ops.apply import MatrixLike, inner
from exprmatrix.utils.statistics import finite

logger = logging.getLogger(__name__)

__all__ = ['group_values', 't_test', 't_stat', 'mann_whitney']

RowTest = Callable[[np.ndarray, np.ndarray], np.ndarray]


def group_values(m: MatrixLike, g1: GroupSpec, g2: GroupSpec) -> tuple[np.ndarray, np.ndarray]:
    """(rows x |g1|) and (rows x |g2|) float arrays of the two groups' columns."""
    c1 = resolve_columns(m, g1)
    c2 = resolve_columns(m, g2)
    values = inner(m).to_double()
    return values[:, c1], values[:, c2]


def _row_tests(a: np.ndarray, b: np.ndarray, test: RowTest) -> np.ndarray:
    """
    Run a vectorized (axis=1) test over every row.

    Complete rows are tested in one call; rows with invalid values are tested
    one at a time on their valid values.
    """
    out = np.full(a.shape[0], np.nan)
    if a.shape[1] == 0 or b.shape[1] == 0:
        return out

    complete = np.isfinite(a).all(axis=1) & np.isfinite(b).all(axis=1)

    with warnings.catch_warnings(), np.errstate(all='ignore'):
        warnings.simplefilter('ignore')

        if complete.any():
            out[complete] = test(a[complete], b[complete])

        for i in np.flatnonzero(~complete):
            x = finite(a[i])
            y = finite(b[i])
            if x.size and y.size:
                out[i] = test(x[np.newaxis, :], y[np.newaxis, :])[0]

    return out


def t_test(m: MatrixLike, g1: GroupSpec, g2: GroupSpec, equal_variance: bool = False) -> np.ndarray:
    """
    Two-tailed t-test p-value per row.

    Args:
        m: Matrix or AnnotatableMatrix
        g1, g2: MatrixGroup objects or column index lists
        equal_variance: Student's t-test if True, Welch's otherwise

    Returns:
        p-values, invalid results replaced by 1.0
    """
    a, b = group_values(m, g1, g2)
    p = _row_tests(a, b, lambda x, y: ttest_ind(x, y, axis=1, equal_var=equal_variance).pvalue)
    logger.debug(f"t_test: {a.shape[0]} rows, {a.shape[1]} vs {b.shape[1]} columns")
    return sanitize_p_values(p)


def t_stat(m: MatrixLike, g1: GroupSpec, g2: GroupSpec) -> np.ndarray:
    """Welch t statistic per row; NaN where it is undefined."""
    a, b = group_values(m, g1, g2)
    return _row_tests(a, b, lambda x, y: ttest_ind(x, y, axis=1, equal_var=False).statistic)


def mann_whitney(m: MatrixLike, g1: GroupSpec, g2: GroupSpec) -> np.ndarray:
    """Two-sided Mann-Whitney U p-value per row, invalid results replaced by 1.0."""
    a, b = group_values(m, g1, g2)
    p = _row_tests(a, b, lambda x, y: mannwhitneyu(x, y, alternative='two-sided', axis=1).pvalue)
    return sanitize_p_values(p)
