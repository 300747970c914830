"""
Z-score standardization: whole matrix, per row, per column, per group.

All variants use the population standard deviation (ddof = 0) of the valid
numbers they look at, and resolve degeneracy silently:

    - sd == 0 (or no valid number at all): every score is 0
    - an invalid numeric cell (NaN, inf, empty): score 0

Biological Context:
    Row z-scores put genes with very different expression levels on one scale
    for heatmaps and clustering. Group z-scores use a baseline built from
    phenotype groups so that an unbalanced design (10 CTRL vs 3 CASE) does
    not let the larger group dominate the row mean.

Examples:
    >>> from exprmatrix.core.storage import DoubleMatrix
    >>> from exprmatrix.stats.zscore import row_zscore
    >>> row_zscore(DoubleMatrix.from_array([[1, 3], [5, 5]])).to_double()
    array([[-1.,  1.],
           [ 0.,  0.]])
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.capability import Capability
from exprmatrix.core.cell import CellType
from exprmatrix.core.group import GroupSpec, resolve_columns
from exprmatrix.core.matrix import Matrix
from exprmatrix.core.policy import ZERO_SD_SCORE, zscore_or_zero
from exprmatrix.core.storage import DoubleMatrix, MixedMatrix
from exprmatrix.ops.apply import MatrixLike, col_eval, matrix_op, row_eval, row_mean, row_pop_stdev
from exprmatrix.utils.statistics import finite, pop_stdev

logger = logging.getLogger(__name__)

__all__ = ['zscore', 'row_zscore', 'column_zscore', 'group_zscore']


def _cell_type_array(m: Matrix) -> np.ndarray:
    if m.has_capability(Capability.MIXED):
        return m.cell_types.reshape(m.shape).copy()
    if m.has_capability(Capability.NUMERIC):
        return np.full(m.shape, CellType.NUMBER, dtype=np.int8)
    if m.has_capability(Capability.TEXT_ONLY):
        return np.full(m.shape, CellType.TEXT, dtype=np.int8)
    out = np.empty(m.shape, dtype=np.int8)
    for i in range(m.row_count):
        for j in range(m.column_count):
            out[i, j] = m.get_cell_type(i, j)
    return out


@matrix_op
def zscore(m: Matrix) -> Matrix:
    """
    Standardize every numeric cell against the mean/sd of all valid numbers.

    Returns:
        MixedMatrix keeping TEXT cells if the input has any, otherwise a
        DoubleMatrix
    """
    types = _cell_type_array(m)
    values = m.to_double()
    numbers = types == CellType.NUMBER
    valid = numbers & np.isfinite(values)

    if valid.any():
        mean = float(values[valid].mean())
        sd = pop_stdev(values[valid])
    else:
        mean = sd = 0.0

    scores = zscore_or_zero(values, mean, sd)
    keep_text = bool((types == CellType.TEXT).any())
    logger.debug(f"zscore: mean={mean}, sd={sd}, keep_text={keep_text}")

    if not keep_text:
        out = DoubleMatrix(m.row_count, m.column_count, fill=ZERO_SD_SCORE)
        out.data[numbers.ravel()] = scores[numbers]
        return out

    out = MixedMatrix(m.row_count, m.column_count)
    for i in range(m.row_count):
        for j in range(m.column_count):
            if types[i, j] == CellType.NUMBER:
                out.update_value(i, j, scores[i, j])
            elif types[i, j] == CellType.TEXT:
                out.update_text(i, j, m.get_text(i, j))
    return out


def _scores_by_row(values: np.ndarray, means: np.ndarray, sds: np.ndarray) -> DoubleMatrix:
    out = DoubleMatrix(values.shape[0], values.shape[1])
    scores = out.data.reshape(values.shape)
    for i in range(values.shape[0]):
        scores[i] = zscore_or_zero(values[i], means[i], sds[i])
    return out


@matrix_op
def row_zscore(m: Matrix) -> DoubleMatrix:
    """Standardize each row against its own valid values."""
    means = row_eval(m, row_mean)
    sds = row_eval(m, row_pop_stdev)
    return _scores_by_row(m.to_double(), means, sds)


@matrix_op
def column_zscore(m: Matrix) -> DoubleMatrix:
    """Standardize each column against its own valid values."""
    means = col_eval(m, row_mean)
    sds = col_eval(m, row_pop_stdev)
    scores = _scores_by_row(m.to_double().T, means, sds).to_double().T
    return DoubleMatrix.from_array(scores)


def group_zscore(m: MatrixLike, groups: Sequence[GroupSpec]) -> MatrixLike:
    """
    Standardize each row against a baseline built from column groups.

    For every row the mean and population sd are computed within each group;
    the baseline mean/sd are the unweighted averages of those per-group values.
    Groups with no columns, or no valid value in that row, do not take part;
    a row where no group takes part scores 0 throughout.

    Args:
        m: Matrix or AnnotatableMatrix
        groups: MatrixGroup objects (resolved against ``m``'s column
            annotations) or explicit column index lists
    """
    indices = [resolve_columns(m, g) for g in groups]
    values = m.to_double()
    n_rows = values.shape[0]

    means = np.zeros(n_rows)
    sds = np.zeros(n_rows)

    for i in range(n_rows):
        group_means = []
        group_sds = []

        for columns in indices:
            if not columns:
                continue
            group_values = finite(values[i, columns])
            if group_values.size == 0:
                continue
            group_means.append(float(group_values.mean()))
            group_sds.append(pop_stdev(group_values))

        if group_means:
            means[i] = np.mean(group_means)
            sds[i] = np.mean(group_sds)

    logger.debug(f"group_zscore over {len(indices)} groups: sizes {[len(c) for c in indices]}")

    out = _scores_by_row(values, means, sds)
    if isinstance(m, AnnotatableMatrix):
        return m.with_matrix(out)
    return out

