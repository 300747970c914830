"""
Between-sample normalization of expression matrices.

- Quantile normalization: forces identical distributions across samples
- Median ratio (DESeq-style size factors): rescales each sample by its median
  ratio to the per-feature geometric mean
- Min-max: scales every value into [0, 1]

The fundamental assumption underlying quantile and median-ratio
normalization is that most features do not change between samples, so
systematic differences between sample distributions reflect technical
variation rather than biology.

References:
    - Bolstad et al. (2003) Bioinformatics 19(2):185-193 (quantile normalization)
    - Anders & Huber (2010) Genome Biology 11:R106 (median ratio size factors)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np
from numpy.typing import NDArray
from scipy.stats import rankdata

from exprmatrix.core.matrix import Matrix
from exprmatrix.core.storage import DoubleMatrix
from exprmatrix.ops import elementwise
from exprmatrix.ops.apply import MatrixLike, applied, col_eval, inner, matrix_op

logger = logging.getLogger(__name__)

__all__ = [
    'NormalizationMethod',
    'NormalizationResult',
    'quantile_normalize',
    'median_ratio_factors',
    'median_ratio',
    'normalize_matrix',
]


class NormalizationMethod(Enum):
    """Available normalization methods."""

    NONE = "none"
    QUANTILE = "quantile"
    MEDIAN_RATIO = "median_ratio"
    MIN_MAX = "min_max"


@dataclass(frozen=True)
class NormalizationResult:
    """Result of normalization procedure.

    Attributes:
        matrix: Normalized matrix (same wrapper type as the input)
        method: Normalization method used
        normalization_factors: Per-sample factors applied (None when the
            method has no per-sample factor)
    """

    matrix: MatrixLike
    method: str
    normalization_factors: NDArray[np.float64] | None = None


@matrix_op
def quantile_normalize(m: Matrix) -> DoubleMatrix:
    """
    Quantile normalization.

    Algorithm:
        1. Stable-sort each column (invalid values sort last)
        2. Reference distribution = mean across columns of the value at each
           rank, ignoring invalid values; ranks where every column is
           invalid are dropped
        3. Tied (average) ranks of each column's valid values
        4. Output = linear interpolation of the reference at those ranks,
           using the tied ranks of the reference itself as the x-axis

    Invalid cells stay NULL_NUMBER. When every column is a permutation of the
    same values, the output equals the input.

    Returns:
        DoubleMatrix of normalized values
    """
    values = m.to_double()
    n_rows, n_cols = values.shape
    out = DoubleMatrix(n_rows, n_cols)
    if values.size == 0:
        return out

    order = np.argsort(values, axis=0, kind='stable')
    sorted_columns = np.take_along_axis(values, order, axis=0)

    with np.errstate(invalid='ignore'):
        valid_sorted = np.where(np.isfinite(sorted_columns), sorted_columns, np.nan)
        counts = np.isfinite(valid_sorted).sum(axis=1)
        reference = np.where(counts > 0, np.nansum(valid_sorted, axis=1) / np.maximum(counts, 1), np.nan)
    reference = reference[np.isfinite(reference)]

    if reference.size == 0:
        logger.debug("quantile_normalize: no valid values, returning all-null matrix")
        return out

    reference_ranks = rankdata(reference, method='average')
    x_order = np.argsort(reference_ranks, kind='stable')
    xp = reference_ranks[x_order]
    fp = reference[x_order]

    normalized = out.data.reshape(n_rows, n_cols)
    for j in range(n_cols):
        column = values[:, j]
        valid = np.isfinite(column)
        if not valid.any():
            continue
        ranks = rankdata(column[valid], method='average')
        normalized[valid, j] = np.interp(ranks, xp, fp)

    logger.debug(f"quantile_normalize: reference of {reference.size} ranks over {n_cols} columns")
    return out


def median_ratio_factors(m: MatrixLike) -> np.ndarray:
    """
    Per-column size factors: median of value / row geometric mean.

    Rows whose geometric mean is undefined (a non-positive or invalid value)
    are excluded; a non-positive or undefined median gives factor 1.
    """
    values = inner(m).to_double()

    with np.errstate(divide='ignore', invalid='ignore'):
        logs = np.log(np.where(np.isfinite(values) & (values > 0), values, np.nan))
        usable = np.isfinite(logs).all(axis=1)
        geo_means = np.full(values.shape[0], np.nan)
        geo_means[usable] = np.exp(logs[usable].mean(axis=1))

    def median_factor(j: int, start: int, length: int, buffer: np.ndarray) -> float:
        column = buffer[start:start + length]
        ratios = column[usable] / geo_means[usable]
        ratios = ratios[np.isfinite(ratios)]
        if ratios.size == 0:
            return 1.0
        med = float(np.median(ratios))
        return med if med > 0 else 1.0

    return col_eval(m, median_factor)


def median_ratio(m: MatrixLike) -> MatrixLike:
    """Divide each column by its median-ratio size factor."""
    factors = median_ratio_factors(m)
    logger.debug(f"median_ratio factors: {factors}")
    return applied(m, lambda row, col, v: v / factors[col])


def normalize_matrix(m: MatrixLike, method: NormalizationMethod | str = NormalizationMethod.QUANTILE) -> NormalizationResult:
    """
    Normalize with the given method.

    This is the main entry point for normalization, dispatching to the
    appropriate method.

    Raises:
        ValueError: If ``method`` is not a known method name
    """
    if isinstance(method, str):
        try:
            method = NormalizationMethod(method)
        except ValueError:
            valid = [e.value for e in NormalizationMethod]
            raise ValueError(f"Unknown normalization method: {method}. Valid: {valid}") from None

    logger.info(f"Normalizing {inner(m).row_count}x{inner(m).column_count} matrix: {method.value}")

    if method == NormalizationMethod.NONE:
        return NormalizationResult(matrix=m.copy(), method="none")

    elif method == NormalizationMethod.QUANTILE:
        return NormalizationResult(matrix=quantile_normalize(m), method="quantile")

    elif method == NormalizationMethod.MEDIAN_RATIO:
        factors = median_ratio_factors(m)
        scaled = applied(m, lambda row, col, v: v / factors[col])
        return NormalizationResult(matrix=scaled, method="median_ratio", normalization_factors=factors)

    elif method == NormalizationMethod.MIN_MAX:
        return NormalizationResult(matrix=elementwise.normalize(m), method="min_max")

    else:
        raise ValueError(f"Unknown normalization method: {method}")
