"""
Elementwise copy transforms.

Each function returns a new matrix of the same storage variant (an
AnnotatableMatrix input gives an AnnotatableMatrix with copied annotations)
and leaves its input untouched. Only valid numbers are transformed; TEXT and
EMPTY cells of mixed storage are carried over as they are.

Domain errors never raise: the log of a non-positive value is NaN or -inf,
which later reductions treat as invalid.

Examples:
    >>> from exprmatrix.core.storage import DoubleMatrix
    >>> from exprmatrix.ops import elementwise
    >>> m = DoubleMatrix.from_array([[1, 2], [4, 8]])
    >>> elementwise.log2(m).to_double()
    array([[0., 1.],
           [2., 3.]])
"""

from __future__ import annotations

import logging
import math

import numpy as np

from exprmatrix.ops import reductions
from exprmatrix.ops.apply import MatrixLike, applied_elementwise

logger = logging.getLogger(__name__)

__all__ = [
    'log',
    'log2',
    'log10',
    'ln',
    'power',
    'power_base',
    'exp',
    'min_bound',
    'threshold',
    'normalize',
]


def log(m: MatrixLike, base: float) -> MatrixLike:
    """Logarithm in ``base`` of every valid value."""
    if base == 2:
        return applied_elementwise(m, np.log2)
    if base == 10:
        return applied_elementwise(m, np.log10)
    scale = math.log(base)
    return applied_elementwise(m, lambda v: np.log(v) / scale)


def log2(m: MatrixLike) -> MatrixLike:
    return log(m, 2)


def log10(m: MatrixLike) -> MatrixLike:
    return log(m, 10)


def ln(m: MatrixLike) -> MatrixLike:
    """Natural logarithm of every valid value."""
    return applied_elementwise(m, np.log)


def power(m: MatrixLike, p: float) -> MatrixLike:
    """v ** p for every valid value."""
    return applied_elementwise(m, lambda v: np.power(v, p))


def power_base(p: float, m: MatrixLike) -> MatrixLike:
    """p ** v for every valid value."""
    return applied_elementwise(m, lambda v: np.power(float(p), v))


def exp(m: MatrixLike) -> MatrixLike:
    return applied_elementwise(m, np.exp)


def min_bound(m: MatrixLike, x: float) -> MatrixLike:
    """max(v, x): raise every value below ``x`` to ``x``."""
    return applied_elementwise(m, lambda v: np.maximum(v, x))


def threshold(m: MatrixLike, lo: float, hi: float) -> MatrixLike:
    """Clamp every valid value into [lo, hi]."""
    if lo > hi:
        raise ValueError(f"threshold lower bound {lo} exceeds upper bound {hi}")
    return applied_elementwise(m, lambda v: np.clip(v, lo, hi))


def normalize(m: MatrixLike, lo: float | None = None, hi: float | None = None) -> MatrixLike:
    """
    Min-max scale into [0, 1].

    ``lo``/``hi`` default to the matrix min/max. Results are clamped to
    [0, 1]; a zero range maps every value to 0.
    """
    if lo is None:
        lo = reductions.min(m)
    if hi is None:
        hi = reductions.max(m)

    value_range = hi - lo
    logger.debug(f"Normalizing into [0, 1] from [{lo}, {hi}]")

    if value_range == 0 or not np.isfinite(value_range):
        return applied_elementwise(m, np.zeros_like)
    return applied_elementwise(m, lambda v: np.clip((v - lo) / value_range, 0.0, 1.0))
