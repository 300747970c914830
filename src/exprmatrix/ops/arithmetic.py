"""
Scalar arithmetic over whole matrices.

The in-place functions take the scalar first, ``add(x, m)``, mutate ``m``
and fire one change notification per call. On guaranteed-numeric storage
every cell is updated; on mixed and text storage only valid numbers are.

The copy functions take the matrix first, ``added(m, x)``, and leave the
input untouched.

Examples:
    >>> from exprmatrix.core.storage import DoubleMatrix
    >>> from exprmatrix.ops import arithmetic
    >>> m = DoubleMatrix.from_array([[1, 2], [3, 4]])
    >>> arithmetic.add(1, m)
    >>> arithmetic.multiply(2, m)
    >>> m.to_double()
    array([[ 4.,  6.],
           [ 8., 10.]])
"""

from __future__ import annotations

from exprmatrix.ops.apply import MatrixLike, apply_elementwise, applied_elementwise

__all__ = [
    'add',
    'subtract',
    'multiply',
    'divide',
    'added',
    'subtracted',
    'multiplied',
    'divided',
]


def add(x: float, m: MatrixLike) -> None:
    """m = m + x, in place."""
    apply_elementwise(m, lambda v: v + x, skip_invalid=False)


def subtract(x: float, m: MatrixLike) -> None:
    """m = m - x, in place."""
    add(-x, m)


def multiply(x: float, m: MatrixLike) -> None:
    """m = m * x, in place."""
    apply_elementwise(m, lambda v: v * x, skip_invalid=False)


def divide(x: float, m: MatrixLike) -> None:
    """
    m = m / x, in place.

    Division by zero follows IEEE rules (inf / NaN), it does not raise.
    """
    apply_elementwise(m, lambda v: v / x, skip_invalid=False)


def added(m: MatrixLike, x: float) -> MatrixLike:
    return applied_elementwise(m, lambda v: v + x, skip_invalid=False)


def subtracted(m: MatrixLike, x: float) -> MatrixLike:
    return added(m, -x)


def multiplied(m: MatrixLike, x: float) -> MatrixLike:
    return applied_elementwise(m, lambda v: v * x, skip_invalid=False)


def divided(m: MatrixLike, x: float) -> MatrixLike:
    return applied_elementwise(m, lambda v: v / x, skip_invalid=False)
