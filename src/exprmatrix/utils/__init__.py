"""Utility modules shared across the matrix engine."""

from exprmatrix.utils.statistics import (
    finite,
    pop_stdev,
    tied_rank,
    mode,
    iqr,
    quart_coeff_disp,
)

__all__ = [
    'finite',
    'pop_stdev',
    'tied_rank',
    'mode',
    'iqr',
    'quart_coeff_disp',
]
