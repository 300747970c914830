"""
Cell-level vocabulary shared by every storage variant.

Each cell of a matrix carries one of three content tags (NUMBER, TEXT, EMPTY).
Numeric storage has no room for a tag, so "no value" is encoded in-band:

    - Floating point buffers use NaN (NULL_NUMBER)
    - Integer buffers use the int32 minimum (NULL_INT_NUMBER)

Two validity predicates are exported because they answer different questions:

    is_valid_matrix_num: is this slot occupied? (not the null sentinel)
    is_valid_number:     can this value take part in arithmetic/statistics?
                         (finite, which also excludes the sentinels)

Examples:
    >>> from exprmatrix.core.cell import CellType, NULL_NUMBER, is_valid_number
    >>> is_valid_number(NULL_NUMBER)
    False
    >>> is_valid_number(float("inf"))
    False
    >>> CellType.NUMBER
    <CellType.NUMBER: 1>
"""

from __future__ import annotations

import math
from enum import IntEnum
from typing import Any

import numpy as np

__all__ = [
    'CellType',
    'NULL_NUMBER',
    'NULL_INT_NUMBER',
    'MAX_FLOAT',
    'is_valid_matrix_num',
    'is_valid_number',
    'valid_mask',
    'format_number',
    'parse_number',
]


class CellType(IntEnum):
    """
    Content tag of a single matrix cell.

    Values are small integers so that mixed storage can keep a parallel
    ``int8`` numpy buffer of tags.
    """

    EMPTY = 0
    """No content. Reads as NULL_NUMBER / empty string."""

    NUMBER = 1
    """Numeric content."""

    TEXT = 2
    """Text content."""


NULL_NUMBER: float = float('nan')
"""Marker for "no numeric value" in floating point storage."""

NULL_INT_NUMBER: int = int(np.iinfo(np.int32).min)
"""Marker for "no numeric value" in int32 storage, where NaN is unavailable."""

MAX_FLOAT: float = float(np.finfo(np.float64).max)
"""Largest representable float; seeds min/max scans."""


def is_valid_matrix_num(v: Any) -> bool:
    """True if ``v`` is not one of the null sentinels."""
    if isinstance(v, (int, np.integer)) and not isinstance(v, bool):
        return int(v) != NULL_INT_NUMBER
    try:
        return not math.isnan(v)
    except TypeError:
        return False


def is_valid_number(v: Any) -> bool:
    """True if ``v`` is a finite number (and therefore not a null sentinel)."""
    if isinstance(v, (int, np.integer)) and not isinstance(v, bool):
        return int(v) != NULL_INT_NUMBER
    try:
        return math.isfinite(v)
    except TypeError:
        return False


def valid_mask(values: np.ndarray) -> np.ndarray:
    """Vectorized ``is_valid_number`` over a float array."""
    return np.isfinite(np.asarray(values, dtype=np.float64))


def format_number(v: Any) -> str:
    """
    Text form of a numeric cell.

    Integers print without a decimal point, floats use Python's shortest
    round-trip repr (``1.0``, ``0.1``), null values print as an empty string.
    """
    if isinstance(v, (bool, np.bool_)):
        return str(bool(v))
    if isinstance(v, (int, np.integer)):
        if int(v) == NULL_INT_NUMBER:
            return ''
        return str(int(v))
    v = float(v)
    if math.isnan(v):
        return ''
    return repr(v)


def parse_number(text: Any) -> float:
    """Parse text as a float, returning NULL_NUMBER when it is not numeric."""
    if text is None:
        return NULL_NUMBER
    try:
        return float(text)
    except (TypeError, ValueError):
        return NULL_NUMBER
