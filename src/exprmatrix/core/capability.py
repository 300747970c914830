"""
Capability flags advertised by matrix storage variants.

The bulk-operation engine never asks "which class is this?". It asks "what
can this storage do?" and picks the fastest path that the answer allows. Each
storage class declares a combination of flags; new storage variants work with
every operation as long as they implement the universal get/update contract,
and get faster paths for free by declaring the matching capabilities.

Engineering Design:
    IntFlag enables cheap capability algebra:
    - Multiple capabilities per class: INDEXED | ROW_MAJOR | FLOAT_BUFFER
    - Fast checks: matrix.has_capability(Capability.INDEXED)
    - Composite queries: Capability.DENSE == ROW_MAJOR | FLOAT_BUFFER

Examples:
    >>> from exprmatrix.core.capability import Capability
    >>>
    >>> caps = Capability.INDEXED | Capability.ROW_MAJOR | Capability.FLOAT_BUFFER
    >>> (caps & Capability.DENSE) == Capability.DENSE
    True
    >>> bool(caps & Capability.MIXED)
    False
"""

from __future__ import annotations

from enum import IntFlag

__all__ = ['Capability']


class Capability(IntFlag):
    """
    Bitwise capability markers for matrix storage.

    Attributes:
        NONE: Only the universal coordinate contract (0)
        INDEXED: Exposes a flat ``data`` buffer and ``get_index(row, col)`` (1)
        ROW_MAJOR: ``data`` holds every cell, row after row, no gaps (2)
        FLOAT_BUFFER: ``data`` is float64, so slices of it are numeric rows (4)
        NUMERIC: Every cell is NUMBER; arithmetic need not skip cells (8)
        MIXED: Exposes a parallel ``cell_types`` buffer of CellType codes (16)
        TEXT_ONLY: Every cell is TEXT (32)

    Composite:
        DENSE: ROW_MAJOR | FLOAT_BUFFER. Row slices of ``data`` are real
            aliases of matrix rows and column views are fixed-stride slices.
    """

    NONE = 0
    """Universal get/update contract only."""

    INDEXED = 1
    """Flat buffer addressed through an index function."""

    ROW_MAJOR = 2
    """Flat buffer laid out row after row with no shared or missing slots."""

    FLOAT_BUFFER = 4
    """Flat buffer has float64 dtype."""

    NUMERIC = 8
    """All cells are numbers."""

    MIXED = 16
    """Per-cell type tags are stored alongside boxed values."""

    TEXT_ONLY = 32
    """All cells are text."""

    DENSE = ROW_MAJOR | FLOAT_BUFFER
    """Contiguous float64 rows: the fastest bulk-apply path."""
