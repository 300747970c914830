"""
Layout-aware transpose.

    row-major storage (Double, Int, Text, Mixed)  flat buffer transposed with
                                                  numpy, same variant out
    other index layouts (upper triangular)        gathered through the index
                                                  function into a DoubleMatrix
    anything else                                 cell by cell into a MixedMatrix

For an AnnotatableMatrix the row and column annotation tables are swapped,
so transposing twice restores both values and annotations.
"""

from __future__ import annotations

import logging

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.capability import Capability
from exprmatrix.core.matrix import Matrix
from exprmatrix.core.storage import DoubleMatrix, MixedMatrix
from exprmatrix.ops.apply import MatrixLike

logger = logging.getLogger(__name__)

__all__ = ['transpose']


def transpose(m: MatrixLike) -> MatrixLike:
    """New matrix with rows and columns swapped."""
    if isinstance(m, AnnotatableMatrix):
        return AnnotatableMatrix(
            _transpose_matrix(m.matrix),
            row_annotations=m.column_annotations.copy(),
            column_annotations=m.row_annotations.copy(),
        )
    return _transpose_matrix(m)


def _transpose_matrix(m: Matrix) -> Matrix:
    rows, cols = m.shape

    if m.has_capability(Capability.ROW_MAJOR):
        logger.debug(f"Transposing {type(m).__name__} via row-major buffer")
        out = m.of_same_type(cols, rows)
        out.data[:] = m.data.reshape(rows, cols).T.ravel()
        if m.has_capability(Capability.MIXED):
            out.cell_types[:] = m.cell_types.reshape(rows, cols).T.ravel()
        return out

    if m.has_capability(Capability.INDEXED):
        logger.debug(f"Transposing {type(m).__name__} via index gather")
        out = DoubleMatrix(cols, rows)
        out.data[:] = m.slot_values(m.index_array().T).ravel()
        return out

    logger.debug(f"Transposing {type(m).__name__} via generic copy")
    out = MixedMatrix(cols, rows)
    for i in range(rows):
        for j in range(cols):
            out.update(j, i, m.get(i, j))
    return out
