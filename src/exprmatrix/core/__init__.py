"""
Core data structures for the matrix engine.

1. Matrix and its storage variants: fixed-shape grids of NUMBER/TEXT/EMPTY cells
2. Capability: flags advertising the fast paths a storage variant supports
3. AnnotatableMatrix: a Matrix plus row/column annotation tables
4. MatrixGroup: named column subsets
5. Transform: abstract base class for composable matrix transformations

Examples:
    >>> from exprmatrix.core import AnnotatableMatrix, DoubleMatrix
    >>> m = AnnotatableMatrix(DoubleMatrix.from_array([[1, 2], [3, 4]]))
    >>> m.shape
    (2, 2)
"""

from exprmatrix.core.cell import (
    CellType,
    MAX_FLOAT,
    NULL_INT_NUMBER,
    NULL_NUMBER,
    is_valid_matrix_num,
    is_valid_number,
)
from exprmatrix.core.capability import Capability
from exprmatrix.core.matrix import Matrix
from exprmatrix.core.storage import (
    DoubleMatrix,
    IndexMatrix,
    IntMatrix,
    MixedMatrix,
    TextMatrix,
    UpperTriangularDoubleMatrix,
    to_matrix,
)
from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.group import MatrixGroup
from exprmatrix.core.transform import Transform

__all__ = [
    'CellType',
    'MAX_FLOAT',
    'NULL_INT_NUMBER',
    'NULL_NUMBER',
    'is_valid_matrix_num',
    'is_valid_number',
    'Capability',
    'Matrix',
    'IndexMatrix',
    'DoubleMatrix',
    'IntMatrix',
    'UpperTriangularDoubleMatrix',
    'TextMatrix',
    'MixedMatrix',
    'to_matrix',
    'AnnotatableMatrix',
    'MatrixGroup',
    'Transform',
]
