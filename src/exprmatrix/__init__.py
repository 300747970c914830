"""
exprmatrix - Matrix Engine for Expression Data

Typed 2-D matrices (dense, integer, symmetric, text, mixed) with row and
column annotations, a capability-dispatched bulk-operation engine, and the
statistical transforms of expression analysis: log, threshold, z-score,
quantile normalization, two-sample tests and duplicate-row collapsing.
"""

__version__ = "0.1.0"

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.group import MatrixGroup
from exprmatrix.core.storage import DoubleMatrix, MixedMatrix
from exprmatrix.core.transform import Transform

__all__ = [
    "AnnotatableMatrix",
    "MatrixGroup",
    "DoubleMatrix",
    "MixedMatrix",
    "Transform",
]
