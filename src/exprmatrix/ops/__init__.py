"""
Bulk operations over matrices.

- apply: the dispatch engine for cell, dimension and reduce functions
- arithmetic: in-place scalar add/subtract/multiply/divide
- elementwise: copy transforms (log family, power, exp, threshold, normalize)
- reductions: min/max/sum/mean/median/mode and per-row/column vectors
- transpose: layout-aware transpose
"""

from exprmatrix.ops import apply, arithmetic, elementwise, reductions
from exprmatrix.ops.transpose import transpose

__all__ = [
    'apply',
    'arithmetic',
    'elementwise',
    'reductions',
    'transpose',
]
