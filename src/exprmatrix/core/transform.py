"""
Base transformation framework for composable matrix operations.

Expression analysis runs as a chain of steps: log transform, threshold,
normalize, standardize, collapse duplicate probes. Each step is a Transform:
a named, parameterized object whose ``apply`` returns a new
AnnotatableMatrix and never modifies its input.

Engineering Design:
    - Pure: ``apply`` copies before mutating; the input stays valid
    - Auditable: ``name`` and ``params`` describe the step for logs
    - Validated: ``validate`` reports preconditions as messages, not raises

Examples:
    >>> from exprmatrix.core.transform import Transform
    >>> from exprmatrix.ops import elementwise
    >>>
    >>> class Log2Transform(Transform):
    ...     def __init__(self):
    ...         super().__init__(name="Log2Transform", params={})
    ...
    ...     def apply(self, matrix):
    ...         return elementwise.log2(matrix)
    >>>
    >>> transformed = Log2Transform().apply(original_matrix)   # doctest: +SKIP
    >>> # original_matrix is unchanged
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, TYPE_CHECKING
from datetime import datetime

if TYPE_CHECKING:
    from exprmatrix.core.annotated import AnnotatableMatrix

__all__ = ['Transform']


class Transform(ABC):
    """
    Abstract base class for all annotated-matrix transformations.

    Attributes:
        name: Human-readable transformation name (e.g., "LogTransform")
        params: Parameters used for this transformation
        timestamp: When this transform instance was created
    """

    def __init__(self, name: str, params: dict[str, Any]) -> None:
        self.name = name
        self.params = params
        self.timestamp = datetime.now()

    @abstractmethod
    def apply(self, matrix: AnnotatableMatrix) -> AnnotatableMatrix:
        """
        Execute transformation and return a new matrix.

        Must never modify the input matrix.

        Raises:
            ValueError: If the transformation cannot be applied (check validate() first)
        """

    def validate(self, matrix: AnnotatableMatrix) -> list[str]:
        """
        Check preconditions before applying the transformation.

        Subclasses should override and call super().validate() first.

        Returns:
            List of error messages (empty list = valid)
        """
        errors: list[str] = []

        if matrix.row_count == 0 or matrix.column_count == 0:
            errors.append("Cannot process empty matrix")

        return errors

    def __repr__(self) -> str:
        """
        String like "LogTransform(base=2.0)".
        """
        params_str = ", ".join(f"{k}={v}" for k, v in self.params.items())
        return f"{self.name}({params_str})"
