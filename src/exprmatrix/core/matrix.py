"""
Abstract base class for all matrix storage variants.

A Matrix is a fixed-shape 2-D grid of cells. Concrete subclasses decide how
cells are physically stored (flat float buffer, boxed values plus type tags,
index-coded layouts, ...) but every subclass honours the same coordinate
contract:

    get_value(row, col)     -> float   (NULL_NUMBER when not numeric)
    get_text(row, col)      -> str     ('' when empty)
    get_cell_type(row, col) -> CellType
    set(row, col, value)             number, str or None; fires "changed"
    update(row, col, value)          same, without firing "changed"

Mutation and Notification:
    Views and annotation caches subscribe with ``add_matrix_listener``. Every
    public mutating call fires exactly one "matrix changed" notification once
    it has finished, however many cells it touched. Bulk operations use the
    silent ``update`` family cell by cell and fire once at the end.

Engineering Design:
    - Shape is immutable: operations that change shape return a new matrix
    - Subclasses implement five primitives; everything else is derived
    - Capabilities (see capability.py) advertise fast paths to the engine

Examples:
    >>> from exprmatrix.core.storage import DoubleMatrix
    >>> m = DoubleMatrix.from_array([[1, 2], [3, 4]])
    >>> m.get_value(1, 0)
    3.0
    >>> events = []
    >>> m.add_matrix_listener(events.append)
    >>> m.set(0, 0, 10)
    >>> len(events)
    1
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Iterable, Sequence

import numpy as np

from exprmatrix.core.capability import Capability
from exprmatrix.core.cell import CellType

__all__ = ['Matrix', 'MatrixListener']

MatrixListener = Callable[['Matrix'], None]


class Matrix(ABC):
    """
    Fixed-shape 2-D container of NUMBER/TEXT/EMPTY cells.

    Attributes:
        capabilities: Class-level Capability flags describing fast paths
        shape: (row_count, column_count)

    Shape Invariants:
        - row_count >= 0 and column_count >= 0
        - shape never changes after construction
    """

    capabilities: Capability = Capability.NONE

    def __init__(self, rows: int, columns: int) -> None:
        rows = int(rows)
        columns = int(columns)
        if rows < 0 or columns < 0:
            raise ValueError(f"Matrix shape must be non-negative, got ({rows}, {columns})")

        self._rows = rows
        self._cols = columns
        self._listeners: list[MatrixListener] = []

    # ------------------------------------------------------------------
    # Shape
    # ------------------------------------------------------------------

    @property
    def row_count(self) -> int:
        return self._rows

    @property
    def column_count(self) -> int:
        return self._cols

    @property
    def shape(self) -> tuple[int, int]:
        return (self._rows, self._cols)

    @property
    def n_cells(self) -> int:
        return self._rows * self._cols

    def has_capability(self, capability: Capability) -> bool:
        """True if this storage advertises every flag in ``capability``."""
        return (self.capabilities & capability) == capability

    def check_index(self, row: int, column: int) -> None:
        """Raise IndexError unless (row, column) lies inside the matrix."""
        if not (0 <= row < self._rows and 0 <= column < self._cols):
            raise IndexError(
                f"Cell ({row}, {column}) out of range for {self._rows}x{self._cols} matrix"
            )

    def check_row(self, row: int) -> None:
        if not 0 <= row < self._rows:
            raise IndexError(f"Row {row} out of range for {self._rows}x{self._cols} matrix")

    def check_column(self, column: int) -> None:
        if not 0 <= column < self._cols:
            raise IndexError(f"Column {column} out of range for {self._rows}x{self._cols} matrix")

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def add_matrix_listener(self, listener: MatrixListener) -> None:
        self._listeners.append(listener)

    def remove_matrix_listener(self, listener: MatrixListener) -> None:
        self._listeners.remove(listener)

    def fire_matrix_changed(self) -> None:
        """Notify every listener that cell values changed."""
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Primitives implemented by storage variants
    # ------------------------------------------------------------------

    @abstractmethod
    def get_value(self, row: int, column: int) -> float:
        """Numeric value of a cell, NULL_NUMBER if it holds no number."""

    @abstractmethod
    def get_text(self, row: int, column: int) -> str:
        """Text form of a cell, '' if empty."""

    @abstractmethod
    def get_cell_type(self, row: int, column: int) -> CellType:
        """Content tag of a cell."""

    @abstractmethod
    def update_value(self, row: int, column: int, value: float) -> None:
        """Store a number without firing a change notification."""

    @abstractmethod
    def update_text(self, row: int, column: int, value: str) -> None:
        """Store text without firing a change notification."""

    @abstractmethod
    def update_to_null(self, row: int, column: int) -> None:
        """Clear a cell without firing a change notification."""

    @abstractmethod
    def copy(self) -> Matrix:
        """Deep copy with the same storage variant. Listeners are not copied."""

    @abstractmethod
    def of_same_type(self, rows: int, columns: int) -> Matrix:
        """Empty matrix of the same storage variant and the given shape."""

    def of_shape(self, rows: int, columns: int) -> Matrix:
        """
        Empty matrix able to hold an arbitrary block of this matrix's cells.

        Same variant as ``of_same_type`` unless the layout cannot represent
        an unconstrained block (e.g. symmetric storage).
        """
        return self.of_same_type(rows, columns)

    def copy_rows(self, rows: Sequence[int]) -> Matrix:
        """New matrix holding the given rows, in the given order."""
        rows = list(rows)
        for row in rows:
            self.check_row(row)
        out = self.of_shape(len(rows), self._cols)
        out.copy_cells_from(self, rows, None)
        return out

    def copy_columns(self, columns: Sequence[int]) -> Matrix:
        """New matrix holding the given columns, in the given order."""
        columns = list(columns)
        for column in columns:
            self.check_column(column)
        out = self.of_shape(self._rows, len(columns))
        out.copy_cells_from(self, None, columns)
        return out

    # ------------------------------------------------------------------
    # Derived accessors
    # ------------------------------------------------------------------

    def get(self, row: int, column: int) -> Any:
        """Boxed cell content: float for NUMBER, str for TEXT, None for EMPTY."""
        cell_type = self.get_cell_type(row, column)
        if cell_type == CellType.NUMBER:
            return self.get_value(row, column)
        if cell_type == CellType.TEXT:
            return self.get_text(row, column)
        return None

    def update(self, row: int, column: int, value: Any) -> None:
        """Store any supported value without firing a change notification."""
        if value is None:
            self.update_to_null(row, column)
        elif isinstance(value, str):
            self.update_text(row, column, value)
        else:
            self.update_value(row, column, value)

    def set(self, row: int, column: int, value: Any) -> None:
        """Store a number, text or None (empty) and fire "changed"."""
        self.check_index(row, column)
        self.update(row, column, value)
        self.fire_matrix_changed()

    def set_to_null(self, row: int, column: int) -> None:
        self.check_index(row, column)
        self.update_to_null(row, column)
        self.fire_matrix_changed()

    def row_as_double(self, row: int) -> np.ndarray:
        """Private float64 copy of one row."""
        self.check_row(row)
        return np.array([self.get_value(row, j) for j in range(self._cols)], dtype=np.float64)

    def column_as_double(self, column: int) -> np.ndarray:
        """Private float64 copy of one column."""
        self.check_column(column)
        return np.array([self.get_value(i, column) for i in range(self._rows)], dtype=np.float64)

    def row_as_text(self, row: int) -> list[str]:
        return [self.get_text(row, j) for j in range(self._cols)]

    def column_as_text(self, column: int) -> list[str]:
        return [self.get_text(i, column) for i in range(self._rows)]

    def row_as_list(self, row: int) -> list[Any]:
        return [self.get(row, j) for j in range(self._cols)]

    def column_as_list(self, column: int) -> list[Any]:
        return [self.get(i, column) for i in range(self._rows)]

    def to_double(self) -> np.ndarray:
        """All numeric values as a (rows, columns) float64 array."""
        out = np.empty(self.shape, dtype=np.float64)
        for i in range(self._rows):
            for j in range(self._cols):
                out[i, j] = self.get_value(i, j)
        return out

    def valid_values(self) -> np.ndarray:
        """Flat array of every valid (finite) numeric value, row-major order."""
        values = self.to_double().ravel()
        return values[np.isfinite(values)]

    def present_cell_types(self) -> set[CellType]:
        """Distinct cell types present in the matrix."""
        return {
            self.get_cell_type(i, j)
            for i in range(self._rows)
            for j in range(self._cols)
        }

    # ------------------------------------------------------------------
    # Bulk setters (one notification per call)
    # ------------------------------------------------------------------

    def set_row(self, row: int, values: Sequence[Any]) -> None:
        self.check_row(row)
        for j, v in zip(range(self._cols), values):
            self.update(row, j, _unbox(v))
        self.fire_matrix_changed()

    def set_column(self, column: int, values: Sequence[Any]) -> None:
        self.check_column(column)
        for i, v in zip(range(self._rows), values):
            self.update(i, column, _unbox(v))
        self.fire_matrix_changed()

    def fill(self, value: Any) -> None:
        """Set every cell to ``value``."""
        for i in range(self._rows):
            for j in range(self._cols):
                self.update(i, j, value)
        self.fire_matrix_changed()

    def copy_cells_from(self, other: Matrix, rows: Iterable[int] | None = None,
                        columns: Iterable[int] | None = None) -> None:
        """
        Fill this matrix with the cells of ``other`` at the given rows/columns.

        ``rows``/``columns`` default to every index of ``other``; the selected
        block must match this matrix's shape.
        """
        rows = list(range(other.row_count)) if rows is None else list(rows)
        columns = list(range(other.column_count)) if columns is None else list(columns)
        if (len(rows), len(columns)) != self.shape:
            raise ValueError(
                f"Selected block {len(rows)}x{len(columns)} does not fit {self._rows}x{self._cols} matrix"
            )
        for i, r in enumerate(rows):
            for j, c in enumerate(columns):
                self.update(i, j, other.get(r, c))
        self.fire_matrix_changed()

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._rows} rows × {self._cols} columns)"

    def __str__(self) -> str:
        return self.__repr__()


def _unbox(v: Any) -> Any:
    if isinstance(v, np.generic):
        return v.item()
    return v
