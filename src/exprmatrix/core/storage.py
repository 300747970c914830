"""
Concrete matrix storage variants.

Every variant keeps its cells in a single flat numpy buffer so that the
bulk-operation engine can work on slices of it directly:

    DoubleMatrix                 float64, row-major, every cell NUMBER
    IntMatrix                    int32, row-major, NULL_INT_NUMBER marks "no value"
    UpperTriangularDoubleMatrix  float64, square, (r, c) and (c, r) share a slot
    TextMatrix                   object buffer of str, every cell TEXT
    MixedMatrix                  object buffer + parallel int8 CellType buffer

The first three are index matrices: they expose ``data`` and
``get_index(row, col)`` and the engine addresses cells through offsets.

Examples:
    >>> from exprmatrix.core.storage import DoubleMatrix, MixedMatrix
    >>> m = DoubleMatrix.from_array([[1, 2], [3, 4]])
    >>> m.data
    array([1., 2., 3., 4.])
    >>> mixed = MixedMatrix.from_rows([["a", 1], [None, 2.5]])
    >>> mixed.get_cell_type(0, 0)
    <CellType.TEXT: 2>
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Iterator, Sequence

import numpy as np

from exprmatrix.core.capability import Capability
from exprmatrix.core.cell import (
    CellType,
    NULL_INT_NUMBER,
    NULL_NUMBER,
    format_number,
    is_valid_number,
    parse_number,
)
from exprmatrix.core.matrix import Matrix

__all__ = [
    'IndexMatrix',
    'DoubleMatrix',
    'IntMatrix',
    'UpperTriangularDoubleMatrix',
    'TextMatrix',
    'MixedMatrix',
    'to_matrix',
]


class IndexMatrix(Matrix):
    """
    Numeric matrix whose cells live in a flat buffer addressed by offset.

    Subclasses provide ``get_index`` and the slot conversions; the layout may
    be row-major or something else (several cells may share one slot).
    """

    capabilities = Capability.INDEXED | Capability.NUMERIC

    data: np.ndarray

    @abstractmethod
    def get_index(self, row: int, column: int) -> int:
        """Offset of cell (row, column) in ``data``."""

    def index_array(self) -> np.ndarray:
        """(rows, columns) int array of buffer offsets."""
        out = np.empty(self.shape, dtype=np.intp)
        for i in range(self._rows):
            for j in range(self._cols):
                out[i, j] = self.get_index(i, j)
        return out

    def cell_indices(self) -> Iterator[tuple[int, int, int]]:
        """Yield (row, column, offset) once per storage slot, ascending row then column."""
        seen: set[int] = set()
        for i in range(self._rows):
            for j in range(self._cols):
                index = self.get_index(i, j)
                if index not in seen:
                    seen.add(index)
                    yield i, j, index

    # Slot conversions; float64 behaviour by default.

    def slot_value(self, index: int) -> float:
        return float(self.data[index])

    def write_slot(self, index: int, value: float) -> None:
        self.data[index] = value

    def slot_values(self, indices: np.ndarray) -> np.ndarray:
        """Float64 copy of the given slots."""
        return self.data[indices].astype(np.float64)

    def get_value(self, row: int, column: int) -> float:
        self.check_index(row, column)
        return self.slot_value(self.get_index(row, column))

    def get_text(self, row: int, column: int) -> str:
        self.check_index(row, column)
        return format_number(self.data[self.get_index(row, column)])

    def get_cell_type(self, row: int, column: int) -> CellType:
        self.check_index(row, column)
        return CellType.NUMBER

    def update_value(self, row: int, column: int, value: float) -> None:
        self.write_slot(self.get_index(row, column), value)

    def update_text(self, row: int, column: int, value: str) -> None:
        self.write_slot(self.get_index(row, column), parse_number(value))

    def update_to_null(self, row: int, column: int) -> None:
        self.write_slot(self.get_index(row, column), NULL_NUMBER)

    def to_double(self) -> np.ndarray:
        return self.slot_values(self.index_array())

    def row_as_double(self, row: int) -> np.ndarray:
        self.check_row(row)
        return self.slot_values(np.array([self.get_index(row, j) for j in range(self._cols)], dtype=np.intp))

    def column_as_double(self, column: int) -> np.ndarray:
        self.check_column(column)
        return self.slot_values(np.array([self.get_index(i, column) for i in range(self._rows)], dtype=np.intp))


class _RowMajorIndexMatrix(IndexMatrix):
    """Index matrix with offset = row * columns + column."""

    def get_index(self, row: int, column: int) -> int:
        return row * self._cols + column

    def index_array(self) -> np.ndarray:
        return np.arange(self.n_cells, dtype=np.intp).reshape(self.shape)

    def cell_indices(self) -> Iterator[tuple[int, int, int]]:
        index = 0
        for i in range(self._rows):
            for j in range(self._cols):
                yield i, j, index
                index += 1

    def row_as_double(self, row: int) -> np.ndarray:
        self.check_row(row)
        start = row * self._cols
        return self.slot_values(np.arange(start, start + self._cols, dtype=np.intp))

    def column_as_double(self, column: int) -> np.ndarray:
        self.check_column(column)
        return self.slot_values(np.arange(column, self.n_cells, self._cols, dtype=np.intp))


class DoubleMatrix(_RowMajorIndexMatrix):
    """
    Dense float64 matrix stored row after row in ``data``.

    New matrices start with every cell set to NULL_NUMBER unless a fill value
    is given.
    """

    capabilities = (
        Capability.INDEXED | Capability.ROW_MAJOR | Capability.FLOAT_BUFFER | Capability.NUMERIC
    )

    def __init__(self, rows: int, columns: int, fill: float = NULL_NUMBER) -> None:
        super().__init__(rows, columns)
        self.data = np.full(self.n_cells, fill, dtype=np.float64)

    @classmethod
    def create(cls, rows: int, columns: int, fill: float = NULL_NUMBER) -> DoubleMatrix:
        return cls(rows, columns, fill)

    @classmethod
    def from_array(cls, values: Any) -> DoubleMatrix:
        """Copy a 2-D array-like into a new matrix. None entries become NULL_NUMBER."""
        array = np.array(values, dtype=np.float64)
        if array.ndim == 1:
            array = array.reshape(1, -1)
        if array.ndim != 2:
            raise ValueError(f"values must be 2D, got shape {array.shape}")
        m = cls(array.shape[0], array.shape[1])
        m.data[:] = array.ravel()
        return m

    @classmethod
    def from_matrix(cls, other: Matrix) -> DoubleMatrix:
        """Numeric copy of any matrix; text cells that do not parse become NULL_NUMBER."""
        m = cls(other.row_count, other.column_count)
        m.data[:] = other.to_double().ravel()
        return m

    def slot_values(self, indices: np.ndarray) -> np.ndarray:
        return self.data[indices]

    def to_double(self) -> np.ndarray:
        return self.data.reshape(self.shape).copy()

    def row_view(self, row: int) -> np.ndarray:
        """Writable view of one row of ``data``."""
        start = row * self._cols
        return self.data[start:start + self._cols]

    def column_view(self, column: int) -> np.ndarray:
        """Writable strided view of one column of ``data``."""
        return self.data[column::self._cols]

    def fill(self, value: Any) -> None:
        if value is None:
            value = NULL_NUMBER
        elif isinstance(value, str):
            value = parse_number(value)
        self.data[:] = value
        self.fire_matrix_changed()

    def copy(self) -> DoubleMatrix:
        m = DoubleMatrix(self._rows, self._cols)
        m.data[:] = self.data
        return m

    def of_same_type(self, rows: int, columns: int) -> DoubleMatrix:
        return DoubleMatrix(rows, columns)


class IntMatrix(_RowMajorIndexMatrix):
    """
    int32 matrix. Valid numbers are truncated on write; anything else is
    stored as NULL_INT_NUMBER and reads back as NULL_NUMBER.
    """

    capabilities = Capability.INDEXED | Capability.ROW_MAJOR | Capability.NUMERIC

    def __init__(self, rows: int, columns: int, fill: int = NULL_INT_NUMBER) -> None:
        super().__init__(rows, columns)
        self.data = np.full(self.n_cells, fill, dtype=np.int32)

    @classmethod
    def create(cls, rows: int, columns: int, fill: int = NULL_INT_NUMBER) -> IntMatrix:
        return cls(rows, columns, fill)

    @classmethod
    def from_array(cls, values: Any) -> IntMatrix:
        array = np.array(values, dtype=np.float64)
        if array.ndim == 1:
            array = array.reshape(1, -1)
        if array.ndim != 2:
            raise ValueError(f"values must be 2D, got shape {array.shape}")
        m = cls(array.shape[0], array.shape[1])
        flat = array.ravel()
        valid = np.isfinite(flat)
        m.data[valid] = np.trunc(flat[valid]).astype(np.int32)
        return m

    def slot_value(self, index: int) -> float:
        v = int(self.data[index])
        return NULL_NUMBER if v == NULL_INT_NUMBER else float(v)

    def write_slot(self, index: int, value: float) -> None:
        self.data[index] = int(value) if is_valid_number(value) else NULL_INT_NUMBER

    def slot_values(self, indices: np.ndarray) -> np.ndarray:
        raw = self.data[indices]
        out = raw.astype(np.float64)
        out[raw == NULL_INT_NUMBER] = NULL_NUMBER
        return out

    def copy(self) -> IntMatrix:
        m = IntMatrix(self._rows, self._cols)
        m.data[:] = self.data
        return m

    def of_same_type(self, rows: int, columns: int) -> IntMatrix:
        return IntMatrix(rows, columns)


class UpperTriangularDoubleMatrix(IndexMatrix):
    """
    Square symmetric float64 matrix storing only the upper triangle.

    Row ``r`` occupies ``size - r`` consecutive slots starting at
    ``offset[r]``; cell (r, c) with c >= r lives at ``offset[r] + c - r`` and
    (c, r) maps to the same slot, so writing one writes both.
    """

    capabilities = Capability.INDEXED | Capability.FLOAT_BUFFER | Capability.NUMERIC

    def __init__(self, size: int, fill: float = NULL_NUMBER) -> None:
        super().__init__(size, size)
        self.size = int(size)
        lengths = np.arange(self.size, 0, -1, dtype=np.intp)
        self._offsets = np.concatenate(([0], np.cumsum(lengths)[:-1])).astype(np.intp)
        self.data = np.full(self.size * (self.size + 1) // 2, fill, dtype=np.float64)

    @classmethod
    def create(cls, size: int, fill: float = NULL_NUMBER) -> UpperTriangularDoubleMatrix:
        return cls(size, fill)

    def get_index(self, row: int, column: int) -> int:
        if column < row:
            row, column = column, row
        return int(self._offsets[row]) + column - row

    def index_array(self) -> np.ndarray:
        rows, cols = np.indices(self.shape, dtype=np.intp)
        lo = np.minimum(rows, cols)
        hi = np.maximum(rows, cols)
        return self._offsets[lo] + hi - lo

    def cell_indices(self) -> Iterator[tuple[int, int, int]]:
        for i in range(self.size):
            for j in range(i, self.size):
                yield i, j, int(self._offsets[i]) + j - i

    def slot_values(self, indices: np.ndarray) -> np.ndarray:
        return self.data[indices]

    def copy(self) -> UpperTriangularDoubleMatrix:
        m = UpperTriangularDoubleMatrix(self.size)
        m.data[:] = self.data
        return m

    def of_same_type(self, rows: int, columns: int) -> UpperTriangularDoubleMatrix:
        if rows != columns:
            raise ValueError(f"Upper triangular matrix must be square, got ({rows}, {columns})")
        return UpperTriangularDoubleMatrix(rows)

    def of_shape(self, rows: int, columns: int) -> DoubleMatrix:
        return DoubleMatrix(rows, columns)


class TextMatrix(Matrix):
    """Row-major matrix of strings. Numeric reads parse the text."""

    capabilities = Capability.ROW_MAJOR | Capability.TEXT_ONLY

    def __init__(self, rows: int, columns: int, fill: str = '') -> None:
        super().__init__(rows, columns)
        self.data = np.full(self.n_cells, fill, dtype=object)

    @classmethod
    def create(cls, rows: int, columns: int, fill: str = '') -> TextMatrix:
        return cls(rows, columns, fill)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]]) -> TextMatrix:
        rows = [list(r) for r in rows]
        n_cols = len(rows[0]) if rows else 0
        m = cls(len(rows), n_cols)
        for i, r in enumerate(rows):
            if len(r) != n_cols:
                raise ValueError(f"Row {i} has {len(r)} values, expected {n_cols}")
            for j, v in enumerate(r):
                m.update(i, j, v)
        return m

    def get_value(self, row: int, column: int) -> float:
        self.check_index(row, column)
        return parse_number(self.data[row * self._cols + column])

    def get_text(self, row: int, column: int) -> str:
        self.check_index(row, column)
        return self.data[row * self._cols + column]

    def get_cell_type(self, row: int, column: int) -> CellType:
        self.check_index(row, column)
        return CellType.TEXT

    def update_value(self, row: int, column: int, value: float) -> None:
        self.data[row * self._cols + column] = format_number(value)

    def update_text(self, row: int, column: int, value: str) -> None:
        self.data[row * self._cols + column] = str(value)

    def update_to_null(self, row: int, column: int) -> None:
        self.data[row * self._cols + column] = ''

    def copy(self) -> TextMatrix:
        m = TextMatrix(self._rows, self._cols)
        m.data[:] = self.data
        return m

    def of_same_type(self, rows: int, columns: int) -> TextMatrix:
        return TextMatrix(rows, columns)


class MixedMatrix(Matrix):
    """
    Row-major matrix of boxed values with a parallel CellType buffer.

    ``data`` holds float for NUMBER cells, str for TEXT cells and None for
    EMPTY cells; ``cell_types`` holds the matching int8 tags.
    """

    capabilities = Capability.ROW_MAJOR | Capability.MIXED

    def __init__(self, rows: int, columns: int) -> None:
        super().__init__(rows, columns)
        self.data = np.full(self.n_cells, None, dtype=object)
        self.cell_types = np.full(self.n_cells, CellType.EMPTY, dtype=np.int8)

    @classmethod
    def create(cls, rows: int, columns: int) -> MixedMatrix:
        return cls(rows, columns)

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[Any]]) -> MixedMatrix:
        """Build from nested lists of numbers, strings and None."""
        rows = [list(r) for r in rows]
        n_cols = len(rows[0]) if rows else 0
        m = cls(len(rows), n_cols)
        for i, r in enumerate(rows):
            if len(r) != n_cols:
                raise ValueError(f"Row {i} has {len(r)} values, expected {n_cols}")
            for j, v in enumerate(r):
                m.update(i, j, v.item() if isinstance(v, np.generic) else v)
        return m

    @classmethod
    def from_matrix(cls, other: Matrix) -> MixedMatrix:
        m = cls(other.row_count, other.column_count)
        for i in range(other.row_count):
            for j in range(other.column_count):
                m.update(i, j, other.get(i, j))
        return m

    def get_value(self, row: int, column: int) -> float:
        self.check_index(row, column)
        index = row * self._cols + column
        cell_type = self.cell_types[index]
        if cell_type == CellType.NUMBER:
            return self.data[index]
        if cell_type == CellType.TEXT:
            return parse_number(self.data[index])
        return NULL_NUMBER

    def get_text(self, row: int, column: int) -> str:
        self.check_index(row, column)
        index = row * self._cols + column
        cell_type = self.cell_types[index]
        if cell_type == CellType.NUMBER:
            return format_number(self.data[index])
        if cell_type == CellType.TEXT:
            return self.data[index]
        return ''

    def get_cell_type(self, row: int, column: int) -> CellType:
        self.check_index(row, column)
        return CellType(int(self.cell_types[row * self._cols + column]))

    def update_value(self, row: int, column: int, value: float) -> None:
        index = row * self._cols + column
        self.data[index] = float(value)
        self.cell_types[index] = CellType.NUMBER

    def update_text(self, row: int, column: int, value: str) -> None:
        index = row * self._cols + column
        self.data[index] = str(value)
        self.cell_types[index] = CellType.TEXT

    def update_to_null(self, row: int, column: int) -> None:
        index = row * self._cols + column
        self.data[index] = None
        self.cell_types[index] = CellType.EMPTY

    def to_double(self) -> np.ndarray:
        out = np.full(self.n_cells, NULL_NUMBER, dtype=np.float64)
        numbers = self.cell_types == CellType.NUMBER
        out[numbers] = self.data[numbers].astype(np.float64)
        for index in np.flatnonzero(self.cell_types == CellType.TEXT):
            out[index] = parse_number(self.data[index])
        return out.reshape(self.shape)

    def copy(self) -> MixedMatrix:
        m = MixedMatrix(self._rows, self._cols)
        m.data[:] = self.data
        m.cell_types[:] = self.cell_types
        return m

    def of_same_type(self, rows: int, columns: int) -> MixedMatrix:
        return MixedMatrix(rows, columns)


def to_matrix(values: Any) -> Matrix:
    """
    Coerce ``values`` to a Matrix.

    Matrices pass through unchanged; numeric array-likes become a
    DoubleMatrix; nested lists holding any str or None become a MixedMatrix.
    """
    if isinstance(values, Matrix):
        return values
    if isinstance(values, np.ndarray) and values.dtype != object:
        return DoubleMatrix.from_array(values)
    rows = [list(r) for r in values]
    if any(v is None or isinstance(v, str) for r in rows for v in r):
        return MixedMatrix.from_rows(rows)
    return DoubleMatrix.from_array(rows)
