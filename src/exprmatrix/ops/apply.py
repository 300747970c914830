"""
Bulk-apply engine: run user functions over every cell, row or column.

Three function shapes are supported:

    cell function       f(row, col, value) -> new_value
    dimension function  f(buffer, offset, length, dim_index) -> None
    reduce function     f(dim_index, start, length, buffer) -> float

Every entry point accepts any Matrix (or AnnotatableMatrix, which is
unwrapped) and produces the same numbers whatever the storage variant. The
variant only decides how fast it goes. Dispatch asks the storage what it can
do, most specific first:

    1. dense   (ROW_MAJOR | FLOAT_BUFFER)  numpy views straight into ``data``
    2. indexed (INDEXED)                   offsets from ``cell_indices()``
    3. mixed   (MIXED)                     the parallel cell-type buffer
    4. generic                             get_value / update only

In-place entry points fire exactly one change notification per call.
Iteration is always ascending row, then column.

Buffer aliasing (dimension functions):
    in_place=True   dense rows are slices of ``data`` and dense columns are
                    strided views, so writes land in the matrix directly;
                    other variants get a private copy whose changed values
                    are written back to number cells (TEXT and EMPTY cells
                    stay as they are).
    in_place=False  dense buffers are read-only views (writes raise
                    ValueError); other variants get a private copy whose
                    changes are discarded.

Examples:
    >>> from exprmatrix.core.storage import DoubleMatrix
    >>> from exprmatrix.ops.apply import apply, row_eval, row_sum
    >>> m = DoubleMatrix.from_array([[1, 2], [3, 4]])
    >>> apply(m, lambda r, c, v: v * 10)
    >>> row_eval(m, row_sum)
    array([30., 70.])
"""

from __future__ import annotations

import functools
import logging
from typing import Any, Callable, Union

import numpy as np

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.capability import Capability
from exprmatrix.core.cell import CellType, NULL_NUMBER, is_valid_number
from exprmatrix.core.matrix import Matrix
from exprmatrix.utils import statistics

logger = logging.getLogger(__name__)

__all__ = [
    'MatrixLike',
    'CellFunction',
    'DimFunction',
    'ReduceFunction',
    'inner',
    'matrix_op',
    'apply',
    'applied',
    'row_apply_cells',
    'col_apply_cells',
    'row_apply',
    'col_apply',
    'row_eval',
    'col_eval',
    'apply_elementwise',
    'applied_elementwise',
    'row_sum',
    'row_mean',
    'row_median',
    'row_mode',
    'row_pop_stdev',
    'row_max',
    'row_min',
]

MatrixLike = Union[Matrix, AnnotatableMatrix]
CellFunction = Callable[[int, int, float], float]
DimFunction = Callable[[np.ndarray, int, int, int], None]
ReduceFunction = Callable[[int, int, int, np.ndarray], float]


def inner(m: MatrixLike) -> Matrix:
    """Storage matrix behind ``m``."""
    if isinstance(m, AnnotatableMatrix):
        return m.matrix
    if isinstance(m, Matrix):
        return m
    raise TypeError(f"Expected Matrix or AnnotatableMatrix, got {type(m)}")


def matrix_op(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Let a Matrix -> Matrix function accept an AnnotatableMatrix.

    The function runs on the inner matrix; a returned Matrix of the same shape
    is wrapped with copies of the input's annotations.
    """
    @functools.wraps(func)
    def wrapper(m: MatrixLike, *args: Any, **kwargs: Any) -> Any:
        if isinstance(m, AnnotatableMatrix):
            result = func(m.matrix, *args, **kwargs)
            if isinstance(result, Matrix) and result.shape == m.shape:
                return m.with_matrix(result)
            return result
        return func(m, *args, **kwargs)

    return wrapper


def _path(m: Matrix) -> str:
    if m.has_capability(Capability.DENSE):
        return "dense"
    if m.has_capability(Capability.INDEXED):
        return "indexed"
    if m.has_capability(Capability.MIXED):
        return "mixed"
    return "generic"


# ----------------------------------------------------------------------
# Cell functions
# ----------------------------------------------------------------------

def _block_cells(m: Matrix, rows: range, columns: range):
    # Shared slots (symmetric layouts) are visited once.
    seen: set[int] = set()
    for i in rows:
        for j in columns:
            index = m.get_index(i, j)
            if index not in seen:
                seen.add(index)
                yield i, j, index


def _apply_cells(m: Matrix, f: CellFunction, rows: range, columns: range) -> None:
    path = _path(m)
    logger.debug(f"Cell apply on {type(m).__name__} via {path} path")

    if path in ("dense", "indexed"):
        if len(rows) == m.row_count and len(columns) == m.column_count:
            cells = m.cell_indices()
        else:
            cells = _block_cells(m, rows, columns)
        for i, j, index in cells:
            v = m.slot_value(index)
            if is_valid_number(v):
                m.write_slot(index, f(i, j, v))
    elif path == "mixed":
        cols = m.column_count
        for i in rows:
            for j in columns:
                index = i * cols + j
                if m.cell_types[index] == CellType.NUMBER and is_valid_number(m.data[index]):
                    m.data[index] = float(f(i, j, m.data[index]))
    else:
        for i in rows:
            for j in columns:
                v = m.get_value(i, j)
                if is_valid_number(v):
                    m.update_value(i, j, f(i, j, v))


def apply(m: MatrixLike, f: CellFunction) -> None:
    """Replace every valid number v at (row, col) with f(row, col, v), in place."""
    m = inner(m)
    _apply_cells(m, f, range(m.row_count), range(m.column_count))
    m.fire_matrix_changed()


@matrix_op
def applied(m: Matrix, f: CellFunction) -> Matrix:
    """Copy of ``m`` (same storage variant) with ``f`` applied to every valid number."""
    out = m.copy()
    _apply_cells(out, f, range(out.row_count), range(out.column_count))
    return out


def row_apply_cells(m: MatrixLike, f: CellFunction, row: int) -> None:
    """Cell function over one row, in place."""
    m = inner(m)
    m.check_row(row)
    _apply_cells(m, f, range(row, row + 1), range(m.column_count))
    m.fire_matrix_changed()


def col_apply_cells(m: MatrixLike, f: CellFunction, column: int) -> None:
    """Cell function over one column, in place."""
    m = inner(m)
    m.check_column(column)
    _apply_cells(m, f, range(m.row_count), range(column, column + 1))
    m.fire_matrix_changed()


# ----------------------------------------------------------------------
# Dimension functions
# ----------------------------------------------------------------------

def _read_only(a: np.ndarray) -> np.ndarray:
    view = a.view()
    view.flags.writeable = False
    return view


def _dim_indices(count: int, index: int | None) -> range:
    if index is None:
        return range(count)
    return range(index, index + 1)


def _write_back(m: Matrix, cells: list[tuple[int, int]], before: np.ndarray, after: np.ndarray) -> None:
    # Only changed values go back, and only into NUMBER cells or cells that
    # held a valid number; TEXT and EMPTY cells without one are left alone.
    changed = ~((before == after) | (np.isnan(before) & np.isnan(after)))
    for k in np.flatnonzero(changed):
        i, j = cells[k]
        if m.get_cell_type(i, j) == CellType.NUMBER or is_valid_number(before[k]):
            m.update_value(i, j, after[k])


def row_apply(m: MatrixLike, f: DimFunction, in_place: bool = False, row: int | None = None) -> None:
    """
    Call ``f(buffer, offset, length, row)`` for every row (or just ``row``).

    On the dense path ``buffer`` is the whole flat ``data`` array and
    ``offset`` is the row start; elsewhere it is a copy of the row with
    offset 0. See the module docstring for ``in_place``.
    """
    m = inner(m)
    if row is not None:
        m.check_row(row)
    rows = _dim_indices(m.row_count, row)
    cols = m.column_count

    if m.has_capability(Capability.DENSE):
        logger.debug(f"Row apply on {type(m).__name__} via dense path")
        buffer = m.data if in_place else _read_only(m.data)
        for i in rows:
            f(buffer, i * cols, cols, i)
    else:
        logger.debug(f"Row apply on {type(m).__name__} via copy path")
        for i in rows:
            buffer = m.row_as_double(i)
            before = buffer.copy()
            f(buffer, 0, cols, i)
            if in_place:
                _write_back(m, [(i, j) for j in range(cols)], before, buffer)

    if in_place:
        m.fire_matrix_changed()


def col_apply(m: MatrixLike, f: DimFunction, in_place: bool = False, column: int | None = None) -> None:
    """
    Call ``f(buffer, offset, length, column)`` for every column (or just
    ``column``). Dense buffers are strided views of ``data`` with offset 0.
    """
    m = inner(m)
    if column is not None:
        m.check_column(column)
    columns = _dim_indices(m.column_count, column)
    rows = m.row_count

    if m.has_capability(Capability.DENSE):
        logger.debug(f"Column apply on {type(m).__name__} via dense path")
        for j in columns:
            view = m.data[j::m.column_count]
            f(view if in_place else _read_only(view), 0, rows, j)
    else:
        logger.debug(f"Column apply on {type(m).__name__} via copy path")
        for j in columns:
            buffer = m.column_as_double(j)
            before = buffer.copy()
            f(buffer, 0, rows, j)
            if in_place:
                _write_back(m, [(i, j) for i in range(rows)], before, buffer)

    if in_place:
        m.fire_matrix_changed()


# ----------------------------------------------------------------------
# Reduce functions
# ----------------------------------------------------------------------

def row_eval(m: MatrixLike, f: ReduceFunction) -> np.ndarray:
    """One value per row: ``f(row, start, length, buffer)``. Never mutates ``m``."""
    m = inner(m)
    cols = m.column_count
    out = np.empty(m.row_count, dtype=np.float64)

    if m.has_capability(Capability.DENSE):
        buffer = _read_only(m.data)
        for i in range(m.row_count):
            out[i] = f(i, i * cols, cols, buffer)
    else:
        for i in range(m.row_count):
            out[i] = f(i, 0, cols, m.row_as_double(i))

    return out


def col_eval(m: MatrixLike, f: ReduceFunction) -> np.ndarray:
    """One value per column: ``f(column, start, length, buffer)``."""
    m = inner(m)
    rows = m.row_count
    out = np.empty(m.column_count, dtype=np.float64)

    if m.has_capability(Capability.DENSE):
        for j in range(m.column_count):
            out[j] = f(j, 0, rows, _read_only(m.data[j::m.column_count]))
    else:
        for j in range(m.column_count):
            out[j] = f(j, 0, rows, m.column_as_double(j))

    return out


def _valid_slice(start: int, length: int, buffer: np.ndarray) -> np.ndarray:
    values = buffer[start:start + length]
    return values[np.isfinite(values)]


def row_sum(i: int, start: int, length: int, buffer: np.ndarray) -> float:
    values = _valid_slice(start, length, buffer)
    return float(values.sum()) if values.size else NULL_NUMBER


def row_mean(i: int, start: int, length: int, buffer: np.ndarray) -> float:
    values = _valid_slice(start, length, buffer)
    return float(values.mean()) if values.size else NULL_NUMBER


def row_median(i: int, start: int, length: int, buffer: np.ndarray) -> float:
    values = _valid_slice(start, length, buffer)
    return float(np.median(values)) if values.size else NULL_NUMBER


def row_mode(i: int, start: int, length: int, buffer: np.ndarray) -> float:
    return statistics.mode(_valid_slice(start, length, buffer))


def row_pop_stdev(i: int, start: int, length: int, buffer: np.ndarray) -> float:
    return statistics.pop_stdev(_valid_slice(start, length, buffer))


def row_max(i: int, start: int, length: int, buffer: np.ndarray) -> float:
    values = _valid_slice(start, length, buffer)
    return float(values.max()) if values.size else NULL_NUMBER


def row_min(i: int, start: int, length: int, buffer: np.ndarray) -> float:
    values = _valid_slice(start, length, buffer)
    return float(values.min()) if values.size else NULL_NUMBER


# ----------------------------------------------------------------------
# Vectorized elementwise helpers
# ----------------------------------------------------------------------

def apply_elementwise(
    m: MatrixLike,
    func: Callable[[np.ndarray], np.ndarray],
    skip_invalid: bool = True,
) -> None:
    """
    Replace values with ``func(values)`` in one vectorized call, in place.

    ``func`` maps a 1-D float64 array to an array of the same length.
    Invalid numbers are left untouched unless ``skip_invalid`` is False and
    the storage is guaranteed numeric, in which case every cell is passed.
    TEXT and EMPTY cells of mixed storage are never touched.
    """
    m = inner(m)
    path = _path(m)
    logger.debug(f"Elementwise apply on {type(m).__name__} via {path} path")
    every_cell = not skip_invalid and m.has_capability(Capability.NUMERIC)

    with np.errstate(all='ignore'):
        if m.has_capability(Capability.INDEXED | Capability.FLOAT_BUFFER):
            # Each slot exactly once, including shared (symmetric) slots.
            if every_cell:
                m.data[:] = func(m.data)
            else:
                mask = np.isfinite(m.data)
                m.data[mask] = func(m.data[mask])
        elif path == "indexed":
            slots = np.arange(m.data.size)
            values = m.slot_values(slots)
            mask = np.ones(values.size, dtype=bool) if every_cell else np.isfinite(values)
            results = np.asarray(func(values[mask]), dtype=np.float64)
            for index, v in zip(slots[mask], results):
                m.write_slot(int(index), v)
        elif path == "mixed":
            numbers = np.flatnonzero(m.cell_types == CellType.NUMBER)
            values = m.data[numbers].astype(np.float64)
            mask = np.isfinite(values)
            results = np.asarray(func(values[mask]), dtype=np.float64)
            m.data[numbers[mask]] = [float(v) for v in results]
        else:
            values = m.to_double()
            mask = np.isfinite(values)
            results = np.asarray(func(values[mask]), dtype=np.float64)
            for (i, j), v in zip(np.argwhere(mask), results):
                m.update_value(int(i), int(j), v)

    m.fire_matrix_changed()


@matrix_op
def applied_elementwise(
    m: Matrix,
    func: Callable[[np.ndarray], np.ndarray],
    skip_invalid: bool = True,
) -> Matrix:
    """Copy of ``m`` (same storage variant) with ``func`` applied elementwise."""
    out = m.copy()
    apply_elementwise(out, func, skip_invalid=skip_invalid)
    return out
