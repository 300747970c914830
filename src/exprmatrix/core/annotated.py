"""
Matrix plus row and column annotation tables.

AnnotatableMatrix couples a storage-variant Matrix with metadata about its
rows (probe/gene identifiers, precomputed statistics) and its columns (sample
names, phenotypes). Annotations are pandas DataFrames with a RangeIndex: one
DataFrame column per annotation name, one DataFrame row per matrix row (or
matrix column).

Expression Matrix Context:
    - Rows = features (probes, genes, proteins)
    - Columns = samples
    - Row annotations: "name", "Gene Symbol", "T-Stat", ...
    - Column annotations: "name", "phenotype", ...

    The "name" annotation is a convention: ``row_names`` / ``column_names``
    read it, and MatrixGroup resolves patterns against it by default.

Engineering Design:
    - Annotation tables are owned exclusively; every factory copies them
    - The inner matrix is shared by ``view()``, ``with_matrix()`` and
      ``copy(deep=False)``; ``copy()`` and ``copy_rows()`` copy it
    - Validated: annotation lengths always match the matrix dimensions
    - Change notifications of the inner matrix are forwarded to listeners
      registered on the annotated matrix

Examples:
    >>> from exprmatrix.core.storage import DoubleMatrix
    >>> from exprmatrix.core.annotated import AnnotatableMatrix
    >>>
    >>> m = AnnotatableMatrix(DoubleMatrix.from_array([[1, 2], [3, 4]]))
    >>> m.set_row_annotations("name", ["probe1", "probe2"])
    >>> m.set_column_names(["CTRL_1", "CASE_1"])
    >>> m.get_row_annotation_text("name", 1)
    'probe2'
    >>> subset = m.copy_rows([1])
    >>> subset.row_names
    ['probe2']
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np
import pandas as pd

from exprmatrix.core.cell import CellType, format_number
from exprmatrix.core.matrix import Matrix, MatrixListener

__all__ = ['AnnotatableMatrix', 'NAME_ANNOTATION']

NAME_ANNOTATION = "name"


class AnnotatableMatrix:
    """
    Storage matrix with row/column annotation tables.

    Attributes:
        matrix: Inner storage-variant Matrix
        row_annotations: DataFrame, one row per matrix row
        column_annotations: DataFrame, one row per matrix column

    Shape Invariants:
        - len(row_annotations) == matrix.row_count
        - len(column_annotations) == matrix.column_count
        - annotation names are unique per axis
    """

    def __init__(
        self,
        matrix: Matrix,
        row_annotations: pd.DataFrame | None = None,
        column_annotations: pd.DataFrame | None = None,
        copy: bool = False,
    ):
        """
        Initialize with validation.

        Args:
            matrix: Storage matrix to annotate
            row_annotations: Optional DataFrame with one row per matrix row
            column_annotations: Optional DataFrame with one row per matrix column
            copy: If True, deep copy the inner matrix

        Raises:
            TypeError: If matrix is not a Matrix or annotations are not DataFrames
            ValueError: If annotation lengths don't match the matrix shape
        """
        if not isinstance(matrix, Matrix):
            raise TypeError(f"matrix must be Matrix, got {type(matrix)}")
        if row_annotations is not None and not isinstance(row_annotations, pd.DataFrame):
            raise TypeError(f"row_annotations must be pd.DataFrame, got {type(row_annotations)}")
        if column_annotations is not None and not isinstance(column_annotations, pd.DataFrame):
            raise TypeError(
                f"column_annotations must be pd.DataFrame, got {type(column_annotations)}"
            )

        if row_annotations is None:
            row_annotations = pd.DataFrame(index=pd.RangeIndex(matrix.row_count))
        if column_annotations is None:
            column_annotations = pd.DataFrame(index=pd.RangeIndex(matrix.column_count))

        if len(row_annotations) != matrix.row_count:
            raise ValueError(
                f"row_annotations length ({len(row_annotations)}) must match matrix rows ({matrix.row_count})"
            )
        if len(column_annotations) != matrix.column_count:
            raise ValueError(
                f"column_annotations length ({len(column_annotations)}) must match matrix columns "
                f"({matrix.column_count})"
            )

        self._matrix = matrix.copy() if copy else matrix
        self._row_annotations = row_annotations.reset_index(drop=True)
        self._column_annotations = column_annotations.reset_index(drop=True)
        self._numeric_cache: dict[tuple[str, str], np.ndarray] = {}
        self._listeners: list[MatrixListener] = []

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def matrix(self) -> Matrix:
        """Inner storage matrix."""
        return self._matrix

    @property
    def row_annotations(self) -> pd.DataFrame:
        return self._row_annotations

    @property
    def column_annotations(self) -> pd.DataFrame:
        return self._column_annotations

    @property
    def shape(self) -> tuple[int, int]:
        return self._matrix.shape

    @property
    def row_count(self) -> int:
        return self._matrix.row_count

    @property
    def column_count(self) -> int:
        return self._matrix.column_count

    @property
    def row_annotation_names(self) -> list[str]:
        return list(self._row_annotations.columns)

    @property
    def column_annotation_names(self) -> list[str]:
        return list(self._column_annotations.columns)

    @property
    def row_names(self) -> list[str]:
        """Text of the "name" row annotation ('' for every row if absent)."""
        if NAME_ANNOTATION not in self._row_annotations.columns:
            return [''] * self.row_count
        return self.get_row_annotation_texts(NAME_ANNOTATION)

    @property
    def column_names(self) -> list[str]:
        """Text of the "name" column annotation ('' for every column if absent)."""
        if NAME_ANNOTATION not in self._column_annotations.columns:
            return [''] * self.column_count
        return self.get_column_annotation_texts(NAME_ANNOTATION)

    def set_row_names(self, names: Sequence[Any]) -> None:
        self.set_row_annotations(NAME_ANNOTATION, names)

    def set_column_names(self, names: Sequence[Any]) -> None:
        self.set_column_annotations(NAME_ANNOTATION, names)

    # ------------------------------------------------------------------
    # Row annotations
    # ------------------------------------------------------------------

    def get_row_annotations(self, name: str) -> pd.Series:
        return _lookup(self._row_annotations, name, "row")

    def set_row_annotations(self, name: str, values: Sequence[Any]) -> None:
        """Add or replace a whole row annotation."""
        _assign(self._row_annotations, name, values, self.row_count, "row")
        self._numeric_cache.pop(("row", name), None)

    def set_row_annotation(self, name: str, row: int, value: Any) -> None:
        """Set one row's value of an annotation, creating the annotation if needed."""
        self._matrix.check_row(row)
        _assign_one(self._row_annotations, name, row, value)
        self._numeric_cache.pop(("row", name), None)

    def get_row_annotation(self, name: str, row: int) -> Any:
        return _unbox(self.get_row_annotations(name).iat[row])

    def get_row_annotation_text(self, name: str, row: int) -> str:
        return annotation_text(self.get_row_annotations(name).iat[row])

    def get_row_annotation_texts(self, name: str) -> list[str]:
        return [annotation_text(v) for v in self.get_row_annotations(name)]

    def get_row_annotation_values(self, name: str) -> np.ndarray:
        """
        Numeric form of a row annotation (cached until the annotation changes).

        Raises:
            ValueError: If the annotation is unknown or holds non-numeric text
        """
        return self._numeric(self._row_annotations, name, "row")

    # ------------------------------------------------------------------
    # Column annotations
    # ------------------------------------------------------------------

    def get_column_annotations(self, name: str) -> pd.Series:
        return _lookup(self._column_annotations, name, "column")

    def set_column_annotations(self, name: str, values: Sequence[Any]) -> None:
        _assign(self._column_annotations, name, values, self.column_count, "column")
        self._numeric_cache.pop(("column", name), None)

    def set_column_annotation(self, name: str, column: int, value: Any) -> None:
        self._matrix.check_column(column)
        _assign_one(self._column_annotations, name, column, value)
        self._numeric_cache.pop(("column", name), None)

    def get_column_annotation(self, name: str, column: int) -> Any:
        return _unbox(self.get_column_annotations(name).iat[column])

    def get_column_annotation_text(self, name: str, column: int) -> str:
        return annotation_text(self.get_column_annotations(name).iat[column])

    def get_column_annotation_texts(self, name: str) -> list[str]:
        return [annotation_text(v) for v in self.get_column_annotations(name)]

    def get_column_annotation_values(self, name: str) -> np.ndarray:
        return self._numeric(self._column_annotations, name, "column")

    def _numeric(self, frame: pd.DataFrame, name: str, axis: str) -> np.ndarray:
        key = (axis, name)
        if key not in self._numeric_cache:
            series = _lookup(frame, name, axis)
            try:
                values = pd.to_numeric(series, errors='raise').to_numpy(dtype=np.float64)
            except (TypeError, ValueError) as e:
                raise ValueError(f"{axis} annotation '{name}' is not numeric: {e}") from e
            self._numeric_cache[key] = values
        return self._numeric_cache[key].copy()

    # ------------------------------------------------------------------
    # Value passthrough
    # ------------------------------------------------------------------

    def get_value(self, row: int, column: int) -> float:
        return self._matrix.get_value(row, column)

    def get_text(self, row: int, column: int) -> str:
        return self._matrix.get_text(row, column)

    def get_cell_type(self, row: int, column: int) -> CellType:
        return self._matrix.get_cell_type(row, column)

    def get(self, row: int, column: int) -> Any:
        return self._matrix.get(row, column)

    def set(self, row: int, column: int, value: Any) -> None:
        self._matrix.set(row, column, value)

    def row_as_double(self, row: int) -> np.ndarray:
        return self._matrix.row_as_double(row)

    def column_as_double(self, column: int) -> np.ndarray:
        return self._matrix.column_as_double(column)

    def row_as_text(self, row: int) -> list[str]:
        return self._matrix.row_as_text(row)

    def column_as_text(self, column: int) -> list[str]:
        return self._matrix.column_as_text(column)

    def to_double(self) -> np.ndarray:
        return self._matrix.to_double()

    # ------------------------------------------------------------------
    # Change notification
    # ------------------------------------------------------------------

    def add_matrix_listener(self, listener: MatrixListener) -> None:
        """
        Call ``listener(self)`` whenever the inner matrix changes.

        The inner matrix references this object only while it has listeners.
        """
        if not self._listeners:
            self._matrix.add_matrix_listener(self._on_matrix_changed)
        self._listeners.append(listener)

    def remove_matrix_listener(self, listener: MatrixListener) -> None:
        self._listeners.remove(listener)
        if not self._listeners:
            self._matrix.remove_matrix_listener(self._on_matrix_changed)

    def _on_matrix_changed(self, matrix: Matrix) -> None:
        for listener in list(self._listeners):
            listener(self)

    # ------------------------------------------------------------------
    # Factories
    # ------------------------------------------------------------------

    def copy(self, deep: bool = True) -> AnnotatableMatrix:
        """
        Copy of this annotated matrix.

        Args:
            deep: If True, copy the inner matrix too. If False, share it.
                Annotation tables are copied either way.
        """
        return AnnotatableMatrix(
            self._matrix,
            self._row_annotations.copy(),
            self._column_annotations.copy(),
            copy=deep,
        )

    def view(self) -> AnnotatableMatrix:
        """New annotated matrix sharing this inner matrix, with its own annotations."""
        return self.copy(deep=False)

    def with_matrix(self, matrix: Matrix) -> AnnotatableMatrix:
        """
        Same annotations around a different inner matrix.

        Raises:
            ValueError: If ``matrix`` has a different shape
        """
        if matrix.shape != self.shape:
            raise ValueError(f"matrix shape {matrix.shape} must match {self.shape}")
        return AnnotatableMatrix(
            matrix,
            self._row_annotations.copy(),
            self._column_annotations.copy(),
        )

    def copy_rows(self, rows: Sequence[int] | np.ndarray) -> AnnotatableMatrix:
        """New annotated matrix with the given rows (in order) and their annotations."""
        rows = [int(r) for r in rows]
        return AnnotatableMatrix(
            self._matrix.copy_rows(rows),
            self._row_annotations.iloc[rows].reset_index(drop=True),
            self._column_annotations.copy(),
        )

    def copy_columns(self, columns: Sequence[int] | np.ndarray) -> AnnotatableMatrix:
        """New annotated matrix with the given columns (in order) and their annotations."""
        columns = [int(c) for c in columns]
        return AnnotatableMatrix(
            self._matrix.copy_columns(columns),
            self._row_annotations.copy(),
            self._column_annotations.iloc[columns].reset_index(drop=True),
        )

    def __repr__(self) -> str:
        return (
            f"AnnotatableMatrix({self.row_count} rows × {self.column_count} columns, "
            f"{type(self._matrix).__name__})\n"
            f"  Row annotations: {self.row_annotation_names}\n"
            f"  Column annotations: {self.column_annotation_names}"
        )

    def __str__(self) -> str:
        return self.__repr__()


def annotation_text(value: Any) -> str:
    """Text form of an annotation value; missing values become ''."""
    if value is None:
        return ''
    if isinstance(value, str):
        return value
    if isinstance(value, (float, int, np.floating, np.integer)) and not isinstance(value, bool):
        return format_number(value)
    if pd.isna(value):
        return ''
    return str(value)


def _unbox(value: Any) -> Any:
    if isinstance(value, np.generic):
        return value.item()
    return value


def _lookup(frame: pd.DataFrame, name: str, axis: str) -> pd.Series:
    try:
        return frame[name]
    except KeyError:
        raise ValueError(
            f"Unknown {axis} annotation '{name}'. Available: {list(frame.columns)}"
        ) from None


def _assign(frame: pd.DataFrame, name: str, values: Sequence[Any], expected: int, axis: str) -> None:
    values = list(values)
    if len(values) != expected:
        raise ValueError(
            f"{axis} annotation '{name}' has {len(values)} values, expected {expected}"
        )
    frame[name] = pd.Series(values, index=frame.index, dtype=_series_dtype(values))


def _assign_one(frame: pd.DataFrame, name: str, index: int, value: Any) -> None:
    if name not in frame.columns:
        frame[name] = pd.Series([None] * len(frame), index=frame.index, dtype=object)
    elif frame[name].dtype != object:
        frame[name] = frame[name].astype(object)
    frame.at[index, name] = value


def _series_dtype(values: list[Any]) -> Any:
    # Numeric annotations keep an inferred int/float dtype, everything else is object.
    if values and all(
        isinstance(v, (int, float, np.integer, np.floating)) and not isinstance(v, bool)
        for v in values
    ):
        return None
    return object
