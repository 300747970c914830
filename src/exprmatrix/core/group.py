"""
Named column groups (e.g. the CTRL and CASE samples of an experiment).

A group is either an explicit list of column indices or a list of search
patterns. Patterns are case-insensitive regular expressions matched (with
``re.search``) against a column annotation, "name" by default, and are
resolved lazily against whichever matrix the group is used with.

Examples:
    >>> from exprmatrix.core.group import MatrixGroup
    >>> ctrl = MatrixGroup("CTRL", patterns=["ctrl"])
    >>> case = MatrixGroup("CASE", columns=[2, 3])
    >>> ctrl.find_column_indices(matrix)   # doctest: +SKIP
    [0, 1]
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Sequence, Union

from exprmatrix.core.annotated import AnnotatableMatrix, NAME_ANNOTATION

__all__ = ['MatrixGroup', 'GroupSpec', 'resolve_columns']


@dataclass(frozen=True)
class MatrixGroup:
    """
    Named subset of matrix columns.

    Attributes:
        name: Group label
        patterns: Case-insensitive regexes matched against ``annotation``
        columns: Explicit column indices (used when no patterns are given)
        annotation: Column annotation the patterns are matched against
    """

    name: str
    patterns: tuple[str, ...] = field(default_factory=tuple)
    columns: tuple[int, ...] = field(default_factory=tuple)
    annotation: str = NAME_ANNOTATION

    def __post_init__(self) -> None:
        if not isinstance(self.name, str):
            raise TypeError(f"name must be str, got {type(self.name)}")
        if isinstance(self.patterns, str):
            raise TypeError("patterns must be a sequence of str, not a single str")
        object.__setattr__(self, 'patterns', tuple(self.patterns))
        object.__setattr__(self, 'columns', tuple(int(c) for c in self.columns))

    def find_column_indices(self, matrix: AnnotatableMatrix) -> list[int]:
        """
        Resolve the group against ``matrix``.

        Returns:
            Ascending, unique column indices

        Raises:
            ValueError: If the pattern annotation does not exist or an explicit
                column is out of range
        """
        if not self.patterns:
            for c in self.columns:
                if not 0 <= c < matrix.column_count:
                    raise ValueError(
                        f"Group '{self.name}' column {c} out of range for {matrix.column_count} columns"
                    )
            return sorted(set(self.columns))

        texts = matrix.get_column_annotation_texts(self.annotation)
        regexes = [re.compile(p, re.IGNORECASE) for p in self.patterns]

        return [
            i for i, text in enumerate(texts)
            if any(r.search(text) for r in regexes)
        ]


GroupSpec = Union[MatrixGroup, Sequence[int]]


def resolve_columns(matrix, group: GroupSpec) -> list[int]:
    """
    Column indices of a MatrixGroup or an explicit index list.

    MatrixGroups need an AnnotatableMatrix to resolve against; index lists
    are returned sorted and de-duplicated.

    Raises:
        TypeError: If a MatrixGroup is resolved against a plain Matrix
        ValueError: If an explicit column is out of range
    """
    if isinstance(group, MatrixGroup):
        if not isinstance(matrix, AnnotatableMatrix):
            raise TypeError(
                f"Group '{group.name}' needs an AnnotatableMatrix to resolve against, got {type(matrix)}"
            )
        return group.find_column_indices(matrix)
    columns = sorted({int(c) for c in group})
    for c in columns:
        if not 0 <= c < matrix.column_count:
            raise ValueError(f"Column {c} out of range for {matrix.column_count} columns")
    return columns
