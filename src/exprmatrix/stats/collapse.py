"""
Collapse duplicate rows (e.g. several probes per gene) to one row per key.

Rows are partitioned by the text of a key row annotation (typically a gene
symbol). Every row gets a score from a CollapseRule, and for each key the row
with the extreme score survives:

    - strict comparison: on ties the first row (lowest index) wins
    - a NaN score never beats a real score, and a NaN current best is
      replaced by the first real score that follows
    - survivors keep their original relative order

After selection each non-key row annotation of a survivor becomes the
``;``-joined text of that annotation over every row sharing its key (in row
order), so no probe identifiers are lost. The key annotation is copied
verbatim and column annotations are unchanged.

Biological Context:
    Microarrays carry several probes per gene. Collapsing to the most
    variable probe (MAX_STDEV) or the most significant one (MIN_TTEST)
    gives one row per gene for downstream gene-set or network analysis.

Examples:
    >>> from exprmatrix.stats.collapse import collapse_max_mean
    >>> collapsed = collapse_max_mean(matrix, "Gene Symbol")   # doctest: +SKIP
"""

from __future__ import annotations

import logging
import math
from enum import Enum

import numpy as np

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.group import GroupSpec
from exprmatrix.ops.apply import row_eval, row_max, row_mean, row_median, row_min, row_pop_stdev
from exprmatrix.stats.row_stats import (
    IQR_ANNOTATION,
    QUART_COEFF_DISP_ANNOTATION,
    T_STAT_ANNOTATION,
)
from exprmatrix.stats.two_sample import t_test

logger = logging.getLogger(__name__)

__all__ = [
    'CollapseRule',
    'DEFAULT_DELIMITER',
    'row_scores',
    'select_collapsed_rows',
    'join_annotations',
    'collapse',
    'collapse_max_stdev',
    'collapse_max_mean',
    'collapse_min_mean',
    'collapse_max_median',
    'collapse_max',
    'collapse_min',
    'collapse_ttest',
    'collapse_max_annotation',
    'collapse_max_tstat',
    'collapse_max_iqr',
    'collapse_max_quart_coeff_disp',
]

DEFAULT_DELIMITER = ";"


class CollapseRule(Enum):
    """Score used to pick the surviving row of each key."""

    MAX_STDEV = "max_stdev"
    MAX_MEAN = "max_mean"
    MIN_MEAN = "min_mean"
    MAX_MEDIAN = "max_median"
    MAX_VALUE = "max_value"
    MIN_VALUE = "min_value"
    MIN_TTEST = "min_ttest"
    MAX_ANNOTATION = "max_annotation"

    @property
    def maximize(self) -> bool:
        return self not in (CollapseRule.MIN_MEAN, CollapseRule.MIN_VALUE, CollapseRule.MIN_TTEST)


def row_scores(
    m: AnnotatableMatrix,
    rule: CollapseRule,
    g1: GroupSpec | None = None,
    g2: GroupSpec | None = None,
    annotation: str | None = None,
    equal_variance: bool = False,
) -> np.ndarray:
    """
    Score of every row under ``rule``.

    Raises:
        ValueError: If MIN_TTEST is missing a group, MAX_ANNOTATION is missing
            its annotation, or the annotation is not numeric
    """
    if rule == CollapseRule.MAX_STDEV:
        return row_eval(m, row_pop_stdev)
    if rule in (CollapseRule.MAX_MEAN, CollapseRule.MIN_MEAN):
        return row_eval(m, row_mean)
    if rule == CollapseRule.MAX_MEDIAN:
        return row_eval(m, row_median)
    if rule == CollapseRule.MAX_VALUE:
        return row_eval(m, row_max)
    if rule == CollapseRule.MIN_VALUE:
        return row_eval(m, row_min)
    if rule == CollapseRule.MIN_TTEST:
        if g1 is None or g2 is None:
            raise ValueError("MIN_TTEST collapse needs two column groups")
        return t_test(m, g1, g2, equal_variance=equal_variance)
    if rule == CollapseRule.MAX_ANNOTATION:
        if annotation is None:
            raise ValueError("MAX_ANNOTATION collapse needs a row annotation name")
        return np.abs(m.get_row_annotation_values(annotation))
    raise ValueError(f"Unknown collapse rule: {rule}")


def select_collapsed_rows(
    m: AnnotatableMatrix,
    key: str,
    scores: np.ndarray,
    maximize: bool = True,
) -> tuple[list[int], dict[int, list[int]]]:
    """
    Pick one row per distinct key text.

    Returns:
        (survivors, members): surviving row indices in ascending order, and
        for each survivor every row index sharing its key, ascending
    """
    keys = m.get_row_annotation_texts(key)
    best: dict[str, int] = {}

    for i, k in enumerate(keys):
        if k not in best:
            best[k] = i
            continue

        current = scores[best[k]]
        score = scores[i]

        if math.isnan(current):
            if not math.isnan(score):
                best[k] = i
        elif maximize and score > current:
            best[k] = i
        elif not maximize and score < current:
            best[k] = i

    members: dict[int, list[int]] = {row: [] for row in best.values()}
    for i, k in enumerate(keys):
        members[best[k]].append(i)

    return sorted(best.values()), members


def join_annotations(
    source: AnnotatableMatrix,
    collapsed: AnnotatableMatrix,
    survivors: list[int],
    members: dict[int, list[int]],
    key: str,
    delimiter: str = DEFAULT_DELIMITER,
) -> None:
    """Replace each non-key row annotation of ``collapsed`` with the joined group text."""
    for name in source.row_annotation_names:
        if name == key:
            continue
        texts = source.get_row_annotation_texts(name)
        collapsed.set_row_annotations(
            name,
            [delimiter.join(texts[row] for row in members[survivor]) for survivor in survivors],
        )


def collapse(
    m: AnnotatableMatrix,
    key: str,
    rule: CollapseRule | str,
    g1: GroupSpec | None = None,
    g2: GroupSpec | None = None,
    annotation: str | None = None,
    delimiter: str = DEFAULT_DELIMITER,
    equal_variance: bool = False,
) -> AnnotatableMatrix:
    """
    Collapse rows sharing the same ``key`` annotation text to one row.

    Args:
        m: Annotated matrix to collapse
        key: Row annotation whose text defines the groups
        rule: CollapseRule or its value string (e.g. "max_stdev")
        g1, g2: Column groups for MIN_TTEST
        annotation: Numeric row annotation for MAX_ANNOTATION
        delimiter: Separator for joined annotations
        equal_variance: Student instead of Welch t-test for MIN_TTEST

    Returns:
        New AnnotatableMatrix with one row per distinct key

    Raises:
        ValueError: If ``key`` is not a row annotation or ``rule`` is unknown
    """
    if isinstance(rule, str):
        try:
            rule = CollapseRule(rule)
        except ValueError:
            valid = [r.value for r in CollapseRule]
            raise ValueError(f"Unknown collapse rule: {rule}. Valid: {valid}") from None

    # Fail on a bad key before any scoring work.
    m.get_row_annotations(key)

    scores = row_scores(m, rule, g1=g1, g2=g2, annotation=annotation, equal_variance=equal_variance)
    survivors, members = select_collapsed_rows(m, key, scores, maximize=rule.maximize)

    ret = m.copy_rows(survivors)
    join_annotations(m, ret, survivors, members, key, delimiter)

    logger.info(f"Collapsed {m.row_count} rows to {len(survivors)} on '{key}' ({rule.value})")

    return ret


def collapse_max_stdev(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    return collapse(m, key, CollapseRule.MAX_STDEV)


def collapse_max_mean(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    return collapse(m, key, CollapseRule.MAX_MEAN)


def collapse_min_mean(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    return collapse(m, key, CollapseRule.MIN_MEAN)


def collapse_max_median(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    return collapse(m, key, CollapseRule.MAX_MEDIAN)


def collapse_max(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    """Keep the row with the largest single value."""
    return collapse(m, key, CollapseRule.MAX_VALUE)


def collapse_min(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    """Keep the row with the smallest single value."""
    return collapse(m, key, CollapseRule.MIN_VALUE)


def collapse_ttest(m: AnnotatableMatrix, key: str, g1: GroupSpec, g2: GroupSpec) -> AnnotatableMatrix:
    """Keep the row with the smallest Welch t-test p-value between ``g1`` and ``g2``."""
    return collapse(m, key, CollapseRule.MIN_TTEST, g1=g1, g2=g2)


def collapse_max_annotation(m: AnnotatableMatrix, key: str, annotation: str) -> AnnotatableMatrix:
    """Keep the row with the largest absolute value of a numeric row annotation."""
    return collapse(m, key, CollapseRule.MAX_ANNOTATION, annotation=annotation)


def collapse_max_tstat(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    """Collapse on |T-Stat|; run ``add_t_stat`` first."""
    return collapse_max_annotation(m, key, T_STAT_ANNOTATION)


def collapse_max_iqr(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    return collapse_max_annotation(m, key, IQR_ANNOTATION)


def collapse_max_quart_coeff_disp(m: AnnotatableMatrix, key: str) -> AnnotatableMatrix:
    return collapse_max_annotation(m, key, QUART_COEFF_DISP_ANNOTATION)
