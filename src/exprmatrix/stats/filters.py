"""
Row filters returning row copies of an annotated matrix.

Each filter keeps rows in their original order, together with their
annotations.

    filter_rows     annotation text fully matches a regex (or does not)
    stdev_filter    population stdev >= threshold
    mean_filter     mean >= threshold
    min_exp_filter  at least ``min_samples`` valid values >= ``min_exp``
"""

from __future__ import annotations

import logging
import re

import numpy as np

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.ops.apply import row_eval, row_mean, row_pop_stdev

logger = logging.getLogger(__name__)

__all__ = ['filter_rows', 'stdev_filter', 'mean_filter', 'min_exp_filter']


def _keep(m: AnnotatableMatrix, mask: np.ndarray, label: str) -> AnnotatableMatrix:
    rows = np.flatnonzero(mask)
    logger.info(f"{label}: kept {len(rows)}/{m.row_count} rows")
    return m.copy_rows(rows)


def filter_rows(m: AnnotatableMatrix, annotation: str, regex: str, keep: bool = True) -> AnnotatableMatrix:
    """
    Keep rows whose ``annotation`` text matches ``regex`` in full.

    Args:
        keep: If False, keep the rows that do NOT match instead
    """
    pattern = re.compile(regex)
    texts = m.get_row_annotation_texts(annotation)
    matches = np.array([pattern.fullmatch(t) is not None for t in texts], dtype=bool)
    return _keep(m, matches if keep else ~matches, f"filter_rows({annotation}={regex!r})")


def stdev_filter(m: AnnotatableMatrix, min_sd: float) -> AnnotatableMatrix:
    """Keep rows with population standard deviation >= ``min_sd``."""
    with np.errstate(invalid='ignore'):
        mask = row_eval(m, row_pop_stdev) >= min_sd
    return _keep(m, mask, f"stdev_filter(>={min_sd})")


def mean_filter(m: AnnotatableMatrix, min_mean: float) -> AnnotatableMatrix:
    """Keep rows with mean >= ``min_mean``."""
    with np.errstate(invalid='ignore'):
        mask = row_eval(m, row_mean) >= min_mean
    return _keep(m, mask, f"mean_filter(>={min_mean})")


def min_exp_filter(m: AnnotatableMatrix, min_exp: float, min_samples: int) -> AnnotatableMatrix:
    """Keep rows with at least ``min_samples`` valid values >= ``min_exp``."""
    values = m.to_double()
    with np.errstate(invalid='ignore'):
        counts = (np.isfinite(values) & (values >= min_exp)).sum(axis=1)
    return _keep(m, counts >= min_samples, f"min_exp_filter(>={min_exp} in {min_samples})")
