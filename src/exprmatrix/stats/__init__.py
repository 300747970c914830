"""
Statistical transforms over expression matrices.

Exports core functions for:
- Z-score standardization (whole, row, column, group)
- Quantile and median-ratio normalization
- Per-row two-sample tests between column groups
- Row statistics as annotations, row collapsing, row filters
"""

from .zscore import zscore, row_zscore, column_zscore, group_zscore
from .normalization import (
    NormalizationMethod,
    NormalizationResult,
    quantile_normalize,
    median_ratio,
    normalize_matrix,
)
from .two_sample import t_test, t_stat, mann_whitney
from .row_stats import (
    add_row_sums,
    add_row_means,
    add_row_medians,
    add_row_modes,
    add_iqr,
    add_quart_coeff_disp,
    add_t_stat,
)
from .collapse import CollapseRule, collapse, select_collapsed_rows
from .filters import filter_rows, stdev_filter, mean_filter, min_exp_filter

__all__ = [
    "zscore",
    "row_zscore",
    "column_zscore",
    "group_zscore",
    "NormalizationMethod",
    "NormalizationResult",
    "quantile_normalize",
    "median_ratio",
    "normalize_matrix",
    "t_test",
    "t_stat",
    "mann_whitney",
    "add_row_sums",
    "add_row_means",
    "add_row_medians",
    "add_row_modes",
    "add_iqr",
    "add_quart_coeff_disp",
    "add_t_stat",
    "CollapseRule",
    "collapse",
    "select_collapsed_rows",
    "filter_rows",
    "stdev_filter",
    "mean_filter",
    "min_exp_filter",
]
