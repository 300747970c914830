"""
Tests for collapsing duplicate rows to one row per key annotation.
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_array_equal

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.storage import DoubleMatrix
from exprmatrix.stats.collapse import (
    CollapseRule,
    collapse,
    collapse_max,
    collapse_max_annotation,
    collapse_max_iqr,
    collapse_max_mean,
    collapse_max_median,
    collapse_max_stdev,
    collapse_max_tstat,
    collapse_min,
    collapse_min_mean,
    collapse_ttest,
    select_collapsed_rows,
)
from exprmatrix.stats.row_stats import add_iqr, add_t_stat


def _annotated(values, genes):
    return AnnotatableMatrix(
        DoubleMatrix.from_array(values),
        row_annotations=pd.DataFrame({"Gene Symbol": genes}),
    )


class TestCollapseScenario:

    def test_max_mean(self, gene_matrix):
        out = collapse_max_mean(gene_matrix, "Gene Symbol")

        assert out.row_count == 2
        assert out.get_row_annotation_texts("Gene Symbol") == ["A", "B"]
        assert_array_equal(out.to_double(), [[30.0, 40.0], [5.0, 5.0]])
        assert out.get_row_annotation_texts("probe") == ["p1;p2", "p3"]

    def test_min_mean(self, gene_matrix):
        out = collapse_min_mean(gene_matrix, "Gene Symbol")
        assert_array_equal(out.to_double(), [[10.0, 20.0], [5.0, 5.0]])

    def test_column_annotations_unchanged(self, gene_matrix):
        out = collapse_max_mean(gene_matrix, "Gene Symbol")
        assert out.column_names == ["CTRL-1", "CASE-1"]

    def test_input_untouched(self, gene_matrix):
        collapse_max_mean(gene_matrix, "Gene Symbol")
        assert gene_matrix.row_count == 3
        assert gene_matrix.get_row_annotation_texts("probe") == ["p1", "p2", "p3"]

    def test_custom_delimiter(self, gene_matrix):
        out = collapse(gene_matrix, "Gene Symbol", "max_mean", delimiter="|")
        assert out.get_row_annotation_texts("probe") == ["p1|p2", "p3"]


class TestSelection:

    def test_ties_keep_first_row(self):
        m = _annotated([[1.0, 3.0], [3.0, 1.0]], ["G", "G"])
        survivors, members = select_collapsed_rows(m, "Gene Symbol", np.array([2.0, 2.0]))
        assert survivors == [0]
        assert members == {0: [0, 1]}

    def test_nan_never_beats_real_score(self):
        m = _annotated([[1.0], [2.0], [3.0]], ["G", "G", "G"])
        survivors, _ = select_collapsed_rows(m, "Gene Symbol", np.array([np.nan, 1.0, np.nan]))
        assert survivors == [1]
        survivors, _ = select_collapsed_rows(m, "Gene Symbol", np.array([np.nan, 1.0, 0.5]), maximize=False)
        assert survivors == [2]

    def test_survivors_in_row_order(self):
        m = _annotated([[1.0], [9.0], [2.0], [8.0]], ["B", "A", "B", "A"])
        survivors, members = select_collapsed_rows(m, "Gene Symbol", np.array([1.0, 9.0, 2.0, 8.0]))
        assert survivors == [1, 2]
        assert members == {1: [1, 3], 2: [0, 2]}

    def test_row_count_equals_distinct_keys(self, probe_matrix):
        out = collapse_max_stdev(probe_matrix, "Gene Symbol")
        assert out.row_count == 20
        assert sorted(out.get_row_annotation_texts("Gene Symbol")) == sorted(f"GENE{i}" for i in range(20))
        assert all(len(p.split(";")) == 3 for p in out.get_row_annotation_texts("name"))


class TestRules:

    def test_max_stdev(self):
        m = _annotated([[0.0, 10.0], [4.0, 6.0]], ["G", "G"])
        assert_array_equal(collapse_max_stdev(m, "Gene Symbol").to_double(), [[0.0, 10.0]])

    def test_max_median(self):
        m = _annotated([[1.0, 2.0, 100.0], [5.0, 5.0, 5.0]], ["G", "G"])
        assert_array_equal(collapse_max_median(m, "Gene Symbol").to_double(), [[5.0, 5.0, 5.0]])

    def test_max_and_min_value(self):
        m = _annotated([[1.0, 50.0], [10.0, 20.0]], ["G", "G"])
        assert_array_equal(collapse_max(m, "Gene Symbol").to_double(), [[1.0, 50.0]])
        assert_array_equal(collapse_min(m, "Gene Symbol").to_double(), [[1.0, 50.0]])
        m2 = _annotated([[5.0, 50.0], [2.0, 20.0]], ["G", "G"])
        assert_array_equal(collapse_min(m2, "Gene Symbol").to_double(), [[2.0, 20.0]])

    def test_ttest_prefers_significant_row(self):
        m = _annotated(
            [
                [1.0, 1.2, 0.9, 1.1, 1.0, 1.3],
                [1.0, 1.1, 0.9, 9.0, 9.2, 8.8],
            ],
            ["G", "G"],
        )
        out = collapse_ttest(m, "Gene Symbol", [0, 1, 2], [3, 4, 5])
        assert_array_equal(out.to_double(), [[1.0, 1.1, 0.9, 9.0, 9.2, 8.8]])

    def test_ttest_needs_groups(self, gene_matrix):
        with pytest.raises(ValueError, match="two column groups"):
            collapse(gene_matrix, "Gene Symbol", CollapseRule.MIN_TTEST)

    def test_max_annotation_uses_absolute_value(self):
        m = _annotated([[1.0], [2.0]], ["G", "G"])
        m.set_row_annotations("score", [0.5, -3.0])
        out = collapse_max_annotation(m, "Gene Symbol", "score")
        assert_array_equal(out.to_double(), [[2.0]])
        assert out.get_row_annotation_texts("score") == ["0.5;-3.0"]

    def test_max_tstat_after_add_t_stat(self):
        m = _annotated(
            [
                [1.0, 2.0, 1.5, 2.5],
                [1.0, 1.1, 9.0, 9.1],
            ],
            ["G", "G"],
        )
        out = collapse_max_tstat(add_t_stat(m, [0, 1], [2, 3]), "Gene Symbol")
        assert_array_equal(out.to_double(), [[1.0, 1.1, 9.0, 9.1]])

    def test_max_iqr(self):
        m = _annotated([[1.0, 2.0, 3.0, 4.0, 5.0], [1.0, 1.0, 1.0, 1.0, 50.0]], ["G", "G"])
        out = collapse_max_iqr(add_iqr(m), "Gene Symbol")
        assert_array_equal(out.to_double(), [[1.0, 2.0, 3.0, 4.0, 5.0]])

    def test_non_numeric_annotation_rejected(self, gene_matrix):
        with pytest.raises(ValueError, match="not numeric"):
            collapse_max_annotation(gene_matrix, "Gene Symbol", "probe")


class TestErrors:

    def test_unknown_key(self, gene_matrix):
        with pytest.raises(ValueError, match="Unknown row annotation"):
            collapse_max_mean(gene_matrix, "Symbol")

    def test_unknown_rule(self, gene_matrix):
        with pytest.raises(ValueError, match="Unknown collapse rule"):
            collapse(gene_matrix, "Gene Symbol", "max_entropy")

    def test_rule_direction(self):
        assert CollapseRule.MAX_STDEV.maximize
        assert not CollapseRule.MIN_TTEST.maximize
        assert not CollapseRule.MIN_MEAN.maximize


def test_collapse_with_missing_values(sparse_probe_matrix):
    out = collapse_max_mean(sparse_probe_matrix, "Gene Symbol")
    assert out.shape == (20, sparse_probe_matrix.column_count)
