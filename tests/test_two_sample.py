"""
Tests for per-row two-sample tests between column groups.

Reference values come from calling scipy directly on the same rows.
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose
from scipy import stats

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.group import MatrixGroup
from exprmatrix.core.policy import INVALID_P_VALUE, INVALID_T_STAT
from exprmatrix.core.storage import DoubleMatrix
from exprmatrix.stats.row_stats import (
    add_iqr,
    add_quart_coeff_disp,
    add_row_means,
    add_row_medians,
    add_row_modes,
    add_row_sums,
    add_t_stat,
)
from exprmatrix.stats.two_sample import mann_whitney, t_stat, t_test


CASE = MatrixGroup("CASE", patterns=["^CASE"])
CTRL = MatrixGroup("CTRL", patterns=["^CTRL"])


class TestTTest:

    def test_matches_scipy_welch(self, probe_matrix):
        values = probe_matrix.to_double()
        case = CASE.find_column_indices(probe_matrix)
        ctrl = CTRL.find_column_indices(probe_matrix)

        p = t_test(probe_matrix, case, ctrl)
        expected = stats.ttest_ind(values[:, case], values[:, ctrl], axis=1, equal_var=False).pvalue
        assert_allclose(p, expected)

    def test_student_variant(self, probe_matrix):
        values = probe_matrix.to_double()
        p = t_test(probe_matrix, CASE, CTRL, equal_variance=True)
        case = CASE.find_column_indices(probe_matrix)
        ctrl = CTRL.find_column_indices(probe_matrix)
        expected = stats.ttest_ind(values[:, case], values[:, ctrl], axis=1, equal_var=True).pvalue
        assert_allclose(p, expected)

    def test_rows_with_missing_use_valid_values(self):
        m = DoubleMatrix.from_array([[1.0, 2.0, np.nan, 5.0, 6.0, 7.0]])
        p = t_test(m, [0, 1, 2], [3, 4, 5])
        expected = stats.ttest_ind([1.0, 2.0], [5.0, 6.0, 7.0], equal_var=False).pvalue
        assert_allclose(p, [expected])

    def test_degenerate_rows_get_invalid_p(self):
        m = DoubleMatrix.from_array([
            [3.0, 3.0, 3.0, 3.0],
            [1.0, np.nan, 2.0, np.nan],
        ])
        p = t_test(m, [0, 1], [2, 3])
        assert_allclose(p, [INVALID_P_VALUE, INVALID_P_VALUE])

    def test_t_stat_sign(self):
        m = DoubleMatrix.from_array([[10.0, 11.0, 12.0, 1.0, 2.0, 3.0]])
        assert t_stat(m, [0, 1, 2], [3, 4, 5])[0] > 0
        assert t_stat(m, [3, 4, 5], [0, 1, 2])[0] < 0

    def test_t_stat_undefined_is_nan(self):
        m = DoubleMatrix.from_array([[3.0, 3.0, 3.0, 3.0]])
        assert np.isnan(t_stat(m, [0, 1], [2, 3])[0])


class TestMannWhitney:

    def test_matches_scipy(self):
        data = np.array([[1.0, 2.0, 3.0, 10.0, 11.0, 12.0]])
        p = mann_whitney(DoubleMatrix.from_array(data), [0, 1, 2], [3, 4, 5])
        expected = stats.mannwhitneyu([1.0, 2.0, 3.0], [10.0, 11.0, 12.0], alternative="two-sided").pvalue
        assert_allclose(p, [expected])

    def test_empty_group_is_invalid(self):
        m = DoubleMatrix.from_array([[1.0, 2.0]])
        assert_allclose(mann_whitney(m, [0, 1], []), [INVALID_P_VALUE])


class TestRowStatAnnotations:

    @pytest.fixture
    def annotated(self):
        return AnnotatableMatrix(
            DoubleMatrix.from_array([
                [1.0, 2.0, 3.0, 4.0, 5.0],
                [2.0, 2.0, 2.0, 2.0, 2.0],
            ]),
            row_annotations=pd.DataFrame({"name": ["r1", "r2"]}),
        )

    def test_summary_annotations(self, annotated):
        m = add_row_modes(add_row_medians(add_row_means(add_row_sums(annotated))))
        assert_allclose(m.get_row_annotation_values("Sum"), [15.0, 10.0])
        assert_allclose(m.get_row_annotation_values("Mean"), [3.0, 2.0])
        assert_allclose(m.get_row_annotation_values("Median"), [3.0, 2.0])
        assert_allclose(m.get_row_annotation_values("Mode"), [1.0, 2.0])

    def test_view_shares_matrix_not_annotations(self, annotated):
        m = add_iqr(annotated)
        assert m.matrix is annotated.matrix
        assert "IQR" not in annotated.row_annotation_names
        assert_allclose(m.get_row_annotation_values("IQR"), [2.0, 0.0])

    def test_quart_coeff_disp(self, annotated):
        m = add_quart_coeff_disp(annotated)
        assert_allclose(m.get_row_annotation_values("QuartCoeffDisp"), [2.0 / 6.0, 0.0])

    def test_t_stat_invalid_becomes_one(self, annotated):
        m = add_t_stat(annotated, [0, 1, 2], [3, 4])
        values = m.get_row_annotation_values("T-Stat")
        assert values[0] < 0
        assert values[1] == INVALID_T_STAT
