"""
Tests for z-score standardization (whole matrix, row, column, group).
"""

import numpy as np
import pandas as pd
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.cell import CellType
from exprmatrix.core.group import MatrixGroup
from exprmatrix.core.storage import DoubleMatrix, MixedMatrix
from exprmatrix.stats.zscore import column_zscore, group_zscore, row_zscore, zscore


class TestWholeMatrixZScore:

    def test_mean_zero_sd_one(self, probe_matrix):
        scores = zscore(probe_matrix).to_double()
        assert_allclose(scores.mean(), 0.0, atol=1e-12)
        assert_allclose(scores.std(ddof=0), 1.0)

    def test_constant_matrix_is_all_zero(self):
        m = DoubleMatrix.from_array(np.full((3, 3), 7.0))
        assert_array_equal(zscore(m).to_double(), np.zeros((3, 3)))

    def test_invalid_cells_score_zero(self, dense_3x4):
        out = zscore(dense_3x4)
        assert isinstance(out, DoubleMatrix)
        assert out.get_value(2, 1) == 0.0

    def test_text_preserved_when_present(self):
        m = MixedMatrix.from_rows([["label", 1.0], [3.0, None]])
        out = zscore(m)
        assert isinstance(out, MixedMatrix)
        assert out.get_text(0, 0) == "label"
        assert out.get_cell_type(1, 1) == CellType.EMPTY
        assert_allclose([out.get_value(0, 1), out.get_value(1, 0)], [-1.0, 1.0])

    def test_empty_cells_become_zero_without_text(self, mixed_3x4):
        out = zscore(mixed_3x4)
        assert isinstance(out, DoubleMatrix)
        assert out.get_value(2, 1) == 0.0


class TestRowColumnZScore:

    def test_row_scores(self):
        out = row_zscore(DoubleMatrix.from_array([[1, 3], [5, 5]]))
        assert_array_equal(out.to_double(), [[-1, 1], [0, 0]])

    def test_each_row_standardized(self, probe_matrix):
        scores = row_zscore(probe_matrix).to_double()
        assert_allclose(scores.mean(axis=1), 0.0, atol=1e-12)
        assert_allclose(scores.std(axis=1, ddof=0), 1.0)

    def test_row_uses_valid_values_only(self, dense_3x4):
        scores = row_zscore(dense_3x4).to_double()
        valid = np.array([2.0, 8.0, -1.0])
        expected = (valid - valid.mean()) / valid.std()
        assert_allclose(scores[2, [0, 2, 3]], expected)
        assert scores[2, 1] == 0.0
        assert_array_equal(scores[1], np.zeros(4))

    def test_column_scores(self, probe_matrix):
        scores = column_zscore(probe_matrix).to_double()
        assert_allclose(scores.mean(axis=0), 0.0, atol=1e-12)
        assert_allclose(scores.std(axis=0, ddof=0), 1.0)

    def test_annotations_kept(self, gene_matrix):
        out = row_zscore(gene_matrix)
        assert isinstance(out, AnnotatableMatrix)
        assert out.get_row_annotation_texts("probe") == ["p1", "p2", "p3"]


class TestGroupZScore:

    @pytest.fixture
    def grouped(self):
        return AnnotatableMatrix(
            DoubleMatrix.from_array([
                [1.0, 3.0, 10.0, 20.0, 30.0],
                [4.0, 4.0, 4.0, 4.0, 4.0],
            ]),
            column_annotations=pd.DataFrame({"name": ["ctrl_1", "ctrl_2", "case_1", "case_2", "case_3"]}),
        )

    def test_unweighted_group_baseline(self, grouped):
        ctrl = MatrixGroup("CTRL", patterns=["ctrl"])
        case = MatrixGroup("CASE", patterns=["CASE"])
        scores = group_zscore(grouped, [ctrl, case]).to_double()

        case_values = np.array([10.0, 20.0, 30.0])
        mean = (2.0 + 20.0) / 2
        sd = (1.0 + case_values.std()) / 2
        expected = (np.array([1.0, 3.0, 10.0, 20.0, 30.0]) - mean) / sd
        assert_allclose(scores[0], expected)

    def test_constant_row_is_zero(self, grouped):
        scores = group_zscore(grouped, [[0, 1], [2, 3, 4]]).to_double()
        assert_array_equal(scores[1], np.zeros(5))

    def test_empty_group_does_not_change_result(self, grouped):
        groups = [[0, 1], [2, 3, 4]]
        with_empty = groups + [MatrixGroup("NONE", patterns=["no-such-sample"])]
        assert_array_equal(
            group_zscore(grouped, groups).to_double(),
            group_zscore(grouped, with_empty).to_double(),
        )

    def test_no_participating_group_scores_zero(self, grouped):
        scores = group_zscore(grouped, [[]]).to_double()
        assert_array_equal(scores, np.zeros((2, 5)))

    def test_plain_matrix_with_index_groups(self):
        m = DoubleMatrix.from_array([[0.0, 2.0, 4.0]])
        out = group_zscore(m, [[0, 1, 2]])
        assert isinstance(out, DoubleMatrix)
        mean, sd = 2.0, np.std([0.0, 2.0, 4.0])
        assert_allclose(out.to_double()[0], (np.array([0.0, 2.0, 4.0]) - mean) / sd)

    def test_pattern_group_needs_annotations(self):
        with pytest.raises(TypeError):
            group_zscore(DoubleMatrix.from_array([[1.0, 2.0]]), [MatrixGroup("X", patterns=["x"])])
