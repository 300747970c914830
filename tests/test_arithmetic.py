"""
Tests for in-place arithmetic and copy-returning elementwise transforms.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.storage import DoubleMatrix, IntMatrix, MixedMatrix
from exprmatrix.ops import arithmetic, elementwise


class TestInPlaceArithmetic:

    def test_add_then_multiply(self, dense_2x2):
        """[[1,2],[3,4]] + 1, then * 2 == [[4,6],[8,10]] with one event per call."""
        events = []
        dense_2x2.add_matrix_listener(events.append)

        arithmetic.add(1, dense_2x2)
        arithmetic.multiply(2, dense_2x2)

        assert_array_equal(dense_2x2.to_double(), [[4, 6], [8, 10]])
        assert len(events) == 2

    def test_subtract_and_divide(self, dense_2x2):
        arithmetic.subtract(1, dense_2x2)
        arithmetic.divide(2, dense_2x2)
        assert_allclose(dense_2x2.to_double(), [[0.0, 0.5], [1.0, 1.5]])

    def test_same_result_on_every_variant(self, numeric_variant_3x4):
        arithmetic.add(1, numeric_variant_3x4)
        expected = np.array([
            [2.0, 3.0, 4.0, 5.0],
            [6.0, 6.0, 6.0, 6.0],
            [3.0, np.nan, 9.0, 0.0],
        ])
        assert_allclose(numeric_variant_3x4.to_double(), expected)

    def test_int_storage_truncates(self):
        m = IntMatrix.from_array([[3, 5]])
        arithmetic.divide(2, m)
        assert_array_equal(m.to_double(), [[1.0, 2.0]])

    def test_mixed_text_kept(self):
        m = MixedMatrix.from_rows([["id", 1.0]])
        arithmetic.multiply(3, m)
        assert m.row_as_list(0) == ["id", 3.0]

    def test_copy_variants(self, dense_2x2):
        out = arithmetic.added(dense_2x2, 10)
        assert_array_equal(out.to_double(), [[11, 12], [13, 14]])
        assert_array_equal(dense_2x2.to_double(), [[1, 2], [3, 4]])
        assert_array_equal(arithmetic.multiplied(dense_2x2, 2).to_double(), [[2, 4], [6, 8]])
        assert_array_equal(arithmetic.subtracted(dense_2x2, 1).to_double(), [[0, 1], [2, 3]])
        assert_allclose(arithmetic.divided(dense_2x2, 4).to_double(), [[0.25, 0.5], [0.75, 1.0]])


class TestLogFamily:

    def test_log2(self):
        m = DoubleMatrix.from_array([[1.0, 2.0, 8.0]])
        assert_allclose(elementwise.log2(m).to_double(), [[0.0, 1.0, 3.0]])

    def test_arbitrary_base(self):
        m = DoubleMatrix.from_array([[9.0, 27.0]])
        assert_allclose(elementwise.log(m, 3).to_double(), [[2.0, 3.0]])

    def test_log10_and_ln(self):
        m = DoubleMatrix.from_array([[100.0, np.e]])
        assert_allclose(elementwise.log10(m).to_double()[0, 0], 2.0)
        assert_allclose(elementwise.ln(m).to_double()[0, 1], 1.0)

    def test_non_positive_is_not_an_error(self):
        m = DoubleMatrix.from_array([[0.0, -1.0]])
        out = elementwise.log2(m).to_double()
        assert out[0, 0] == -np.inf
        assert np.isnan(out[0, 1])

    def test_input_unchanged(self, dense_2x2):
        elementwise.log2(dense_2x2)
        assert_array_equal(dense_2x2.to_double(), [[1, 2], [3, 4]])


class TestElementwiseTransforms:

    def test_power_and_power_base(self, dense_2x2):
        assert_array_equal(elementwise.power(dense_2x2, 2).to_double(), [[1, 4], [9, 16]])
        assert_array_equal(elementwise.power_base(2, dense_2x2).to_double(), [[2, 4], [8, 16]])

    def test_exp_inverts_ln(self, dense_2x2):
        assert_allclose(elementwise.exp(elementwise.ln(dense_2x2)).to_double(), dense_2x2.to_double())

    def test_min_bound(self, dense_2x2):
        assert_array_equal(elementwise.min_bound(dense_2x2, 2.5).to_double(), [[2.5, 2.5], [3, 4]])

    def test_threshold(self, dense_3x4):
        out = elementwise.threshold(dense_3x4, 0.0, 4.0).to_double()
        assert np.nanmax(out) == 4.0
        assert np.nanmin(out) == 0.0
        assert np.isnan(out[2, 1])

    def test_threshold_bad_bounds(self, dense_2x2):
        with pytest.raises(ValueError):
            elementwise.threshold(dense_2x2, 5, 1)

    def test_normalize_default_range(self, dense_2x2):
        out = elementwise.normalize(dense_2x2).to_double()
        assert_allclose(out, [[0.0, 1 / 3], [2 / 3, 1.0]])

    def test_normalize_explicit_range_is_bounded(self, dense_2x2):
        out = elementwise.normalize(dense_2x2, lo=2, hi=3).to_double()
        assert_allclose(out, [[0.0, 0.0], [1.0, 1.0]])

    def test_normalize_zero_range(self):
        m = DoubleMatrix.from_array([[5.0, 5.0]])
        assert_array_equal(elementwise.normalize(m).to_double(), [[0.0, 0.0]])

    def test_annotations_carried(self, gene_matrix):
        out = elementwise.log10(gene_matrix)
        assert isinstance(out, AnnotatableMatrix)
        assert out.get_row_annotation_texts("Gene Symbol") == ["A", "A", "B"]
        assert_allclose(out.get_value(0, 0), 1.0)
