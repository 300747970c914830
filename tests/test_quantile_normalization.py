"""
Tests for between-sample normalization.
"""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.storage import DoubleMatrix
from exprmatrix.stats.normalization import (
    NormalizationMethod,
    median_ratio,
    median_ratio_factors,
    normalize_matrix,
    quantile_normalize,
)


class TestQuantileNormalize:

    def test_permuted_columns_unchanged(self):
        """Columns that are permutations of one set of values are already normalized."""
        rng = np.random.RandomState(3)
        base = rng.normal(size=50)
        data = np.column_stack([rng.permutation(base) for _ in range(4)])
        out = quantile_normalize(DoubleMatrix.from_array(data))
        assert_allclose(out.to_double(), data)

    def test_columns_share_distribution(self, probe_matrix):
        out = quantile_normalize(probe_matrix).to_double()
        sorted_columns = np.sort(out, axis=0)
        for j in range(1, out.shape[1]):
            assert_allclose(sorted_columns[:, j], sorted_columns[:, 0])

    def test_classic_example(self):
        data = np.array([
            [5.0, 4.0, 3.0],
            [2.0, 1.0, 4.0],
            [3.0, 4.0, 6.0],
            [4.0, 2.0, 8.0],
        ])
        out = quantile_normalize(DoubleMatrix.from_array(data)).to_double()
        # Reference distribution: mean of each rank across columns
        reference = np.sort(data, axis=0).mean(axis=1)
        assert_allclose(np.sort(out[:, 0]), reference)
        # Rank order inside each column is preserved
        assert_array_equal(np.argsort(out[:, 0]), np.argsort(data[:, 0]))

    def test_ties_share_interpolated_value(self):
        data = np.array([[1.0, 1.0], [2.0, 2.0], [2.0, 3.0]])
        out = quantile_normalize(DoubleMatrix.from_array(data)).to_double()
        assert out[1, 0] == out[2, 0]

    def test_invalid_cells_stay_null(self, sparse_probe_matrix):
        out = quantile_normalize(sparse_probe_matrix).to_double()
        assert_array_equal(np.isnan(out), np.isnan(sparse_probe_matrix.to_double()))

    def test_returns_annotated(self, probe_matrix):
        out = quantile_normalize(probe_matrix)
        assert isinstance(out, AnnotatableMatrix)
        assert out.row_names == probe_matrix.row_names


class TestMedianRatio:

    def test_scaled_columns_recovered(self):
        base = np.array([[1.0], [2.0], [4.0], [8.0]])
        data = base * np.array([1.0, 2.0, 4.0])
        factors = median_ratio_factors(DoubleMatrix.from_array(data))
        assert_allclose(factors / factors[0], [1.0, 2.0, 4.0])

        out = median_ratio(DoubleMatrix.from_array(data)).to_double()
        assert_allclose(out[:, 1], out[:, 0])
        assert_allclose(out[:, 2], out[:, 0])

    def test_rows_with_zero_excluded(self):
        data = np.array([[0.0, 5.0], [2.0, 4.0], [3.0, 6.0]])
        factors = median_ratio_factors(DoubleMatrix.from_array(data))
        assert np.all(np.isfinite(factors))
        assert_allclose(factors[1] / factors[0], 2.0)

    def test_no_usable_rows_gives_unit_factors(self):
        data = np.array([[0.0, 1.0], [1.0, 0.0]])
        assert_array_equal(median_ratio_factors(DoubleMatrix.from_array(data)), [1.0, 1.0])


class TestNormalizeMatrix:

    def test_dispatch_by_name(self, dense_2x2):
        result = normalize_matrix(dense_2x2, "min_max")
        assert result.method == "min_max"
        assert_allclose(result.matrix.to_double(), [[0, 1 / 3], [2 / 3, 1]])

    def test_median_ratio_reports_factors(self, probe_matrix):
        result = normalize_matrix(probe_matrix, NormalizationMethod.MEDIAN_RATIO)
        assert result.normalization_factors.shape == (probe_matrix.column_count,)

    def test_none_is_a_copy(self, dense_2x2):
        result = normalize_matrix(dense_2x2, "none")
        assert result.matrix is not dense_2x2
        assert_array_equal(result.matrix.to_double(), dense_2x2.to_double())

    def test_unknown_method(self, dense_2x2):
        with pytest.raises(ValueError, match="Unknown normalization method"):
            normalize_matrix(dense_2x2, "vsn")
