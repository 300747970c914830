"""
Pytest configuration and shared fixtures.

This module provides test data generators and small hand-checked matrices
for every storage variant.
"""

import numpy as np
import pandas as pd
import pytest

from exprmatrix.core.annotated import AnnotatableMatrix
from exprmatrix.core.storage import (
    DoubleMatrix,
    IntMatrix,
    MixedMatrix,
    TextMatrix,
    UpperTriangularDoubleMatrix,
)


def generate_probe_matrix(
    n_genes: int,
    probes_per_gene: int,
    n_samples: int,
    missing_fraction: float = 0.0,
    seed: int = 42
) -> AnnotatableMatrix:
    """
    Generate a synthetic probe-level expression matrix.

    Args:
        n_genes: Number of distinct genes
        probes_per_gene: Probes (rows) per gene
        n_samples: Number of samples (columns)
        missing_fraction: Fraction of cells set to NaN
        seed: Random seed for reproducibility

    Returns:
        AnnotatableMatrix with "name" (probe id) and "Gene Symbol" row
        annotations and "name" / "phenotype" column annotations

    Design:
        - Log-normal intensities (realistic for microarrays)
        - Probes of one gene are interleaved with other genes' probes
        - Even samples are CASE, odd samples are CTRL
    """
    rng = np.random.RandomState(seed)
    n_rows = n_genes * probes_per_gene

    data = rng.lognormal(mean=5, sigma=1, size=(n_rows, n_samples))

    if missing_fraction > 0:
        n_missing = int(n_rows * n_samples * missing_fraction)
        positions = rng.choice(n_rows * n_samples, size=n_missing, replace=False)
        data.ravel()[positions] = np.nan

    genes = [f"GENE{i % n_genes}" for i in range(n_rows)]
    probes = [f"PROBE_{i:05d}" for i in range(n_rows)]

    phenotypes = ["CASE" if j % 2 == 0 else "CTRL" for j in range(n_samples)]
    sample_ids = [f"{p}-SAMPLE_{j:03d}" for j, p in enumerate(phenotypes)]

    return AnnotatableMatrix(
        DoubleMatrix.from_array(data),
        row_annotations=pd.DataFrame({"name": probes, "Gene Symbol": genes}),
        column_annotations=pd.DataFrame({"name": sample_ids, "phenotype": phenotypes}),
    )


@pytest.fixture
def probe_matrix():
    """60 probes (20 genes x 3 probes) x 10 samples."""
    return generate_probe_matrix(n_genes=20, probes_per_gene=3, n_samples=10, seed=42)


@pytest.fixture
def sparse_probe_matrix():
    """Probe matrix with 10% missing values."""
    return generate_probe_matrix(n_genes=20, probes_per_gene=3, n_samples=10,
                                 missing_fraction=0.1, seed=7)


@pytest.fixture
def dense_2x2():
    return DoubleMatrix.from_array([[1.0, 2.0], [3.0, 4.0]])


@pytest.fixture
def dense_3x4():
    return DoubleMatrix.from_array([
        [1.0, 2.0, 3.0, 4.0],
        [5.0, 5.0, 5.0, 5.0],
        [2.0, np.nan, 8.0, -1.0],
    ])


@pytest.fixture
def int_3x4():
    return IntMatrix.from_array([
        [1, 2, 3, 4],
        [5, 5, 5, 5],
        [2, None, 8, -1],
    ])


@pytest.fixture
def mixed_3x4():
    return MixedMatrix.from_rows([
        [1.0, 2.0, 3.0, 4.0],
        [5.0, 5.0, 5.0, 5.0],
        [2.0, None, 8.0, -1.0],
    ])


@pytest.fixture
def text_3x4():
    return TextMatrix.from_rows([
        ["1", "2", "3", "4"],
        ["5", "5", "5", "5"],
        ["2", "n/a", "8", "-1"],
    ])


@pytest.fixture
def symmetric_3x3():
    """Upper triangular storage of [[1, 2, 3], [2, 4, 5], [3, 5, 6]]."""
    m = UpperTriangularDoubleMatrix(3)
    for i, j, v in [(0, 0, 1), (0, 1, 2), (0, 2, 3), (1, 1, 4), (1, 2, 5), (2, 2, 6)]:
        m.update_value(i, j, v)
    return m


@pytest.fixture(params=["dense", "int", "mixed", "text"])
def numeric_variant_3x4(request, dense_3x4, int_3x4, mixed_3x4, text_3x4):
    """Same 3x4 numbers (one missing) in each row-major storage variant."""
    return {
        "dense": dense_3x4,
        "int": int_3x4,
        "mixed": mixed_3x4,
        "text": text_3x4,
    }[request.param]


@pytest.fixture
def gene_matrix():
    """
    Collapse scenario: rows (A, 10, 20), (A, 30, 40), (B, 5, 5), with a
    probe-id annotation to be joined.
    """
    return AnnotatableMatrix(
        DoubleMatrix.from_array([[10.0, 20.0], [30.0, 40.0], [5.0, 5.0]]),
        row_annotations=pd.DataFrame({
            "Gene Symbol": ["A", "A", "B"],
            "probe": ["p1", "p2", "p3"],
        }),
        column_annotations=pd.DataFrame({"name": ["CTRL-1", "CASE-1"]}),
    )
