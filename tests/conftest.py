"""Shared fixtures for the MSU engine tests."""

import sys
from pathlib import Path

import numpy as np
import pytest

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from msu_risk.coded_matrix import CodedMatrix


# Canonical 6-row, 5-column matrix. Row 4 is isolated by (0,0)(4,2), which
# also covers the larger unique combination (0,0)(2,0)(4,2).
CANONICAL_ROWS = [
    [0, 3, 0, 1, 1],
    [0, 3, 0, 0, 1],
    [0, 3, 1, 1, 1],
    [1, 3, 0, 1, 2],
    [0, 2, 0, 1, 2],
    [1, 2, 1, 0, 2],
]


@pytest.fixture
def canonical_matrix():
    return CodedMatrix.from_rows(CANONICAL_ROWS)


def random_matrix(seed: int, max_rows: int = 10, max_columns: int = 5, max_domain: int = 3) -> CodedMatrix:
    """Small random matrix for engine cross-checks."""
    rng = np.random.default_rng(seed)
    n_rows = int(rng.integers(1, max_rows + 1))
    n_columns = int(rng.integers(1, max_columns + 1))
    domains = rng.integers(1, max_domain + 1, size=n_columns)
    data = np.column_stack([rng.integers(0, d, size=n_rows) for d in domains])
    return CodedMatrix(data, domain_sizes=domains.tolist())


@pytest.fixture
def make_random_matrix():
    return random_matrix
