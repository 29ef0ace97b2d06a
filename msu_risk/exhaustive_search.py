"""
Brute-force MSU enumeration used as a correctness oracle.

For every row, every column subset up to k_max is tested in increasing size
order by comparing the row against the whole matrix. A subset is recorded
the first time it isolates the row, and any later subset containing an
already recorded one is skipped. The cost grows with C(columns, k_max), so
the engine refuses to start when the work would exceed a configured bound.
"""

import logging
from itertools import combinations
from math import comb
from typing import Optional, Tuple

import numpy as np
from tqdm import tqdm

from .cancellation import CancellationToken, ensure_token
from .coded_matrix import CodedMatrix, Item
from .exceptions import ResourceExhaustionError
from .result_set import MSU, CoverageIndex, ResultSet

# Configure logging
logger = logging.getLogger(__name__)

DEFAULT_MAX_SUBSETS = 5_000_000


class ExhaustiveSearch:
    """
    Exhaustive enumerator of MSUs over all column subsets of every row.

    Attributes:
        matrix (CodedMatrix): Matrix being analysed
        max_subsets (int): Upper bound on (row, subset) tests; None disables it
        show_progress (bool): Whether to show a progress bar over rows

    Example:
        >>> oracle = ExhaustiveSearch(matrix, max_subsets=100_000)
        >>> assert oracle.search(k_max=3) == SudaSearch(matrix).search(k_max=3)
    """

    def __init__(
        self,
        matrix: CodedMatrix,
        cancellation: Optional[CancellationToken] = None,
        max_subsets: Optional[int] = DEFAULT_MAX_SUBSETS,
        show_progress: bool = False
    ):
        self.matrix = matrix
        self.cancellation = ensure_token(cancellation)
        self.max_subsets = max_subsets
        self.show_progress = show_progress

    def estimate_work(self, k_max: Optional[int] = None) -> int:
        """Number of (row, column subset) tests a search up to k_max performs at most."""
        k_max = self.matrix.resolve_key_size(k_max)
        n_columns = self.matrix.n_columns
        n_subsets = sum(comb(n_columns, size) for size in range(1, k_max + 1))
        return self.matrix.n_rows * n_subsets

    def search(self, k_max: Optional[int] = None) -> ResultSet:
        """
        Enumerate every MSU of size 1..k_max by brute force.

        Args:
            k_max: Maximum itemset size (None = all columns)

        Returns:
            ResultSet of MSUs

        Raises:
            InvalidInputError: If k_max is not a positive integer
            ResourceExhaustionError: If the enumeration exceeds max_subsets
            AnalysisInterrupted: If cancellation was requested during the search
        """
        k_max = self.matrix.resolve_key_size(k_max)
        required = self.estimate_work(k_max)
        if self.max_subsets is not None and required > self.max_subsets:
            raise ResourceExhaustionError(required, self.max_subsets)

        self.cancellation.raise_if_cancelled()

        results = ResultSet(k_max=k_max)
        n_rows, n_columns = self.matrix.shape
        if n_rows < 2:
            logger.warning("Matrix has a single row; no sample uniques can exist")
            return results

        logger.info(f"Starting exhaustive search: {required:,} subset tests, k_max={k_max}")

        values = self.matrix.values
        coverage = CoverageIndex()

        rows = range(n_rows)
        iterator = tqdm(rows, desc="Exhaustive search") if self.show_progress else rows

        for row in iterator:
            self.cancellation.raise_if_cancelled()

            target = values[row]
            agrees = values == target

            for size in range(1, k_max + 1):
                for columns in combinations(range(n_columns), size):
                    self.cancellation.raise_if_cancelled()

                    mask = 0
                    for column in columns:
                        mask |= 1 << column
                    if coverage.covers(row, mask):
                        continue

                    if _support(agrees, columns) != 1:
                        continue

                    subset_supports = ()
                    if size > 1:
                        subset_supports = tuple(
                            _support(agrees, columns[:i] + columns[i + 1:])
                            for i in range(size)
                        )
                    items = tuple(Item(column, int(target[column])) for column in columns)
                    results.add(MSU(items, row, subset_supports))
                    coverage.add(row, mask)

        logger.info(f"Exhaustive search found {len(results)} MSUs")

        return results


def _support(agrees: np.ndarray, columns: Tuple[int, ...]) -> int:
    """Rows agreeing with the target row on every column in `columns`."""
    return int(agrees[:, list(columns)].all(axis=1).sum())
