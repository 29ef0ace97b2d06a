# =============================================================================
# suda_search.py
# =============================================================================
# Pruned recursive search for Minimal Sample Uniques (MSUs).
#
# The search walks itemsets depth-first. Items are added in strictly
# increasing column rank, so every itemset is reached along exactly one
# path. Each frame carries its own itemset tuple, support bit-vector and
# rank cursor; nothing is shared between frames except the read-only index.
#
# Pruning rules applied when extending an itemset I (support > 1) by item x:
#   - empty support: no row matches, no extension can match either
#   - unchanged support: every tied row already holds x, so any unique
#     extension through x keeps a removable item and is never minimal
#   - support 1: candidate MSU, checked for minimality and never extended
#
# References:
#   - Elliot, M. J., Manning, A. M., & Ford, R. W. (2002). A computational
#     algorithm for handling the special uniques problem.
#   - Manning, A. M., Haglin, D. J., & Keane, J. A. (2008). A recursive search
#     algorithm for statistical disclosure assessment (SUDA2).
# =============================================================================

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from .cancellation import CancellationToken, ensure_token
from .coded_matrix import CodedMatrix, Item
from .exceptions import InvalidInputError
from .item_index import ItemIndex, popcount, single_row
from .result_set import MSU, CoverageIndex, ResultSet

# Configure logging
logger = logging.getLogger(__name__)


@dataclass
class SearchStats:
    """
    Counters collected during one search.

    Attributes:
        nodes_visited: Number of itemsets expanded
        candidates: Number of support-1 itemsets reached
        pruned: Number of extensions discarded by the pruning rules
        rejected: Number of candidates found not to be minimal
        emitted: Number of MSUs added to the result
    """
    nodes_visited: int = 0
    candidates: int = 0
    pruned: int = 0
    rejected: int = 0
    emitted: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            'nodes_visited': self.nodes_visited,
            'candidates': self.candidates,
            'pruned': self.pruned,
            'rejected': self.rejected,
            'emitted': self.emitted,
        }


@dataclass
class _SearchContext:
    """Per-call state; one is created by every search() invocation."""
    k_max: int
    ranked_items: List[Tuple[Item, ...]]
    results: ResultSet
    coverage: CoverageIndex = field(default_factory=CoverageIndex)
    stats: SearchStats = field(default_factory=SearchStats)


class SudaSearch:
    """
    SUDA-style enumerator of all MSUs up to a maximum size.

    The engine itself is stateless between calls: every search() builds its
    own result, coverage index and counters, so one instance can serve
    several analyses over the same matrix.

    Attributes:
        matrix (CodedMatrix): Matrix being analysed
        index (ItemIndex): Item bit-vectors and rank order
        prune (bool): Whether the pruning rules are applied
        last_stats (SearchStats): Counters of the most recent completed search

    Example:
        >>> engine = SudaSearch(matrix)
        >>> results = engine.search(k_max=3)
        >>> print(f"{len(results)} MSUs over {len(results.rows_at_risk())} rows")
    """

    def __init__(
        self,
        matrix: CodedMatrix,
        index: Optional[ItemIndex] = None,
        cancellation: Optional[CancellationToken] = None,
        prune: bool = True
    ):
        """
        Initialize the engine.

        Args:
            matrix: Coded matrix to analyse
            index: Pre-built item index for the same matrix (built if None)
            cancellation: Token polled at every recursive step
            prune: Disable to run the plain enumeration (same result, slower)
        """
        if index is not None and index.matrix is not matrix:
            raise InvalidInputError("Item index was built for a different matrix")

        self.matrix = matrix
        self.index = index if index is not None else ItemIndex(matrix)
        self.cancellation = ensure_token(cancellation)
        self.prune = prune
        self.last_stats: Optional[SearchStats] = None

    def search(self, k_max: Optional[int] = None) -> ResultSet:
        """
        Enumerate every MSU of size 1..k_max.

        Args:
            k_max: Maximum itemset size (None = all columns)

        Returns:
            ResultSet holding each MSU exactly once

        Raises:
            InvalidInputError: If k_max is not a positive integer
            AnalysisInterrupted: If cancellation was requested during the search
        """
        k_max = self.matrix.resolve_key_size(k_max)
        self.cancellation.raise_if_cancelled()

        results = ResultSet(k_max=k_max)
        if self.matrix.n_rows < 2:
            # Nothing to distinguish a lone record from
            logger.warning("Matrix has a single row; no sample uniques can exist")
            self.last_stats = SearchStats()
            return results

        context = _SearchContext(
            k_max=k_max,
            ranked_items=[self.index.items_of_column(c) for c in self.index.rank_order],
            results=results
        )

        logger.info(f"Starting SUDA search over {self.matrix.n_rows} rows, "
                    f"{self.matrix.n_columns} columns, k_max={k_max}")

        self._expand(context, (), self.index.all_rows, 0)

        self.last_stats = context.stats
        logger.info(f"SUDA search found {len(results)} MSUs")
        logger.debug(f"SUDA search statistics: {context.stats.to_dict()}")

        return results

    def _expand(
        self,
        context: _SearchContext,
        itemset: Tuple[Item, ...],
        support: int,
        position: int
    ) -> None:
        """
        Extend `itemset` (whose rows are `support`) with items ranked at or
        after `position`.
        """
        self.cancellation.raise_if_cancelled()
        context.stats.nodes_visited += 1

        size = len(itemset) + 1
        n_positions = len(context.ranked_items)

        for rank in range(position, n_positions):
            self.cancellation.raise_if_cancelled()

            for item in context.ranked_items[rank]:
                extended = support & self.index.bits(item)

                if self.prune and (extended == 0 or extended == support):
                    context.stats.pruned += 1
                    continue

                candidate = itemset + (item,)
                if popcount(extended) == 1:
                    self._emit_if_minimal(context, candidate, extended)
                elif size < context.k_max and rank + 1 < n_positions:
                    self._expand(context, candidate, extended, rank + 1)

    def _emit_if_minimal(
        self,
        context: _SearchContext,
        candidate: Tuple[Item, ...],
        support: int
    ) -> None:
        """Add a support-1 itemset to the result unless a subset is also unique."""
        context.stats.candidates += 1

        row = single_row(support)
        items = tuple(sorted(candidate))
        mask = 0
        for item in items:
            mask |= 1 << item.column

        if context.coverage.covers(row, mask):
            context.stats.rejected += 1
            return

        # All subsets match `row`, so checking the one-smaller subsets covers
        # every proper subset
        subset_supports = []
        if len(items) > 1:
            for i in range(len(items)):
                subset_support = popcount(self.index.support_of(items[:i] + items[i + 1:]))
                if subset_support == 1:
                    context.stats.rejected += 1
                    return
                subset_supports.append(subset_support)

        context.results.add(MSU(items, row, tuple(subset_supports)))
        context.coverage.add(row, mask)
        context.stats.emitted += 1


def find_msus(
    matrix: CodedMatrix,
    k_max: Optional[int] = None,
    cancellation: Optional[CancellationToken] = None
) -> ResultSet:
    """
    Convenience function to run a SUDA search without keeping the engine.

    Args:
        matrix: Coded matrix to analyse
        k_max: Maximum itemset size (None = all columns)
        cancellation: Optional cancellation token

    Returns:
        ResultSet of MSUs
    """
    return SudaSearch(matrix, cancellation=cancellation).search(k_max)
