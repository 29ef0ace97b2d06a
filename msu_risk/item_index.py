# =============================================================================
# item_index.py
# =============================================================================
# Row bit-vectors per (column, value) item, and the column rank order.
#
# The index is built once per matrix and only read afterwards. Bit-vectors
# are Python ints with bit r set when row r holds the item; intersecting two
# supports is a bitwise AND that yields a new int, so no search frame can
# corrupt the vectors owned by the index.
# =============================================================================

import logging
from typing import Dict, Iterable, List, Tuple

import numpy as np

from .coded_matrix import CodedMatrix, Item

# Configure logging
logger = logging.getLogger(__name__)


def popcount(bits: int) -> int:
    """Number of rows in a bit-vector."""
    return bits.bit_count()


def bits_to_rows(bits: int) -> Tuple[int, ...]:
    """Row indices set in a bit-vector, ascending."""
    rows = []
    while bits:
        lowest = bits & -bits
        rows.append(lowest.bit_length() - 1)
        bits ^= lowest
    return tuple(rows)


def single_row(bits: int) -> int:
    """Row index of a bit-vector known to hold exactly one row."""
    return bits.bit_length() - 1


def rank_columns(matrix: CodedMatrix) -> Tuple[int, ...]:
    """
    Fixed total order over columns used by the pruned search.

    Columns with fewer distinct values come first; ties are broken by
    column index, so the order is fully deterministic.
    """
    distinct = matrix.distinct_counts()
    return tuple(sorted(range(matrix.n_columns), key=lambda c: (distinct[c], c)))


class ItemIndex:
    """
    Maps every (column, value) item of a matrix to its row bit-vector.

    Attributes:
        matrix (CodedMatrix): Matrix the index was built from
        all_rows (int): Bit-vector with every row set
        rank_order (Tuple[int, ...]): Columns in rank order
        column_rank (Dict[int, int]): Rank position of each column

    Example:
        >>> index = ItemIndex(matrix)
        >>> index.support(Item(0, 1))
        2
        >>> index.rows(Item(0, 1))
        (3, 5)
    """

    def __init__(self, matrix: CodedMatrix):
        self.matrix = matrix
        self.n_rows = matrix.n_rows
        self.all_rows = (1 << self.n_rows) - 1

        self._bits: Dict[Item, int] = {}
        self._column_items: List[Tuple[Item, ...]] = []

        for c in range(matrix.n_columns):
            column = matrix.column(c)
            order = np.argsort(column, kind='stable')
            values, starts, counts = np.unique(
                column[order], return_index=True, return_counts=True
            )
            items = []
            for value, start, count in zip(values, starts, counts):
                mask = np.zeros(self.n_rows, dtype=bool)
                mask[order[start:start + count]] = True
                bits = int.from_bytes(
                    np.packbits(mask, bitorder='little').tobytes(), 'little'
                )
                item = Item(c, int(value))
                self._bits[item] = bits
                items.append(item)
            self._column_items.append(tuple(items))

        self.rank_order: Tuple[int, ...] = rank_columns(matrix)
        self.column_rank: Dict[int, int] = {
            column: position for position, column in enumerate(self.rank_order)
        }

        logger.debug(f"ItemIndex built with {len(self._bits)} items; "
                     f"rank order {list(self.rank_order)}")

    def __len__(self) -> int:
        return len(self._bits)

    def __contains__(self, item: Item) -> bool:
        return item in self._bits

    def bits(self, item: Item) -> int:
        """Row bit-vector of an item; an absent item has an empty vector."""
        return self._bits.get(item, 0)

    def support(self, item: Item) -> int:
        return popcount(self.bits(item))

    def rows(self, item: Item) -> Tuple[int, ...]:
        return bits_to_rows(self.bits(item))

    def items_of_column(self, column: int) -> Tuple[Item, ...]:
        """Items present in a column, ordered by value code."""
        return self._column_items[column]

    def support_of(self, items: Iterable[Item]) -> int:
        """Bit-vector of rows matching every item (all rows for no items)."""
        bits = self.all_rows
        for item in items:
            bits &= self.bits(item)
        return bits
