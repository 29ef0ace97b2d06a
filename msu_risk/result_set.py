"""
Result containers for MSU searches.

An MSU is identified by its items alone; the row it isolates and the
supports of its subsets are metadata. A ResultSet is logically a set: two
searches agree when they hold the same itemsets, whatever order they were
found in.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional, FrozenSet, Tuple

import pandas as pd

from .coded_matrix import CodedMatrix, Item
from .exceptions import InvalidInputError

# Configure logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MSU:
    """
    A Minimal Sample Unique.

    Attributes:
        items: Items of the itemset, sorted by column
        row: Index of the single row the itemset isolates
        subset_supports: Support of each subset obtained by dropping one item,
                         in item order (empty for size-1 MSUs). Every value
                         is greater than one.
    """
    items: Tuple[Item, ...]
    row: int
    subset_supports: Tuple[int, ...] = field(default=(), compare=False)

    def __post_init__(self):
        ordered = tuple(sorted(Item(*item) for item in self.items))
        if not ordered:
            raise InvalidInputError("An MSU needs at least one item")
        if len({item.column for item in ordered}) != len(ordered):
            raise InvalidInputError(f"Itemset {ordered} uses a column twice")
        object.__setattr__(self, 'items', ordered)

    @property
    def size(self) -> int:
        return len(self.items)

    @property
    def columns(self) -> Tuple[int, ...]:
        return tuple(item.column for item in self.items)

    @property
    def column_mask(self) -> int:
        mask = 0
        for item in self.items:
            mask |= 1 << item.column
        return mask

    def __str__(self) -> str:
        return "".join(f"({item.column},{item.value})" for item in self.items)


class CoverageIndex:
    """
    Column masks of emitted MSUs, grouped by the row they isolate.

    Every unique itemset isolates exactly one row and all of its subsets
    match that row too, so an emitted MSU can only cover candidates for the
    same row. Lookups therefore scan one row's masks instead of the whole
    result.
    """

    def __init__(self):
        self._masks: Dict[int, List[int]] = defaultdict(list)

    def add(self, row: int, mask: int) -> None:
        self._masks[row].append(mask)

    def covers(self, row: int, mask: int) -> bool:
        """True if an emitted MSU of `row` uses a subset of the columns in `mask`."""
        return any((known & mask) == known for known in self._masks.get(row, ()))

    def __len__(self) -> int:
        return sum(len(masks) for masks in self._masks.values())


class ResultSet:
    """
    Deduplicated collection of MSUs handed to the statistics layer.

    Attributes:
        k_max (int): Maximum itemset size that was searched (None if unknown)

    Example:
        >>> results = SudaSearch(matrix).search(k_max=3)
        >>> len(results)
        25
        >>> results.size_distribution()
        size
        1     0
        2    24
        3     1
        Name: n_msus, dtype: int64
    """

    def __init__(self, msus: Iterable[MSU] = (), k_max: Optional[int] = None):
        self.k_max = k_max
        self._msus: Dict[Tuple[Item, ...], MSU] = {}
        for msu in msus:
            self.add(msu)

    def add(self, msu: MSU) -> bool:
        """Add an MSU; returns False if the same itemset is already present."""
        if msu.items in self._msus:
            return False
        self._msus[msu.items] = msu
        return True

    def __len__(self) -> int:
        return len(self._msus)

    def __iter__(self) -> Iterator[MSU]:
        return iter(self._msus.values())

    def __contains__(self, obj: Any) -> bool:
        if isinstance(obj, MSU):
            return obj.items in self._msus
        return tuple(sorted(Item(*item) for item in obj)) in self._msus

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ResultSet):
            return NotImplemented
        return self._msus.keys() == other._msus.keys()

    __hash__ = None

    def __repr__(self) -> str:
        return f"ResultSet(n_msus={len(self)}, k_max={self.k_max})"

    def itemsets(self) -> FrozenSet[FrozenSet[Item]]:
        """The result as a set of itemsets, independent of representation."""
        return frozenset(frozenset(items) for items in self._msus)

    def msus_for_row(self, row: int) -> List[MSU]:
        return sorted(
            (msu for msu in self if msu.row == row),
            key=lambda msu: (msu.size, msu.items)
        )

    def rows_at_risk(self) -> List[int]:
        """Rows isolated by at least one MSU."""
        return sorted({msu.row for msu in self})

    def item_occurrences(self) -> int:
        """Total number of items across all MSUs."""
        return sum(msu.size for msu in self)

    def size_distribution(self) -> pd.Series:
        """
        Number of MSUs per itemset size.

        The index covers 1..k_max when k_max is known, so empty sizes show up
        as zero counts.
        """
        counts = Counter(msu.size for msu in self)
        upper = self.k_max if self.k_max is not None else max(counts, default=0)
        sizes = range(1, upper + 1)
        return pd.Series(
            [counts.get(size, 0) for size in sizes],
            index=pd.Index(sizes, name='size'),
            name='n_msus',
            dtype='int64'
        )

    def msu_counts_by_row(self) -> pd.Series:
        """Number of MSUs isolating each row at risk."""
        counts = Counter(msu.row for msu in self)
        rows = sorted(counts)
        return pd.Series(
            [counts[row] for row in rows],
            index=pd.Index(rows, name='row'),
            name='n_msus',
            dtype='int64'
        )

    def column_contributions(self) -> pd.Series:
        """Number of MSUs each column takes part in."""
        counts = Counter(column for msu in self for column in msu.columns)
        columns = sorted(counts)
        return pd.Series(
            [counts[column] for column in columns],
            index=pd.Index(columns, name='column'),
            name='n_msus',
            dtype='int64'
        )

    def to_frame(self, matrix: Optional[CodedMatrix] = None) -> pd.DataFrame:
        """
        Tabular export, one line per MSU sorted by row, size and items.

        With a matrix, an extra 'attributes' column spells out the original
        column names and values.
        """
        records = []
        for msu in sorted(self, key=lambda m: (m.row, m.size, m.items)):
            record = {
                'row': msu.row,
                'size': msu.size,
                'itemset': str(msu),
                'columns': ",".join(str(c) for c in msu.columns),
                'subset_supports': ",".join(str(s) for s in msu.subset_supports),
            }
            if matrix is not None:
                decoded = [matrix.decode_item(item) for item in msu.items]
                record['attributes'] = "; ".join(f"{name}={value}" for name, value in decoded)
            records.append(record)

        columns = ['row', 'size', 'itemset', 'columns', 'subset_supports']
        if matrix is not None:
            columns.append('attributes')
        return pd.DataFrame.from_records(records, columns=columns)

    def summary(self) -> Dict[str, Any]:
        """Plain-dict summary suitable for YAML reports."""
        return {
            'k_max': self.k_max,
            'n_msus': len(self),
            'n_rows_at_risk': len(self.rows_at_risk()),
            'item_occurrences': self.item_occurrences(),
            'msus_by_size': {int(size): int(n) for size, n in self.size_distribution().items()},
        }
