# =============================================================================
# coded_matrix.py
# =============================================================================
# Integer-coded representation of a categorical dataset.
#
# Every analysis in this package runs over a CodedMatrix: a rows x columns
# grid where each cell holds a dense, column-local category code. The matrix
# is validated once and then frozen, so engines can share it by reference
# without synchronization.
#
# Invariants:
#   - all rows have the same number of columns
#   - codes in column c lie in [0, domain_sizes[c])
#   - at least one row and one column
# =============================================================================

import logging
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import pandas as pd

from .exceptions import InvalidInputError

# Configure logging
logger = logging.getLogger(__name__)


class Item(NamedTuple):
    """A (column, value) pair, the atom of every itemset."""
    column: int
    value: int


class CodedMatrix:
    """
    Immutable integer-coded dataset.

    Attributes:
        values (np.ndarray): Read-only int64 array of shape (n_rows, n_columns)
        domain_sizes (Tuple[int, ...]): Number of codes available per column
        column_names (List[str]): Display name of each column
        labels (List[list]): Original value for each code, per column (optional)

    Example:
        >>> matrix = CodedMatrix.from_rows([[0, 1], [1, 1], [1, 0]])
        >>> matrix.shape
        (3, 2)
    """

    def __init__(
        self,
        data: Any,
        domain_sizes: Optional[Sequence[int]] = None,
        column_names: Optional[Sequence[str]] = None,
        labels: Optional[Sequence[Sequence[Any]]] = None
    ):
        """
        Validate and freeze a coded matrix.

        Args:
            data: 2-D numpy array or sequence of equally long integer rows
            domain_sizes: Number of codes per column. Inferred as max code + 1
                          when omitted.
            column_names: Optional column names (defaults to "c0", "c1", ...)
            labels: Optional per-column lists mapping codes back to the
                    original values

        Raises:
            InvalidInputError: If the data violates any matrix invariant
        """
        array = _coerce_to_array(data)
        n_rows, n_columns = array.shape

        if np.any(array < 0):
            row, col = np.argwhere(array < 0)[0]
            raise InvalidInputError(
                f"Negative code {array[row, col]} at row {row}, column {col}"
            )

        if domain_sizes is None:
            domains = array.max(axis=0) + 1
        else:
            if len(domain_sizes) != n_columns:
                raise InvalidInputError(
                    f"Got {len(domain_sizes)} domain sizes for {n_columns} columns"
                )
            domains = np.asarray(domain_sizes, dtype=np.int64)
            out_of_range = array >= domains
            if np.any(out_of_range):
                row, col = np.argwhere(out_of_range)[0]
                raise InvalidInputError(
                    f"Code {array[row, col]} at row {row}, column {col} is outside "
                    f"the column domain [0, {domains[col]})"
                )

        if column_names is not None and len(column_names) != n_columns:
            raise InvalidInputError(
                f"Got {len(column_names)} column names for {n_columns} columns"
            )
        if labels is not None and len(labels) != n_columns:
            raise InvalidInputError(
                f"Got {len(labels)} label lists for {n_columns} columns"
            )

        array.setflags(write=False)
        self.values: np.ndarray = array
        self.domain_sizes: Tuple[int, ...] = tuple(int(d) for d in domains)
        self.column_names: List[str] = (
            [str(name) for name in column_names] if column_names is not None
            else [f"c{i}" for i in range(n_columns)]
        )
        self.labels: Optional[List[list]] = (
            [list(col_labels) for col_labels in labels] if labels is not None else None
        )
        self._distinct_counts: Tuple[int, ...] = tuple(
            int(len(np.unique(array[:, c]))) for c in range(n_columns)
        )

        logger.debug(f"CodedMatrix built with {n_rows} rows and {n_columns} columns")

    @classmethod
    def from_rows(cls, rows: Sequence[Sequence[int]], **kwargs) -> "CodedMatrix":
        """Build a matrix from nested integer sequences."""
        return cls(rows, **kwargs)

    @classmethod
    def from_frame(
        cls,
        frame: pd.DataFrame,
        columns: Optional[Sequence[str]] = None
    ) -> "CodedMatrix":
        """
        Dense per-column coding of a DataFrame of heterogeneous values.

        Codes follow the sorted order of each column's distinct values.
        Missing values are kept as a category of their own.

        Args:
            frame: Raw dataset, one row per record
            columns: Quasi-identifier columns to encode (default: all)

        Returns:
            CodedMatrix with labels that decode every code

        Example:
            >>> df = pd.DataFrame({'sex': ['F', 'M', 'F'], 'zip': ['02139', '02139', '10001']})
            >>> matrix = CodedMatrix.from_frame(df)
            >>> matrix.decode_item(Item(1, 1))
            ('zip', '10001')
        """
        if columns is None:
            columns = frame.columns.tolist()

        missing = [col for col in columns if col not in frame.columns]
        if missing:
            raise InvalidInputError(f"Columns not found in dataset: {missing}")
        if len(frame) == 0:
            raise InvalidInputError("Dataset has no rows")
        if len(columns) == 0:
            raise InvalidInputError("No columns selected for coding")

        coded = np.empty((len(frame), len(columns)), dtype=np.int64)
        labels = []
        for i, col in enumerate(columns):
            try:
                codes, uniques = pd.factorize(frame[col], sort=True, use_na_sentinel=False)
            except TypeError:
                # Mixed, unorderable values: fall back to order of appearance
                codes, uniques = pd.factorize(frame[col], sort=False, use_na_sentinel=False)
            coded[:, i] = codes
            labels.append(list(uniques))

        logger.info(f"Encoded {len(frame)} records over {len(columns)} quasi-identifiers")

        return cls(
            coded,
            domain_sizes=[len(col_labels) for col_labels in labels],
            column_names=list(columns),
            labels=labels
        )

    @property
    def n_rows(self) -> int:
        return self.values.shape[0]

    @property
    def n_columns(self) -> int:
        return self.values.shape[1]

    @property
    def shape(self) -> Tuple[int, int]:
        return self.values.shape

    def distinct_counts(self) -> Tuple[int, ...]:
        """Number of codes actually present in each column."""
        return self._distinct_counts

    def resolve_key_size(self, k_max: Optional[int]) -> int:
        """
        Validate a maximum itemset size against this matrix.

        None selects every column. Sizes above the column count are clamped.

        Raises:
            InvalidInputError: If k_max is not a positive integer
        """
        if k_max is None:
            return self.n_columns
        if isinstance(k_max, bool) or not isinstance(k_max, (int, np.integer)):
            raise InvalidInputError(f"Maximum key size must be an integer, got {k_max!r}")
        if k_max < 1:
            raise InvalidInputError(f"Maximum key size must be at least 1, got {k_max}")
        if k_max > self.n_columns:
            logger.warning(f"Maximum key size {k_max} exceeds the {self.n_columns} "
                           f"available columns; using {self.n_columns}")
            return self.n_columns
        return int(k_max)

    def column(self, index: int) -> np.ndarray:
        return self.values[:, index]

    def row(self, index: int) -> np.ndarray:
        return self.values[index]

    def column_name(self, index: int) -> str:
        return self.column_names[index]

    def decode_item(self, item: Item) -> Tuple[str, Any]:
        """
        Translate an item back to (column name, original value).

        Without labels the code itself is returned as the value.
        """
        name = self.column_names[item.column]
        if self.labels is None:
            return name, item.value
        return name, self.labels[item.column][item.value]

    def describe(self) -> Dict[str, Any]:
        """Summary of the matrix shape and per-column cardinality."""
        return {
            'n_rows': self.n_rows,
            'n_columns': self.n_columns,
            'column_cardinality': dict(zip(self.column_names, self._distinct_counts)),
        }

    def __repr__(self) -> str:
        return f"CodedMatrix(rows={self.n_rows}, columns={self.n_columns})"


def _coerce_to_array(data: Any) -> np.ndarray:
    """Convert input rows to a fresh 2-D int64 array, rejecting malformed data."""
    if isinstance(data, pd.DataFrame):
        data = data.to_numpy()

    if not isinstance(data, np.ndarray):
        rows = list(data)
        if not rows:
            raise InvalidInputError("Matrix has no rows")
        try:
            widths = {len(row) for row in rows}
        except TypeError:
            raise InvalidInputError("Every row must be a sequence of codes")
        if len(widths) > 1:
            raise InvalidInputError(f"Ragged rows: found row lengths {sorted(widths)}")
        data = np.asarray(rows)

    if data.ndim != 2:
        if data.ndim == 1 and data.shape[0] == 0:
            raise InvalidInputError("Matrix has no rows")
        raise InvalidInputError(f"Matrix must be 2-dimensional, got {data.ndim} dimensions")
    if data.shape[0] == 0:
        raise InvalidInputError("Matrix has no rows")
    if data.shape[1] == 0:
        raise InvalidInputError("Matrix has no columns")
    if data.dtype.kind not in ('i', 'u'):
        raise InvalidInputError(f"Matrix codes must be integers, got dtype {data.dtype}")

    return np.array(data, dtype=np.int64, copy=True)
