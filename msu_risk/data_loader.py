# =============================================================================
# data_loader.py
# =============================================================================
# Loads a record-level CSV dataset and hands the selected quasi-identifiers
# to the integer coder.
#
# Values are read as text so that codes do not depend on type inference;
# empty cells become a category of their own ("" by default).
# =============================================================================

import logging
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .coded_matrix import CodedMatrix
from .exceptions import InvalidInputError

# Configure logging
logger = logging.getLogger(__name__)


class DataLoader:
    """
    Reads a CSV dataset and encodes quasi-identifiers as a CodedMatrix.

    Attributes:
        path (Path): CSV file to load
        missing_value (str): Category used for empty cells

    Example:
        >>> loader = DataLoader("data/records.csv")
        >>> matrix = loader.build_matrix(['age_decade', 'gender', 'zip3'])
    """

    def __init__(self, path: str, missing_value: str = "", read_options: Optional[Dict] = None):
        self.path = Path(path)
        self.missing_value = missing_value
        self.read_options = read_options or {}

        if not self.path.exists():
            raise FileNotFoundError(f"Dataset not found: {self.path}")

        self._frame: Optional[pd.DataFrame] = None

    def load(self) -> pd.DataFrame:
        """Load the CSV once and cache it."""
        if self._frame is None:
            logger.info(f"Loading records from {self.path}")
            frame = pd.read_csv(
                self.path,
                dtype=str,
                keep_default_na=False,
                **self.read_options
            )
            if self.missing_value != "":
                frame = frame.replace("", self.missing_value)
            self._frame = frame
            logger.info(f"Loaded {len(frame)} records with {len(frame.columns)} attributes")

        return self._frame

    def select_quasi_identifiers(self, columns: Optional[Sequence[str]] = None) -> pd.DataFrame:
        """
        Restrict the dataset to the given quasi-identifier columns.

        Args:
            columns: Column names (None = every column)

        Raises:
            InvalidInputError: If a column is missing from the dataset
        """
        frame = self.load()
        if columns is None:
            return frame

        missing = [col for col in columns if col not in frame.columns]
        if missing:
            raise InvalidInputError(
                f"Columns {missing} not found; available: {frame.columns.tolist()}"
            )
        return frame[list(columns)]

    def build_matrix(self, columns: Optional[Sequence[str]] = None) -> CodedMatrix:
        """Encode the selected quasi-identifiers as a CodedMatrix."""
        frame = self.select_quasi_identifiers(columns)
        return CodedMatrix.from_frame(frame)


def load_matrix(path: str, columns: Optional[List[str]] = None, **kwargs) -> CodedMatrix:
    """
    Convenience function to load and encode a CSV dataset in one call.

    Args:
        path: CSV file
        columns: Quasi-identifier columns (None = all)
        **kwargs: Additional arguments passed to DataLoader

    Returns:
        CodedMatrix over the selected columns
    """
    return DataLoader(path, **kwargs).build_matrix(columns)
