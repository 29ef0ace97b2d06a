# =============================================================================
# MSU Risk Engine
# =============================================================================
#
# This package estimates re-identification risk in categorical datasets by
# enumerating Minimal Sample Uniques (MSUs): smallest combinations of
# attribute values that occur in exactly one record.
#
# Modules:
#   - coded_matrix: Integer-coded, immutable dataset representation
#   - item_index: Row bit-vectors per (column, value) and column rank order
#   - suda_search: Pruned recursive MSU search (SUDA-style)
#   - exhaustive_search: Brute-force oracle for validation
#   - result_set: MSU container, coverage index and tabular export
#   - cancellation: Cooperative cancellation token
#   - analysis_runner: Orchestrates, validates and exports analyses
#   - data_loader: CSV loading and quasi-identifier selection
#   - config: YAML-backed analysis configuration
# =============================================================================

__version__ = "1.0.0"

from .exceptions import (
    MSURiskError,
    InvalidInputError,
    AnalysisInterrupted,
    ResourceExhaustionError,
    EquivalenceError
)
from .cancellation import CancellationToken
from .coded_matrix import CodedMatrix, Item
from .item_index import ItemIndex, rank_columns
from .result_set import MSU, ResultSet, CoverageIndex
from .suda_search import SudaSearch, SearchStats, find_msus
from .exhaustive_search import ExhaustiveSearch
from .config import AnalysisConfig
from .analysis_runner import AnalysisRunner, AnalysisOutcome, compare_engines
from .data_loader import DataLoader, load_matrix

__all__ = [
    "MSURiskError",
    "InvalidInputError",
    "AnalysisInterrupted",
    "ResourceExhaustionError",
    "EquivalenceError",
    "CancellationToken",
    "CodedMatrix",
    "Item",
    "ItemIndex",
    "rank_columns",
    "MSU",
    "ResultSet",
    "CoverageIndex",
    "SudaSearch",
    "SearchStats",
    "find_msus",
    "ExhaustiveSearch",
    "AnalysisConfig",
    "AnalysisRunner",
    "AnalysisOutcome",
    "compare_engines",
    "DataLoader",
    "load_matrix"
]
