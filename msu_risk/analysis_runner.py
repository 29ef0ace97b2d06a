"""
Orchestrates MSU analyses over a coded matrix.

Builds the item index once, runs the SUDA search for one or several maximum
key sizes, optionally validates each result against the exhaustive oracle,
and turns cancellation into an explicit "interrupted" outcome.
"""

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

import pandas as pd
from tqdm import tqdm
from joblib import Parallel, delayed

from .cancellation import CancellationToken
from .coded_matrix import CodedMatrix
from .config import AnalysisConfig
from .exceptions import AnalysisInterrupted, EquivalenceError
from .exhaustive_search import ExhaustiveSearch
from .item_index import ItemIndex
from .result_set import ResultSet
from .suda_search import SudaSearch

# Configure logging
logger = logging.getLogger(__name__)

COMPLETED = "completed"
INTERRUPTED = "interrupted"


@dataclass
class AnalysisOutcome:
    """
    Terminal state of one analysis.

    Attributes:
        k_max: Maximum key size that was searched
        status: "completed" or "interrupted"
        result: MSUs found; always None when interrupted
        elapsed_seconds: Wall-clock duration
        search_stats: Counters of the SUDA search (completed runs only)
        validated: True if the exhaustive oracle agreed, None if not run
        message: Reason for an interruption
    """
    k_max: int
    status: str
    result: Optional[ResultSet]
    elapsed_seconds: float
    search_stats: Dict[str, int] = field(default_factory=dict)
    validated: Optional[bool] = None
    message: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status == COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary for reports."""
        summary = {
            'k_max': self.k_max,
            'status': self.status,
            'elapsed_seconds': round(self.elapsed_seconds, 4),
            'validated': self.validated,
        }
        if self.message:
            summary['message'] = self.message
        if self.result is not None:
            summary['results'] = self.result.summary()
            summary['search_stats'] = dict(self.search_stats)
        return summary


class AnalysisRunner:
    """
    Runs MSU analyses with a shared, read-only item index.

    Every run owns its engine and result; the matrix and index are only read,
    so several key sizes can be analysed in parallel threads. One
    cancellation token stops all of them.

    Attributes:
        matrix (CodedMatrix): Matrix under analysis
        config (AnalysisConfig): Analysis parameters
        cancellation (CancellationToken): Token shared by all runs
        index (ItemIndex): Item index built once for the matrix

    Example:
        >>> runner = AnalysisRunner(matrix, AnalysisConfig(max_key_size=3, validate=True))
        >>> outcome = runner.run()
        >>> outcome.result.size_distribution()
    """

    def __init__(
        self,
        matrix: CodedMatrix,
        config: Optional[AnalysisConfig] = None,
        cancellation: Optional[CancellationToken] = None
    ):
        self.matrix = matrix
        self.config = config or AnalysisConfig()
        self.cancellation = cancellation if cancellation is not None else CancellationToken()

        logger.info("Building item index...")
        self.index = ItemIndex(matrix)

        logger.info(f"AnalysisRunner initialized with {matrix.n_rows} rows "
                    f"and {matrix.n_columns} quasi-identifiers")

    def cancel(self, reason: Optional[str] = None) -> None:
        """Interrupt every running and future analysis of this runner."""
        self.cancellation.cancel(reason)

    def run(self, k_max: Optional[int] = None, validate: Optional[bool] = None) -> AnalysisOutcome:
        """
        Run one analysis.

        Args:
            k_max: Maximum key size (defaults to config.max_key_size)
            validate: Compare with the exhaustive oracle (defaults to config.validate)

        Returns:
            AnalysisOutcome; its result is None if the run was interrupted

        Raises:
            InvalidInputError: If k_max is invalid
            ResourceExhaustionError: If validation would exceed the oracle's bound
            EquivalenceError: If validation found a disagreement
        """
        if k_max is None:
            k_max = self.config.max_key_size
        if validate is None:
            validate = self.config.validate
        k_max = self.matrix.resolve_key_size(k_max)

        start_time = time.time()
        engine = SudaSearch(self.matrix, index=self.index, cancellation=self.cancellation)

        try:
            result = engine.search(k_max)

            validated = None
            if validate:
                oracle = ExhaustiveSearch(
                    self.matrix,
                    cancellation=self.cancellation,
                    max_subsets=self.config.exhaustive_max_subsets,
                    show_progress=self.config.show_progress
                )
                expected = oracle.search(k_max)
                _check_equivalent(result, expected)
                validated = True
                logger.info(f"Exhaustive validation passed for k_max={k_max}")

        except AnalysisInterrupted as e:
            elapsed = time.time() - start_time
            logger.warning(f"Analysis with k_max={k_max} interrupted after {elapsed:.2f}s: {e}")
            return AnalysisOutcome(
                k_max=k_max,
                status=INTERRUPTED,
                result=None,
                elapsed_seconds=elapsed,
                message=str(e)
            )

        elapsed = time.time() - start_time
        logger.info(f"Analysis with k_max={k_max} completed in {elapsed:.2f}s: "
                    f"{len(result)} MSUs over {len(result.rows_at_risk())} rows")

        return AnalysisOutcome(
            k_max=k_max,
            status=COMPLETED,
            result=result,
            elapsed_seconds=elapsed,
            search_stats=engine.last_stats.to_dict(),
            validated=validated
        )

    def run_many(
        self,
        k_values: Sequence[int],
        validate: Optional[bool] = None,
        show_progress: Optional[bool] = None
    ) -> Dict[int, AnalysisOutcome]:
        """
        Analyse several maximum key sizes, in parallel when n_jobs != 1.

        Args:
            k_values: Maximum key sizes to analyse (repeats are run once)
            validate: Compare each run with the exhaustive oracle
            show_progress: Whether to show a progress bar

        Returns:
            Dict mapping each requested k_max to its outcome
        """
        if show_progress is None:
            show_progress = self.config.show_progress

        requested = list(k_values)
        k_values = list(dict.fromkeys(requested))
        if len(k_values) < len(requested):
            logger.warning(f"Ignoring repeated key sizes; analysing {k_values}")

        iterator = tqdm(k_values, desc="Key sizes") if show_progress else k_values

        logger.info(f"Running {len(k_values)} analyses with n_jobs={self.config.n_jobs}")

        outcomes = Parallel(n_jobs=self.config.n_jobs, prefer="threads")(
            delayed(self.run)(k, validate) for k in iterator
        )

        return dict(zip(k_values, outcomes))

    def export_results(
        self,
        outcome: AnalysisOutcome,
        output_dir: str,
        prefix: str = ""
    ) -> Dict[str, str]:
        """
        Export a completed analysis to CSV files.

        Args:
            outcome: Completed AnalysisOutcome
            output_dir: Directory for output files
            prefix: Optional prefix for filenames

        Returns:
            Dict mapping result type to file path (empty for interrupted runs)
        """
        if not outcome.completed:
            logger.warning(f"Not exporting interrupted analysis (k_max={outcome.k_max})")
            return {}

        output_dir = Path(output_dir)
        output_dir.mkdir(parents=True, exist_ok=True)

        file_prefix = f"{prefix}_" if prefix else ""
        result = outcome.result
        exported_files = {}

        msu_path = output_dir / f"{file_prefix}k{outcome.k_max}_msus.csv"
        result.to_frame(self.matrix).to_csv(msu_path, index=False)
        exported_files['msus'] = str(msu_path)

        size_path = output_dir / f"{file_prefix}k{outcome.k_max}_size_distribution.csv"
        result.size_distribution().to_csv(size_path)
        exported_files['size_distribution'] = str(size_path)

        row_path = output_dir / f"{file_prefix}k{outcome.k_max}_row_risk.csv"
        self.row_risk_table(result).to_csv(row_path, index=False)
        exported_files['row_risk'] = str(row_path)

        column_path = output_dir / f"{file_prefix}k{outcome.k_max}_column_contributions.csv"
        self.column_contribution_table(result).to_csv(column_path, index=False)
        exported_files['column_contributions'] = str(column_path)

        logger.info(f"Exported results to {output_dir}")

        return exported_files

    def row_risk_table(self, result: ResultSet) -> pd.DataFrame:
        """Per-row MSU counts and smallest MSU size, rows without MSUs included."""
        records = []
        for row in range(self.matrix.n_rows):
            msus = result.msus_for_row(row)
            records.append({
                'row': row,
                'n_msus': len(msus),
                'min_msu_size': msus[0].size if msus else None,
            })
        frame = pd.DataFrame.from_records(records, columns=['row', 'n_msus', 'min_msu_size'])
        frame['min_msu_size'] = frame['min_msu_size'].astype('Int64')
        return frame

    def column_contribution_table(self, result: ResultSet) -> pd.DataFrame:
        """Number of MSUs each quasi-identifier takes part in."""
        contributions = result.column_contributions()
        return pd.DataFrame({
            'column': [self.matrix.column_name(c) for c in range(self.matrix.n_columns)],
            'n_msus': [int(contributions.get(c, 0)) for c in range(self.matrix.n_columns)],
        })


def _check_equivalent(result: ResultSet, expected: ResultSet) -> None:
    """Raise EquivalenceError if two results hold different itemsets."""
    if result == expected:
        return

    found = result.itemsets()
    reference = expected.itemsets()
    missing = sorted(sorted(s) for s in reference - found)
    extra = sorted(sorted(s) for s in found - reference)
    raise EquivalenceError(
        f"SUDA search disagrees with exhaustive search: "
        f"{len(missing)} MSUs missing (e.g. {missing[:3]}), "
        f"{len(extra)} unexpected (e.g. {extra[:3]})"
    )


def compare_engines(
    matrix: CodedMatrix,
    k_max: Optional[int] = None,
    max_subsets: Optional[int] = None
) -> Tuple[ResultSet, ResultSet]:
    """
    Run both engines and return (suda_result, exhaustive_result).

    Raises:
        EquivalenceError: If the engines disagree
    """
    suda = SudaSearch(matrix).search(k_max)
    exhaustive = ExhaustiveSearch(matrix, max_subsets=max_subsets).search(k_max)
    _check_equivalent(suda, exhaustive)
    return suda, exhaustive
