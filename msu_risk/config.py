"""
Analysis configuration.

Settings are read from a YAML file with an `analysis` and a `data` section
and can be overridden from the command line:

    analysis:
      max_key_size: 3
      validate: false
      exhaustive_max_subsets: 5000000
      n_jobs: 1
      show_progress: false
    data:
      path: data/records.csv
      columns: [age_decade, gender, zip3]
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

import yaml

from .exceptions import InvalidInputError
from .exhaustive_search import DEFAULT_MAX_SUBSETS

# Configure logging
logger = logging.getLogger(__name__)

_ANALYSIS_KEYS = {'max_key_size', 'validate', 'exhaustive_max_subsets', 'n_jobs', 'show_progress'}
_DATA_KEYS = {'path', 'columns'}


@dataclass
class AnalysisConfig:
    """
    Parameters of an MSU analysis.

    Attributes:
        max_key_size: Largest itemset size to search (None = all columns).
                      Mirrors the population model's "max key size".
        validate: Cross-check the SUDA result with the exhaustive oracle
        exhaustive_max_subsets: Work bound of the exhaustive oracle (None = unbounded)
        n_jobs: Parallel workers when several key sizes are analysed
        show_progress: Whether to show progress bars
        data_path: CSV file with the dataset (CLI only)
        columns: Quasi-identifier columns to analyse (None = all)
    """
    max_key_size: Optional[int] = None
    validate: bool = False
    exhaustive_max_subsets: Optional[int] = DEFAULT_MAX_SUBSETS
    n_jobs: int = 1
    show_progress: bool = False
    data_path: Optional[str] = None
    columns: Optional[List[str]] = field(default=None)

    def __post_init__(self):
        if self.max_key_size is not None:
            if isinstance(self.max_key_size, bool) or not isinstance(self.max_key_size, int):
                raise InvalidInputError(f"max_key_size must be an integer, got {self.max_key_size!r}")
            if self.max_key_size < 1:
                raise InvalidInputError(f"max_key_size must be at least 1, got {self.max_key_size}")
        if self.exhaustive_max_subsets is not None:
            if (isinstance(self.exhaustive_max_subsets, bool)
                    or not isinstance(self.exhaustive_max_subsets, int)):
                raise InvalidInputError(
                    f"exhaustive_max_subsets must be an integer, got {self.exhaustive_max_subsets!r}"
                )
            if self.exhaustive_max_subsets < 1:
                raise InvalidInputError("exhaustive_max_subsets must be positive")
        if isinstance(self.n_jobs, bool) or not isinstance(self.n_jobs, int) or self.n_jobs == 0:
            raise InvalidInputError(f"n_jobs must be a non-zero integer, got {self.n_jobs!r}")

    @classmethod
    def from_dict(cls, raw: Optional[Dict[str, Any]]) -> "AnalysisConfig":
        """Build a configuration from the parsed YAML structure."""
        raw = raw or {}
        analysis = raw.get('analysis') or {}
        data = raw.get('data') or {}

        for key in set(analysis) - _ANALYSIS_KEYS:
            logger.warning(f"Ignoring unknown analysis setting '{key}'")
        for key in set(data) - _DATA_KEYS:
            logger.warning(f"Ignoring unknown data setting '{key}'")

        settings = {key: analysis[key] for key in _ANALYSIS_KEYS if key in analysis}
        if 'path' in data:
            settings['data_path'] = data['path']
        if 'columns' in data:
            settings['columns'] = list(data['columns']) if data['columns'] is not None else None

        return cls(**settings)

    @classmethod
    def from_yaml(cls, config_path: str) -> "AnalysisConfig":
        """Load configuration from YAML file."""
        with open(config_path, 'r') as f:
            return cls.from_dict(yaml.safe_load(f))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
