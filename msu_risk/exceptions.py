"""
Error taxonomy for MSU analyses.

All errors are local to a single analysis call. None of them leave the
coded matrix in a modified state.
"""


class MSURiskError(Exception):
    """Base class for all errors raised by the msu_risk package."""


class InvalidInputError(MSURiskError, ValueError):
    """Malformed matrix or analysis parameters, rejected before any search."""


class AnalysisInterrupted(MSURiskError):
    """
    Cooperative cancellation was observed while a search was running.

    This is a terminal outcome, not a fault: any partial results have been
    discarded and the caller must treat the result as absent.
    """


class ResourceExhaustionError(MSURiskError):
    """The exhaustive enumeration would exceed its configured work bound."""

    def __init__(self, required: int, limit: int):
        self.required = required
        self.limit = limit
        super().__init__(
            f"Exhaustive search needs {required:,} subset tests, "
            f"exceeding the configured limit of {limit:,}"
        )


class EquivalenceError(MSURiskError):
    """The SUDA search and the exhaustive oracle produced different MSU sets."""
