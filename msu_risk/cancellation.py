"""
Cooperative cancellation for long-running searches.

A risk-estimation job may be stopped by its owner or superseded by a newer
request. Engines poll a CancellationToken at well-defined points and raise
AnalysisInterrupted as soon as it has been triggered.
"""

import logging
import threading
from typing import Optional

from .exceptions import AnalysisInterrupted

logger = logging.getLogger(__name__)


class CancellationToken:
    """
    Thread-safe cancellation flag shared between a caller and an engine.

    Example:
        >>> token = CancellationToken()
        >>> engine = SudaSearch(matrix, cancellation=token)
        >>> # from another thread
        >>> token.cancel("superseded by a newer request")
    """

    def __init__(self):
        self._event = threading.Event()
        self.reason: Optional[str] = None

    def cancel(self, reason: Optional[str] = None) -> None:
        """Request interruption of every search polling this token."""
        if not self._event.is_set():
            self.reason = reason
            logger.info(f"Cancellation requested{': ' + reason if reason else ''}")
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        """Raise AnalysisInterrupted if cancellation has been requested."""
        if self.is_cancelled():
            raise AnalysisInterrupted(self.reason or "analysis interrupted")


class _NeverCancelled(CancellationToken):
    """Token used when the caller does not supply one."""

    def cancel(self, reason: Optional[str] = None) -> None:
        raise RuntimeError("The default token cannot be cancelled; pass a CancellationToken")

    def is_cancelled(self) -> bool:
        return False


def ensure_token(token: Optional[CancellationToken]) -> CancellationToken:
    """Return the given token, or a token that never fires."""
    return token if token is not None else _NeverCancelled()
