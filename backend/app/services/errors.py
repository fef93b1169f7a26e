"""Error taxonomy surfaced by the streak engine.

Validation errors are raised before anything is written. Storage failures are
wrapped in ``InternalError`` after the transaction has been rolled back.
"""
from __future__ import annotations

from typing import Any, Dict


class StreakEngineError(Exception):
    kind = "StreakEngineError"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details


class NotFoundError(StreakEngineError):
    kind = "NotFound"


class InvalidEventError(StreakEngineError):
    kind = "InvalidEvent"


class AlreadyTerminalError(StreakEngineError):
    kind = "AlreadyTerminal"

    def __init__(self, message: str, *, status: str, **details: Any) -> None:
        super().__init__(message, status=status, **details)
        self.status = status


class CadenceNotElapsedError(StreakEngineError):
    kind = "CadenceNotElapsed"

    def __init__(self, message: str, *, retry_after_ms: int, **details: Any) -> None:
        super().__init__(message, retry_after_ms=retry_after_ms, **details)
        self.retry_after_ms = retry_after_ms


class InternalError(StreakEngineError):
    kind = "InternalError"
    retryable = False


class TransactionConflictError(InternalError):
    """A concurrent same-user transaction held the lock; safe to resubmit."""

    retryable = True
