"""Translate engine errors into HTTP responses."""
from __future__ import annotations

import math

from fastapi import HTTPException, status

from app.services.errors import (
    AlreadyTerminalError,
    CadenceNotElapsedError,
    InvalidEventError,
    NotFoundError,
    StreakEngineError,
    TransactionConflictError,
)


def to_http_exception(exc: StreakEngineError) -> HTTPException:
    headers = None
    if isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, (AlreadyTerminalError, CadenceNotElapsedError)):
        status_code = status.HTTP_409_CONFLICT
        if isinstance(exc, CadenceNotElapsedError):
            headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after_ms / 1000)))}
    elif isinstance(exc, InvalidEventError):
        status_code = status.HTTP_422_UNPROCESSABLE_ENTITY
    elif isinstance(exc, TransactionConflictError):
        status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        headers = {"Retry-After": "1"}
    else:
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"error": exc.kind, "message": "Internal server error"},
        )
    return HTTPException(
        status_code=status_code,
        detail={"error": exc.kind, "message": exc.message},
        headers=headers,
    )
