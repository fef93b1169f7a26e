"""Schemas for job operations endpoints."""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel


class JobRunRequest(BaseModel):
    job: Literal["daily_reset", "daily_summary"]
    user_id: Optional[int] = None


class JobRunResponse(BaseModel):
    job: str
    users_processed: int
    resets_applied: int = 0
    tasks_failed: int = 0
    request_id: str
