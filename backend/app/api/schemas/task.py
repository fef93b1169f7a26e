"""Schemas for task completion and the daily reset."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class TaskSummary(BaseModel):
    id: UUID
    user_id: int
    title: str
    description: Optional[str]
    status: str
    created_at: int
    completed_at: Optional[int]
    is_missed: bool


class TaskCompleteRequest(BaseModel):
    user_id: int = Field(..., ge=1)


class TaskCompleteResponse(BaseModel):
    task: TaskSummary
    new_streak: int
    longest_streak: int
    request_id: str


class DailyResetRequest(BaseModel):
    user_id: int = Field(..., ge=1)


class DailyResetResponse(BaseModel):
    tasks: List[TaskSummary]
    total_pending: int
    total_completed: int
    total_failed: int
    next_reset_time: int
    reset_applied: bool
    missed_task_count: int
    request_id: str


class DailySummaryTask(BaseModel):
    id: str
    title: str
    description: Optional[str] = None
    status: str
    created_at: int
    completed_at: Optional[int] = None


class DailySummaryItem(BaseModel):
    id: UUID
    date: int
    date_string: str
    total_tasks: int
    completed_tasks: int
    failed_tasks: int
    completion_rate: float
    created_at: int


class DailySummaryListResponse(BaseModel):
    summaries: List[DailySummaryItem]
    count: int
    request_id: str


class YesterdaySummaryResponse(BaseModel):
    has_summary: bool
    date: int
    date_string: str
    summary: Optional[DailySummaryItem] = None
    tasks: List[DailySummaryTask] = []
    message: Optional[str] = None
    request_id: str
