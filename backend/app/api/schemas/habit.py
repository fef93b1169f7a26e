"""Schemas for habit ticks."""
from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class MilestoneInfo(BaseModel):
    milestone_days: int
    message: str


class HabitSummary(BaseModel):
    id: UUID
    user_id: int
    name: str
    type: str
    interval_days: int
    streak_days: int
    longest_streak: int
    last_checked_at: Optional[int]
    total_completions: int
    milestones_achieved: List[int]
    is_active: bool
    created_at: int


class HabitTickRequest(BaseModel):
    user_id: int = Field(..., ge=1)


class HabitTickResponse(BaseModel):
    habit: HabitSummary
    new_streak_days: int
    new_user_streak: int
    longest_streak: int
    milestone_achieved: Optional[MilestoneInfo] = None
    request_id: str
