"""Schemas for user streak stats."""
from __future__ import annotations

from pydantic import BaseModel


class UserStatsResponse(BaseModel):
    user_id: int
    current_streak: int
    longest_streak: int
    total_tasks_completed: int
    total_habits_completed: int
    last_task_reset: int
    request_id: str
