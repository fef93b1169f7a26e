"""Habit tick routes."""
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.errors import to_http_exception
from app.api.schemas.habit import HabitSummary, HabitTickRequest, HabitTickResponse, MilestoneInfo
from app.core.clock import now_ms
from app.core.config import settings
from app.db.deps import get_db
from app.db.models.habit import Habit
from app.observability.metrics import log_metric, timed
from app.observability.tracing import trace
from app.services.completion_service import tick_habit
from app.services.errors import StreakEngineError
from app.services.notifications.hooks import notify_milestone
from app.services.streak_policy import policy_from_settings

router = APIRouter()


@router.post("/habits/{habit_id}/tick", response_model=HabitTickResponse, tags=["habits"])
def tick_habit_route(
    habit_id: UUID,
    payload: HabitTickRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> HabitTickResponse:
    """Tick a habit if its cadence allows it."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/habits/{habit_id}/tick",
        "habit_id": str(habit_id),
        "user_id": payload.user_id,
        "request_id": request_id,
    }

    try:
        with timed("habit.tick", metadata={"habit_id": str(habit_id)}), trace(
            "habit.tick",
            metadata=metadata,
            user_id=payload.user_id,
            request_id=request_id,
        ):
            result = tick_habit(
                db,
                payload.user_id,
                habit_id,
                now_ms(),
                policy=policy_from_settings(settings),
            )
    except StreakEngineError as exc:
        log_metric("habit.tick.rejected", 1, metadata={"kind": exc.kind})
        raise to_http_exception(exc) from exc

    if result.milestone_log is not None:
        notify_milestone(db, result.milestone_log, request_id)
        log_metric(
            "habit.milestone.achieved",
            result.milestone_achieved.milestone_days,
            metadata={"habit_id": str(habit_id)},
        )

    log_metric(
        "habit.tick.success",
        1,
        metadata={"user_id": payload.user_id, "habit_id": str(habit_id)},
    )
    log_metric("user.streak.current", result.new_user_streak, metadata={"user_id": payload.user_id})

    milestone = result.milestone_achieved
    return HabitTickResponse(
        habit=_serialize_habit(result.habit),
        new_streak_days=result.new_streak_days,
        new_user_streak=result.new_user_streak,
        longest_streak=result.longest_streak,
        milestone_achieved=MilestoneInfo(milestone_days=milestone.milestone_days, message=milestone.message)
        if milestone
        else None,
        request_id=request_id or "",
    )


def _serialize_habit(habit: Habit) -> HabitSummary:
    return HabitSummary(
        id=habit.id,
        user_id=habit.user_id,
        name=habit.name,
        type=habit.type,
        interval_days=habit.interval_days,
        streak_days=habit.streak_days,
        longest_streak=habit.longest_streak,
        last_checked_at=habit.last_checked_at,
        total_completions=habit.total_completions,
        milestones_achieved=sorted(set(habit.milestones_achieved or [])),
        is_active=bool(habit.is_active),
        created_at=habit.created_at,
    )
