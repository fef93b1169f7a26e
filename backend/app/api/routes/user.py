"""User streak stats routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from app.api.errors import to_http_exception
from app.api.schemas.user import UserStatsResponse
from app.db.deps import get_db
from app.observability.tracing import trace
from app.services.errors import StreakEngineError
from app.services.user_service import get_user_or_raise

router = APIRouter()


@router.get("/users/{user_id}/stats", response_model=UserStatsResponse, tags=["users"])
def get_user_stats(
    user_id: int,
    http_request: Request,
    db: Session = Depends(get_db),
) -> UserStatsResponse:
    request_id = getattr(http_request.state, "request_id", None)
    with trace("user.stats", user_id=user_id, request_id=request_id):
        try:
            user = get_user_or_raise(db, user_id)
        except StreakEngineError as exc:
            raise to_http_exception(exc) from exc

    return UserStatsResponse(
        user_id=user.id,
        current_streak=user.current_streak or 0,
        longest_streak=user.longest_streak or 0,
        total_tasks_completed=user.total_tasks_completed or 0,
        total_habits_completed=user.total_habits_completed or 0,
        last_task_reset=user.last_task_reset or 0,
        request_id=request_id or "",
    )
