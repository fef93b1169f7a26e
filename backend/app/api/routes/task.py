"""Task completion, daily reset and summary routes."""
from __future__ import annotations

from typing import Any, Dict
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.api.errors import to_http_exception
from app.api.schemas.task import (
    DailyResetRequest,
    DailyResetResponse,
    DailySummaryItem,
    DailySummaryListResponse,
    DailySummaryTask,
    TaskCompleteRequest,
    TaskCompleteResponse,
    TaskSummary,
    YesterdaySummaryResponse,
)
from app.core.clock import day_start, now_ms, to_iso
from app.core.config import ONE_DAY_MS, settings
from app.db.deps import get_db
from app.db.models.daily_task_summary import DailyTaskSummary
from app.db.models.task import Task
from app.observability.metrics import log_metric, timed
from app.observability.tracing import trace
from app.services.completion_service import complete_task
from app.services.daily_reset import run_daily_reset_sweep
from app.services.daily_summary import get_yesterday_summary, list_summaries
from app.services.errors import StreakEngineError
from app.services.streak_policy import policy_from_settings
from app.services.user_service import get_user_or_raise

router = APIRouter()


@router.post("/tasks/{task_id}/complete", response_model=TaskCompleteResponse, tags=["tasks"])
def complete_task_route(
    task_id: UUID,
    payload: TaskCompleteRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> TaskCompleteResponse:
    """Mark a pending task completed and update the user's streak."""
    request_id = getattr(http_request.state, "request_id", None)
    metadata: Dict[str, Any] = {
        "route": f"/tasks/{task_id}/complete",
        "task_id": str(task_id),
        "user_id": payload.user_id,
        "request_id": request_id,
    }

    try:
        with timed("task.complete", metadata={"task_id": str(task_id)}), trace(
            "task.complete",
            metadata=metadata,
            user_id=payload.user_id,
            request_id=request_id,
        ):
            result = complete_task(
                db,
                payload.user_id,
                task_id,
                now_ms(),
                policy=policy_from_settings(settings),
            )
    except StreakEngineError as exc:
        log_metric("task.complete.rejected", 1, metadata={"kind": exc.kind})
        raise to_http_exception(exc) from exc

    log_metric(
        "task.complete.success",
        1,
        metadata={"user_id": payload.user_id, "task_id": str(task_id)},
    )
    log_metric("user.streak.current", result.new_streak, metadata={"user_id": payload.user_id})

    return TaskCompleteResponse(
        task=_serialize_task(result.task),
        new_streak=result.new_streak,
        longest_streak=result.longest_streak,
        request_id=request_id or "",
    )


@router.post("/tasks/reset", response_model=DailyResetResponse, tags=["tasks"])
def daily_reset_route(
    payload: DailyResetRequest,
    http_request: Request,
    db: Session = Depends(get_db),
) -> DailyResetResponse:
    """Run the daily reset sweep for a user and return their tasks."""
    request_id = getattr(http_request.state, "request_id", None)

    try:
        with trace(
            "task.daily_reset",
            metadata={"route": "/tasks/reset", "request_id": request_id},
            user_id=payload.user_id,
            request_id=request_id,
        ):
            result = run_daily_reset_sweep(
                db,
                payload.user_id,
                now_ms(),
                policy=policy_from_settings(settings),
            )
    except StreakEngineError as exc:
        raise to_http_exception(exc) from exc

    log_metric(
        "task.daily_reset.applied",
        1 if result.reset_applied else 0,
        metadata={"user_id": payload.user_id},
    )
    log_metric("task.daily_reset.failed_count", result.failed_count, metadata={"user_id": payload.user_id})

    return DailyResetResponse(
        tasks=[_serialize_task(task) for task in result.tasks],
        total_pending=result.total_pending,
        total_completed=result.total_completed,
        total_failed=result.total_failed,
        next_reset_time=result.next_reset_time,
        reset_applied=result.reset_applied,
        missed_task_count=result.failed_count,
        request_id=request_id or "",
    )


@router.get("/tasks/summary", response_model=DailySummaryListResponse, tags=["tasks"])
def list_task_summaries(
    http_request: Request,
    user_id: int = Query(..., ge=1, description="User ID owning the summaries"),
    limit: int = Query(7, ge=1, le=90),
    db: Session = Depends(get_db),
) -> DailySummaryListResponse:
    """Return the most recent daily task summaries, newest first."""
    request_id = getattr(http_request.state, "request_id", None)
    try:
        get_user_or_raise(db, user_id)
    except StreakEngineError as exc:
        raise to_http_exception(exc) from exc

    with trace("task.summary.list", metadata={"limit": limit}, user_id=user_id, request_id=request_id):
        summaries = list_summaries(db, user_id, limit=limit)

    items = [_serialize_summary(summary) for summary in summaries]
    return DailySummaryListResponse(summaries=items, count=len(items), request_id=request_id or "")


@router.get("/tasks/summary/yesterday", response_model=YesterdaySummaryResponse, tags=["tasks"])
def yesterday_task_summary(
    http_request: Request,
    user_id: int = Query(..., ge=1, description="User ID owning the summary"),
    db: Session = Depends(get_db),
) -> YesterdaySummaryResponse:
    request_id = getattr(http_request.state, "request_id", None)
    try:
        get_user_or_raise(db, user_id)
    except StreakEngineError as exc:
        raise to_http_exception(exc) from exc

    now = now_ms()
    yesterday_start = day_start(now) - ONE_DAY_MS
    with trace("task.summary.yesterday", user_id=user_id, request_id=request_id):
        summary = get_yesterday_summary(db, user_id, now)

    if summary is None:
        return YesterdaySummaryResponse(
            has_summary=False,
            date=yesterday_start,
            date_string=_date_string(yesterday_start),
            message="No tasks from yesterday",
            request_id=request_id or "",
        )

    return YesterdaySummaryResponse(
        has_summary=True,
        date=summary.date,
        date_string=_date_string(summary.date),
        summary=_serialize_summary(summary),
        tasks=[DailySummaryTask(**entry) for entry in (summary.tasks_data or [])],
        request_id=request_id or "",
    )


def _serialize_task(task: Task) -> TaskSummary:
    return TaskSummary(
        id=task.id,
        user_id=task.user_id,
        title=task.title,
        description=task.description,
        status=task.status,
        created_at=task.created_at,
        completed_at=task.completed_at,
        is_missed=bool(task.is_missed),
    )


def _serialize_summary(summary: DailyTaskSummary) -> DailySummaryItem:
    return DailySummaryItem(
        id=summary.id,
        date=summary.date,
        date_string=_date_string(summary.date),
        total_tasks=summary.total_tasks,
        completed_tasks=summary.completed_tasks,
        failed_tasks=summary.failed_tasks,
        completion_rate=float(summary.completion_rate or 0),
        created_at=summary.created_at,
    )


def _date_string(epoch_ms: int) -> str:
    return (to_iso(epoch_ms) or "")[:10]
