"""Operational endpoints for scheduler jobs."""
from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from app.api.errors import to_http_exception
from app.api.schemas.jobs import JobRunRequest, JobRunResponse
from app.core.clock import now_ms
from app.core.config import settings
from app.db.deps import get_db
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.errors import StreakEngineError
from app.services.job_runner import (
    run_daily_reset_for_all_users,
    run_daily_reset_for_user,
    run_daily_summary_job,
)
from app.services.streak_policy import policy_from_settings

router = APIRouter()


@router.get("/jobs", tags=["jobs"])
def get_jobs_config(request: Request) -> dict:
    request_id = getattr(request.state, "request_id", None)
    with trace("jobs.config", metadata={"request_id": request_id}, request_id=request_id):
        data = {
            "scheduler_enabled": settings.scheduler_enabled,
            "schedule": {
                "timezone": settings.scheduler_timezone,
                "daily_time": f"{settings.daily_reset_hour:02d}:{settings.daily_reset_minute:02d}",
            },
            "reset": {
                "interval_ms": settings.reset_interval_ms,
                "grace_period_ms": settings.reset_grace_period_ms,
            },
        }
    return {**data, "request_id": request_id or ""}


@router.post("/jobs/run-now", response_model=JobRunResponse, tags=["jobs"])
def run_job_now(
    request: Request,
    payload: JobRunRequest,
    db: Session = Depends(get_db),
) -> JobRunResponse:
    if not settings.debug:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Run-now only allowed in debug mode")

    request_id = getattr(request.state, "request_id", None)
    metadata = {"job": payload.job, "request_id": request_id}
    start = perf_counter()
    now = now_ms()
    with trace("jobs.run_now", metadata=metadata, request_id=request_id):
        if payload.job == "daily_reset":
            result = _run_reset_job(db, payload.user_id, now)
        else:
            result = {"users_processed": run_daily_summary_job(db, now)}

    latency_ms = (perf_counter() - start) * 1000
    log_metric(
        "jobs.run_now.success",
        1,
        metadata={"job": payload.job},
    )
    log_metric(
        "jobs.run_now.latency_ms",
        latency_ms,
        metadata={"job": payload.job},
    )

    return JobRunResponse(
        job=payload.job,
        users_processed=result["users_processed"],
        resets_applied=result.get("resets_applied", 0),
        tasks_failed=result.get("tasks_failed", 0),
        request_id=request_id or "",
    )


def _run_reset_job(db: Session, user_id: int | None, now: int) -> dict:
    policy = policy_from_settings(settings)
    if user_id:
        try:
            applied, failed = run_daily_reset_for_user(db, user_id, now, policy=policy)
        except StreakEngineError as exc:
            raise to_http_exception(exc) from exc
        return {"users_processed": 1, "resets_applied": 1 if applied else 0, "tasks_failed": failed}
    res = run_daily_reset_for_all_users(db, now, policy=policy)
    return {
        "users_processed": res.users_processed,
        "resets_applied": res.resets_applied,
        "tasks_failed": res.tasks_failed,
    }
