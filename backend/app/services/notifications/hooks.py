"""Notification hook utilities."""
from __future__ import annotations

import logging
from time import perf_counter
from uuid import UUID

from sqlalchemy.orm import Session

from app.core.clock import now_ms
from app.core.config import settings
from app.db.models.activity_log import ActivityLog
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.errors import InvalidEventError
from app.services.milestones import MILESTONE_ACTION
from app.services.notifications.base import NotificationResult
from app.services.notifications.factory import get_notification_service


logger = logging.getLogger(__name__)

NOTIFICATION_ACTION = "notification_milestone"


def notify_milestone(db: Session, log: ActivityLog, request_id: str | None) -> NotificationResult:
    """Dispatch a notification for a committed ``MILESTONE_ACTION`` log row.

    Runs after the tick transaction has committed, so a provider failure can
    never roll back the streak itself.
    """
    if log.action_type != MILESTONE_ACTION:
        raise InvalidEventError(f"Not a milestone log: {log.action_type}", action_type=log.action_type)

    payload = log.action_payload or {}
    milestone_days = int(payload.get("milestone_days") or 0)
    habit_id = payload.get("habit_id")

    if not settings.notifications_enabled:
        result = NotificationResult(status="skipped", reason="notifications disabled")
        _record_notification_log(db, log, result=result, request_id=request_id)
        return result

    service = get_notification_service()
    metadata = {
        "habit_id": habit_id,
        "milestone_days": milestone_days,
        "provider": settings.notifications_provider,
    }
    start = perf_counter()
    try:
        with trace("notifications.milestone", metadata=metadata, user_id=log.user_id, request_id=request_id):
            result = service.notify_milestone_achieved(
                user_id=log.user_id,
                habit_id=UUID(habit_id) if habit_id else None,
                milestone_days=milestone_days,
                request_id=request_id,
            )
    except Exception as exc:
        logger.warning("Milestone notification failed for user %s: %s", log.user_id, exc)
        result = NotificationResult(status="failed", reason=str(exc)[:200])

    duration_ms = (perf_counter() - start) * 1000
    log_metric("notifications.sent", 1, metadata={"job": "milestone", "provider": settings.notifications_provider})
    log_metric("notifications.duration_ms", duration_ms, metadata={"job": "milestone"})
    _record_notification_log(db, log, result=result, request_id=request_id)
    return result


def _record_notification_log(
    db: Session,
    log: ActivityLog,
    *,
    result: NotificationResult,
    request_id: str | None,
) -> None:
    if result.status == "skipped":
        log_metric("notifications.skipped", 1, metadata={"job": "milestone"})
    payload = log.action_payload or {}
    notification_log = ActivityLog(
        user_id=log.user_id,
        action_type=NOTIFICATION_ACTION,
        action_payload={
            "milestone_log_id": str(log.id),
            "habit_id": payload.get("habit_id"),
            "milestone_days": payload.get("milestone_days"),
            "provider": settings.notifications_provider,
            "result": result.__dict__,
            "request_id": request_id or "",
        },
        reason="Notification dispatched" if result.status != "skipped" else "Notification skipped",
        occurred_at=now_ms(),
    )
    db.add(notification_log)
    try:
        db.commit()
    except Exception:
        db.rollback()
        raise
