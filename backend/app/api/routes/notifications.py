"""Notification configuration routes."""
from __future__ import annotations

from fastapi import APIRouter, Request

from app.api.schemas.notifications import NotificationEventConfig, NotificationsConfigResponse
from app.core.config import settings
from app.observability.metrics import log_metric
from app.observability.tracing import trace
from app.services.milestones import MILESTONE_ACTION
from app.services.notifications.hooks import NOTIFICATION_ACTION
from app.services.streak_policy import policy_from_settings


router = APIRouter()


@router.get("/notifications/config", response_model=NotificationsConfigResponse, tags=["notifications"])
def get_notifications_config(request: Request) -> NotificationsConfigResponse:
    """Describe which engine events notify and through which provider."""
    request_id = getattr(request.state, "request_id", None)
    policy = policy_from_settings(settings)
    metadata = {"provider": settings.notifications_provider, "enabled": settings.notifications_enabled}
    with trace("notifications.config", metadata=metadata, request_id=request_id):
        log_metric("notifications.config.success", 1, metadata={"provider": settings.notifications_provider})
        return NotificationsConfigResponse(
            enabled=settings.notifications_enabled,
            provider=settings.notifications_provider,
            delivery="after_commit",
            events=[
                NotificationEventConfig(
                    trigger=MILESTONE_ACTION,
                    records=NOTIFICATION_ACTION,
                    thresholds=sorted(policy.milestone_thresholds),
                )
            ],
            request_id=request_id or "",
        )
