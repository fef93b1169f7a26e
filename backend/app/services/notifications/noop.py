"""No-op notification provider (logs only)."""
from __future__ import annotations

import logging
from uuid import UUID

from app.services.notifications.base import NotificationResult, NotificationService


logger = logging.getLogger(__name__)


class NoopNotificationService(NotificationService):
    def notify_milestone_achieved(
        self,
        *,
        user_id: int,
        habit_id: UUID,
        milestone_days: int,
        request_id: str | None,
    ) -> NotificationResult:
        logger.info(
            "Notification queued (noop) milestone user=%s habit=%s days=%s",
            user_id,
            habit_id,
            milestone_days,
        )
        return NotificationResult(status="noop", reason="notification provider is noop")
