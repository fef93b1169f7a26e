"""Notification service interface."""
from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass
class NotificationResult:
    status: str
    reason: str


class NotificationService:
    """Base interface for notification providers."""

    def notify_milestone_achieved(
        self,
        *,
        user_id: int,
        habit_id: UUID,
        milestone_days: int,
        request_id: str | None,
    ) -> NotificationResult:
        raise NotImplementedError
