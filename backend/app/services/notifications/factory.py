"""Notification service factory."""
from __future__ import annotations

import logging
from functools import lru_cache

from app.core.config import settings
from app.services.notifications.base import NotificationService
from app.services.notifications.noop import NoopNotificationService

logger = logging.getLogger(__name__)


@lru_cache
def get_notification_service() -> NotificationService:
    provider = settings.notifications_provider.lower()
    if provider != "noop":
        logger.warning("Unknown notification provider %r, falling back to noop", provider)
    return NoopNotificationService()
