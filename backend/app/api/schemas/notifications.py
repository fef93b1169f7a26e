"""Schemas for notification configuration."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel


class NotificationEventConfig(BaseModel):
    trigger: str
    records: str
    thresholds: List[int]


class NotificationsConfigResponse(BaseModel):
    enabled: bool
    provider: str
    delivery: str
    events: List[NotificationEventConfig]
    request_id: str
