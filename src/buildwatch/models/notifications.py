"""Notification models."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel


class NotificationKind(StrEnum):
    FAILED = "failed"
    FIXED = "fixed"


class Notification(BaseModel):
    """A user-facing notification scheduled for a given delivery time."""

    kind: NotificationKind
    project_id: str
    title: str
    body: str = ""
    delivery_time: datetime
