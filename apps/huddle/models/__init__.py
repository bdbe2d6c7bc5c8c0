"""Convenient exports for writing ORM models (SQLModel)."""

from sqlmodel import Field, SQLModel

from huddle.models.base import Model, TimestampMixin
from huddle.models.notification import (
    RESOLVABLE_TYPES,
    Notification,
    NotificationSeverity,
    NotificationType,
)

__all__ = [
    "Model",
    "TimestampMixin",
    "Notification",
    "NotificationSeverity",
    "NotificationType",
    "RESOLVABLE_TYPES",
    "SQLModel",
    "Field",
]
