"""Persisted, user-visible notifications.

A row represents one *kind* of event that happened to a user about a target
(team, channel). Repeats of the same event collapse into the existing row via
its ``action_hash``; the partial unique index below is the storage-level
guarantee that only one live (non-deleted) row exists per user and hash.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, Boolean, Column, DateTime, Index, Integer, String, Text, text
from sqlmodel import Field

from huddle.core.utils import utcnow_naive
from huddle.models.base import Model


class NotificationType(str, Enum):
    team_removal = "team_removal"
    team_invite = "team_invite"
    team_update = "team_update"
    channel_member_added = "channel_member_added"
    system = "system"
    test = "test"


class NotificationSeverity(str, Enum):
    info = "info"
    success = "success"
    warning = "warning"
    error = "error"


# Kinds whose notification can later be marked resolved by a negating action.
RESOLVABLE_TYPES = frozenset({NotificationType.team_removal.value})


class Notification(Model, table=True):
    __tablename__ = "notifications"
    __table_args__ = (
        Index(
            "uq_notifications_user_action_live",
            "user_id",
            "action_hash",
            unique=True,
            sqlite_where=text("is_deleted = 0"),
            postgresql_where=text("is_deleted = false"),
        ),
        Index("ix_notifications_user_deleted_created", "user_id", "is_deleted", "created_at"),
        Index("ix_notifications_user_read_deleted", "user_id", "is_read", "is_deleted"),
        Index("ix_notifications_action_deleted", "action_hash", "is_deleted"),
    )

    user_id: str = Field(sa_column=Column(String(64), nullable=False, index=True))
    type: str = Field(sa_column=Column(String(32), nullable=False))
    title: str = Field(sa_column=Column(String(255), nullable=False))
    message: str = Field(sa_column=Column(Text, nullable=False))

    team_id: str | None = Field(default=None, sa_column=Column(String(64), nullable=True))
    team_name: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))
    channel_id: str | None = Field(default=None, sa_column=Column(String(64), nullable=True))
    channel_name: str | None = Field(default=None, sa_column=Column(String(255), nullable=True))

    severity: str = Field(
        default=NotificationSeverity.info.value,
        sa_column=Column(String(16), nullable=False),
    )
    is_read: bool = Field(default=False, sa_column=Column(Boolean, nullable=False))
    is_deleted: bool = Field(default=False, sa_column=Column(Boolean, nullable=False))

    action_hash: str = Field(sa_column=Column(String(255), nullable=False))
    occurrence_count: int = Field(default=1, sa_column=Column(Integer, nullable=False))
    last_occurrence: datetime = Field(
        default_factory=utcnow_naive, sa_column=Column(DateTime, nullable=False)
    )

    is_resolved: bool = Field(default=False, sa_column=Column(Boolean, nullable=False))
    resolved_at: datetime | None = Field(default=None, sa_column=Column(DateTime, nullable=True))

    metadata_json: dict = Field(
        default_factory=dict, sa_column=Column("metadata", JSON, nullable=False)
    )

    @property
    def is_repeated(self) -> bool:
        return (self.occurrence_count or 1) > 1

    @property
    def display_message(self) -> str:
        """Message with the repeat count folded in for repeated team removals."""
        if self.type == NotificationType.team_removal.value and self.is_repeated:
            return f"{self.message} ({self.occurrence_count} times)"
        return self.message


__all__ = [
    "RESOLVABLE_TYPES",
    "Notification",
    "NotificationSeverity",
    "NotificationType",
]
