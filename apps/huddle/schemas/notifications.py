from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class NotificationOut(BaseModel):
    id: int
    user_id: str
    type: str
    title: str
    message: str
    display_message: str
    is_repeated: bool
    team_id: str | None = None
    team_name: str | None = None
    channel_id: str | None = None
    channel_name: str | None = None
    severity: str
    is_read: bool
    action_hash: str
    occurrence_count: int
    last_occurrence: datetime
    is_resolved: bool
    resolved_at: datetime | None = None
    metadata: dict[str, Any] = Field(default_factory=dict, validation_alias="metadata_json")
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(from_attributes=True)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    has_more: bool


class NotificationPage(BaseModel):
    notifications: list[NotificationOut]
    unread_count: int
    pagination: Pagination


class NotificationStats(BaseModel):
    unread_count: int
    total_count: int


class BulkResult(BaseModel):
    modified_count: int


class ApiResponse(BaseModel):
    """Envelope shared by the notification endpoints."""

    success: bool = True
    message: str | None = None
    data: Any = None
