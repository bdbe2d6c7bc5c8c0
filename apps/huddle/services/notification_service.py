"""Read/acknowledge operations behind the notifications API."""

from __future__ import annotations

from dataclasses import dataclass

from huddle.core.exceptions import NotificationNotFoundError
from huddle.core.utils import clamp_int
from huddle.models.notification import Notification
from huddle.schemas.notifications import (
    NotificationOut,
    NotificationPage,
    NotificationStats,
    Pagination,
)
from huddle.services.notification_store import NotificationStore

MAX_PAGE_SIZE = 100


@dataclass
class NotificationService:
    store: NotificationStore

    def list_notifications(self, user_id: str, *, page: int = 1, limit: int = 50) -> NotificationPage:
        """Paginated, repeat-aware listing (latest occurrence first)."""

        page = max(1, int(page))
        limit = clamp_int(limit, lo=1, hi=MAX_PAGE_SIZE)
        rows = self.store.list_for_user(user_id, limit=limit, skip=(page - 1) * limit, smart=True)
        return NotificationPage(
            notifications=[NotificationOut.model_validate(row) for row in rows],
            unread_count=self.store.unread_count(user_id),
            pagination=Pagination(
                page=page,
                limit=limit,
                total=len(rows),
                has_more=len(rows) == limit,
            ),
        )

    def stats(self, user_id: str) -> NotificationStats:
        return NotificationStats(
            unread_count=self.store.unread_count(user_id),
            total_count=self.store.total_count(user_id),
        )

    def mark_read(self, notification_id: int, user_id: str) -> Notification:
        notification = self.store.mark_read(notification_id, user_id=user_id)
        if notification is None:
            raise NotificationNotFoundError("Notification not found or access denied")
        return notification

    def mark_all_read(self, user_id: str) -> int:
        return self.store.mark_all_read(user_id)

    def delete(self, notification_id: int, user_id: str) -> Notification:
        notification = self.store.soft_delete(notification_id, user_id=user_id)
        if notification is None:
            raise NotificationNotFoundError("Notification not found or access denied")
        return notification

    def delete_all(self, user_id: str) -> int:
        return self.store.soft_delete_all(user_id)


__all__ = ["MAX_PAGE_SIZE", "NotificationService"]
