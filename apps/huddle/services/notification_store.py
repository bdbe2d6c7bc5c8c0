"""Persistence access for notifications.

Thin query layer over the ``notifications`` table so the ledger and the API
service never build statements themselves. All reads exclude soft-deleted rows.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import func, update
from sqlmodel import Session, select

from huddle.core.utils import utcnow_naive
from huddle.models.notification import Notification


@dataclass
class NotificationStore:
    """CRUD and bulk state changes for a single database session."""

    session: Session

    def create(self, **fields: Any) -> Notification:
        notification = Notification(**fields)
        self.session.add(notification)
        self.session.commit()
        self.session.refresh(notification)
        return notification

    def get(self, notification_id: int, *, user_id: str) -> Notification | None:
        stmt = select(Notification).where(
            Notification.id == notification_id,
            Notification.user_id == user_id,
            Notification.is_deleted.is_(False),
        )
        return self.session.exec(stmt).first()

    def find_by_action_hash(self, action_hash: str, *, user_id: str) -> Notification | None:
        stmt = select(Notification).where(
            Notification.action_hash == action_hash,
            Notification.user_id == user_id,
            Notification.is_deleted.is_(False),
        )
        return self.session.exec(stmt).first()

    def update(self, notification: Notification, **fields: Any) -> Notification:
        for key, value in fields.items():
            setattr(notification, key, value)
        notification.updated_at = utcnow_naive()
        self.session.add(notification)
        self.session.commit()
        self.session.refresh(notification)
        return notification

    def increment_occurrence(self, notification_id: int, **fields: Any) -> Notification | None:
        """Bump the occurrence counter in SQL so concurrent repeats never lose a count."""
        now = utcnow_naive()
        values = {
            **fields,
            "occurrence_count": Notification.occurrence_count + 1,
            "last_occurrence": now,
            "updated_at": now,
        }
        self.session.execute(
            update(Notification).where(Notification.id == notification_id).values(**values)
        )
        self.session.commit()
        row = self.session.get(Notification, notification_id)
        if row is not None:
            self.session.refresh(row)
        return row

    def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 50,
        skip: int = 0,
        smart: bool = False,
    ) -> list[Notification]:
        """Newest first; `smart` orders by latest occurrence so repeats float up."""
        stmt = select(Notification).where(
            Notification.user_id == user_id,
            Notification.is_deleted.is_(False),
        )
        if smart:
            stmt = stmt.order_by(
                Notification.last_occurrence.desc(), Notification.created_at.desc()
            )
        else:
            stmt = stmt.order_by(Notification.created_at.desc())
        stmt = stmt.offset(skip).limit(limit)
        return list(self.session.exec(stmt))

    def unread_count(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(Notification).where(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
            Notification.is_deleted.is_(False),
        )
        return int(self.session.exec(stmt).one())

    def total_count(self, user_id: str) -> int:
        stmt = select(func.count()).select_from(Notification).where(
            Notification.user_id == user_id,
            Notification.is_deleted.is_(False),
        )
        return int(self.session.exec(stmt).one())

    def mark_read(self, notification_id: int, *, user_id: str) -> Notification | None:
        notification = self.get(notification_id, user_id=user_id)
        if notification is None:
            return None
        return self.update(notification, is_read=True)

    def mark_all_read(self, user_id: str) -> int:
        result = self.session.execute(
            update(Notification)
            .where(
                Notification.user_id == user_id,
                Notification.is_deleted.is_(False),
                Notification.is_read.is_(False),
            )
            .values(is_read=True, updated_at=utcnow_naive())
        )
        self.session.commit()
        return int(result.rowcount or 0)

    def soft_delete(self, notification_id: int, *, user_id: str) -> Notification | None:
        notification = self.get(notification_id, user_id=user_id)
        if notification is None:
            return None
        return self.update(notification, is_deleted=True)

    def soft_delete_all(self, user_id: str) -> int:
        result = self.session.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.is_deleted.is_(False))
            .values(is_deleted=True, updated_at=utcnow_naive())
        )
        self.session.commit()
        return int(result.rowcount or 0)


__all__ = ["NotificationStore"]
