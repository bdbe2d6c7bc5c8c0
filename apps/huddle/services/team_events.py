"""Team/channel membership events -> durable record + live push.

Business operations (removing a member, adding someone to a channel, ...) call
into this notifier after they succeed. Persisting the notification and pushing
it live are independent: a database failure is logged and reported in the
outcome, and an offline recipient simply is not pushed to. Neither ever raises
back into the business operation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from huddle.core.utils import utcnow
from huddle.models.notification import Notification
from huddle.realtime.fanout import NotificationFanout
from huddle.schemas.notifications import NotificationOut
from huddle.services.notification_ledger import NotificationLedger

logger = logging.getLogger(__name__)

TEAM_REMOVED = "team:removed"
TEAM_WELCOME = "team:welcome"
TEAM_ADDED = "team:added"
TEAM_UPDATED = "team:updated"
TEAM_DELETED = "team:deleted"
USER_ADDED_TO_CHANNEL = "channel:user-added"


@dataclass(frozen=True)
class NotifyOutcome:
    persisted: bool
    delivered: int
    notification_id: int | None = None


@dataclass
class TeamEventNotifier:
    ledger: NotificationLedger
    fanout: NotificationFanout

    async def member_removed(self, user_id: str, team_id: str, team_name: str) -> NotifyOutcome:
        notification = await self._persist(
            "team removal", lambda: self.ledger.record_team_removal(user_id, team_id, team_name)
        )
        payload = self._payload(
            notification,
            teamId=team_id,
            teamName=team_name,
            message=f"You have been removed from '{team_name}'",
        )
        delivered = await self.fanout.notify_user(user_id, TEAM_REMOVED, payload)
        return self._outcome(notification, int(delivered))

    async def member_rejoined(self, user_id: str, team_id: str, team_name: str) -> NotifyOutcome:
        """Resolve an earlier removal notice and welcome the user back."""
        notification = await self._persist(
            "team removal resolve", lambda: self.ledger.resolve_team_removal(user_id, team_id)
        )
        payload = self._payload(
            notification,
            teamId=team_id,
            teamName=team_name,
            message=f"Welcome to '{team_name}'!",
        )
        delivered = await self.fanout.notify_user(user_id, TEAM_WELCOME, payload)
        return self._outcome(notification, int(delivered))

    async def member_invited(
        self,
        user_id: str,
        team_id: str,
        team_name: str,
        *,
        invited_by: str | None = None,
    ) -> NotifyOutcome:
        notification = await self._persist(
            "team invite",
            lambda: self.ledger.record_team_invite(
                user_id, team_id, team_name, invited_by=invited_by
            ),
        )
        payload = self._payload(
            notification,
            teamId=team_id,
            teamName=team_name,
            invitedBy=invited_by,
            message=f"You have been added to '{team_name}'",
        )
        delivered = await self.fanout.notify_user(user_id, TEAM_ADDED, payload)
        return self._outcome(notification, int(delivered))

    async def team_updated(
        self,
        member_ids: Iterable[str],
        team_id: str,
        team_name: str,
        *,
        changed_fields: list[str] | None = None,
        updated_by: str | None = None,
    ) -> NotifyOutcome:
        """Record and push an update to every member except the one who made it."""
        recipients = [uid for uid in dict.fromkeys(member_ids) if uid != updated_by]
        persisted = 0
        for user_id in recipients:
            row = await self._persist(
                "team update",
                lambda uid=user_id: self.ledger.record_team_update(
                    uid, team_id, team_name, changed_fields=changed_fields
                ),
            )
            persisted += row is not None
        payload = {
            "teamId": team_id,
            "teamName": team_name,
            "updatedFields": list(changed_fields or []),
            "updatedBy": updated_by,
            "message": f"'{team_name}' was updated",
            "timestamp": utcnow().isoformat(),
        }
        delivered = await self.fanout.notify_users(recipients, TEAM_UPDATED, payload)
        return NotifyOutcome(persisted=persisted == len(recipients), delivered=delivered)

    async def team_deleted(
        self, member_ids: Iterable[str], team_id: str, team_name: str
    ) -> NotifyOutcome:
        """Live-only: the team is gone, so there is nothing to keep a record about."""
        payload = {
            "teamId": team_id,
            "teamName": team_name,
            "message": f"Team '{team_name}' has been deleted",
            "timestamp": utcnow().isoformat(),
            "type": "team_deleted",
        }
        delivered = await self.fanout.notify_users(member_ids, TEAM_DELETED, payload)
        return NotifyOutcome(persisted=False, delivered=delivered)

    async def channel_member_added(
        self,
        user_id: str,
        *,
        team_id: str,
        channel: dict[str, Any],
    ) -> NotifyOutcome:
        channel_id = str(channel.get("id") or channel.get("_id") or "")
        channel_name = str(channel.get("name") or channel_id)
        notification = await self._persist(
            "channel member",
            lambda: self.ledger.record_channel_member_added(
                user_id, team_id=team_id, channel_id=channel_id, channel_name=channel_name
            ),
        )
        payload = self._payload(notification, teamId=team_id, channel=channel)
        delivered = int(await self.fanout.notify_user(user_id, USER_ADDED_TO_CHANNEL, payload))
        delivered += await self.fanout.emit_channel_member_joined(team_id, channel, user_id)
        return self._outcome(notification, delivered)

    async def _persist(
        self, label: str, record: Callable[[], Notification | None]
    ) -> Notification | None:
        try:
            return await run_in_threadpool(record)
        except (SQLAlchemyError, LookupError):
            logger.exception("Failed to persist %s notification", label)
            self.ledger.store.session.rollback()
            return None

    @staticmethod
    def _payload(notification: Notification | None, **fields: Any) -> dict[str, Any]:
        payload = {key: value for key, value in fields.items() if value is not None}
        payload["timestamp"] = utcnow().isoformat()
        if notification is not None:
            payload["notification"] = NotificationOut.model_validate(notification).model_dump(
                mode="json"
            )
        return payload

    @staticmethod
    def _outcome(notification: Notification | None, delivered: int) -> NotifyOutcome:
        return NotifyOutcome(
            persisted=notification is not None,
            delivered=delivered,
            notification_id=notification.id if notification is not None else None,
        )


__all__ = [
    "NotifyOutcome",
    "TEAM_ADDED",
    "TEAM_DELETED",
    "TEAM_REMOVED",
    "TEAM_UPDATED",
    "TEAM_WELCOME",
    "TeamEventNotifier",
    "USER_ADDED_TO_CHANNEL",
]
