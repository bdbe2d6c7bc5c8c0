"""Live fan-out of event notifications.

Delivery is fire-and-forget over the recipient's live session: no queueing,
no retries, and a missing or broken session is logged and skipped, never
raised. Durable records are a separate concern (see ``NotificationLedger``).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Any

from huddle.realtime.registry import SessionRegistry
from huddle.realtime.session import RealtimeSession, team_room

logger = logging.getLogger(__name__)

CHANNEL_CREATED = "channel:created"
CHANNEL_UPDATED = "channel:updated"
CHANNEL_DELETED = "channel:deleted"
CHANNEL_MEMBER_JOINED = "channel:member-joined"


class NotificationFanout:
    def __init__(self, registry: SessionRegistry) -> None:
        self.registry = registry

    async def notify_user(self, user_id: str, event: str, payload: Any = None) -> bool:
        """Deliver to the user's live session; returns False when nothing was sent."""
        session = self.registry.session_for_user(user_id)
        if session is None or session.is_terminated:
            logger.info("User %s not connected, skipping notification: %s", user_id, event)
            return False
        delivered = await self._deliver(session, event, payload)
        if delivered:
            logger.debug("Notification sent to user %s: %s", user_id, event)
        return delivered

    async def notify_users(self, user_ids: Iterable[str], event: str, payload: Any = None) -> int:
        """At most one delivery per distinct user; returns how many were reached."""
        delivered = 0
        for user_id in dict.fromkeys(str(uid) for uid in user_ids):
            if await self.notify_user(user_id, event, payload):
                delivered += 1
        return delivered

    async def notify_room(self, room: str, event: str, payload: Any = None) -> int:
        delivered = 0
        for session in self.registry.room_members(room):
            if await self._deliver(session, event, payload):
                delivered += 1
        return delivered

    async def notify_team_room(self, team_id: str, event: str, payload: Any = None) -> int:
        return await self.notify_room(team_room(team_id), event, payload)

    # Channel events broadcast to everyone watching the team.

    async def emit_channel_created(self, team_id: str, channel: dict[str, Any]) -> int:
        return await self.notify_team_room(
            team_id, CHANNEL_CREATED, {"teamId": team_id, "channel": channel}
        )

    async def emit_channel_updated(self, team_id: str, channel: dict[str, Any]) -> int:
        return await self.notify_team_room(
            team_id, CHANNEL_UPDATED, {"teamId": team_id, "channel": channel}
        )

    async def emit_channel_deleted(self, team_id: str, channel_id: str) -> int:
        return await self.notify_team_room(
            team_id, CHANNEL_DELETED, {"teamId": team_id, "channelId": channel_id}
        )

    async def emit_channel_member_joined(
        self, team_id: str, channel: dict[str, Any], user_id: str
    ) -> int:
        return await self.notify_team_room(
            team_id,
            CHANNEL_MEMBER_JOINED,
            {"teamId": team_id, "channel": channel, "userId": user_id},
        )

    async def _deliver(self, session: RealtimeSession, event: str, payload: Any) -> bool:
        try:
            await session.emit(event, payload)
        except Exception as exc:  # noqa: BLE001 - delivery never fails the caller
            logger.warning("Delivery of %s to session %s failed: %s", event, session.id, exc)
            return False
        return True


__all__ = [
    "CHANNEL_CREATED",
    "CHANNEL_DELETED",
    "CHANNEL_MEMBER_JOINED",
    "CHANNEL_UPDATED",
    "NotificationFanout",
]
