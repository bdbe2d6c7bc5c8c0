"""Deduplicating notification ledger.

Every notification-worthy action is fingerprinted as an *action hash*
(``"<kind>:<user>:<target>"``). Recording the same action again folds into the
existing live row: display text is refreshed, the occurrence counter goes up,
and the row is surfaced as unread. Two writers racing on the first occurrence
are settled by the partial unique index on ``(user_id, action_hash)``; the
loser rolls back and applies the repeat-occurrence update instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy.exc import IntegrityError

from huddle.core.utils import utcnow_naive
from huddle.models.notification import (
    RESOLVABLE_TYPES,
    Notification,
    NotificationSeverity,
    NotificationType,
)
from huddle.services.notification_store import NotificationStore

logger = logging.getLogger(__name__)


def action_hash(kind: NotificationType | str, user_id: str, target_id: str) -> str:
    """Deterministic fingerprint for "this kind of event happened to this user for this target"."""
    kind_value = kind.value if isinstance(kind, NotificationType) else str(kind)
    return f"{kind_value}:{user_id}:{target_id}"


@dataclass
class NotificationDraft:
    """Display fields for a notification; applied on create and refreshed on repeat."""

    type: NotificationType
    title: str
    message: str
    severity: NotificationSeverity = NotificationSeverity.info
    team_id: str | None = None
    team_name: str | None = None
    channel_id: str | None = None
    channel_name: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def create_fields(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
            "team_id": self.team_id,
            "team_name": self.team_name,
            "channel_id": self.channel_id,
            "channel_name": self.channel_name,
            "metadata_json": dict(self.metadata),
        }

    def refresh_fields(self) -> dict[str, Any]:
        # Names can change between occurrences (e.g. a renamed team).
        fields: dict[str, Any] = {"title": self.title, "message": self.message}
        if self.team_name is not None:
            fields["team_name"] = self.team_name
        if self.channel_name is not None:
            fields["channel_name"] = self.channel_name
        return fields


@dataclass
class NotificationLedger:
    """Create-or-update contract over the notification store."""

    store: NotificationStore

    def record_occurrence(
        self, user_id: str, action_hash: str, draft: NotificationDraft
    ) -> Notification:
        existing = self.store.find_by_action_hash(action_hash, user_id=user_id)
        if existing is not None:
            return self._repeat(existing, draft)

        try:
            created = self.store.create(
                user_id=user_id,
                action_hash=action_hash,
                occurrence_count=1,
                last_occurrence=utcnow_naive(),
                **draft.create_fields(),
            )
        except IntegrityError:
            self.store.session.rollback()
            existing = self.store.find_by_action_hash(action_hash, user_id=user_id)
            if existing is None:
                raise
            logger.info(
                "Concurrent first occurrence for %s collapsed into #%s", action_hash, existing.id
            )
            return self._repeat(existing, draft)

        logger.debug("Recorded notification #%s (%s) for user %s", created.id, action_hash, user_id)
        return created

    def _repeat(self, existing: Notification, draft: NotificationDraft) -> Notification:
        updated = self.store.increment_occurrence(
            existing.id or 0,
            is_read=False,
            is_resolved=False,
            resolved_at=None,
            **draft.refresh_fields(),
        )
        if updated is None:  # row vanished between find and update
            raise LookupError(f"Notification {existing.id} disappeared during update")
        logger.debug(
            "Notification #%s repeated (%s occurrences)", updated.id, updated.occurrence_count
        )
        return updated

    def resolve(self, user_id: str, action_hash: str) -> Notification | None:
        """Mark a resolvable notification as resolved; keeps read state untouched."""
        notification = self.store.find_by_action_hash(action_hash, user_id=user_id)
        if notification is None:
            return None
        if notification.type not in RESOLVABLE_TYPES:
            logger.debug("Ignoring resolve for non-resolvable notification %s", action_hash)
            return notification
        if notification.is_resolved:
            return notification
        return self.store.update(notification, is_resolved=True, resolved_at=utcnow_naive())

    # Typed actions

    def record_team_removal(self, user_id: str, team_id: str, team_name: str) -> Notification:
        return self.record_occurrence(
            user_id,
            action_hash(NotificationType.team_removal, user_id, team_id),
            NotificationDraft(
                type=NotificationType.team_removal,
                title="Removed from Team",
                message=f"You have been removed from '{team_name}'",
                severity=NotificationSeverity.warning,
                team_id=team_id,
                team_name=team_name,
            ),
        )

    def resolve_team_removal(self, user_id: str, team_id: str) -> Notification | None:
        return self.resolve(user_id, action_hash(NotificationType.team_removal, user_id, team_id))

    def record_team_invite(
        self, user_id: str, team_id: str, team_name: str, *, invited_by: str | None = None
    ) -> Notification:
        metadata = {"invited_by": invited_by} if invited_by else {}
        return self.record_occurrence(
            user_id,
            action_hash(NotificationType.team_invite, user_id, team_id),
            NotificationDraft(
                type=NotificationType.team_invite,
                title="Added to Team",
                message=f"You have been added to '{team_name}'",
                severity=NotificationSeverity.success,
                team_id=team_id,
                team_name=team_name,
                metadata=metadata,
            ),
        )

    def record_team_update(
        self, user_id: str, team_id: str, team_name: str, *, changed_fields: list[str] | None = None
    ) -> Notification:
        return self.record_occurrence(
            user_id,
            action_hash(NotificationType.team_update, user_id, team_id),
            NotificationDraft(
                type=NotificationType.team_update,
                title="Team Updated",
                message=f"'{team_name}' was updated",
                team_id=team_id,
                team_name=team_name,
                metadata={"changed_fields": list(changed_fields or [])},
            ),
        )

    def record_channel_member_added(
        self,
        user_id: str,
        *,
        team_id: str,
        channel_id: str,
        channel_name: str,
    ) -> Notification:
        return self.record_occurrence(
            user_id,
            action_hash(NotificationType.channel_member_added, user_id, channel_id),
            NotificationDraft(
                type=NotificationType.channel_member_added,
                title="Added to Channel",
                message=f"You have been added to #{channel_name}",
                team_id=team_id,
                channel_id=channel_id,
                channel_name=channel_name,
            ),
        )


__all__ = ["NotificationDraft", "NotificationLedger", "action_hash"]
