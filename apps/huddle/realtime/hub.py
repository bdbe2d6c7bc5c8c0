"""Realtime hub: wires admission, registry, liveness and fan-out together.

A session's life is ``connect`` -> (``join-user-room``) -> ``disconnect``.
Every exit path (admission rejection, auth timeout, duplicate login, logout,
transport close, sweep reaping) goes through ``disconnect`` so timers are torn
down and the registry entry is dropped exactly once.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from huddle.core.settings import DuplicateSessionPolicy, Settings
from huddle.realtime.admission import (
    REASON_DUPLICATE,
    REASON_REPLACED,
    AdmissionController,
    ConnectionRejected,
)
from huddle.realtime.fanout import NotificationFanout
from huddle.realtime.liveness import LivenessMonitor
from huddle.realtime.registry import BindResult, BindStatus, SessionRegistry
from huddle.realtime.session import RealtimeSession, team_room
from huddle.realtime.transport import (
    CLOSE_GOING_AWAY,
    CLOSE_NORMAL,
    CLOSE_POLICY_VIOLATION,
    Transport,
)

logger = logging.getLogger(__name__)

EVENT_REJECTED = "connection:rejected"


@dataclass(frozen=True)
class RealtimeConfig:
    max_total_connections: int = 100
    max_anonymous_connections: int = 10
    auth_timeout_seconds: float = 30.0
    heartbeat_interval_seconds: float = 25.0
    sweep_interval_seconds: float = 60.0
    max_missed_heartbeats: int = 0
    duplicate_session_policy: DuplicateSessionPolicy = DuplicateSessionPolicy.reject_new

    @classmethod
    def from_settings(cls, settings: Settings) -> "RealtimeConfig":
        return cls(
            max_total_connections=settings.max_total_connections,
            max_anonymous_connections=settings.max_anonymous_connections,
            auth_timeout_seconds=settings.auth_timeout_seconds,
            heartbeat_interval_seconds=settings.heartbeat_interval_seconds,
            sweep_interval_seconds=settings.sweep_interval_seconds,
            max_missed_heartbeats=settings.max_missed_heartbeats,
            duplicate_session_policy=settings.duplicate_session_policy,
        )


def _coerce_id(data: Any, *keys: str) -> str | None:
    """Accept a bare id or an object carrying it under one of `keys`."""
    if isinstance(data, dict):
        for key in keys:
            if data.get(key) is not None:
                data = data[key]
                break
        else:
            return None
    if isinstance(data, (str, int)) and not isinstance(data, bool):
        value = str(data).strip()
        return value or None
    return None


class RealtimeHub:
    def __init__(
        self,
        config: RealtimeConfig | None = None,
        *,
        registry: SessionRegistry | None = None,
    ) -> None:
        self.config = config or RealtimeConfig()
        self.registry = registry or SessionRegistry(policy=self.config.duplicate_session_policy)
        self.admission = AdmissionController(
            max_total_connections=self.config.max_total_connections,
            max_anonymous_connections=self.config.max_anonymous_connections,
            auth_timeout_seconds=self.config.auth_timeout_seconds,
        )
        self.liveness = LivenessMonitor(
            self.registry,
            heartbeat_interval_seconds=self.config.heartbeat_interval_seconds,
            sweep_interval_seconds=self.config.sweep_interval_seconds,
            max_missed_heartbeats=self.config.max_missed_heartbeats,
            on_reap=self.disconnect,
        )
        self.fanout = NotificationFanout(self.registry)
        self._handlers: dict[str, Callable[[RealtimeSession, Any], Awaitable[Any]]] = {
            "join-user-room": self.join_user_room,
            "pong": self.pong,
            "join-team-room": self.join_team_room,
            "leave-team-room": self.leave_team_room,
        }

    # Lifecycle

    async def start(self) -> None:
        self.liveness.start()
        logger.info(
            "Realtime hub started (max=%d, anonymous=%d, policy=%s)",
            self.config.max_total_connections,
            self.config.max_anonymous_connections,
            self.config.duplicate_session_policy.value,
        )

    async def stop(self) -> None:
        await self.liveness.stop()
        for session in self.registry.sessions():
            await self._close(session, CLOSE_GOING_AWAY, "Server shutting down")
            await self.disconnect(session)
        logger.info("Realtime hub stopped")

    # Connection flow

    async def connect(self, transport: Transport) -> RealtimeSession | None:
        """Admit a freshly opened transport; returns None when it was rejected."""
        session = RealtimeSession(transport=transport)
        await self.registry.register(session)
        rejection = self.admission.check(self.registry.stats())
        if rejection is not None:
            await self.reject(session, rejection)
            return None
        self.admission.start_grace_timer(session, self._on_auth_timeout)
        logger.debug("Session %s connected", session.id)
        return session

    async def handle(self, session: RealtimeSession, event: str, data: Any = None) -> Any:
        if session.is_terminated:
            return None
        handler = self._handlers.get(event)
        if handler is None:
            logger.debug("Ignoring unknown event %r from session %s", event, session.id)
            return None
        return await handler(session, data)

    async def join_user_room(self, session: RealtimeSession, data: Any) -> BindResult | None:
        user_id = _coerce_id(data, "userId", "user_id")
        if user_id is None:
            logger.warning("Session %s sent join-user-room without a user id", session.id)
            return None

        self.admission.cancel_grace_timer(session)
        result = await self.registry.bind(session.id, user_id)

        if result.status == BindStatus.rejected:
            logger.warning(
                "User %s already bound to session %s; rejecting session %s",
                user_id,
                result.existing_session_id,
                session.id,
            )
            await self.reject(session, ConnectionRejected(REASON_DUPLICATE, {"userId": user_id}))
            return result
        if result.status == BindStatus.unknown_session:
            return result

        if result.evicted is not None:
            logger.info("Evicting session %s for user %s", result.evicted.id, user_id)
            await self.reject(
                result.evicted, ConnectionRejected(REASON_REPLACED, {"userId": user_id})
            )

        self.liveness.track(session)
        logger.info("User %s bound to session %s", user_id, session.id)
        return result

    async def pong(self, session: RealtimeSession, _data: Any = None) -> None:
        self.liveness.record_pong(session)

    async def join_team_room(self, session: RealtimeSession, data: Any) -> bool:
        team_id = _coerce_id(data, "teamId", "team_id")
        if team_id is None or not session.is_bound:
            return False
        return await self.registry.join_room(session.id, team_room(team_id))

    async def leave_team_room(self, session: RealtimeSession, data: Any) -> bool:
        team_id = _coerce_id(data, "teamId", "team_id")
        if team_id is None or not session.is_bound:
            return False
        return await self.registry.leave_room(session.id, team_room(team_id))

    async def unbind(self, session: RealtimeSession) -> bool:
        """Release the user binding but keep the connection open.

        The session is anonymous again: heartbeats stop and it must rejoin
        within the grace period.
        """
        if not await self.registry.unbind(session.id):
            return False
        self.liveness.untrack(session)
        self.admission.start_grace_timer(session, self._on_auth_timeout)
        logger.info("Session %s unbound, awaiting a new join", session.id)
        return True

    async def disconnect(self, session: RealtimeSession) -> None:
        """Tear down timers and forget the session; idempotent."""
        self.admission.cancel_grace_timer(session)
        self.liveness.untrack(session)
        removed = await self.registry.discard(session.id)
        if removed is not None:
            logger.info(
                "Session %s disconnected (user=%s, active=%d)",
                session.id,
                session.user_id,
                len(self.registry),
            )

    async def reject(self, session: RealtimeSession, rejection: ConnectionRejected) -> None:
        """Send one ``connection:rejected`` event, close the transport, forget the session."""
        logger.warning("Rejecting session %s: %s", session.id, rejection.reason)
        try:
            try:
                await session.emit(EVENT_REJECTED, rejection.payload())
            except Exception as exc:  # noqa: BLE001 - the peer may already be gone
                logger.debug("Could not deliver rejection to %s: %s", session.id, exc)
            await self._close(session, CLOSE_POLICY_VIOLATION, rejection.reason)
        finally:
            await self.disconnect(session)

    async def logout(self, user_id: str) -> bool:
        """Close the user's live session, if any (explicit logout)."""
        session = self.registry.session_for_user(user_id)
        if session is None:
            return False
        await self._close(session, CLOSE_NORMAL, "Logged out")
        await self.disconnect(session)
        logger.info("User %s logged out, connection cleaned up", user_id)
        return True

    async def _on_auth_timeout(self, session: RealtimeSession) -> None:
        await self.reject(session, self.admission.auth_timeout_rejection(session))

    async def _close(self, session: RealtimeSession, code: int, reason: str) -> None:
        try:
            await session.transport.close(code, reason)
        except Exception as exc:  # noqa: BLE001 - closing a dead transport is fine
            logger.debug("Closing session %s failed: %s", session.id, exc)

    # Introspection

    def is_user_connected(self, user_id: str) -> bool:
        return self.registry.is_user_connected(user_id)

    def status(self) -> dict[str, Any]:
        stats = self.registry.stats()
        user_connections = self.registry.user_connections()
        # Sessions claiming a user without holding that user's binding.
        duplicates = sum(
            1
            for session in self.registry.sessions()
            if session.user_id is not None and user_connections.get(session.user_id) != session.id
        )
        return {
            "connected_sockets": stats.total,
            "rooms": self.registry.rooms(),
            "total_sockets": stats.total,
            "user_connections": user_connections,
            "active_users": list(user_connections),
            "connection_stats": {
                "total_sockets": stats.total,
                "unique_users": len(user_connections),
                "duplicate_connections": duplicates,
            },
        }


__all__ = ["EVENT_REJECTED", "RealtimeConfig", "RealtimeHub"]
