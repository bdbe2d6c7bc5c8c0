"""Connection admission: capacity ceilings and the authentication grace period."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from huddle.realtime.registry import RegistryStats
from huddle.realtime.session import RealtimeSession

logger = logging.getLogger(__name__)

REASON_CAPACITY = "Server connection limit exceeded"
REASON_ANONYMOUS = "Too many anonymous connections, please authenticate first"
REASON_AUTH_TIMEOUT = "Authentication timeout - user must join a room within {seconds:g} seconds"
REASON_DUPLICATE = "User already connected from another location"
REASON_REPLACED = "Session replaced by a new connection from another location"


@dataclass(frozen=True)
class ConnectionRejected:
    """Structured reason sent with the ``connection:rejected`` event before closing."""

    reason: str
    context: dict[str, Any] = field(default_factory=dict)

    def payload(self) -> dict[str, Any]:
        return {"reason": self.reason, **self.context}


class AdmissionController:
    def __init__(
        self,
        *,
        max_total_connections: int = 100,
        max_anonymous_connections: int = 10,
        auth_timeout_seconds: float = 30.0,
    ) -> None:
        self.max_total_connections = max_total_connections
        self.max_anonymous_connections = max_anonymous_connections
        self.auth_timeout_seconds = auth_timeout_seconds

    def check(self, stats: RegistryStats) -> ConnectionRejected | None:
        """Evaluate capacity with the candidate session already counted in `stats`."""
        if stats.total > self.max_total_connections:
            return ConnectionRejected(
                REASON_CAPACITY, {"maxConnections": self.max_total_connections}
            )
        if stats.anonymous > self.max_anonymous_connections:
            return ConnectionRejected(
                REASON_ANONYMOUS, {"maxAnonymousConnections": self.max_anonymous_connections}
            )
        return None

    def auth_timeout_rejection(self, session: RealtimeSession) -> ConnectionRejected:
        return ConnectionRejected(
            REASON_AUTH_TIMEOUT.format(seconds=self.auth_timeout_seconds),
            {"socketId": session.id},
        )

    def start_grace_timer(
        self,
        session: RealtimeSession,
        on_expire: Callable[[RealtimeSession], Awaitable[None]],
    ) -> asyncio.Task:
        """Schedule `on_expire` unless the session binds within the grace period."""
        self.cancel_grace_timer(session)

        async def _expire() -> None:
            await asyncio.sleep(self.auth_timeout_seconds)
            if session.is_bound or session.is_terminated:
                return
            logger.info("Session %s did not authenticate in time", session.id)
            await on_expire(session)

        session.auth_timer = asyncio.create_task(_expire(), name=f"auth-timeout:{session.id}")
        return session.auth_timer

    def cancel_grace_timer(self, session: RealtimeSession) -> bool:
        """Cancel the pending grace timer; safe to call any number of times."""
        timer, session.auth_timer = session.auth_timer, None
        if timer is None or timer.done() or timer is asyncio.current_task():
            return False
        timer.cancel()
        return True


__all__ = [
    "AdmissionController",
    "ConnectionRejected",
    "REASON_ANONYMOUS",
    "REASON_AUTH_TIMEOUT",
    "REASON_CAPACITY",
    "REASON_DUPLICATE",
    "REASON_REPLACED",
]
