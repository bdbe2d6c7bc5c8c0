from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from huddle.core.utils import utcnow
from huddle.realtime.transport import Transport


class SessionState(str, Enum):
    connected = "connected"
    bound = "bound"
    terminated = "terminated"


def user_room(user_id: str) -> str:
    return f"user-{user_id}"


def team_room(team_id: str) -> str:
    return f"team:{team_id}"


@dataclass(eq=False)
class RealtimeSession:
    """One live transport connection and its bookkeeping.

    State only moves forward: connected -> bound -> terminated, or straight to
    terminated. Timer handles are owned by the admission controller and the
    liveness monitor respectively.
    """

    transport: Transport
    user_id: str | None = None
    state: SessionState = SessionState.connected
    created_at: datetime = field(default_factory=utcnow)
    last_heartbeat_at: datetime | None = None
    rooms: set[str] = field(default_factory=set)
    auth_timer: asyncio.Task | None = field(default=None, repr=False)
    heartbeat_task: asyncio.Task | None = field(default=None, repr=False)
    _send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    @property
    def id(self) -> str:
        return self.transport.transport_id

    @property
    def is_bound(self) -> bool:
        return self.state == SessionState.bound

    @property
    def is_terminated(self) -> bool:
        return self.state == SessionState.terminated

    def bind_to(self, user_id: str) -> None:
        if self.is_terminated:
            raise RuntimeError(f"Session {self.id} is terminated")
        self.user_id = user_id
        self.state = SessionState.bound

    def release(self) -> None:
        """Drop the user identity and fall back to the unbound state."""
        if self.is_terminated:
            return
        self.user_id = None
        self.state = SessionState.connected

    def terminate(self) -> bool:
        """Move to the absorbing terminated state; False if already there."""
        if self.is_terminated:
            return False
        self.state = SessionState.terminated
        return True

    def silent_for(self, now: datetime | None = None) -> float:
        """Seconds since the last heartbeat answer (or since connect)."""
        reference = self.last_heartbeat_at or self.created_at
        return ((now or utcnow()) - reference).total_seconds()

    async def emit(self, event: str, data: Any = None) -> None:
        # One writer at a time keeps per-session delivery in call order.
        async with self._send_lock:
            await self.transport.send(event, data)


__all__ = ["RealtimeSession", "SessionState", "team_room", "user_room"]
