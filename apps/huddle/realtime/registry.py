"""Process-local session registry.

Maps user ids to their single live session and tracks every live session
(bound or not) plus room membership. All mutations run under one
``asyncio.Lock`` so two binds for the same user can never both win; reads are
plain dict lookups on the event loop thread.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from dataclasses import dataclass
from enum import Enum

from huddle.core.settings import DuplicateSessionPolicy
from huddle.realtime.session import RealtimeSession, user_room

logger = logging.getLogger(__name__)


class BindStatus(str, Enum):
    bound = "bound"
    rejected = "rejected"
    evicted = "evicted"
    unknown_session = "unknown_session"


@dataclass(frozen=True)
class BindResult:
    status: BindStatus
    session: RealtimeSession | None = None
    existing_session_id: str | None = None
    evicted: RealtimeSession | None = None

    @property
    def ok(self) -> bool:
        return self.status in {BindStatus.bound, BindStatus.evicted}


@dataclass(frozen=True)
class RegistryStats:
    total: int
    authenticated: int

    @property
    def anonymous(self) -> int:
        return self.total - self.authenticated


class SessionRegistry:
    def __init__(
        self, *, policy: DuplicateSessionPolicy = DuplicateSessionPolicy.reject_new
    ) -> None:
        self.policy = policy
        self._lock = asyncio.Lock()
        self._sessions: dict[str, RealtimeSession] = {}
        self._users: dict[str, str] = {}
        self._rooms: dict[str, set[str]] = defaultdict(set)

    # Mutations

    async def register(self, session: RealtimeSession) -> None:
        async with self._lock:
            self._sessions[session.id] = session

    async def bind(self, session_id: str, user_id: str) -> BindResult:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.is_terminated:
                return BindResult(BindStatus.unknown_session)

            evicted: RealtimeSession | None = None
            existing_id = self._users.get(user_id)
            if existing_id is not None and existing_id != session_id:
                if self.policy == DuplicateSessionPolicy.reject_new:
                    return BindResult(
                        BindStatus.rejected, session=session, existing_session_id=existing_id
                    )
                evicted = self._drop_locked(existing_id)

            # Switching identity on the same connection releases the old binding.
            if session.user_id is not None and session.user_id != user_id:
                self._release_user_locked(session)

            self._users[user_id] = session_id
            session.bind_to(user_id)
            self._join_locked(session, user_room(user_id))

        status = BindStatus.evicted if evicted is not None else BindStatus.bound
        return BindResult(status, session=session, existing_session_id=existing_id, evicted=evicted)

    async def unbind(self, session_id: str) -> bool:
        """Drop the user binding held by `session_id`; no-op when absent."""
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            if not self._release_user_locked(session):
                return False
            self._unbind_session_locked(session)
            return True

    async def unbind_user(self, user_id: str) -> RealtimeSession | None:
        async with self._lock:
            session_id = self._users.get(user_id)
            if session_id is None:
                return None
            session = self._sessions.get(session_id)
            if session is None:
                self._users.pop(user_id, None)
                return None
            self._release_user_locked(session)
            self._unbind_session_locked(session)
            return session

    async def discard(self, session_id: str) -> RealtimeSession | None:
        """Remove a session entirely and mark it terminated; idempotent."""
        async with self._lock:
            return self._drop_locked(session_id)

    async def join_room(self, session_id: str, room: str) -> bool:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None or session.is_terminated:
                return False
            self._join_locked(session, room)
            return True

    async def leave_room(self, session_id: str, room: str) -> bool:
        async with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                return False
            return self._leave_locked(session, room)

    # Reads

    def get(self, session_id: str) -> RealtimeSession | None:
        return self._sessions.get(session_id)

    def is_user_connected(self, user_id: str) -> bool:
        return user_id in self._users

    def session_for(self, user_id: str) -> str | None:
        return self._users.get(user_id)

    def session_for_user(self, user_id: str) -> RealtimeSession | None:
        session_id = self._users.get(user_id)
        return self._sessions.get(session_id) if session_id is not None else None

    def sessions(self) -> list[RealtimeSession]:
        return list(self._sessions.values())

    def bound_sessions(self) -> list[tuple[str, RealtimeSession]]:
        return [
            (user_id, self._sessions[session_id])
            for user_id, session_id in self._users.items()
            if session_id in self._sessions
        ]

    def user_connections(self) -> dict[str, str]:
        return dict(self._users)

    def room_members(self, room: str) -> list[RealtimeSession]:
        return [self._sessions[sid] for sid in self._rooms.get(room, ()) if sid in self._sessions]

    def rooms(self) -> list[str]:
        return sorted(name for name, members in self._rooms.items() if members)

    def stats(self) -> RegistryStats:
        return RegistryStats(total=len(self._sessions), authenticated=len(self._users))

    def __len__(self) -> int:
        return len(self._sessions)

    # Lock-held helpers

    def _join_locked(self, session: RealtimeSession, room: str) -> None:
        self._rooms[room].add(session.id)
        session.rooms.add(room)

    def _leave_locked(self, session: RealtimeSession, room: str) -> bool:
        members = self._rooms.get(room)
        session.rooms.discard(room)
        if not members or session.id not in members:
            return False
        members.discard(session.id)
        if not members:
            self._rooms.pop(room, None)
        return True

    def _release_user_locked(self, session: RealtimeSession) -> bool:
        user_id = session.user_id
        if user_id is None or self._users.get(user_id) != session.id:
            return False
        self._users.pop(user_id, None)
        self._leave_locked(session, user_room(user_id))
        return True

    def _unbind_session_locked(self, session: RealtimeSession) -> None:
        # Rooms are only open to bound sessions.
        for room in list(session.rooms):
            self._leave_locked(session, room)
        session.release()

    def _drop_locked(self, session_id: str) -> RealtimeSession | None:
        session = self._sessions.pop(session_id, None)
        if session is None:
            return None
        self._release_user_locked(session)
        for room in list(session.rooms):
            self._leave_locked(session, room)
        session.terminate()
        return session


__all__ = ["BindResult", "BindStatus", "RegistryStats", "SessionRegistry"]
