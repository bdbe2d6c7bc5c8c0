"""Heartbeats and the periodic dead-session sweep.

Each bound session gets a ``ping`` every heartbeat interval; ``pong`` answers
only refresh ``last_heartbeat_at``. The sweep reaps sessions whose transport
reports disconnected. Reaping on silence is opt-in through
``max_missed_heartbeats`` (0 keeps transport-only reaping).
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable

from huddle.core.utils import utcnow
from huddle.realtime.registry import SessionRegistry
from huddle.realtime.session import RealtimeSession

logger = logging.getLogger(__name__)

ReapCallback = Callable[[RealtimeSession], Awaitable[None]]


class LivenessMonitor:
    def __init__(
        self,
        registry: SessionRegistry,
        *,
        heartbeat_interval_seconds: float = 25.0,
        sweep_interval_seconds: float = 60.0,
        max_missed_heartbeats: int = 0,
        on_reap: ReapCallback | None = None,
    ) -> None:
        self.registry = registry
        self.heartbeat_interval_seconds = heartbeat_interval_seconds
        self.sweep_interval_seconds = sweep_interval_seconds
        self.max_missed_heartbeats = max_missed_heartbeats
        self.on_reap = on_reap
        self._sweep_task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._sweep_task is not None and not self._sweep_task.done()

    # Heartbeats

    def track(self, session: RealtimeSession) -> None:
        if session.heartbeat_task is not None and not session.heartbeat_task.done():
            return
        session.last_heartbeat_at = utcnow()
        session.heartbeat_task = asyncio.create_task(
            self._heartbeat(session), name=f"heartbeat:{session.id}"
        )

    def untrack(self, session: RealtimeSession) -> bool:
        task, session.heartbeat_task = session.heartbeat_task, None
        if task is None or task.done() or task is asyncio.current_task():
            return False
        task.cancel()
        return True

    def record_pong(self, session: RealtimeSession) -> None:
        session.last_heartbeat_at = utcnow()

    async def _heartbeat(self, session: RealtimeSession) -> None:
        while session.is_bound:
            await asyncio.sleep(self.heartbeat_interval_seconds)
            if not session.is_bound:
                return
            if not session.transport.is_connected:
                continue
            try:
                await session.emit("ping")
            except Exception as exc:  # noqa: BLE001 - the sweep decides what is dead
                logger.debug("Heartbeat to session %s failed: %s", session.id, exc)

    # Sweep

    def is_stale(self, session: RealtimeSession) -> bool:
        if not session.transport.is_connected:
            return True
        if self.max_missed_heartbeats <= 0 or not session.is_bound:
            return False
        limit = self.heartbeat_interval_seconds * self.max_missed_heartbeats
        return session.silent_for() > limit

    async def sweep(self) -> list[RealtimeSession]:
        """Reap every stale session once; returns the reaped sessions."""
        reaped: list[RealtimeSession] = []
        for session in self.registry.sessions():
            if not self.is_stale(session):
                continue
            if self.on_reap is not None:
                await self.on_reap(session)
            else:
                self.untrack(session)
                await self.registry.discard(session.id)
            reaped.append(session)
        if reaped:
            logger.info("Liveness sweep reaped %d session(s)", len(reaped))
        return reaped

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval_seconds)
            try:
                await self.sweep()
            except Exception:  # noqa: BLE001 - keep sweeping on the next tick
                logger.exception("Liveness sweep failed")

    def start(self) -> None:
        if self.running:
            return
        self._sweep_task = asyncio.create_task(self._sweep_loop(), name="liveness-sweep")

    async def stop(self) -> None:
        task, self._sweep_task = self._sweep_task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


__all__ = ["LivenessMonitor"]
