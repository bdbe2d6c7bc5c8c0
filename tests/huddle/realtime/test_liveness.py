from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest
from huddle.core.utils import utcnow
from huddle.realtime.liveness import LivenessMonitor
from huddle.realtime.registry import SessionRegistry
from huddle.realtime.session import RealtimeSession


async def _bound(registry: SessionRegistry, transport, user_id: str) -> RealtimeSession:
    session = RealtimeSession(transport=transport)
    await registry.register(session)
    await registry.bind(session.id, user_id)
    return session


@pytest.mark.asyncio
async def test_heartbeat_pings_bound_session(make_transport) -> None:
    registry = SessionRegistry()
    monitor = LivenessMonitor(registry, heartbeat_interval_seconds=0.01)
    transport = make_transport()
    session = await _bound(registry, transport, "u1")

    monitor.track(session)
    await asyncio.sleep(0.05)
    monitor.untrack(session)

    assert "ping" in transport.events()


@pytest.mark.asyncio
async def test_untrack_cancels_heartbeat_task(make_transport) -> None:
    registry = SessionRegistry()
    monitor = LivenessMonitor(registry, heartbeat_interval_seconds=10)
    session = await _bound(registry, make_transport(), "u1")

    monitor.track(session)
    task = session.heartbeat_task
    assert task is not None

    assert monitor.untrack(session) is True
    assert monitor.untrack(session) is False
    await asyncio.sleep(0)
    assert task.cancelled()
    assert session.heartbeat_task is None


@pytest.mark.asyncio
async def test_track_is_idempotent(make_transport) -> None:
    registry = SessionRegistry()
    monitor = LivenessMonitor(registry, heartbeat_interval_seconds=10)
    session = await _bound(registry, make_transport(), "u1")

    monitor.track(session)
    first = session.heartbeat_task
    monitor.track(session)

    assert session.heartbeat_task is first
    monitor.untrack(session)


@pytest.mark.asyncio
async def test_pong_updates_last_heartbeat(make_transport) -> None:
    registry = SessionRegistry()
    monitor = LivenessMonitor(registry)
    session = await _bound(registry, make_transport(), "u1")
    session.last_heartbeat_at = utcnow() - timedelta(minutes=5)

    monitor.record_pong(session)

    assert session.silent_for() < 5


@pytest.mark.asyncio
async def test_sweep_reaps_only_transport_dead_sessions(make_transport) -> None:
    registry = SessionRegistry()
    monitor = LivenessMonitor(registry)
    alive = make_transport()
    dead = make_transport()
    await _bound(registry, alive, "u1")
    await _bound(registry, dead, "u2")
    dead.connected = False

    reaped = await monitor.sweep()

    assert [s.transport for s in reaped] == [dead]
    assert registry.is_user_connected("u1")
    assert not registry.is_user_connected("u2")


@pytest.mark.asyncio
async def test_silent_but_connected_session_is_kept_by_default(make_transport) -> None:
    registry = SessionRegistry()
    monitor = LivenessMonitor(registry, heartbeat_interval_seconds=1)
    session = await _bound(registry, make_transport(), "u1")
    session.last_heartbeat_at = utcnow() - timedelta(hours=1)

    assert await monitor.sweep() == []
    assert registry.is_user_connected("u1")


@pytest.mark.asyncio
async def test_missed_heartbeat_reaping_when_enabled(make_transport) -> None:
    registry = SessionRegistry()
    monitor = LivenessMonitor(registry, heartbeat_interval_seconds=10, max_missed_heartbeats=2)
    quiet = await _bound(registry, make_transport(), "u1")
    chatty = await _bound(registry, make_transport(), "u2")
    quiet.last_heartbeat_at = utcnow() - timedelta(seconds=45)
    chatty.last_heartbeat_at = utcnow() - timedelta(seconds=5)

    reaped = await monitor.sweep()

    assert reaped == [quiet]
    assert registry.is_user_connected("u2")


@pytest.mark.asyncio
async def test_sweep_uses_reap_callback(make_transport) -> None:
    registry = SessionRegistry()
    seen: list[RealtimeSession] = []

    async def on_reap(session: RealtimeSession) -> None:
        seen.append(session)
        await registry.discard(session.id)

    monitor = LivenessMonitor(registry, on_reap=on_reap)
    dead = make_transport()
    session = await _bound(registry, dead, "u1")
    dead.connected = False

    await monitor.sweep()

    assert seen == [session]
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_periodic_sweep_runs_until_stopped(make_transport) -> None:
    registry = SessionRegistry()
    monitor = LivenessMonitor(registry, sweep_interval_seconds=0.01)
    dead = make_transport()
    await _bound(registry, dead, "u1")
    dead.connected = False

    monitor.start()
    assert monitor.running
    await asyncio.sleep(0.05)
    await monitor.stop()

    assert not monitor.running
    assert not registry.is_user_connected("u1")
