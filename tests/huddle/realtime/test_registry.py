from __future__ import annotations

import asyncio

import pytest
from huddle.core.settings import DuplicateSessionPolicy
from huddle.realtime.registry import BindStatus, RegistryStats, SessionRegistry
from huddle.realtime.session import RealtimeSession, SessionState, team_room, user_room


async def _registered(registry: SessionRegistry, transport) -> RealtimeSession:
    session = RealtimeSession(transport=transport)
    await registry.register(session)
    return session


@pytest.mark.asyncio
async def test_bind_maps_user_to_session(make_transport) -> None:
    registry = SessionRegistry()
    session = await _registered(registry, make_transport("a"))

    result = await registry.bind("a", "u1")

    assert result.status == BindStatus.bound
    assert result.ok
    assert registry.is_user_connected("u1")
    assert registry.session_for("u1") == "a"
    assert session.state == SessionState.bound
    assert user_room("u1") in session.rooms


@pytest.mark.asyncio
async def test_second_session_for_same_user_is_rejected_and_first_kept(make_transport) -> None:
    registry = SessionRegistry()
    await _registered(registry, make_transport("a"))
    second = await _registered(registry, make_transport("b"))
    await registry.bind("a", "u1")

    result = await registry.bind("b", "u1")

    assert result.status == BindStatus.rejected
    assert result.existing_session_id == "a"
    assert registry.session_for("u1") == "a"
    assert second.state == SessionState.connected


@pytest.mark.asyncio
async def test_evict_old_policy_replaces_prior_session(make_transport) -> None:
    registry = SessionRegistry(policy=DuplicateSessionPolicy.evict_old)
    first = await _registered(registry, make_transport("a"))
    await _registered(registry, make_transport("b"))
    await registry.bind("a", "u1")

    result = await registry.bind("b", "u1")

    assert result.status == BindStatus.evicted
    assert result.evicted is first
    assert first.is_terminated
    assert registry.session_for("u1") == "b"
    assert registry.get("a") is None


@pytest.mark.asyncio
async def test_concurrent_binds_for_one_user_have_a_single_winner(make_transport) -> None:
    registry = SessionRegistry()
    for sid in ("a", "b", "c"):
        await _registered(registry, make_transport(sid))

    results = await asyncio.gather(*(registry.bind(sid, "u1") for sid in ("a", "b", "c")))

    statuses = [r.status for r in results]
    assert statuses.count(BindStatus.bound) == 1
    assert statuses.count(BindStatus.rejected) == 2
    assert registry.stats().authenticated == 1


@pytest.mark.asyncio
async def test_distinct_users_never_share_a_session(make_transport) -> None:
    registry = SessionRegistry()
    for idx in range(5):
        await _registered(registry, make_transport(f"s{idx}"))
        await registry.bind(f"s{idx}", f"u{idx}")

    session_ids = list(registry.user_connections().values())
    assert len(session_ids) == len(set(session_ids)) == 5


@pytest.mark.asyncio
async def test_rebinding_switches_identity_on_the_same_session(make_transport) -> None:
    registry = SessionRegistry()
    session = await _registered(registry, make_transport("a"))
    await registry.bind("a", "u1")

    await registry.bind("a", "u2")

    assert not registry.is_user_connected("u1")
    assert registry.session_for("u2") == "a"
    assert session.user_id == "u2"
    assert user_room("u1") not in registry.rooms()
    assert registry.stats().authenticated == 1


@pytest.mark.asyncio
async def test_unbind_is_idempotent(make_transport) -> None:
    registry = SessionRegistry()
    await _registered(registry, make_transport("a"))
    await registry.bind("a", "u1")

    assert await registry.unbind("a") is True
    size = len(registry)
    assert await registry.unbind("a") is False
    assert await registry.unbind("a") is False
    assert await registry.unbind("missing") is False
    assert len(registry) == size
    assert not registry.is_user_connected("u1")


@pytest.mark.asyncio
async def test_unbind_user_and_discard(make_transport) -> None:
    registry = SessionRegistry()
    session = await _registered(registry, make_transport("a"))
    await registry.bind("a", "u1")
    await registry.join_room("a", team_room("t1"))

    assert await registry.unbind_user("u1") is session
    assert await registry.unbind_user("u1") is None

    removed = await registry.discard("a")
    assert removed is session
    assert session.is_terminated
    assert await registry.discard("a") is None
    assert registry.rooms() == []
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_bind_unknown_or_terminated_session(make_transport) -> None:
    registry = SessionRegistry()
    assert (await registry.bind("nope", "u1")).status == BindStatus.unknown_session

    await _registered(registry, make_transport("a"))
    await registry.discard("a")
    assert (await registry.bind("a", "u1")).status == BindStatus.unknown_session
    assert not registry.is_user_connected("u1")


@pytest.mark.asyncio
async def test_stats_partition_total_into_authenticated_and_anonymous(make_transport) -> None:
    registry = SessionRegistry()
    for sid in ("a", "b", "c", "d"):
        await _registered(registry, make_transport(sid))
    await registry.bind("a", "u1")
    await registry.bind("b", "u2")
    await registry.bind("c", "u1")  # rejected duplicate stays anonymous

    stats = registry.stats()
    assert (stats.total, stats.authenticated, stats.anonymous) == (4, 2, 2)
    assert stats.total - stats.authenticated == stats.anonymous


@pytest.mark.asyncio
async def test_team_rooms_track_members(make_transport) -> None:
    registry = SessionRegistry()
    a = await _registered(registry, make_transport("a"))
    b = await _registered(registry, make_transport("b"))
    await registry.bind("a", "u1")
    await registry.bind("b", "u2")

    await registry.join_room("a", team_room("t1"))
    await registry.join_room("b", team_room("t1"))
    assert set(registry.room_members(team_room("t1"))) == {a, b}

    assert await registry.leave_room("a", team_room("t1")) is True
    assert await registry.leave_room("a", team_room("t1")) is False
    assert registry.room_members(team_room("t1")) == [b]
    assert registry.rooms() == sorted([team_room("t1"), user_room("u1"), user_room("u2")])


@pytest.mark.asyncio
async def test_unbind_returns_session_to_unbound_state(make_transport) -> None:
    registry = SessionRegistry()
    session = await _registered(registry, make_transport("a"))
    await registry.bind("a", "u1")
    await registry.join_room("a", team_room("t1"))

    assert await registry.unbind("a") is True

    assert not session.is_bound
    assert not session.is_terminated
    assert session.user_id is None
    assert session.rooms == set()
    assert registry.rooms() == []
    assert registry.stats() == RegistryStats(total=1, authenticated=0)

    rebound = await registry.bind("a", "u2")
    assert rebound.status == BindStatus.bound
    assert session.user_id == "u2"
