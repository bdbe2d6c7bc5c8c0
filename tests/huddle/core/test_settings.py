import pytest
from huddle.core.settings import DuplicateSessionPolicy, Settings
from pydantic import ValidationError


def test_realtime_defaults():
    s = Settings()
    assert s.max_total_connections == 100
    assert s.max_anonymous_connections == 10
    assert s.auth_timeout_seconds == 30
    assert s.heartbeat_interval_seconds == 25
    assert s.sweep_interval_seconds == 60
    assert s.max_missed_heartbeats == 0
    assert s.duplicate_session_policy is DuplicateSessionPolicy.reject_new


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("HUDDLE_MAX_TOTAL_CONNECTIONS", "5")
    monkeypatch.setenv("HUDDLE_AUTH_TIMEOUT_SECONDS", "1.5")
    monkeypatch.setenv("HUDDLE_DUPLICATE_SESSION_POLICY", "evict_old")
    monkeypatch.setenv("HUDDLE_ENABLE_DEBUG_ROUTES", "false")

    s = Settings()

    assert s.max_total_connections == 5
    assert s.auth_timeout_seconds == 1.5
    assert s.duplicate_session_policy is DuplicateSessionPolicy.evict_old
    assert s.enable_debug_routes is False


def test_field_names_are_accepted():
    s = Settings(max_total_connections=3, database_url="sqlite://")
    assert s.max_total_connections == 3
    assert s.database_url == "sqlite://"


def test_invalid_limits_are_rejected():
    with pytest.raises(ValidationError):
        Settings(max_total_connections=0)
    with pytest.raises(ValidationError):
        Settings(auth_timeout_seconds=0)
