import logging

from huddle.core.logging import resolve_level, setup_logging


def test_setup_logging_string_levels():
    setup_logging("ERROR")
    root = logging.getLogger()
    assert root.getEffectiveLevel() == logging.ERROR
    assert len(root.handlers) >= 1

    setup_logging("debug")
    assert logging.getLogger().getEffectiveLevel() == logging.DEBUG


def test_setup_logging_numeric():
    setup_logging(10)  # DEBUG
    assert logging.getLogger().getEffectiveLevel() == logging.DEBUG


def test_setup_logging_from_env(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    monkeypatch.setenv("HUDDLE_LOG_LEVEL", "WARNING")
    setup_logging(None)
    assert logging.getLogger().getEffectiveLevel() == logging.WARNING


def test_generic_log_level_is_a_fallback(monkeypatch):
    monkeypatch.delenv("HUDDLE_LOG_LEVEL", raising=False)
    monkeypatch.setenv("LOG_LEVEL", "error")
    setup_logging()
    assert logging.getLogger().getEffectiveLevel() == logging.ERROR


def test_resolve_level_defaults_to_info():
    assert resolve_level("nonsense") == logging.INFO
    assert resolve_level(None) == logging.INFO
    assert resolve_level("30") == logging.WARNING
