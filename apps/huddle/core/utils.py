from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""

    return datetime.now(timezone.utc)


def utcnow_naive() -> datetime:
    """Return the current time as a naive UTC datetime.

    Table columns store naive UTC timestamps; SQLite drops tzinfo anyway.
    """

    return utcnow().replace(tzinfo=None)


def clamp_int(val: int, *, lo: int, hi: int) -> int:
    """Clamp `val` into the inclusive range [`lo`, `hi`]."""

    return max(lo, min(hi, int(val)))


__all__ = ["clamp_int", "utcnow", "utcnow_naive"]
