from __future__ import annotations

import itertools
from typing import Any

import pytest

_ids = itertools.count(1)


class FakeTransport:
    """In-memory transport recording everything the hub pushes to it."""

    def __init__(self, transport_id: str | None = None) -> None:
        self._id = transport_id or f"t-{next(_ids)}"
        self.sent: list[tuple[str, Any]] = []
        self.closed: tuple[int, str] | None = None
        self.connected = True
        self.fail_sends = False

    @property
    def transport_id(self) -> str:
        return self._id

    @property
    def is_connected(self) -> bool:
        return self.connected and self.closed is None

    async def send(self, event: str, data: Any = None) -> None:
        if self.fail_sends:
            raise ConnectionResetError("peer went away")
        self.sent.append((event, data))

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = (code, reason)
        self.connected = False

    def events(self) -> list[str]:
        return [event for event, _ in self.sent]

    def payloads(self, event: str) -> list[Any]:
        return [data for name, data in self.sent if name == event]


@pytest.fixture
def make_transport():
    def _make(transport_id: str | None = None) -> FakeTransport:
        return FakeTransport(transport_id)

    return _make
