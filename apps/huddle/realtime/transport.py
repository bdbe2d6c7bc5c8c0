"""Transport seam between the realtime core and the wire.

The core only needs four things from a connection: an identity, a liveness
signal, a way to push a named event, and a way to close. Frames are JSON
objects shaped ``{"event": <name>, "data": <payload>}`` in both directions.
"""

from __future__ import annotations

import json
from typing import Any, Protocol, runtime_checkable
from uuid import uuid4

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocketState

CLOSE_NORMAL = 1000
CLOSE_GOING_AWAY = 1001
CLOSE_POLICY_VIOLATION = 1008


class InvalidFrame(ValueError):
    """Raised when an inbound frame is not a JSON object with a string ``event``."""


@runtime_checkable
class Transport(Protocol):
    @property
    def transport_id(self) -> str: ...

    @property
    def is_connected(self) -> bool: ...

    async def send(self, event: str, data: Any = None) -> None: ...

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None: ...


def encode_frame(event: str, data: Any = None) -> dict[str, Any]:
    return {"event": event, "data": jsonable_encoder(data)}


def decode_frame(raw: Any) -> tuple[str, Any]:
    if not isinstance(raw, dict):
        raise InvalidFrame("Frame must be a JSON object")
    event = raw.get("event")
    if not isinstance(event, str) or not event:
        raise InvalidFrame("Frame is missing an event name")
    return event, raw.get("data")


class WebSocketTransport:
    """Adapts a FastAPI ``WebSocket`` to the ``Transport`` protocol."""

    def __init__(self, websocket: WebSocket, *, transport_id: str | None = None) -> None:
        self._websocket = websocket
        self._id = transport_id or uuid4().hex

    @property
    def transport_id(self) -> str:
        return self._id

    @property
    def is_connected(self) -> bool:
        return (
            self._websocket.client_state == WebSocketState.CONNECTED
            and self._websocket.application_state == WebSocketState.CONNECTED
        )

    async def send(self, event: str, data: Any = None) -> None:
        await self._websocket.send_json(encode_frame(event, data))

    async def close(self, code: int = CLOSE_NORMAL, reason: str = "") -> None:
        if self._websocket.application_state == WebSocketState.DISCONNECTED:
            return
        await self._websocket.close(code=code, reason=reason or None)

    async def receive(self) -> tuple[str, Any]:
        """Wait for the next inbound event; raises ``WebSocketDisconnect`` once closed."""
        if self._websocket.application_state != WebSocketState.CONNECTED:
            raise WebSocketDisconnect(code=CLOSE_NORMAL)
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(code=message.get("code", CLOSE_NORMAL))
        raw = message.get("text")
        if raw is None and message.get("bytes") is not None:
            raw = message["bytes"].decode("utf-8", errors="replace")
        try:
            payload = json.loads(raw or "")
        except json.JSONDecodeError as exc:
            raise InvalidFrame("Frame is not valid JSON") from exc
        return decode_frame(payload)


__all__ = [
    "CLOSE_GOING_AWAY",
    "CLOSE_NORMAL",
    "CLOSE_POLICY_VIOLATION",
    "InvalidFrame",
    "Transport",
    "WebSocketTransport",
    "decode_frame",
    "encode_frame",
]
