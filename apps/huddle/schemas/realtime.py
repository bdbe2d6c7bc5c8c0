from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ConnectionStats(BaseModel):
    total_sockets: int = Field(serialization_alias="totalSockets")
    unique_users: int = Field(serialization_alias="uniqueUsers")
    duplicate_connections: int = Field(serialization_alias="duplicateConnections")


class SocketStatus(BaseModel):
    """Debug snapshot of the realtime hub (camelCase on the wire)."""

    connected_sockets: int = Field(serialization_alias="connectedSockets")
    rooms: list[str]
    total_sockets: int = Field(serialization_alias="totalSockets")
    user_connections: dict[str, str] = Field(serialization_alias="userConnections")
    active_users: list[str] = Field(serialization_alias="activeUsers")
    connection_stats: ConnectionStats = Field(serialization_alias="connectionStats")


class DebugNotificationRequest(BaseModel):
    type: str = Field(default="test", max_length=64)
    message: str = Field(default="Test notification", min_length=1, max_length=2000)


class DebugNotificationResponse(BaseModel):
    success: bool = True
    user_id: str = Field(serialization_alias="userId")
    event: str
    payload: dict[str, Any]
