"""Realtime connection core: sessions, admission, liveness and live fan-out."""

from huddle.realtime.admission import AdmissionController, ConnectionRejected
from huddle.realtime.fanout import NotificationFanout
from huddle.realtime.hub import RealtimeConfig, RealtimeHub
from huddle.realtime.liveness import LivenessMonitor
from huddle.realtime.registry import BindResult, BindStatus, RegistryStats, SessionRegistry
from huddle.realtime.session import RealtimeSession, SessionState
from huddle.realtime.transport import Transport, WebSocketTransport

__all__ = [
    "AdmissionController",
    "BindResult",
    "BindStatus",
    "ConnectionRejected",
    "LivenessMonitor",
    "NotificationFanout",
    "RealtimeConfig",
    "RealtimeHub",
    "RealtimeSession",
    "RegistryStats",
    "SessionRegistry",
    "SessionState",
    "Transport",
    "WebSocketTransport",
]
