"""Shared API dependencies.

Process-scoped collaborators (the realtime hub, the session factory) live on
``app.state`` and are built by ``create_app``; tests override these providers
or construct the app with their own instances.
"""

from collections.abc import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlmodel import Session
from starlette.requests import HTTPConnection

from huddle.core.database import session_scope
from huddle.realtime.hub import RealtimeHub
from huddle.services.notification_ledger import NotificationLedger
from huddle.services.notification_service import NotificationService
from huddle.services.notification_store import NotificationStore


def get_db_session(conn: HTTPConnection) -> Generator[Session, None, None]:
    """Provide a database session for request handlers."""
    yield from session_scope(conn.app.state.session_factory)


def get_realtime_hub(conn: HTTPConnection) -> RealtimeHub:
    return conn.app.state.realtime_hub


def get_notification_store(session: Session = Depends(get_db_session)) -> NotificationStore:
    return NotificationStore(session)


def get_notification_service(
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationService:
    return NotificationService(store)


def get_notification_ledger(
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationLedger:
    return NotificationLedger(store)


def get_current_user_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    """Caller identity as established by the upstream auth layer."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user_id


__all__ = [
    "get_current_user_id",
    "get_db_session",
    "get_notification_ledger",
    "get_notification_service",
    "get_notification_store",
    "get_realtime_hub",
]
