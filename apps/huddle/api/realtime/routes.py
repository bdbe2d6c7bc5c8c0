from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import SQLAlchemyError

from huddle.api.dependencies import get_notification_ledger, get_realtime_hub
from huddle.core.exceptions import UserNotConnectedError
from huddle.core.utils import utcnow
from huddle.models.notification import NotificationSeverity, NotificationType
from huddle.realtime.hub import RealtimeHub
from huddle.realtime.transport import InvalidFrame, WebSocketTransport
from huddle.schemas.realtime import (
    DebugNotificationRequest,
    DebugNotificationResponse,
    SocketStatus,
)
from huddle.services.notification_ledger import NotificationDraft, NotificationLedger, action_hash

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])
debug_router = APIRouter(tags=["realtime-debug"])

TEST_NOTIFICATION_EVENT = "notification:test"


@router.websocket("/ws")
async def realtime_ws(websocket: WebSocket, hub: RealtimeHub = Depends(get_realtime_hub)) -> None:
    await websocket.accept()
    transport = WebSocketTransport(websocket)
    session = await hub.connect(transport)
    if session is None:
        return
    try:
        while not session.is_terminated:
            try:
                event, data = await transport.receive()
            except InvalidFrame as exc:
                logger.debug("Dropping malformed frame from %s: %s", session.id, exc)
                continue
            await hub.handle(session, event, data)
    except WebSocketDisconnect:
        pass
    finally:
        await hub.disconnect(session)


@debug_router.get("/socket-status", response_model=SocketStatus)
def socket_status(hub: RealtimeHub = Depends(get_realtime_hub)) -> SocketStatus:
    return SocketStatus.model_validate(hub.status())


@debug_router.post("/test-notification/{user_id}", response_model=DebugNotificationResponse)
async def send_test_notification(
    user_id: str,
    payload: DebugNotificationRequest,
    hub: RealtimeHub = Depends(get_realtime_hub),
    ledger: NotificationLedger = Depends(get_notification_ledger),
) -> DebugNotificationResponse:
    if not hub.is_user_connected(user_id):
        raise UserNotConnectedError(f"User {user_id} is not connected")

    body = {
        "type": payload.type,
        "message": payload.message,
        "timestamp": utcnow().isoformat(),
    }
    try:
        await run_in_threadpool(
            ledger.record_occurrence,
            user_id,
            action_hash(NotificationType.test, user_id, "debug"),
            NotificationDraft(
                type=NotificationType.test,
                title="Test Notification",
                message=payload.message,
                severity=NotificationSeverity.info,
                metadata={"requested_type": payload.type},
            ),
        )
    except SQLAlchemyError:
        logger.exception("Failed to persist test notification for user %s", user_id)
        ledger.store.session.rollback()
    await hub.fanout.notify_user(user_id, TEST_NOTIFICATION_EVENT, body)
    return DebugNotificationResponse(user_id=user_id, event=TEST_NOTIFICATION_EVENT, payload=body)
