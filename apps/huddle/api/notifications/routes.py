from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from huddle.api.dependencies import get_current_user_id, get_notification_service
from huddle.schemas.notifications import ApiResponse, BulkResult, NotificationOut
from huddle.services.notification_service import MAX_PAGE_SIZE, NotificationService

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("", response_model=ApiResponse)
def list_notifications(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=MAX_PAGE_SIZE),
    user_id: str = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> ApiResponse:
    return ApiResponse(data=svc.list_notifications(user_id, page=page, limit=limit))


@router.get("/stats", response_model=ApiResponse)
def notification_stats(
    user_id: str = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> ApiResponse:
    return ApiResponse(data=svc.stats(user_id))


@router.patch("/mark-all-read", response_model=ApiResponse)
def mark_all_read(
    user_id: str = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> ApiResponse:
    modified = svc.mark_all_read(user_id)
    return ApiResponse(
        message="All notifications marked as read",
        data=BulkResult(modified_count=modified),
    )


@router.patch("/{notification_id}/read", response_model=ApiResponse)
def mark_read(
    notification_id: int,
    user_id: str = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> ApiResponse:
    notification = svc.mark_read(notification_id, user_id)
    return ApiResponse(data=NotificationOut.model_validate(notification))


@router.delete("/{notification_id}", response_model=ApiResponse)
def delete_notification(
    notification_id: int,
    user_id: str = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> ApiResponse:
    notification = svc.delete(notification_id, user_id)
    return ApiResponse(
        message="Notification deleted successfully",
        data=NotificationOut.model_validate(notification),
    )


@router.delete("", response_model=ApiResponse)
def delete_all_notifications(
    user_id: str = Depends(get_current_user_id),
    svc: NotificationService = Depends(get_notification_service),
) -> ApiResponse:
    modified = svc.delete_all(user_id)
    return ApiResponse(
        message="All notifications deleted successfully",
        data=BulkResult(modified_count=modified),
    )
