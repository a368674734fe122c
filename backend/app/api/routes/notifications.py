"""Notification Routes — the caller's inbox."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import CurrentUser, get_current_user, get_notification_inbox
from app.schemas.notification import (
    MarkReadRequest, NotificationResponse, UnreadCountResponse,
)
from app.services.notification_inbox import NotificationInbox

router = APIRouter(prefix="/api/v1/notifications", tags=["notifications"])


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    limit: int = Query(30, ge=1, le=100),
    user: CurrentUser = Depends(get_current_user),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    return await inbox.list_notifications(user.id, limit)


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: CurrentUser = Depends(get_current_user),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    return UnreadCountResponse(count=await inbox.unread_count(user.id))


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(
    notification_id: UUID,
    body: MarkReadRequest | None = None,
    user: CurrentUser = Depends(get_current_user),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    is_read = body.is_read if body else True
    return await inbox.mark_read(user.id, notification_id, is_read)
