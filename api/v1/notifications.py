"""Notifications API - in-app notifications produced by access transitions"""
from typing import List
from uuid import UUID

from fastapi import APIRouter, Depends, Header

from api.deps import get_notification_inbox
from domain.models.notification import NotificationRead
from domain.services import NotificationInbox

router = APIRouter()


@router.get("", response_model=List[NotificationRead])
async def list_notifications(
    x_user_id: UUID = Header(..., description="Recipient"),
    unread_only: bool = False,
    limit: int = 100,
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    """List notifications for the current user, newest first"""
    return await inbox.list_for(x_user_id, unread_only=unread_only, limit=limit)


@router.post("/{notification_id}/read", response_model=NotificationRead)
async def mark_notification_read(
    notification_id: UUID,
    x_user_id: UUID = Header(..., description="Recipient"),
    inbox: NotificationInbox = Depends(get_notification_inbox),
):
    return await inbox.mark_read(notification_id, x_user_id)
