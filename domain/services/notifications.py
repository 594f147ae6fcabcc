"""Notification inbox - read side of the notification rows written by the access components"""
from typing import List, Optional
from uuid import UUID

from domain.errors import NotAuthorized, NotificationNotFound
from domain.models import Notification
from domain.services.base import AccessService


class NotificationInbox(AccessService):
    async def list_for(self, recipient_id: UUID, unread_only: bool = False, limit: Optional[int] = None) -> List[Notification]:
        filters = {"recipient_id": recipient_id}
        if unread_only:
            filters["is_read"] = False
        notifications = await self.repo.find(Notification, **filters)
        notifications.sort(key=lambda n: n.created_at, reverse=True)
        return notifications[:limit] if limit else notifications

    async def mark_read(self, notification_id: UUID, recipient_id: UUID) -> Notification:
        async with self.transaction():
            notification = await self.repo.get(Notification, notification_id)
            if notification is None:
                raise NotificationNotFound(f"Notification {notification_id} not found")
            if notification.recipient_id != recipient_id:
                raise NotAuthorized("Notification belongs to another user")
            if not notification.is_read:
                notification.is_read = True
                await self.repo.add(notification)
        return notification
