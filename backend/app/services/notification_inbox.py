"""Notification Inbox — per-user reads and read-flag updates.

Invariants:
    - A user only ever sees or modifies their own notifications
    - Only is_read changes; rows are never deleted here
"""

from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.errors import NotFoundError
from app.models.notification import Notification


class NotificationInbox:
    """Read side of the notification table."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def list_notifications(
        self, user_id: UUID, limit: int = 30,
    ) -> list[Notification]:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.user_id == user_id)
            .order_by(Notification.created_at.desc())
            .limit(limit),
        )
        return list(result.scalars().all())

    async def unread_count(self, user_id: UUID) -> int:
        result = await self.db.execute(
            select(func.count(Notification.id))
            .where(Notification.user_id == user_id)
            .where(Notification.is_read.is_(False)),
        )
        return result.scalar_one()

    async def mark_read(
        self, user_id: UUID, notification_id: UUID, is_read: bool = True,
    ) -> Notification:
        result = await self.db.execute(
            select(Notification)
            .where(Notification.id == notification_id)
            .where(Notification.user_id == user_id),
        )
        notification = result.scalar_one_or_none()
        if not notification:
            raise NotFoundError("Notification", str(notification_id))
        notification.is_read = is_read
        await self.db.commit()
        return notification
