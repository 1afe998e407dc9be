# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Notification service layer.

Business logic for:
- Creating dashboard notifications
- Listing notifications and unread counts
- Marking notifications as read
- Publishing new notifications to Redis for live delivery
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import orjson
from redis.exceptions import RedisError

from src.core.logging import get_logger
from src.core.redis import notification_channel, unread_count_key

from .models import Notification, NotificationType, create_notification


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis


logger = get_logger(__name__)

UNREAD_CACHE_TTL_SECONDS = 300


class NotificationService:
    """Service for notification management."""

    def __init__(self, session: "Session", keyspace: str, redis: "Redis | None" = None):
        """Initialize with Cassandra session and optional Redis."""
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_notification = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.notifications
            (user_id, notification_id, type, title, message, link, reference_id,
             is_read, read_at, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)
        self._get_notifications = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.notifications
            WHERE user_id = ?
            LIMIT ?
        """)
        self._mark_read = self.session.prepare(f"""
            UPDATE {self.keyspace}.notifications
            SET is_read = true, read_at = ?
            WHERE user_id = ? AND created_at = ? AND notification_id = ?
        """)
        self._incr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count + 1
            WHERE user_id = ?
        """)
        self._decr_unread = self.session.prepare(f"""
            UPDATE {self.keyspace}.notification_unread_counts
            SET count = count - ?
            WHERE user_id = ?
        """)
        self._get_unread_count = self.session.prepare(f"""
            SELECT count FROM {self.keyspace}.notification_unread_counts
            WHERE user_id = ?
        """)

    # ==========================================================================
    # Creation
    # ==========================================================================

    async def notify(
        self,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
        reference_id: UUID | None = None,
    ) -> Notification:
        """Create a notification for one user."""
        notification = create_notification(
            user_id=user_id,
            notification_type=notification_type,
            title=title,
            message=message,
            link=link,
            reference_id=reference_id,
        )
        await self.session.aexecute(
            self._insert_notification,
            [
                notification.user_id,
                notification.notification_id,
                notification.type.value,
                notification.title,
                notification.message,
                notification.link,
                notification.reference_id,
                notification.is_read,
                notification.read_at,
                notification.created_at,
            ],
        )
        await self.session.aexecute(self._incr_unread, [notification.user_id])
        await self._invalidate_cache(notification.user_id)
        await self._publish(notification)

        logger.info(
            "notification_created",
            user_id=str(user_id),
            notification_type=notification_type.value,
        )
        return notification

    # ==========================================================================
    # Listing
    # ==========================================================================

    async def get_notifications(
        self,
        user_id: UUID,
        limit: int = 20,
        unread_only: bool = False,
    ) -> list[Notification]:
        """Most recent notifications for a user."""
        rows = await self.session.aexecute(self._get_notifications, [user_id, limit])
        notifications = [Notification.from_row(row) for row in rows]
        if unread_only:
            return [n for n in notifications if not n.is_read]
        return notifications

    async def get_unread_count(self, user_id: UUID) -> int:
        """Get unread notification count for user."""
        cache_key = unread_count_key(user_id)
        if self.redis:
            cached = await self.redis.get(cache_key)
            if cached:
                return int(cached)

        result = await self.session.aexecute(self._get_unread_count, [user_id])
        row = result.one()
        count = max(row.count, 0) if row and row.count else 0

        if self.redis:
            await self.redis.setex(cache_key, UNREAD_CACHE_TTL_SECONDS, str(count))

        return count

    async def mark_all_as_read(self, user_id: UUID) -> int:
        """Mark all recent notifications as read. Returns how many changed."""
        now = datetime.now(UTC)
        marked = 0

        rows = await self.session.aexecute(self._get_notifications, [user_id, 1000])
        for row in rows:
            if not row.is_read:
                await self.session.aexecute(
                    self._mark_read,
                    [now, user_id, row.created_at, row.notification_id],
                )
                marked += 1

        if marked > 0:
            await self.session.aexecute(self._decr_unread, [marked, user_id])
            await self._invalidate_cache(user_id)

        return marked

    async def _invalidate_cache(self, user_id: UUID) -> None:
        if not self.redis:
            return
        await self.redis.delete(unread_count_key(user_id))

    async def _publish(self, notification: Notification) -> None:
        """Push the notification to the user's Redis channel for live clients."""
        if not self.redis:
            return
        message = {
            "type": "notification",
            "data": {
                "id": str(notification.notification_id),
                "type": notification.type.value,
                "title": notification.title,
                "message": notification.message,
                "link": notification.link,
                "is_read": notification.is_read,
                "created_at": notification.created_at.isoformat(),
            },
        }
        try:
            await self.redis.publish(
                notification_channel(notification.user_id), orjson.dumps(message)
            )
        except RedisError as e:
            logger.warning(
                "notification_publish_failed",
                user_id=str(notification.user_id),
                error=str(e),
            )
