"""Pydantic schemas for notifications."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from src.notifications.models import Notification, NotificationType


class NotificationResponse(BaseModel):
    """Single notification response."""

    id: UUID = Field(description="Notification ID")
    type: NotificationType
    title: str
    message: str
    link: str | None = None
    reference_id: UUID | None = None
    is_read: bool
    read_at: datetime | None = None
    created_at: datetime

    @classmethod
    def from_notification(cls, notification: Notification) -> "NotificationResponse":
        return cls(
            id=notification.notification_id,
            type=notification.type,
            title=notification.title,
            message=notification.message,
            link=notification.link,
            reference_id=notification.reference_id,
            is_read=notification.is_read,
            read_at=notification.read_at,
            created_at=notification.created_at,
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationResponse]
    unread_count: int


class MarkReadResponse(BaseModel):
    marked_count: int = Field(description="Number of notifications marked as read")
