"""Database models for dashboard notifications.

Cassandra table definitions for:
- Notifications: partitioned by user, newest first
- Unread counters

Notification types:
- ESSAY_SUBMITTED: A student is waiting for essay review (to instructors)
- ESSAY_GRADED: An instructor graded the student's essay
- CERTIFICATE_EARNED: Student passed a module
- LEVEL_UNLOCKED: Student unlocked the next level of a category
- MODULE_REPEAT_REQUIRED: Student exhausted final assessment attempts
- SYSTEM: System-wide announcement
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class NotificationType(str, Enum):
    """Types of notifications."""

    ESSAY_SUBMITTED = "essay_submitted"
    ESSAY_GRADED = "essay_graded"
    CERTIFICATE_EARNED = "certificate_earned"
    LEVEL_UNLOCKED = "level_unlocked"
    MODULE_REPEAT_REQUIRED = "module_repeat_required"
    SYSTEM = "system"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

NOTIFICATION_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notifications (
    user_id UUID,
    notification_id UUID,
    type TEXT,
    title TEXT,
    message TEXT,
    link TEXT,
    reference_id UUID,
    is_read BOOLEAN,
    read_at TIMESTAMP,
    created_at TIMESTAMP,
    PRIMARY KEY ((user_id), created_at, notification_id)
) WITH CLUSTERING ORDER BY (created_at DESC, notification_id ASC)
"""

UNREAD_COUNT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.notification_unread_counts (
    user_id UUID PRIMARY KEY,
    count COUNTER
)
"""

NOTIFICATIONS_TABLES_CQL = [
    NOTIFICATION_TABLE_CQL,
    UNREAD_COUNT_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Notification:
    """Dashboard notification."""

    notification_id: UUID
    user_id: UUID
    type: NotificationType
    title: str
    message: str
    link: str | None
    reference_id: UUID | None
    is_read: bool
    read_at: datetime | None
    created_at: datetime

    @classmethod
    def from_row(cls, row: Any) -> "Notification":
        """Create Notification from Cassandra row."""
        return cls(
            notification_id=row.notification_id,
            user_id=row.user_id,
            type=NotificationType(row.type),
            title=row.title,
            message=row.message,
            link=row.link,
            reference_id=row.reference_id,
            is_read=row.is_read or False,
            read_at=row.read_at,
            created_at=row.created_at,
        )


def create_notification(
    user_id: UUID,
    notification_type: NotificationType,
    title: str,
    message: str,
    link: str | None = None,
    reference_id: UUID | None = None,
) -> Notification:
    """Create a new unread notification."""
    return Notification(
        notification_id=uuid4(),
        user_id=user_id,
        type=notification_type,
        title=title,
        message=message,
        link=link,
        reference_id=reference_id,
        is_read=False,
        read_at=None,
        created_at=datetime.now(UTC),
    )
