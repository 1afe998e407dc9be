"""User directory model.

Users are owned by the identity service; this API only reads the shared
``users`` table to snapshot display names on certificates and to address
notification emails.
"""

from datetime import UTC, datetime
from typing import Any
from uuid import UUID

from src.auth.permissions import UserRole


USER_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.users (
    id UUID PRIMARY KEY,
    email TEXT,
    first_name TEXT,
    last_name TEXT,
    role TEXT,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# All CQL statements for table setup
AUTH_TABLES_CQL = [
    USER_TABLE_CQL,
]


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


class User:
    """Read-only user entity.

    Attributes:
        id: Unique identifier (UUID)
        email: Email address
        first_name: Given name
        last_name: Family name
        role: User role (user, student, instructor, admin)
        is_active: Account status
    """

    def __init__(
        self,
        id: UUID,
        email: str = "",
        first_name: str = "",
        last_name: str = "",
        role: str = UserRole.USER.value,
        is_active: bool = True,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ):
        self.id = id
        self.email = email.lower().strip()
        self.first_name = first_name
        self.last_name = last_name
        self.role = role
        self.is_active = is_active
        self.created_at = ensure_utc_aware(created_at) or datetime.now(UTC)
        self.updated_at = ensure_utc_aware(updated_at)

    @property
    def full_name(self) -> str:
        """First and last name joined, empty when neither is set."""
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    @classmethod
    def from_row(cls, row: Any) -> "User":
        """Create User instance from Cassandra row."""
        return cls(
            id=row.id,
            email=row.email or "",
            first_name=row.first_name or "",
            last_name=row.last_name or "",
            role=row.role or UserRole.USER.value,
            is_active=row.is_active if row.is_active is not None else True,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )

    def __repr__(self) -> str:
        return f"<User {self.email} ({self.role})>"
