# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""User directory lookups backed by the shared users table."""

from typing import TYPE_CHECKING
from uuid import UUID

from .models import User


if TYPE_CHECKING:
    from cassandra.cluster import Session


class UserService:
    """Read-only access to user profiles."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient execution."""
        self._get_by_id = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.users WHERE id = ?
        """)

    async def get_user(self, user_id: UUID) -> User | None:
        """Get user by ID."""
        result = await self.session.aexecute(self._get_by_id, [user_id])
        row = result.one()
        return User.from_row(row) if row else None
