# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Cassandra persistence for student progressions.

Writes are lightweight transactions:
- ``insert_if_not_exists`` makes lazy initialization race-free
- ``compare_and_set`` only applies when the stored version matches
"""

from typing import TYPE_CHECKING
from uuid import UUID

from .models import StudentProgression


if TYPE_CHECKING:
    from cassandra.cluster import Session


class ProgressionRepository:
    """Row access for the student_progressions table."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._get = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.student_progressions
            WHERE student_id = ? AND category_id = ?
        """)
        self._list_for_student = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.student_progressions
            WHERE student_id = ?
        """)
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.student_progressions
            (student_id, category_id, current_level, levels, completed_module_ids,
             total_modules_in_category, overall_progress, version,
             created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._update = self.session.prepare(f"""
            UPDATE {self.keyspace}.student_progressions
            SET current_level = ?, levels = ?, completed_module_ids = ?,
                total_modules_in_category = ?, overall_progress = ?,
                version = ?, updated_at = ?
            WHERE student_id = ? AND category_id = ?
            IF version = ?
        """)

    async def get(self, student_id: UUID, category_id: UUID) -> StudentProgression | None:
        result = await self.session.aexecute(self._get, [student_id, category_id])
        row = result.one()
        return StudentProgression.from_row(row) if row else None

    async def list_for_student(self, student_id: UUID) -> list[StudentProgression]:
        result = await self.session.aexecute(self._list_for_student, [student_id])
        return [StudentProgression.from_row(row) for row in result]

    async def insert_if_not_exists(self, progression: StudentProgression) -> bool:
        """Insert a new row. Returns False if one already existed."""
        result = await self.session.aexecute(
            self._insert,
            [
                progression.student_id,
                progression.category_id,
                progression.current_level.value,
                progression.levels_json(),
                progression.completed_module_ids or None,
                progression.total_modules_in_category,
                progression.overall_progress,
                progression.version,
                progression.created_at,
                progression.updated_at,
            ],
        )
        return result.was_applied

    async def compare_and_set(
        self,
        progression: StudentProgression,
        expected_version: int,
    ) -> bool:
        """Write the row if its stored version is still ``expected_version``."""
        result = await self.session.aexecute(
            self._update,
            [
                progression.current_level.value,
                progression.levels_json(),
                progression.completed_module_ids or None,
                progression.total_modules_in_category,
                progression.overall_progress,
                progression.version,
                progression.updated_at,
                progression.student_id,
                progression.category_id,
                expected_version,
            ],
        )
        return result.was_applied
