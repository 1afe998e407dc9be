# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Cassandra persistence for module enrollments.

The enrollment row is keyed by (student, module), so ``INSERT ... IF NOT
EXISTS`` makes enrollment creation race-free. Lookup rows (by id, by module)
are written by the insert that wins. Updates are compare-and-set on
``version``.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from .models import ModuleEnrollment


if TYPE_CHECKING:
    from cassandra.cluster import Session


class EnrollmentRepository:
    """Row access for enrollment tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_enrollments
            (student_id, module_id, id, category_id, state, lesson_progress,
             final_assessment_attempts, final_assessment_score,
             final_assessment_passed, final_assessment_results, attempt_history,
             module_repeat_count, certificate_earned, certificate_public_id,
             certificate_issued_at, essay_submitted_at, completed_at,
             enrolled_at, last_accessed_at, last_accessed_lesson, version)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._insert_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_id
            (id, student_id, module_id)
            VALUES (?, ?, ?)
        """)
        self._insert_by_module = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.enrollments_by_module
            (module_id, student_id, enrollment_id, enrolled_at)
            VALUES (?, ?, ?, ?)
        """)
        self._update = self.session.prepare(f"""
            UPDATE {self.keyspace}.module_enrollments
            SET state = ?, lesson_progress = ?, final_assessment_attempts = ?,
                final_assessment_score = ?, final_assessment_passed = ?,
                final_assessment_results = ?, attempt_history = ?,
                module_repeat_count = ?, certificate_earned = ?,
                certificate_public_id = ?, certificate_issued_at = ?,
                essay_submitted_at = ?, completed_at = ?, last_accessed_at = ?,
                last_accessed_lesson = ?, version = ?
            WHERE student_id = ? AND module_id = ?
            IF version = ?
        """)
        self._get_for_student_module = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_enrollments
            WHERE student_id = ? AND module_id = ?
        """)
        self._list_for_student = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_enrollments
            WHERE student_id = ?
        """)
        self._get_key = self.session.prepare(f"""
            SELECT student_id, module_id FROM {self.keyspace}.enrollments_by_id
            WHERE id = ?
        """)
        self._list_for_module = self.session.prepare(f"""
            SELECT student_id FROM {self.keyspace}.enrollments_by_module
            WHERE module_id = ?
        """)

    async def get_for_student_module(
        self,
        student_id: UUID,
        module_id: UUID,
    ) -> ModuleEnrollment | None:
        result = await self.session.aexecute(
            self._get_for_student_module, [student_id, module_id]
        )
        row = result.one()
        return ModuleEnrollment.from_row(row) if row else None

    async def get(self, enrollment_id: UUID) -> ModuleEnrollment | None:
        result = await self.session.aexecute(self._get_key, [enrollment_id])
        key = result.one()
        if not key:
            return None
        return await self.get_for_student_module(key.student_id, key.module_id)

    async def list_for_student(self, student_id: UUID) -> list[ModuleEnrollment]:
        result = await self.session.aexecute(self._list_for_student, [student_id])
        return [ModuleEnrollment.from_row(row) for row in result]

    async def list_for_module(self, module_id: UUID) -> list[ModuleEnrollment]:
        result = await self.session.aexecute(self._list_for_module, [module_id])
        enrollments = []
        for row in result:
            enrollment = await self.get_for_student_module(row.student_id, module_id)
            if enrollment is not None:
                enrollments.append(enrollment)
        return enrollments

    async def insert_if_not_exists(self, enrollment: ModuleEnrollment) -> bool:
        """Insert a new enrollment. Returns False if the student already had one."""
        result = await self.session.aexecute(
            self._insert,
            [
                enrollment.student_id,
                enrollment.module_id,
                enrollment.id,
                enrollment.category_id,
                enrollment.state.value,
                enrollment.lesson_progress_json(),
                enrollment.final_assessment_attempts,
                enrollment.final_assessment_score,
                enrollment.final_assessment_passed,
                enrollment.final_results_json(),
                enrollment.attempt_history_json(),
                enrollment.module_repeat_count,
                enrollment.certificate_earned,
                enrollment.certificate_public_id,
                enrollment.certificate_issued_at,
                enrollment.essay_submitted_at,
                enrollment.completed_at,
                enrollment.enrolled_at,
                enrollment.last_accessed_at,
                enrollment.last_accessed_lesson,
                enrollment.version,
            ],
        )
        if not result.was_applied:
            return False

        await self.session.aexecute(
            self._insert_by_id,
            [enrollment.id, enrollment.student_id, enrollment.module_id],
        )
        await self.session.aexecute(
            self._insert_by_module,
            [
                enrollment.module_id,
                enrollment.student_id,
                enrollment.id,
                enrollment.enrolled_at,
            ],
        )
        return True

    async def compare_and_set(
        self,
        enrollment: ModuleEnrollment,
        expected_version: int,
    ) -> bool:
        """Write the row if its stored version is still ``expected_version``."""
        result = await self.session.aexecute(
            self._update,
            [
                enrollment.state.value,
                enrollment.lesson_progress_json(),
                enrollment.final_assessment_attempts,
                enrollment.final_assessment_score,
                enrollment.final_assessment_passed,
                enrollment.final_results_json(),
                enrollment.attempt_history_json(),
                enrollment.module_repeat_count,
                enrollment.certificate_earned,
                enrollment.certificate_public_id,
                enrollment.certificate_issued_at,
                enrollment.essay_submitted_at,
                enrollment.completed_at,
                enrollment.last_accessed_at,
                enrollment.last_accessed_lesson,
                enrollment.version,
                enrollment.student_id,
                enrollment.module_id,
                expected_version,
            ],
        )
        return result.was_applied
