# ruff: noqa: S608 - All CQL queries use keyspace from config, not user input
"""Cassandra persistence for module certificates.

The certificate row is inserted with ``IF NOT EXISTS`` on the enrollment id,
so an enrollment can never hold two certificates. Lookup rows are written
only by the insert that wins.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from .models import ModuleCertificate


if TYPE_CHECKING:
    from cassandra.cluster import Session


class CertificateRepository:
    """Row access for certificate tables."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements."""
        self._insert = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.module_certificates
            (enrollment_id, student_id, module_id, student_name, module_name,
             module_level, category_name, score_achieved, instructor_name,
             issued_at, certificate_number, public_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            IF NOT EXISTS
        """)
        self._insert_by_public_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.certificates_by_public_id
            (public_id, enrollment_id)
            VALUES (?, ?)
        """)
        self._insert_by_student = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.certificates_by_student
            (student_id, issued_at, enrollment_id)
            VALUES (?, ?, ?)
        """)
        self._get_for_enrollment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.module_certificates
            WHERE enrollment_id = ?
        """)
        self._get_by_public_id = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.certificates_by_public_id
            WHERE public_id = ?
        """)
        self._list_for_student = self.session.prepare(f"""
            SELECT enrollment_id FROM {self.keyspace}.certificates_by_student
            WHERE student_id = ?
        """)

    async def insert_if_not_exists(self, certificate: ModuleCertificate) -> bool:
        """Insert a certificate. Returns False if the enrollment already has one."""
        result = await self.session.aexecute(
            self._insert,
            [
                certificate.enrollment_id,
                certificate.student_id,
                certificate.module_id,
                certificate.student_name,
                certificate.module_name,
                certificate.module_level.value,
                certificate.category_name,
                certificate.score_achieved,
                certificate.instructor_name,
                certificate.issued_at,
                certificate.certificate_number,
                certificate.public_id,
            ],
        )
        if not result.was_applied:
            return False

        await self.session.aexecute(
            self._insert_by_public_id,
            [certificate.public_id, certificate.enrollment_id],
        )
        await self.session.aexecute(
            self._insert_by_student,
            [certificate.student_id, certificate.issued_at, certificate.enrollment_id],
        )
        return True

    async def get_for_enrollment(self, enrollment_id: UUID) -> ModuleCertificate | None:
        result = await self.session.aexecute(self._get_for_enrollment, [enrollment_id])
        row = result.one()
        return ModuleCertificate.from_row(row) if row else None

    async def get_by_public_id(self, public_id: UUID) -> ModuleCertificate | None:
        result = await self.session.aexecute(self._get_by_public_id, [public_id])
        row = result.one()
        if not row:
            return None
        return await self.get_for_enrollment(row.enrollment_id)

    async def list_for_student(self, student_id: UUID) -> list[ModuleCertificate]:
        result = await self.session.aexecute(self._list_for_student, [student_id])
        certificates = []
        for row in result:
            certificate = await self.get_for_enrollment(row.enrollment_id)
            if certificate is not None:
                certificates.append(certificate)
        return certificates
