"""Database models for module certificates.

Cassandra table definitions for:
- Module certificates: one row per enrollment, written once
- Lookups: by public verification id, by student (newest first)

Certificates snapshot display names at issue time; later renames of the
student, module or category do not change an issued certificate.
"""

import secrets
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from src.catalog.models import ModuleLevel, ensure_utc_aware


DEFAULT_NUMBER_PREFIX = "MC"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

MODULE_CERTIFICATES_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_certificates (
    enrollment_id UUID PRIMARY KEY,
    student_id UUID,
    module_id UUID,
    student_name TEXT,
    module_name TEXT,
    module_level TEXT,
    category_name TEXT,
    score_achieved INT,
    instructor_name TEXT,
    issued_at TIMESTAMP,
    certificate_number TEXT,
    public_id UUID
)
"""

CERTIFICATES_BY_PUBLIC_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates_by_public_id (
    public_id UUID PRIMARY KEY,
    enrollment_id UUID
)
"""

CERTIFICATES_BY_STUDENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.certificates_by_student (
    student_id UUID,
    issued_at TIMESTAMP,
    enrollment_id UUID,
    PRIMARY KEY ((student_id), issued_at, enrollment_id)
) WITH CLUSTERING ORDER BY (issued_at DESC, enrollment_id ASC)
"""

CERTIFICATES_TABLES_CQL = [
    MODULE_CERTIFICATES_TABLE_CQL,
    CERTIFICATES_BY_PUBLIC_ID_TABLE_CQL,
    CERTIFICATES_BY_STUDENT_TABLE_CQL,
]


def generate_certificate_number(prefix: str = DEFAULT_NUMBER_PREFIX) -> str:
    """``<prefix>-<epoch ms>-<8 upper hex>``, e.g. ``MC-1718000000000-3F9A0C1B``."""
    return f"{prefix}-{int(time.time() * 1000)}-{secrets.token_hex(4).upper()}"


@dataclass(frozen=True)
class ModuleCertificate:
    """Immutable completion certificate."""

    enrollment_id: UUID
    student_id: UUID
    module_id: UUID
    student_name: str
    module_name: str
    module_level: ModuleLevel
    category_name: str
    score_achieved: int
    instructor_name: str
    certificate_number: str
    public_id: UUID = field(default_factory=uuid4)
    issued_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @classmethod
    def from_row(cls, row: Any) -> "ModuleCertificate":
        """Create ModuleCertificate from Cassandra row."""
        return cls(
            enrollment_id=row.enrollment_id,
            student_id=row.student_id,
            module_id=row.module_id,
            student_name=row.student_name,
            module_name=row.module_name,
            module_level=ModuleLevel(row.module_level),
            category_name=row.category_name,
            score_achieved=row.score_achieved or 0,
            instructor_name=row.instructor_name,
            certificate_number=row.certificate_number,
            public_id=row.public_id,
            issued_at=ensure_utc_aware(row.issued_at) or datetime.now(UTC),
        )
