"""Pydantic schemas for certificate endpoints."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from src.catalog.models import ModuleLevel

from .models import ModuleCertificate


class CertificateResponse(BaseModel):
    """Certificate as shown to its owner and to public verifiers."""

    certificate_number: str
    public_id: UUID
    enrollment_id: UUID
    module_id: UUID
    student_name: str
    module_name: str
    module_level: ModuleLevel
    category_name: str
    instructor_name: str
    score_achieved: int
    issued_at: datetime

    @classmethod
    def from_certificate(cls, certificate: ModuleCertificate) -> "CertificateResponse":
        return cls(
            certificate_number=certificate.certificate_number,
            public_id=certificate.public_id,
            enrollment_id=certificate.enrollment_id,
            module_id=certificate.module_id,
            student_name=certificate.student_name,
            module_name=certificate.module_name,
            module_level=certificate.module_level,
            category_name=certificate.category_name,
            instructor_name=certificate.instructor_name,
            score_achieved=certificate.score_achieved,
            issued_at=certificate.issued_at,
        )
