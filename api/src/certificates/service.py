"""Certificate issuer.

Mints one immutable certificate per completed enrollment. Issuing is
idempotent: a second call for the same enrollment returns the stored
certificate instead of creating another one.
"""

from typing import TYPE_CHECKING, Protocol
from uuid import UUID

from src.core.errors import NotFoundError
from src.core.logging import get_logger

from .models import DEFAULT_NUMBER_PREFIX, ModuleCertificate, generate_certificate_number


if TYPE_CHECKING:
    from src.auth.service import UserService
    from src.catalog.models import Module
    from src.catalog.service import CatalogService
    from src.enrollments.models import ModuleEnrollment

    from .repository import CertificateRepository


logger = get_logger(__name__)

FALLBACK_STUDENT_NAME = "Student"
FALLBACK_CATEGORY_NAME = "General"
FALLBACK_INSTRUCTOR_NAME = "Instructor"


class CertificateNotFoundError(NotFoundError):
    """Certificate not found."""

    def __init__(self, message: str = "Certificate not found"):
        super().__init__(message, "certificate_not_found")


class CertificateRenderer(Protocol):
    """Turns a certificate record into a printable document (PDF)."""

    async def render(self, certificate: ModuleCertificate) -> bytes: ...


class CertificateService:
    """Service for issuing and looking up certificates."""

    def __init__(
        self,
        repository: "CertificateRepository",
        users: "UserService",
        catalog: "CatalogService",
        renderer: CertificateRenderer | None = None,
        number_prefix: str = DEFAULT_NUMBER_PREFIX,
    ):
        self.repository = repository
        self.users = users
        self.catalog = catalog
        self.renderer = renderer
        self.number_prefix = number_prefix

    async def _display_name(self, user_id: UUID | None, fallback: str) -> str:
        if user_id is None:
            return fallback
        user = await self.users.get_user(user_id)
        if user is None:
            return fallback
        return user.full_name or fallback

    async def issue(
        self,
        enrollment: "ModuleEnrollment",
        module: "Module",
        score: int,
    ) -> ModuleCertificate:
        """Mint the certificate for a passed enrollment.

        Display names are snapshotted now. The first assigned instructor is
        the one named on the certificate.
        """
        existing = await self.repository.get_for_enrollment(enrollment.id)
        if existing is not None:
            return existing

        category = await self.catalog.get_category(module.category_id)
        certificate = ModuleCertificate(
            enrollment_id=enrollment.id,
            student_id=enrollment.student_id,
            module_id=module.id,
            student_name=await self._display_name(
                enrollment.student_id, FALLBACK_STUDENT_NAME
            ),
            module_name=module.title,
            module_level=module.level,
            category_name=category.name if category else FALLBACK_CATEGORY_NAME,
            score_achieved=score,
            instructor_name=await self._display_name(
                module.instructor_ids[0] if module.instructor_ids else None,
                FALLBACK_INSTRUCTOR_NAME,
            ),
            certificate_number=generate_certificate_number(self.number_prefix),
        )

        if not await self.repository.insert_if_not_exists(certificate):
            stored = await self.repository.get_for_enrollment(enrollment.id)
            if stored is not None:
                return stored

        logger.info(
            "certificate_issued",
            enrollment_id=str(enrollment.id),
            student_id=str(enrollment.student_id),
            module_id=str(module.id),
            certificate_number=certificate.certificate_number,
            score=score,
        )
        return certificate

    async def get_for_enrollment(self, enrollment_id: UUID) -> ModuleCertificate | None:
        return await self.repository.get_for_enrollment(enrollment_id)

    async def get_by_public_id(self, public_id: UUID) -> ModuleCertificate:
        """Public verification lookup.

        Raises:
            CertificateNotFoundError: If no certificate has that public id
        """
        certificate = await self.repository.get_by_public_id(public_id)
        if certificate is None:
            raise CertificateNotFoundError
        return certificate

    async def list_for_student(self, student_id: UUID) -> list[ModuleCertificate]:
        return await self.repository.list_for_student(student_id)

    @property
    def can_render(self) -> bool:
        return self.renderer is not None

    async def render(self, public_id: UUID) -> tuple[ModuleCertificate, bytes]:
        """Render a certificate document.

        Raises:
            CertificateNotFoundError: If no certificate has that public id
            RuntimeError: If no renderer is configured
        """
        certificate = await self.get_by_public_id(public_id)
        if self.renderer is None:
            msg = "Certificate renderer is not configured"
            raise RuntimeError(msg)
        return certificate, await self.renderer.render(certificate)
