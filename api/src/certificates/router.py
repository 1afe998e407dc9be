"""Certificate API endpoints.

Provides:
- GET /v1/certificates/my - Certificates of the caller
- GET /v1/certificates/verify/{public_id} - Public verification (no auth)
- GET /v1/certificates/{public_id}/pdf - Rendered certificate (owner or admin)
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Response, status

from src.auth.dependencies import CurrentUser
from src.auth.permissions import is_admin
from src.core.errors import DomainError, handle_domain_error

from .dependencies import CertificateServiceDep
from .schemas import CertificateResponse


router = APIRouter(prefix="/v1/certificates", tags=["certificates"])


@router.get("/my", response_model=list[CertificateResponse], summary="My certificates")
async def list_my_certificates(
    service: CertificateServiceDep,
    user: CurrentUser,
) -> list[CertificateResponse]:
    certificates = await service.list_for_student(UUID(str(user.id)))
    return [CertificateResponse.from_certificate(c) for c in certificates]


@router.get(
    "/verify/{public_id}",
    response_model=CertificateResponse,
    summary="Verify certificate",
)
async def verify_certificate(
    public_id: UUID,
    service: CertificateServiceDep,
) -> CertificateResponse:
    """Public lookup used by the verification page."""
    try:
        certificate = await service.get_by_public_id(public_id)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return CertificateResponse.from_certificate(certificate)


@router.get("/{public_id}/pdf", summary="Download certificate")
async def download_certificate(
    public_id: UUID,
    service: CertificateServiceDep,
    user: CurrentUser,
) -> Response:
    if not service.can_render:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Certificate rendering not available",
        )

    try:
        certificate = await service.get_by_public_id(public_id)
    except DomainError as e:
        raise handle_domain_error(e) from e

    if certificate.student_id != UUID(str(user.id)) and not is_admin(user.role):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Certificate not found",
        )

    _, content = await service.render(public_id)
    return Response(
        content=content,
        media_type="application/pdf",
        headers={
            "Content-Disposition": (
                f'attachment; filename="{certificate.certificate_number}.pdf"'
            )
        },
    )
