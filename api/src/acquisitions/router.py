"""HTTP endpoints for category acquisitions.

Provides:
- GET  /v1/acquisitions/check/{category_id} - Caller's fellowship/purchase status
- GET  /v1/acquisitions/my - Caller's acquisitions
- POST /v1/acquisitions/admin/grant - Grant access or assign a fellow
- POST /v1/acquisitions/admin/revoke - Revoke access
"""

from uuid import UUID

from fastapi import APIRouter, status

from src.auth.dependencies import AdminUser, CurrentUser
from src.catalog.dependencies import CatalogServiceDep
from src.core.errors import DomainError, handle_domain_error

from .dependencies import AcquisitionServiceDep
from .schemas import (
    AcquisitionResponse,
    CheckAccessResponse,
    GrantAccessRequest,
    RevokeAccessRequest,
    RevokeAccessResponse,
)


router = APIRouter(prefix="/v1/acquisitions", tags=["acquisitions"])


@router.get(
    "/check/{category_id}",
    response_model=CheckAccessResponse,
    summary="Check access to a category",
)
async def check_category_access(
    category_id: UUID,
    service: AcquisitionServiceDep,
    current_user: CurrentUser,
) -> CheckAccessResponse:
    facts = await service.get_access_facts(UUID(str(current_user.id)), category_id)
    return CheckAccessResponse(
        category_id=category_id,
        is_fellow=facts.is_fellow,
        has_purchase=facts.has_purchase,
    )


@router.get(
    "/my",
    response_model=list[AcquisitionResponse],
    summary="List my acquisitions",
)
async def list_my_acquisitions(
    service: AcquisitionServiceDep,
    current_user: CurrentUser,
    active_only: bool = False,
) -> list[AcquisitionResponse]:
    acquisitions = await service.get_user_acquisitions(
        UUID(str(current_user.id)), active_only=active_only
    )
    return [AcquisitionResponse.from_acquisition(a) for a in acquisitions]


# ==============================================================================
# Admin Endpoints
# ==============================================================================


@router.post(
    "/admin/grant",
    response_model=AcquisitionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Grant category access",
)
async def grant_access(
    request: GrantAccessRequest,
    service: AcquisitionServiceDep,
    catalog_service: CatalogServiceDep,
    admin: AdminUser,
) -> AcquisitionResponse:
    """Grant access to a category, or assign the user as a fellow (ADMIN only)."""
    try:
        await catalog_service.require_category(request.category_id)
        acquisition = await service.grant_access(
            user_id=request.user_id,
            category_id=request.category_id,
            acquisition_type=request.acquisition_type,
            granted_by=UUID(str(admin.id)),
            expires_in_days=request.expires_in_days,
            payment_id=request.payment_id,
            payment_amount=request.payment_amount,
            notes=request.notes,
        )
    except DomainError as e:
        raise handle_domain_error(e) from e
    return AcquisitionResponse.from_acquisition(acquisition)


@router.post(
    "/admin/revoke",
    response_model=RevokeAccessResponse,
    summary="Revoke category access",
)
async def revoke_access(
    request: RevokeAccessRequest,
    service: AcquisitionServiceDep,
    _admin: AdminUser,
) -> RevokeAccessResponse:
    try:
        revoked = await service.revoke_access(
            user_id=request.user_id,
            category_id=request.category_id,
            acquisition_type=request.acquisition_type,
            reason=request.reason,
        )
    except DomainError as e:
        raise handle_domain_error(e) from e
    return RevokeAccessResponse(revoked=revoked)
