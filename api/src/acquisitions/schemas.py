"""Pydantic schemas for category acquisitions.

Request/Response models for:
- Checking category access facts
- Granting and revoking access (admin)
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from .models import AcquisitionStatus, AcquisitionType, CategoryAcquisition


# ==============================================================================
# Response Schemas
# ==============================================================================


class AcquisitionResponse(BaseModel):
    """Response schema for a single acquisition."""

    id: UUID = Field(..., description="Acquisition ID")
    user_id: UUID
    category_id: UUID
    acquisition_type: AcquisitionType
    status: AcquisitionStatus
    granted_by: UUID | None = None
    granted_at: datetime
    expires_at: datetime | None = None
    payment_amount: Decimal | None = None
    notes: str | None = None
    is_active: bool = Field(..., description="Whether access is currently active")

    @classmethod
    def from_acquisition(cls, acq: CategoryAcquisition) -> "AcquisitionResponse":
        """Create response from CategoryAcquisition entity."""
        return cls(
            id=acq.acquisition_id,
            user_id=acq.user_id,
            category_id=acq.category_id,
            acquisition_type=acq.acquisition_type,
            status=acq.status,
            granted_by=acq.granted_by,
            granted_at=acq.granted_at,
            expires_at=acq.expires_at,
            payment_amount=acq.payment_amount,
            notes=acq.notes,
            is_active=acq.is_active(),
        )


class CheckAccessResponse(BaseModel):
    """Caller's standing for a category."""

    category_id: UUID
    is_fellow: bool
    has_purchase: bool


class RevokeAccessResponse(BaseModel):
    revoked: int


# ==============================================================================
# Request Schemas
# ==============================================================================


class GrantAccessRequest(BaseModel):
    """Request to grant category access (admin).

    Use ``fellowship`` to assign a fellow, ``purchase``/``admin_grant`` to
    record paid access.
    """

    user_id: UUID
    category_id: UUID
    acquisition_type: AcquisitionType = AcquisitionType.ADMIN_GRANT
    expires_in_days: int | None = Field(
        None, description="Days until access expires (None = permanent)"
    )
    payment_id: str | None = Field(None, max_length=200)
    payment_amount: Decimal | None = Field(None, ge=0)
    notes: str | None = Field(None, description="Admin notes", max_length=500)


class RevokeAccessRequest(BaseModel):
    """Request to revoke category access (admin)."""

    user_id: UUID
    category_id: UUID
    acquisition_type: AcquisitionType | None = Field(
        None, description="Only revoke this type (None = all)"
    )
    reason: str | None = Field(None, description="Reason for revocation", max_length=500)
