"""Dependency injection for acquisitions module."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import AcquisitionService


async def get_acquisition_service(request: Request) -> AcquisitionService:
    """Get AcquisitionService from app state."""
    service = getattr(request.app.state, "acquisition_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Acquisition service not available",
        )
    return service


AcquisitionServiceDep = Annotated[AcquisitionService, Depends(get_acquisition_service)]
