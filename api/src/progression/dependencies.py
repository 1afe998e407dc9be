"""Dependency injection for progression routes."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import ProgressionService


async def get_progression_service(request: Request) -> ProgressionService:
    """Get ProgressionService from app state."""
    service = getattr(request.app.state, "progression_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Progression service not available",
        )
    return service


ProgressionServiceDep = Annotated[ProgressionService, Depends(get_progression_service)]
