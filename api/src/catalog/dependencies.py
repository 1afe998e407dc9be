"""FastAPI dependencies for the catalog.

Provides dependency injection for:
- CatalogService instance (set on app.state by main.py)
- Module visibility and answer-key rules
"""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, Request, status

from src.auth.permissions import is_admin
from src.auth.schemas import UserResponse

from .models import Module
from .service import CatalogService


async def get_catalog_service(request: Request) -> CatalogService:
    """Get CatalogService from app state."""
    service = getattr(request.app.state, "catalog_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Catalog service not available",
        )
    return service


CatalogServiceDep = Annotated[CatalogService, Depends(get_catalog_service)]


def can_manage_module(user: UserResponse, module: Module) -> bool:
    """Admins and the module's instructors manage it and see answer keys."""
    return is_admin(user.role) or module.is_instructor(UUID(str(user.id)))


def can_view_module(user: UserResponse, module: Module) -> bool:
    """Published modules are visible to everyone signed in.

    Anything else is visible to its instructors and admins only.
    """
    return module.is_published or can_manage_module(user, module)
