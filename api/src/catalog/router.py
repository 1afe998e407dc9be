"""Catalog API endpoints.

Provides routes for:
- Categories: create, list, get
- Modules: create, get, and the submit/review/publish/archive lifecycle
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.auth.dependencies import AdminUser, CurrentUser, InstructorUser
from src.core.errors import DomainError, handle_domain_error

from .dependencies import CatalogServiceDep, can_manage_module, can_view_module
from .schemas import (
    CategoryResponse,
    CreateCategoryRequest,
    CreateModuleRequest,
    ModuleResponse,
    ReviewModuleRequest,
)


router = APIRouter(prefix="/v1/catalog", tags=["catalog"])


# ==============================================================================
# Categories
# ==============================================================================


@router.post(
    "/categories",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create category",
)
async def create_category(
    data: CreateCategoryRequest,
    catalog_service: CatalogServiceDep,
    _admin: AdminUser,
) -> CategoryResponse:
    """Create a new category (ADMIN only)."""
    category = await catalog_service.create_category(data)
    return CategoryResponse.from_category(category)


@router.get(
    "/categories",
    response_model=list[CategoryResponse],
    summary="List categories",
)
async def list_categories(
    catalog_service: CatalogServiceDep,
    _user: CurrentUser,
) -> list[CategoryResponse]:
    categories = await catalog_service.list_categories()
    return [CategoryResponse.from_category(c) for c in categories if c.is_active]


@router.get(
    "/categories/{category_id}",
    response_model=CategoryResponse,
    summary="Get category",
)
async def get_category(
    category_id: UUID,
    catalog_service: CatalogServiceDep,
    _user: CurrentUser,
) -> CategoryResponse:
    try:
        category = await catalog_service.require_category(category_id)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return CategoryResponse.from_category(category)


# ==============================================================================
# Modules
# ==============================================================================


@router.post(
    "/modules",
    response_model=ModuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create module",
)
async def create_module(
    data: CreateModuleRequest,
    catalog_service: CatalogServiceDep,
    user: InstructorUser,
) -> ModuleResponse:
    """Create a draft module (INSTRUCTOR or ADMIN)."""
    try:
        module = await catalog_service.create_module(data, UUID(str(user.id)))
    except DomainError as e:
        raise handle_domain_error(e) from e
    return ModuleResponse.from_module(module, with_keys=True)


@router.get(
    "/modules/{module_id}",
    response_model=ModuleResponse,
    summary="Get module",
)
async def get_module(
    module_id: UUID,
    catalog_service: CatalogServiceDep,
    user: CurrentUser,
) -> ModuleResponse:
    """Get module with lessons.

    Answer keys are only included for the module's instructors and admins.
    """
    module = await catalog_service.get_module(module_id)
    if module is None or not can_view_module(user, module):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Module not found",
        )

    return ModuleResponse.from_module(
        module,
        with_keys=can_manage_module(user, module),
        enrollment_count=await catalog_service.get_enrollment_count(module_id),
    )


@router.post(
    "/modules/{module_id}/submit",
    response_model=ModuleResponse,
    summary="Submit module for review",
)
async def submit_module(
    module_id: UUID,
    catalog_service: CatalogServiceDep,
    user: InstructorUser,
) -> ModuleResponse:
    """Submit a draft or rejected module for admin review."""
    try:
        module = await catalog_service.submit_module(module_id, user)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return ModuleResponse.from_module(module, with_keys=True)


@router.post(
    "/modules/{module_id}/review",
    response_model=ModuleResponse,
    summary="Approve or reject module",
)
async def review_module(
    module_id: UUID,
    data: ReviewModuleRequest,
    catalog_service: CatalogServiceDep,
    _admin: AdminUser,
) -> ModuleResponse:
    try:
        module = await catalog_service.review_module(module_id, data.approve, data.reason)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return ModuleResponse.from_module(module, with_keys=True)


@router.post(
    "/modules/{module_id}/publish",
    response_model=ModuleResponse,
    summary="Publish module",
)
async def publish_module(
    module_id: UUID,
    catalog_service: CatalogServiceDep,
    _admin: AdminUser,
) -> ModuleResponse:
    try:
        module = await catalog_service.publish_module(module_id)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return ModuleResponse.from_module(module, with_keys=True)


@router.post(
    "/modules/{module_id}/archive",
    response_model=ModuleResponse,
    summary="Archive module",
)
async def archive_module(
    module_id: UUID,
    catalog_service: CatalogServiceDep,
    _admin: AdminUser,
) -> ModuleResponse:
    try:
        module = await catalog_service.archive_module(module_id)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return ModuleResponse.from_module(module, with_keys=True)
