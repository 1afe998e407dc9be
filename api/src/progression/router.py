"""Progression API endpoints.

Provides:
- GET /v1/progression/my - All progressions of the caller
- GET /v1/progression/category/{category_id} - Progression (created on first read)
- GET /v1/progression/category/{category_id}/level-status - Per-level lock state
- GET /v1/progression/category/{category_id}/level/{level}/access - Level check
"""

from uuid import UUID

from fastapi import APIRouter

from src.auth.dependencies import CurrentUser
from src.catalog.models import ModuleLevel

from .dependencies import ProgressionServiceDep
from .schemas import LevelAccessResponse, LevelStatusResponse, ProgressionResponse


router = APIRouter(prefix="/v1/progression", tags=["progression"])


@router.get("/my", response_model=list[ProgressionResponse], summary="My progressions")
async def list_my_progressions(
    service: ProgressionServiceDep,
    user: CurrentUser,
) -> list[ProgressionResponse]:
    progressions = await service.list_progressions(UUID(str(user.id)))
    return [ProgressionResponse.from_progression(p) for p in progressions]


@router.get(
    "/category/{category_id}",
    response_model=ProgressionResponse,
    summary="Progression in a category",
)
async def get_category_progression(
    category_id: UUID,
    service: ProgressionServiceDep,
    user: CurrentUser,
) -> ProgressionResponse:
    progression = await service.get_progression(UUID(str(user.id)), category_id)
    return ProgressionResponse.from_progression(progression)


@router.get(
    "/category/{category_id}/level-status",
    response_model=list[LevelStatusResponse],
    summary="Level lock status",
)
async def get_level_status(
    category_id: UUID,
    service: ProgressionServiceDep,
    user: CurrentUser,
) -> list[LevelStatusResponse]:
    """Unlocked/completed state of every level, with a reason for locked ones."""
    statuses = await service.get_level_access_status(UUID(str(user.id)), category_id)
    return [LevelStatusResponse.from_status(s) for s in statuses]


@router.get(
    "/category/{category_id}/level/{level}/access",
    response_model=LevelAccessResponse,
    summary="Check level access",
)
async def check_level_access(
    category_id: UUID,
    level: ModuleLevel,
    service: ProgressionServiceDep,
    user: CurrentUser,
) -> LevelAccessResponse:
    can_access = await service.can_access_level(UUID(str(user.id)), category_id, level)
    return LevelAccessResponse(level=level, can_access=can_access)
