"""Pydantic schemas for student progression."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel

from src.catalog.models import LEVEL_ORDER, ModuleLevel

from .models import LevelProgress, LevelStatus, StudentProgression


class LevelProgressResponse(BaseModel):
    total_modules: int
    completed_modules: int
    is_unlocked: bool
    is_completed: bool
    unlocked_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_level(cls, progress: LevelProgress) -> "LevelProgressResponse":
        return cls(
            total_modules=progress.total_modules,
            completed_modules=progress.completed_modules,
            is_unlocked=progress.is_unlocked,
            is_completed=progress.is_completed,
            unlocked_at=progress.unlocked_at,
            completed_at=progress.completed_at,
        )


class ProgressionResponse(BaseModel):
    """Student progression in one category."""

    student_id: UUID
    category_id: UUID
    current_level: ModuleLevel
    levels: dict[ModuleLevel, LevelProgressResponse]
    completed_module_ids: list[UUID]
    total_modules_in_category: int
    overall_progress: int
    updated_at: datetime

    @classmethod
    def from_progression(cls, progression: StudentProgression) -> "ProgressionResponse":
        return cls(
            student_id=progression.student_id,
            category_id=progression.category_id,
            current_level=progression.current_level,
            levels={
                level: LevelProgressResponse.from_level(progression.level(level))
                for level in LEVEL_ORDER
            },
            completed_module_ids=sorted(progression.completed_module_ids, key=str),
            total_modules_in_category=progression.total_modules_in_category,
            overall_progress=progression.overall_progress,
            updated_at=progression.updated_at,
        )


class LevelStatusResponse(BaseModel):
    level: ModuleLevel
    is_unlocked: bool
    is_completed: bool
    total_modules: int
    completed_modules: int
    reason: str | None = None

    @classmethod
    def from_status(cls, status: LevelStatus) -> "LevelStatusResponse":
        return cls(
            level=status.level,
            is_unlocked=status.is_unlocked,
            is_completed=status.is_completed,
            total_modules=status.total_modules,
            completed_modules=status.completed_modules,
            reason=status.reason,
        )


class LevelAccessResponse(BaseModel):
    level: ModuleLevel
    can_access: bool
