"""Progression tracker.

Owns level unlock state per (student, category). Progressions are created
lazily on first enrollment or first read. Module completions are applied
with a read, transition, compare-and-set loop.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from src.catalog.models import Module, ModuleLevel
from src.core.errors import ConcurrencyConflictError
from src.core.logging import get_logger

from .models import (
    LevelStatus,
    StudentProgression,
    can_access_level,
    level_access_status,
    new_progression,
    record_module_completion,
    refresh_totals,
)


if TYPE_CHECKING:
    from src.catalog.service import CatalogService

    from .repository import ProgressionRepository


logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 5


class ProgressionService:
    """Service for student level progression."""

    def __init__(
        self,
        repository: "ProgressionRepository",
        catalog: "CatalogService",
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.repository = repository
        self.catalog = catalog
        self.max_retries = max_retries

    async def initialize(self, student_id: UUID, category_id: UUID) -> StudentProgression:
        """Return the progression, creating it if the student has none yet.

        Safe to call concurrently: only one insert wins, the others read it.
        """
        existing = await self.repository.get(student_id, category_id)
        if existing is not None:
            return existing

        counts = await self.catalog.count_published_modules_by_level(category_id)
        progression = new_progression(student_id, category_id, counts)

        if await self.repository.insert_if_not_exists(progression):
            logger.info(
                "progression_initialized",
                student_id=str(student_id),
                category_id=str(category_id),
                total_modules=progression.total_modules_in_category,
            )
            return progression

        stored = await self.repository.get(student_id, category_id)
        return stored if stored is not None else progression

    async def get_progression(
        self,
        student_id: UUID,
        category_id: UUID,
    ) -> StudentProgression:
        return await self.initialize(student_id, category_id)

    async def list_progressions(self, student_id: UUID) -> list[StudentProgression]:
        return await self.repository.list_for_student(student_id)

    async def can_access_level(
        self,
        student_id: UUID,
        category_id: UUID,
        level: ModuleLevel,
    ) -> bool:
        """Beginner always; otherwise the stored unlock flag (False if none)."""
        if level == ModuleLevel.BEGINNER:
            return True
        progression = await self.repository.get(student_id, category_id)
        return can_access_level(progression, level)

    async def get_level_access_status(
        self,
        student_id: UUID,
        category_id: UUID,
    ) -> list[LevelStatus]:
        """Read-only: a missing progression is projected, never created."""
        progression = await self.repository.get(student_id, category_id)
        return level_access_status(progression)

    async def on_module_completed(
        self,
        student_id: UUID,
        module: Module,
    ) -> ModuleLevel | None:
        """Record a completed module.

        Idempotent per module id. Returns the level newly unlocked by this
        completion, if any.

        Raises:
            ConcurrencyConflictError: If every retry lost a write race
        """
        counts = await self.catalog.count_published_modules_by_level(module.category_id)

        for attempt in range(1, self.max_retries + 1):
            progression = await self.initialize(student_id, module.category_id)
            if module.id in progression.completed_module_ids:
                return None

            expected_version = progression.version
            refresh_totals(progression, counts)
            unlocked = record_module_completion(progression, module.id, module.level)
            progression.version = expected_version + 1

            if await self.repository.compare_and_set(progression, expected_version):
                logger.info(
                    "module_completion_recorded",
                    student_id=str(student_id),
                    category_id=str(module.category_id),
                    module_id=str(module.id),
                    level=module.level.value,
                    unlocked_level=unlocked.value if unlocked else None,
                    overall_progress=progression.overall_progress,
                )
                return unlocked

            logger.warning(
                "progression_write_conflict",
                student_id=str(student_id),
                category_id=str(module.category_id),
                attempt=attempt,
            )

        raise ConcurrencyConflictError
