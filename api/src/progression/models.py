"""Student progression models.

One StudentProgression per (student, category). Tracks the three curriculum
levels; Beginner is always unlocked, Intermediate and Advanced unlock when
the preceding level has all of its published modules completed.

Level state is a small nested document stored as JSON next to the row's
``version`` column, which guards every write.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID

import orjson

from src.assessments.grader import percentage
from src.catalog.models import LEVEL_ORDER, ModuleLevel, ensure_utc_aware


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

STUDENT_PROGRESSIONS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.student_progressions (
    student_id UUID,
    category_id UUID,
    current_level TEXT,
    levels TEXT,
    completed_module_ids SET<UUID>,
    total_modules_in_category INT,
    overall_progress INT,
    version INT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    PRIMARY KEY ((student_id), category_id)
)
"""

PROGRESSION_TABLES_CQL = [STUDENT_PROGRESSIONS_TABLE_CQL]


# ==============================================================================
# Entities
# ==============================================================================


@dataclass
class LevelProgress:
    """Progress within one level."""

    total_modules: int = 0
    completed_modules: int = 0
    is_unlocked: bool = False
    is_completed: bool = False
    unlocked_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LevelProgress":
        unlocked_at = data.get("unlocked_at")
        completed_at = data.get("completed_at")
        return cls(
            total_modules=data.get("total_modules", 0),
            completed_modules=data.get("completed_modules", 0),
            is_unlocked=data.get("is_unlocked", False),
            is_completed=data.get("is_completed", False),
            unlocked_at=datetime.fromisoformat(unlocked_at) if unlocked_at else None,
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_modules": self.total_modules,
            "completed_modules": self.completed_modules,
            "is_unlocked": self.is_unlocked,
            "is_completed": self.is_completed,
            "unlocked_at": self.unlocked_at.isoformat() if self.unlocked_at else None,
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


@dataclass
class StudentProgression:
    """Level unlock state of one student in one category."""

    student_id: UUID
    category_id: UUID
    current_level: ModuleLevel = ModuleLevel.BEGINNER
    levels: dict[ModuleLevel, LevelProgress] = field(default_factory=dict)
    completed_module_ids: set[UUID] = field(default_factory=set)
    total_modules_in_category: int = 0
    overall_progress: int = 0
    version: int = 0
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def level(self, level: ModuleLevel) -> LevelProgress:
        return self.levels.setdefault(level, LevelProgress())

    def levels_json(self) -> str:
        return orjson.dumps(
            {level.value: self.level(level).to_dict() for level in LEVEL_ORDER}
        ).decode()

    @classmethod
    def from_row(cls, row: Any) -> "StudentProgression":
        """Create StudentProgression from Cassandra row."""
        raw_levels = orjson.loads(row.levels) if row.levels else {}
        return cls(
            student_id=row.student_id,
            category_id=row.category_id,
            current_level=ModuleLevel(row.current_level),
            levels={
                level: LevelProgress.from_dict(raw_levels.get(level.value, {}))
                for level in LEVEL_ORDER
            },
            completed_module_ids=set(row.completed_module_ids or ()),
            total_modules_in_category=row.total_modules_in_category or 0,
            overall_progress=row.overall_progress or 0,
            version=row.version or 0,
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
            updated_at=ensure_utc_aware(row.updated_at) or datetime.now(UTC),
        )


@dataclass(frozen=True)
class LevelStatus:
    """Read-only view of one level for the student."""

    level: ModuleLevel
    is_unlocked: bool
    is_completed: bool
    total_modules: int
    completed_modules: int
    reason: str | None = None


# ==============================================================================
# Transitions
# ==============================================================================


def new_progression(
    student_id: UUID,
    category_id: UUID,
    published_counts: dict[ModuleLevel, int],
    now: datetime | None = None,
) -> StudentProgression:
    """Fresh progression with Beginner unlocked."""
    now = now or datetime.now(UTC)
    levels = {
        level: LevelProgress(total_modules=published_counts.get(level, 0))
        for level in LEVEL_ORDER
    }
    beginner = levels[ModuleLevel.BEGINNER]
    beginner.is_unlocked = True
    beginner.unlocked_at = now

    return StudentProgression(
        student_id=student_id,
        category_id=category_id,
        levels=levels,
        total_modules_in_category=sum(published_counts.get(lv, 0) for lv in LEVEL_ORDER),
        created_at=now,
        updated_at=now,
    )


def refresh_totals(
    progression: StudentProgression,
    published_counts: dict[ModuleLevel, int],
) -> None:
    """Update per-level module totals to the live published counts."""
    for level in LEVEL_ORDER:
        progression.level(level).total_modules = published_counts.get(level, 0)
    progression.total_modules_in_category = sum(
        published_counts.get(level, 0) for level in LEVEL_ORDER
    )


def record_module_completion(
    progression: StudentProgression,
    module_id: UUID,
    level: ModuleLevel,
    now: datetime | None = None,
) -> ModuleLevel | None:
    """Apply a module completion.

    A module already recorded is not counted again. When the level's
    completed count reaches its total the level completes and its successor
    unlocks. Unlocks are never reverted.

    Returns:
        The newly unlocked level, if any
    """
    now = now or datetime.now(UTC)
    progress = progression.level(level)

    if module_id not in progression.completed_module_ids:
        progression.completed_module_ids.add(module_id)
        progress.completed_modules += 1

    unlocked: ModuleLevel | None = None
    if (
        not progress.is_completed
        and progress.total_modules > 0
        and progress.completed_modules >= progress.total_modules
    ):
        progress.is_completed = True
        progress.completed_at = now

        successor = level.next_level
        if successor is not None:
            next_progress = progression.level(successor)
            if not next_progress.is_unlocked:
                next_progress.is_unlocked = True
                next_progress.unlocked_at = now
                unlocked = successor
            progression.current_level = max(
                progression.current_level, successor, key=LEVEL_ORDER.index
            )

    progression.overall_progress = percentage(
        len(progression.completed_module_ids),
        progression.total_modules_in_category,
    )
    progression.updated_at = now
    return unlocked


def can_access_level(
    progression: StudentProgression | None,
    level: ModuleLevel,
) -> bool:
    """Beginner is always open; other levels need their unlock flag."""
    if level == ModuleLevel.BEGINNER:
        return True
    if progression is None:
        return False
    return progression.level(level).is_unlocked


def locked_reason(level: ModuleLevel) -> str | None:
    previous = level.previous_level
    if previous is None:
        return None
    return f"Complete and pass all {previous.label} modules to unlock this level."


def level_access_status(progression: StudentProgression | None) -> list[LevelStatus]:
    """Project the three levels with a reason for each locked one.

    A student with no progression yet sees Beginner open and nothing done.
    """
    statuses = []
    for level in LEVEL_ORDER:
        progress = (
            progression.level(level) if progression is not None else LevelProgress()
        )
        is_unlocked = can_access_level(progression, level)
        statuses.append(
            LevelStatus(
                level=level,
                is_unlocked=is_unlocked,
                is_completed=progress.is_completed,
                total_modules=progress.total_modules,
                completed_modules=progress.completed_modules,
                reason=None if is_unlocked else locked_reason(level),
            )
        )
    return statuses
