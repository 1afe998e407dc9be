"""Database models for the curriculum catalog.

Cassandra table definitions for:
- Categories: top-level subject grouping with its own access policy
- Modules: curriculum unit (lessons + final assessment stored as JSON text)
- Lookup tables: modules by category, for per-level counts
- Counters: module enrollment count

Lessons and assessments are nested documents; they are always read and
written together with their module, so they live in JSON columns.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import orjson

from src.assessments.models import FinalAssessment, LessonAssessment


class CategoryAccessType(str, Enum):
    """How a category is unlocked."""

    FREE = "free"  # Free for the assigned fellow cohort only
    PAID = "paid"  # Fellows free, everyone else pays
    RESTRICTED = "restricted"  # Like paid, optionally no purchase path at all


class ModuleLevel(str, Enum):
    """Curriculum tier within a category."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @property
    def next_level(self) -> "ModuleLevel | None":
        """Level unlocked by completing this one (Advanced has none)."""
        index = LEVEL_ORDER.index(self)
        return LEVEL_ORDER[index + 1] if index + 1 < len(LEVEL_ORDER) else None

    @property
    def previous_level(self) -> "ModuleLevel | None":
        """Level that must be completed to unlock this one."""
        index = LEVEL_ORDER.index(self)
        return LEVEL_ORDER[index - 1] if index > 0 else None


LEVEL_ORDER: tuple[ModuleLevel, ...] = (
    ModuleLevel.BEGINNER,
    ModuleLevel.INTERMEDIATE,
    ModuleLevel.ADVANCED,
)


class ModuleStatus(str, Enum):
    """Module publication lifecycle."""

    DRAFT = "draft"  # Being authored by an instructor
    SUBMITTED = "submitted"  # Waiting for admin review
    APPROVED = "approved"  # Accepted, not yet visible to students
    REJECTED = "rejected"  # Sent back to the instructor
    PUBLISHED = "published"  # Open for enrollment
    ARCHIVED = "archived"  # Retired, existing enrollments remain


MODULE_TRANSITIONS: dict[ModuleStatus, frozenset[ModuleStatus]] = {
    ModuleStatus.DRAFT: frozenset({ModuleStatus.SUBMITTED}),
    ModuleStatus.REJECTED: frozenset({ModuleStatus.SUBMITTED}),
    ModuleStatus.SUBMITTED: frozenset({ModuleStatus.APPROVED, ModuleStatus.REJECTED}),
    ModuleStatus.APPROVED: frozenset({ModuleStatus.PUBLISHED}),
    ModuleStatus.PUBLISHED: frozenset({ModuleStatus.ARCHIVED}),
    ModuleStatus.ARCHIVED: frozenset(),
}


# ==============================================================================
# Helper Functions
# ==============================================================================


def ensure_utc_aware(dt: datetime | None) -> datetime | None:
    """Ensure datetime is UTC-aware (Cassandra returns naive datetimes)."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CATEGORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.categories (
    id UUID PRIMARY KEY,
    name TEXT,
    description TEXT,
    access_type TEXT,
    price DECIMAL,
    allowed_roles SET<TEXT>,
    payment_required_for_non_eligible BOOLEAN,
    is_active BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules (
    id UUID PRIMARY KEY,
    title TEXT,
    description TEXT,
    category_id UUID,
    level TEXT,
    status TEXT,
    instructor_ids LIST<UUID>,
    lessons TEXT,
    final_assessment TEXT,
    rejection_reason TEXT,
    submitted_at TIMESTAMP,
    approved_at TIMESTAMP,
    published_at TIMESTAMP,
    created_at TIMESTAMP,
    updated_at TIMESTAMP
)
"""

# Lookup: modules per category, for "published modules per level" counts
MODULES_BY_CATEGORY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.modules_by_category (
    category_id UUID,
    module_id UUID,
    level TEXT,
    status TEXT,
    PRIMARY KEY (category_id, module_id)
)
"""

MODULE_ENROLLMENT_COUNTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_enrollment_counts (
    module_id UUID PRIMARY KEY,
    enrollment_count COUNTER
)
"""

CATALOG_TABLES_CQL = [
    CATEGORY_TABLE_CQL,
    MODULE_TABLE_CQL,
    MODULES_BY_CATEGORY_TABLE_CQL,
    MODULE_ENROLLMENT_COUNTS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Category:
    """Subject grouping with its own access policy.

    Attributes:
        access_type: free (fellows only), paid or restricted
        price: Purchase price for non-eligible users
        allowed_roles: Roles that get free access to a paid/restricted category
        payment_required_for_non_eligible: If False, a restricted category
            denies non-eligible users instead of asking for payment
    """

    name: str
    access_type: CategoryAccessType = CategoryAccessType.FREE
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    price: Decimal = Decimal(0)
    allowed_roles: frozenset[str] = frozenset()
    payment_required_for_non_eligible: bool = True
    is_active: bool = True
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Category":
        """Create Category from Cassandra row."""
        payment_required = row.payment_required_for_non_eligible
        return cls(
            id=row.id,
            name=row.name,
            description=row.description,
            access_type=CategoryAccessType(row.access_type),
            price=row.price or Decimal(0),
            allowed_roles=frozenset(row.allowed_roles or ()),
            payment_required_for_non_eligible=(
                True if payment_required is None else payment_required
            ),
            is_active=row.is_active if row.is_active is not None else True,
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
            updated_at=ensure_utc_aware(row.updated_at),
        )


@dataclass(frozen=True)
class Lesson:
    """Ordered content unit within a module."""

    title: str
    order: int
    description: str | None = None
    content: str | None = None
    assessment: LessonAssessment | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Lesson":
        assessment = data.get("assessment")
        return cls(
            title=data["title"],
            order=data.get("order", 0),
            description=data.get("description"),
            content=data.get("content"),
            assessment=LessonAssessment.from_dict(assessment) if assessment else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "order": self.order,
            "description": self.description,
            "content": self.content,
            "assessment": self.assessment.to_dict() if self.assessment else None,
        }


@dataclass
class Module:
    """Curriculum unit.

    Lessons are addressed by their position in ``lessons`` (lesson index).
    """

    title: str
    category_id: UUID
    level: ModuleLevel
    id: UUID = field(default_factory=uuid4)
    description: str | None = None
    status: ModuleStatus = ModuleStatus.DRAFT
    instructor_ids: list[UUID] = field(default_factory=list)
    lessons: list[Lesson] = field(default_factory=list)
    final_assessment: FinalAssessment | None = None
    rejection_reason: str | None = None
    submitted_at: datetime | None = None
    approved_at: datetime | None = None
    published_at: datetime | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime | None = None

    @property
    def total_lessons(self) -> int:
        return len(self.lessons)

    @property
    def is_published(self) -> bool:
        return self.status == ModuleStatus.PUBLISHED

    def is_instructor(self, user_id: UUID) -> bool:
        """Check if the user is assigned as instructor of this module."""
        return user_id in self.instructor_ids

    def lessons_json(self) -> str:
        return orjson.dumps([lesson.to_dict() for lesson in self.lessons]).decode()

    def final_assessment_json(self) -> str | None:
        if self.final_assessment is None:
            return None
        return orjson.dumps(self.final_assessment.to_dict()).decode()

    @classmethod
    def from_row(cls, row: Any) -> "Module":
        """Create Module from Cassandra row."""
        lessons = orjson.loads(row.lessons) if row.lessons else []
        final_assessment = (
            FinalAssessment.from_dict(orjson.loads(row.final_assessment))
            if row.final_assessment
            else None
        )
        return cls(
            id=row.id,
            title=row.title,
            description=row.description,
            category_id=row.category_id,
            level=ModuleLevel(row.level),
            status=ModuleStatus(row.status),
            instructor_ids=list(row.instructor_ids or []),
            lessons=[Lesson.from_dict(lesson) for lesson in lessons],
            final_assessment=final_assessment,
            rejection_reason=row.rejection_reason,
            submitted_at=ensure_utc_aware(row.submitted_at),
            approved_at=ensure_utc_aware(row.approved_at),
            published_at=ensure_utc_aware(row.published_at),
            created_at=ensure_utc_aware(row.created_at) or datetime.now(UTC),
            updated_at=ensure_utc_aware(row.updated_at),
        )

    def __repr__(self) -> str:
        return f"<Module {self.title} ({self.level.value}, {self.status.value})>"
