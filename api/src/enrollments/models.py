"""Database models for module enrollments.

Cassandra table definitions for:
- Module enrollments: one row per (student, module), the enrollment aggregate
- Lookups: enrollment by id, enrollments by module

The enrollment row holds lesson progress, final assessment results and the
attempt history as JSON columns. Every write is a lightweight transaction on
``version``.

Enrollment states:
- ENROLLED: created, nothing done yet
- IN_PROGRESS: working through lessons and assessments
- PENDING_REVIEW: essay final assessment waiting for an instructor
- REPEAT_REQUIRED: final attempts exhausted, lessons must be redone
- COMPLETED: final assessment passed
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

import orjson

from src.assessments.grader import percentage
from src.assessments.models import QuestionResult
from src.catalog.models import ensure_utc_aware


class EnrollmentState(str, Enum):
    """Lifecycle of a student's enrollment in one module."""

    ENROLLED = "enrolled"
    IN_PROGRESS = "in_progress"
    PENDING_REVIEW = "pending_review"
    REPEAT_REQUIRED = "repeat_required"
    COMPLETED = "completed"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

MODULE_ENROLLMENTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.module_enrollments (
    student_id UUID,
    module_id UUID,
    id UUID,
    category_id UUID,
    state TEXT,
    lesson_progress TEXT,
    final_assessment_attempts INT,
    final_assessment_score INT,
    final_assessment_passed BOOLEAN,
    final_assessment_results TEXT,
    attempt_history TEXT,
    module_repeat_count INT,
    certificate_earned BOOLEAN,
    certificate_public_id UUID,
    certificate_issued_at TIMESTAMP,
    essay_submitted_at TIMESTAMP,
    completed_at TIMESTAMP,
    enrolled_at TIMESTAMP,
    last_accessed_at TIMESTAMP,
    last_accessed_lesson INT,
    version INT,
    PRIMARY KEY ((student_id), module_id)
)
"""

ENROLLMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_id (
    id UUID PRIMARY KEY,
    student_id UUID,
    module_id UUID
)
"""

ENROLLMENTS_BY_MODULE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.enrollments_by_module (
    module_id UUID,
    student_id UUID,
    enrollment_id UUID,
    enrolled_at TIMESTAMP,
    PRIMARY KEY ((module_id), student_id)
)
"""

ENROLLMENTS_TABLES_CQL = [
    MODULE_ENROLLMENTS_TABLE_CQL,
    ENROLLMENTS_BY_ID_TABLE_CQL,
    ENROLLMENTS_BY_MODULE_TABLE_CQL,
]


def _parse_datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def _format_datetime(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class LessonProgress:
    """Progress on one lesson, addressed by its index in the module."""

    lesson_index: int
    is_completed: bool = False
    completed_at: datetime | None = None
    assessment_attempts: int = 0
    assessment_passed: bool = False
    last_score: int = 0

    def reset(self) -> None:
        self.is_completed = False
        self.completed_at = None
        self.assessment_attempts = 0
        self.assessment_passed = False
        self.last_score = 0

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LessonProgress":
        return cls(
            lesson_index=data["lesson_index"],
            is_completed=data.get("is_completed", False),
            completed_at=_parse_datetime(data.get("completed_at")),
            assessment_attempts=data.get("assessment_attempts", 0),
            assessment_passed=data.get("assessment_passed", False),
            last_score=data.get("last_score", 0),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "lesson_index": self.lesson_index,
            "is_completed": self.is_completed,
            "completed_at": _format_datetime(self.completed_at),
            "assessment_attempts": self.assessment_attempts,
            "assessment_passed": self.assessment_passed,
            "last_score": self.last_score,
        }


@dataclass(frozen=True)
class AttemptRecord:
    """Audit entry for one final assessment attempt.

    ``cycle`` counts module passes (1 + forced repeats so far). ``passed`` is
    None while an essay submission waits for grading.
    """

    cycle: int
    attempt: int
    submitted_at: datetime
    score: int | None = None
    passed: bool | None = None
    graded_by: UUID | None = None
    graded_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.passed is None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AttemptRecord":
        graded_by = data.get("graded_by")
        return cls(
            cycle=data["cycle"],
            attempt=data["attempt"],
            submitted_at=datetime.fromisoformat(data["submitted_at"]),
            score=data.get("score"),
            passed=data.get("passed"),
            graded_by=UUID(graded_by) if graded_by else None,
            graded_at=_parse_datetime(data.get("graded_at")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "cycle": self.cycle,
            "attempt": self.attempt,
            "submitted_at": self.submitted_at.isoformat(),
            "score": self.score,
            "passed": self.passed,
            "graded_by": str(self.graded_by) if self.graded_by else None,
            "graded_at": _format_datetime(self.graded_at),
        }


@dataclass
class ModuleEnrollment:
    """A student's journey through one module.

    ``state`` is the single source of truth; the boolean flags exposed to
    clients are derived from it. Progress is derived from lesson progress
    and cannot be set directly.
    """

    student_id: UUID
    module_id: UUID
    category_id: UUID
    id: UUID = field(default_factory=uuid4)
    state: EnrollmentState = EnrollmentState.ENROLLED
    lesson_progress: list[LessonProgress] = field(default_factory=list)
    final_assessment_attempts: int = 0
    final_assessment_score: int = 0
    final_assessment_passed: bool = False
    final_assessment_results: list[QuestionResult] = field(default_factory=list)
    attempt_history: list[AttemptRecord] = field(default_factory=list)
    module_repeat_count: int = 0
    certificate_earned: bool = False
    certificate_public_id: UUID | None = None
    certificate_issued_at: datetime | None = None
    essay_submitted_at: datetime | None = None
    completed_at: datetime | None = None
    enrolled_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    last_accessed_at: datetime | None = None
    last_accessed_lesson: int | None = None
    version: int = 0

    # Derived views

    @property
    def total_lessons(self) -> int:
        return len(self.lesson_progress)

    @property
    def completed_lessons(self) -> int:
        return sum(1 for lp in self.lesson_progress if lp.is_completed)

    @property
    def all_lessons_completed(self) -> bool:
        return self.completed_lessons >= self.total_lessons

    @property
    def progress(self) -> int:
        """Completed lessons as a rounded percentage (0 for no lessons)."""
        return percentage(self.completed_lessons, self.total_lessons)

    @property
    def requires_module_repeat(self) -> bool:
        return self.state == EnrollmentState.REPEAT_REQUIRED

    @property
    def pending_instructor_review(self) -> bool:
        return self.state == EnrollmentState.PENDING_REVIEW

    @property
    def is_completed(self) -> bool:
        return self.state == EnrollmentState.COMPLETED

    @property
    def cycle(self) -> int:
        return self.module_repeat_count + 1

    @property
    def needs_finalization(self) -> bool:
        """Completed, but progression/certificate follow-up not confirmed yet."""
        return self.is_completed and self.certificate_public_id is None

    def lesson(self, lesson_index: int) -> LessonProgress | None:
        if 0 <= lesson_index < len(self.lesson_progress):
            return self.lesson_progress[lesson_index]
        return None

    # JSON columns

    def lesson_progress_json(self) -> str:
        return orjson.dumps([lp.to_dict() for lp in self.lesson_progress]).decode()

    def final_results_json(self) -> str:
        return orjson.dumps([r.to_dict() for r in self.final_assessment_results]).decode()

    def attempt_history_json(self) -> str:
        return orjson.dumps([a.to_dict() for a in self.attempt_history]).decode()

    @classmethod
    def from_row(cls, row: Any) -> "ModuleEnrollment":
        """Create ModuleEnrollment from Cassandra row."""
        lesson_progress = orjson.loads(row.lesson_progress) if row.lesson_progress else []
        results = (
            orjson.loads(row.final_assessment_results)
            if row.final_assessment_results
            else []
        )
        history = orjson.loads(row.attempt_history) if row.attempt_history else []
        return cls(
            id=row.id,
            student_id=row.student_id,
            module_id=row.module_id,
            category_id=row.category_id,
            state=EnrollmentState(row.state),
            lesson_progress=[LessonProgress.from_dict(lp) for lp in lesson_progress],
            final_assessment_attempts=row.final_assessment_attempts or 0,
            final_assessment_score=row.final_assessment_score or 0,
            final_assessment_passed=row.final_assessment_passed or False,
            final_assessment_results=[QuestionResult.from_dict(r) for r in results],
            attempt_history=[AttemptRecord.from_dict(a) for a in history],
            module_repeat_count=row.module_repeat_count or 0,
            certificate_earned=row.certificate_earned or False,
            certificate_public_id=row.certificate_public_id,
            certificate_issued_at=ensure_utc_aware(row.certificate_issued_at),
            essay_submitted_at=ensure_utc_aware(row.essay_submitted_at),
            completed_at=ensure_utc_aware(row.completed_at),
            enrolled_at=ensure_utc_aware(row.enrolled_at) or datetime.now(UTC),
            last_accessed_at=ensure_utc_aware(row.last_accessed_at),
            last_accessed_lesson=row.last_accessed_lesson,
            version=row.version or 0,
        )

    def __repr__(self) -> str:
        return (
            f"<ModuleEnrollment {self.id} student={self.student_id} "
            f"module={self.module_id} ({self.state.value})>"
        )
