"""Pydantic schemas for module enrollments.

Request and response models for:
- Assessment submissions and essay grading
- Enrollment state with derived progress
- Lesson quiz and final assessment outcomes
"""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from src.assessments.models import Answer, GradeResult, QuestionResult, QuestionType
from src.catalog.models import ModuleLevel

from .machine import FinalStatus
from .models import AttemptRecord, EnrollmentState, LessonProgress, ModuleEnrollment
from .service import FinalAssessmentSubmission


# ==============================================================================
# Requests
# ==============================================================================


class AnswerIn(BaseModel):
    """Answer to one question, addressed by its index."""

    question_index: int = Field(..., ge=0)
    answer: str = Field("", max_length=20000)


class SubmitAssessmentRequest(BaseModel):
    """Lesson quiz or final assessment submission."""

    answers: list[AnswerIn] = Field(..., max_length=500)

    def to_answers(self) -> list[Answer]:
        return [Answer(question_index=a.question_index, answer=a.answer) for a in self.answers]


class GradeEssayRequest(BaseModel):
    """Instructor decision on a pending essay submission.

    Accepts either `pass` or `passed` for the decision.
    """

    model_config = ConfigDict(populate_by_name=True)

    passed: bool = Field(..., validation_alias="pass")
    feedback: str = Field(..., min_length=1, max_length=10000)
    score: int | None = Field(None, ge=0, le=100)


# ==============================================================================
# Responses
# ==============================================================================


class LessonProgressResponse(BaseModel):
    lesson_index: int
    is_completed: bool
    completed_at: datetime | None
    assessment_attempts: int
    assessment_passed: bool
    last_score: int

    @classmethod
    def from_progress(cls, progress: LessonProgress) -> "LessonProgressResponse":
        return cls(
            lesson_index=progress.lesson_index,
            is_completed=progress.is_completed,
            completed_at=progress.completed_at,
            assessment_attempts=progress.assessment_attempts,
            assessment_passed=progress.assessment_passed,
            last_score=progress.last_score,
        )


class QuestionResultResponse(BaseModel):
    question_index: int
    question_text: str
    question_type: QuestionType
    student_answer: str
    max_points: int
    points_earned: int
    is_correct: bool
    correct_answer: str | None = None
    explanation: str | None = None
    instructor_feedback: str | None = None
    graded_at: datetime | None = None

    @classmethod
    def from_result(cls, result: QuestionResult) -> "QuestionResultResponse":
        return cls(
            question_index=result.question_index,
            question_text=result.question_text,
            question_type=result.question_type,
            student_answer=result.student_answer,
            max_points=result.max_points,
            points_earned=result.points_earned,
            is_correct=result.is_correct,
            correct_answer=result.correct_answer,
            explanation=result.explanation,
            instructor_feedback=result.instructor_feedback,
            graded_at=result.graded_at,
        )


class AttemptRecordResponse(BaseModel):
    cycle: int
    attempt: int
    submitted_at: datetime
    score: int | None
    passed: bool | None
    graded_at: datetime | None

    @classmethod
    def from_record(cls, record: AttemptRecord) -> "AttemptRecordResponse":
        return cls(
            cycle=record.cycle,
            attempt=record.attempt,
            submitted_at=record.submitted_at,
            score=record.score,
            passed=record.passed,
            graded_at=record.graded_at,
        )


class EnrollmentResponse(BaseModel):
    """Enrollment with derived progress and status flags."""

    id: UUID
    student_id: UUID
    module_id: UUID
    category_id: UUID
    state: EnrollmentState
    lesson_progress: list[LessonProgressResponse]
    total_lessons: int
    completed_lessons: int
    progress: int
    final_assessment_attempts: int
    final_assessment_score: int
    final_assessment_passed: bool
    final_assessment_results: list[QuestionResultResponse]
    attempt_history: list[AttemptRecordResponse]
    pending_instructor_review: bool
    requires_module_repeat: bool
    module_repeat_count: int
    is_completed: bool
    certificate_earned: bool
    certificate_public_id: UUID | None
    certificate_issued_at: datetime | None
    essay_submitted_at: datetime | None
    completed_at: datetime | None
    enrolled_at: datetime
    last_accessed_at: datetime | None
    last_accessed_lesson: int | None

    @classmethod
    def from_enrollment(cls, enrollment: ModuleEnrollment) -> "EnrollmentResponse":
        return cls(
            id=enrollment.id,
            student_id=enrollment.student_id,
            module_id=enrollment.module_id,
            category_id=enrollment.category_id,
            state=enrollment.state,
            lesson_progress=[
                LessonProgressResponse.from_progress(lp)
                for lp in enrollment.lesson_progress
            ],
            total_lessons=enrollment.total_lessons,
            completed_lessons=enrollment.completed_lessons,
            progress=enrollment.progress,
            final_assessment_attempts=enrollment.final_assessment_attempts,
            final_assessment_score=enrollment.final_assessment_score,
            final_assessment_passed=enrollment.final_assessment_passed,
            final_assessment_results=[
                QuestionResultResponse.from_result(r)
                for r in enrollment.final_assessment_results
            ],
            attempt_history=[
                AttemptRecordResponse.from_record(a) for a in enrollment.attempt_history
            ],
            pending_instructor_review=enrollment.pending_instructor_review,
            requires_module_repeat=enrollment.requires_module_repeat,
            module_repeat_count=enrollment.module_repeat_count,
            is_completed=enrollment.is_completed,
            certificate_earned=enrollment.certificate_earned,
            certificate_public_id=enrollment.certificate_public_id,
            certificate_issued_at=enrollment.certificate_issued_at,
            essay_submitted_at=enrollment.essay_submitted_at,
            completed_at=enrollment.completed_at,
            enrolled_at=enrollment.enrolled_at,
            last_accessed_at=enrollment.last_accessed_at,
            last_accessed_lesson=enrollment.last_accessed_lesson,
        )


class LessonAssessmentResultResponse(BaseModel):
    enrollment: EnrollmentResponse
    passed: bool
    score: int
    results: list[QuestionResultResponse]

    @classmethod
    def build(
        cls, enrollment: ModuleEnrollment, result: GradeResult
    ) -> "LessonAssessmentResultResponse":
        return cls(
            enrollment=EnrollmentResponse.from_enrollment(enrollment),
            passed=result.passed,
            score=result.score,
            results=[QuestionResultResponse.from_result(r) for r in result.results],
        )


class FinalAssessmentResultResponse(BaseModel):
    """Outcome of a final submission or an essay grading."""

    enrollment: EnrollmentResponse
    status: FinalStatus
    passed: bool
    score: int
    results: list[QuestionResultResponse]
    message: str
    remaining_attempts: int | None = None
    requires_module_repeat: bool = False
    level_unlocked: ModuleLevel | None = None
    certificate_public_id: UUID | None = None
    certificate_number: str | None = None

    @classmethod
    def from_submission(
        cls, submission: FinalAssessmentSubmission
    ) -> "FinalAssessmentResultResponse":
        outcome = submission.outcome
        certificate = submission.certificate
        return cls(
            enrollment=EnrollmentResponse.from_enrollment(submission.enrollment),
            status=outcome.status,
            passed=outcome.passed,
            score=outcome.score,
            results=[QuestionResultResponse.from_result(r) for r in outcome.results],
            message=outcome.message,
            remaining_attempts=outcome.remaining_attempts,
            requires_module_repeat=outcome.repeat_forced,
            level_unlocked=submission.level_unlocked,
            certificate_public_id=certificate.public_id if certificate else None,
            certificate_number=certificate.certificate_number if certificate else None,
        )
