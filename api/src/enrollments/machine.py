"""Enrollment state transitions.

Pure functions over a ModuleEnrollment and the Module it belongs to. They
validate the transition, mutate the enrollment in place and return the
outcome; persistence and side effects belong to the service.

    ENROLLED -> IN_PROGRESS -> PENDING_REVIEW -> COMPLETED
                     |  ^             |
                     v  |             v
                REPEAT_REQUIRED <-----+

A final attempt that fails with no attempts left forces a module repeat:
every lesson is reset and the attempt counter starts over. Completing all
lessons again returns the enrollment to IN_PROGRESS.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime
from enum import Enum
from uuid import UUID

from src.assessments.grader import grade, pending_review_results, validate_answers
from src.assessments.models import (
    Answer,
    FinalAssessment,
    GradeResult,
    QuestionResult,
)
from src.catalog.models import Module

from .errors import (
    REPEAT_REQUIRED_MESSAGE,
    AlreadyCompletedError,
    AttemptLimitExceededError,
    IncompleteLessonsError,
    LessonNotFoundError,
    NoFinalAssessmentError,
    NoLessonAssessmentError,
    NoPendingReviewError,
    NotAssignedInstructorError,
    PendingReviewError,
    RepeatRequiredError,
)
from .models import AttemptRecord, EnrollmentState, LessonProgress, ModuleEnrollment


PASSED_MESSAGE = "Congratulations! You passed the final assessment."
PENDING_REVIEW_MESSAGE = "Essay submitted successfully. Awaiting instructor grading."
REPEAT_FORCED_MESSAGE = REPEAT_REQUIRED_MESSAGE
RETRY_MESSAGE = "You did not pass. You may attempt the assessment again."


class FinalStatus(str, Enum):
    """Outcome of a final assessment submission or essay grading."""

    PENDING_REVIEW = "pending_review"
    PASSED = "passed"
    FAILED = "failed"
    REPEAT_REQUIRED = "repeat_required"


@dataclass(frozen=True)
class FinalOutcome:
    status: FinalStatus
    score: int = 0
    results: list[QuestionResult] = field(default_factory=list)
    remaining_attempts: int | None = None

    @property
    def passed(self) -> bool:
        return self.status == FinalStatus.PASSED

    @property
    def repeat_forced(self) -> bool:
        return self.status == FinalStatus.REPEAT_REQUIRED

    @property
    def message(self) -> str:
        match self.status:
            case FinalStatus.PASSED:
                return PASSED_MESSAGE
            case FinalStatus.PENDING_REVIEW:
                return PENDING_REVIEW_MESSAGE
            case FinalStatus.REPEAT_REQUIRED:
                return REPEAT_FORCED_MESSAGE
            case FinalStatus.FAILED:
                if self.remaining_attempts is None:
                    return RETRY_MESSAGE
                return f"{RETRY_MESSAGE} Remaining attempts: {self.remaining_attempts}."


def _now(now: datetime | None) -> datetime:
    return now or datetime.now(UTC)


def _attempts_exhausted(used: int, max_attempts: int) -> bool:
    return max_attempts > 0 and used >= max_attempts


def new_enrollment(
    student_id: UUID,
    module: Module,
    now: datetime | None = None,
) -> ModuleEnrollment:
    """Fresh enrollment with one zeroed progress entry per lesson."""
    now = _now(now)
    return ModuleEnrollment(
        student_id=student_id,
        module_id=module.id,
        category_id=module.category_id,
        lesson_progress=[LessonProgress(lesson_index=i) for i in range(module.total_lessons)],
        enrolled_at=now,
        last_accessed_at=now,
    )


def _require_lesson(enrollment: ModuleEnrollment, lesson_index: int) -> LessonProgress:
    progress = enrollment.lesson(lesson_index)
    if progress is None:
        raise LessonNotFoundError
    return progress


def _touch(enrollment: ModuleEnrollment, lesson_index: int, now: datetime) -> None:
    enrollment.last_accessed_lesson = lesson_index
    enrollment.last_accessed_at = now
    if enrollment.state == EnrollmentState.ENROLLED:
        enrollment.state = EnrollmentState.IN_PROGRESS


def _mark_lesson_completed(
    enrollment: ModuleEnrollment,
    progress: LessonProgress,
    now: datetime,
) -> bool:
    if progress.is_completed:
        return False

    progress.is_completed = True
    progress.completed_at = now

    # Re-completing every lesson satisfies a forced repeat
    if enrollment.requires_module_repeat and enrollment.all_lessons_completed:
        enrollment.state = EnrollmentState.IN_PROGRESS
    return True


def complete_lesson(
    enrollment: ModuleEnrollment,
    lesson_index: int,
    now: datetime | None = None,
) -> bool:
    """Mark a lesson completed. Idempotent.

    Returns:
        True if the lesson was newly completed

    Raises:
        LessonNotFoundError: If the index is out of range
    """
    now = _now(now)
    progress = _require_lesson(enrollment, lesson_index)
    _touch(enrollment, lesson_index, now)
    return _mark_lesson_completed(enrollment, progress, now)


def submit_lesson_assessment(
    enrollment: ModuleEnrollment,
    module: Module,
    lesson_index: int,
    answers: Sequence[Answer],
    now: datetime | None = None,
) -> GradeResult:
    """Grade a lesson quiz attempt; a pass also completes the lesson.

    Raises:
        LessonNotFoundError: If the index is out of range
        NoLessonAssessmentError: If the lesson has no quiz
        AttemptLimitExceededError: If the quiz attempts are used up
        PayloadValidationError: If answers are malformed
    """
    now = _now(now)
    if not 0 <= lesson_index < module.total_lessons:
        raise LessonNotFoundError
    progress = _require_lesson(enrollment, lesson_index)

    assessment = module.lessons[lesson_index].assessment
    if assessment is None:
        raise NoLessonAssessmentError
    if _attempts_exhausted(progress.assessment_attempts, assessment.max_attempts):
        raise AttemptLimitExceededError(
            "Maximum attempts reached for this lesson assessment"
        )
    validate_answers(assessment.questions, answers)

    result = grade(assessment.questions, answers, assessment.passing_score)

    progress.assessment_attempts += 1
    progress.last_score = result.score
    progress.assessment_passed = result.passed
    if result.passed:
        _mark_lesson_completed(enrollment, progress, now)
    _touch(enrollment, lesson_index, now)
    return result


def _require_final_assessment(module: Module) -> FinalAssessment:
    if module.final_assessment is None:
        raise NoFinalAssessmentError
    return module.final_assessment


def _force_repeat(enrollment: ModuleEnrollment) -> None:
    enrollment.state = EnrollmentState.REPEAT_REQUIRED
    enrollment.module_repeat_count += 1
    for progress in enrollment.lesson_progress:
        progress.reset()
    enrollment.final_assessment_attempts = 0


def _apply_decision(
    enrollment: ModuleEnrollment,
    assessment: FinalAssessment,
    passed: bool,
    score: int,
    results: list[QuestionResult],
    now: datetime,
) -> FinalOutcome:
    """Shared pass/fail consequences of auto-grading and essay grading."""
    enrollment.final_assessment_score = score
    enrollment.final_assessment_passed = passed
    enrollment.final_assessment_results = results

    if passed:
        enrollment.state = EnrollmentState.COMPLETED
        enrollment.completed_at = now
        enrollment.certificate_earned = True
        enrollment.certificate_issued_at = now
        return FinalOutcome(FinalStatus.PASSED, score, results)

    used = enrollment.final_assessment_attempts
    if _attempts_exhausted(used, assessment.max_attempts):
        _force_repeat(enrollment)
        return FinalOutcome(FinalStatus.REPEAT_REQUIRED, score, results, 0)

    enrollment.state = EnrollmentState.IN_PROGRESS
    remaining = assessment.max_attempts - used if assessment.max_attempts > 0 else None
    return FinalOutcome(FinalStatus.FAILED, score, results, remaining)


def submit_final_assessment(
    enrollment: ModuleEnrollment,
    module: Module,
    answers: Sequence[Answer],
    now: datetime | None = None,
) -> FinalOutcome:
    """Submit the final assessment.

    Essay-bearing assessments are stored ungraded for an instructor; all
    others are graded immediately.

    Raises:
        NoFinalAssessmentError: If the module has no final assessment
        AlreadyCompletedError: If the module was already passed
        PendingReviewError: If a previous submission awaits grading
        RepeatRequiredError: If the module must be repeated first
        IncompleteLessonsError: If any lesson is not completed
        AttemptLimitExceededError: If no attempts are left
        PayloadValidationError: If answers are malformed
    """
    now = _now(now)
    assessment = _require_final_assessment(module)

    match enrollment.state:
        case EnrollmentState.COMPLETED:
            raise AlreadyCompletedError
        case EnrollmentState.PENDING_REVIEW:
            raise PendingReviewError
        case EnrollmentState.REPEAT_REQUIRED:
            raise RepeatRequiredError

    if not enrollment.all_lessons_completed:
        raise IncompleteLessonsError
    if _attempts_exhausted(enrollment.final_assessment_attempts, assessment.max_attempts):
        raise AttemptLimitExceededError(REPEAT_FORCED_MESSAGE)
    validate_answers(assessment.questions, answers)

    enrollment.final_assessment_attempts += 1
    enrollment.last_accessed_at = now
    record = AttemptRecord(
        cycle=enrollment.cycle,
        attempt=enrollment.final_assessment_attempts,
        submitted_at=now,
    )

    if assessment.has_essay:
        results = pending_review_results(assessment.questions, answers)
        enrollment.final_assessment_results = results
        enrollment.state = EnrollmentState.PENDING_REVIEW
        enrollment.essay_submitted_at = now
        enrollment.attempt_history.append(record)
        return FinalOutcome(FinalStatus.PENDING_REVIEW, 0, results)

    result = grade(assessment.questions, answers, assessment.passing_score)
    enrollment.attempt_history.append(
        replace(record, score=result.score, passed=result.passed, graded_at=now)
    )
    return _apply_decision(
        enrollment, assessment, result.passed, result.score, result.results, now
    )


def grade_essay(
    enrollment: ModuleEnrollment,
    module: Module,
    instructor_id: UUID,
    passed: bool,
    feedback: str,
    score: int | None = None,
    now: datetime | None = None,
) -> FinalOutcome:
    """Apply an instructor's decision to a pending essay submission.

    Without an explicit score a pass counts as 100 and a fail as 0.

    Raises:
        NoFinalAssessmentError: If the module has no final assessment
        NoPendingReviewError: If nothing is waiting for grading
        NotAssignedInstructorError: If the instructor is not on the module
    """
    now = _now(now)
    assessment = _require_final_assessment(module)

    if not enrollment.pending_instructor_review:
        raise NoPendingReviewError
    if not module.is_instructor(instructor_id):
        raise NotAssignedInstructorError

    final_score = score if score is not None else (100 if passed else 0)

    results = [
        replace(
            result,
            instructor_feedback=feedback,
            graded_at=now,
            graded_by=instructor_id,
            is_correct=passed,
            points_earned=result.max_points if passed else 0,
        )
        for result in enrollment.final_assessment_results
    ]

    for i in range(len(enrollment.attempt_history) - 1, -1, -1):
        if enrollment.attempt_history[i].is_pending:
            enrollment.attempt_history[i] = replace(
                enrollment.attempt_history[i],
                score=final_score,
                passed=passed,
                graded_by=instructor_id,
                graded_at=now,
            )
            break

    return _apply_decision(enrollment, assessment, passed, final_score, results, now)
