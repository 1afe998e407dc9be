"""Enrollment domain errors."""

from src.access.gate import AccessDecision
from src.core.errors import ForbiddenError, InvalidStateError, NotFoundError


REPEAT_REQUIRED_MESSAGE = (
    "You have reached the maximum number of attempts. You must review and "
    "complete the module again before reattempting the final assessment."
)


class EnrollmentNotFoundError(NotFoundError):
    """Enrollment not found."""

    def __init__(self, message: str = "Enrollment not found"):
        super().__init__(message, "enrollment_not_found")


class LessonNotFoundError(NotFoundError):
    """Lesson index outside the module's lessons."""

    def __init__(self, message: str = "Lesson not found"):
        super().__init__(message, "lesson_not_found")


class NotEnrollmentOwnerError(ForbiddenError):
    """Caller does not own the enrollment."""

    def __init__(self, message: str = "This enrollment belongs to another student"):
        super().__init__(message, "not_enrollment_owner")


class NotAssignedInstructorError(ForbiddenError):
    """Instructor is not assigned to the module."""

    def __init__(
        self, message: str = "You are not assigned as instructor for this module"
    ):
        super().__init__(message, "not_assigned_instructor")


class EnrollmentRefusedError(ForbiddenError):
    """Access gate refused the enrollment; carries the decision."""

    def __init__(self, decision: AccessDecision, message: str):
        self.decision = decision
        super().__init__(message, "enrollment_refused")


class ModuleNotPublishedError(InvalidStateError):
    def __init__(self, message: str = "Module is not open for enrollment"):
        super().__init__(message, "module_not_published")


class RepeatRequiredError(InvalidStateError):
    def __init__(self, message: str = REPEAT_REQUIRED_MESSAGE):
        super().__init__(message, "repeat_required")


class IncompleteLessonsError(InvalidStateError):
    def __init__(
        self, message: str = "Complete all lessons before taking the final assessment."
    ):
        super().__init__(message, "incomplete_lessons")


class AttemptLimitExceededError(InvalidStateError):
    def __init__(self, message: str = "Maximum attempts reached for this assessment"):
        super().__init__(message, "attempt_limit_exceeded")


class NoPendingReviewError(InvalidStateError):
    def __init__(
        self,
        message: str = "This enrollment does not have a pending essay for review",
    ):
        super().__init__(message, "no_pending_review")


class NoFinalAssessmentError(InvalidStateError):
    def __init__(self, message: str = "Module has no final assessment"):
        super().__init__(message, "no_final_assessment")


class NoLessonAssessmentError(InvalidStateError):
    def __init__(self, message: str = "This lesson has no assessment"):
        super().__init__(message, "no_lesson_assessment")


class AlreadyCompletedError(InvalidStateError):
    def __init__(self, message: str = "You have already passed this module"):
        super().__init__(message, "already_completed")


class PendingReviewError(InvalidStateError):
    def __init__(
        self, message: str = "Your previous submission is awaiting instructor grading"
    ):
        super().__init__(message, "pending_review")
