"""Enrollment service layer.

Business logic for:
- Enrolling (access gate, lazy progression, race-free creation)
- Lesson completion and lesson quizzes
- Final assessment submission and instructor essay grading
- Completion follow-up: progression update, certificate, notifications

Every mutation is read -> pure transition -> compare-and-set on the row
version. A lost race re-reads the row and re-applies the transition, so two
concurrent submissions can never both consume the same attempt.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar
from uuid import UUID

from src.access.gate import Allowed, Denied, LevelLocked, PaymentRequired
from src.assessments.models import Answer, GradeResult
from src.auth.permissions import is_admin
from src.catalog.models import Module, ModuleLevel
from src.core.errors import ConcurrencyConflictError
from src.core.logging import get_logger

from . import machine
from .errors import (
    EnrollmentNotFoundError,
    EnrollmentRefusedError,
    ModuleNotPublishedError,
    NotAssignedInstructorError,
    NotEnrollmentOwnerError,
)
from .machine import FinalOutcome, FinalStatus
from .models import ModuleEnrollment


if TYPE_CHECKING:
    from src.access.gate import AccessGate
    from src.auth.schemas import UserResponse
    from src.catalog.service import CatalogService
    from src.certificates.models import ModuleCertificate
    from src.certificates.service import CertificateService
    from src.progression.service import ProgressionService

    from .effects import EnrollmentEffects
    from .repository import EnrollmentRepository


logger = get_logger(__name__)

DEFAULT_MAX_RETRIES = 5

T = TypeVar("T")


@dataclass(frozen=True)
class FinalAssessmentSubmission:
    """Committed enrollment plus what the final attempt led to."""

    enrollment: ModuleEnrollment
    outcome: FinalOutcome
    level_unlocked: ModuleLevel | None = None
    certificate: "ModuleCertificate | None" = None


@dataclass(frozen=True)
class _Completion:
    enrollment: ModuleEnrollment
    level_unlocked: ModuleLevel | None
    certificate: "ModuleCertificate | None"


def _user_uuid(user: "UserResponse") -> UUID:
    return UUID(str(user.id))


def _refusal_message(decision: PaymentRequired | LevelLocked | Denied) -> str:
    match decision:
        case PaymentRequired():
            return f"Payment required to access {decision.category_name}"
        case LevelLocked():
            return decision.message
        case Denied():
            return decision.reason


class EnrollmentService:
    """Service for module enrollments."""

    def __init__(
        self,
        repository: "EnrollmentRepository",
        catalog: "CatalogService",
        gate: "AccessGate",
        progression: "ProgressionService",
        certificates: "CertificateService",
        effects: "EnrollmentEffects",
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        self.repository = repository
        self.catalog = catalog
        self.gate = gate
        self.progression = progression
        self.certificates = certificates
        self.effects = effects
        self.max_retries = max_retries

    # ==========================================================================
    # Enroll
    # ==========================================================================

    async def enroll(self, user: "UserResponse", module_id: UUID) -> ModuleEnrollment:
        """Enroll the caller in a module. Idempotent.

        Raises:
            ModuleNotFoundError: If the module does not exist
            ModuleNotPublishedError: If the module is not published
            EnrollmentRefusedError: If the access gate refuses
        """
        student_id = _user_uuid(user)
        module = await self.catalog.require_module(module_id)

        existing = await self.repository.get_for_student_module(student_id, module.id)
        if existing is not None:
            return existing

        if not module.is_published:
            raise ModuleNotPublishedError

        category = await self.catalog.require_category(module.category_id)
        decision = await self.gate.can_enroll(student_id, user.role, module, category)
        if not isinstance(decision, Allowed):
            raise EnrollmentRefusedError(decision, _refusal_message(decision))

        await self.progression.initialize(student_id, module.category_id)

        enrollment = machine.new_enrollment(student_id, module)
        if not await self.repository.insert_if_not_exists(enrollment):
            stored = await self.repository.get_for_student_module(student_id, module.id)
            if stored is None:
                raise ConcurrencyConflictError
            return stored

        await self.catalog.increment_enrollment_count(module.id)
        logger.info(
            "enrollment_created",
            enrollment_id=str(enrollment.id),
            student_id=str(student_id),
            module_id=str(module.id),
            category_id=str(module.category_id),
            level=module.level.value,
        )
        return enrollment

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def _require_enrollment(self, enrollment_id: UUID) -> ModuleEnrollment:
        enrollment = await self.repository.get(enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError
        return enrollment

    async def get_my_enrollments(self, student_id: UUID) -> list[ModuleEnrollment]:
        enrollments = await self.repository.list_for_student(student_id)
        return [await self._resume_finalization(e) for e in enrollments]

    async def get_enrollment(
        self,
        enrollment_id: UUID,
        user: "UserResponse",
    ) -> ModuleEnrollment:
        """Owner, an assigned instructor or an admin may read an enrollment.

        Raises:
            EnrollmentNotFoundError: If it does not exist
            ForbiddenError: If the caller may not see it
        """
        enrollment = await self._require_enrollment(enrollment_id)
        user_id = _user_uuid(user)
        if enrollment.student_id != user_id and not is_admin(user.role):
            module = await self.catalog.require_module(enrollment.module_id)
            if not module.is_instructor(user_id):
                raise NotEnrollmentOwnerError
        return await self._resume_finalization(enrollment)

    async def get_enrollment_for_module(
        self,
        student_id: UUID,
        module_id: UUID,
    ) -> ModuleEnrollment:
        enrollment = await self.repository.get_for_student_module(student_id, module_id)
        if enrollment is None:
            raise EnrollmentNotFoundError("You are not enrolled in this module")
        return await self._resume_finalization(enrollment)

    async def list_pending_reviews(
        self,
        module_id: UUID,
        user: "UserResponse",
    ) -> list[ModuleEnrollment]:
        """Enrollments of a module waiting for essay grading.

        Raises:
            NotAssignedInstructorError: If the caller is not on the module
        """
        module = await self.catalog.require_module(module_id)
        if not is_admin(user.role) and not module.is_instructor(_user_uuid(user)):
            raise NotAssignedInstructorError
        enrollments = await self.repository.list_for_module(module.id)
        pending = [e for e in enrollments if e.pending_instructor_review]
        return sorted(pending, key=lambda e: e.essay_submitted_at or e.enrolled_at)

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def _mutate(
        self,
        enrollment_id: UUID,
        apply: Callable[[ModuleEnrollment, Module], T],
        authorize: Callable[[ModuleEnrollment], None],
    ) -> tuple[ModuleEnrollment, Module, T]:
        """Apply a transition with compare-and-set, retrying on conflicts.

        Raises:
            ConcurrencyConflictError: If every retry lost a write race
        """
        enrollment = await self._require_enrollment(enrollment_id)
        authorize(enrollment)
        module = await self.catalog.require_module(enrollment.module_id)

        for attempt in range(1, self.max_retries + 1):
            expected_version = enrollment.version
            result = apply(enrollment, module)
            enrollment.version = expected_version + 1

            if await self.repository.compare_and_set(enrollment, expected_version):
                return enrollment, module, result

            logger.warning(
                "enrollment_write_conflict",
                enrollment_id=str(enrollment_id),
                attempt=attempt,
            )
            enrollment = await self._require_enrollment(enrollment_id)

        raise ConcurrencyConflictError

    @staticmethod
    def _owner_check(user: "UserResponse") -> Callable[[ModuleEnrollment], None]:
        user_id = _user_uuid(user)

        def authorize(enrollment: ModuleEnrollment) -> None:
            if enrollment.student_id != user_id:
                raise NotEnrollmentOwnerError

        return authorize

    async def complete_lesson(
        self,
        enrollment_id: UUID,
        user: "UserResponse",
        lesson_index: int,
    ) -> ModuleEnrollment:
        """Mark a lesson completed. Completing it twice changes nothing."""
        enrollment, _, newly_completed = await self._mutate(
            enrollment_id,
            lambda e, _m: machine.complete_lesson(e, lesson_index),
            self._owner_check(user),
        )
        if newly_completed:
            logger.info(
                "lesson_completed",
                enrollment_id=str(enrollment.id),
                lesson_index=lesson_index,
                progress=enrollment.progress,
                state=enrollment.state.value,
            )
        return enrollment

    async def submit_lesson_assessment(
        self,
        enrollment_id: UUID,
        user: "UserResponse",
        lesson_index: int,
        answers: Sequence[Answer],
    ) -> tuple[ModuleEnrollment, GradeResult]:
        enrollment, _, result = await self._mutate(
            enrollment_id,
            lambda e, m: machine.submit_lesson_assessment(e, m, lesson_index, answers),
            self._owner_check(user),
        )
        logger.info(
            "lesson_assessment_graded",
            enrollment_id=str(enrollment.id),
            lesson_index=lesson_index,
            score=result.score,
            passed=result.passed,
        )
        return enrollment, result

    async def submit_final_assessment(
        self,
        enrollment_id: UUID,
        user: "UserResponse",
        answers: Sequence[Answer],
    ) -> FinalAssessmentSubmission:
        enrollment, module, outcome = await self._mutate(
            enrollment_id,
            lambda e, m: machine.submit_final_assessment(e, m, answers),
            self._owner_check(user),
        )
        logger.info(
            "final_assessment_submitted",
            enrollment_id=str(enrollment.id),
            module_id=str(module.id),
            status=outcome.status.value,
            score=outcome.score,
            attempt=enrollment.final_assessment_attempts,
        )

        match outcome.status:
            case FinalStatus.PENDING_REVIEW:
                self.effects.essay_submitted(enrollment, module)
            case FinalStatus.REPEAT_REQUIRED:
                self._log_repeat(enrollment)
                self.effects.repeat_required(enrollment, module)
            case FinalStatus.PASSED:
                completion = await self._finalize(enrollment, module)
                return FinalAssessmentSubmission(
                    enrollment=completion.enrollment,
                    outcome=outcome,
                    level_unlocked=completion.level_unlocked,
                    certificate=completion.certificate,
                )

        return FinalAssessmentSubmission(enrollment=enrollment, outcome=outcome)

    async def grade_essay(
        self,
        enrollment_id: UUID,
        instructor: "UserResponse",
        passed: bool,
        feedback: str,
        score: int | None = None,
    ) -> FinalAssessmentSubmission:
        """Apply an instructor's pass/fail decision to a pending essay."""
        instructor_id = _user_uuid(instructor)
        enrollment, module, outcome = await self._mutate(
            enrollment_id,
            lambda e, m: machine.grade_essay(e, m, instructor_id, passed, feedback, score),
            lambda _e: None,
        )
        logger.info(
            "essay_graded",
            enrollment_id=str(enrollment.id),
            module_id=str(module.id),
            instructor_id=str(instructor_id),
            passed=passed,
            score=outcome.score,
        )

        submission = FinalAssessmentSubmission(enrollment=enrollment, outcome=outcome)
        if outcome.passed:
            completion = await self._finalize(enrollment, module, email_certificate=False)
            submission = FinalAssessmentSubmission(
                enrollment=completion.enrollment,
                outcome=outcome,
                level_unlocked=completion.level_unlocked,
                certificate=completion.certificate,
            )
        elif outcome.repeat_forced:
            self._log_repeat(enrollment)

        self.effects.essay_graded(
            submission.enrollment,
            module,
            passed=passed,
            score=outcome.score,
            feedback=feedback,
            repeat_required=outcome.repeat_forced,
        )
        return submission

    def _log_repeat(self, enrollment: ModuleEnrollment) -> None:
        logger.info(
            "module_repeat_forced",
            enrollment_id=str(enrollment.id),
            student_id=str(enrollment.student_id),
            module_id=str(enrollment.module_id),
            repeat_count=enrollment.module_repeat_count,
        )

    # ==========================================================================
    # Completion follow-up
    # ==========================================================================

    async def _finalize(
        self,
        enrollment: ModuleEnrollment,
        module: Module,
        *,
        email_certificate: bool = True,
    ) -> _Completion:
        """Record the completion in progression and mint the certificate.

        Both steps are idempotent, and a completed enrollment without a
        certificate id runs the follow-up again on the next read. Only the
        call that attaches the certificate id announces the certificate, so
        a read racing the submission cannot send it twice.
        """
        try:
            level_unlocked = await self.progression.on_module_completed(
                enrollment.student_id, module
            )
        except ConcurrencyConflictError:
            self._log_deferred(enrollment, module, step="progression")
            return _Completion(enrollment, None, None)

        certificate = await self.certificates.issue(
            enrollment, module, enrollment.final_assessment_score
        )
        attached = False
        try:
            enrollment, attached = await self._attach_certificate(
                enrollment.id, certificate.public_id
            )
        except ConcurrencyConflictError:
            self._log_deferred(enrollment, module, step="certificate")

        if level_unlocked is not None:
            logger.info(
                "level_unlocked",
                student_id=str(enrollment.student_id),
                category_id=str(module.category_id),
                level=level_unlocked.value,
            )
        self.effects.module_passed(
            enrollment,
            module,
            certificate if attached else None,
            level_unlocked,
            email_certificate=email_certificate,
        )
        return _Completion(enrollment, level_unlocked, certificate)

    @staticmethod
    def _log_deferred(enrollment: ModuleEnrollment, module: Module, step: str) -> None:
        logger.warning(
            "completion_followup_deferred",
            enrollment_id=str(enrollment.id),
            module_id=str(module.id),
            step=step,
        )

    async def _attach_certificate(
        self,
        enrollment_id: UUID,
        public_id: UUID,
    ) -> tuple[ModuleEnrollment, bool]:
        """Back-fill the certificate id; the flag is False if it was already set."""

        def attach(enrollment: ModuleEnrollment, _module: Module) -> bool:
            if enrollment.certificate_public_id is not None:
                return False
            enrollment.certificate_public_id = public_id
            return True

        enrollment, _, attached = await self._mutate(enrollment_id, attach, lambda _e: None)
        return enrollment, attached

    async def _resume_finalization(self, enrollment: ModuleEnrollment) -> ModuleEnrollment:
        if not enrollment.needs_finalization:
            return enrollment
        module = await self.catalog.require_module(enrollment.module_id)
        completion = await self._finalize(enrollment, module)
        return completion.enrollment
