"""Module enrollment API endpoints.

Provides:
- POST /v1/module-enrollments/modules/{module_id}/enroll - Enroll (402/403 when refused)
- GET  /v1/module-enrollments/my - Caller's enrollments
- GET  /v1/module-enrollments/modules/{module_id}/mine - Caller's enrollment in a module
- GET  /v1/module-enrollments/modules/{module_id}/pending-reviews - Essay grading queue
- GET  /v1/module-enrollments/{enrollment_id} - Enrollment detail
- PUT  /v1/module-enrollments/{enrollment_id}/lessons/{lesson_index}/complete
- POST /v1/module-enrollments/{enrollment_id}/lessons/{lesson_index}/assessment
- POST /v1/module-enrollments/{enrollment_id}/final-assessment
- POST /v1/module-enrollments/{enrollment_id}/grade-essay
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, status

from src.access.gate import PaymentRequired
from src.auth.dependencies import CurrentUser, InstructorUser, StudentUser
from src.core.errors import DomainError, handle_domain_error

from .dependencies import EnrollmentServiceDep
from .errors import EnrollmentRefusedError
from .schemas import (
    EnrollmentResponse,
    FinalAssessmentResultResponse,
    GradeEssayRequest,
    LessonAssessmentResultResponse,
    SubmitAssessmentRequest,
)


router = APIRouter(prefix="/v1/module-enrollments", tags=["module-enrollments"])


def _refusal_to_http(error: EnrollmentRefusedError) -> HTTPException:
    decision = error.decision
    if isinstance(decision, PaymentRequired):
        return HTTPException(
            status_code=status.HTTP_402_PAYMENT_REQUIRED,
            detail={
                "requires_payment": True,
                "category_id": str(decision.category_id),
                "category_name": decision.category_name,
                "price": str(decision.price),
                "message": error.message,
            },
        )
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=error.message)


@router.post(
    "/modules/{module_id}/enroll",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a module",
)
async def enroll_in_module(
    module_id: UUID,
    service: EnrollmentServiceDep,
    user: StudentUser,
) -> EnrollmentResponse:
    """Enroll the caller. Enrolling twice returns the existing enrollment."""
    try:
        enrollment = await service.enroll(user, module_id)
    except EnrollmentRefusedError as e:
        raise _refusal_to_http(e) from e
    except DomainError as e:
        raise handle_domain_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


@router.get("/my", response_model=list[EnrollmentResponse], summary="My enrollments")
async def list_my_enrollments(
    service: EnrollmentServiceDep,
    user: StudentUser,
) -> list[EnrollmentResponse]:
    try:
        enrollments = await service.get_my_enrollments(UUID(str(user.id)))
    except DomainError as e:
        raise handle_domain_error(e) from e
    return [EnrollmentResponse.from_enrollment(e) for e in enrollments]


@router.get(
    "/modules/{module_id}/mine",
    response_model=EnrollmentResponse,
    summary="My enrollment in a module",
)
async def get_my_module_enrollment(
    module_id: UUID,
    service: EnrollmentServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    try:
        enrollment = await service.get_enrollment_for_module(
            UUID(str(user.id)), module_id
        )
    except DomainError as e:
        raise handle_domain_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


@router.get(
    "/modules/{module_id}/pending-reviews",
    response_model=list[EnrollmentResponse],
    summary="Essays awaiting grading",
)
async def list_pending_reviews(
    module_id: UUID,
    service: EnrollmentServiceDep,
    user: InstructorUser,
) -> list[EnrollmentResponse]:
    try:
        enrollments = await service.list_pending_reviews(module_id, user)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return [EnrollmentResponse.from_enrollment(e) for e in enrollments]


@router.get(
    "/{enrollment_id}",
    response_model=EnrollmentResponse,
    summary="Get enrollment",
)
async def get_enrollment(
    enrollment_id: UUID,
    service: EnrollmentServiceDep,
    user: CurrentUser,
) -> EnrollmentResponse:
    try:
        enrollment = await service.get_enrollment(enrollment_id, user)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


@router.put(
    "/{enrollment_id}/lessons/{lesson_index}/complete",
    response_model=EnrollmentResponse,
    summary="Complete a lesson",
)
async def complete_lesson(
    enrollment_id: UUID,
    lesson_index: int,
    service: EnrollmentServiceDep,
    user: StudentUser,
) -> EnrollmentResponse:
    try:
        enrollment = await service.complete_lesson(enrollment_id, user, lesson_index)
    except DomainError as e:
        raise handle_domain_error(e) from e
    return EnrollmentResponse.from_enrollment(enrollment)


@router.post(
    "/{enrollment_id}/lessons/{lesson_index}/assessment",
    response_model=LessonAssessmentResultResponse,
    summary="Submit a lesson quiz",
)
async def submit_lesson_assessment(
    enrollment_id: UUID,
    lesson_index: int,
    data: SubmitAssessmentRequest,
    service: EnrollmentServiceDep,
    user: StudentUser,
) -> LessonAssessmentResultResponse:
    try:
        enrollment, result = await service.submit_lesson_assessment(
            enrollment_id, user, lesson_index, data.to_answers()
        )
    except DomainError as e:
        raise handle_domain_error(e) from e
    return LessonAssessmentResultResponse.build(enrollment, result)


@router.post(
    "/{enrollment_id}/final-assessment",
    response_model=FinalAssessmentResultResponse,
    summary="Submit the final assessment",
)
async def submit_final_assessment(
    enrollment_id: UUID,
    data: SubmitAssessmentRequest,
    service: EnrollmentServiceDep,
    user: StudentUser,
) -> FinalAssessmentResultResponse:
    """Auto-graded unless the assessment has essay questions.

    Essay submissions come back with status ``pending_review``.
    """
    try:
        submission = await service.submit_final_assessment(
            enrollment_id, user, data.to_answers()
        )
    except DomainError as e:
        raise handle_domain_error(e) from e
    return FinalAssessmentResultResponse.from_submission(submission)


@router.post(
    "/{enrollment_id}/grade-essay",
    response_model=FinalAssessmentResultResponse,
    summary="Grade a pending essay",
)
async def grade_essay(
    enrollment_id: UUID,
    data: GradeEssayRequest,
    service: EnrollmentServiceDep,
    user: InstructorUser,
) -> FinalAssessmentResultResponse:
    try:
        submission = await service.grade_essay(
            enrollment_id,
            user,
            passed=data.passed,
            feedback=data.feedback,
            score=data.score,
        )
    except DomainError as e:
        raise handle_domain_error(e) from e
    return FinalAssessmentResultResponse.from_submission(submission)
