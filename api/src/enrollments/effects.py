"""Notifications and emails fired by enrollment transitions.

Every method only queues jobs on the SideEffectDispatcher and returns
immediately. Jobs look up names and addresses when they run, after the
enrollment write they describe has been committed.
"""

from functools import partial
from typing import TYPE_CHECKING
from uuid import UUID

from src.catalog.models import Module, ModuleLevel
from src.notifications.models import NotificationType

from .models import ModuleEnrollment


if TYPE_CHECKING:
    from src.auth.service import UserService
    from src.certificates.models import ModuleCertificate
    from src.email.service import EmailService
    from src.notifications.dispatcher import SideEffectDispatcher
    from src.notifications.service import NotificationService


FALLBACK_STUDENT_NAME = "Student"


class EnrollmentEffects:
    """Queues the side effects of enrollment events."""

    def __init__(
        self,
        dispatcher: "SideEffectDispatcher",
        notifications: "NotificationService",
        users: "UserService",
        email: "EmailService | None" = None,
        frontend_url: str = "http://localhost:3000",
    ):
        self.dispatcher = dispatcher
        self.notifications = notifications
        self.users = users
        self.email = email
        self.frontend_url = frontend_url.rstrip("/")

    def certificate_url(self, public_id: UUID | None) -> str:
        if public_id is None:
            return f"{self.frontend_url}/student/certificates"
        return f"{self.frontend_url}/certificates/{public_id}"

    async def _student_name(self, student_id: UUID) -> str:
        student = await self.users.get_user(student_id)
        if student is None:
            return FALLBACK_STUDENT_NAME
        return student.full_name or FALLBACK_STUDENT_NAME

    def _notify(
        self,
        name: str,
        user_id: UUID,
        notification_type: NotificationType,
        title: str,
        message: str,
        link: str | None = None,
        reference_id: UUID | None = None,
    ) -> None:
        self.dispatcher.dispatch(
            name,
            partial(
                self.notifications.notify,
                user_id=user_id,
                notification_type=notification_type,
                title=title,
                message=message,
                link=link,
                reference_id=reference_id,
            ),
            user_id=str(user_id),
        )

    # ==========================================================================
    # Essay submitted (to instructors)
    # ==========================================================================

    async def _notify_essay_submitted(
        self,
        instructor_id: UUID,
        enrollment: ModuleEnrollment,
        module: Module,
    ) -> None:
        student_name = await self._student_name(enrollment.student_id)
        await self.notifications.notify(
            user_id=instructor_id,
            notification_type=NotificationType.ESSAY_SUBMITTED,
            title="Essay Assessment Submitted",
            message=(
                f'{student_name} submitted an essay assessment for "{module.title}" '
                "and is awaiting your review."
            ),
            link=f"{self.frontend_url}/instructor/reviews/{enrollment.id}",
            reference_id=enrollment.id,
        )

    async def _email_essay_submitted(
        self,
        instructor_id: UUID,
        enrollment: ModuleEnrollment,
        module: Module,
    ) -> None:
        instructor = await self.users.get_user(instructor_id)
        if instructor is None or not instructor.email or self.email is None:
            return
        await self.email.send_essay_submitted_email(
            to_email=instructor.email,
            instructor_name=instructor.full_name or "Instructor",
            student_name=await self._student_name(enrollment.student_id),
            module_title=module.title,
            enrollment_id=enrollment.id,
        )

    def essay_submitted(self, enrollment: ModuleEnrollment, module: Module) -> None:
        for instructor_id in module.instructor_ids:
            self.dispatcher.dispatch(
                "essay_submitted_notification",
                partial(self._notify_essay_submitted, instructor_id, enrollment, module),
                enrollment_id=str(enrollment.id),
                instructor_id=str(instructor_id),
            )
            if self.email is not None:
                self.dispatcher.dispatch(
                    "essay_submitted_email",
                    partial(self._email_essay_submitted, instructor_id, enrollment, module),
                    enrollment_id=str(enrollment.id),
                    instructor_id=str(instructor_id),
                )

    # ==========================================================================
    # Module passed (to student)
    # ==========================================================================

    async def _email_certificate(
        self,
        enrollment: ModuleEnrollment,
        certificate: "ModuleCertificate",
    ) -> None:
        student = await self.users.get_user(enrollment.student_id)
        if student is None or not student.email or self.email is None:
            return
        await self.email.send_certificate_email(
            to_email=student.email,
            student_name=certificate.student_name,
            module_title=certificate.module_name,
            certificate_number=certificate.certificate_number,
            public_id=certificate.public_id,
        )

    def module_passed(
        self,
        enrollment: ModuleEnrollment,
        module: Module,
        certificate: "ModuleCertificate | None",
        level_unlocked: ModuleLevel | None,
        email_certificate: bool = True,
    ) -> None:
        """Announce a newly attached certificate and a newly unlocked level.

        Instructor-graded passes skip the certificate email; the grading
        result email links to the certificate instead.
        """
        if certificate is not None:
            self._notify(
                "certificate_earned_notification",
                enrollment.student_id,
                NotificationType.CERTIFICATE_EARNED,
                "Certificate Earned!",
                f'Congratulations! You passed "{module.title}" and earned your certificate.',
                link=self.certificate_url(certificate.public_id),
                reference_id=certificate.public_id,
            )
        if level_unlocked is not None:
            self._notify(
                "level_unlocked_notification",
                enrollment.student_id,
                NotificationType.LEVEL_UNLOCKED,
                "New Level Unlocked!",
                f"You have unlocked the {level_unlocked.label} level. Keep learning!",
                link=f"{self.frontend_url}/categories/{module.category_id}",
                reference_id=module.category_id,
            )
        if certificate is not None and email_certificate and self.email is not None:
            self.dispatcher.dispatch(
                "certificate_email",
                partial(self._email_certificate, enrollment, certificate),
                enrollment_id=str(enrollment.id),
            )

    # ==========================================================================
    # Forced repeat (auto-graded path)
    # ==========================================================================

    def repeat_required(self, enrollment: ModuleEnrollment, module: Module) -> None:
        self._notify(
            "repeat_required_notification",
            enrollment.student_id,
            NotificationType.MODULE_REPEAT_REQUIRED,
            "Module Repeat Required",
            (
                f'You have used all attempts on the final assessment of "{module.title}". '
                "Complete the lessons again to unlock a new set of attempts."
            ),
            link=f"{self.frontend_url}/modules/{module.id}",
            reference_id=enrollment.id,
        )

    # ==========================================================================
    # Essay graded (to student)
    # ==========================================================================

    async def _email_essay_graded(
        self,
        enrollment: ModuleEnrollment,
        module: Module,
        passed: bool,
        score: int,
        feedback: str,
        repeat_required: bool,
    ) -> None:
        student = await self.users.get_user(enrollment.student_id)
        if student is None or not student.email or self.email is None:
            return
        await self.email.send_essay_graded_email(
            to_email=student.email,
            student_name=student.full_name or FALLBACK_STUDENT_NAME,
            module_id=module.id,
            module_title=module.title,
            passed=passed,
            score=score,
            feedback=feedback,
            repeat_required=repeat_required,
            certificate_public_id=enrollment.certificate_public_id,
        )

    def essay_graded(
        self,
        enrollment: ModuleEnrollment,
        module: Module,
        passed: bool,
        score: int,
        feedback: str,
        repeat_required: bool,
    ) -> None:
        if passed:
            title = "Essay Assessment Passed!"
            message = (
                f'Your essay for "{module.title}" has been reviewed. '
                "You passed! Your certificate is ready."
            )
            link = self.certificate_url(enrollment.certificate_public_id)
        elif repeat_required:
            title = "Essay Assessment: Module Repeat Required"
            message = (
                f'Your essay for "{module.title}" did not pass. You have reached the '
                "maximum number of attempts. You must review and complete the module "
                "again before reattempting."
            )
            link = f"{self.frontend_url}/modules/{module.id}"
        else:
            title = "Essay Assessment Reviewed"
            message = (
                f'Your essay for "{module.title}" has been reviewed. '
                "Please check the feedback and try again."
            )
            link = f"{self.frontend_url}/modules/{module.id}"

        self._notify(
            "essay_graded_notification",
            enrollment.student_id,
            NotificationType.ESSAY_GRADED,
            title,
            message,
            link=link,
            reference_id=enrollment.id,
        )
        if self.email is not None:
            self.dispatcher.dispatch(
                "essay_graded_email",
                partial(
                    self._email_essay_graded,
                    enrollment,
                    module,
                    passed,
                    score,
                    feedback,
                    repeat_required,
                ),
                enrollment_id=str(enrollment.id),
            )
