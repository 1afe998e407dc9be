"""Tests for the enrollment service against in-memory stores."""

import asyncio
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from fakes import (
    Engine,
    choice_final,
    essay_final,
    make_category,
    make_module,
    make_user,
)
from src.access.gate import LevelLocked, PaymentRequired
from src.assessments.models import Answer
from src.catalog.models import ModuleLevel, ModuleStatus
from src.catalog.service import ModuleNotFoundError
from src.core.errors import ConcurrencyConflictError
from src.enrollments.errors import (
    EnrollmentNotFoundError,
    EnrollmentRefusedError,
    ModuleNotPublishedError,
    NotAssignedInstructorError,
    NotEnrollmentOwnerError,
)
from src.enrollments.machine import FinalStatus
from src.enrollments.models import EnrollmentState


RIGHT = [Answer(0, "B"), Answer(1, "true")]
WRONG = [Answer(0, "A"), Answer(1, "false")]
ESSAY = [Answer(0, "true"), Answer(1, "Reduce the dose for renal impairment")]


def _curriculum(engine: Engine, **beginner_kwargs):
    """Paid category with one beginner and one intermediate module."""
    category = make_category()
    beginner = make_module(category, **beginner_kwargs)
    intermediate = make_module(category, level=ModuleLevel.INTERMEDIATE, title="Titration")
    engine.catalog.add(category, beginner, intermediate)
    return category, beginner, intermediate


def _uid(user) -> UUID:
    return UUID(str(user.id))


class TestEnroll:
    """Tests for enrolling in a module."""

    @pytest.mark.asyncio
    async def test_enroll_creates_progression(self, engine: Engine) -> None:
        category, beginner, _ = _curriculum(engine)

        student, enrollment = await engine.enroll_paid_student(beginner)

        assert enrollment.state == EnrollmentState.ENROLLED
        assert enrollment.total_lessons == 2
        assert engine.catalog.enrollment_counts[beginner.id] == 1
        progression = await engine.progressions.get(_uid(student), category.id)
        assert progression is not None
        assert progression.total_modules_in_category == 2

    @pytest.mark.asyncio
    async def test_enroll_is_idempotent(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, first = await engine.enroll_paid_student(beginner)

        second = await engine.service.enroll(student, beginner.id)

        assert second.id == first.id
        assert len(engine.enrollments.rows) == 1
        assert engine.catalog.enrollment_counts[beginner.id] == 1

    @pytest.mark.asyncio
    async def test_payment_required(self, engine: Engine) -> None:
        category, beginner, _ = _curriculum(engine)

        with pytest.raises(EnrollmentRefusedError) as exc_info:
            await engine.service.enroll(make_user(), beginner.id)

        decision = exc_info.value.decision
        assert isinstance(decision, PaymentRequired)
        assert decision.category_id == category.id
        assert "Clinical Pharmacy" in exc_info.value.message
        assert engine.enrollments.rows == {}

    @pytest.mark.asyncio
    async def test_intermediate_locked_until_beginner_passed(self, engine: Engine) -> None:
        _, beginner, intermediate = _curriculum(engine)
        student = make_user()
        engine.acquisitions.grant(_uid(student), beginner.category_id)

        with pytest.raises(EnrollmentRefusedError) as exc_info:
            await engine.service.enroll(student, intermediate.id)

        assert isinstance(exc_info.value.decision, LevelLocked)
        assert "Beginner" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_admin_bypasses_gate(self, engine: Engine) -> None:
        _, _, intermediate = _curriculum(engine)

        enrollment = await engine.service.enroll(make_user("admin"), intermediate.id)

        assert enrollment.module_id == intermediate.id

    @pytest.mark.asyncio
    async def test_unpublished_module(self, engine: Engine) -> None:
        category = make_category()
        draft = make_module(category, status=ModuleStatus.DRAFT)
        engine.catalog.add(category, draft)

        with pytest.raises(ModuleNotPublishedError):
            await engine.service.enroll(make_user("admin"), draft.id)

    @pytest.mark.asyncio
    async def test_unknown_module(self, engine: Engine) -> None:
        with pytest.raises(ModuleNotFoundError):
            await engine.service.enroll(make_user(), uuid4())


class TestReads:
    """Tests for reading enrollments."""

    @pytest.mark.asyncio
    async def test_owner_instructor_and_admin_can_read(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        instructor = make_user("instructor", user_id=beginner.instructor_ids[0])

        for reader in (student, instructor, make_user("admin")):
            found = await engine.service.get_enrollment(enrollment.id, reader)
            assert found.id == enrollment.id

    @pytest.mark.asyncio
    async def test_other_student_cannot_read(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        _, enrollment = await engine.enroll_paid_student(beginner)

        with pytest.raises(NotEnrollmentOwnerError):
            await engine.service.get_enrollment(enrollment.id, make_user())

    @pytest.mark.asyncio
    async def test_not_enrolled_in_module(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)

        with pytest.raises(EnrollmentNotFoundError):
            await engine.service.get_enrollment_for_module(uuid4(), beginner.id)

    @pytest.mark.asyncio
    async def test_my_enrollments(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)

        mine = await engine.service.get_my_enrollments(_uid(student))

        assert [e.id for e in mine] == [enrollment.id]


class TestLessons:
    """Tests for lesson completion through the service."""

    @pytest.mark.asyncio
    async def test_complete_lesson(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)

        updated = await engine.service.complete_lesson(enrollment.id, student, 0)

        assert updated.progress == 50
        assert updated.version == 1

    @pytest.mark.asyncio
    async def test_only_owner_completes_lessons(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        _, enrollment = await engine.enroll_paid_student(beginner)

        with pytest.raises(NotEnrollmentOwnerError):
            await engine.service.complete_lesson(enrollment.id, make_user(), 0)

    @pytest.mark.asyncio
    async def test_lesson_quiz(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine, quiz_on_first_lesson=True)
        student, enrollment = await engine.enroll_paid_student(beginner)

        updated, result = await engine.service.submit_lesson_assessment(
            enrollment.id, student, 0, [Answer(0, "true")]
        )

        assert result.passed is True
        assert updated.lesson(0).is_completed is True


class TestWriteConflicts:
    """Tests for compare-and-set retries."""

    @pytest.mark.asyncio
    async def test_lost_race_is_retried(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        engine.enrollments.fail_next_writes = 2

        updated = await engine.service.complete_lesson(enrollment.id, student, 0)

        assert updated.completed_lessons == 1
        assert engine.enrollments.cas_calls == 3

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        engine.enrollments.fail_next_writes = 3

        with pytest.raises(ConcurrencyConflictError):
            await engine.service.complete_lesson(enrollment.id, student, 0)

        stored = await engine.enrollments.get(enrollment.id)
        assert stored.completed_lessons == 0

    @pytest.mark.asyncio
    async def test_retried_submission_consumes_one_attempt(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)
        engine.enrollments.fail_next_writes = 1

        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, WRONG
        )

        assert submission.enrollment.final_assessment_attempts == 1
        assert len(submission.enrollment.attempt_history) == 1
        assert submission.outcome.remaining_attempts == 2


class TestFinalAssessment:
    """Tests for final assessment submission and its follow-up."""

    @pytest.mark.asyncio
    async def test_pass_issues_certificate_and_unlocks_level(self, engine: Engine) -> None:
        category, beginner, intermediate = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)

        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, RIGHT
        )

        assert submission.outcome.status == FinalStatus.PASSED
        assert submission.level_unlocked == ModuleLevel.INTERMEDIATE
        certificate = submission.certificate
        assert certificate is not None
        assert certificate.student_name == "Ana Souza"
        assert certificate.category_name == "Clinical Pharmacy"
        assert certificate.score_achieved == 100
        assert submission.enrollment.certificate_public_id == certificate.public_id
        assert submission.enrollment.needs_finalization is False

        assert await engine.progression.can_access_level(
            _uid(student), category.id, ModuleLevel.INTERMEDIATE
        )
        next_enrollment = await engine.service.enroll(student, intermediate.id)
        assert next_enrollment.module_id == intermediate.id

    @pytest.mark.asyncio
    async def test_pass_notifies_student(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)

        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, RIGHT
        )
        assert engine.notifications.sent == []

        await engine.dispatcher.drain()

        assert engine.notifications.titles_for(_uid(student)) == [
            "Certificate Earned!",
            "New Level Unlocked!",
        ]
        engine.email.send_certificate_email.assert_awaited_once()
        kwargs = engine.email.send_certificate_email.await_args.kwargs
        assert kwargs["to_email"] == "ana@example.com"
        assert kwargs["public_id"] == submission.certificate.public_id

    @pytest.mark.asyncio
    async def test_certificate_is_issued_once(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)
        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, RIGHT
        )

        again = await engine.certificates.issue(submission.enrollment, beginner, 100)

        assert again.public_id == submission.certificate.public_id
        assert len(engine.certificates_repo.rows) == 1

    @pytest.mark.asyncio
    async def test_followup_resumes_after_progression_conflict(
        self, engine: Engine
    ) -> None:
        category, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)
        engine.progressions.fail_writes = True

        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, RIGHT
        )

        assert submission.outcome.passed is True
        assert submission.certificate is None
        assert submission.enrollment.state == EnrollmentState.COMPLETED
        assert submission.enrollment.needs_finalization is True
        assert engine.certificates_repo.rows == {}

        engine.progressions.fail_writes = False
        resumed = await engine.service.get_enrollment(enrollment.id, student)

        assert resumed.needs_finalization is False
        assert len(engine.certificates_repo.rows) == 1
        assert await engine.progression.can_access_level(
            _uid(student), category.id, ModuleLevel.INTERMEDIATE
        )

    @pytest.mark.asyncio
    async def test_read_racing_the_pass_announces_certificate_once(
        self, engine: Engine
    ) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)
        count_published = engine.catalog.count_published_modules_by_level

        async def slow_count(category_id):
            await asyncio.sleep(0.01)
            return await count_published(category_id)

        engine.catalog.count_published_modules_by_level = slow_count

        submission, listed = await asyncio.gather(
            engine.service.submit_final_assessment(enrollment.id, student, RIGHT),
            engine.service.get_my_enrollments(_uid(student)),
        )
        await engine.dispatcher.drain()

        assert submission.outcome.passed is True
        assert listed[0].state == EnrollmentState.COMPLETED
        assert len(engine.certificates_repo.rows) == 1
        assert engine.notifications.titles_for(_uid(student)) == [
            "Certificate Earned!",
            "New Level Unlocked!",
        ]
        engine.email.send_certificate_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_certificate_backfill_conflict_keeps_the_pass(
        self, engine: Engine
    ) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)
        issue = engine.certificates.issue

        async def issue_then_lose_races(*args):
            certificate = await issue(*args)
            engine.enrollments.fail_next_writes = 3
            return certificate

        engine.certificates.issue = issue_then_lose_races

        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, RIGHT
        )
        await engine.dispatcher.drain()

        assert submission.outcome.passed is True
        assert submission.certificate is not None
        assert submission.enrollment.state == EnrollmentState.COMPLETED
        assert submission.enrollment.needs_finalization is True
        assert engine.notifications.titles_for(_uid(student)) == ["New Level Unlocked!"]
        engine.email.send_certificate_email.assert_not_awaited()

        engine.certificates.issue = issue
        resumed = await engine.service.get_enrollment(enrollment.id, student)
        await engine.dispatcher.drain()

        assert resumed.certificate_public_id == submission.certificate.public_id
        assert resumed.needs_finalization is False
        assert len(engine.certificates_repo.rows) == 1
        assert engine.notifications.titles_for(_uid(student)) == [
            "New Level Unlocked!",
            "Certificate Earned!",
        ]
        engine.email.send_certificate_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_exhausted_attempts_force_repeat(self, engine: Engine) -> None:
        _, beginner, _ = _curriculum(engine, final=choice_final(max_attempts=1))
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)

        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, WRONG
        )
        await engine.dispatcher.drain()

        assert submission.outcome.repeat_forced is True
        assert submission.enrollment.progress == 0
        assert engine.notifications.titles_for(_uid(student)) == ["Module Repeat Required"]

    @pytest.mark.asyncio
    async def test_side_effect_failure_does_not_fail_submission(
        self, engine: Engine
    ) -> None:
        _, beginner, _ = _curriculum(engine)
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)
        engine.notifications.notify = AsyncMock(side_effect=RuntimeError("store down"))

        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, RIGHT
        )
        await engine.dispatcher.drain()

        assert submission.outcome.passed is True
        stats = engine.dispatcher.get_stats()
        assert stats["jobs_failed"] == 2
        assert stats["jobs_completed"] == 1


class TestEssayReview:
    """Tests for essay submission and instructor grading."""

    async def _pending(self, engine: Engine, max_attempts: int = 3):
        instructor_id = uuid4()
        _, beginner, _ = _curriculum(
            engine,
            final=essay_final(max_attempts=max_attempts),
            instructor_ids=[instructor_id],
        )
        engine.users.add(instructor_id, "Marta", "Lima", role="instructor")
        student, enrollment = await engine.enroll_paid_student(beginner)
        enrollment = await engine.complete_all_lessons(student, enrollment)
        submission = await engine.service.submit_final_assessment(
            enrollment.id, student, ESSAY
        )
        instructor = make_user("instructor", user_id=instructor_id)
        return beginner, student, instructor, submission

    @pytest.mark.asyncio
    async def test_submission_notifies_instructors(self, engine: Engine) -> None:
        _, _, instructor, submission = await self._pending(engine)
        await engine.dispatcher.drain()

        assert submission.outcome.status == FinalStatus.PENDING_REVIEW
        assert engine.notifications.titles_for(_uid(instructor)) == [
            "Essay Assessment Submitted"
        ]
        message = engine.notifications.sent[0]["message"]
        assert message.startswith("Ana Souza submitted")
        engine.email.send_essay_submitted_email.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_pending_reviews_for_instructor(self, engine: Engine) -> None:
        module, student, instructor, submission = await self._pending(engine)

        pending = await engine.service.list_pending_reviews(module.id, instructor)

        assert [e.id for e in pending] == [submission.enrollment.id]
        with pytest.raises(NotAssignedInstructorError):
            await engine.service.list_pending_reviews(module.id, student)

    @pytest.mark.asyncio
    async def test_pass_completes_module(self, engine: Engine) -> None:
        _, student, instructor, submission = await self._pending(engine)
        await engine.dispatcher.drain()

        graded = await engine.service.grade_essay(
            submission.enrollment.id, instructor, passed=True, feedback="Clear reasoning"
        )
        await engine.dispatcher.drain()

        assert graded.outcome.score == 100
        assert graded.certificate is not None
        assert graded.certificate.instructor_name == "Marta Lima"
        assert graded.enrollment.state == EnrollmentState.COMPLETED
        assert engine.notifications.titles_for(_uid(student)) == [
            "Certificate Earned!",
            "New Level Unlocked!",
            "Essay Assessment Passed!",
        ]
        kwargs = engine.email.send_essay_graded_email.await_args.kwargs
        assert kwargs["passed"] is True
        assert kwargs["feedback"] == "Clear reasoning"
        assert kwargs["certificate_public_id"] == graded.certificate.public_id
        engine.email.send_certificate_email.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fail_with_attempts_left(self, engine: Engine) -> None:
        _, student, instructor, submission = await self._pending(engine)
        await engine.dispatcher.drain()

        graded = await engine.service.grade_essay(
            submission.enrollment.id, instructor, passed=False, feedback="Cite sources", score=40
        )
        await engine.dispatcher.drain()

        assert graded.outcome.status == FinalStatus.FAILED
        assert graded.enrollment.state == EnrollmentState.IN_PROGRESS
        assert engine.notifications.titles_for(_uid(student)) == [
            "Essay Assessment Reviewed"
        ]

    @pytest.mark.asyncio
    async def test_fail_on_last_attempt_forces_repeat(self, engine: Engine) -> None:
        _, student, instructor, submission = await self._pending(engine, max_attempts=1)
        await engine.dispatcher.drain()

        graded = await engine.service.grade_essay(
            submission.enrollment.id, instructor, passed=False, feedback="Incomplete"
        )
        await engine.dispatcher.drain()

        assert graded.enrollment.requires_module_repeat is True
        assert engine.notifications.titles_for(_uid(student)) == [
            "Essay Assessment: Module Repeat Required"
        ]

    @pytest.mark.asyncio
    async def test_unassigned_admin_cannot_grade(self, engine: Engine) -> None:
        _, _, _, submission = await self._pending(engine)

        with pytest.raises(NotAssignedInstructorError):
            await engine.service.grade_essay(
                submission.enrollment.id, make_user("admin"), passed=True, feedback="ok"
            )
