"""Tests for module authoring rules and the publication lifecycle."""

from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from pydantic import ValidationError

from fakes import make_category, make_module, make_user
from src.assessments.models import EssayQuestion, MultipleChoiceQuestion
from src.catalog.models import MODULE_TRANSITIONS, ModuleLevel, ModuleStatus
from src.catalog.schemas import CreateModuleRequest
from src.catalog.service import (
    CatalogService,
    ModuleIncompleteError,
    ModuleTransitionError,
    NotModuleInstructorError,
    build_final_assessment,
    build_lessons,
    ensure_submittable,
)
from src.notifications.dispatcher import SideEffectDispatcher


def _request(**overrides) -> CreateModuleRequest:
    data = {
        "title": "Dosage Basics",
        "category_id": str(uuid4()),
        "level": "beginner",
        "lessons": [
            {"title": "Units"},
            {
                "title": "Conversions",
                "assessment": {
                    "title": "Quiz",
                    "questions": [
                        {"type": "true-false", "text": "1 g = 1000 mg", "correct_answer": "true"}
                    ],
                    "max_attempts": 0,
                },
            },
        ],
        "final_assessment": {
            "title": "Final",
            "questions": [
                {
                    "type": "multiple-choice",
                    "text": "Pick mg",
                    "options": ["mg", "kg"],
                    "correct_answer": "mg",
                    "points": 2,
                },
                {"type": "essay", "text": "Explain", "rubric": "Show working"},
            ],
            "passing_score": 80,
        },
    }
    data.update(overrides)
    return CreateModuleRequest.model_validate(data)


class TestBuilders:
    """Tests for turning requests into domain modules."""

    def test_lessons_keep_order_and_defaults(self) -> None:
        lessons = build_lessons(_request(), passing_score=65, max_attempts=4)

        assert [(lesson.title, lesson.order) for lesson in lessons] == [
            ("Units", 0),
            ("Conversions", 1),
        ]
        assert lessons[0].assessment is None
        assert lessons[1].assessment.passing_score == 65
        assert lessons[1].assessment.max_attempts == 0

    def test_final_assessment(self) -> None:
        final = build_final_assessment(_request(), passing_score=65, max_attempts=4)

        assert final.passing_score == 80
        assert final.max_attempts == 4
        assert final.has_essay is True
        assert isinstance(final.questions[0], MultipleChoiceQuestion)
        assert final.questions[0].points == 2
        assert isinstance(final.questions[1], EssayQuestion)

    def test_no_final_assessment(self) -> None:
        assert build_final_assessment(_request(final_assessment=None)) is None

    def test_correct_answer_must_be_an_option(self) -> None:
        with pytest.raises(ValidationError):
            _request(
                final_assessment={
                    "title": "Final",
                    "questions": [
                        {
                            "type": "multiple-choice",
                            "text": "?",
                            "options": ["a", "b"],
                            "correct_answer": "c",
                        }
                    ],
                }
            )


class TestEnsureSubmittable:
    def test_complete_module(self) -> None:
        ensure_submittable(make_module(make_category()))

    def test_needs_lessons(self) -> None:
        with pytest.raises(ModuleIncompleteError):
            ensure_submittable(make_module(make_category(), lessons=0))

    def test_needs_final_questions(self) -> None:
        module = make_module(make_category())
        module.final_assessment = None
        with pytest.raises(ModuleIncompleteError) as exc_info:
            ensure_submittable(module)
        assert exc_info.value.code == "module_incomplete"


class TestTransitions:
    @pytest.mark.parametrize(
        "current,target",
        [
            (ModuleStatus.DRAFT, ModuleStatus.SUBMITTED),
            (ModuleStatus.SUBMITTED, ModuleStatus.APPROVED),
            (ModuleStatus.SUBMITTED, ModuleStatus.REJECTED),
            (ModuleStatus.REJECTED, ModuleStatus.SUBMITTED),
            (ModuleStatus.APPROVED, ModuleStatus.PUBLISHED),
            (ModuleStatus.PUBLISHED, ModuleStatus.ARCHIVED),
        ],
    )
    def test_allowed(self, current: ModuleStatus, target: ModuleStatus) -> None:
        assert target in MODULE_TRANSITIONS[current]

    def test_draft_cannot_be_published(self) -> None:
        assert ModuleStatus.PUBLISHED not in MODULE_TRANSITIONS[ModuleStatus.DRAFT]

    def test_archived_is_final(self) -> None:
        assert MODULE_TRANSITIONS[ModuleStatus.ARCHIVED] == frozenset()


@pytest.fixture
def session() -> MagicMock:
    session = MagicMock()
    session.aexecute = AsyncMock()
    return session


class TestCatalogService:
    """Tests for CatalogService with a mocked session."""

    @pytest.mark.asyncio
    async def test_submit_notifies_admins(self, session: MagicMock) -> None:
        category = make_category()
        module = make_module(category, status=ModuleStatus.DRAFT)
        instructor = make_user("instructor", user_id=module.instructor_ids[0])
        session.aexecute.return_value = MagicMock(was_applied=True)
        dispatcher = SideEffectDispatcher()
        email = AsyncMock()
        service = CatalogService(
            session,
            "learnpath_test",
            dispatcher=dispatcher,
            email_service=email,
            admin_emails=["ops@example.com"],
        )
        service.get_module = AsyncMock(return_value=module)

        submitted = await service.submit_module(module.id, instructor)
        await dispatcher.drain()

        assert submitted.status == ModuleStatus.SUBMITTED
        assert submitted.submitted_at is not None
        email.send_module_submitted_email.assert_awaited_once()
        assert (
            email.send_module_submitted_email.await_args.kwargs["to_email"]
            == "ops@example.com"
        )

    @pytest.mark.asyncio
    async def test_submit_requires_assignment(self, session: MagicMock) -> None:
        module = make_module(make_category(), status=ModuleStatus.DRAFT)
        service = CatalogService(session, "learnpath_test")
        service.get_module = AsyncMock(return_value=module)

        with pytest.raises(NotModuleInstructorError):
            await service.submit_module(module.id, make_user("instructor"))

    @pytest.mark.asyncio
    async def test_publish_requires_approval(self, session: MagicMock) -> None:
        module = make_module(make_category(), status=ModuleStatus.SUBMITTED)
        service = CatalogService(session, "learnpath_test")
        service.get_module = AsyncMock(return_value=module)

        with pytest.raises(ModuleTransitionError):
            await service.publish_module(module.id)
        session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_lost_status_race(self, session: MagicMock) -> None:
        module = make_module(make_category(), status=ModuleStatus.SUBMITTED)
        raced = make_module(make_category(), status=ModuleStatus.REJECTED)
        session.aexecute.return_value = MagicMock(was_applied=False)
        service = CatalogService(session, "learnpath_test")
        service.get_module = AsyncMock(side_effect=[module, raced])

        with pytest.raises(ModuleTransitionError) as exc_info:
            await service.review_module(module.id, approve=True)
        assert "from rejected" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_counts_published_modules(self, session: MagicMock) -> None:
        session.aexecute.return_value = [
            MagicMock(level="beginner", status="published"),
            MagicMock(level="beginner", status="draft"),
            MagicMock(level="advanced", status="published"),
        ]
        service = CatalogService(session, "learnpath_test")

        counts = await service.count_published_modules_by_level(uuid4())

        assert counts == {
            ModuleLevel.BEGINNER: 1,
            ModuleLevel.INTERMEDIATE: 0,
            ModuleLevel.ADVANCED: 1,
        }

    @pytest.mark.asyncio
    async def test_create_module_uses_configured_defaults(
        self, session: MagicMock
    ) -> None:
        service = CatalogService(
            session, "learnpath_test", default_passing_score=60, default_max_attempts=5
        )
        category = make_category()
        service.get_category = AsyncMock(return_value=category)
        creator_id = uuid4()
        data = _request(category_id=str(category.id))

        module = await service.create_module(data, creator_id)

        assert module.status == ModuleStatus.DRAFT
        assert module.instructor_ids == [creator_id]
        assert module.lessons[1].assessment.passing_score == 60
        assert module.final_assessment.max_attempts == 5
