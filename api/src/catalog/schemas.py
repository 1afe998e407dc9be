"""Pydantic schemas for the curriculum catalog.

Request and response models for:
- Categories
- Modules with nested lessons and assessments
- Module review actions
"""

from datetime import datetime
from decimal import Decimal
from typing import Annotated, Literal, Self
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from src.assessments.models import (
    EssayQuestion,
    FinalAssessment,
    LessonAssessment,
    MultipleChoiceQuestion,
    Question,
    TrueFalseQuestion,
)

from .models import (
    Category,
    CategoryAccessType,
    Lesson,
    Module,
    ModuleLevel,
    ModuleStatus,
)


# ==============================================================================
# Category Schemas
# ==============================================================================


class CreateCategoryRequest(BaseModel):
    """Category creation request."""

    name: str = Field(..., min_length=2, max_length=200)
    description: str | None = Field(None, max_length=5000)
    access_type: CategoryAccessType = CategoryAccessType.FREE
    price: Decimal = Field(Decimal(0), ge=0, description="Price for non-eligible users")
    allowed_roles: list[str] = Field(
        default_factory=list,
        description="Roles with free access to a paid/restricted category",
    )
    payment_required_for_non_eligible: bool = True


class CategoryResponse(BaseModel):
    """Category response."""

    id: UUID
    name: str
    description: str | None = None
    access_type: CategoryAccessType
    price: Decimal
    allowed_roles: list[str]
    payment_required_for_non_eligible: bool
    is_active: bool
    created_at: datetime

    @classmethod
    def from_category(cls, category: Category) -> "CategoryResponse":
        return cls(
            id=category.id,
            name=category.name,
            description=category.description,
            access_type=category.access_type,
            price=category.price,
            allowed_roles=sorted(category.allowed_roles),
            payment_required_for_non_eligible=category.payment_required_for_non_eligible,
            is_active=category.is_active,
            created_at=category.created_at,
        )


# ==============================================================================
# Question Schemas
# ==============================================================================


class MultipleChoiceQuestionIn(BaseModel):
    type: Literal["multiple-choice"]
    text: str = Field(..., min_length=1)
    options: list[str] = Field(..., min_length=2)
    correct_answer: str
    points: int = Field(1, ge=0)
    explanation: str | None = None

    @model_validator(mode="after")
    def answer_is_an_option(self) -> Self:
        if self.correct_answer not in self.options:
            msg = "correct_answer must be one of the options"
            raise ValueError(msg)
        return self


class TrueFalseQuestionIn(BaseModel):
    type: Literal["true-false"]
    text: str = Field(..., min_length=1)
    correct_answer: Literal["true", "false"]
    points: int = Field(1, ge=0)
    explanation: str | None = None


class EssayQuestionIn(BaseModel):
    type: Literal["essay"]
    text: str = Field(..., min_length=1)
    points: int = Field(1, ge=0)
    rubric: str | None = None


QuestionIn = Annotated[
    MultipleChoiceQuestionIn | TrueFalseQuestionIn | EssayQuestionIn,
    Field(discriminator="type"),
]


class LessonAssessmentIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    questions: list[QuestionIn] = Field(..., min_length=1)
    passing_score: int | None = Field(None, ge=0, le=100)
    max_attempts: int | None = Field(None, description="0 = unlimited")


class FinalAssessmentIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = None
    questions: list[QuestionIn] = Field(default_factory=list)
    passing_score: int | None = Field(None, ge=0, le=100)
    max_attempts: int | None = Field(None, description="0 = unlimited")
    time_limit_minutes: int | None = Field(None, gt=0)


class LessonIn(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    content: str | None = None
    assessment: LessonAssessmentIn | None = None


# ==============================================================================
# Module Schemas
# ==============================================================================


class CreateModuleRequest(BaseModel):
    """Module creation request. Lessons are indexed in the given order."""

    title: str = Field(..., min_length=3, max_length=200)
    description: str | None = Field(None, max_length=5000)
    category_id: UUID
    level: ModuleLevel
    instructor_ids: list[UUID] = Field(
        default_factory=list, description="Co-instructors besides the creator"
    )
    lessons: list[LessonIn] = Field(default_factory=list)
    final_assessment: FinalAssessmentIn | None = None


class ReviewModuleRequest(BaseModel):
    """Admin decision on a submitted module."""

    approve: bool
    reason: str | None = Field(None, max_length=2000)

    @model_validator(mode="after")
    def rejection_needs_reason(self) -> Self:
        if not self.approve and not self.reason:
            msg = "A reason is required when rejecting a module"
            raise ValueError(msg)
        return self


class QuestionView(BaseModel):
    """Question as shown to a client.

    Answer keys are only filled for the module's instructors and admins.
    """

    type: str
    text: str
    points: int
    options: list[str] | None = None
    correct_answer: str | None = None
    explanation: str | None = None
    rubric: str | None = None

    @classmethod
    def from_question(cls, question: Question, with_keys: bool) -> "QuestionView":
        view = cls(type=question.type.value, text=question.text, points=question.points)
        match question:
            case MultipleChoiceQuestion():
                view.options = list(question.options)
                if with_keys:
                    view.correct_answer = question.correct_answer
                    view.explanation = question.explanation
            case TrueFalseQuestion():
                view.options = ["true", "false"]
                if with_keys:
                    view.correct_answer = question.correct_answer
                    view.explanation = question.explanation
            case EssayQuestion():
                if with_keys:
                    view.rubric = question.rubric
        return view


class LessonAssessmentView(BaseModel):
    title: str
    passing_score: int
    max_attempts: int
    questions: list[QuestionView]

    @classmethod
    def build(cls, assessment: LessonAssessment, with_keys: bool) -> Self:
        return cls(
            title=assessment.title,
            passing_score=assessment.passing_score,
            max_attempts=assessment.max_attempts,
            questions=[
                QuestionView.from_question(q, with_keys) for q in assessment.questions
            ],
        )


class FinalAssessmentView(LessonAssessmentView):
    description: str | None = None
    time_limit_minutes: int | None = None
    has_essay: bool = False

    @classmethod
    def build(cls, assessment: FinalAssessment, with_keys: bool) -> Self:
        return cls(
            title=assessment.title,
            description=assessment.description,
            passing_score=assessment.passing_score,
            max_attempts=assessment.max_attempts,
            time_limit_minutes=assessment.time_limit_minutes,
            has_essay=assessment.has_essay,
            questions=[
                QuestionView.from_question(q, with_keys) for q in assessment.questions
            ],
        )


class LessonView(BaseModel):
    index: int
    title: str
    description: str | None = None
    content: str | None = None
    assessment: LessonAssessmentView | None = None

    @classmethod
    def build(cls, index: int, lesson: Lesson, with_keys: bool) -> Self:
        return cls(
            index=index,
            title=lesson.title,
            description=lesson.description,
            content=lesson.content,
            assessment=(
                LessonAssessmentView.build(lesson.assessment, with_keys)
                if lesson.assessment
                else None
            ),
        )


class ModuleResponse(BaseModel):
    """Module with its lessons and final assessment."""

    id: UUID
    title: str
    description: str | None = None
    category_id: UUID
    level: ModuleLevel
    status: ModuleStatus
    instructor_ids: list[UUID]
    lessons: list[LessonView]
    final_assessment: FinalAssessmentView | None = None
    rejection_reason: str | None = None
    enrollment_count: int = 0
    created_at: datetime
    submitted_at: datetime | None = None
    published_at: datetime | None = None

    @classmethod
    def from_module(
        cls,
        module: Module,
        with_keys: bool = False,
        enrollment_count: int = 0,
    ) -> "ModuleResponse":
        return cls(
            id=module.id,
            title=module.title,
            description=module.description,
            category_id=module.category_id,
            level=module.level,
            status=module.status,
            instructor_ids=module.instructor_ids,
            lessons=[
                LessonView.build(i, lesson, with_keys)
                for i, lesson in enumerate(module.lessons)
            ],
            final_assessment=(
                FinalAssessmentView.build(module.final_assessment, with_keys)
                if module.final_assessment
                else None
            ),
            rejection_reason=module.rejection_reason,
            enrollment_count=enrollment_count,
            created_at=module.created_at,
            submitted_at=module.submitted_at,
            published_at=module.published_at,
        )
