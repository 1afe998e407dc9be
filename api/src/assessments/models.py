"""Assessment building blocks.

Questions are a closed union of three variants. Each variant carries only
the grading data it needs: choice questions hold an answer key, essay
questions hold a rubric for the human grader.

Stored as JSON inside the module row; ``type`` is the discriminator:
``multiple-choice``, ``true-false``, ``essay``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, ClassVar
from uuid import UUID

from src.core.errors import PayloadValidationError


DEFAULT_PASSING_SCORE = 70
DEFAULT_MAX_ATTEMPTS = 3


class QuestionType(str, Enum):
    """Question kinds."""

    MULTIPLE_CHOICE = "multiple-choice"
    TRUE_FALSE = "true-false"
    ESSAY = "essay"


@dataclass(frozen=True)
class MultipleChoiceQuestion:
    """Question graded against one of its options."""

    text: str
    options: tuple[str, ...]
    correct_answer: str
    points: int = 1
    explanation: str | None = None

    type: ClassVar[QuestionType] = QuestionType.MULTIPLE_CHOICE


@dataclass(frozen=True)
class TrueFalseQuestion:
    """Question graded against a "true"/"false" key."""

    text: str
    correct_answer: str
    points: int = 1
    explanation: str | None = None

    type: ClassVar[QuestionType] = QuestionType.TRUE_FALSE


@dataclass(frozen=True)
class EssayQuestion:
    """Free-text question; only an instructor can grade it."""

    text: str
    points: int = 1
    rubric: str | None = None

    type: ClassVar[QuestionType] = QuestionType.ESSAY


Question = MultipleChoiceQuestion | TrueFalseQuestion | EssayQuestion


def question_from_dict(data: dict[str, Any]) -> Question:
    """Build a question variant from its JSON form."""
    try:
        kind = QuestionType(data.get("type"))
    except ValueError as e:
        msg = f"Unknown question type: {data.get('type')!r}"
        raise PayloadValidationError(msg, "invalid_question") from e

    points = int(data.get("points", 1))
    if points < 0:
        msg = "Question points must not be negative"
        raise PayloadValidationError(msg, "invalid_question")

    match kind:
        case QuestionType.MULTIPLE_CHOICE:
            return MultipleChoiceQuestion(
                text=data["text"],
                options=tuple(data.get("options") or ()),
                correct_answer=str(data["correct_answer"]),
                points=points,
                explanation=data.get("explanation"),
            )
        case QuestionType.TRUE_FALSE:
            return TrueFalseQuestion(
                text=data["text"],
                correct_answer=str(data["correct_answer"]),
                points=points,
                explanation=data.get("explanation"),
            )
        case QuestionType.ESSAY:
            return EssayQuestion(
                text=data["text"],
                points=points,
                rubric=data.get("rubric"),
            )


def question_to_dict(question: Question) -> dict[str, Any]:
    """Serialize a question variant to its JSON form."""
    data: dict[str, Any] = {
        "type": question.type.value,
        "text": question.text,
        "points": question.points,
    }
    match question:
        case MultipleChoiceQuestion():
            data["options"] = list(question.options)
            data["correct_answer"] = question.correct_answer
            data["explanation"] = question.explanation
        case TrueFalseQuestion():
            data["correct_answer"] = question.correct_answer
            data["explanation"] = question.explanation
        case EssayQuestion():
            data["rubric"] = question.rubric
    return data


# ==============================================================================
# Assessments
# ==============================================================================


@dataclass(frozen=True)
class LessonAssessment:
    """Quiz attached to a single lesson.

    ``max_attempts <= 0`` means unlimited attempts.
    """

    title: str
    questions: tuple[Question, ...]
    passing_score: int = DEFAULT_PASSING_SCORE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LessonAssessment":
        return cls(
            title=data.get("title", ""),
            questions=tuple(question_from_dict(q) for q in data.get("questions", [])),
            passing_score=data.get("passing_score", DEFAULT_PASSING_SCORE),
            max_attempts=data.get("max_attempts", DEFAULT_MAX_ATTEMPTS),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "questions": [question_to_dict(q) for q in self.questions],
            "passing_score": self.passing_score,
            "max_attempts": self.max_attempts,
        }


@dataclass(frozen=True)
class FinalAssessment:
    """Module-level gate the student must pass to complete the module."""

    title: str
    questions: tuple[Question, ...]
    description: str | None = None
    passing_score: int = DEFAULT_PASSING_SCORE
    max_attempts: int = DEFAULT_MAX_ATTEMPTS
    time_limit_minutes: int | None = None

    @property
    def has_essay(self) -> bool:
        """Whether any question needs a human grader."""
        return any(isinstance(q, EssayQuestion) for q in self.questions)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FinalAssessment":
        return cls(
            title=data.get("title", ""),
            description=data.get("description"),
            questions=tuple(question_from_dict(q) for q in data.get("questions", [])),
            passing_score=data.get("passing_score", DEFAULT_PASSING_SCORE),
            max_attempts=data.get("max_attempts", DEFAULT_MAX_ATTEMPTS),
            time_limit_minutes=data.get("time_limit_minutes"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "questions": [question_to_dict(q) for q in self.questions],
            "passing_score": self.passing_score,
            "max_attempts": self.max_attempts,
            "time_limit_minutes": self.time_limit_minutes,
        }


# ==============================================================================
# Submissions and results
# ==============================================================================


@dataclass(frozen=True)
class Answer:
    """A student's answer to the question at ``question_index``."""

    question_index: int
    answer: str


@dataclass
class QuestionResult:
    """Outcome for one question of one submission."""

    question_index: int
    question_text: str
    question_type: QuestionType
    student_answer: str
    max_points: int
    points_earned: int = 0
    is_correct: bool = False
    correct_answer: str | None = None
    explanation: str | None = None
    instructor_feedback: str | None = None
    graded_at: datetime | None = None
    graded_by: UUID | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "QuestionResult":
        graded_at = data.get("graded_at")
        graded_by = data.get("graded_by")
        return cls(
            question_index=data["question_index"],
            question_text=data.get("question_text", ""),
            question_type=QuestionType(data["question_type"]),
            student_answer=data.get("student_answer", ""),
            max_points=data.get("max_points", 0),
            points_earned=data.get("points_earned", 0),
            is_correct=data.get("is_correct", False),
            correct_answer=data.get("correct_answer"),
            explanation=data.get("explanation"),
            instructor_feedback=data.get("instructor_feedback"),
            graded_at=datetime.fromisoformat(graded_at) if graded_at else None,
            graded_by=UUID(graded_by) if graded_by else None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "question_index": self.question_index,
            "question_text": self.question_text,
            "question_type": self.question_type.value,
            "student_answer": self.student_answer,
            "max_points": self.max_points,
            "points_earned": self.points_earned,
            "is_correct": self.is_correct,
            "correct_answer": self.correct_answer,
            "explanation": self.explanation,
            "instructor_feedback": self.instructor_feedback,
            "graded_at": self.graded_at.isoformat() if self.graded_at else None,
            "graded_by": str(self.graded_by) if self.graded_by else None,
        }


@dataclass(frozen=True)
class GradeResult:
    """Score (0-100), per-question results and the pass decision."""

    score: int
    passed: bool
    results: list[QuestionResult] = field(default_factory=list)
