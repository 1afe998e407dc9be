"""Assessment questions and grading."""

from .grader import grade, pending_review_results, percentage, validate_answers
from .models import (
    Answer,
    EssayQuestion,
    FinalAssessment,
    GradeResult,
    LessonAssessment,
    MultipleChoiceQuestion,
    Question,
    QuestionResult,
    QuestionType,
    TrueFalseQuestion,
)


__all__ = [
    "Answer",
    "EssayQuestion",
    "FinalAssessment",
    "GradeResult",
    "LessonAssessment",
    "MultipleChoiceQuestion",
    "Question",
    "QuestionResult",
    "QuestionType",
    "TrueFalseQuestion",
    "grade",
    "pending_review_results",
    "percentage",
    "validate_answers",
]
