"""Assessment grading.

Pure functions, no I/O:

- ``grade``: auto-grades choice questions, essays score 0 until reviewed
- ``pending_review_results``: records an essay-bearing submission ungraded
- ``validate_answers``: rejects malformed answer payloads
"""

from collections.abc import Sequence
from decimal import ROUND_HALF_UP, Decimal
from typing import assert_never

from src.core.errors import PayloadValidationError

from .models import (
    Answer,
    EssayQuestion,
    GradeResult,
    MultipleChoiceQuestion,
    Question,
    QuestionResult,
    TrueFalseQuestion,
)


def percentage(part: int, whole: int) -> int:
    """Integer percentage rounded half-up; 0 when ``whole`` is 0."""
    if whole <= 0:
        return 0
    value = Decimal(part) * 100 / Decimal(whole)
    return int(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def validate_answers(questions: Sequence[Question], answers: Sequence[Answer]) -> None:
    """Reject answers that point outside the question list or repeat an index.

    Raises:
        PayloadValidationError: On out-of-range or duplicate question_index
    """
    seen: set[int] = set()
    for answer in answers:
        if not 0 <= answer.question_index < len(questions):
            msg = f"Answer refers to unknown question {answer.question_index}"
            raise PayloadValidationError(msg, "invalid_answers")
        if answer.question_index in seen:
            msg = f"Question {answer.question_index} answered more than once"
            raise PayloadValidationError(msg, "invalid_answers")
        seen.add(answer.question_index)


def _answers_by_index(answers: Sequence[Answer]) -> dict[int, str]:
    return {a.question_index: a.answer for a in answers}


def _grade_question(index: int, question: Question, answer: str) -> QuestionResult:
    result = QuestionResult(
        question_index=index,
        question_text=question.text,
        question_type=question.type,
        student_answer=answer,
        max_points=question.points,
    )

    match question:
        case MultipleChoiceQuestion() | TrueFalseQuestion():
            is_correct = answer.lower() == question.correct_answer.lower()
            result.correct_answer = question.correct_answer
            result.explanation = question.explanation
            result.is_correct = is_correct
            result.points_earned = question.points if is_correct else 0
        case EssayQuestion():
            # Scored by an instructor through essay review
            result.is_correct = False
            result.points_earned = 0
        case _:
            assert_never(question)

    return result


def grade(
    questions: Sequence[Question],
    answers: Sequence[Answer],
    passing_score: int,
) -> GradeResult:
    """Grade a submission.

    Answers are matched to questions by ``question_index``; a missing answer
    counts as an empty string.

    Returns:
        GradeResult with score = round(earned / total * 100), 0 if total is 0
    """
    by_index = _answers_by_index(answers)

    results = [
        _grade_question(index, question, by_index.get(index, ""))
        for index, question in enumerate(questions)
    ]
    total_points = sum(r.max_points for r in results)
    earned_points = sum(r.points_earned for r in results)

    score = percentage(earned_points, total_points)
    return GradeResult(score=score, passed=score >= passing_score, results=results)


def pending_review_results(
    questions: Sequence[Question],
    answers: Sequence[Answer],
) -> list[QuestionResult]:
    """Record a submission for instructor review without scoring anything."""
    by_index = _answers_by_index(answers)
    return [
        QuestionResult(
            question_index=index,
            question_text=question.text,
            question_type=question.type,
            student_answer=by_index.get(index, ""),
            max_points=question.points,
        )
        for index, question in enumerate(questions)
    ]
