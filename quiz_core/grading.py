from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional
import logging

from . import config
from .scoring import score_question
from .types import (
    ChoiceQuestion,
    FillInTheBlankQuestion,
    LongAnswerQuestion,
    MultipleChoiceQuestion,
    MultipleSelectionMatrixQuestion,
    Question,
    QuizConfig,
    RankingQuestion,
    ShortAnswerQuestion,
    SingleSelectionMatrixQuestion,
    format_points,
    get_question_points,
    iter_questions,
)

log = logging.getLogger(__name__)

__all__ = ["QuestionResult", "QuizGradingResult", "correct_answer_text", "grade_quiz"]


@dataclass(frozen=True)
class QuestionResult:
    id: str
    prompt: str
    type: str
    awarded: Optional[float]
    max_points: float
    is_correct: bool
    feedback: str
    pending: bool = False
    nested_quiz_id: Optional[str] = None
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None


@dataclass(frozen=True)
class QuizGradingResult:
    total_score: float
    max_score: float
    percentage: float
    pending_count: int
    passed: Optional[bool]
    feedback: str
    question_results: List[QuestionResult] = field(default_factory=list)


def correct_answer_text(question: Question) -> Optional[str]:
    """Human-readable expected answer, using option labels where the question has them."""

    if isinstance(question, MultipleChoiceQuestion):
        if not question.correct_answer:
            return None
        return question.options.get(question.correct_answer) or question.correct_answer
    if isinstance(question, ChoiceQuestion):
        labels = [question.options[k] for k in question.correct_answers if question.options.get(k)]
        return ", ".join(labels) or None
    if isinstance(question, (ShortAnswerQuestion, LongAnswerQuestion)):
        return question.correct_answer or None
    if isinstance(question, FillInTheBlankQuestion):
        return ", ".join(question.correct_answers.values()) or None
    if isinstance(question, RankingQuestion):
        return " > ".join(question.items.get(k, k) for k in question.correct_order) or None
    if isinstance(question, (SingleSelectionMatrixQuestion, MultipleSelectionMatrixQuestion)):
        pairs = [
            f"{question.rows.get(r, r)}: {question.columns.get(c, c)}"
            for r, c in question.correct_answers.items()
        ]
        return "; ".join(pairs) or None
    return None


def _lookup(answers: Mapping[str, Any], nested_id: Optional[str], question_id: str) -> Any:
    if nested_id is not None:
        scoped = f"{nested_id}:{question_id}"
        if scoped in answers:
            return answers[scoped]
    return answers.get(question_id)


def _feedback(question: Question, awarded: Optional[float], correct: bool, pending: bool, expected: Optional[str]) -> str:
    if pending:
        text = "Submitted. Manual grading required."
    elif correct:
        return "Correct!"
    elif awarded:
        text = "Partially correct."
    else:
        text = f"Incorrect. The correct answer is: {expected}" if expected else "Incorrect."
    if question.feedback:
        text += f" {question.feedback}"
    return text


def grade_quiz(quiz: QuizConfig, answers: Mapping[str, Any]) -> QuizGradingResult:
    """Grade every question of ``quiz`` against ``answers`` (question id -> answer).

    Manually graded questions count toward ``max_score`` but add nothing to
    ``total_score`` until a grader scores them; they are reported in
    ``pending_count``.  ``passed`` is ``None`` unless grading is enabled with a
    passing score.
    """

    results: List[QuestionResult] = []
    total = 0.0
    max_total = 0.0
    for nested_id, _page, question in iter_questions(quiz):
        expected = correct_answer_text(question)
        answer = _lookup(answers, nested_id, question.id)
        if answer is None:
            points = float(get_question_points(question))
            max_total += points
            results.append(
                QuestionResult(
                    id=question.id,
                    prompt=question.prompt,
                    type=question.type,
                    awarded=0.0,
                    max_points=points,
                    is_correct=False,
                    feedback="No answer provided",
                    nested_quiz_id=nested_id,
                    correct_answer=expected,
                    explanation=question.feedback,
                )
            )
            continue

        qs = score_question(question, answer)
        max_total += qs.max_points
        total += qs.awarded or 0.0
        results.append(
            QuestionResult(
                id=question.id,
                prompt=question.prompt,
                type=question.type,
                awarded=qs.awarded,
                max_points=qs.max_points,
                is_correct=qs.correct,
                feedback=_feedback(question, qs.awarded, qs.correct, qs.pending, expected),
                pending=qs.pending,
                nested_quiz_id=nested_id,
                correct_answer=expected,
                explanation=question.feedback,
            )
        )

    percentage = round(total / max_total * 100, config.PERCENT_DECIMALS) if max_total > 0 else 0.0
    pending = sum(1 for r in results if r.pending)
    correct = sum(1 for r in results if r.is_correct)

    passed: Optional[bool] = None
    grading = quiz.grading
    if grading is not None and grading.enabled and grading.passing_score is not None:
        passed = percentage >= grading.passing_score

    summary = (
        f"Quiz completed! You scored {format_points(total)}/{format_points(max_total)} points ({format_points(percentage)}%). "
        f"You got {correct}/{len(results)} questions correct."
    )
    if pending:
        summary += f" {pending} question(s) await manual grading."
    log.debug("quiz %s graded: %s/%s (%s%%), pending=%d", quiz.id, total, max_total, percentage, pending)
    return QuizGradingResult(
        total_score=total,
        max_score=max_total,
        percentage=percentage,
        pending_count=pending,
        passed=passed,
        feedback=summary,
        question_results=results,
    )
