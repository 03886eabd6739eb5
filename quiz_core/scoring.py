from __future__ import annotations
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Dict, Mapping, Optional, Tuple
import logging

from . import config
from .types import (
    ArticleQuestion,
    ChoiceQuestion,
    FillInTheBlankQuestion,
    LongAnswerQuestion,
    ManualScoring,
    MatrixScoring,
    MultipleChoiceQuestion,
    MultipleSelectionMatrixQuestion,
    PartialMatchScoring,
    Question,
    RankingQuestion,
    RankingScoring,
    RubricScoring,
    ScoringConfig,
    ShortAnswerQuestion,
    SimpleScoring,
    SingleSelectionMatrixQuestion,
    WeightedScoring,
    WhiteboardQuestion,
    effective_scoring,
)

log = logging.getLogger(__name__)

__all__ = ["QuestionScore", "score_question", "score", "compare_answer", "similarity"]


@dataclass(frozen=True)
class QuestionScore:
    awarded: Optional[float]  # None while a human grade is pending
    max_points: float
    correct: bool = False
    pending: bool = False
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class _Units:
    correct: int = 0
    incorrect: int = 0
    total: int = 0
    exact: bool = False
    shape_ok: bool = True


_WRONG_SHAPE = _Units(shape_ok=False)


def _clamp(x: float, lo: float, hi: float) -> float:
    if x < lo: return lo
    if x > hi: return hi
    return x


def _norm_text(value: str, case_sensitive: bool = False) -> str:
    v = value.strip()
    return v if case_sensitive else v.casefold()


def _text_equal(a: str, b: str) -> bool:
    return _norm_text(a, not config.TEXT_CASE_INSENSITIVE) == _norm_text(b, not config.TEXT_CASE_INSENSITIVE)


def _is_str_list(value: Any) -> bool:
    return isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value)


def _is_str_map(value: Any) -> bool:
    return isinstance(value, Mapping) and all(isinstance(v, str) for v in value.values())


def _keyed_units(expected: Mapping[str, str], answer: Any, text: bool) -> _Units:
    if not _is_str_map(answer):
        return _WRONG_SHAPE
    correct = incorrect = 0
    for key, want in expected.items():
        got = answer.get(key)
        if got is None or not got.strip():
            continue
        same = _text_equal(got, want) if text else got == want
        if same:
            correct += 1
        else:
            incorrect += 1
    total = len(expected)
    return _Units(correct, incorrect, total, exact=total > 0 and correct == total)


def compare_answer(question: Question, answer: Any) -> _Units:
    """Break an answer down into correct / incorrect units for ``question``.

    A unit is an option (choice), a blank, a matrix row, a ranking position,
    or the whole answer for single-answer questions.  An answer of the wrong
    shape yields ``shape_ok=False`` and no correct units.
    """

    if isinstance(question, MultipleChoiceQuestion):
        if not isinstance(answer, str):
            return _WRONG_SHAPE
        if question.correct_answer is None:
            return _Units()
        ok = answer == question.correct_answer
        return _Units(int(ok), int(not ok and bool(answer)), 1, exact=ok)
    if isinstance(question, (ShortAnswerQuestion, LongAnswerQuestion)):
        if not isinstance(answer, str):
            return _WRONG_SHAPE
        if not question.correct_answer:
            return _Units()
        ok = _text_equal(answer, question.correct_answer)
        return _Units(int(ok), int(not ok and bool(answer.strip())), 1, exact=ok)
    if isinstance(question, FillInTheBlankQuestion):
        return _keyed_units(question.correct_answers, answer, text=True)
    if isinstance(question, (SingleSelectionMatrixQuestion, MultipleSelectionMatrixQuestion)):
        return _keyed_units(question.correct_answers, answer, text=False)
    if isinstance(question, ChoiceQuestion):
        if not _is_str_list(answer):
            return _WRONG_SHAPE
        selected = set(answer)
        expected = set(question.correct_answers)
        return _Units(
            len(selected & expected),
            len(selected - expected),
            len(expected),
            exact=bool(expected) and selected == expected,
        )
    if isinstance(question, RankingQuestion):
        if not _is_str_list(answer):
            return _WRONG_SHAPE
        order = question.correct_order
        placed = sum(1 for i, key in enumerate(answer) if i < len(order) and order[i] == key)
        return _Units(
            placed,
            len(answer) - placed,
            len(order),
            exact=bool(order) and list(answer) == list(order),
        )
    if isinstance(question, (ArticleQuestion, WhiteboardQuestion)):
        return _Units(shape_ok=isinstance(answer, str))
    raise TypeError(f"unknown question type: {type(question).__name__}")


def _expected_text(question: Question) -> Any:
    if isinstance(question, (MultipleChoiceQuestion, ShortAnswerQuestion, LongAnswerQuestion)):
        return question.correct_answer
    if isinstance(question, (FillInTheBlankQuestion, SingleSelectionMatrixQuestion, MultipleSelectionMatrixQuestion)):
        return question.correct_answers
    if isinstance(question, ChoiceQuestion):
        return question.correct_answers
    if isinstance(question, RankingQuestion):
        return question.correct_order
    return None


def _ratio(a: str, b: str, case_sensitive: bool) -> float:
    want = _norm_text(b, case_sensitive)
    if not want:
        return 0.0
    return SequenceMatcher(None, _norm_text(a, case_sensitive), want).ratio()


def similarity(question: Question, answer: Any, case_sensitive: bool = False) -> float:
    """Normalised text similarity in [0, 1] between ``answer`` and the expected answer.

    Keyed answers (blanks, matrix rows) average the per-key ratio over the
    expected keys; list answers are compared as newline-joined text.
    """

    expected = _expected_text(question)
    if expected is None:
        return 0.0
    if isinstance(expected, str):
        return _ratio(answer, expected, case_sensitive) if isinstance(answer, str) else 0.0
    if isinstance(expected, Mapping):
        if not _is_str_map(answer) or not expected:
            return 0.0
        ratios = [_ratio(answer.get(k, ""), v, case_sensitive) for k, v in expected.items()]
        return sum(ratios) / len(ratios)
    if not _is_str_list(answer):
        return 0.0
    return _ratio("\n".join(answer), "\n".join(expected), case_sensitive)


# ---- Per-variant scorers: (awarded, meta) ----

def _score_simple(scoring: SimpleScoring, units: _Units) -> Tuple[float, Dict[str, Any]]:
    awarded = float(scoring.points) if units.exact else 0.0
    return awarded, {"scoring": "simple", "exact": units.exact}


def _score_weighted(scoring: WeightedScoring, units: _Units) -> Tuple[float, Dict[str, Any]]:
    meta: Dict[str, Any] = {
        "scoring": "weighted",
        "mode": scoring.mode,
        "correct": units.correct,
        "incorrect": units.incorrect,
    }
    if scoring.mode == "all-or-nothing":
        return (float(scoring.max_points) if units.exact else 0.0), meta
    raw = units.correct * float(scoring.points_per_correct or 0)
    if scoring.mode == "partial-with-penalty":
        raw -= units.incorrect * float(scoring.penalty_per_incorrect or 0)
        return _clamp(raw, 0.0, float(scoring.max_points)), meta
    return min(raw, float(scoring.max_points)), meta


def _score_partial_match(
    scoring: PartialMatchScoring, question: Question, answer: Any
) -> Tuple[float, Dict[str, Any]]:
    if not _expected_text(question):
        return 0.0, {"scoring": "partial-match", "ratio": 0.0}
    ratio = similarity(question, answer, case_sensitive=scoring.case_sensitive)
    hit = ratio >= scoring.match_threshold
    return (float(scoring.max_points) if hit else 0.0), {"scoring": "partial-match", "ratio": round(ratio, 4)}


def _score_ranking(scoring: RankingScoring, units: _Units) -> Tuple[float, Dict[str, Any]]:
    meta = {"scoring": "ranking", "mode": scoring.mode, "correct_positions": units.correct}
    if scoring.mode == "exact-order":
        return (float(scoring.max_points) if units.exact else 0.0), meta
    raw = units.correct * float(scoring.points_per_correct_position or 0)
    return min(raw, float(scoring.max_points)), meta


def _score_matrix(scoring: MatrixScoring, units: _Units) -> Tuple[float, Dict[str, Any]]:
    meta = {"scoring": "matrix", "mode": scoring.mode, "correct_rows": units.correct, "rows": units.total}
    if scoring.mode == "all-or-nothing":
        return (float(scoring.max_points) if units.exact else 0.0), meta
    return min(units.correct * float(scoring.points_per_row), float(scoring.max_points)), meta


def score_question(
    question: Question,
    answer: Any,
    scoring: Optional[ScoringConfig] = None,
) -> QuestionScore:
    """Score one answer.

    ``scoring`` overrides the question's own configuration; when both are
    absent the type default applies.  Rubric and manual scoring only report
    the maximum: ``awarded`` stays ``None`` and ``pending`` is set until a
    grader enters a score.  A wrong-shaped answer scores 0, never raises.
    """

    policy = scoring if scoring is not None else effective_scoring(question)
    max_points = float(policy.max_points)

    if isinstance(policy, (RubricScoring, ManualScoring)):
        meta: Dict[str, Any] = {"scoring": policy.type}
        if isinstance(policy, RubricScoring):
            meta["rubric_id"] = policy.rubric_id
        return QuestionScore(awarded=None, max_points=max_points, pending=True, meta=meta)

    units = compare_answer(question, answer)
    if not units.shape_ok:
        log.debug("question %s: answer of unexpected shape %s scored 0", question.id, type(answer).__name__)
        return QuestionScore(awarded=0.0, max_points=max_points, meta={"scoring": policy.type, "shape": "invalid"})

    if isinstance(policy, SimpleScoring):
        awarded, meta = _score_simple(policy, units)
    elif isinstance(policy, WeightedScoring):
        awarded, meta = _score_weighted(policy, units)
    elif isinstance(policy, PartialMatchScoring):
        awarded, meta = _score_partial_match(policy, question, answer)
    elif isinstance(policy, RankingScoring):
        awarded, meta = _score_ranking(policy, units)
    elif isinstance(policy, MatrixScoring):
        awarded, meta = _score_matrix(policy, units)
    else:
        raise TypeError(f"unknown scoring config: {policy!r}")

    correct = units.exact or (max_points > 0 and awarded >= max_points)
    return QuestionScore(awarded=awarded, max_points=max_points, correct=correct, meta=meta)


def score(
    question: Question,
    answer: Any,
    scoring: Optional[ScoringConfig] = None,
) -> Tuple[Optional[float], float]:
    """Return ``(awarded, max_points)`` for one answer."""

    result = score_question(question, answer, scoring)
    return result.awarded, result.max_points
