"""Authoring operations on canonical quiz configs.

Every function takes a config and returns a new one; the input is never
modified (configs are frozen dataclasses and are rebuilt with
``dataclasses.replace``).  On a container quiz, operations that touch pages,
questions or resources need ``nested_quiz_id`` to say which nested quiz they
apply to.
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from typing import Callable, List, Optional, Sequence

from .errors import QuizConfigValidationError, QuizElementNotFoundError
from .types import (
    ArticleQuestion,
    ChoiceQuestion,
    ContainerQuizConfig,
    FillInTheBlankQuestion,
    GradingConfig,
    LongAnswerQuestion,
    MultipleChoiceQuestion,
    MultipleSelectionMatrixQuestion,
    NestedQuizConfig,
    Question,
    QuizConfig,
    QuizPage,
    QuizResource,
    RankingQuestion,
    RegularQuizConfig,
    ScoringConfig,
    ShortAnswerQuestion,
    SingleSelectionMatrixQuestion,
    WhiteboardQuestion,
    get_default_scoring,
)

log = logging.getLogger(__name__)

PagesFn = Callable[[List[QuizPage]], List[QuizPage]]


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:12]}"


def _require_container(config: QuizConfig, op: str) -> ContainerQuizConfig:
    if not isinstance(config, ContainerQuizConfig):
        raise QuizConfigValidationError(f"{op} can only be called on container quizzes")
    return config


def _nested_index(config: ContainerQuizConfig, nested_quiz_id: Optional[str]) -> int:
    if not nested_quiz_id:
        raise QuizConfigValidationError("nested_quiz_id is required for container quizzes")
    for i, nq in enumerate(config.nested_quizzes):
        if nq.id == nested_quiz_id:
            return i
    raise QuizElementNotFoundError(f"Nested quiz with id '{nested_quiz_id}' not found")


def _replace_nested(config: ContainerQuizConfig, index: int, nested: NestedQuizConfig) -> ContainerQuizConfig:
    nested_quizzes = list(config.nested_quizzes)
    nested_quizzes[index] = nested
    return replace(config, nested_quizzes=nested_quizzes)


def _edit_pages(config: QuizConfig, nested_quiz_id: Optional[str], fn: PagesFn) -> QuizConfig:
    if isinstance(config, RegularQuizConfig):
        return replace(config, pages=fn(list(config.pages)))
    idx = _nested_index(config, nested_quiz_id)
    nested = config.nested_quizzes[idx]
    return _replace_nested(config, idx, replace(nested, pages=fn(list(nested.pages))))


def _page_index(pages: Sequence[QuizPage], page_id: str) -> int:
    for i, page in enumerate(pages):
        if page.id == page_id:
            return i
    raise QuizElementNotFoundError(f"Page with id '{page_id}' not found")


def _timer_sum(nested_quizzes: Sequence[NestedQuizConfig]) -> int:
    return sum(nq.global_timer or 0 for nq in nested_quizzes)


# ---- Whole-quiz operations ----

def create_default_quiz_config() -> RegularQuizConfig:
    return RegularQuizConfig(
        id=_new_id("quiz"),
        title="Untitled Quiz",
        pages=[QuizPage(id=_new_id("page"), title="Page 1")],
    )


def toggle_quiz_type(config: QuizConfig, new_type: str) -> QuizConfig:
    """Convert between regular and container quizzes.

    Regular to container wraps the pages (and resources) in one nested quiz
    titled "Quiz Section 1".  Container to regular concatenates the nested
    quizzes' pages; their resources are dropped.
    """

    if new_type not in ("regular", "container"):
        raise QuizConfigValidationError(f"unknown quiz type {new_type!r}")
    if config.type == new_type:
        return config
    if isinstance(config, RegularQuizConfig):
        section = NestedQuizConfig(
            id=_new_id("nested"),
            title="Quiz Section 1",
            pages=list(config.pages),
            resources=None if config.resources is None else list(config.resources),
        )
        return ContainerQuizConfig(
            id=config.id,
            title=config.title,
            nested_quizzes=[section],
            sequential_order=False,
            global_timer=config.global_timer,
            grading=config.grading,
        )
    pages = [page for nq in config.nested_quizzes for page in nq.pages]
    if any(nq.resources for nq in config.nested_quizzes):
        log.info("quiz %s: nested quiz resources dropped when flattening to a regular quiz", config.id)
    return RegularQuizConfig(
        id=config.id,
        title=config.title,
        pages=pages,
        resources=None,
        global_timer=config.global_timer,
        grading=config.grading,
    )


def update_quiz_info(config: QuizConfig, *, title: Optional[str] = None) -> QuizConfig:
    if title is None:
        return config
    return replace(config, title=title)


def update_global_timer(config: QuizConfig, seconds: Optional[int]) -> QuizConfig:
    if seconds is not None and seconds < 0:
        raise QuizConfigValidationError("Global timer must be greater than or equal to 0")
    if isinstance(config, ContainerQuizConfig) and seconds is not None:
        nested_total = _timer_sum(config.nested_quizzes)
        if nested_total > 0 and seconds < nested_total:
            raise QuizConfigValidationError(
                f"Global timer ({seconds}s) must be greater than or equal to the sum of "
                f"nested quiz timers ({nested_total}s)"
            )
    return replace(config, global_timer=seconds)


def update_nested_quiz_timer(config: QuizConfig, nested_quiz_id: str, seconds: Optional[int]) -> QuizConfig:
    container = _require_container(config, "update_nested_quiz_timer")
    if seconds is not None and seconds < 0:
        raise QuizConfigValidationError("Nested quiz timer must be greater than or equal to 0")
    idx = _nested_index(container, nested_quiz_id)
    updated = _replace_nested(container, idx, replace(container.nested_quizzes[idx], global_timer=seconds))
    parent = container.global_timer
    if parent is not None and parent > 0:
        nested_total = _timer_sum(updated.nested_quizzes)
        if nested_total > parent:
            raise QuizConfigValidationError(
                f"Sum of nested quiz timers ({nested_total}s) must be less than or equal to "
                f"parent global timer ({parent}s)"
            )
    return updated


def update_grading_config(
    config: QuizConfig,
    *,
    enabled: Optional[bool] = None,
    passing_score: Optional[float] = None,
    show_score_to_student: Optional[bool] = None,
    show_correct_answers: Optional[bool] = None,
) -> QuizConfig:
    """Merge the given grading settings into the quiz's grading block."""

    if passing_score is not None and not 0 <= passing_score <= 100:
        raise QuizConfigValidationError("Passing score must be between 0 and 100")
    current = config.grading or GradingConfig()
    grading = GradingConfig(
        enabled=current.enabled if enabled is None else enabled,
        passing_score=current.passing_score if passing_score is None else passing_score,
        show_score_to_student=(
            current.show_score_to_student if show_score_to_student is None else show_score_to_student
        ),
        show_correct_answers=current.show_correct_answers if show_correct_answers is None else show_correct_answers,
    )
    return replace(config, grading=grading)


# ---- Resources ----

def _check_resource_pages(resource: QuizResource, pages: Sequence[QuizPage]) -> None:
    valid = {p.id for p in pages}
    invalid = [pid for pid in resource.pages if pid not in valid]
    if invalid:
        raise QuizConfigValidationError(f"Invalid page IDs in resource: {', '.join(invalid)}")


def add_quiz_resource(
    config: QuizConfig, resource: QuizResource, nested_quiz_id: Optional[str] = None
) -> QuizConfig:
    if isinstance(config, RegularQuizConfig):
        _check_resource_pages(resource, config.pages)
        return replace(config, resources=[*(config.resources or []), resource])
    if not nested_quiz_id:
        raise QuizConfigValidationError(
            "Cannot add resources to container quiz root. Resources must be added to nested quizzes."
        )
    idx = _nested_index(config, nested_quiz_id)
    nested = config.nested_quizzes[idx]
    _check_resource_pages(resource, nested.pages)
    return _replace_nested(config, idx, replace(nested, resources=[*(nested.resources or []), resource]))


def remove_quiz_resource(config: QuizConfig, resource_id: str, nested_quiz_id: Optional[str] = None) -> QuizConfig:
    """Drop a resource by id; an unknown id returns ``config`` itself."""

    if isinstance(config, RegularQuizConfig):
        resources = config.resources or []
        kept = [r for r in resources if r.id != resource_id]
        if len(kept) == len(resources):
            return config
        return replace(config, resources=kept)
    idx = _nested_index(config, nested_quiz_id)
    nested = config.nested_quizzes[idx]
    resources = nested.resources or []
    kept = [r for r in resources if r.id != resource_id]
    if len(kept) == len(resources):
        return config
    return _replace_nested(config, idx, replace(nested, resources=kept))


# ---- Pages ----

def add_page(config: QuizConfig, nested_quiz_id: Optional[str] = None, title: str = "New Page") -> QuizConfig:
    page = QuizPage(id=_new_id("page"), title=title)
    return _edit_pages(config, nested_quiz_id, lambda pages: pages + [page])


def remove_page(config: QuizConfig, page_id: str, nested_quiz_id: Optional[str] = None) -> QuizConfig:
    """Remove a page; its questions move to the end of the previous page.

    Removing the first page discards its questions, and the last remaining
    page cannot be removed.
    """

    def drop(pages: List[QuizPage]) -> List[QuizPage]:
        if len(pages) <= 1:
            raise QuizConfigValidationError("Cannot remove the last remaining page")
        idx = _page_index(pages, page_id)
        removed = pages[idx]
        if idx > 0:
            prev = pages[idx - 1]
            pages[idx - 1] = replace(prev, questions=[*prev.questions, *removed.questions])
        elif removed.questions:
            log.info("page %s removed with %d question(s)", page_id, len(removed.questions))
        del pages[idx]
        return pages

    return _edit_pages(config, nested_quiz_id, drop)


# ---- Questions ----

def create_default_question(question_type: str) -> Question:
    """Blank question of ``question_type`` carrying that type's default scoring."""

    qid = _new_id("question")
    scoring = get_default_scoring(question_type)
    if question_type == "choice":
        return ChoiceQuestion(id=qid, options={"a": "Option A", "b": "Option B"}, scoring=scoring)
    if question_type == "short-answer":
        return ShortAnswerQuestion(id=qid, correct_answer="", scoring=scoring)
    if question_type == "long-answer":
        return LongAnswerQuestion(id=qid, correct_answer="", scoring=scoring)
    if question_type == "article":
        return ArticleQuestion(id=qid, scoring=scoring)
    if question_type == "fill-in-the-blank":
        return FillInTheBlankQuestion(id=qid, scoring=scoring)
    if question_type == "ranking":
        return RankingQuestion(id=qid, items={"a": "Item A", "b": "Item B"}, scoring=scoring)
    if question_type in ("single-selection-matrix", "multiple-selection-matrix"):
        cls = SingleSelectionMatrixQuestion if question_type == "single-selection-matrix" else MultipleSelectionMatrixQuestion
        return cls(
            id=qid,
            rows={"row-1": "Row 1"},
            columns={"col-1": "Column 1", "col-2": "Column 2"},
            scoring=scoring,
        )
    if question_type == "whiteboard":
        return WhiteboardQuestion(id=qid, scoring=scoring)
    return MultipleChoiceQuestion(
        id=qid,
        options={"a": "Option A", "b": "Option B"},
        correct_answer="a",
        scoring=get_default_scoring("multiple-choice"),
    )


def add_question(
    config: QuizConfig,
    page_id: str,
    question_type: str,
    position: Optional[int] = None,
    nested_quiz_id: Optional[str] = None,
) -> QuizConfig:
    """Insert a blank question at ``position`` (end of page when out of range)."""

    question = create_default_question(question_type)

    def insert(pages: List[QuizPage]) -> List[QuizPage]:
        idx = _page_index(pages, page_id)
        questions = list(pages[idx].questions)
        if position is not None and 0 <= position <= len(questions):
            questions.insert(position, question)
        else:
            questions.append(question)
        pages[idx] = replace(pages[idx], questions=questions)
        return pages

    return _edit_pages(config, nested_quiz_id, insert)


def remove_question(config: QuizConfig, question_id: str, nested_quiz_id: Optional[str] = None) -> QuizConfig:
    """Drop a question by id; an unknown id returns ``config`` itself."""

    found = False

    def drop(pages: List[QuizPage]) -> List[QuizPage]:
        nonlocal found
        out = []
        for page in pages:
            kept = [q for q in page.questions if q.id != question_id]
            found = found or len(kept) != len(page.questions)
            out.append(replace(page, questions=kept))
        return out

    updated = _edit_pages(config, nested_quiz_id, drop)
    return updated if found else config


def update_question_scoring(
    config: QuizConfig,
    question_id: str,
    scoring: Optional[ScoringConfig],
    nested_quiz_id: Optional[str] = None,
) -> QuizConfig:
    found = False

    def rescore(pages: List[QuizPage]) -> List[QuizPage]:
        nonlocal found
        out = []
        for page in pages:
            questions = []
            for q in page.questions:
                if q.id == question_id:
                    found = True
                    q = replace(q, scoring=scoring)
                questions.append(q)
            out.append(replace(page, questions=questions))
        return out

    updated = _edit_pages(config, nested_quiz_id, rescore)
    if not found:
        raise QuizElementNotFoundError(f"Question with id '{question_id}' not found")
    return updated


# ---- Nested quizzes ----

def add_nested_quiz(config: QuizConfig) -> QuizConfig:
    container = _require_container(config, "add_nested_quiz")
    nested = NestedQuizConfig(
        id=_new_id("nested"),
        title="New Quiz",
        pages=[QuizPage(id=_new_id("page"), title="Page 1")],
    )
    return replace(container, nested_quizzes=[*container.nested_quizzes, nested])


def remove_nested_quiz(config: QuizConfig, nested_quiz_id: str) -> QuizConfig:
    container = _require_container(config, "remove_nested_quiz")
    if len(container.nested_quizzes) <= 1:
        raise QuizConfigValidationError(
            "Cannot remove the last nested quiz. Container must have at least one nested quiz."
        )
    idx = _nested_index(container, nested_quiz_id)
    nested_quizzes = list(container.nested_quizzes)
    del nested_quizzes[idx]
    return replace(container, nested_quizzes=nested_quizzes)


def reorder_nested_quizzes(config: QuizConfig, nested_quiz_ids: Sequence[str]) -> QuizConfig:
    container = _require_container(config, "reorder_nested_quizzes")
    if len(nested_quiz_ids) != len(container.nested_quizzes):
        raise QuizConfigValidationError("nested_quiz_ids must contain all nested quiz IDs")
    by_id = {nq.id: nq for nq in container.nested_quizzes}
    ordered = []
    for nid in nested_quiz_ids:
        if nid not in by_id:
            raise QuizElementNotFoundError(f"Nested quiz with id '{nid}' not found")
        ordered.append(by_id[nid])
    if len(set(nested_quiz_ids)) != len(nested_quiz_ids) or set(nested_quiz_ids) != set(by_id):
        raise QuizConfigValidationError("nested_quiz_ids must contain all nested quiz IDs")
    return replace(container, nested_quizzes=ordered)
