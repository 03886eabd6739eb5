from __future__ import annotations

import pytest

from quiz_core import editing
from quiz_core.errors import QuizConfigValidationError, QuizElementNotFoundError
from quiz_core.resolver import resolve_to_latest
from quiz_core.types import (
    ContainerQuizConfig,
    QuizResource,
    RegularQuizConfig,
    SimpleScoring,
    WeightedScoring,
)

from tests.conftest import legacy_container_config, legacy_regular_config


def _regular() -> RegularQuizConfig:
    return resolve_to_latest(legacy_regular_config())


def _container() -> ContainerQuizConfig:
    return resolve_to_latest(legacy_container_config())


def test_default_config_has_one_page():
    quiz = editing.create_default_quiz_config()
    assert quiz.title == "Untitled Quiz"
    assert [p.title for p in quiz.pages] == ["Page 1"]


def test_toggle_regular_to_container_and_back():
    quiz = _regular()
    container = editing.toggle_quiz_type(quiz, "container")

    assert isinstance(container, ContainerQuizConfig)
    assert container.sequential_order is False
    assert [n.title for n in container.nested_quizzes] == ["Quiz Section 1"]
    assert container.nested_quizzes[0].pages == quiz.pages
    assert container.grading == quiz.grading

    back = editing.toggle_quiz_type(container, "regular")
    assert isinstance(back, RegularQuizConfig)
    assert back.pages == quiz.pages
    assert back.resources is None
    assert editing.toggle_quiz_type(back, "regular") is back


def test_global_timer_rules():
    with pytest.raises(QuizConfigValidationError):
        editing.update_global_timer(_regular(), -1)

    container = _container()  # nested timers: 300 + none
    with pytest.raises(QuizConfigValidationError):
        editing.update_global_timer(container, 200)
    assert editing.update_global_timer(container, 300).global_timer == 300
    assert editing.update_global_timer(container, None).global_timer is None


def test_nested_timer_rules():
    with pytest.raises(QuizConfigValidationError):
        editing.update_nested_quiz_timer(_regular(), "n1", 10)

    container = editing.update_global_timer(_container(), 400)
    with pytest.raises(QuizConfigValidationError):
        editing.update_nested_quiz_timer(container, "n2", 200)
    updated = editing.update_nested_quiz_timer(container, "n2", 100)
    assert [n.global_timer for n in updated.nested_quizzes] == [300, 100]

    with pytest.raises(QuizElementNotFoundError):
        editing.update_nested_quiz_timer(container, "missing", 1)


def test_grading_config_merges():
    quiz = _regular()
    with pytest.raises(QuizConfigValidationError):
        editing.update_grading_config(quiz, passing_score=150)

    updated = editing.update_grading_config(quiz, show_correct_answers=True)
    assert updated.grading.enabled is True
    assert updated.grading.passing_score == 50
    assert updated.grading.show_correct_answers is True
    assert quiz.grading.show_correct_answers is None


def test_resources_on_containers_need_a_nested_quiz():
    resource = QuizResource(id="r2", content="text", pages=["p2"])
    container = _container()

    with pytest.raises(QuizConfigValidationError):
        editing.add_quiz_resource(container, resource)
    with pytest.raises(QuizConfigValidationError):
        editing.add_quiz_resource(container, resource, nested_quiz_id="n1")  # p2 belongs to n2

    updated = editing.add_quiz_resource(container, resource, nested_quiz_id="n2")
    assert [r.id for r in updated.nested_quizzes[1].resources] == ["r1", "r2"]
    assert [r.id for r in updated.nested_quizzes[0].resources] == ["r1"]


def test_remove_resource():
    quiz = editing.add_quiz_resource(_regular(), QuizResource(id="r1", pages=["p1"]))
    assert editing.remove_quiz_resource(quiz, "r1").resources == []
    assert editing.remove_quiz_resource(quiz, "nope") is quiz


def test_add_question_inserts_with_default_scoring():
    quiz = _regular()
    updated = editing.add_question(quiz, "p1", "choice", position=0)

    questions = updated.pages[0].questions
    assert len(questions) == 3
    assert questions[0].type == "choice"
    assert questions[0].scoring == WeightedScoring(mode="all-or-nothing", max_points=1)
    assert len(quiz.pages[0].questions) == 2

    appended = editing.add_question(quiz, "p1", "ranking", position=99)
    assert appended.pages[0].questions[-1].type == "ranking"

    with pytest.raises(QuizElementNotFoundError):
        editing.add_question(quiz, "missing", "short-answer")


def test_add_question_to_container_needs_nested_quiz():
    with pytest.raises(QuizConfigValidationError):
        editing.add_question(_container(), "p1", "short-answer")
    updated = editing.add_question(_container(), "p1", "short-answer", nested_quiz_id="n1")
    assert len(updated.nested_quizzes[0].pages[0].questions) == 2


def test_remove_page_moves_questions_back():
    quiz = editing.add_page(_regular())
    new_page = quiz.pages[1]
    quiz = editing.add_question(quiz, new_page.id, "short-answer")

    merged = editing.remove_page(quiz, new_page.id)
    assert len(merged.pages) == 1
    assert len(merged.pages[0].questions) == 3

    with pytest.raises(QuizConfigValidationError):
        editing.remove_page(merged, "p1")


def test_remove_question_and_rescore():
    quiz = _regular()
    assert editing.remove_question(quiz, "nope") is quiz
    assert [q.id for q in editing.remove_question(quiz, "q1").pages[0].questions] == ["q2"]

    rescored = editing.update_question_scoring(quiz, "q1", SimpleScoring(points=3))
    assert rescored.pages[0].questions[0].scoring == SimpleScoring(points=3)
    with pytest.raises(QuizElementNotFoundError):
        editing.update_question_scoring(quiz, "nope", None)


def test_nested_quiz_management():
    container = editing.add_nested_quiz(_container())
    added = container.nested_quizzes[-1]
    assert added.title == "New Quiz"
    assert [p.title for p in added.pages] == ["Page 1"]

    reordered = editing.reorder_nested_quizzes(container, [added.id, "n2", "n1"])
    assert [n.id for n in reordered.nested_quizzes] == [added.id, "n2", "n1"]
    with pytest.raises(QuizConfigValidationError):
        editing.reorder_nested_quizzes(container, ["n1"])
    with pytest.raises(QuizElementNotFoundError):
        editing.reorder_nested_quizzes(container, ["n1", "n2", "zz"])

    trimmed = editing.remove_nested_quiz(container, "n1")
    assert [n.id for n in trimmed.nested_quizzes] == ["n2", added.id]
    with pytest.raises(QuizConfigValidationError):
        editing.remove_nested_quiz(editing.remove_nested_quiz(trimmed, "n2"), added.id)
    with pytest.raises(QuizConfigValidationError):
        editing.add_nested_quiz(_regular())


def test_reorder_rejects_duplicate_ids():
    container = _container()
    with pytest.raises(QuizConfigValidationError):
        editing.reorder_nested_quizzes(container, ["n1", "n1"])
    assert [n.id for n in container.nested_quizzes] == ["n1", "n2"]


def test_update_quiz_info():
    quiz = _regular()
    assert editing.update_quiz_info(quiz, title="Renamed").title == "Renamed"
    assert editing.update_quiz_info(quiz) is quiz
