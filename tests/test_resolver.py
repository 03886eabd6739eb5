from __future__ import annotations

import logging

import pytest

from quiz_core import config as qc_config
from quiz_core.codec import config_to_dict
from quiz_core.errors import InvalidConfig
from quiz_core.resolver import blank_ids, is_valid_quiz_config, resolve_to_latest, try_resolve_to_latest
from quiz_core.types import ContainerQuizConfig, FillInTheBlankQuestion, RegularQuizConfig

from tests.conftest import legacy_container_config, legacy_regular_config


def test_blank_ids_dedupes_in_first_appearance_order():
    assert blank_ids("{{b}} and {{a}} then {{b}}") == ["b", "a"]
    assert blank_ids("no blanks") == []


def test_legacy_regular_is_tagged_and_blanks_keyed():
    quiz = resolve_to_latest(legacy_regular_config())

    assert isinstance(quiz, RegularQuizConfig)
    assert quiz.version == "v2"
    assert quiz.global_timer == 600
    assert quiz.grading.enabled is True
    assert quiz.grading.passing_score == 50
    fitb = quiz.pages[0].questions[1]
    assert isinstance(fitb, FillInTheBlankQuestion)
    # repeated {{river}} collapses to one entry
    assert fitb.correct_answers == {"river": "Seine", "city": "Paris"}


@pytest.mark.parametrize(
    "prompt, answers, expected",
    [
        (
            "The capital of France is {{capital}} and the largest city is also {{capital}}.",
            ["Paris"],
            {"capital": "Paris"},
        ),
        ("{{country}} has {{capital}} as its capital.", ["France", "Paris"], {"country": "France", "capital": "Paris"}),
    ],
)
def test_blank_answers_zip_in_first_occurrence_order(prompt, answers, expected):
    raw = {
        "id": "q",
        "title": "T",
        "pages": [
            {"id": "p", "title": "P", "questions": [
                {"id": "b", "type": "fill-in-the-blank", "prompt": prompt, "correctAnswers": answers},
            ]},
        ],
    }
    assert resolve_to_latest(raw).pages[0].questions[0].correct_answers == expected


def test_single_nested_quiz_receives_container_resource():
    raw = {
        "id": "c",
        "title": "C",
        "resources": [{"id": "r1", "content": "x", "pages": []}],
        "nestedQuizzes": [{"id": "n1", "title": "N", "pages": []}],
    }
    nested = resolve_to_latest(raw).nested_quizzes[0]
    assert [r.id for r in nested.resources] == ["r1"]


def test_short_legacy_answer_list_drops_blanks_with_warning(caplog):
    raw = legacy_regular_config()
    raw["pages"][0]["questions"][1]["correctAnswers"] = ["Seine"]
    with caplog.at_level(logging.WARNING, logger="quiz_core.resolver"):
        quiz = resolve_to_latest(raw)

    assert quiz.pages[0].questions[1].correct_answers == {"river": "Seine"}
    assert any("city" in rec.getMessage() for rec in caplog.records)


def test_short_legacy_answer_list_rejected_when_strict(monkeypatch):
    monkeypatch.setattr(qc_config, "STRICT_BLANKS", True)
    raw = legacy_regular_config()
    raw["pages"][0]["questions"][1]["correctAnswers"] = ["Seine"]

    with pytest.raises(InvalidConfig):
        resolve_to_latest(raw)


def test_legacy_container_copies_resources_and_drops_nested_grading():
    quiz = resolve_to_latest(legacy_container_config())

    assert isinstance(quiz, ContainerQuizConfig)
    assert quiz.sequential_order is True
    assert [n.id for n in quiz.nested_quizzes] == ["n1", "n2"]
    first, second = quiz.nested_quizzes
    assert [r.id for r in first.resources] == ["r1"]
    assert [r.id for r in second.resources] == ["r1"]
    assert first.resources is not second.resources
    assert first.global_timer == 300
    assert not hasattr(first, "grading")


def test_legacy_without_pages_or_nested_becomes_empty_regular():
    quiz = resolve_to_latest({"id": "draft", "title": "Draft", "nestedQuizzes": []})

    assert isinstance(quiz, RegularQuizConfig)
    assert quiz.pages == []


def test_resolving_is_idempotent():
    once = resolve_to_latest(legacy_regular_config())
    twice = resolve_to_latest(config_to_dict(once))

    assert twice == once
    assert resolve_to_latest(once) is once


def test_container_round_trip_through_dict():
    once = resolve_to_latest(legacy_container_config())
    assert resolve_to_latest(config_to_dict(once)) == once


@pytest.mark.parametrize(
    "raw",
    [
        "not a config",
        None,
        {"id": "q", "pages": []},
        {"id": 7, "title": "T", "pages": []},
    ],
)
def test_unusable_input_raises(raw):
    with pytest.raises(InvalidConfig):
        resolve_to_latest(raw)
    assert try_resolve_to_latest(raw) is None


def test_canonical_input_is_not_migrated():
    raw = {
        "version": "v2",
        "type": "regular",
        "id": "q",
        "title": "T",
        "pages": [
            {
                "id": "p1",
                "title": "P",
                "questions": [
                    {"id": "b", "type": "fill-in-the-blank", "prompt": "{{x}}", "correctAnswers": {"x": "1"}},
                ],
            }
        ],
    }
    quiz = resolve_to_latest(raw)
    assert quiz.pages[0].questions[0].correct_answers == {"x": "1"}


def test_canonical_version_with_unknown_type_falls_back_to_shape(caplog):
    with caplog.at_level(logging.WARNING, logger="quiz_core.resolver"):
        empty = resolve_to_latest({"version": "v2", "type": "weird", "id": "a", "title": "b"})
    assert isinstance(empty, RegularQuizConfig)
    assert empty.pages == []
    assert any("weird" in rec.getMessage() for rec in caplog.records)

    nested = resolve_to_latest(
        {
            "version": "v2",
            "type": "weird",
            "id": "a",
            "title": "b",
            "nestedQuizzes": [{"id": "n1", "title": "N", "pages": []}],
        }
    )
    assert isinstance(nested, ContainerQuizConfig)
    assert [n.id for n in nested.nested_quizzes] == ["n1"]


def test_is_valid_quiz_config():
    assert is_valid_quiz_config(legacy_regular_config())
    assert is_valid_quiz_config({"id": "1", "title": "T", "pages": []})
    assert not is_valid_quiz_config({})
    assert is_valid_quiz_config({"version": "v2", "type": "container", "id": "a", "title": "b"})
    assert not is_valid_quiz_config({"version": "v2", "type": "other", "id": "a", "title": "b"})
    assert not is_valid_quiz_config({"id": "a", "title": "b"})
    assert not is_valid_quiz_config([])
