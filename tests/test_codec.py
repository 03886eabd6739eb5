from __future__ import annotations

import json
import logging

import pytest

from quiz_core.codec import config_from_dict, config_to_dict, question_from_dict, scoring_from_dict, scoring_to_dict
from quiz_core.errors import InvalidConfig, QuizConfigValidationError
from quiz_core.resolver import resolve_to_latest
from quiz_core.types import ChoiceQuestion, RankingScoring, WeightedScoring

from tests.conftest import legacy_container_config


def test_scoring_reads_camel_case_keys():
    scoring = scoring_from_dict(
        {"type": "weighted", "mode": "partial-with-penalty", "maxPoints": 6, "pointsPerCorrect": 2, "penaltyPerIncorrect": 1}
    )
    assert scoring == WeightedScoring(
        mode="partial-with-penalty", max_points=6, points_per_correct=2, penalty_per_incorrect=1
    )
    assert scoring_to_dict(scoring)["penaltyPerIncorrect"] == 1


@pytest.mark.parametrize(
    "raw",
    [
        {"type": "bogus", "maxPoints": 1},
        {"type": "ranking", "mode": "partial-order", "maxPoints": 3},
        {"type": "simple", "points": -1},
        {"type": "partial-match", "maxPoints": 1, "matchThreshold": 2},
        "simple",
    ],
)
def test_invalid_scoring_rejected(raw):
    with pytest.raises(QuizConfigValidationError):
        scoring_from_dict(raw)


def test_ranking_scoring_decodes():
    scoring = scoring_from_dict({"type": "ranking", "mode": "partial-order", "maxPoints": 4, "pointsPerCorrectPosition": 1})
    assert isinstance(scoring, RankingScoring)
    assert scoring.points_per_correct_position == 1


def test_strict_question_decoding_rejects_unknown_type():
    with pytest.raises(QuizConfigValidationError):
        question_from_dict({"id": "q", "type": "essay"})
    assert question_from_dict({"id": "q", "type": "essay"}, strict=False) is None


def test_question_fields_are_decoded():
    q = question_from_dict(
        {"id": "q", "type": "choice", "prompt": "P", "options": {"a": "A", "b": "B"}, "correctAnswers": ["a"]}
    )
    assert isinstance(q, ChoiceQuestion)
    assert q.options == {"a": "A", "b": "B"}
    assert q.correct_answers == ["a"]
    assert q.scoring is None


def test_lenient_decoding_drops_invalid_scoring(caplog):
    raw = {
        "version": "v2",
        "type": "regular",
        "id": "q",
        "title": "T",
        "pages": [
            {
                "id": "p",
                "title": "P",
                "questions": [
                    {"id": "a", "type": "short-answer", "correctAnswer": "x", "scoring": {"type": "simple", "points": -3}},
                    {"id": "b", "type": "hologram"},
                ],
            }
        ],
    }
    with caplog.at_level(logging.WARNING, logger="quiz_core.codec"):
        quiz = resolve_to_latest(raw)

    questions = quiz.pages[0].questions
    assert [q.id for q in questions] == ["a"]
    assert questions[0].scoring is None
    assert len(caplog.records) == 2


def test_config_from_dict_requires_canonical_version():
    with pytest.raises(InvalidConfig):
        config_from_dict({"id": "q", "title": "T", "pages": []})
    with pytest.raises(InvalidConfig):
        config_from_dict({"version": "v2", "type": "mystery", "id": "q", "title": "T"})


def test_config_to_dict_is_json_with_camel_case_keys():
    out = config_to_dict(resolve_to_latest(legacy_container_config()))
    text = json.dumps(out)

    assert out["version"] == "v2"
    assert out["type"] == "container"
    assert "nestedQuizzes" in out and "sequentialOrder" in out
    assert "globalTimer" in out["nestedQuizzes"][0]
    assert "correctAnswers" in text
    assert "correct_answers" not in text
