from __future__ import annotations

from typing import Any

import pytest

from quiz_core import config as qc_config
from quiz_core.gradebook import GradeNode


def legacy_regular_config(**overrides: Any) -> dict[str, Any]:
    """Untagged (v1) regular quiz as it sits in older rows."""

    raw: dict[str, Any] = {
        "id": "quiz-1",
        "title": "Geography",
        "pages": [
            {
                "id": "p1",
                "title": "Page 1",
                "questions": [
                    {
                        "id": "q1",
                        "type": "multiple-choice",
                        "prompt": "Capital of France?",
                        "options": {"a": "Paris", "b": "Lyon"},
                        "correctAnswer": "a",
                    },
                    {
                        "id": "q2",
                        "type": "fill-in-the-blank",
                        "prompt": "The {{river}} flows through {{city}}; the {{river}} is long.",
                        "correctAnswers": ["Seine", "Paris"],
                    },
                ],
            }
        ],
        "globalTimer": 600,
        "grading": {"enabled": True, "passingScore": 50},
    }
    raw.update(overrides)
    return raw


def legacy_container_config() -> dict[str, Any]:
    return {
        "id": "quiz-2",
        "title": "Final exam",
        "resources": [{"id": "r1", "title": "Map", "content": "<p>map</p>", "pages": ["p1"]}],
        "sequentialOrder": True,
        "nestedQuizzes": [
            {
                "id": "n1",
                "title": "Part A",
                "pages": [
                    {
                        "id": "p1",
                        "title": "A1",
                        "questions": [
                            {"id": "q1", "type": "short-answer", "prompt": "2+2?", "correctAnswer": "4"},
                        ],
                    }
                ],
                "grading": {"enabled": True, "passingScore": 70},
                "globalTimer": 300,
            },
            {
                "id": "n2",
                "title": "Part B",
                "pages": [
                    {
                        "id": "p2",
                        "title": "B1",
                        "questions": [
                            {
                                "id": "q2",
                                "type": "choice",
                                "prompt": "Pick primes",
                                "options": {"a": "2", "b": "3", "c": "4"},
                                "correctAnswers": ["a", "b"],
                            },
                        ],
                    }
                ],
            },
        ],
    }


def item(name: str, weight: float | None = None, *, extra_credit: bool = False, max_grade: float = 100) -> GradeNode:
    return GradeNode(
        id=name.lower().replace(" ", "-"),
        name=name,
        type="item",
        weight=weight,
        extra_credit=extra_credit,
        max_grade=max_grade,
    )


def category(
    name: str,
    children: list[GradeNode],
    weight: float | None = None,
    *,
    extra_credit: bool = False,
) -> GradeNode:
    return GradeNode(
        id=name.lower().replace(" ", "-"),
        name=name,
        type="category",
        weight=weight,
        extra_credit=extra_credit,
        children=list(children),
    )


def course(*children: GradeNode) -> GradeNode:
    return category("Course", list(children))


@pytest.fixture(autouse=True)
def _default_flags(monkeypatch):
    """Pin env-driven flags so a developer's shell does not change results."""

    monkeypatch.setattr(qc_config, "STRICT_BLANKS", False)
    monkeypatch.setattr(qc_config, "TEXT_CASE_INSENSITIVE", True)
    monkeypatch.setattr(qc_config, "WEIGHT_TOLERANCE", 0.01)
    monkeypatch.setattr(qc_config, "MAX_TREE_DEPTH", 100)
    monkeypatch.setattr(qc_config, "DEBUG_TRACE", False)
