"""Conversion between canonical quiz configs and their JSON-compatible dicts.

Stored configs use camelCase keys (``correctAnswer``, ``nestedQuizzes``,
``maxPoints``); the dataclasses in :mod:`quiz_core.types` use snake_case.
Decoders default to ``strict=True`` and raise on bad values. The resolver
decodes with ``strict=False``: an invalid scoring block falls back to the
type default and an unknown question type is skipped, each with a warning.
"""
from __future__ import annotations

import logging
from dataclasses import fields
from typing import Any, Dict, List, Mapping, Optional

from .errors import InvalidConfig, QuizConfigValidationError
from .types import (
    QUESTION_CLASSES,
    SCORING_CLASSES,
    ChoiceQuestion,
    ContainerQuizConfig,
    GradingConfig,
    NestedQuizConfig,
    Question,
    QuizConfig,
    QuizPage,
    QuizResource,
    RegularQuizConfig,
    ScoringConfig,
)

log = logging.getLogger(__name__)

__all__ = [
    "camel",
    "scoring_from_dict",
    "scoring_to_dict",
    "question_from_dict",
    "question_to_dict",
    "object_list",
    "page_from_dict",
    "pages_from_list",
    "resources_from_list",
    "resource_to_dict",
    "grading_from_dict",
    "grading_to_dict",
    "timer_value",
    "nested_quiz_from_dict",
    "config_from_dict",
    "config_to_dict",
]


def camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _str_map(value: Any) -> Dict[str, str]:
    if not isinstance(value, Mapping):
        return {}
    return {str(k): "" if v is None else str(v) for k, v in value.items()}


def _str_list(value: Any) -> List[str]:
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None]


def _opt_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


# ---- Scoring ----

def scoring_from_dict(raw: Any) -> ScoringConfig:
    if not isinstance(raw, Mapping):
        raise QuizConfigValidationError(f"scoring must be an object, got {type(raw).__name__}")
    stype = raw.get("type")
    cls = SCORING_CLASSES.get(stype) if isinstance(stype, str) else None
    if cls is None:
        raise QuizConfigValidationError(f"unknown scoring type {raw.get('type')!r}")
    kwargs = {f.name: raw[camel(f.name)] for f in fields(cls) if camel(f.name) in raw}
    try:
        return cls(**kwargs)
    except TypeError as exc:
        raise QuizConfigValidationError(f"{cls.type} scoring: {exc}") from exc


def scoring_to_dict(scoring: ScoringConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": scoring.type}
    for f in fields(scoring):
        val = getattr(scoring, f.name)
        if val is not None:
            out[camel(f.name)] = val
    return out


# ---- Questions ----

def _question_field(cls: type, name: str, value: Any) -> Any:
    if name in ("options", "items", "rows", "columns"):
        return _str_map(value)
    if name == "correct_answers":
        return _str_list(value) if cls is ChoiceQuestion else _str_map(value)
    if name == "correct_order":
        return _str_list(value)
    return _opt_str(value)


def question_from_dict(raw: Any, *, strict: bool = True) -> Optional[Question]:
    if not isinstance(raw, Mapping):
        if strict:
            raise QuizConfigValidationError("question must be an object")
        log.warning("skipping non-object question entry: %r", raw)
        return None
    qtype = raw.get("type")
    cls = QUESTION_CLASSES.get(qtype) if isinstance(qtype, str) else None
    if cls is None:
        if strict:
            raise QuizConfigValidationError(f"unknown question type {qtype!r}")
        log.warning("skipping question %r with unknown type %r", raw.get("id"), qtype)
        return None

    scoring: Optional[ScoringConfig] = None
    if raw.get("scoring") is not None:
        try:
            scoring = scoring_from_dict(raw["scoring"])
        except QuizConfigValidationError as exc:
            if strict:
                raise
            log.warning("question %r: invalid scoring dropped, type default applies (%s)", raw.get("id"), exc)

    kwargs: Dict[str, Any] = {
        "id": str(raw.get("id", "")),
        "prompt": str(raw.get("prompt") or ""),
        "feedback": _opt_str(raw.get("feedback")),
        "scoring": scoring,
    }
    for f in fields(cls):
        if f.name in kwargs:
            continue
        key = camel(f.name)
        if key in raw:
            kwargs[f.name] = _question_field(cls, f.name, raw[key])
    return cls(**kwargs)


def question_to_dict(question: Question) -> Dict[str, Any]:
    out: Dict[str, Any] = {"type": question.type}
    for f in fields(question):
        val = getattr(question, f.name)
        if val is None:
            continue
        if f.name == "scoring":
            val = scoring_to_dict(val)
        elif isinstance(val, dict):
            val = dict(val)
        elif isinstance(val, list):
            val = list(val)
        out[camel(f.name)] = val
    return out


# ---- Pages, resources, grading ----

def object_list(value: Any, what: str, *, strict: bool = True) -> List[Mapping[str, Any]]:
    """Return the mapping entries of ``value``; non-list values and non-object entries are rejected or skipped."""

    if value is None:
        return []
    if not isinstance(value, (list, tuple)):
        if strict:
            raise QuizConfigValidationError(f"{what} must be a list, got {type(value).__name__}")
        log.warning("ignoring %s: expected a list, got %s", what, type(value).__name__)
        return []
    out: List[Mapping[str, Any]] = []
    for entry in value:
        if isinstance(entry, Mapping):
            out.append(entry)
        elif strict:
            raise QuizConfigValidationError(f"{what} entries must be objects, got {entry!r}")
        else:
            log.warning("skipping non-object %s entry: %r", what, entry)
    return out


def page_from_dict(raw: Mapping[str, Any], *, strict: bool = True) -> QuizPage:
    questions = []
    for q in object_list(raw.get("questions"), "questions", strict=strict):
        decoded = question_from_dict(q, strict=strict)
        if decoded is not None:
            questions.append(decoded)
    return QuizPage(id=str(raw.get("id", "")), title=str(raw.get("title") or ""), questions=questions)


def pages_from_list(value: Any, *, strict: bool = True) -> List[QuizPage]:
    return [page_from_dict(p, strict=strict) for p in object_list(value, "pages", strict=strict)]


def _page_to_dict(page: QuizPage) -> Dict[str, Any]:
    return {"id": page.id, "title": page.title, "questions": [question_to_dict(q) for q in page.questions]}


def resource_from_dict(raw: Mapping[str, Any]) -> QuizResource:
    return QuizResource(
        id=str(raw.get("id", "")),
        title=_opt_str(raw.get("title")),
        content=str(raw.get("content") or ""),
        pages=_str_list(raw.get("pages")),
    )


def resources_from_list(value: Any, *, strict: bool = True) -> Optional[List[QuizResource]]:
    if value is None:
        return None
    return [resource_from_dict(r) for r in object_list(value, "resources", strict=strict)]


def resource_to_dict(resource: QuizResource) -> Dict[str, Any]:
    out: Dict[str, Any] = {"id": resource.id}
    if resource.title is not None:
        out["title"] = resource.title
    out["content"] = resource.content
    out["pages"] = list(resource.pages)
    return out


def grading_from_dict(raw: Any) -> Optional[GradingConfig]:
    if not isinstance(raw, Mapping):
        return None
    passing = raw.get("passingScore")
    return GradingConfig(
        enabled=bool(raw.get("enabled", False)),
        passing_score=passing if _is_number(passing) else None,
        show_score_to_student=raw.get("showScoreToStudent"),
        show_correct_answers=raw.get("showCorrectAnswers"),
    )


def grading_to_dict(grading: GradingConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for f in fields(grading):
        val = getattr(grading, f.name)
        if val is not None:
            out[camel(f.name)] = val
    return out


def timer_value(raw: Any) -> Optional[int]:
    return raw if _is_number(raw) else None


def _is_number(x: Any) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


# ---- Configs ----

def nested_quiz_from_dict(raw: Mapping[str, Any], *, strict: bool = True) -> NestedQuizConfig:
    return NestedQuizConfig(
        id=str(raw.get("id", "")),
        title=str(raw.get("title") or ""),
        description=_opt_str(raw.get("description")),
        pages=pages_from_list(raw.get("pages"), strict=strict),
        resources=resources_from_list(raw.get("resources"), strict=strict),
        global_timer=timer_value(raw.get("globalTimer")),
    )


def _nested_to_dict(nested: NestedQuizConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {"id": nested.id, "title": nested.title}
    if nested.description is not None:
        out["description"] = nested.description
    out["pages"] = [_page_to_dict(p) for p in nested.pages]
    if nested.resources is not None:
        out["resources"] = [resource_to_dict(r) for r in nested.resources]
    if nested.global_timer is not None:
        out["globalTimer"] = nested.global_timer
    return out


def config_from_dict(raw: Any, *, strict: bool = True) -> QuizConfig:
    """Decode a canonical (``version == "v2"``) dict. No migration happens here."""

    if not isinstance(raw, Mapping):
        raise InvalidConfig("quiz config must be an object")
    if raw.get("version") != RegularQuizConfig.version:
        raise InvalidConfig(f"not a canonical quiz config (version={raw.get('version')!r})")
    common = {
        "id": str(raw.get("id", "")),
        "title": str(raw.get("title", "")),
        "global_timer": timer_value(raw.get("globalTimer")),
        "grading": grading_from_dict(raw.get("grading")),
    }
    kind = raw.get("type")
    if kind == "regular":
        return RegularQuizConfig(
            pages=pages_from_list(raw.get("pages"), strict=strict),
            resources=resources_from_list(raw.get("resources"), strict=strict),
            **common,
        )
    if kind == "container":
        nested = object_list(raw.get("nestedQuizzes"), "nestedQuizzes", strict=strict)
        return ContainerQuizConfig(
            nested_quizzes=[nested_quiz_from_dict(n, strict=strict) for n in nested],
            sequential_order=raw.get("sequentialOrder"),
            **common,
        )
    raise InvalidConfig(f"unknown quiz config type {kind!r}")


def config_to_dict(config: QuizConfig) -> Dict[str, Any]:
    out: Dict[str, Any] = {"version": config.version, "type": config.type, "id": config.id, "title": config.title}
    if isinstance(config, ContainerQuizConfig):
        out["nestedQuizzes"] = [_nested_to_dict(n) for n in config.nested_quizzes]
        if config.sequential_order is not None:
            out["sequentialOrder"] = config.sequential_order
    else:
        out["pages"] = [_page_to_dict(p) for p in config.pages]
        if config.resources is not None:
            out["resources"] = [resource_to_dict(r) for r in config.resources]
    if config.global_timer is not None:
        out["globalTimer"] = config.global_timer
    if config.grading is not None:
        out["grading"] = grading_to_dict(config.grading)
    return out
