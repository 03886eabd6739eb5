"""Upgrade stored quiz configs to the canonical (v2) schema.

Stored configs come in two shapes.  Legacy (v1) values carry no version tag;
whether a value is a container or a regular quiz is inferred from which of
``nestedQuizzes`` / ``pages`` is populated, and fill-in-the-blank answers are
stored as a positional list.  Canonical values carry ``version`` and ``type``
and are decoded without any migration.

Shape sniffing is confined to this module; everything downstream works on
:class:`~quiz_core.types.RegularQuizConfig` or
:class:`~quiz_core.types.ContainerQuizConfig`.

Legacy containers kept one resource list for the whole container.  The
canonical shape stores resources per nested quiz, so the migration copies the
parent's list into every nested quiz.  Edits made to one nested quiz's
resources after migration no longer reach the others.
"""
from __future__ import annotations

import logging
import re
from typing import Any, Dict, List, Mapping, Optional

from . import config
from .codec import (
    config_from_dict,
    grading_from_dict,
    object_list,
    page_from_dict,
    resources_from_list,
    timer_value,
)
from .errors import InvalidConfig
from .types import (
    ContainerQuizConfig,
    NestedQuizConfig,
    QuizConfig,
    QuizPage,
    QuizResource,
    RegularQuizConfig,
)

__all__ = [
    "CONFIG_ERROR_MESSAGE",
    "blank_ids",
    "resolve_to_latest",
    "try_resolve_to_latest",
    "is_valid_quiz_config",
]

log = logging.getLogger(__name__)

_BLANK_RX = re.compile(r"\{\{([^}]+)\}\}")

CONFIG_ERROR_MESSAGE = "This quiz's configuration is missing or corrupted."


def blank_ids(prompt: str) -> List[str]:
    """Distinct ``{{token}}`` ids of ``prompt`` in order of first appearance."""

    seen: Dict[str, None] = {}
    for match in _BLANK_RX.finditer(prompt or ""):
        seen.setdefault(match.group(1), None)
    return list(seen)


# ---- Legacy question / page conversion ----

def _convert_fill_in_the_blank(raw: Mapping[str, Any]) -> Dict[str, Any]:
    answers = raw.get("correctAnswers")
    out = dict(raw)
    if isinstance(answers, Mapping):
        # already keyed by blank id
        return out

    positional = answers if isinstance(answers, list) else []
    ids = blank_ids(str(raw.get("prompt") or ""))
    if len(positional) < len(ids):
        missing = ids[len(positional):]
        if config.STRICT_BLANKS:
            raise InvalidConfig(
                f"fill-in-the-blank question {raw.get('id')!r}: no answer for blanks {', '.join(missing)}"
            )
        log.warning(
            "fill-in-the-blank question %r: %d blank(s) without a legacy answer dropped: %s",
            raw.get("id"),
            len(missing),
            ", ".join(missing),
        )
    out["correctAnswers"] = {
        blank: "" if answer is None else str(answer) for blank, answer in zip(ids, positional)
    }
    return out


def _convert_question(raw: Any) -> Any:
    if isinstance(raw, Mapping) and raw.get("type") == "fill-in-the-blank":
        return _convert_fill_in_the_blank(raw)
    return raw


def _convert_pages(value: Any) -> List[QuizPage]:
    pages: List[QuizPage] = []
    for page in object_list(value, "pages", strict=False):
        questions = page.get("questions")
        if isinstance(questions, list):
            page = {**page, "questions": [_convert_question(q) for q in questions]}
        pages.append(page_from_dict(page, strict=False))
    return pages


def _is_legacy_container(raw: Mapping[str, Any]) -> bool:
    nested = raw.get("nestedQuizzes")
    return isinstance(nested, list) and len(nested) > 0


def _is_legacy_regular(raw: Mapping[str, Any]) -> bool:
    pages = raw.get("pages")
    return isinstance(pages, list) and len(pages) > 0


def _copy_resources(resources: Optional[List[QuizResource]]) -> Optional[List[QuizResource]]:
    return None if resources is None else list(resources)


def _convert_legacy(raw: Mapping[str, Any]) -> QuizConfig:
    quiz_id = raw["id"]
    title = raw["title"]
    resources = resources_from_list(raw.get("resources"), strict=False)
    global_timer = timer_value(raw.get("globalTimer"))
    grading = grading_from_dict(raw.get("grading"))

    if _is_legacy_container(raw):
        nested_quizzes: List[NestedQuizConfig] = []
        for nq in object_list(raw["nestedQuizzes"], "nestedQuizzes", strict=False):
            if nq.get("grading") is not None:
                log.debug("quiz %r: nested quiz %r grading dropped (not part of v2)", quiz_id, nq.get("id"))
            description = nq.get("description")
            nested_quizzes.append(
                NestedQuizConfig(
                    id=str(nq.get("id", "")),
                    title=str(nq.get("title") or ""),
                    description=None if description is None else str(description),
                    pages=_convert_pages(nq.get("pages")),
                    resources=_copy_resources(resources),
                    global_timer=timer_value(nq.get("globalTimer")),
                )
            )
        sequential = raw.get("sequentialOrder")
        return ContainerQuizConfig(
            id=quiz_id,
            title=title,
            nested_quizzes=nested_quizzes,
            sequential_order=sequential if isinstance(sequential, bool) else None,
            global_timer=global_timer,
            grading=grading,
        )

    if _is_legacy_regular(raw):
        pages = _convert_pages(raw["pages"])
    else:
        # saved mid-edit: neither pages nor nested quizzes
        log.warning("quiz %r has neither pages nor nested quizzes; resolving to an empty regular quiz", quiz_id)
        pages = []
    return RegularQuizConfig(
        id=quiz_id,
        title=title,
        pages=pages,
        resources=resources,
        global_timer=global_timer,
        grading=grading,
    )


# ---- Public entry points ----

def resolve_to_latest(raw: Any) -> QuizConfig:
    """Return the canonical config for ``raw``.

    Canonical input comes back unchanged: a config instance is returned as the
    same object and a canonical dict is decoded without migration, so
    ``resolve_to_latest(resolve_to_latest(x)) == resolve_to_latest(x)``.

    Raises
    ------
    InvalidConfig
        ``raw`` is not an object, or its ``id`` / ``title`` are not strings.
    """

    if isinstance(raw, (RegularQuizConfig, ContainerQuizConfig)):
        return raw
    if not isinstance(raw, Mapping):
        raise InvalidConfig("Invalid quiz config: must be an object")
    if not isinstance(raw.get("id"), str) or not isinstance(raw.get("title"), str):
        raise InvalidConfig("Invalid quiz config: missing required fields (id, title)")

    version = raw.get("version")
    if version == config.CANONICAL_VERSION:
        if raw.get("type") in ("regular", "container"):
            return config_from_dict(raw, strict=False)
        log.warning("quiz %r: unknown config type %r, inferring from shape", raw.get("id"), raw.get("type"))
    elif version is not None:
        log.warning("quiz %r: unknown version %r, treating as legacy", raw.get("id"), version)
    return _convert_legacy(raw)


def is_valid_quiz_config(value: Any) -> bool:
    if isinstance(value, (RegularQuizConfig, ContainerQuizConfig)):
        return True
    if not isinstance(value, Mapping):
        return False
    if not isinstance(value.get("id"), str) or not isinstance(value.get("title"), str):
        return False
    if "version" in value:
        return value.get("version") == config.CANONICAL_VERSION and value.get("type") in ("regular", "container")
    return isinstance(value.get("pages"), list) or isinstance(value.get("nestedQuizzes"), list)


def try_resolve_to_latest(raw: Any) -> Optional[QuizConfig]:
    """Like :func:`resolve_to_latest` but returns ``None`` for unusable input."""

    if not is_valid_quiz_config(raw):
        return None
    try:
        return resolve_to_latest(raw)
    except InvalidConfig as exc:
        log.warning("quiz config could not be resolved: %s", exc)
        return None
