from __future__ import annotations
from dataclasses import asdict
from fastapi import FastAPI, HTTPException, Body
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
import logging, typing as t

from quiz_core import config as qc_config
from quiz_core.codec import config_to_dict, question_from_dict, scoring_from_dict
from quiz_core.errors import InvalidConfig, QuizConfigValidationError, QuizCoreError
from quiz_core.gradebook import node_from_dict, weighted_to_dict
from quiz_core.grading import grade_quiz
from quiz_core.resolver import CONFIG_ERROR_MESSAGE, resolve_to_latest
from quiz_core.scoring import score_question
from quiz_core.types import calculate_total_points, describe_scoring, effective_scoring, iter_questions
from quiz_core.validators import validate_gradebook_weights
from quiz_core.weights import normalize_items, weight_totals

log = logging.getLogger(__name__)

app = FastAPI(title="Quiz Grading API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=qc_config.ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,  # no cookies; the API is stateless
)


@app.get("/")
def root():
    return {"status": "ok", "service": "quiz-grading-api"}


# ---- Schemas ----
class GradeReq(BaseModel):
    config: dict[str, t.Any]
    answers: dict[str, t.Any] = {}

class ScoreReq(BaseModel):
    question: dict[str, t.Any]
    answer: t.Any = None
    scoring: dict[str, t.Any] | None = None

class GradebookReq(BaseModel):
    items: list[dict[str, t.Any]]
    course_name: str = "Course"
    prefix: str = "Operation"


# ---- Helpers ----
def _resolve(raw: t.Any):
    try:
        return resolve_to_latest(raw)
    except InvalidConfig as exc:
        log.info("rejected quiz config: %s", exc)
        raise HTTPException(422, {"message": CONFIG_ERROR_MESSAGE, "detail": str(exc)})


def _totals_dict(totals) -> dict[str, t.Any]:
    return {
        "base_total": totals.base_total,
        "extra_credit_total": totals.extra_credit_total,
        "calculated_total": totals.calculated_total,
        "total_max_grade": totals.total_max_grade,
        "extra_credit_items": [n.id for n in totals.extra_credit_items],
        "extra_credit_categories": [n.id for n in totals.extra_credit_categories],
    }


# ---- Health ----
@app.get("/health")
def health():
    return {
        "status": "ok",
        "canonical_version": qc_config.CANONICAL_VERSION,
        "strict_blanks": qc_config.STRICT_BLANKS,
    }


# ---- Quiz configs ----
@app.post("/quiz/resolve")
def resolve(raw: dict[str, t.Any] = Body(...)):
    return config_to_dict(_resolve(raw))


@app.post("/quiz/points")
def points(raw: dict[str, t.Any] = Body(...)):
    quiz = _resolve(raw)
    questions = []
    for nested_id, page, q in iter_questions(quiz):
        scoring = effective_scoring(q)
        questions.append({
            "id": q.id,
            "nested_quiz_id": nested_id,
            "page_id": page.id,
            "type": q.type,
            "max_points": scoring.max_points,
            "scoring": describe_scoring(scoring),
        })
    return {"total_points": calculate_total_points(quiz), "questions": questions}


@app.post("/quiz/grade")
def grade(req: GradeReq):
    quiz = _resolve(req.config)
    return asdict(grade_quiz(quiz, req.answers))


@app.post("/question/score")
def score_one(req: ScoreReq):
    try:
        question = question_from_dict(req.question)
        scoring = scoring_from_dict(req.scoring) if req.scoring is not None else None
    except QuizConfigValidationError as exc:
        raise HTTPException(422, str(exc))
    res = score_question(question, req.answer, scoring)
    return {
        "question_id": question.id,
        "awarded": res.awarded,
        "max_points": res.max_points,
        "correct": res.correct,
        "pending": res.pending,
        "meta": res.meta,
    }


# ---- Gradebook ----
@app.post("/gradebook/normalize")
def gradebook_normalize(req: GradebookReq):
    weighted = normalize_items([node_from_dict(it) for it in req.items], course_name=req.course_name)
    return {"tree": weighted_to_dict(weighted), "totals": _totals_dict(weight_totals(weighted))}


@app.post("/gradebook/validate")
def gradebook_validate(req: GradebookReq):
    try:
        validate_gradebook_weights([node_from_dict(it) for it in req.items], prefix=req.prefix)
    except QuizCoreError as exc:
        raise HTTPException(422, {"error": type(exc).__name__, "message": str(exc)})
    return {"ok": True}
