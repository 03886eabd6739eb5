from __future__ import annotations
from dataclasses import dataclass, field
from typing import ClassVar, Dict, Iterator, List, Literal, Optional, Tuple, Union

from .config import CANONICAL_VERSION, DEFAULT_POINTS
from .errors import QuizConfigValidationError

QuestionType = Literal[
    "multiple-choice",
    "short-answer",
    "long-answer",
    "article",
    "fill-in-the-blank",
    "choice",
    "ranking",
    "single-selection-matrix",
    "multiple-selection-matrix",
    "whiteboard",
]
QUESTION_TYPES: tuple[str, ...] = (
    "multiple-choice",
    "short-answer",
    "long-answer",
    "article",
    "fill-in-the-blank",
    "choice",
    "ranking",
    "single-selection-matrix",
    "multiple-selection-matrix",
    "whiteboard",
)

WEIGHTED_MODES: tuple[str, ...] = ("all-or-nothing", "partial-with-penalty", "partial-no-penalty")
RANKING_MODES: tuple[str, ...] = ("exact-order", "partial-order")
MATRIX_MODES: tuple[str, ...] = ("all-or-nothing", "partial")


def _is_number(x: object) -> bool:
    return isinstance(x, (int, float)) and not isinstance(x, bool)


def _require_points(kind: str, **values: object) -> None:
    for name, val in values.items():
        if val is None:
            continue
        if not _is_number(val) or val < 0:
            raise QuizConfigValidationError(f"{kind} scoring: {name} must be a non-negative number, got {val!r}")


def _require_mode(kind: str, mode: str, allowed: tuple[str, ...]) -> None:
    if mode not in allowed:
        raise QuizConfigValidationError(f"{kind} scoring: unknown mode {mode!r} (expected one of {', '.join(allowed)})")


# ---- Scoring configurations ----

@dataclass(frozen=True)
class SimpleScoring:
    points: float = DEFAULT_POINTS
    type: ClassVar[str] = "simple"

    def __post_init__(self) -> None:
        _require_points("simple", points=self.points)

    @property
    def max_points(self) -> float:
        return self.points


@dataclass(frozen=True)
class WeightedScoring:
    mode: str = "all-or-nothing"
    max_points: float = DEFAULT_POINTS
    points_per_correct: Optional[float] = None
    penalty_per_incorrect: Optional[float] = None
    type: ClassVar[str] = "weighted"

    def __post_init__(self) -> None:
        _require_mode("weighted", self.mode, WEIGHTED_MODES)
        _require_points(
            "weighted",
            max_points=self.max_points,
            points_per_correct=self.points_per_correct,
            penalty_per_incorrect=self.penalty_per_incorrect,
        )
        if self.mode != "all-or-nothing" and self.points_per_correct is None:
            raise QuizConfigValidationError(f"weighted scoring: mode {self.mode!r} needs points_per_correct")
        if self.mode == "partial-with-penalty" and self.penalty_per_incorrect is None:
            raise QuizConfigValidationError("weighted scoring: partial-with-penalty needs penalty_per_incorrect")


@dataclass(frozen=True)
class RubricScoring:
    rubric_id: int
    max_points: float = DEFAULT_POINTS
    type: ClassVar[str] = "rubric"

    def __post_init__(self) -> None:
        _require_points("rubric", max_points=self.max_points)


@dataclass(frozen=True)
class ManualScoring:
    max_points: float = DEFAULT_POINTS
    type: ClassVar[str] = "manual"

    def __post_init__(self) -> None:
        _require_points("manual", max_points=self.max_points)


@dataclass(frozen=True)
class PartialMatchScoring:
    max_points: float = DEFAULT_POINTS
    case_sensitive: bool = False
    match_threshold: float = 1.0
    type: ClassVar[str] = "partial-match"

    def __post_init__(self) -> None:
        _require_points("partial-match", max_points=self.max_points)
        if not _is_number(self.match_threshold) or not 0.0 <= self.match_threshold <= 1.0:
            raise QuizConfigValidationError(
                f"partial-match scoring: match_threshold must be within [0, 1], got {self.match_threshold!r}"
            )


@dataclass(frozen=True)
class RankingScoring:
    mode: str = "exact-order"
    max_points: float = DEFAULT_POINTS
    points_per_correct_position: Optional[float] = None
    type: ClassVar[str] = "ranking"

    def __post_init__(self) -> None:
        _require_mode("ranking", self.mode, RANKING_MODES)
        _require_points(
            "ranking",
            max_points=self.max_points,
            points_per_correct_position=self.points_per_correct_position,
        )
        if self.mode == "partial-order" and self.points_per_correct_position is None:
            raise QuizConfigValidationError("ranking scoring: partial-order needs points_per_correct_position")


@dataclass(frozen=True)
class MatrixScoring:
    max_points: float = DEFAULT_POINTS
    points_per_row: float = DEFAULT_POINTS
    mode: str = "partial"
    type: ClassVar[str] = "matrix"

    def __post_init__(self) -> None:
        _require_mode("matrix", self.mode, MATRIX_MODES)
        _require_points("matrix", max_points=self.max_points, points_per_row=self.points_per_row)


ScoringConfig = Union[
    SimpleScoring,
    WeightedScoring,
    RubricScoring,
    ManualScoring,
    PartialMatchScoring,
    RankingScoring,
    MatrixScoring,
]
SCORING_CLASSES: Dict[str, type] = {
    cls.type: cls
    for cls in (
        SimpleScoring,
        WeightedScoring,
        RubricScoring,
        ManualScoring,
        PartialMatchScoring,
        RankingScoring,
        MatrixScoring,
    )
}


# ---- Questions ----

@dataclass(frozen=True, kw_only=True)
class BaseQuestion:
    id: str
    prompt: str = ""
    feedback: Optional[str] = None
    scoring: Optional[ScoringConfig] = None
    type: ClassVar[str] = ""


@dataclass(frozen=True, kw_only=True)
class MultipleChoiceQuestion(BaseQuestion):
    options: Dict[str, str] = field(default_factory=dict)
    correct_answer: Optional[str] = None
    type: ClassVar[str] = "multiple-choice"


@dataclass(frozen=True, kw_only=True)
class ShortAnswerQuestion(BaseQuestion):
    correct_answer: Optional[str] = None
    type: ClassVar[str] = "short-answer"


@dataclass(frozen=True, kw_only=True)
class LongAnswerQuestion(BaseQuestion):
    correct_answer: Optional[str] = None
    type: ClassVar[str] = "long-answer"


@dataclass(frozen=True, kw_only=True)
class ArticleQuestion(BaseQuestion):
    type: ClassVar[str] = "article"


@dataclass(frozen=True, kw_only=True)
class FillInTheBlankQuestion(BaseQuestion):
    # blank id (the token inside {{...}}) -> answer; repeated blanks share one entry
    correct_answers: Dict[str, str] = field(default_factory=dict)
    type: ClassVar[str] = "fill-in-the-blank"


@dataclass(frozen=True, kw_only=True)
class ChoiceQuestion(BaseQuestion):
    options: Dict[str, str] = field(default_factory=dict)
    correct_answers: List[str] = field(default_factory=list)
    type: ClassVar[str] = "choice"


@dataclass(frozen=True, kw_only=True)
class RankingQuestion(BaseQuestion):
    items: Dict[str, str] = field(default_factory=dict)
    correct_order: List[str] = field(default_factory=list)
    type: ClassVar[str] = "ranking"


@dataclass(frozen=True, kw_only=True)
class SingleSelectionMatrixQuestion(BaseQuestion):
    rows: Dict[str, str] = field(default_factory=dict)
    columns: Dict[str, str] = field(default_factory=dict)
    correct_answers: Dict[str, str] = field(default_factory=dict)
    type: ClassVar[str] = "single-selection-matrix"


@dataclass(frozen=True, kw_only=True)
class MultipleSelectionMatrixQuestion(BaseQuestion):
    rows: Dict[str, str] = field(default_factory=dict)
    columns: Dict[str, str] = field(default_factory=dict)
    correct_answers: Dict[str, str] = field(default_factory=dict)
    type: ClassVar[str] = "multiple-selection-matrix"


@dataclass(frozen=True, kw_only=True)
class WhiteboardQuestion(BaseQuestion):
    type: ClassVar[str] = "whiteboard"


Question = Union[
    MultipleChoiceQuestion,
    ShortAnswerQuestion,
    LongAnswerQuestion,
    ArticleQuestion,
    FillInTheBlankQuestion,
    ChoiceQuestion,
    RankingQuestion,
    SingleSelectionMatrixQuestion,
    MultipleSelectionMatrixQuestion,
    WhiteboardQuestion,
]
QUESTION_CLASSES: Dict[str, type] = {
    cls.type: cls
    for cls in (
        MultipleChoiceQuestion,
        ShortAnswerQuestion,
        LongAnswerQuestion,
        ArticleQuestion,
        FillInTheBlankQuestion,
        ChoiceQuestion,
        RankingQuestion,
        SingleSelectionMatrixQuestion,
        MultipleSelectionMatrixQuestion,
        WhiteboardQuestion,
    )
}

# string for text answers, list for choice/ranking, map for blanks and matrices
QuestionAnswer = Union[str, List[str], Dict[str, str]]


# ---- Quiz structure ----

@dataclass(frozen=True)
class QuizResource:
    id: str
    content: str = ""
    pages: List[str] = field(default_factory=list)
    title: Optional[str] = None


@dataclass(frozen=True)
class QuizPage:
    id: str
    title: str = ""
    questions: List[Question] = field(default_factory=list)


@dataclass(frozen=True)
class GradingConfig:
    enabled: bool = False
    passing_score: Optional[float] = None
    show_score_to_student: Optional[bool] = None
    show_correct_answers: Optional[bool] = None


@dataclass(frozen=True, kw_only=True)
class NestedQuizConfig:
    id: str
    title: str
    description: Optional[str] = None
    pages: List[QuizPage] = field(default_factory=list)
    resources: Optional[List[QuizResource]] = None
    global_timer: Optional[int] = None


@dataclass(frozen=True, kw_only=True)
class RegularQuizConfig:
    id: str
    title: str
    pages: List[QuizPage] = field(default_factory=list)
    resources: Optional[List[QuizResource]] = None
    global_timer: Optional[int] = None
    grading: Optional[GradingConfig] = None
    version: ClassVar[str] = CANONICAL_VERSION
    type: ClassVar[str] = "regular"


@dataclass(frozen=True, kw_only=True)
class ContainerQuizConfig:
    id: str
    title: str
    nested_quizzes: List[NestedQuizConfig] = field(default_factory=list)
    sequential_order: Optional[bool] = None
    global_timer: Optional[int] = None
    grading: Optional[GradingConfig] = None
    version: ClassVar[str] = CANONICAL_VERSION
    type: ClassVar[str] = "container"


QuizConfig = Union[RegularQuizConfig, ContainerQuizConfig]


def is_container_quiz(config: QuizConfig) -> bool:
    return isinstance(config, ContainerQuizConfig)


def is_regular_quiz(config: QuizConfig) -> bool:
    return isinstance(config, RegularQuizConfig)


# ---- Point helpers ----

def get_default_scoring(question_type: str) -> ScoringConfig:
    """Scoring applied when a question carries no explicit configuration."""

    if question_type in ("multiple-choice", "short-answer"):
        return SimpleScoring(points=1)
    if question_type == "choice":
        return WeightedScoring(mode="all-or-nothing", max_points=1)
    if question_type == "fill-in-the-blank":
        return WeightedScoring(mode="partial-no-penalty", max_points=1, points_per_correct=1)
    if question_type == "ranking":
        return RankingScoring(mode="exact-order", max_points=1)
    if question_type in ("single-selection-matrix", "multiple-selection-matrix"):
        return MatrixScoring(max_points=1, points_per_row=1, mode="partial")
    if question_type in ("long-answer", "article", "whiteboard"):
        return ManualScoring(max_points=1)
    return SimpleScoring(points=1)


def effective_scoring(question: Question) -> ScoringConfig:
    return question.scoring if question.scoring is not None else get_default_scoring(question.type)


def get_question_points(question: Question) -> float:
    return effective_scoring(question).max_points


def _pages_points(pages: List[QuizPage]) -> float:
    return sum(get_question_points(q) for page in pages for q in page.questions)


def calculate_total_points(config: Union[QuizConfig, NestedQuizConfig]) -> float:
    if isinstance(config, ContainerQuizConfig):
        return sum(calculate_total_points(nested) for nested in config.nested_quizzes)
    return _pages_points(config.pages)


def iter_questions(config: QuizConfig) -> Iterator[Tuple[Optional[str], QuizPage, Question]]:
    """Yield ``(nested_quiz_id, page, question)`` in display order."""

    if isinstance(config, ContainerQuizConfig):
        for nested in config.nested_quizzes:
            for page in nested.pages:
                for q in page.questions:
                    yield nested.id, page, q
        return
    for page in config.pages:
        for q in page.questions:
            yield None, page, q


def format_points(x: float) -> str:
    return str(int(x)) if float(x).is_integer() else f"{x:g}"


def describe_scoring(scoring: Optional[ScoringConfig]) -> str:
    if scoring is None:
        return "1 point"
    if isinstance(scoring, SimpleScoring):
        return f"{format_points(scoring.points)} {'point' if scoring.points == 1 else 'points'}"
    if isinstance(scoring, WeightedScoring):
        if scoring.mode == "all-or-nothing":
            return f"{format_points(scoring.max_points)} points (all or nothing)"
        if scoring.mode == "partial-with-penalty":
            return (
                f"Up to {format_points(scoring.max_points)} points ({format_points(scoring.points_per_correct)} per correct, "
                f"-{format_points(scoring.penalty_per_incorrect)} per incorrect)"
            )
        return f"Up to {format_points(scoring.max_points)} points ({format_points(scoring.points_per_correct)} per correct, no penalty)"
    if isinstance(scoring, RubricScoring):
        return f"Up to {format_points(scoring.max_points)} points (rubric-based)"
    if isinstance(scoring, ManualScoring):
        return f"Up to {format_points(scoring.max_points)} points (manual grading)"
    if isinstance(scoring, PartialMatchScoring):
        sensitivity = "case-sensitive" if scoring.case_sensitive else "case-insensitive"
        return (
            f"Up to {format_points(scoring.max_points)} points ({sensitivity}, "
            f"{round(scoring.match_threshold * 100)}% match threshold)"
        )
    if isinstance(scoring, RankingScoring):
        if scoring.mode == "exact-order":
            return f"{format_points(scoring.max_points)} points (exact order required)"
        return f"Up to {format_points(scoring.max_points)} points ({format_points(scoring.points_per_correct_position)} per correct position)"
    if isinstance(scoring, MatrixScoring):
        if scoring.mode == "all-or-nothing":
            return f"{format_points(scoring.max_points)} points ({format_points(scoring.points_per_row)} per row, all or nothing)"
        return f"Up to {format_points(scoring.max_points)} points ({format_points(scoring.points_per_row)} per row, partial credit)"
    raise TypeError(f"unknown scoring config: {scoring!r}")
