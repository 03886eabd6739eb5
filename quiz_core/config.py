from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw.strip())
    except ValueError:
        return default


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


CANONICAL_VERSION: str = "v2"

DEFAULT_POINTS: float = 1.0

# Fill-in-the-blank migration: raise instead of dropping blanks that have no
# positional answer.
STRICT_BLANKS: bool = False

TEXT_CASE_INSENSITIVE: bool = True

WEIGHT_TOLERANCE: float = 0.01
WEIGHT_DECIMALS: int = 2
MAX_TREE_DEPTH: int = 100

PERCENT_DECIMALS: int = 2

DEBUG_TRACE: bool = False

ALLOWED_ORIGINS: list[str] = [
    "http://localhost:3000",
]

# // env overrides for staging/ops; defaults remain conservative.
STRICT_BLANKS = _env_bool("QUIZ_STRICT_BLANKS", STRICT_BLANKS)
TEXT_CASE_INSENSITIVE = _env_bool("QUIZ_TEXT_CASE_INSENSITIVE", TEXT_CASE_INSENSITIVE)
WEIGHT_TOLERANCE = _env_float("QUIZ_WEIGHT_TOLERANCE", WEIGHT_TOLERANCE)
MAX_TREE_DEPTH = _env_int("QUIZ_MAX_TREE_DEPTH", MAX_TREE_DEPTH)
DEBUG_TRACE = _env_bool("DEBUG_TRACE", False)
ALLOWED_ORIGINS = _env_list("QUIZ_ALLOWED_ORIGINS", ALLOWED_ORIGINS)
