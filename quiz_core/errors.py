"""Exception types raised by the quiz core.

Scoring and weight normalisation never raise on well-formed input; these
errors belong to the resolver, the editing helpers and weight validation.
"""
from __future__ import annotations

__all__ = [
    "QuizCoreError",
    "InvalidConfig",
    "QuizConfigValidationError",
    "QuizElementNotFoundError",
    "WeightExceedsLimitError",
    "WeightZeroRequiredError",
]


class QuizCoreError(Exception):
    """Base class for every error raised by ``quiz_core``."""


class InvalidConfig(QuizCoreError, ValueError):
    """The stored value cannot be read as a quiz configuration at all."""


class QuizConfigValidationError(QuizCoreError, ValueError):
    """An edit or a scoring value would break a config invariant."""


class QuizElementNotFoundError(QuizCoreError, LookupError):
    """A page, question, resource or nested quiz id does not exist."""


class WeightExceedsLimitError(QuizCoreError, ValueError):
    pass


class WeightZeroRequiredError(QuizCoreError, ValueError):
    pass
