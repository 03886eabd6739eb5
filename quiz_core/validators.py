from __future__ import annotations
from typing import List, Optional, Tuple

from . import config
from .errors import WeightExceedsLimitError, WeightZeroRequiredError
from .gradebook import GradeNode


def _check_level(items: List[GradeNode], level_name: str, level_weight: Optional[float], prefix: str) -> None:
    regular = [it for it in items if not it.extra_credit]
    if not regular:
        if level_weight is not None:
            raise WeightZeroRequiredError(
                f"Level {level_name} must be auto-weighted when no non-extra-credit items exist"
            )
        return

    total = sum(it.weight for it in regular if it.weight is not None)
    has_auto = any(it.weight is None for it in regular)
    tol = config.WEIGHT_TOLERANCE
    if has_auto:
        if total > 100 + tol:
            raise WeightExceedsLimitError(
                f"{prefix} would result in total specified weight of {total:.2f}% at {level_name}. "
                "When auto-weighted items exist, specified weights must not exceed 100%."
            )
    elif abs(total - 100) > tol:
        raise WeightExceedsLimitError(
            f"{prefix} would result in total weight of {total:.2f}% at {level_name}. "
            "Total must equal exactly 100%."
        )


def validate_gradebook_weights(
    items: List[GradeNode],
    level_name: str = "course level",
    level_weight: Optional[float] = None,
    prefix: str = "Operation",
) -> None:
    """Reject a gradebook edit whose weights cannot be normalised sensibly.

    Extra-credit items are ignored.  A level with no other items must itself be
    auto-weighted (``level_weight is None``).  When some siblings are
    auto-weighted the explicit weights may total at most 100, otherwise they
    must total exactly 100 (within ``WEIGHT_TOLERANCE``).  Categories are
    checked depth-first as ``"<level> > <name>"``.
    """

    stack: List[Tuple[List[GradeNode], str, Optional[float]]] = [(items, level_name, level_weight)]
    while stack:
        level_items, name, weight = stack.pop()
        _check_level(level_items, name, weight, prefix)
        for it in reversed(level_items):
            if it.is_category:
                stack.append((it.children, f"{name} > {it.name}", it.weight))


def validate_tree(root: GradeNode, prefix: str = "Operation") -> None:
    """Validate every level under the course root ``root``."""

    validate_gradebook_weights(root.children, "course level", None, prefix)
