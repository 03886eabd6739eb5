"""Grade weight normalisation over a course's category/item tree.

Siblings under one parent share 100%.  Explicit weights are kept, unweighted
siblings split whatever is left, and extra-credit nodes sit outside that sum.
A leaf's overall weight multiplies its adjusted weight by every ancestor's, so
it equals the leaf's share of the final course grade.

The input tree is never modified; :func:`normalize` returns a fresh
:class:`~quiz_core.gradebook.WeightedNode` tree.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple

from . import config
from .gradebook import GradeNode, WeightedNode

__all__ = [
    "WeightTotals",
    "normalize",
    "normalize_items",
    "weight_totals",
    "flatten",
]

log = logging.getLogger(__name__)


def _emit_trace(msg: str, *args: object) -> None:
    if config.DEBUG_TRACE:
        log.info("trace " + msg, *args)


def _fmt(weight: Optional[float]) -> str:
    return f"{weight:.{config.WEIGHT_DECIMALS}f}%" if weight is not None else "100%"


# ---- Pass 1: copy the tree and flag auto-weighted-0 categories (bottom-up) ----

def _shell(node: GradeNode) -> WeightedNode:
    return WeightedNode(
        id=node.id,
        name=node.name,
        type=node.type,
        weight=node.weight,
        extra_credit=node.extra_credit,
        max_grade=node.max_grade,
    )


def _copy(tree: GradeNode) -> WeightedNode:
    root = _shell(tree)
    visited: List[WeightedNode] = []
    stack: List[Tuple[GradeNode, WeightedNode, int]] = [(tree, root, 0)]
    while stack:
        node, out, depth = stack.pop()
        visited.append(out)
        if depth >= config.MAX_TREE_DEPTH:
            if node.children:
                log.error(
                    "grade tree deeper than %d levels at %r; children below it are not weighted",
                    config.MAX_TREE_DEPTH,
                    node.name,
                )
            continue
        out.children = [_shell(child) for child in node.children]
        stack.extend((child, copied, depth + 1) for child, copied in zip(node.children, out.children))

    # descendants are visited after their ancestors, so walk back up
    for out in reversed(visited):
        if out.is_category and out.weight is None:
            out.auto_weighted_zero = _carries_no_weight(out.children)
    return root


def _carries_no_weight(children: List[WeightedNode]) -> bool:
    participating = [c for c in children if not c.extra_credit and not c.auto_weighted_zero]
    if not participating:
        return True
    # every participating sibling explicitly weighted at zero
    return all(c.weight is not None for c in participating) and sum(c.weight for c in participating) == 0


# ---- Pass 2: adjusted weights per sibling group ----

def _distribute(siblings: List[WeightedNode]) -> None:
    regular: List[WeightedNode] = []
    for node in siblings:
        if node.auto_weighted_zero:
            node.adjusted_weight = 0.0
        elif node.extra_credit:
            # shown as "not weighted" when the author gave no weight
            node.adjusted_weight = node.weight
        else:
            regular.append(node)

    if not regular:
        return

    weighted = [n for n in regular if n.weight is not None]
    unweighted = [n for n in regular if n.weight is None]
    specified = sum(n.weight for n in weighted)

    if unweighted:
        share = max(0.0, 100.0 - specified) / len(unweighted)
        for n in weighted:
            n.adjusted_weight = n.weight
        for n in unweighted:
            n.adjusted_weight = share
    elif specified == 0:
        for n in weighted:
            n.adjusted_weight = 0.0
    elif math.isclose(specified, 100.0):
        for n in weighted:
            n.adjusted_weight = n.weight
    else:
        scale = 100.0 / specified
        for n in weighted:
            n.adjusted_weight = n.weight * scale
    _emit_trace(
        "group specified=%.4f unweighted=%d adjusted=%s",
        specified,
        len(unweighted),
        [(n.name, n.adjusted_weight) for n in siblings],
    )


def _assign_adjusted(node: WeightedNode) -> None:
    stack = [node]
    while stack:
        current = stack.pop()
        if current.children:
            _distribute(current.children)
            stack.extend(current.children)


# ---- Pass 3: overall weights and explanations (top-down) ----

def _assign_overall(root: WeightedNode) -> None:
    root.adjusted_weight = 100.0
    root.overall_weight = 100.0
    root.weight_explanation = f"{root.name} ({_fmt(100.0)}) = {_fmt(100.0)}"

    # (node, effective parent percentage, ancestor chain below the root)
    stack: List[Tuple[WeightedNode, float, List[Tuple[str, Optional[float]]]]] = [
        (child, 100.0, []) for child in root.children
    ]
    while stack:
        node, parent_pct, chain = stack.pop()
        if node.adjusted_weight is None:
            node.overall_weight = None
            node.weight_explanation = f"{node.name} (not weighted)"
            # an unweighted (extra-credit) category passes its parent's share through
            child_pct = parent_pct
        else:
            node.overall_weight = node.adjusted_weight / 100.0 * parent_pct
            parts = [f"{name} ({_fmt(w)})" for name, w in chain]
            parts.append(f"{node.name} ({_fmt(node.adjusted_weight)})")
            node.weight_explanation = f"{' × '.join(parts)} = {_fmt(node.overall_weight)}"
            child_pct = node.overall_weight
        next_chain = chain + [(node.name, node.adjusted_weight)]
        for child in node.children:
            stack.append((child, child_pct, next_chain))


def normalize(tree: GradeNode) -> WeightedNode:
    """Compute adjusted and overall weights for every node under the course root ``tree``.

    The root itself is the course: adjusted and overall weight 100.
    """

    weighted = _copy(tree)
    _assign_adjusted(weighted)
    _assign_overall(weighted)
    return weighted


def normalize_items(items: List[GradeNode], *, course_name: str = "Course") -> WeightedNode:
    """Normalise a list of top-level categories/items under a synthetic course root."""

    return normalize(GradeNode(id="course", name=course_name, type="category", children=list(items)))


# ---- Totals ----

@dataclass
class WeightTotals:
    base_total: float = 0.0
    extra_credit_total: float = 0.0
    calculated_total: float = 100.0
    total_max_grade: float = 0.0
    extra_credit_items: List[WeightedNode] = field(default_factory=list)
    extra_credit_categories: List[WeightedNode] = field(default_factory=list)


def weight_totals(root: WeightedNode) -> WeightTotals:
    """Sum leaf contributions of a normalised tree.

    An extra-credit category counts once through its own overall weight; its
    descendants are not added again.  ``calculated_total`` is always
    ``100 + extra_credit_total``.
    """

    totals = WeightTotals()
    stack: List[Tuple[WeightedNode, bool]] = [(child, False) for child in root.children]
    while stack:
        node, inside_extra = stack.pop()
        if not node.is_category:
            totals.total_max_grade += node.max_grade or 0.0
        if node.extra_credit and not inside_extra:
            if node.is_category:
                totals.extra_credit_categories.append(node)
            else:
                totals.extra_credit_items.append(node)
            totals.extra_credit_total += node.overall_weight or 0.0
        elif not node.is_category and not inside_extra:
            totals.base_total += node.overall_weight or 0.0
        for child in node.children:
            stack.append((child, inside_extra or node.extra_credit))
    totals.calculated_total = 100.0 + totals.extra_credit_total
    return totals


def flatten(root: WeightedNode) -> Iterator[Tuple[Tuple[str, ...], WeightedNode]]:
    """Yield ``(name_path, node)`` for every node, depth-first in display order."""

    stack: List[Tuple[Tuple[str, ...], WeightedNode]] = [((root.name,), root)]
    while stack:
        path, node = stack.pop()
        yield path, node
        for child in reversed(node.children):
            stack.append((path + (child.name,), child))
