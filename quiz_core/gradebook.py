from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple

NodeType = Literal["category", "item"]


@dataclass(frozen=True)
class GradeNode:
    id: str
    name: str
    type: NodeType = "item"
    weight: Optional[float] = None  # author-specified, 0..100
    extra_credit: bool = False
    max_grade: Optional[float] = None
    children: List["GradeNode"] = field(default_factory=list)

    @property
    def is_category(self) -> bool:
        return self.type == "category"


@dataclass
class WeightedNode:
    id: str
    name: str
    type: NodeType
    weight: Optional[float]
    extra_credit: bool
    max_grade: Optional[float]
    adjusted_weight: Optional[float] = None
    overall_weight: Optional[float] = None
    weight_explanation: Optional[str] = None
    auto_weighted_zero: bool = False
    children: List["WeightedNode"] = field(default_factory=list)

    @property
    def is_category(self) -> bool:
        return self.type == "category"


def _opt_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _node_fields(raw: Mapping[str, Any]) -> Tuple[Dict[str, Any], List[Mapping[str, Any]]]:
    kids = raw.get("children")
    if kids is None:
        kids = raw.get("grade_items")
    has_kids = isinstance(kids, list)
    node_type = raw.get("type") or ("category" if has_kids else "item")
    fields = {
        "id": str(raw.get("id", "")),
        "name": str(raw.get("name") or ""),
        "type": "category" if node_type == "category" else "item",
        "weight": _opt_float(raw.get("weight")),
        "extra_credit": bool(raw.get("extra_credit", False)),
        "max_grade": _opt_float(raw.get("max_grade")),
    }
    return fields, [c for c in kids if isinstance(c, Mapping)] if has_kids else []


def node_from_dict(raw: Mapping[str, Any]) -> GradeNode:
    """Build a :class:`GradeNode` from a snake_case mapping.

    ``grade_items`` is accepted as an alias of ``children``; ``type`` defaults
    to ``"category"`` when a child list is present.  Nesting depth is not
    limited here; :func:`quiz_core.weights.normalize` cuts the tree off.
    """

    fields, kids = _node_fields(raw)
    root = GradeNode(**fields)
    # children lists stay mutable on the frozen node, so fill them in place
    stack: List[Tuple[List[Mapping[str, Any]], List[GradeNode]]] = [(kids, root.children)]
    while stack:
        raw_children, into = stack.pop()
        for child in raw_children:
            child_fields, grandkids = _node_fields(child)
            node = GradeNode(**child_fields)
            into.append(node)
            if grandkids:
                stack.append((grandkids, node.children))
    return root


def _weighted_fields(node: WeightedNode) -> Dict[str, Any]:
    return {
        "id": node.id,
        "name": node.name,
        "type": node.type,
        "weight": node.weight,
        "extra_credit": node.extra_credit,
        "max_grade": node.max_grade,
        "adjusted_weight": node.adjusted_weight,
        "overall_weight": node.overall_weight,
        "weight_explanation": node.weight_explanation,
        "auto_weighted_zero": node.auto_weighted_zero,
        "children": [],
    }


def weighted_to_dict(node: WeightedNode) -> Dict[str, Any]:
    out = _weighted_fields(node)
    stack: List[Tuple[WeightedNode, Dict[str, Any]]] = [(node, out)]
    while stack:
        current, current_out = stack.pop()
        for child in current.children:
            child_out = _weighted_fields(child)
            current_out["children"].append(child_out)
            stack.append((child, child_out))
    return out
