"""
Dependency expression models for the configuration engine.

A ``requires`` clause is a closed tree of these node types. Leaves compare
one sibling item's current value (same tier) against an operand; the three
combinators compose leaves.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Union

Scalar = Union[str, int, float, bool]


class ConditionOperator(str, Enum):
    """Leaf comparison operators."""
    TRUTHY = "truthy"
    FALSY = "falsy"
    EQ = "eq"
    NEQ = "neq"
    IN = "in"
    NIN = "nin"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"

    @property
    def operand_shape(self) -> str:
        """Operand shape the operator requires: none, scalar, array or number."""
        if self in (ConditionOperator.TRUTHY, ConditionOperator.FALSY):
            return "none"
        if self in (ConditionOperator.EQ, ConditionOperator.NEQ):
            return "scalar"
        if self in (ConditionOperator.IN, ConditionOperator.NIN):
            return "array"
        return "number"


class Combinator(str, Enum):
    """Expression combinator keys as they appear in catalog documents."""
    ALL_OF = "allOf"
    ANY_OF = "anyOf"
    NOT = "not"


@dataclass
class Condition:
    """Leaf: compare item ``id``'s current value using ``op``."""
    id: str
    op: ConditionOperator
    value: Any = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"id": self.id, "op": self.op.value}
        if self.op.operand_shape != "none":
            data["value"] = list(self.value) if self.op.operand_shape == "array" else self.value
        return data


@dataclass
class AllOf:
    """Conjunction; vacuously true when empty."""
    terms: List["Expression"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {Combinator.ALL_OF.value: [term.to_dict() for term in self.terms]}


@dataclass
class AnyOf:
    """Disjunction; vacuously false when empty."""
    terms: List["Expression"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {Combinator.ANY_OF.value: [term.to_dict() for term in self.terms]}


@dataclass
class Not:
    """Negation of a single sub-expression."""
    term: "Expression"

    def to_dict(self) -> Dict[str, Any]:
        return {Combinator.NOT.value: self.term.to_dict()}


Expression = Union[Condition, AllOf, AnyOf, Not]


def referenced_ids(expression: Expression) -> List[str]:
    """Item ids referenced by the leaves of ``expression``, in document order."""
    if isinstance(expression, Condition):
        return [expression.id]
    if isinstance(expression, (AllOf, AnyOf)):
        ids: List[str] = []
        for term in expression.terms:
            ids.extend(referenced_ids(term))
        return ids
    if isinstance(expression, Not):
        return referenced_ids(expression.term)
    raise TypeError(f"Unsupported expression node: {type(expression).__name__}")
