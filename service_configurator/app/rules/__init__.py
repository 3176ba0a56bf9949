"""
Dependency rules package.

Defines the ``requires`` expression tree and the evaluator that decides
whether an item or option is currently valid for one tier's selections.

Modules of interest:
- models: Condition leaves, AllOf/AnyOf/Not combinators, operators.
- engine: DependencyEvaluator plus the canonical comparison helpers.

Evaluation is pure and total: malformed numeric comparisons resolve to
False and referenced items' own requires clauses are never followed.
"""

from .engine import DependencyEvaluator, canonical_string, is_truthy, to_number
from .models import (
    AllOf, AnyOf, Combinator, Condition, ConditionOperator, Expression, Not, Scalar
)

__all__ = [
    "DependencyEvaluator", "canonical_string", "is_truthy", "to_number",
    "AllOf", "AnyOf", "Combinator", "Condition", "ConditionOperator",
    "Expression", "Not", "Scalar",
]
