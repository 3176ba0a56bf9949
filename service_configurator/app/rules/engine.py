"""
Dependency evaluation engine for the configuration engine.
"""

import math
from typing import Any, Mapping, Optional

from shared.logging import get_logger
from .models import (
    AllOf, AnyOf, Condition, ConditionOperator, Expression, Not
)


def canonical_string(value: Any) -> Optional[str]:
    """Normalize a scalar for equality and membership tests.

    Strings pass through, booleans become ``"true"``/``"false"``, integral
    numbers lose their fractional part (``3.0`` -> ``"3"``) and other numbers
    use their shortest repr. ``None`` stays ``None`` and equals nothing.
    """
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer():
            return str(int(value))
        return repr(value)
    return str(value)


def to_number(value: Any) -> Optional[float]:
    """Coerce a current value to a finite number, or ``None`` when impossible."""
    if value is None:
        return None
    if isinstance(value, bool):
        number = 1.0 if value else 0.0
    elif isinstance(value, (int, float)):
        try:
            number = float(value)
        except OverflowError:
            return None
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def is_truthy(value: Any) -> bool:
    """Truthiness of a current value."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0 and not math.isnan(value)
    if isinstance(value, str):
        return value != ""
    return bool(value)


class DependencyEvaluator:
    """Evaluates ``requires`` expressions against one tier's selections.

    Evaluation only reads stored values; it never follows the referenced
    item's own ``requires``, so reference cycles cannot recurse.
    """

    def __init__(self):
        self.logger = get_logger("configurator.rule_engine")

    def evaluate(self, expression: Expression, tier_selections: Mapping[str, Any]) -> bool:
        """Evaluate an expression tree."""
        if isinstance(expression, Condition):
            return self._evaluate_condition(expression, tier_selections)
        if isinstance(expression, AllOf):
            return all(self.evaluate(term, tier_selections) for term in expression.terms)
        if isinstance(expression, AnyOf):
            return any(self.evaluate(term, tier_selections) for term in expression.terms)
        if isinstance(expression, Not):
            return not self.evaluate(expression.term, tier_selections)
        raise TypeError(f"Unsupported expression node: {type(expression).__name__}")

    def is_satisfied(self, requires: Optional[Expression], tier_selections: Mapping[str, Any]) -> bool:
        """A missing ``requires`` clause always holds."""
        if requires is None:
            return True
        return self.evaluate(requires, tier_selections)

    def _evaluate_condition(self, condition: Condition, tier_selections: Mapping[str, Any]) -> bool:
        """Evaluate a single leaf."""
        current = tier_selections.get(condition.id)
        op = condition.op

        if op == ConditionOperator.TRUTHY:
            return is_truthy(current)

        elif op == ConditionOperator.FALSY:
            return not is_truthy(current)

        elif op == ConditionOperator.EQ:
            return self._matches(current, condition.value)

        elif op == ConditionOperator.NEQ:
            return not self._matches(current, condition.value)

        elif op == ConditionOperator.IN:
            return any(self._matches(current, candidate) for candidate in condition.value)

        elif op == ConditionOperator.NIN:
            return not any(self._matches(current, candidate) for candidate in condition.value)

        left = to_number(current)
        right = to_number(condition.value)
        if left is None or right is None:
            self.logger.debug(
                "Non-numeric comparison treated as unmet",
                item_id=condition.id,
                op=op.value,
                current=current
            )
            return False

        if op == ConditionOperator.GT:
            return left > right
        elif op == ConditionOperator.GTE:
            return left >= right
        elif op == ConditionOperator.LT:
            return left < right
        elif op == ConditionOperator.LTE:
            return left <= right

        raise TypeError(f"Unsupported operator: {op!r}")

    @staticmethod
    def _matches(current: Any, operand: Any) -> bool:
        left = canonical_string(current)
        return left is not None and left == canonical_string(operand)
