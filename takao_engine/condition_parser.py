"""Condition parsing for Takao Engine.

Evaluates a single relational expression such as ``"health <= 30"`` against a
value the caller already fetched. The property token is informational only.

Anything that does not match the grammar evaluates to False: a malformed
requirement disqualifies its action instead of breaking selection.
"""

from __future__ import annotations

import math
import operator
import re
from dataclasses import dataclass
from typing import Any, Callable, Optional

from takao_core import ComparisonOperator, ComparisonRequirement, Unit

# Two-character operators come first in the alternation so "<=" is never
# read as "<" followed by "=".
_CONDITION_PATTERN = re.compile(
    r"^\s*(?P<property>[A-Za-z_][\w.]*)"
    r"\s*(?P<operator><=|>=|<|>)"
    r"\s*(?P<threshold>[-+]?(?:\d+(?:\.\d*)?|\.\d+))\s*$"
)

OPERATOR_CHECKS: dict[ComparisonOperator, Callable[[float, float], bool]] = {
    ComparisonOperator.LESS_EQUAL: operator.le,
    ComparisonOperator.GREATER_EQUAL: operator.ge,
    ComparisonOperator.LESS: operator.lt,
    ComparisonOperator.GREATER: operator.gt,
}


@dataclass(frozen=True)
class Condition:
    """A parsed ``property operator threshold`` expression."""

    property: str
    operator: ComparisonOperator
    threshold: float

    def holds(self, value: float) -> bool:
        return OPERATOR_CHECKS[self.operator](value, self.threshold)


def parse_condition(expression: str) -> Optional[Condition]:
    """Parse a condition string.

    Args:
        expression: e.g. ``"health <= 30"`` or ``"mana > -5"``

    Returns:
        Parsed Condition, or None if the expression is malformed
    """
    if not isinstance(expression, str):
        return None

    match = _CONDITION_PATTERN.match(expression)
    if match is None:
        return None

    return Condition(
        property=match.group("property"),
        operator=ComparisonOperator(match.group("operator")),
        threshold=float(match.group("threshold")),
    )


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if math.isnan(value):
        return None
    return float(value)


def evaluate_condition(expression: str, value: Any) -> bool:
    """Evaluate a condition string against a sample value.

    Args:
        expression: Condition string (e.g. "health <= 30")
        value: The already-fetched property value to compare

    Returns:
        True if the condition holds; False if it doesn't, if the expression
        is malformed, or if the value is not a number
    """
    condition = parse_condition(expression)
    if condition is None:
        return False

    sample = _as_number(value)
    if sample is None:
        return False

    return condition.holds(sample)


def evaluate_requirement(requirement: ComparisonRequirement, unit: Unit) -> bool:
    """Check a comparison requirement against a unit's current property value.

    A unit that lacks the property fails the requirement.
    """
    return evaluate_condition(
        requirement.to_expression(),
        unit.get_property_value(requirement.property),
    )
