"""
Condition evaluation against live variables. Fail-closed: anything outside
the two-form grammar, a missing operand, or an incomparable pair is false.
Results match what the generated handlers compute for the same store.
"""

import operator
from typing import Dict, Any

from logicflow.compiler.predicates import (
    parse_condition, js_type, js_truthy, EQUALITY_OPERATORS, ORDERED_TYPES,
)

_ORDERING = {
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}

# Absent ids read as `undefined` in generated code, which is not `=== null`.
_MISSING = "undefined"


def _strict_equal(value: Any, literal: Any) -> bool:
    kind = js_type(value)
    if kind != js_type(literal):
        return False
    if kind == "object":
        # Literals are fresh objects; `===` on objects is identity.
        return False
    return value == literal


def evaluate_condition(expression: Any, variables: Dict[str, Any]) -> bool:
    predicate = parse_condition(expression)
    if predicate is None:
        return False

    present = predicate.variable_id in variables
    value = variables.get(predicate.variable_id)

    if not predicate.is_comparison:
        return present and js_truthy(value)

    if predicate.operator in EQUALITY_OPERATORS:
        equal = present and _strict_equal(value, predicate.literal)
        return equal if predicate.operator == "==" else not equal

    kind = js_type(value) if present else _MISSING
    if kind not in ORDERED_TYPES or kind != predicate.literal_type:
        return False
    return bool(_ORDERING[predicate.operator](value, predicate.literal))
