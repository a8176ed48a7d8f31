"""
Condition grammar shared by the code generator and the interpreter.

Exactly two forms are accepted:
    <variableId> <op> <literal>    op ∈ ==, !=, >, <, >=, <=; literal is JSON
    <variableId>                   truthiness of the variable
Anything else is rejected, and rejected predicates evaluate to false.

Comparisons follow the strict semantics of the generated handlers:
- `==` / `!=` compare with `===` / `!==`, so values of different JS types
  are never equal (a boolean is not the number 1).
- Ordering only holds between two numbers or two strings; any other pair
  is false, with no numeric coercion of strings.
"""

import re
import json
import math
from typing import Optional, Any
from pydantic import BaseModel

# Two-character operators first so ">=" is not read as ">" followed by "=1".
COMPARISON_OPERATORS = ("==", "!=", ">=", "<=", ">", "<")
EQUALITY_OPERATORS = ("==", "!=")
ORDERED_TYPES = ("number", "string")

_COMPARISON_RE = re.compile(
    r"^(\w+)\s*(" + "|".join(re.escape(op) for op in COMPARISON_OPERATORS) + r")\s*(.+)$"
)
_BARE_RE = re.compile(r"^\w+$")


class Predicate(BaseModel):
    variable_id: str
    operator: Optional[str] = None  # None → bare truthiness check
    literal: Any = None

    @property
    def is_comparison(self) -> bool:
        return self.operator is not None

    @property
    def literal_type(self) -> str:
        return js_type(self.literal)


def parse_condition(expression: Any) -> Optional[Predicate]:
    """Parse a condition string. Returns None for anything outside the grammar."""
    if not isinstance(expression, str):
        return None
    text = expression.strip()
    if not text:
        return None

    match = _COMPARISON_RE.match(text)
    if match:
        variable_id, op, raw_literal = match.groups()
        try:
            literal = json.loads(raw_literal.strip())
        except (ValueError, TypeError):
            return None
        return Predicate(variable_id=variable_id, operator=op, literal=literal)

    if _BARE_RE.match(text):
        return Predicate(variable_id=text)
    return None


# ── JS value model ────────────────────────────────────────────────


def js_type(value: Any) -> str:
    """`typeof` of a value once it reaches the generated handler's variable store."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    return "object"


def js_truthy(value: Any) -> bool:
    """`Boolean(value)` as the generated handlers compute it."""
    kind = js_type(value)
    if kind == "null":
        return False
    if kind == "boolean":
        return value
    if kind == "number":
        return value != 0 and not math.isnan(value)
    if kind == "string":
        return value != ""
    return True
