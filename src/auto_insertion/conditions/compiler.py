"""Storage condition compiler and evaluator.

Authored conditions are compiled into a small JSON-serializable expression
tree rather than executable code:

    {"op": "const", "value": true}
    {"op": "and", "args": [<expr>, ...]}
    {"op": "cmp", "datatype": "numeric", "operator": ">", "key": "visits", "value": "3"}

The tree travels inside the chain payload and is interpreted at view time by
``evaluate_condition`` against a ``read(key)`` callable. Evaluation is pure:
the same tree and the same reader always give the same answer.

Usage:
    expr = compile_conditions([{"key": "visits", "operator": ">", "value": "3",
                                "datatype": "numeric"}])
    evaluate_condition(expr, reader.read)  # True / False
"""

from __future__ import annotations

import json
import math
import operator
import re
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from src.common.errors import ConditionEvaluationError
from src.common.logging import setup_logging
from src.common.models import ConditionDatatype, StorageCondition

logger = setup_logging(module_name="conditions.compiler")

ConditionExpr = dict[str, Any]
Reader = Callable[[str], Any]

TRUE_EXPR: ConditionExpr = {"op": "const", "value": True}

RELATIONAL_OPERATORS = ("=", "!=", ">", "<", ">=", "<=")
EQUALITY_OPERATORS = ("=", "!=")
STRING_OPERATORS = ("=", "!=", "contains")
REGEX_OPERATOR = "matches"

_DATATYPE_ALIASES = {
    "number": ConditionDatatype.NUMERIC.value,
    "bool": ConditionDatatype.BOOLEAN.value,
}

_ALLOWED_OPERATORS = {
    ConditionDatatype.NUMERIC.value: RELATIONAL_OPERATORS,
    ConditionDatatype.DATE.value: RELATIONAL_OPERATORS,
    ConditionDatatype.BOOLEAN.value: EQUALITY_OPERATORS,
    ConditionDatatype.STRING.value: STRING_OPERATORS,
    ConditionDatatype.REGEX.value: (REGEX_OPERATOR,),
}

_COMPARATORS = {
    "=": operator.eq,
    "!=": operator.ne,
    ">": operator.gt,
    "<": operator.lt,
    ">=": operator.ge,
    "<=": operator.le,
}


# --- Compilation ---


def compile_conditions(
    conditions: Iterable[StorageCondition | dict] | None,
) -> ConditionExpr:
    """Compile authored conditions into one AND expression.

    Conditions with an empty key are dropped. No conditions (or only
    dropped ones) compile to the constant ``true``.
    """
    parts: list[ConditionExpr] = []
    for raw in conditions or []:
        condition = (
            raw if isinstance(raw, StorageCondition) else StorageCondition(**raw)
        )
        if not condition.key:
            continue
        parts.append(_compile_single(condition))

    if not parts:
        return dict(TRUE_EXPR)
    return {"op": "and", "args": parts}


def is_constant_true(expr: ConditionExpr) -> bool:
    """True when the expression is the unconditional constant."""
    return expr.get("op") == "const" and expr.get("value") is True


def _compile_single(condition: StorageCondition) -> ConditionExpr:
    datatype = _normalize_datatype(condition.datatype)
    return {
        "op": "cmp",
        "datatype": datatype,
        "operator": _normalize_operator(condition.operator, datatype),
        "key": condition.key,
        "value": condition.value,
    }


def _normalize_datatype(datatype: str) -> str:
    name = (datatype or "").strip().lower()
    name = _DATATYPE_ALIASES.get(name, name)
    if name not in _ALLOWED_OPERATORS:
        logger.warning("Unknown condition datatype %r, treating as string", datatype)
        return ConditionDatatype.STRING.value
    return name


def _normalize_operator(op: str, datatype: str) -> str:
    allowed = _ALLOWED_OPERATORS[datatype]
    if datatype == ConditionDatatype.REGEX.value:
        return REGEX_OPERATOR
    name = (op or "").strip().lower()
    if name == "==":
        name = "="
    if name not in allowed:
        logger.warning(
            "Operator %r not valid for %s conditions, using '='", op, datatype
        )
        return "="
    return name


# --- Evaluation ---


def evaluate_condition(expr: ConditionExpr, read: Reader) -> bool:
    """Evaluate a compiled expression against a storage reader.

    Raises:
        ConditionEvaluationError: If the expression tree is malformed.
    """
    if not isinstance(expr, dict):
        raise ConditionEvaluationError(f"Expression must be an object, got {type(expr).__name__}")

    op = expr.get("op")
    if op == "const":
        value = expr.get("value")
        if not isinstance(value, bool):
            raise ConditionEvaluationError("Constant expression must hold a boolean")
        return value

    if op == "and":
        args = expr.get("args")
        if not isinstance(args, list):
            raise ConditionEvaluationError("'and' expression requires an argument list")
        return all(evaluate_condition(arg, read) for arg in args)

    if op == "cmp":
        return _evaluate_comparison(expr, read)

    raise ConditionEvaluationError(f"Unknown expression op: {op!r}")


def _evaluate_comparison(expr: ConditionExpr, read: Reader) -> bool:
    key = expr.get("key")
    datatype = expr.get("datatype")
    op = expr.get("operator")
    if not isinstance(key, str) or not key:
        raise ConditionEvaluationError("Comparison is missing its storage key")

    handler = _HANDLERS.get(datatype)
    if handler is None:
        raise ConditionEvaluationError(f"Unknown datatype: {datatype!r}")
    if op not in _ALLOWED_OPERATORS[datatype]:
        raise ConditionEvaluationError(f"Operator {op!r} not valid for {datatype}")

    stored = read(key)
    if stored is None:
        return False
    return handler(stored, op, expr.get("value"))


def _compare_numeric(stored: Any, op: str, literal: Any) -> bool:
    left = _to_number(stored)
    right = _to_number(literal)
    if left is None or right is None:
        return False
    return _COMPARATORS[op](left, right)


def _compare_boolean(stored: Any, op: str, literal: Any) -> bool:
    return _COMPARATORS[op](_to_bool(stored), _to_bool(literal))


def _compare_string(stored: Any, op: str, literal: Any) -> bool:
    left = _stringify(stored)
    right = _stringify(literal)
    if op == "contains":
        return right in left
    return _COMPARATORS[op](left, right)


def _compare_date(stored: Any, op: str, literal: Any) -> bool:
    left = _to_timestamp(stored)
    right = _to_timestamp(literal)
    if left is None or right is None:
        return False
    return _COMPARATORS[op](left, right)


def _match_regex(stored: Any, op: str, literal: Any) -> bool:
    try:
        pattern = re.compile(_stringify(literal))
    except re.error as e:
        logger.debug("Invalid condition pattern %r: %s", literal, e)
        return False
    return pattern.search(_stringify(stored)) is not None


_HANDLERS: dict[str, Callable[[Any, str, Any], bool]] = {
    ConditionDatatype.NUMERIC.value: _compare_numeric,
    ConditionDatatype.BOOLEAN.value: _compare_boolean,
    ConditionDatatype.STRING.value: _compare_string,
    ConditionDatatype.DATE.value: _compare_date,
    ConditionDatatype.REGEX.value: _match_regex,
}


# --- Coercion helpers ---


def _to_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return None if math.isnan(number) else number


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        text = value.strip()
        return text.lower() == "true" or text == "1"
    return bool(value)


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False)
    return str(value)


def _to_timestamp(value: Any) -> Optional[float]:
    """Milliseconds since the epoch, or None when unparseable.

    Numbers (and numeric strings) are read as epoch milliseconds; strings
    are parsed as ISO-8601, naive values taken as UTC.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if math.isnan(float(value)) else float(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    number = _to_number(text)
    if number is not None:
        return number
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.timestamp() * 1000


# --- Diagnostics ---


def describe_condition(expr: ConditionExpr) -> str:
    """Human-readable rendering of a compiled expression, for logs."""
    op = expr.get("op") if isinstance(expr, dict) else None
    if op == "const":
        return "true" if expr.get("value") is True else "false"
    if op == "and":
        return " AND ".join(f"({describe_condition(arg)})" for arg in expr.get("args", []))
    if op == "cmp":
        return (
            f"{expr.get('datatype')}({expr.get('key')}) "
            f"{expr.get('operator')} {json.dumps(expr.get('value'), ensure_ascii=False)}"
        )
    return "<invalid>"
