# Storage conditions — compile authored predicates, evaluate against client storage
"""
Condition module for client-state predicates (cooldowns, prior-visit flags).

Conditions are compiled at render time into a serializable expression tree
and evaluated at view time against a StorageReader.
"""

from .compiler import (
    ConditionExpr,
    TRUE_EXPR,
    compile_conditions,
    describe_condition,
    evaluate_condition,
    is_constant_true,
)
from .storage import StorageReader, parse_cookie_header

__all__ = [
    "ConditionExpr",
    "TRUE_EXPR",
    "compile_conditions",
    "describe_condition",
    "evaluate_condition",
    "is_constant_true",
    "StorageReader",
    "parse_cookie_header",
]
