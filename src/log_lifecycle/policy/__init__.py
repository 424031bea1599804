"""Filter expressions, their evaluation and desired-state resolution."""

from .retention import INFINITE, Days, Infinite, Retention, from_api, to_api
from .desired_state import (
    Action,
    SetDays,
    ClearRetention,
    DeleteGroup,
    SetDeletionProtection,
    NoOp,
    DURATION_TOKENS,
    known_tokens,
    resolve,
)
from .expression import (
    BoolOp,
    BoolOperator,
    Comparison,
    FilterExpression,
    Literal,
    MATCH_ALL,
    Operator,
    ParseError,
    parse,
)
from .evaluator import ATTRIBUTES, matches, validate

__all__ = [
    "INFINITE",
    "Days",
    "Infinite",
    "Retention",
    "from_api",
    "to_api",
    "Action",
    "SetDays",
    "ClearRetention",
    "DeleteGroup",
    "SetDeletionProtection",
    "NoOp",
    "DURATION_TOKENS",
    "known_tokens",
    "resolve",
    "BoolOp",
    "BoolOperator",
    "Comparison",
    "FilterExpression",
    "Literal",
    "MATCH_ALL",
    "Operator",
    "ParseError",
    "parse",
    "ATTRIBUTES",
    "matches",
    "validate",
]
