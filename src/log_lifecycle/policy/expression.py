"""Filter expression language over log group attributes.

A filter is one or more clauses of the form ``<attribute> <operator> <value>``::

    retention == infinite
    retention > 3months && name =~ ^/aws/lambda/
    class == STANDARD || bytes >= 1000000

``&&`` binds tighter than ``||``. Parsing only checks the grammar; whether
an attribute exists and accepts the operator is decided by
:func:`log_lifecycle.policy.evaluator.validate`.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple, Union

from log_lifecycle.policy.desired_state import DURATION_TOKENS, INFINITE_TOKEN
from log_lifecycle.policy.retention import INFINITE, Days, Retention
from log_lifecycle.utils.errors import ParseError


class Operator(Enum):
    """Comparison operators."""
    EQ = "=="
    EQI = "==*"
    NEQ = "!="
    NEQI = "!=*"
    REQ = "=~"
    REQI = "=~*"
    NREQ = "!~"
    NREQI = "!~*"
    GT = ">"
    GTE = ">="
    LT = "<"
    LTE = "<="

    @property
    def is_ordering(self) -> bool:
        return self in (Operator.GT, Operator.GTE, Operator.LT, Operator.LTE)

    @property
    def is_regex(self) -> bool:
        return self in (Operator.REQ, Operator.REQI, Operator.NREQ, Operator.NREQI)

    @property
    def is_case_insensitive(self) -> bool:
        return self in (Operator.EQI, Operator.NEQI, Operator.REQI, Operator.NREQI)


class BoolOperator(Enum):
    """Operators joining clauses."""
    AND = "&&"
    OR = "||"


LiteralValue = Union[Retention, int, str]


@dataclass(frozen=True)
class Literal:
    """Right-hand side of a clause.

    ``value`` is ``INFINITE`` for the reserved keyword, ``Days`` for a
    duration token such as ``3months``, an ``int`` for a number and the
    raw text otherwise.
    """

    raw: str
    value: LiteralValue

    def __str__(self) -> str:
        return self.raw


@dataclass(frozen=True)
class Comparison:
    """A single ``<attribute> <operator> <literal>`` clause."""

    attribute: str
    operator: Operator
    literal: Literal

    def __str__(self) -> str:
        return f"{self.attribute} {self.operator.value} {self.literal}"


@dataclass(frozen=True)
class BoolOp:
    """Conjunction or disjunction of sub-expressions."""

    op: BoolOperator
    operands: Tuple["FilterExpression", ...]

    def __str__(self) -> str:
        return f" {self.op.value} ".join(str(o) for o in self.operands)


@dataclass(frozen=True)
class MatchAll:
    """Expression used when no filter is given."""

    def __str__(self) -> str:
        return "*"


MATCH_ALL = MatchAll()

FilterExpression = Union[Comparison, BoolOp, MatchAll]

_OPERATORS = {op.value: op for op in Operator}
_INTEGER = re.compile(r"^[+-]?\d+$")


def parse_literal(token: str) -> Literal:
    """Interpret a value token."""
    if token == INFINITE_TOKEN:
        return Literal(token, INFINITE)
    if token in DURATION_TOKENS:
        return Literal(token, Days(DURATION_TOKENS[token]))
    if _INTEGER.match(token):
        return Literal(token, int(token))
    return Literal(token, token)


def _parse_clause(tokens: List[str], text: str) -> Comparison:
    if not tokens:
        raise ParseError(f"invalid syntax: empty clause in {text!r}", expression=text)
    if len(tokens) != 3:
        raise ParseError(
            f"invalid syntax: expected '<attribute> <operator> <value>', "
            f"got {len(tokens)} token(s) in {' '.join(tokens)!r}",
            expression=text,
        )
    attribute, operator, value = tokens
    if operator not in _OPERATORS:
        raise ParseError(f"unknown operator: {operator!r}", expression=text)
    return Comparison(attribute, _OPERATORS[operator], parse_literal(value))


def _split(tokens: List[str], separator: str, text: str) -> List[List[str]]:
    groups: List[List[str]] = [[]]
    for token in tokens:
        if token == separator:
            groups.append([])
        else:
            groups[-1].append(token)
    if any(not group for group in groups):
        raise ParseError(f"invalid syntax: dangling {separator!r} in {text!r}", expression=text)
    return groups


def _combine(op: BoolOperator, operands: List[FilterExpression]) -> FilterExpression:
    if len(operands) == 1:
        return operands[0]
    return BoolOp(op, tuple(operands))


def parse(text: str) -> FilterExpression:
    """Parse filter text into an expression tree.

    Raises:
        ParseError: on empty input, wrong token count, unknown operators or
            dangling ``&&``/``||``
    """
    if text is None or not text.strip():
        raise ParseError("invalid syntax: empty expression", expression=text)

    tokens = text.split()
    alternatives = []
    for group in _split(tokens, BoolOperator.OR.value, text):
        clauses = [
            _parse_clause(clause, text)
            for clause in _split(group, BoolOperator.AND.value, text)
        ]
        alternatives.append(_combine(BoolOperator.AND, clauses))
    return _combine(BoolOperator.OR, alternatives)


def comparisons(expr: FilterExpression) -> List[Comparison]:
    """All clauses of an expression, left to right."""
    if isinstance(expr, Comparison):
        return [expr]
    if isinstance(expr, BoolOp):
        found: List[Comparison] = []
        for operand in expr.operands:
            found.extend(comparisons(operand))
        return found
    return []
