"""Predicate evaluation of filter expressions against log group snapshots."""

import operator as op
import re
from dataclasses import dataclass
from enum import Enum
from functools import lru_cache
from typing import TYPE_CHECKING, Any, Callable, Dict

from log_lifecycle.policy.expression import (
    BoolOp,
    BoolOperator,
    Comparison,
    FilterExpression,
    MatchAll,
    Operator,
)
from log_lifecycle.policy.retention import Days, Infinite
from log_lifecycle.utils.errors import InvalidFilterError, UnknownAttributeError

if TYPE_CHECKING:
    from log_lifecycle.inventory.models import ResourceDescriptor


class AttributeKind(Enum):
    """How an attribute compares."""
    RETENTION = "retention"
    TEXT = "text"
    NUMBER = "number"
    DURATION = "duration"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class Attribute:
    """A filterable attribute of a log group."""
    name: str
    kind: AttributeKind
    getter: Callable[["ResourceDescriptor"], Any]


ATTRIBUTES: Dict[str, Attribute] = {
    attr.name: attr
    for attr in (
        Attribute("retention", AttributeKind.RETENTION, lambda r: r.retention),
        Attribute("name", AttributeKind.TEXT, lambda r: r.name),
        Attribute("source", AttributeKind.TEXT, lambda r: r.source),
        Attribute("class", AttributeKind.TEXT, lambda r: r.log_group_class),
        Attribute("bytes", AttributeKind.NUMBER, lambda r: r.stored_bytes),
        Attribute("elapsed", AttributeKind.DURATION, lambda r: r.elapsed_days),
        Attribute("protected", AttributeKind.BOOLEAN, lambda r: r.deletion_protected),
    )
}

_ORDERED = {
    Operator.EQ: op.eq,
    Operator.NEQ: op.ne,
    Operator.GT: op.gt,
    Operator.GTE: op.ge,
    Operator.LT: op.lt,
    Operator.LTE: op.le,
}

_BOOLEANS = {"true": True, "false": False}

_TEXT_OPERATORS = {
    Operator.EQ, Operator.EQI, Operator.NEQ, Operator.NEQI,
    Operator.REQ, Operator.REQI, Operator.NREQ, Operator.NREQI,
}


def _attribute(name: str) -> Attribute:
    try:
        return ATTRIBUTES[name]
    except KeyError:
        raise UnknownAttributeError(name, known=sorted(ATTRIBUTES)) from None


def _invalid(comparison: Comparison, reason: str) -> InvalidFilterError:
    return InvalidFilterError(f"invalid filter {str(comparison)!r}: {reason}")


def _text_predicate(attr: Attribute, comparison: Comparison) -> Callable[["ResourceDescriptor"], bool]:
    operator = comparison.operator
    if operator not in _TEXT_OPERATORS:
        raise _invalid(comparison, f"operator {operator.value!r} does not apply to text")
    value = comparison.literal.raw
    negate = operator in (Operator.NEQ, Operator.NEQI, Operator.NREQ, Operator.NREQI)

    if operator.is_regex:
        flags = re.IGNORECASE if operator.is_case_insensitive else 0
        try:
            pattern = re.compile(value, flags)
        except re.error as e:
            raise _invalid(comparison, f"bad regular expression: {e}") from e

        def test(actual: str) -> bool:
            return pattern.search(actual) is not None
    elif operator.is_case_insensitive:
        folded = value.casefold()

        def test(actual: str) -> bool:
            return actual.casefold() == folded
    else:
        def test(actual: str) -> bool:
            return actual == value

    return lambda resource: test(attr.getter(resource) or "") != negate


def _ordered_predicate(attr: Attribute, comparison: Comparison, expected: Any):
    compare = _ORDERED.get(comparison.operator)
    if compare is None:
        raise _invalid(
            comparison, f"operator {comparison.operator.value!r} does not apply to {attr.name}"
        )
    return lambda resource: compare(attr.getter(resource), expected)


def _boolean_predicate(attr: Attribute, comparison: Comparison) -> Callable[["ResourceDescriptor"], bool]:
    if comparison.operator not in (Operator.EQ, Operator.NEQ):
        raise _invalid(
            comparison, f"operator {comparison.operator.value!r} does not apply to {attr.name}"
        )
    try:
        expected = _BOOLEANS[comparison.literal.raw.casefold()]
    except KeyError:
        raise _invalid(comparison, "expected true or false") from None
    negate = comparison.operator == Operator.NEQ
    return lambda resource: (bool(attr.getter(resource)) == expected) != negate


def _retention_value(comparison: Comparison):
    value = comparison.literal.value
    if isinstance(value, (Infinite, Days)):
        return value
    if isinstance(value, int):
        if value < 1:
            raise _invalid(comparison, "retention days must be positive")
        return Days(value)
    raise _invalid(comparison, "expected 'infinite', a day count or a duration such as 3months")


def _number_value(comparison: Comparison, allow_duration: bool) -> int:
    value = comparison.literal.value
    if isinstance(value, Days) and allow_duration:
        return value.n
    if isinstance(value, int):
        return value
    expected = "a number or a duration such as 1year" if allow_duration else "a number"
    raise _invalid(comparison, f"expected {expected}")


@lru_cache(maxsize=256)
def _compile(comparison: Comparison) -> Callable[["ResourceDescriptor"], bool]:
    attr = _attribute(comparison.attribute)
    if attr.kind == AttributeKind.TEXT:
        return _text_predicate(attr, comparison)
    if attr.kind == AttributeKind.BOOLEAN:
        return _boolean_predicate(attr, comparison)
    if attr.kind == AttributeKind.RETENTION:
        return _ordered_predicate(attr, comparison, _retention_value(comparison))
    if attr.kind == AttributeKind.DURATION:
        return _ordered_predicate(attr, comparison, _number_value(comparison, True))
    return _ordered_predicate(attr, comparison, _number_value(comparison, False))


def validate(expr: FilterExpression) -> None:
    """Check every clause without evaluating it.

    Raises:
        UnknownAttributeError: for attribute names the evaluator does not know
        InvalidFilterError: for operators or values an attribute cannot take
    """
    if isinstance(expr, Comparison):
        _compile(expr)
    elif isinstance(expr, BoolOp):
        for operand in expr.operands:
            validate(operand)


def matches(expr: FilterExpression, resource: "ResourceDescriptor") -> bool:
    """Evaluate ``expr`` against one log group snapshot.

    Raises:
        UnknownAttributeError: when a clause names an unknown attribute
        InvalidFilterError: when a clause is not valid for its attribute
    """
    if isinstance(expr, MatchAll):
        return True
    if isinstance(expr, Comparison):
        return _compile(expr)(resource)
    if isinstance(expr, BoolOp):
        if expr.op == BoolOperator.AND:
            return all(matches(operand, resource) for operand in expr.operands)
        return any(matches(operand, resource) for operand in expr.operands)
    raise TypeError(f"not a filter expression: {expr!r}")
