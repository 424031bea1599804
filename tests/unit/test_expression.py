"""Unit tests for the filter expression parser."""

import pytest

from log_lifecycle.policy.expression import (
    BoolOp,
    BoolOperator,
    Comparison,
    Literal,
    Operator,
    comparisons,
    parse,
    parse_literal,
)
from log_lifecycle.policy.retention import INFINITE, Days
from log_lifecycle.utils.errors import ConfigurationError, ParseError


def test_parse_single_clause():
    expr = parse("retention == infinite")

    assert expr == Comparison("retention", Operator.EQ, Literal("infinite", INFINITE))


def test_whitespace_around_tokens_is_insignificant():
    assert parse("  retention   !=\tinfinite \n") == parse("retention != infinite")


@pytest.mark.parametrize("token,value", [
    ("infinite", INFINITE),
    ("3months", Days(90)),
    ("7years", Days(2557)),
    ("30", 30),
    ("-5", -5),
    ("STANDARD", "STANDARD"),
    ("^/aws/lambda/", "^/aws/lambda/"),
])
def test_parse_literal(token, value):
    assert parse_literal(token).value == value
    assert parse_literal(token).raw == token


def test_infinite_is_distinct_from_any_day_count():
    assert parse_literal("infinite").value != parse_literal("0").value
    assert parse_literal("infinite").value != parse_literal("3653").value


@pytest.mark.parametrize("op", [o.value for o in Operator])
def test_all_operators_are_recognised(op):
    expr = parse(f"name {op} x")
    assert expr.operator.value == op


@pytest.mark.parametrize("text", [
    "",
    "   ",
    "retention",
    "retention ==",
    "retention == infinite extra",
    "retention==infinite",
    "retention == infinite && name",
])
def test_wrong_token_count_is_rejected(text):
    with pytest.raises(ParseError):
        parse(text)


def test_none_is_rejected():
    with pytest.raises(ParseError):
        parse(None)


@pytest.mark.parametrize("op", ["===", "=", "<>", "~=", "eq", "in"])
def test_unknown_operator_is_rejected(op):
    with pytest.raises(ParseError, match="unknown operator"):
        parse(f"retention {op} infinite")


@pytest.mark.parametrize("text", [
    "retention == infinite &&",
    "&& retention == infinite",
    "retention == infinite || ",
    "retention == infinite && && name == x",
])
def test_dangling_boolean_operator_is_rejected(text):
    with pytest.raises(ParseError):
        parse(text)


def test_parse_error_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        parse("retention")


def test_conjunction_binds_tighter_than_disjunction():
    expr = parse("retention == infinite && bytes > 0 || name =~ ^/tmp/")

    assert isinstance(expr, BoolOp)
    assert expr.op == BoolOperator.OR
    left, right = expr.operands
    assert isinstance(left, BoolOp) and left.op == BoolOperator.AND
    assert [c.attribute for c in left.operands] == ["retention", "bytes"]
    assert right == Comparison("name", Operator.REQ, Literal("^/tmp/", "^/tmp/"))


def test_single_conjunction_is_flat():
    expr = parse("a == 1 && b == 2 && c == 3")

    assert expr.op == BoolOperator.AND
    assert len(expr.operands) == 3


def test_str_reparses_to_same_expression():
    expr = parse("retention   >   3months &&  class ==* standard || bytes >= 10")

    assert str(expr) == "retention > 3months && class ==* standard || bytes >= 10"
    assert parse(str(expr)) == expr


def test_comparisons_lists_clauses_left_to_right():
    expr = parse("a == 1 && b == 2 || c == 3")

    assert [c.attribute for c in comparisons(expr)] == ["a", "b", "c"]


def test_parser_does_not_check_attribute_names():
    expr = parse("region == us-east-1")

    assert expr.attribute == "region"
