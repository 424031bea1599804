"""Unit tests for desired-state resolution."""

import pytest

from conftest import make_group
from log_lifecycle.policy.desired_state import (
    DURATION_TOKENS,
    ClearRetention,
    DeleteGroup,
    NoOp,
    SetDays,
    SetDeletionProtection,
    known_tokens,
    resolve,
)
from log_lifecycle.policy.retention import INFINITE, Days
from log_lifecycle.utils.errors import ConfigurationError, UnknownDesiredStateError


@pytest.mark.parametrize("token,days", [
    ("1day", 1),
    ("1week", 7),
    ("1month", 30),
    ("3months", 90),
    ("13months", 400),
    ("18months", 545),
    ("2years", 731),
    ("7years", 2557),
    ("10years", 3653),
])
def test_duration_tokens_resolve_to_set_days(token, days):
    assert resolve(token) == SetDays(days)


def test_special_tokens():
    assert resolve("infinite") == ClearRetention()
    assert resolve("delete") == DeleteGroup()
    assert resolve("none") == NoOp()
    assert resolve("protect") == SetDeletionProtection(True)
    assert resolve("unprotect") == SetDeletionProtection(False)


def test_surrounding_whitespace_is_ignored():
    assert resolve("  3months\n") == SetDays(90)


@pytest.mark.parametrize("token", ["", "3Months", "90", "3 months", "forever", "3month", "INFINITE"])
def test_unknown_tokens_fail(token):
    with pytest.raises(UnknownDesiredStateError) as exc_info:
        resolve(token)
    assert exc_info.value.token == token


def test_missing_token_fails():
    with pytest.raises(UnknownDesiredStateError):
        resolve(None)


def test_unknown_token_is_configuration_error_with_suggestions():
    with pytest.raises(ConfigurationError) as exc_info:
        resolve("forever")
    assert "3months" in exc_info.value.suggestions[0]


def test_known_tokens_cover_the_table():
    tokens = known_tokens()
    assert tokens[:len(DURATION_TOKENS)] == list(DURATION_TOKENS)
    assert tokens[len(DURATION_TOKENS):] == ["infinite", "delete", "protect", "unprotect", "none"]
    for token in tokens:
        resolve(token)


def test_resolution_is_deterministic():
    assert resolve("3months") == resolve("3months")


class TestSatisfaction:
    """Whether a group is already in the state an action produces."""

    def test_set_days(self):
        assert SetDays(90).is_satisfied_by(make_group("a", Days(90)))
        assert not SetDays(90).is_satisfied_by(make_group("a", Days(30)))
        assert not SetDays(90).is_satisfied_by(make_group("a", INFINITE))

    def test_clear_retention(self):
        assert ClearRetention().is_satisfied_by(make_group("a", INFINITE))
        assert not ClearRetention().is_satisfied_by(make_group("a", Days(1)))

    def test_delete_and_noop_are_never_satisfied(self):
        assert not DeleteGroup().is_satisfied_by(make_group("a"))
        assert not NoOp().is_satisfied_by(make_group("a"))

    def test_deletion_protection_compares_the_flag_only(self):
        protected = make_group("a", Days(7), deletion_protected=True)
        unprotected = make_group("b", Days(7))

        assert SetDeletionProtection(True).is_satisfied_by(protected)
        assert not SetDeletionProtection(True).is_satisfied_by(unprotected)
        assert SetDeletionProtection(False).is_satisfied_by(unprotected)
        assert not SetDeletionProtection(False).is_satisfied_by(protected)


def test_to_dict():
    assert SetDays(90).to_dict() == {"action": "set-days", "days": 90}
    assert ClearRetention().to_dict() == {"action": "clear-retention"}
    assert SetDeletionProtection(True).to_dict() == {"action": "protect", "enabled": True}
    assert SetDeletionProtection(False).to_dict() == {"action": "unprotect", "enabled": False}
