"""Desired-state tokens and the actions they resolve to."""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List

from log_lifecycle.policy.retention import Days, Infinite
from log_lifecycle.utils.errors import UnknownDesiredStateError

if TYPE_CHECKING:
    from log_lifecycle.inventory.models import ResourceDescriptor


# Retention periods accepted by PutRetentionPolicy, keyed by token
DURATION_TOKENS: Dict[str, int] = {
    "1day": 1,
    "3days": 3,
    "5days": 5,
    "1week": 7,
    "2weeks": 14,
    "1month": 30,
    "2months": 60,
    "3months": 90,
    "4months": 120,
    "5months": 150,
    "6months": 180,
    "1year": 365,
    "13months": 400,
    "18months": 545,
    "2years": 731,
    "3years": 1096,
    "5years": 1827,
    "6years": 2192,
    "7years": 2557,
    "8years": 2922,
    "9years": 3288,
    "10years": 3653,
}

INFINITE_TOKEN = "infinite"
DELETE_TOKEN = "delete"
NONE_TOKEN = "none"
PROTECT_TOKEN = "protect"
UNPROTECT_TOKEN = "unprotect"


class Action:
    """Base class for resolved desired-state actions."""

    name = "action"

    def is_satisfied_by(self, resource: "ResourceDescriptor") -> bool:
        """True when ``resource`` already is in the state this action produces."""
        return False

    def to_dict(self) -> dict:
        return {"action": self.name}


@dataclass(frozen=True)
class SetDays(Action):
    """Put a retention policy of ``days``."""

    days: int
    name = "set-days"

    def is_satisfied_by(self, resource: "ResourceDescriptor") -> bool:
        return resource.retention == Days(self.days)

    def to_dict(self) -> dict:
        return {"action": self.name, "days": self.days}

    def __str__(self) -> str:
        return f"SetDays({self.days})"


@dataclass(frozen=True)
class ClearRetention(Action):
    """Delete the retention policy so records never expire."""

    name = "clear-retention"

    def is_satisfied_by(self, resource: "ResourceDescriptor") -> bool:
        return isinstance(resource.retention, Infinite)

    def __str__(self) -> str:
        return "ClearRetention"


@dataclass(frozen=True)
class DeleteGroup(Action):
    """Delete the log group with all its records."""

    name = "delete-group"

    def __str__(self) -> str:
        return "DeleteGroup"


@dataclass(frozen=True)
class SetDeletionProtection(Action):
    """Turn deletion protection on or off; retention is left alone."""

    enabled: bool

    @property
    def name(self) -> str:
        return PROTECT_TOKEN if self.enabled else UNPROTECT_TOKEN

    def is_satisfied_by(self, resource: "ResourceDescriptor") -> bool:
        return resource.deletion_protected == self.enabled

    def to_dict(self) -> dict:
        return {"action": self.name, "enabled": self.enabled}

    def __str__(self) -> str:
        return f"SetDeletionProtection({self.enabled})"


@dataclass(frozen=True)
class NoOp(Action):
    """Report matches without changing anything."""

    name = "no-op"

    def __str__(self) -> str:
        return "NoOp"


def known_tokens() -> List[str]:
    """All tokens :func:`resolve` accepts, in table order."""
    return [*DURATION_TOKENS, INFINITE_TOKEN, DELETE_TOKEN, PROTECT_TOKEN, UNPROTECT_TOKEN, NONE_TOKEN]


def resolve(token: str) -> Action:
    """Resolve a desired-state token to its action.

    The mapping is fixed and independent of any resource, so one run
    applies the same action to every matching log group.

    Raises:
        UnknownDesiredStateError: if the token is not in the table
    """
    if not isinstance(token, str):
        raise UnknownDesiredStateError(str(token), known=known_tokens())
    key = token.strip()
    if key in DURATION_TOKENS:
        return SetDays(DURATION_TOKENS[key])
    if key == INFINITE_TOKEN:
        return ClearRetention()
    if key == DELETE_TOKEN:
        return DeleteGroup()
    if key in (PROTECT_TOKEN, UNPROTECT_TOKEN):
        return SetDeletionProtection(key == PROTECT_TOKEN)
    if key == NONE_TOKEN:
        return NoOp()
    raise UnknownDesiredStateError(token, known=known_tokens())

