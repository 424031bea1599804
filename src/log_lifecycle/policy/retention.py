"""Retention setting of a log group as a closed sum type."""

from dataclasses import dataclass
from typing import Any, Optional, Union


class Infinite:
    """No expiration. Use the ``INFINITE`` singleton."""

    _instance: Optional["Infinite"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "INFINITE"

    def __str__(self) -> str:
        return "infinite"

    def __reduce__(self):
        return (Infinite, ())

    def __eq__(self, other: Any) -> bool:
        return isinstance(other, Infinite)

    def __hash__(self) -> int:
        return hash("infinite")

    def __lt__(self, other: "Retention") -> bool:
        _check_retention(other)
        return False

    def __le__(self, other: "Retention") -> bool:
        _check_retention(other)
        return isinstance(other, Infinite)

    def __gt__(self, other: "Retention") -> bool:
        _check_retention(other)
        return isinstance(other, Days)

    def __ge__(self, other: "Retention") -> bool:
        _check_retention(other)
        return True

    def days_or(self, default: int) -> int:
        return default


INFINITE = Infinite()


@dataclass(frozen=True, order=False)
class Days:
    """A bounded retention of ``n`` days."""

    n: int

    def __post_init__(self):
        if isinstance(self.n, bool) or not isinstance(self.n, int) or self.n < 1:
            raise ValueError(f"retention days must be a positive integer, got {self.n!r}")

    def __str__(self) -> str:
        return f"{self.n}d"

    def __lt__(self, other: "Retention") -> bool:
        _check_retention(other)
        return isinstance(other, Infinite) or self.n < other.n

    def __le__(self, other: "Retention") -> bool:
        _check_retention(other)
        return isinstance(other, Infinite) or self.n <= other.n

    def __gt__(self, other: "Retention") -> bool:
        _check_retention(other)
        return isinstance(other, Days) and self.n > other.n

    def __ge__(self, other: "Retention") -> bool:
        _check_retention(other)
        return isinstance(other, Days) and self.n >= other.n

    def days_or(self, default: int) -> int:
        return self.n


Retention = Union[Infinite, Days]


def _check_retention(other: Any) -> None:
    if not isinstance(other, (Infinite, Days)):
        raise TypeError(f"cannot compare retention with {type(other).__name__}")


def from_api(value: Optional[int]) -> Retention:
    """Map the ``retentionInDays`` field of a log group.

    CloudWatch Logs omits the field for groups that never expire; zero is
    treated the same way.
    """
    if value is None or value == 0:
        return INFINITE
    return Days(int(value))


def to_api(retention: Retention) -> Optional[int]:
    """Inverse of :func:`from_api`; ``None`` for no expiration."""
    if isinstance(retention, Infinite):
        return None
    return retention.n
