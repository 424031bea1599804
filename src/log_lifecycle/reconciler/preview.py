"""Read-only operations: list matching log groups and preview a run.

Neither operation mutates anything. ``preview`` estimates, per matching
log group, how much stored data the resolved action would remove, assuming
data was ingested at a constant daily rate since the group was created.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from log_lifecycle.config.models import RunConfig
from log_lifecycle.inventory.base import LogGroupInventory
from log_lifecycle.inventory.models import ResourceDescriptor
from log_lifecycle.inventory.walker import InventoryWalker
from log_lifecycle.policy import evaluator
from log_lifecycle.policy.desired_state import (
    Action,
    ClearRetention,
    DeleteGroup,
    NoOp,
    SetDeletionProtection,
    resolve,
)
from log_lifecycle.policy.expression import MATCH_ALL, FilterExpression, parse
from log_lifecycle.policy.retention import Days, Infinite, Retention
from log_lifecycle.reconciler.paging import resilient_pages
from log_lifecycle.utils.logging import get_logger
from log_lifecycle.utils.retry import RetryStrategy

logger = get_logger(__name__)


def bytes_per_day(stored_bytes: int, retention: Retention, elapsed_days: int) -> int:
    """Average bytes held per day of retained data (at least 1 when data is stored)."""
    if stored_bytes <= 0:
        return 0
    if elapsed_days <= 0:
        return stored_bytes
    if isinstance(retention, Infinite):
        retained = elapsed_days
    else:
        retained = min(retention.n, elapsed_days)
    return max(stored_bytes // retained, 1)


def reduction_in_days(resource: ResourceDescriptor, action: Action, per_day: int) -> int:
    """Days of retained data the action would remove."""
    if isinstance(action, (ClearRetention, SetDeletionProtection, NoOp)):
        return 0
    if resource.stored_bytes <= 0 or per_day <= 0:
        return 0
    if isinstance(action, DeleteGroup):
        if isinstance(resource.retention, Days):
            return resource.retention.n
        return resource.elapsed_days if resource.elapsed_days > 0 else 1

    retained = resource.retention.days_or(resource.elapsed_days)
    retained = min(retained, resource.elapsed_days)
    return retained - action.days if retained > action.days else 0


def reducible_bytes(resource: ResourceDescriptor, action: Action, per_day: int, reduction: int) -> int:
    if reduction <= 0 or resource.stored_bytes <= 0 or per_day <= 0:
        return 0
    if isinstance(action, ClearRetention):
        return 0
    if isinstance(action, DeleteGroup):
        return resource.stored_bytes
    return min(per_day * reduction, resource.stored_bytes)


@dataclass(frozen=True)
class PreviewEntry:
    """Simulated effect of the action on one log group."""

    resource: ResourceDescriptor
    bytes_per_day: int
    reduction_in_days: int
    reducible_bytes: int
    remaining_bytes: int

    @classmethod
    def simulate(cls, resource: ResourceDescriptor, action: Action) -> "PreviewEntry":
        per_day = bytes_per_day(resource.stored_bytes, resource.retention, resource.elapsed_days)
        reduction = reduction_in_days(resource, action, per_day)
        reducible = reducible_bytes(resource, action, per_day, reduction)
        return cls(
            resource=resource,
            bytes_per_day=per_day,
            reduction_in_days=reduction,
            reducible_bytes=reducible,
            remaining_bytes=max(resource.stored_bytes - reducible, 0),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.resource.to_dict(),
            'bytes_per_day': self.bytes_per_day,
            'reduction_in_days': self.reduction_in_days,
            'reducible_bytes': self.reducible_bytes,
            'remaining_bytes': self.remaining_bytes,
        }


@dataclass
class ListResult:
    """Log groups matching a filter."""

    entries: List[ResourceDescriptor] = field(default_factory=list)

    @property
    def total_stored_bytes(self) -> int:
        return sum(r.stored_bytes for r in self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'entries': [r.to_dict() for r in self.entries],
            'total': {'stored_bytes': self.total_stored_bytes},
        }


@dataclass
class PreviewResult:
    """Simulated effect of a desired state on the matching log groups."""

    desired_state: str
    action: Action
    entries: List[PreviewEntry] = field(default_factory=list)

    @property
    def total_stored_bytes(self) -> int:
        return sum(e.resource.stored_bytes for e in self.entries)

    @property
    def total_reducible_bytes(self) -> int:
        return sum(e.reducible_bytes for e in self.entries)

    @property
    def total_remaining_bytes(self) -> int:
        return sum(e.remaining_bytes for e in self.entries)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'desired_state': self.desired_state,
            'action': self.action.to_dict(),
            'entries': [e.to_dict() for e in self.entries],
            'total': {
                'stored_bytes': self.total_stored_bytes,
                'reducible_bytes': self.total_reducible_bytes,
                'remaining_bytes': self.total_remaining_bytes,
            },
        }


def sort_resources(resources: Sequence[ResourceDescriptor]) -> List[ResourceDescriptor]:
    """Largest log groups first; ties broken by name."""
    return sorted(resources, key=lambda r: (-r.stored_bytes, r.name))


def filter_expression(text: Optional[str]) -> FilterExpression:
    """Parse and validate an optional filter; no filter matches everything."""
    if text is None:
        return MATCH_ALL
    expression = parse(text)
    evaluator.validate(expression)
    return expression


def _matching(
    config: RunConfig,
    inventory: LogGroupInventory,
    expression: FilterExpression,
    retry_strategy: Optional[RetryStrategy]
) -> List[ResourceDescriptor]:
    walker = InventoryWalker(inventory)
    strategy = retry_strategy or RetryStrategy(max_retries=config.max_page_retries)
    found = []
    for page in resilient_pages(walker, strategy):
        found.extend(r for r in page.resources if evaluator.matches(expression, r))
    logger.info(f"{len(found)} log groups match {config.filter or 'no filter'!r}")
    return sort_resources(found)


def list_log_groups(
    config: RunConfig,
    inventory: LogGroupInventory,
    retry_strategy: Optional[RetryStrategy] = None
) -> ListResult:
    """List log groups matching ``config.filter``.

    Raises:
        ConfigurationError: for an invalid filter, before the inventory is read
        InventoryError: when the walk fails
    """
    expression = filter_expression(config.filter)
    return ListResult(entries=_matching(config, inventory, expression, retry_strategy))


def preview(
    config: RunConfig,
    inventory: LogGroupInventory,
    retry_strategy: Optional[RetryStrategy] = None
) -> PreviewResult:
    """Simulate applying ``config.desired_state`` to the matching log groups.

    Raises:
        ConfigurationError: for an invalid filter or desired state, before
            the inventory is read
        InventoryError: when the walk fails
    """
    expression = filter_expression(config.filter)
    action = resolve(config.desired_state)
    resources = _matching(config, inventory, expression, retry_strategy)
    entries = [PreviewEntry.simulate(r, action) for r in resources]
    return PreviewResult(desired_state=config.desired_state, action=action, entries=entries)
