"""CloudWatch Logs implementation of the inventory collaborator."""

from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from botocore.exceptions import ClientError

from log_lifecycle.inventory.base import LogGroupInventory
from log_lifecycle.inventory.models import Page, ResourceDescriptor
from log_lifecycle.policy.desired_state import (
    Action,
    ClearRetention,
    DeleteGroup,
    NoOp,
    SetDays,
    SetDeletionProtection,
)
from log_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)

# describe_log_groups accepts at most 50 results per call
MAX_PAGE_SIZE = 50


class CloudWatchLogsInventory(LogGroupInventory):
    """Log groups of one region, read and changed through a boto3 ``logs`` client."""

    def __init__(
        self,
        logs_client,
        region: str,
        page_size: int = MAX_PAGE_SIZE,
        include_linked_accounts: bool = False,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)
    ):
        """Initialize CloudWatch Logs inventory.

        Args:
            logs_client: boto3 CloudWatch Logs client for ``region``
            region: Region name recorded on every descriptor
            page_size: Log groups requested per page (1-50)
            include_linked_accounts: List log groups of linked source accounts
            clock: Reference time for elapsed-day calculation
        """
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValueError(f"page_size must be between 1 and {MAX_PAGE_SIZE}")
        self.client = logs_client
        self.region = region
        self.page_size = page_size
        self.include_linked_accounts = include_linked_accounts
        self.clock = clock

    def list_resources(self, page_token: Optional[Any] = None) -> Page:
        """Fetch one ``describe_log_groups`` page."""
        params: Dict[str, Any] = {'limit': self.page_size}
        if page_token:
            params['nextToken'] = page_token
        if self.include_linked_accounts:
            params['includeLinkedAccounts'] = True

        response = self.client.describe_log_groups(**params)
        now = self.clock()
        resources = tuple(
            ResourceDescriptor.from_log_group(item, self.region, now)
            for item in response.get('logGroups', [])
        )
        return Page(resources=resources, next_token=response.get('nextToken'))

    def set_retention(self, resource: ResourceDescriptor, action: Action) -> None:
        """Apply ``action`` with the matching CloudWatch Logs call."""
        name = resource.name
        if isinstance(action, SetDays):
            self.client.put_retention_policy(logGroupName=name, retentionInDays=action.days)
            logger.info(f"Updated retention policy to {action.days} days",
                        extra={'resource_id': name, 'region': self.region})
        elif isinstance(action, ClearRetention):
            self.client.delete_retention_policy(logGroupName=name)
            logger.info("Deleted retention policy",
                        extra={'resource_id': name, 'region': self.region})
        elif isinstance(action, DeleteGroup):
            try:
                self.client.delete_log_group(logGroupName=name)
            except ClientError as e:
                if e.response.get('Error', {}).get('Code') != 'ResourceNotFoundException':
                    raise
                logger.info("Log group already deleted",
                            extra={'resource_id': name, 'region': self.region})
                return
            logger.info("Deleted log group",
                        extra={'resource_id': name, 'region': self.region})
        elif isinstance(action, SetDeletionProtection):
            self.client.put_log_group_deletion_protection(
                logGroupIdentifier=name,
                deletionProtectionEnabled=action.enabled,
            )
            logger.info(f"Deletion protection {'enabled' if action.enabled else 'disabled'}",
                        extra={'resource_id': name, 'region': self.region})
        elif isinstance(action, NoOp):
            return
        else:
            raise TypeError(f"unsupported action: {action!r}")


class RegionalInventory(LogGroupInventory):
    """Chains regional inventories into one paged sequence.

    The continuation token is ``(region_index, inner_token)`` so the walk
    visits every region in order, one page at a time.
    """

    def __init__(self, inventories: Sequence[Tuple[str, LogGroupInventory]]):
        """Initialize regional inventory.

        Args:
            inventories: ``(region, inventory)`` pairs in walk order
        """
        self.inventories: List[Tuple[str, LogGroupInventory]] = list(inventories)
        self._by_region: Dict[str, LogGroupInventory] = dict(self.inventories)

    @property
    def regions(self) -> List[str]:
        return [region for region, _ in self.inventories]

    def list_resources(self, page_token: Optional[Any] = None) -> Page:
        if not self.inventories:
            return Page(resources=())
        index, inner = page_token if page_token is not None else (0, None)
        page = self.inventories[index][1].list_resources(inner)

        if page.next_token is not None:
            next_token = (index, page.next_token)
        elif index + 1 < len(self.inventories):
            next_token = (index + 1, None)
        else:
            next_token = None
        return Page(resources=page.resources, next_token=next_token)

    def set_retention(self, resource: ResourceDescriptor, action: Action) -> None:
        try:
            inventory = self._by_region[resource.region]
        except KeyError:
            raise ValueError(f"no inventory for region {resource.region!r}") from None
        inventory.set_retention(resource, action)


def build_inventory(config, client_manager) -> RegionalInventory:
    """Create a CloudWatch Logs inventory for every configured region.

    Args:
        config: RunConfig with ``regions``, ``page_size`` and
            ``include_linked_accounts``
        client_manager: AWSClientManager providing per-region clients
    """
    return RegionalInventory([
        (
            region,
            CloudWatchLogsInventory(
                client_manager.logs_client(region),
                region,
                page_size=config.page_size,
                include_linked_accounts=config.include_linked_accounts,
            ),
        )
        for region in config.regions
    ])
