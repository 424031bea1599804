"""Inventory collaborator interface."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from log_lifecycle.inventory.models import Page, ResourceDescriptor
from log_lifecycle.policy.desired_state import Action


class LogGroupInventory(ABC):
    """Paginated read access and retention mutation for a fleet of log groups."""

    @abstractmethod
    def list_resources(self, page_token: Optional[Any] = None) -> Page:
        """Fetch one page of log groups.

        Args:
            page_token: Continuation token from the previous page, or None
                for the first page

        Returns:
            Page whose ``next_token`` is None on the last page
        """
        pass

    @abstractmethod
    def set_retention(self, resource: ResourceDescriptor, action: Action) -> None:
        """Apply ``action`` to one log group.

        Must be idempotent: converging a group that is already in the
        target state succeeds without error.

        Args:
            resource: Snapshot of the log group to change
            action: Resolved desired-state action
        """
        pass
