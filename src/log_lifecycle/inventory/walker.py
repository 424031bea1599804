"""Lazy, forward-only walk over a paginated log group inventory."""

from dataclasses import replace
from typing import Any, Iterator, Optional

from log_lifecycle.inventory.base import LogGroupInventory
from log_lifecycle.inventory.models import Page
from log_lifecycle.utils.errors import (
    ErrorContext,
    FatalInventoryError,
    InventoryError,
    RetryableInventoryError,
    error_handler,
)
from log_lifecycle.utils.logging import get_logger

logger = get_logger(__name__)


class InventoryWalker:
    """Yields inventory pages one at a time.

    Only the current page is held in memory. Fetch failures are classified
    as :class:`RetryableInventoryError` or :class:`FatalInventoryError` and
    raised to the caller, which owns the retry policy; the error carries the
    token of the page that failed so a new walk can resume from it.
    """

    def __init__(self, inventory: LogGroupInventory):
        """Initialize walker.

        Args:
            inventory: Collaborator providing ``list_resources``
        """
        self.inventory = inventory

    def fetch(self, page_token: Optional[Any], number: int) -> Page:
        """Fetch a single page and classify any failure."""
        try:
            page = self.inventory.list_resources(page_token)
        except InventoryError as e:
            e.page_token = page_token
            e.page_number = number
            raise
        except Exception as e:
            raise self.classify(e, page_token, number) from e
        return replace(page, number=number)

    def classify(self, error: Exception, page_token: Optional[Any], number: int) -> InventoryError:
        """Wrap a raw fetch error as retryable or fatal."""
        wrapped = error_handler.handle_exception(
            error, ErrorContext(operation='describe_log_groups', page=number)
        )
        message = f"Failed to fetch inventory page {number}: {wrapped.message}"
        kwargs = dict(
            page_token=page_token,
            page_number=number,
            context=wrapped.context,
            cause=error,
            suggestions=wrapped.suggestions,
        )
        if error_handler.is_retryable(error):
            return RetryableInventoryError(message, **kwargs)
        return FatalInventoryError(message, **kwargs)

    def pages(self, start_token: Optional[Any] = None, start_number: int = 1) -> Iterator[Page]:
        """Walk the inventory from ``start_token`` (the first page when None).

        Every call starts a new, independent sequence.

        Yields:
            Pages in inventory order
        """
        token = start_token
        number = start_number
        while True:
            page = self.fetch(token, number)
            logger.debug(f"Fetched page {number} ({len(page)} log groups)")
            yield page
            if page.next_token is None:
                return
            if page.next_token == token:
                raise FatalInventoryError(
                    f"Inventory returned the same continuation token twice at page {number}",
                    page_token=token,
                    page_number=number,
                )
            token = page.next_token
            number += 1
