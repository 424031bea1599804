"""Page iteration with resume-on-retryable-error."""

from typing import Iterator

from log_lifecycle.inventory.models import Page
from log_lifecycle.inventory.walker import InventoryWalker
from log_lifecycle.utils.errors import RetryableInventoryError
from log_lifecycle.utils.retry import RetryStrategy


def resilient_pages(walker: InventoryWalker, retry_strategy: RetryStrategy) -> Iterator[Page]:
    """Yield every inventory page, retrying transient fetch failures.

    After a :class:`RetryableInventoryError` a new walk is started at the
    token of the page that failed, so pages already yielded are never
    yielded again. The attempt counter resets after each page that
    succeeds.

    Raises:
        RetryableInventoryError: when retries for one page are exhausted
        FatalInventoryError: on the first non-transient failure
    """
    token, number, attempt = None, 1, 0
    while True:
        try:
            for page in walker.pages(token, number):
                attempt = 0
                yield page
                token, number = page.next_token, page.number + 1
            return
        except RetryableInventoryError as e:
            if not retry_strategy.should_retry(e, attempt):
                raise
            retry_strategy.wait(attempt, e)
            attempt += 1
            token, number = e.page_token, e.page_number
