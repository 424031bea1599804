"""Unit tests for page iteration with retries."""

import pytest

from conftest import FakeInventory, client_error, make_group
from log_lifecycle.inventory.walker import InventoryWalker
from log_lifecycle.reconciler.paging import resilient_pages
from log_lifecycle.utils.errors import FatalInventoryError, RetryableInventoryError


def fleet():
    return [[make_group("a")], [make_group("b")], [make_group("c")]]


def names(pages):
    return [r.name for p in pages for r in p.resources]


def test_transient_failure_resumes_at_failed_page(fast_retry):
    inventory = FakeInventory(fleet(), fetch_errors={1: [client_error("ThrottlingException")]})

    pages = list(resilient_pages(InventoryWalker(inventory), fast_retry))

    assert names(pages) == ["a", "b", "c"]
    assert [p.number for p in pages] == [1, 2, 3]
    assert inventory.list_calls == [None, 1, 1, 2]


def test_attempts_reset_after_each_successful_page(fast_retry):
    throttle = client_error("ThrottlingException")
    inventory = FakeInventory(fleet(), fetch_errors={0: [throttle] * 3, 2: [throttle] * 3})

    pages = list(resilient_pages(InventoryWalker(inventory), fast_retry))

    assert names(pages) == ["a", "b", "c"]
    assert len(inventory.list_calls) == 9


def test_exhausted_retries_raise(fast_retry):
    inventory = FakeInventory(fleet(), fetch_errors={1: [client_error("ThrottlingException")] * 4})
    seen = []

    with pytest.raises(RetryableInventoryError):
        for page in resilient_pages(InventoryWalker(inventory), fast_retry):
            seen.append(page)

    assert names(seen) == ["a"]
    assert inventory.list_calls == [None, 1, 1, 1, 1]


def test_fatal_failure_is_not_retried(fast_retry):
    inventory = FakeInventory(fleet(), fetch_errors={1: [client_error("AccessDeniedException")]})

    with pytest.raises(FatalInventoryError):
        list(resilient_pages(InventoryWalker(inventory), fast_retry))

    assert inventory.list_calls == [None, 1]
