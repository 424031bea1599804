"""Pytest configuration and shared fixtures."""

import threading
from dataclasses import replace
from typing import Dict, List, Optional

import pytest
from botocore.exceptions import ClientError

from log_lifecycle.config.models import RunConfig
from log_lifecycle.inventory.base import LogGroupInventory
from log_lifecycle.inventory.models import Page, ResourceDescriptor
from log_lifecycle.policy.desired_state import (
    Action,
    ClearRetention,
    DeleteGroup,
    SetDays,
    SetDeletionProtection,
)
from log_lifecycle.policy.retention import INFINITE, Days
from log_lifecycle.utils.retry import RetryStrategy


def client_error(code: str, operation: str = "DescribeLogGroups", message: str = "error") -> ClientError:
    """Build a botocore ClientError with the given code."""
    return ClientError({"Error": {"Code": code, "Message": message}}, operation)


def make_group(name: str, retention=INFINITE, **kwargs) -> ResourceDescriptor:
    """Build a log group snapshot in us-east-1."""
    kwargs.setdefault("region", "us-east-1")
    return ResourceDescriptor(name=name, retention=retention, **kwargs)


class FakeInventory(LogGroupInventory):
    """In-memory inventory that records every call.

    ``pages`` is a list of pages (lists of descriptors). Page tokens are page
    indexes. Successful mutations update the fleet so a later walk sees the
    new retention.

    Args:
        fetch_errors: page index -> exceptions raised, in order, by the next
            fetches of that page
        mutation_errors: log group name -> exception raised on every
            mutation, or list of exceptions consumed one per call
    """

    def __init__(
        self,
        pages: List[List[ResourceDescriptor]],
        fetch_errors: Optional[Dict[int, List[Exception]]] = None,
        mutation_errors: Optional[Dict[str, object]] = None
    ):
        self.pages = [list(page) for page in pages]
        self.fetch_errors = {k: list(v) for k, v in (fetch_errors or {}).items()}
        self.mutation_errors = dict(mutation_errors or {})
        self.list_calls: List[Optional[int]] = []
        self.set_calls: List[tuple] = []
        self._lock = threading.Lock()

    @property
    def names(self) -> List[str]:
        return [r.name for page in self.pages for r in page]

    def list_resources(self, page_token=None) -> Page:
        self.list_calls.append(page_token)
        if not self.pages:
            return Page(resources=())
        index = page_token or 0
        errors = self.fetch_errors.get(index)
        if errors:
            raise errors.pop(0)
        next_token = index + 1 if index + 1 < len(self.pages) else None
        return Page(resources=tuple(self.pages[index]), next_token=next_token)

    def set_retention(self, resource: ResourceDescriptor, action: Action) -> None:
        with self._lock:
            self.set_calls.append((resource.name, action))
            error = self.mutation_errors.get(resource.name)
            if isinstance(error, list):
                if error:
                    raise error.pop(0)
            elif error is not None:
                raise error
            self._converge(resource.name, action)

    def _converge(self, name: str, action: Action) -> None:
        for page in self.pages:
            for index, current in enumerate(page):
                if current.name != name:
                    continue
                if isinstance(action, SetDays):
                    page[index] = replace(current, retention=Days(action.days))
                elif isinstance(action, ClearRetention):
                    page[index] = replace(current, retention=INFINITE)
                elif isinstance(action, SetDeletionProtection):
                    page[index] = replace(current, deletion_protected=action.enabled)
                elif isinstance(action, DeleteGroup):
                    del page[index]
                return


@pytest.fixture
def fast_retry():
    """Retry strategy without delays."""
    return RetryStrategy(max_retries=3, base_delay=0, jitter=False)


@pytest.fixture
def run_config():
    """Factory for single-region, sequential run configurations."""
    def factory(filter="retention == infinite", desired_state="3months", **kwargs):
        kwargs.setdefault("regions", ["us-east-1"])
        kwargs.setdefault("max_workers", 1)
        return RunConfig(filter=filter, desired_state=desired_state, **kwargs)
    return factory


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mocked AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
