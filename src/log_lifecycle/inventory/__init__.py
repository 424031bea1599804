"""Paginated log group inventory and the walker over it."""

from .models import Page, ResourceDescriptor
from .base import LogGroupInventory
from .walker import InventoryWalker
from .cloudwatch import (
    CloudWatchLogsInventory,
    RegionalInventory,
    build_inventory,
    MAX_PAGE_SIZE,
)

__all__ = [
    "Page",
    "ResourceDescriptor",
    "LogGroupInventory",
    "InventoryWalker",
    "CloudWatchLogsInventory",
    "RegionalInventory",
    "build_inventory",
    "MAX_PAGE_SIZE",
]
