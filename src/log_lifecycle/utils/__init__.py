"""Utility modules for logging, AWS client management, errors and retries."""

from log_lifecycle.utils.aws_client import AWSClientManager
from log_lifecycle.utils.retry import RetryStrategy
from log_lifecycle.utils.errors import (
    ErrorCategory,
    ErrorSeverity,
    ErrorContext,
    LifecycleError,
    ConfigurationError,
    ParseError,
    UnknownAttributeError,
    InvalidFilterError,
    UnknownDesiredStateError,
    InventoryError,
    RetryableInventoryError,
    FatalInventoryError,
    MutationError,
    ErrorHandler,
    error_handler
)
from log_lifecycle.utils.logging import get_logger, setup_logging

__all__ = [
    # AWS Client
    'AWSClientManager',

    # Retry
    'RetryStrategy',

    # Errors
    'ErrorCategory',
    'ErrorSeverity',
    'ErrorContext',
    'LifecycleError',
    'ConfigurationError',
    'ParseError',
    'UnknownAttributeError',
    'InvalidFilterError',
    'UnknownDesiredStateError',
    'InventoryError',
    'RetryableInventoryError',
    'FatalInventoryError',
    'MutationError',
    'ErrorHandler',
    'error_handler',

    # Logging
    'get_logger',
    'setup_logging',
]
