"""Error types and classification for log group lifecycle runs.

Every failure a run can meet is a :class:`LifecycleError`. Configuration
errors stop a run before the fleet is read, inventory errors stop the walk,
and mutation errors are recorded against a single log group. Raw botocore
exceptions are converted by :data:`error_handler`, which is also the only
place deciding whether a failure is worth retrying.
"""

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from botocore.exceptions import (
    ClientError,
    ConnectTimeoutError,
    EndpointConnectionError,
    NoCredentialsError,
    PartialCredentialsError,
    ReadTimeoutError,
)
from log_lifecycle.utils.logging import get_logger


class ErrorCategory(Enum):
    """What kind of failure occurred."""
    CONFIGURATION = "configuration"
    INVENTORY = "inventory"
    MUTATION = "mutation"
    AWS = "aws"
    NETWORK = "network"
    THROTTLING = "throttling"
    CREDENTIAL = "credential"
    PERMISSION = "permission"
    NOT_FOUND = "not_found"
    VALIDATION = "validation"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    """How far a failure reaches."""
    CRITICAL = "critical"  # stops the run
    ERROR = "error"  # one log group
    WARNING = "warning"


@dataclass
class ErrorContext:
    """Where a failure happened."""
    resource_id: Optional[str] = None
    region: Optional[str] = None
    operation: Optional[str] = None
    page: Optional[int] = None
    aws_operation: Optional[str] = None
    error_code: Optional[str] = None
    request_id: Optional[str] = None


class LifecycleError(Exception):
    """Base exception for log group lifecycle errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: Optional[ErrorContext] = None,
        cause: Optional[Exception] = None,
        suggestions: Optional[List[str]] = None
    ):
        """Initialize lifecycle error.

        Args:
            message: One-line description shown to the operator
            category: Error category
            severity: Error severity
            context: Log group, region and AWS call involved
            cause: Exception this error wraps
            suggestions: Steps that usually fix the problem
        """
        super().__init__(message)
        self.message = message
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.cause = cause
        self.suggestions = suggestions or []

    @property
    def kind(self) -> str:
        """Short error kind used in reports (class name)."""
        return type(self).__name__

    def to_user_message(self) -> str:
        """Multi-line description for terminals and log files."""
        lines = [f"{self.severity.value.upper()}: {self.message}"]
        details = (
            ("Log group", self.context.resource_id),
            ("Region", self.context.region),
            ("Operation", self.context.operation),
            ("Page", self.context.page),
            ("Cause", self.cause),
        )
        lines.extend(f"   {label}: {value}" for label, value in details if value)
        if self.suggestions:
            lines.append("\nSuggested fixes:")
            lines.extend(f"   {n}. {text}" for n, text in enumerate(self.suggestions, 1))
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation used in reports and debug logs."""
        return {
            'kind': self.kind,
            'message': self.message,
            'category': self.category.value,
            'severity': self.severity.value,
            'context': asdict(self.context),
            'cause': str(self.cause) if self.cause else None,
            'suggestions': list(self.suggestions),
        }


class ConfigurationError(LifecycleError):
    """Error in the run configuration (filter, desired state, settings)."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.CONFIGURATION)
        super().__init__(
            message,
            severity=ErrorSeverity.CRITICAL,
            **kwargs
        )


class ParseError(ConfigurationError):
    """Filter text does not match the expression grammar."""

    def __init__(self, message: str, expression: Optional[str] = None, **kwargs):
        kwargs.setdefault('suggestions', [
            "Write clauses as '<attribute> <operator> <value>', e.g. 'retention == infinite'",
            "Join clauses with '&&' or '||'",
        ])
        super().__init__(message, **kwargs)
        self.expression = expression


class UnknownAttributeError(ConfigurationError):
    """Filter refers to an attribute the evaluator does not know."""

    def __init__(self, attribute: str, known: Optional[List[str]] = None, **kwargs):
        known = known or []
        kwargs.setdefault('suggestions', [
            f"Use one of: {', '.join(known)}" if known else "Check the attribute name",
        ])
        super().__init__(f"Unknown filter attribute: {attribute!r}", **kwargs)
        self.attribute = attribute


class InvalidFilterError(ConfigurationError):
    """Filter clause is well formed but not valid for its attribute."""


class UnknownDesiredStateError(ConfigurationError):
    """Desired-state token is not in the resolver table."""

    def __init__(self, token: str, known: Optional[List[str]] = None, **kwargs):
        known = known or []
        kwargs.setdefault('suggestions', [
            f"Use one of: {', '.join(known)}" if known else "Check the desired state token",
        ])
        super().__init__(f"Unsupported desired state: {token!r}", **kwargs)
        self.token = token


class InventoryError(LifecycleError):
    """Failure fetching a page of the log group inventory."""

    retryable = False

    def __init__(
        self,
        message: str,
        page_token: Any = None,
        page_number: int = 0,
        **kwargs
    ):
        kwargs.setdefault('category', ErrorCategory.INVENTORY)
        super().__init__(message, **kwargs)
        self.page_token = page_token
        self.page_number = page_number


class RetryableInventoryError(InventoryError):
    """Transient page fetch failure (throttling, network)."""

    retryable = True

    def __init__(self, message: str, **kwargs):
        super().__init__(message, severity=ErrorSeverity.ERROR, **kwargs)


class FatalInventoryError(InventoryError):
    """Non-transient page fetch failure (e.g. permission denied)."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, severity=ErrorSeverity.CRITICAL, **kwargs)


class MutationError(LifecycleError):
    """Failure applying an action to a single log group."""

    def __init__(self, message: str, **kwargs):
        kwargs.setdefault('category', ErrorCategory.MUTATION)
        super().__init__(message, severity=ErrorSeverity.ERROR, **kwargs)




# (category, message, suggestions) per AWS error code
AWS_ERRORS: Dict[str, Tuple[ErrorCategory, str, List[str]]] = {
    'AccessDeniedException': (
        ErrorCategory.PERMISSION,
        'Access denied',
        [
            'Grant logs:DescribeLogGroups, logs:PutRetentionPolicy, '
            'logs:DeleteRetentionPolicy and logs:DeleteLogGroup to the executing role',
            'Check service control policies if the account is in an organization',
        ],
    ),
    'UnrecognizedClientException': (
        ErrorCategory.CREDENTIAL,
        'Credentials were rejected',
        ['Run: aws sts get-caller-identity', 'Check that the region is enabled for this account'],
    ),
    'ExpiredTokenException': (
        ErrorCategory.CREDENTIAL,
        'Session token has expired',
        ['Refresh the session credentials and re-run'],
    ),
    'ThrottlingException': (
        ErrorCategory.THROTTLING,
        'CloudWatch Logs is throttling requests',
        ['Lower --max-workers', 'Re-run later; already converged log groups are skipped'],
    ),
    'ResourceNotFoundException': (
        ErrorCategory.NOT_FOUND,
        'Log group not found',
        ['The log group may have been deleted while the run was in progress'],
    ),
    'InvalidParameterException': (
        ErrorCategory.VALIDATION,
        'CloudWatch Logs rejected a parameter',
        ['Use one of the retention periods CloudWatch Logs accepts'],
    ),
    'OperationAbortedException': (
        ErrorCategory.AWS,
        'Another operation on the log group is in progress',
        ['Re-run later'],
    ),
    'ServiceUnavailableException': (
        ErrorCategory.NETWORK,
        'CloudWatch Logs is temporarily unavailable',
        ['Re-run in a few minutes', 'Check the AWS Health Dashboard for the region'],
    ),
}

# Codes that are worth retrying after a backoff
RETRYABLE_ERROR_CODES = frozenset({
    'ThrottlingException',
    'Throttling',
    'TooManyRequestsException',
    'RequestLimitExceeded',
    'RequestThrottled',
    'LimitExceededException',
    'ServiceUnavailable',
    'ServiceUnavailableException',
    'RequestTimeout',
    'RequestTimeoutException',
    'InternalFailure',
    'InternalError',
})

NETWORK_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    EndpointConnectionError,
    ConnectTimeoutError,
    ReadTimeoutError,
)

_LOG_LEVELS = {
    ErrorSeverity.CRITICAL: logging.ERROR,
    ErrorSeverity.ERROR: logging.ERROR,
    ErrorSeverity.WARNING: logging.WARNING,
}


class ErrorHandler:
    """Classifies raw exceptions and converts them to :class:`LifecycleError`."""

    def __init__(self):
        self.logger = get_logger(__name__)

    @staticmethod
    def error_code(error: Exception) -> Optional[str]:
        """AWS error code carried by ``error``, if any."""
        if isinstance(error, ClientError):
            return error.response.get('Error', {}).get('Code')
        if isinstance(error, LifecycleError):
            return error.context.error_code
        return None

    def is_retryable(self, error: Exception) -> bool:
        """True for throttling, service-side and network failures.

        Inventory errors carry their own verdict; other lifecycle errors are
        retryable when they were throttled or wrap a retryable cause.
        """
        if isinstance(error, InventoryError):
            return error.retryable
        if isinstance(error, LifecycleError):
            if error.category == ErrorCategory.THROTTLING:
                return True
            return error.cause is not None and self.is_retryable(error.cause)
        if isinstance(error, NETWORK_EXCEPTIONS):
            return True
        return self.error_code(error) in RETRYABLE_ERROR_CODES

    def handle_exception(
        self,
        error: Exception,
        context: Optional[ErrorContext] = None
    ) -> LifecycleError:
        """Convert ``error`` into a categorised :class:`LifecycleError`.

        Lifecycle errors are returned unchanged.
        """
        if isinstance(error, LifecycleError):
            return error
        context = context or ErrorContext()

        if isinstance(error, ClientError):
            return self._from_client_error(error, context)
        if isinstance(error, (NoCredentialsError, PartialCredentialsError)):
            return LifecycleError(
                f'No usable AWS credentials: {error}',
                category=ErrorCategory.CREDENTIAL,
                severity=ErrorSeverity.CRITICAL,
                context=context,
                cause=error,
                suggestions=[
                    'Pass --profile or set AWS_PROFILE',
                    'On Lambda, check the execution role',
                ],
            )
        if isinstance(error, NETWORK_EXCEPTIONS):
            return LifecycleError(
                f'Could not reach CloudWatch Logs: {error}',
                category=ErrorCategory.NETWORK,
                context=context,
                cause=error,
                suggestions=['Check network access to the regional logs endpoint'],
            )
        return LifecycleError(str(error), context=context, cause=error)

    def _from_client_error(self, error: ClientError, context: ErrorContext) -> LifecycleError:
        details = error.response.get('Error', {})
        code = details.get('Code', 'Unknown')
        context.error_code = code
        context.request_id = error.response.get('ResponseMetadata', {}).get('RequestId')
        context.aws_operation = getattr(error, 'operation_name', None)

        known = AWS_ERRORS.get(code)
        if known is not None:
            category, summary, suggestions = known
        else:
            category = ErrorCategory.THROTTLING if code in RETRYABLE_ERROR_CODES else ErrorCategory.AWS
            summary = f"AWS error {code}"
            suggestions = [f"Request ID: {context.request_id}"] if context.request_id else []
        return LifecycleError(
            f"{summary}: {details.get('Message', str(error))}",
            category=category,
            context=context,
            cause=error,
            suggestions=list(suggestions),
        )

    def log_error(self, error: LifecycleError) -> None:
        """Log ``error`` at the level matching its severity."""
        self.logger.log(_LOG_LEVELS.get(error.severity, logging.INFO), error.to_user_message())
        self.logger.debug(f"Error details: {error.to_dict()}")


error_handler = ErrorHandler()
