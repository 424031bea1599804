"""Unit tests for error classification and retry behaviour."""

import pytest
from botocore.exceptions import EndpointConnectionError, NoCredentialsError

from conftest import client_error
from log_lifecycle.utils.errors import (
    ErrorCategory,
    ErrorContext,
    FatalInventoryError,
    LifecycleError,
    MutationError,
    ParseError,
    RetryableInventoryError,
    UnknownAttributeError,
    UnknownDesiredStateError,
    error_handler,
)
from log_lifecycle.utils.retry import RetryStrategy


@pytest.fixture
def no_sleep(monkeypatch):
    """Record sleeps instead of waiting."""
    delays = []
    monkeypatch.setattr("log_lifecycle.utils.retry.time.sleep", delays.append)
    return delays


class TestClassification:
    """Transient versus permanent failures."""

    @pytest.mark.parametrize("error", [
        client_error("ThrottlingException"),
        client_error("TooManyRequestsException"),
        client_error("ServiceUnavailableException"),
        EndpointConnectionError(endpoint_url="https://logs.eu-west-1.amazonaws.com"),
        TimeoutError(),
        RetryableInventoryError("slow down"),
    ])
    def test_retryable(self, error):
        assert error_handler.is_retryable(error)

    @pytest.mark.parametrize("error", [
        client_error("AccessDeniedException"),
        client_error("ResourceNotFoundException"),
        client_error("InvalidParameterException"),
        FatalInventoryError("denied"),
        ParseError("bad"),
        ValueError("bad"),
    ])
    def test_not_retryable(self, error):
        assert not error_handler.is_retryable(error)

    def test_wrapped_throttle_stays_retryable(self):
        wrapped = error_handler.handle_exception(client_error("ThrottlingException"))

        assert wrapped.category == ErrorCategory.THROTTLING
        assert error_handler.is_retryable(wrapped)
        assert error_handler.is_retryable(MutationError("x", cause=client_error("Throttling")))


class TestHandleException:
    """Conversion of raw exceptions."""

    def test_mapped_aws_error(self):
        error = error_handler.handle_exception(
            client_error("AccessDeniedException", "PutRetentionPolicy", "no"),
            ErrorContext(resource_id="/aws/lambda/a", region="us-east-1"),
        )

        assert error.category == ErrorCategory.PERMISSION
        assert error.context.error_code == "AccessDeniedException"
        assert error.context.aws_operation == "PutRetentionPolicy"
        assert error.suggestions
        message = error.to_user_message()
        assert "Log group: /aws/lambda/a" in message
        assert "Suggested fixes" in message

    def test_unmapped_aws_error(self):
        error = error_handler.handle_exception(client_error("SomethingOdd"))

        assert error.category == ErrorCategory.AWS
        assert "SomethingOdd" in error.message

    def test_credentials(self):
        assert error_handler.handle_exception(NoCredentialsError()).category == ErrorCategory.CREDENTIAL

    def test_lifecycle_errors_pass_through(self):
        error = ParseError("bad", expression="x")

        assert error_handler.handle_exception(error) is error

    def test_to_dict(self):
        data = UnknownAttributeError("colour").to_dict()

        assert data["kind"] == "UnknownAttributeError"
        assert "colour" in data["message"]
        assert data["category"] == ErrorCategory.CONFIGURATION.value

    def test_unknown_desired_state_keeps_token(self):
        error = UnknownDesiredStateError("forever")

        assert error.token == "forever"
        assert isinstance(error, LifecycleError)


class TestRetryStrategy:
    """Exponential backoff."""

    def test_delays_grow_and_are_capped(self):
        strategy = RetryStrategy(base_delay=1, max_delay=5, jitter=False)

        assert [strategy.get_delay(a) for a in range(5)] == [1, 2, 4, 5, 5]

    def test_jitter_adds_at_most_ten_percent(self):
        strategy = RetryStrategy(base_delay=10, jitter=True)

        for _ in range(20):
            assert 10 <= strategy.get_delay(0) <= 11

    def test_retries_transient_errors(self, no_sleep):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise client_error("ThrottlingException")
            return "ok"

        assert RetryStrategy(base_delay=1, jitter=False).execute_with_retry(flaky) == "ok"
        assert no_sleep == [1, 2]

    def test_gives_up_after_max_retries(self, no_sleep):
        def throttled():
            raise client_error("ThrottlingException")

        with pytest.raises(Exception):
            RetryStrategy(max_retries=2, base_delay=0, jitter=False).execute_with_retry(throttled)

        assert len(no_sleep) == 2

    def test_permanent_errors_are_not_retried(self, no_sleep):
        calls = []

        def denied():
            calls.append(1)
            raise client_error("AccessDeniedException")

        with pytest.raises(Exception):
            RetryStrategy().execute_with_retry(denied)

        assert len(calls) == 1
        assert no_sleep == []
