"""Tests for retry policy and backoff calculation."""

import pytest
from pydantic import ValidationError as PydanticValidationError

from commerceflow.execution.retry_policy import DEFAULT_RETRY_POLICY, RetryPolicy, next_delay
from commerceflow.models.execution import ErrorKind
from commerceflow.models.workflow import RetryConfig


class TestNextDelay:
    """Tests for exponential backoff."""

    def test_default_sequence(self):
        """Test 5s initial doubling delays."""
        assert [next_delay(n) for n in (1, 2, 3, 4)] == [5, 10, 20, 40]

    def test_capped_at_max_delay(self):
        """Test delays never exceed the configured maximum."""
        policy = RetryPolicy(initial_delay_seconds=10, max_delay_seconds=60, backoff_multiplier=3.0)
        assert next_delay(3, policy) == 60
        assert next_delay(50, policy) == 60

    @pytest.mark.parametrize("retry_count", [0, -1, -100])
    def test_counts_below_one_use_initial_delay(self, retry_count):
        """Test non-positive retry counts are treated as the first retry."""
        assert next_delay(retry_count) == DEFAULT_RETRY_POLICY.initial_delay_seconds

    def test_cap_below_initial_rejected(self):
        """Test a delay cap below the initial delay cannot be configured."""
        with pytest.raises(PydanticValidationError):
            RetryConfig(initial_delay_seconds=600, max_delay_seconds=300)
        with pytest.raises(ValueError):
            RetryPolicy(initial_delay_seconds=30, max_delay_seconds=10)

    def test_cap_equal_to_initial(self):
        """Test an equal cap gives a constant delay."""
        policy = RetryPolicy.from_config(RetryConfig(initial_delay_seconds=60, max_delay_seconds=60))
        assert [next_delay(n, policy) for n in (1, 2, 10)] == [60, 60, 60]

    def test_rounding(self):
        """Test fractional delays are rounded to whole seconds."""
        policy = RetryPolicy(initial_delay_seconds=3, backoff_multiplier=1.5)
        assert next_delay(2, policy) == round(4.5)
        assert isinstance(next_delay(2, policy), int)

    def test_huge_retry_count(self):
        """Test overflow is clamped to the maximum."""
        assert next_delay(100000) == DEFAULT_RETRY_POLICY.max_delay_seconds

    def test_method_matches_function(self):
        """Test the policy method delegates to the calculator."""
        assert DEFAULT_RETRY_POLICY.next_delay(3) == next_delay(3)


class TestRetryPolicy:
    """Tests for retry decisions."""

    def test_defaults(self):
        """Test default policy values."""
        assert DEFAULT_RETRY_POLICY.max_attempts == 3
        assert DEFAULT_RETRY_POLICY.initial_delay_seconds == 5
        assert DEFAULT_RETRY_POLICY.max_delay_seconds == 300
        assert DEFAULT_RETRY_POLICY.backoff_multiplier == 2.0
        assert DEFAULT_RETRY_POLICY.retryable_kinds == {
            ErrorKind.TIMEOUT,
            ErrorKind.NETWORK_ERROR,
            ErrorKind.RATE_LIMIT,
            ErrorKind.SERVER_ERROR,
        }

    def test_from_missing_config(self):
        """Test a workflow without retry_config gets the default policy."""
        assert RetryPolicy.from_config(None) is DEFAULT_RETRY_POLICY

    def test_from_config(self):
        """Test an authored retry config is honoured."""
        policy = RetryPolicy.from_config(
            RetryConfig(
                max_attempts=5,
                initial_delay_seconds=2,
                max_delay_seconds=30,
                backoff_multiplier=3.0,
                retry_on_errors=[ErrorKind.RATE_LIMIT],
            )
        )

        assert policy.max_attempts == 5
        assert policy.retryable_kinds == {ErrorKind.RATE_LIMIT}
        assert policy.is_retryable(ErrorKind.RATE_LIMIT)
        assert not policy.is_retryable(ErrorKind.TIMEOUT)

    @pytest.mark.parametrize(
        "kind",
        [ErrorKind.AUTH_ERROR, ErrorKind.VALIDATION_ERROR, ErrorKind.NOT_FOUND, ErrorKind.UNKNOWN_ERROR],
    )
    def test_permanent_kinds_not_retried(self, kind):
        """Test non-retryable kinds never retry."""
        assert not DEFAULT_RETRY_POLICY.should_retry(kind, 1)

    def test_attempt_budget(self):
        """Test retries stop once retry_count reaches max_attempts."""
        assert DEFAULT_RETRY_POLICY.should_retry(ErrorKind.TIMEOUT, 1)
        assert DEFAULT_RETRY_POLICY.should_retry(ErrorKind.TIMEOUT, 2)
        assert not DEFAULT_RETRY_POLICY.should_retry(ErrorKind.TIMEOUT, 3)

    def test_string_kinds(self):
        """Test kinds given as plain strings."""
        assert DEFAULT_RETRY_POLICY.is_retryable("server_error")
        assert not DEFAULT_RETRY_POLICY.is_retryable("not-a-kind")


SWEEP_POLICIES = [
    DEFAULT_RETRY_POLICY,
    RetryPolicy(initial_delay_seconds=1, max_delay_seconds=1),
    RetryPolicy(initial_delay_seconds=1, max_delay_seconds=3600, backoff_multiplier=1.0),
    RetryPolicy(initial_delay_seconds=3, max_delay_seconds=500, backoff_multiplier=1.5),
    RetryPolicy(initial_delay_seconds=10, max_delay_seconds=86400, backoff_multiplier=10.0),
]


class TestBackoffBounds:
    """Bounds and ordering of delays over long retry sequences."""

    @pytest.mark.parametrize("policy", SWEEP_POLICIES)
    def test_delays_bounded_and_non_decreasing(self, policy):
        """Test every delay lies within [initial, max] and never shrinks."""
        delays = [next_delay(n, policy) for n in range(1, 51)]

        for delay in delays:
            assert policy.initial_delay_seconds <= delay <= policy.max_delay_seconds
        for earlier, later in zip(delays, delays[1:]):
            assert earlier <= later
