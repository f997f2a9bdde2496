"""Retry policy and exponential backoff for failed executions.

Retries are not performed in-process: a failed attempt parks the
execution in ``failed_pending_retry`` with ``next_retry_at`` set, and the
retry scheduler re-invokes the runner once it is due. This module only
answers two questions, "should we retry?" and "after how long?".
"""

from dataclasses import dataclass, field

from commerceflow.models.execution import ErrorKind
from commerceflow.models.workflow import RetryConfig

DEFAULT_RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.TIMEOUT,
        ErrorKind.NETWORK_ERROR,
        ErrorKind.RATE_LIMIT,
        ErrorKind.SERVER_ERROR,
    }
)


@dataclass(frozen=True)
class RetryPolicy:
    """Effective retry policy for one workflow."""

    max_attempts: int = 3
    initial_delay_seconds: int = 5
    max_delay_seconds: int = 300
    backoff_multiplier: float = 2.0
    retryable_kinds: frozenset[ErrorKind] = field(default=DEFAULT_RETRYABLE_KINDS)

    def __post_init__(self) -> None:
        if self.max_delay_seconds < self.initial_delay_seconds:
            raise ValueError("max_delay_seconds must be >= initial_delay_seconds")

    @classmethod
    def from_config(cls, config: RetryConfig | None) -> "RetryPolicy":
        """Build a policy from a workflow's retry_config.

        Args:
            config: The authored retry config, or None.

        Returns:
            The matching policy, or DEFAULT_RETRY_POLICY when absent.
        """
        if config is None:
            return DEFAULT_RETRY_POLICY

        return cls(
            max_attempts=config.max_attempts,
            initial_delay_seconds=config.initial_delay_seconds,
            max_delay_seconds=config.max_delay_seconds,
            backoff_multiplier=config.backoff_multiplier,
            retryable_kinds=frozenset(ErrorKind(k) for k in config.retry_on_errors),
        )

    def is_retryable(self, kind: ErrorKind | str) -> bool:
        """Whether an error kind is worth retrying under this policy."""
        try:
            return ErrorKind(kind) in self.retryable_kinds
        except ValueError:
            return False

    def should_retry(self, kind: ErrorKind | str, retry_count: int) -> bool:
        """Decide whether a failed attempt gets another try.

        Args:
            kind: Classified kind of the failure.
            retry_count: Failed attempts so far, including this one.

        Returns:
            True if the execution should be scheduled for retry.
        """
        return self.is_retryable(kind) and retry_count < self.max_attempts

    def next_delay(self, retry_count: int) -> int:
        """Delay before the next attempt, in seconds."""
        return next_delay(retry_count, self)


DEFAULT_RETRY_POLICY = RetryPolicy()


def next_delay(retry_count: int, policy: RetryPolicy = DEFAULT_RETRY_POLICY) -> int:
    """Calculate the backoff delay for a retry.

    ``retry_count`` is 1-indexed: the first retry waits
    ``initial_delay_seconds``. Values below 1 are treated as 1.

    Args:
        retry_count: Failed attempts so far.
        policy: Policy supplying the delay parameters.

    Returns:
        Delay in whole seconds, never above max_delay_seconds.
    """
    n = max(1, retry_count)
    initial = policy.initial_delay_seconds
    try:
        raw = round(initial * policy.backoff_multiplier ** (n - 1))
    except OverflowError:
        raw = policy.max_delay_seconds
    return max(initial, min(policy.max_delay_seconds, raw))
