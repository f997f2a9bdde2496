"""Workflow execution engine.

Provides the runner state machine, action dispatch, error classification
and retry backoff used by the workflow executor workers.
"""

from commerceflow.execution.action_dispatcher import (
    ActionDispatcher,
    HandlerRegistry,
    build_default_registry,
)
from commerceflow.execution.error_classifier import (
    ErrorClassifier,
    classify_error,
    get_error_classifier,
)
from commerceflow.execution.retry_policy import DEFAULT_RETRY_POLICY, RetryPolicy, next_delay
from commerceflow.execution.runner import (
    ExecutionRunner,
    RunOutcome,
    RunStatus,
    create_execution_runner,
    stop_before_timeout,
)

__all__ = [
    # Dispatch
    "ActionDispatcher",
    "HandlerRegistry",
    "build_default_registry",
    # Classification
    "ErrorClassifier",
    "classify_error",
    "get_error_classifier",
    # Retry
    "DEFAULT_RETRY_POLICY",
    "RetryPolicy",
    "next_delay",
    # Runner
    "ExecutionRunner",
    "RunOutcome",
    "RunStatus",
    "create_execution_runner",
    "stop_before_timeout",
]
