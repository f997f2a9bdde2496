"""Execution runner - drives one execution through its state machine.

States::

    pending ──► running ──► completed
                   │
                   ├──► failed_pending_retry ──► running (re-invocation)
                   │
                   └──► dead_lettered

The runner is invoked with an execution id only. It claims the execution
with a version-checked write before any action runs, dispatches actions
strictly in order, stops at the first failure and then either schedules a
retry or hands the execution to the dead-letter sink.

Every attempt re-runs the workflow from its first action. Action handlers
must therefore tolerate being executed more than once.
"""

import os
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable

import structlog

from commerceflow.actions.base import ActionContext
from commerceflow.dlq.dead_letter import DeadLetterSink
from commerceflow.execution.action_dispatcher import ActionDispatcher, build_default_registry
from commerceflow.execution.error_classifier import ErrorClassifier, get_error_classifier
from commerceflow.execution.retry_policy import RetryPolicy
from commerceflow.models.base import utc_now
from commerceflow.models.execution import (
    ErrorDetails,
    ErrorKind,
    Execution,
    ExecutionStatus,
    StepOutcome,
    StepResult,
)
from commerceflow.models.workflow import WorkflowDefinition
from commerceflow.repositories.dead_letter import DeadLetterRepository
from commerceflow.repositories.workflow import ExecutionRepository, WorkflowDefinitionRepository
from commerceflow.utils.exceptions import ConflictError, ExecutionTimeoutError, NotFoundError

logger = structlog.get_logger()


class RunStatus(str, Enum):
    """Outcome of a single runner invocation."""

    COMPLETED = "completed"
    RETRY_SCHEDULED = "retry_scheduled"
    DEAD_LETTERED = "dead_lettered"
    SKIPPED = "skipped"


@dataclass
class RunOutcome:
    """What happened when the runner was invoked."""

    status: RunStatus
    execution_id: str
    retry_count: int = 0
    next_retry_at: datetime | None = None
    error_type: str | None = None
    message: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-friendly dict for Lambda responses."""
        return {
            "status": self.status.value,
            "execution_id": self.execution_id,
            "retry_count": self.retry_count,
            "next_retry_at": self.next_retry_at.isoformat() if self.next_retry_at else None,
            "error_type": self.error_type,
            "message": self.message,
        }


@dataclass
class _StepFailure:
    """The failure that ended an attempt."""

    error: BaseException
    action_id: str | None
    kind: ErrorKind


class ExecutionRunner:
    """Runs workflow executions with retry and dead-letter handling."""

    def __init__(
        self,
        execution_repo: ExecutionRepository,
        workflow_repo: WorkflowDefinitionRepository,
        dispatcher: ActionDispatcher,
        dead_letter_sink: DeadLetterSink,
        classifier: ErrorClassifier | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize the runner.

        Args:
            execution_repo: Execution persistence.
            workflow_repo: Workflow definition lookup.
            dispatcher: Action dispatcher with its handler registry.
            dead_letter_sink: Receives executions that exhaust their retries.
            classifier: Error classifier. Defaults to the shared instance.
            clock: Source of the current UTC time.
        """
        self.execution_repo = execution_repo
        self.workflow_repo = workflow_repo
        self.dispatcher = dispatcher
        self.dead_letter_sink = dead_letter_sink
        self.classifier = classifier or get_error_classifier()
        self.clock = clock
        self.logger = logger.bind(service="execution_runner")

    async def run(
        self,
        execution_id: str,
        should_stop: Callable[[], bool] | None = None,
        force: bool = False,
    ) -> RunOutcome:
        """Run one attempt of an execution.

        Args:
            execution_id: The execution to run.
            should_stop: Checked before each action; returning True ends the
                attempt with a timeout failure.
            force: Run a pending retry before it is due, or take over an
                execution left in running by a crashed worker.

        Returns:
            RunOutcome describing the transition taken.

        Raises:
            NotFoundError: If the execution does not exist.
        """
        execution = self.execution_repo.get_by_id(execution_id)
        if execution is None:
            raise NotFoundError("Execution", execution_id)

        log = self.logger.bind(
            execution_id=execution.id,
            workflow_id=execution.workflow_id,
            tenant_id=execution.tenant_id,
        )

        if (
            execution.status_value == ExecutionStatus.DEAD_LETTERED.value
            and not execution.dead_letter_sent
        ):
            log.warning("Resuming dead letter hand-off")
            return self._hand_off(execution, log)

        skip_reason = self._skip_reason(execution, force)
        if skip_reason:
            log.info("Execution skipped", reason=skip_reason, status=execution.status_value)
            return self._outcome(RunStatus.SKIPPED, execution, message=skip_reason)

        workflow = self.workflow_repo.get_by_id(execution.tenant_id, execution.workflow_id)

        # Claim the execution before any side effect
        execution.start()
        try:
            self.execution_repo.save(execution)
        except ConflictError:
            log.info("Execution claimed by another worker")
            return self._outcome(
                RunStatus.SKIPPED,
                execution,
                message="Execution claimed by another worker",
            )

        log.info("Execution started", attempt=execution.attempt_number)

        if workflow is None:
            error = NotFoundError("WorkflowDefinition", execution.workflow_id)
            log.error("Workflow definition not found")
            return self._dead_letter(
                execution,
                self._error_details(error, ErrorKind.NOT_FOUND, action_id=None),
                log,
            )

        failure = await self._run_actions(execution, workflow, should_stop, log)

        if failure is None:
            execution.complete()
            self.execution_repo.save(execution)
            log.info(
                "Execution completed",
                steps=len(workflow.actions),
                duration_ms=execution.duration_ms,
            )
            return self._outcome(RunStatus.COMPLETED, execution)

        return self._handle_failure(execution, workflow, failure, log)

    def _skip_reason(self, execution: Execution, force: bool) -> str | None:
        """Why this invocation must not touch the execution, if at all."""
        status = ExecutionStatus(execution.status)

        if execution.is_terminal:
            return f"Execution already {status.value}"

        if force:
            return None

        if status == ExecutionStatus.RUNNING:
            return "Execution is already running"

        if (
            status == ExecutionStatus.FAILED_PENDING_RETRY
            and execution.next_retry_at is not None
            and execution.next_retry_at > self.clock()
        ):
            return "Retry not yet due"

        return None

    async def _run_actions(
        self,
        execution: Execution,
        workflow: WorkflowDefinition,
        should_stop: Callable[[], bool] | None,
        log: Any,
    ) -> _StepFailure | None:
        """Dispatch actions in order, stopping at the first failure.

        Returns:
            The failure that stopped the attempt, or None if all succeeded.
        """
        context = ActionContext(
            execution_id=execution.id,
            tenant_id=execution.tenant_id,
            workflow_id=execution.workflow_id,
            attempt=execution.attempt_number,
            trigger_data=execution.trigger_data,
        )

        for action in workflow.actions:
            started = time.monotonic()

            if should_stop is not None and should_stop():
                error: BaseException = ExecutionTimeoutError(action.id)
            else:
                try:
                    result = await self.dispatcher.dispatch(action, context)
                except Exception as e:
                    error = e
                else:
                    execution.append_step(
                        StepResult(
                            action_id=action.id,
                            action_type=action.action_type,
                            status=StepOutcome.SUCCESS,
                            result=result if isinstance(result, dict) else {"result": result},
                            attempt=execution.attempt_number,
                            duration_ms=self._elapsed_ms(started),
                        )
                    )
                    log.debug("Action succeeded", action_id=action.id, action_type=action.action_type)
                    continue

            kind = self.classifier.classify(error)
            execution.append_step(
                StepResult(
                    action_id=action.id,
                    action_type=action.action_type,
                    status=StepOutcome.FAILED,
                    error=self._message(error),
                    error_type=kind,
                    attempt=execution.attempt_number,
                    duration_ms=self._elapsed_ms(started),
                )
            )
            log.warning(
                "Action failed",
                action_id=action.id,
                action_type=action.action_type,
                error=self._message(error),
                error_type=kind.value,
            )
            return _StepFailure(error=error, action_id=action.id, kind=kind)

        return None

    def _handle_failure(
        self,
        execution: Execution,
        workflow: WorkflowDefinition,
        failure: _StepFailure,
        log: Any,
    ) -> RunOutcome:
        """Decide between retry and dead-letter after a failed attempt."""
        kind = failure.kind
        policy = RetryPolicy.from_config(workflow.retry_config)
        details = self._error_details(failure.error, kind, failure.action_id)

        execution.record_failure(details, is_retryable=policy.is_retryable(kind))

        if not policy.should_retry(kind, execution.retry_count):
            return self._dead_letter(execution, details, log, recorded=True)

        delay = policy.next_delay(execution.retry_count)
        execution.schedule_retry(self.clock() + timedelta(seconds=delay))
        self.execution_repo.save(execution)

        log.info(
            "Execution retry scheduled",
            retry_count=execution.retry_count,
            max_attempts=policy.max_attempts,
            delay_seconds=delay,
            next_retry_at=execution.next_retry_at.isoformat(),
            error_type=kind.value,
        )
        return self._outcome(RunStatus.RETRY_SCHEDULED, execution, error_type=kind.value)

    def _dead_letter(
        self,
        execution: Execution,
        details: ErrorDetails,
        log: Any,
        recorded: bool = False,
    ) -> RunOutcome:
        """Move the execution to dead_lettered and notify the sink once."""
        if not recorded:
            execution.record_failure(details, is_retryable=False)

        execution.dead_letter()
        self.execution_repo.save(execution)

        log.warning(
            "Execution dead-lettered",
            retry_count=execution.retry_count,
            error_type=details.error_type,
            error=details.message,
        )

        return self._hand_off(execution, log)

    def _hand_off(self, execution: Execution, log: Any) -> RunOutcome:
        """Deliver a dead-lettered execution to the sink and record delivery.

        The terminal state is persisted first, so a failing sink leaves
        dead_letter_sent unset and the next invocation delivers again.
        """
        self.dead_letter_sink.send(execution)

        execution.dead_letter_sent = True
        self.execution_repo.save(execution)
        log.debug("Dead letter hand-off recorded")

        details = execution.error_details
        return self._outcome(
            RunStatus.DEAD_LETTERED,
            execution,
            error_type=ErrorKind(details.error_type).value if details else None,
        )

    def _error_details(
        self,
        error: BaseException,
        kind: ErrorKind,
        action_id: str | None,
    ) -> ErrorDetails:
        """Build the persisted error detail for a failure."""
        status_code = getattr(error, "status_code", None)
        return ErrorDetails(
            error_type=kind,
            message=self._message(error),
            timestamp=self.clock(),
            action_id=action_id,
            status_code=status_code if isinstance(status_code, int) else None,
        )

    def _outcome(
        self,
        status: RunStatus,
        execution: Execution,
        error_type: str | None = None,
        message: str | None = None,
    ) -> RunOutcome:
        """Build a RunOutcome from the execution's current state."""
        return RunOutcome(
            status=status,
            execution_id=execution.id,
            retry_count=execution.retry_count,
            next_retry_at=execution.next_retry_at,
            error_type=error_type,
            message=message if status == RunStatus.COMPLETED else message or execution.last_error,
        )

    @staticmethod
    def _message(error: BaseException) -> str:
        """Render an error message, falling back to the type name."""
        try:
            message = str(error)
        except Exception:
            message = ""
        return message or type(error).__name__

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.monotonic() - started) * 1000)


def create_execution_runner(table_name: str | None = None) -> ExecutionRunner:
    """Wire a runner with the default repositories, handlers and sink.

    Args:
        table_name: DynamoDB table. Defaults to TABLE_NAME env var.

    Returns:
        Configured ExecutionRunner.
    """
    return ExecutionRunner(
        execution_repo=ExecutionRepository(table_name),
        workflow_repo=WorkflowDefinitionRepository(table_name),
        dispatcher=ActionDispatcher(build_default_registry(table_name=table_name)),
        dead_letter_sink=DeadLetterSink(DeadLetterRepository(table_name)),
    )


def stop_before_timeout(context: Any) -> Callable[[], bool] | None:
    """Build a should_stop predicate from a Lambda context.

    The predicate turns true once less than EXECUTION_TIME_MARGIN_MS of
    the invocation remains, so no action starts that cannot finish.

    Args:
        context: Lambda context, or None outside Lambda.

    Returns:
        The predicate, or None if the context has no clock.
    """
    get_remaining = getattr(context, "get_remaining_time_in_millis", None)
    if not callable(get_remaining):
        return None

    margin_ms = int(os.environ.get("EXECUTION_TIME_MARGIN_MS", "10000"))
    return lambda: get_remaining() < margin_ms
