"""Workflow execution and step result models."""

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field

from commerceflow.models.base import BaseModel, utc_now


class ErrorKind(str, Enum):
    """Closed set of failure kinds used to decide retryability."""

    TIMEOUT = "timeout"
    NETWORK_ERROR = "network_error"
    RATE_LIMIT = "rate_limit"
    SERVER_ERROR = "server_error"
    AUTH_ERROR = "auth_error"
    VALIDATION_ERROR = "validation_error"
    NOT_FOUND = "not_found"
    UNKNOWN_ERROR = "unknown_error"


class ExecutionStatus(str, Enum):
    """Execution status enum."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED_PENDING_RETRY = "failed_pending_retry"
    DEAD_LETTERED = "dead_lettered"


TERMINAL_STATUSES = frozenset({ExecutionStatus.COMPLETED, ExecutionStatus.DEAD_LETTERED})


class StepOutcome(str, Enum):
    """Outcome of a single executed action."""

    SUCCESS = "success"
    FAILED = "failed"


class StepResult(PydanticBaseModel):
    """One entry in an execution's audit log."""

    model_config = ConfigDict(use_enum_values=True)

    action_id: str = Field(..., description="Workflow action ID")
    action_type: str = Field(..., description="Action type tag")
    status: StepOutcome = Field(..., description="success or failed")
    result: dict[str, Any] | None = Field(None, description="Handler result on success")
    error: str | None = Field(None, description="Error message on failure")
    error_type: ErrorKind | None = Field(None, description="Classified error kind on failure")
    attempt: int = Field(default=1, description="Attempt this step belongs to (1-based)")
    duration_ms: int = Field(default=0, description="Execution duration in milliseconds")
    timestamp: datetime = Field(default_factory=utc_now)


class ErrorDetails(PydanticBaseModel):
    """Classified detail of the most recent failure."""

    model_config = ConfigDict(use_enum_values=True)

    error_type: ErrorKind
    message: str
    timestamp: datetime = Field(default_factory=utc_now)
    action_id: str | None = None
    status_code: int | None = None


class Execution(BaseModel):
    """Execution entity - one attempt-tracked run of a workflow definition.

    Key Pattern:
        PK: EXEC#{id}
        SK: EXEC
        GSI1PK: EXEC_STATUS#{status}
        GSI1SK: {next_retry_at or created_at}
    """

    _pk_prefix: ClassVar[str] = "EXEC#"
    _sk_prefix: ClassVar[str] = "EXEC"

    workflow_id: str = Field(..., description="Workflow definition ID")
    tenant_id: str = Field(..., description="Owning tenant")
    trigger_data: dict[str, Any] = Field(
        default_factory=dict, description="Trigger payload passed to every action"
    )

    status: ExecutionStatus = Field(default=ExecutionStatus.PENDING)
    execution_log: list[StepResult] = Field(
        default_factory=list, description="Append-only audit trail across attempts"
    )

    # Retry state
    retry_count: int = Field(default=0, ge=0)
    last_error: str | None = None
    error_details: ErrorDetails | None = None
    next_retry_at: datetime | None = None
    is_retryable: bool = False
    dead_letter_sent: bool = Field(
        default=False, description="Set once the dead-letter sink accepted the execution"
    )

    # Timing
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None

    # Set when an operator re-queues a dead-lettered execution
    retried_from: str | None = None

    def get_pk(self) -> str:
        """Get partition key: EXEC#{id}."""
        return f"EXEC#{self.id}"

    def get_sk(self) -> str:
        """Get sort key: EXEC."""
        return "EXEC"

    def get_gsi1_keys(self) -> dict[str, str]:
        """Get GSI1 keys for status sweeps (retry scheduler)."""
        sort_value = self.next_retry_at or self.created_at
        return {
            "GSI1PK": f"EXEC_STATUS#{self.status_value}",
            "GSI1SK": sort_value.isoformat(),
        }

    @property
    def status_value(self) -> str:
        """Status as a plain string regardless of enum coercion."""
        return ExecutionStatus(self.status).value

    @property
    def is_terminal(self) -> bool:
        """Whether the execution reached completed or dead_lettered."""
        return ExecutionStatus(self.status) in TERMINAL_STATUSES

    @property
    def attempt_number(self) -> int:
        """Current attempt number (1-based)."""
        return self.retry_count + 1

    def start(self) -> None:
        """Mark the execution as running for a new attempt."""
        self.status = ExecutionStatus.RUNNING
        self.started_at = utc_now()
        self.completed_at = None
        self.duration_ms = None
        self.next_retry_at = None

    def append_step(self, step: StepResult) -> None:
        """Append a step result to the audit log."""
        self.execution_log = [*self.execution_log, step]

    def complete(self) -> None:
        """Mark the execution as completed."""
        self.status = ExecutionStatus.COMPLETED
        self.is_retryable = False
        self.next_retry_at = None
        self._finish()

    def record_failure(self, details: ErrorDetails, is_retryable: bool) -> None:
        """Record a failed attempt before the retry decision."""
        self.retry_count += 1
        self.last_error = details.message
        self.error_details = details
        self.is_retryable = is_retryable

    def schedule_retry(self, next_retry_at: datetime) -> None:
        """Park the execution until the next retry is due."""
        self.status = ExecutionStatus.FAILED_PENDING_RETRY
        self.is_retryable = True
        self.next_retry_at = next_retry_at

    def dead_letter(self) -> None:
        """Move the execution to its terminal failure state."""
        self.status = ExecutionStatus.DEAD_LETTERED
        self.is_retryable = False
        self.next_retry_at = None
        self._finish()

    def _finish(self) -> None:
        """Stamp completion time and duration."""
        self.completed_at = utc_now()
        if self.started_at:
            delta = self.completed_at - self.started_at
            self.duration_ms = int(delta.total_seconds() * 1000)
