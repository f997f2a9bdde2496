"""Dead-letter sink and operator service.

Executions that exhaust their retries (or fail with a non-retryable
error) are recorded as DeadLetterEntry items for operator review and,
when DEAD_LETTER_QUEUE_URL is configured, published to an SQS queue for
alerting.
"""

import json
import os
from typing import Any

import boto3
import structlog

from commerceflow.models.dead_letter import DeadLetterEntry, DeadLetterStatus
from commerceflow.models.execution import Execution, ExecutionStatus
from commerceflow.repositories.dead_letter import DeadLetterRepository
from commerceflow.repositories.workflow import ExecutionRepository
from commerceflow.utils.exceptions import ConflictError, NotFoundError

logger = structlog.get_logger()


class DeadLetterSink:
    """Records permanently failed executions."""

    def __init__(
        self,
        repository: DeadLetterRepository | None = None,
        queue_url: str | None = None,
        sqs_client: Any = None,
    ):
        """Initialize the sink.

        Args:
            repository: Dead-letter entry persistence.
            queue_url: SQS queue for alerts. Falls back to DEAD_LETTER_QUEUE_URL.
            sqs_client: Optional SQS client override.
        """
        self.repository = repository or DeadLetterRepository()
        self.queue_url = queue_url or os.environ.get("DEAD_LETTER_QUEUE_URL")
        self._sqs = sqs_client
        self.logger = logger.bind(service="dead_letter_sink")

    @property
    def sqs(self):
        """Get SQS client (lazy initialization)."""
        if self._sqs is None:
            self._sqs = boto3.client("sqs")
        return self._sqs

    def send(self, execution: Execution) -> DeadLetterEntry:
        """Record a dead-lettered execution.

        The entry ID is the execution ID, so delivering the same execution
        again returns the existing entry instead of creating a second one.

        Args:
            execution: The execution, already in dead_lettered.

        Returns:
            The created (or previously created) entry.
        """
        details = execution.error_details
        entry = DeadLetterEntry(
            id=execution.id,
            execution_id=execution.id,
            workflow_id=execution.workflow_id,
            tenant_id=execution.tenant_id,
            error_type=details.error_type if details else None,
            error_message=execution.last_error,
            retry_count=execution.retry_count,
        )
        try:
            self.repository.create_entry(entry)
        except ConflictError:
            existing = self.repository.get_by_id(execution.tenant_id, execution.id)
            if existing is None:
                raise
            self.logger.info("Dead letter entry already recorded", entry_id=existing.id)
            return existing

        self.logger.warning(
            "Execution sent to dead letter",
            entry_id=entry.id,
            execution_id=execution.id,
            tenant_id=execution.tenant_id,
            error_type=entry.error_type,
        )

        if self.queue_url:
            self._publish(entry)

        return entry

    def _publish(self, entry: DeadLetterEntry) -> None:
        """Publish an alert message for the entry."""
        message = {
            "entry_id": entry.id,
            "execution_id": entry.execution_id,
            "workflow_id": entry.workflow_id,
            "tenant_id": entry.tenant_id,
            "error_type": entry.error_type,
            "error_message": entry.error_message,
            "retry_count": entry.retry_count,
            "created_at": entry.created_at.isoformat(),
        }
        self.sqs.send_message(
            QueueUrl=self.queue_url,
            MessageBody=json.dumps(message),
            MessageAttributes={
                "tenant_id": {"DataType": "String", "StringValue": entry.tenant_id},
                "error_type": {
                    "DataType": "String",
                    "StringValue": entry.error_type or "unknown_error",
                },
            },
        )
        self.logger.debug("Dead letter alert published", entry_id=entry.id)


class DeadLetterService:
    """Operator actions over dead-letter entries."""

    def __init__(
        self,
        repository: DeadLetterRepository | None = None,
        execution_repo: ExecutionRepository | None = None,
    ):
        """Initialize the service."""
        self.repository = repository or DeadLetterRepository()
        self.execution_repo = execution_repo or ExecutionRepository()
        self.logger = logger.bind(service="dead_letter_service")

    def list_open(self, tenant_id: str, limit: int = 50) -> list[DeadLetterEntry]:
        """List a tenant's entries still awaiting review."""
        entries = self.repository.list_by_tenant(tenant_id, limit=limit)
        return [e for e in entries if DeadLetterStatus(e.status) == DeadLetterStatus.OPEN]

    def retry(self, tenant_id: str, entry_id: str) -> Execution:
        """Re-queue a dead-lettered execution as a new execution.

        The original execution stays dead_lettered; the new one starts in
        pending with a fresh retry budget.

        Args:
            tenant_id: The tenant ID.
            entry_id: The dead-letter entry ID.

        Returns:
            The new pending execution.

        Raises:
            NotFoundError: If the entry or its execution does not exist.
            ConflictError: If the entry was already retried or resolved.
        """
        entry = self._get_open_entry(tenant_id, entry_id)

        original = self.execution_repo.get_by_id(entry.execution_id)
        if original is None:
            raise NotFoundError("Execution", entry.execution_id)

        execution = Execution(
            workflow_id=original.workflow_id,
            tenant_id=original.tenant_id,
            trigger_data=original.trigger_data,
            status=ExecutionStatus.PENDING,
            retried_from=original.id,
        )
        self.execution_repo.create_execution(execution)

        entry.mark_retried(execution.id)
        self.repository.save(entry)

        self.logger.info(
            "Dead letter entry retried",
            entry_id=entry.id,
            original_execution_id=original.id,
            execution_id=execution.id,
        )
        return execution

    def resolve(self, tenant_id: str, entry_id: str, note: str | None = None) -> DeadLetterEntry:
        """Close an entry without retrying.

        Raises:
            NotFoundError: If the entry does not exist.
            ConflictError: If the entry was already retried or resolved.
        """
        entry = self._get_open_entry(tenant_id, entry_id)
        entry.resolve(note)
        self.repository.save(entry)

        self.logger.info("Dead letter entry resolved", entry_id=entry.id)
        return entry

    def _get_open_entry(self, tenant_id: str, entry_id: str) -> DeadLetterEntry:
        entry = self.repository.get_by_id(tenant_id, entry_id)
        if entry is None:
            raise NotFoundError("DeadLetterEntry", entry_id)
        if DeadLetterStatus(entry.status) != DeadLetterStatus.OPEN:
            raise ConflictError(
                f"Dead letter entry is already {DeadLetterStatus(entry.status).value}",
                conflict_type="entry_closed",
            )
        return entry
