"""Tests for the dead-letter handler Lambda."""

import json
from unittest.mock import patch

import pytest

from commerceflow.dlq.dead_letter import DeadLetterService, DeadLetterSink
from commerceflow.execution.runner import ExecutionRunner
from commerceflow.models.dead_letter import DeadLetterStatus
from commerceflow.models.execution import ErrorDetails, ErrorKind, ExecutionStatus
from commerceflow.repositories.dead_letter import DeadLetterRepository
from commerceflow.repositories.workflow import ExecutionRepository, WorkflowDefinitionRepository


@pytest.fixture
def runner(dynamodb_table, mock_dispatcher):
    """Runner backed by the mocked table and a mock dispatcher."""
    return ExecutionRunner(
        execution_repo=ExecutionRepository(),
        workflow_repo=WorkflowDefinitionRepository(),
        dispatcher=mock_dispatcher,
        dead_letter_sink=DeadLetterSink(DeadLetterRepository()),
    )


@pytest.fixture
def entry(dynamodb_table, sample_workflow, sample_execution):
    """Store a dead-lettered execution and its open entry."""
    WorkflowDefinitionRepository().create_definition(sample_workflow)

    sample_execution.start()
    sample_execution.record_failure(
        ErrorDetails(error_type=ErrorKind.AUTH_ERROR, message="Invalid API key", status_code=401),
        is_retryable=False,
    )
    sample_execution.dead_letter()
    ExecutionRepository().create_execution(sample_execution)

    return DeadLetterSink(DeadLetterRepository()).send(sample_execution)


@pytest.fixture(autouse=True)
def fresh_service(dynamodb_table):
    """Use a service bound to the mocked table for every test."""
    with patch("dlq_handler.get_service", return_value=DeadLetterService()):
        yield


class TestOperatorActions:
    """Tests for directly invoked operator actions."""

    def test_list(self, entry, lambda_context):
        """Test listing open entries."""
        from dlq_handler import handler

        result = handler({"action": "list", "tenant_id": "tenant-1"}, lambda_context)

        assert result["status"] == "ok"
        assert [e["id"] for e in result["entries"]] == [entry.id]
        assert result["entries"][0]["error_type"] == "auth_error"

    def test_tenant_required(self, lambda_context):
        """Test actions are scoped to a tenant."""
        from dlq_handler import handler

        result = handler({"action": "list"}, lambda_context)

        assert result == {"status": "error", "error": "tenant_id is required"}

    def test_retry_runs_new_execution(self, entry, runner, mock_dispatcher, lambda_context):
        """Test retry re-queues and runs the first attempt."""
        from dlq_handler import handler

        with patch("dlq_handler.get_runner", return_value=runner):
            result = handler(
                {"action": "retry", "tenant_id": "tenant-1", "entry_id": entry.id},
                lambda_context,
            )

        assert result["status"] == "ok"
        assert result["execution"]["status"] == "completed"
        assert result["execution"]["execution_id"] != "exec-1"
        assert mock_dispatcher.dispatch.await_count == 2

        repo = ExecutionRepository()
        assert repo.get_by_id("exec-1").status == ExecutionStatus.DEAD_LETTERED
        new_execution = repo.get_by_id(result["execution"]["execution_id"])
        assert new_execution.retried_from == "exec-1"

        stored = DeadLetterRepository().get_by_id("tenant-1", entry.id)
        assert stored.status == DeadLetterStatus.RETRIED

    def test_retry_closed_entry(self, entry, runner, lambda_context):
        """Test a closed entry cannot be retried."""
        from dlq_handler import handler

        event = {"action": "retry", "tenant_id": "tenant-1", "entry_id": entry.id}
        with patch("dlq_handler.get_runner", return_value=runner):
            handler(event, lambda_context)
            result = handler(event, lambda_context)

        assert result["status"] == "error"
        assert result["error_code"] == "CONFLICT"

    def test_retry_requires_entry_id(self, lambda_context):
        """Test retry needs an entry."""
        from dlq_handler import handler

        result = handler({"action": "retry", "tenant_id": "tenant-1"}, lambda_context)

        assert result == {"status": "error", "error": "entry_id is required"}

    def test_resolve(self, entry, lambda_context):
        """Test resolving an entry."""
        from dlq_handler import handler

        result = handler(
            {"action": "resolve", "tenant_id": "tenant-1", "entry_id": entry.id, "note": "refunded"},
            lambda_context,
        )

        assert result["status"] == "ok"
        assert result["entry"]["status"] == "resolved"
        assert result["entry"]["resolution_note"] == "refunded"

    def test_unknown_entry(self, lambda_context):
        """Test a missing entry reports not found."""
        from dlq_handler import handler

        result = handler(
            {"action": "resolve", "tenant_id": "tenant-1", "entry_id": "missing"},
            lambda_context,
        )

        assert result["status"] == "error"
        assert result["error_code"] == "NOT_FOUND"

    def test_unknown_action(self, lambda_context):
        """Test unsupported actions are rejected."""
        from dlq_handler import handler

        result = handler({"action": "purge", "tenant_id": "tenant-1"}, lambda_context)

        assert result == {"status": "error", "error": "Unknown action: purge"}


class TestAlerts:
    """Tests for SQS alert processing."""

    def _event(self, *bodies):
        return {
            "Records": [
                {"messageId": f"msg-{i}", "body": body if isinstance(body, str) else json.dumps(body)}
                for i, body in enumerate(bodies)
            ]
        }

    def test_open_entry_alerted(self, entry, lambda_context):
        """Test alerts for open entries are processed."""
        from dlq_handler import handler

        message = {"entry_id": entry.id, "tenant_id": "tenant-1", "execution_id": "exec-1"}
        result = handler(self._event(message), lambda_context)

        assert result == {"batchItemFailures": []}

    def test_malformed_and_closed_messages(self, entry, lambda_context):
        """Test bad JSON and already closed entries are acknowledged."""
        from dlq_handler import handler

        DeadLetterService().resolve("tenant-1", entry.id)
        message = {"entry_id": entry.id, "tenant_id": "tenant-1"}
        result = handler(self._event("{broken", message), lambda_context)

        assert result == {"batchItemFailures": []}

    def test_lookup_failure_reported(self, lambda_context):
        """Test a failed entry lookup marks the record for redelivery."""
        from dlq_handler import handler

        with patch("dlq_handler.get_service") as mock_get_service:
            mock_get_service.return_value.repository.get_by_id.side_effect = RuntimeError("throttled")
            result = handler(self._event({"entry_id": "e", "tenant_id": "t"}), lambda_context)

        assert result == {"batchItemFailures": [{"itemIdentifier": "msg-0"}]}
