"""Tests for Pydantic models."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from pydantic import ValidationError as PydanticValidationError

from commerceflow.models.base import generate_ulid
from commerceflow.models.commerce import ProductStock, TenantRecord
from commerceflow.models.dead_letter import DeadLetterEntry, DeadLetterStatus
from commerceflow.models.execution import (
    ErrorDetails,
    ErrorKind,
    Execution,
    ExecutionStatus,
    StepOutcome,
    StepResult,
)
from commerceflow.models.workflow import (
    Action,
    CallWebhookConfig,
    DatabaseQueryConfig,
    RetryConfig,
    WorkflowDefinition,
)


class TestBaseModel:
    """Tests for BaseModel."""

    def test_generate_ulid(self):
        """Test ULID generation."""
        ulid1 = generate_ulid()
        ulid2 = generate_ulid()

        assert len(ulid1) == 26
        assert ulid1 != ulid2

    def test_model_timestamps(self):
        """Test automatic timestamps."""
        stock = ProductStock(id="SKU-1", tenant_id="tenant-1")

        assert stock.created_at is not None
        assert stock.updated_at is not None
        assert stock.version == 1

    def test_model_serialization(self, sample_workflow):
        """Test DynamoDB serialization."""
        db_item = sample_workflow.to_dynamodb()

        assert db_item["id"] == "wf-fulfilment"
        assert db_item["actions"][0]["type"] == "send_email"
        assert db_item["retry_config"]["backoff_multiplier"] == Decimal("2.0")
        assert isinstance(db_item["created_at"], str)
        assert "description" not in db_item

    def test_model_deserialization(self):
        """Test DynamoDB deserialization."""
        db_item = {
            "id": "SKU-1",
            "tenant_id": "tenant-1",
            "quantity": Decimal("12"),
            "created_at": "2024-01-01T12:00:00+00:00",
            "updated_at": "2024-01-01T12:00:00+00:00",
            "version": Decimal("3"),
        }

        stock = ProductStock.from_dynamodb(db_item)

        assert stock.quantity == 12
        assert stock.version == 3
        assert stock.created_at == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)

    def test_payload_strings_untouched(self):
        """Test strings inside free-form maps are returned exactly as stored."""
        record = TenantRecord.from_dynamodb(
            {
                "id": "r1",
                "tenant_id": "t",
                "table": "notes",
                "created_at": "2024-01-01T12:00:00+00:00",
                "data": {"text": "2024 was good", "due": "2026-03-01T10:00:00Z"},
            }
        )

        assert record.data == {"text": "2024 was good", "due": "2026-03-01T10:00:00Z"}
        assert record.created_at == datetime(2024, 1, 1, 12, tzinfo=timezone.utc)


class TestExecution:
    """Tests for Execution state transitions."""

    def test_defaults(self, sample_execution):
        """Test a new execution starts pending with no attempts."""
        assert sample_execution.status == ExecutionStatus.PENDING
        assert sample_execution.retry_count == 0
        assert sample_execution.attempt_number == 1
        assert sample_execution.execution_log == []
        assert not sample_execution.is_terminal

    def test_keys(self, sample_execution):
        """Test key generation."""
        assert sample_execution.get_keys() == {"PK": "EXEC#exec-1", "SK": "EXEC"}
        gsi = sample_execution.get_gsi1_keys()
        assert gsi["GSI1PK"] == "EXEC_STATUS#pending"
        assert gsi["GSI1SK"] == sample_execution.created_at.isoformat()

    def test_retry_gsi_sorts_by_due_time(self, sample_execution):
        """Test a parked execution is indexed by next_retry_at."""
        due = datetime(2030, 1, 1, tzinfo=timezone.utc)
        sample_execution.start()
        sample_execution.schedule_retry(due)

        gsi = sample_execution.get_gsi1_keys()
        assert gsi["GSI1PK"] == "EXEC_STATUS#failed_pending_retry"
        assert gsi["GSI1SK"] == due.isoformat()

    def test_complete(self, sample_execution):
        """Test completion stamps timing."""
        sample_execution.start()
        sample_execution.complete()

        assert sample_execution.status == ExecutionStatus.COMPLETED
        assert sample_execution.is_terminal
        assert sample_execution.completed_at is not None
        assert sample_execution.duration_ms is not None

    def test_record_failure_then_retry(self, sample_execution):
        """Test a retryable failure increments the count and parks the execution."""
        sample_execution.start()
        sample_execution.record_failure(
            ErrorDetails(error_type=ErrorKind.TIMEOUT, message="timed out", action_id="notify"),
            is_retryable=True,
        )
        due = datetime.now(timezone.utc) + timedelta(seconds=5)
        sample_execution.schedule_retry(due)

        assert sample_execution.retry_count == 1
        assert sample_execution.attempt_number == 2
        assert sample_execution.last_error == "timed out"
        assert sample_execution.error_details.error_type == "timeout"
        assert sample_execution.status == ExecutionStatus.FAILED_PENDING_RETRY
        assert sample_execution.next_retry_at == due
        assert not sample_execution.is_terminal

    def test_start_clears_due_time(self, sample_execution):
        """Test starting a retry clears next_retry_at."""
        sample_execution.schedule_retry(datetime.now(timezone.utc))
        sample_execution.start()

        assert sample_execution.status == ExecutionStatus.RUNNING
        assert sample_execution.next_retry_at is None

    def test_dead_letter(self, sample_execution):
        """Test dead-lettering is terminal and not retryable."""
        sample_execution.start()
        sample_execution.record_failure(
            ErrorDetails(error_type=ErrorKind.AUTH_ERROR, message="denied"),
            is_retryable=False,
        )
        sample_execution.dead_letter()

        assert sample_execution.status == ExecutionStatus.DEAD_LETTERED
        assert sample_execution.is_terminal
        assert sample_execution.is_retryable is False
        assert sample_execution.next_retry_at is None

    def test_append_step_keeps_order(self, sample_execution):
        """Test the audit log is append-only."""
        first = StepResult(action_id="a", action_type="send_email", status=StepOutcome.SUCCESS)
        second = StepResult(action_id="b", action_type="send_sms", status=StepOutcome.FAILED)

        sample_execution.append_step(first)
        sample_execution.append_step(second)

        assert [s.action_id for s in sample_execution.execution_log] == ["a", "b"]
        assert sample_execution.execution_log[1].status == "failed"

    def test_round_trip(self, sample_execution):
        """Test an execution with a log survives DynamoDB serialization."""
        sample_execution.start()
        sample_execution.append_step(
            StepResult(
                action_id="notify",
                action_type="send_email",
                status=StepOutcome.FAILED,
                error="timed out",
                error_type=ErrorKind.TIMEOUT,
                duration_ms=12,
            )
        )

        restored = Execution.from_dynamodb(sample_execution.to_dynamodb())

        assert restored.status == ExecutionStatus.RUNNING
        assert restored.trigger_data == sample_execution.trigger_data
        assert restored.execution_log[0].error_type == "timeout"
        assert restored.execution_log[0].duration_ms == 12

    def test_negative_retry_count_rejected(self):
        """Test retry_count cannot go negative."""
        with pytest.raises(PydanticValidationError):
            Execution(workflow_id="wf", tenant_id="t", retry_count=-1)


class TestWorkflowDefinition:
    """Tests for workflow definitions."""

    def test_keys(self, sample_workflow):
        """Test key generation."""
        assert sample_workflow.get_pk() == "TENANT#tenant-1"
        assert sample_workflow.get_sk() == "WFDEF#wf-fulfilment"
        assert sample_workflow.get_gsi1_keys() == {"GSI1PK": "WFDEF#wf-fulfilment", "GSI1SK": "WFDEF"}

    def test_action_type_alias(self):
        """Test actions accept the type field name."""
        action = Action.model_validate({"id": "a1", "type": "send_sms", "config": {}})

        assert action.action_type == "send_sms"
        assert action.is_builtin
        assert not Action(id="a2", type="award_points").is_builtin

    def test_actions_ordered(self, sample_workflow):
        """Test action order is preserved."""
        assert [a.id for a in sample_workflow.actions] == ["notify", "stock"]

    def test_round_trip_without_retry_config(self):
        """Test a definition without retry_config loads with None."""
        workflow = WorkflowDefinition(id="wf", tenant_id="t", actions=[Action(id="a", type="send_email")])

        restored = WorkflowDefinition.from_dynamodb(workflow.to_dynamodb())

        assert restored.retry_config is None
        assert restored.actions[0].action_type == "send_email"

    def test_retry_config_bounds(self):
        """Test retry config rejects nonsensical values."""
        with pytest.raises(PydanticValidationError):
            RetryConfig(max_attempts=0)
        with pytest.raises(PydanticValidationError):
            RetryConfig(backoff_multiplier=0.5)
        with pytest.raises(PydanticValidationError):
            RetryConfig(initial_delay_seconds=30, max_delay_seconds=10)


class TestActionConfigs:
    """Tests for typed action configurations."""

    def test_webhook_method_upper_cased(self):
        """Test HTTP methods are normalized."""
        assert CallWebhookConfig(url="https://example.com", method="patch").method == "PATCH"
        assert CallWebhookConfig(url="https://example.com").method == "POST"

    def test_database_query_operation(self):
        """Test only known operations are accepted."""
        with pytest.raises(PydanticValidationError):
            DatabaseQueryConfig(table="notes", operation="select")


class TestCommerceModels:
    """Tests for commerce entities."""

    def test_tenant_record_matches(self):
        """Test flat equality filters."""
        record = TenantRecord(id="r1", tenant_id="t", table="notes", data={"kind": "gift", "qty": 2})

        assert record.matches({"kind": "gift"})
        assert record.matches({"id": "r1", "qty": 2})
        assert record.matches({})
        assert not record.matches({"kind": "other"})
        assert not record.matches({"missing": "x"})

    def test_tenant_record_keys(self):
        """Test records are partitioned per tenant and table."""
        record = TenantRecord(id="r1", tenant_id="t", table="notes")
        assert record.get_keys() == {"PK": "TENANT#t#notes", "SK": "REC#r1"}

    def test_stock_quantity_non_negative(self):
        """Test stock cannot be negative."""
        with pytest.raises(PydanticValidationError):
            ProductStock(id="SKU-1", tenant_id="t", quantity=-1)


class TestDeadLetterEntry:
    """Tests for DeadLetterEntry."""

    def test_keys(self):
        """Test key generation."""
        entry = DeadLetterEntry(id="dl-1", execution_id="e", workflow_id="w", tenant_id="t")

        assert entry.get_keys() == {"PK": "TENANT#t", "SK": "DLQ#dl-1"}
        assert entry.get_gsi1_keys()["GSI1PK"] == "DLQ_STATUS#open"

    def test_mark_retried(self):
        """Test retry bookkeeping."""
        entry = DeadLetterEntry(execution_id="e", workflow_id="w", tenant_id="t")
        entry.mark_retried("exec-2")

        assert entry.status == DeadLetterStatus.RETRIED
        assert entry.retried_execution_id == "exec-2"
        assert entry.get_gsi1_keys()["GSI1PK"] == "DLQ_STATUS#retried"

    def test_resolve(self):
        """Test resolution bookkeeping."""
        entry = DeadLetterEntry(execution_id="e", workflow_id="w", tenant_id="t")
        entry.resolve("handled by phone")

        assert entry.status == DeadLetterStatus.RESOLVED
        assert entry.resolution_note == "handled by phone"
        assert entry.resolved_at is not None
