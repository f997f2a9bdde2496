"""Pytest configuration and fixtures."""

import os
import pytest
from unittest.mock import AsyncMock, MagicMock

# Set environment variables before imports
os.environ["TABLE_NAME"] = "commerceflow-test"
os.environ["AWS_DEFAULT_REGION"] = "us-east-1"
os.environ["AWS_REGION"] = "us-east-1"
os.environ["AWS_ACCESS_KEY_ID"] = "testing"
os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
os.environ.pop("DEAD_LETTER_QUEUE_URL", None)


@pytest.fixture
def aws_credentials():
    """Mock AWS credentials for moto."""
    os.environ["AWS_ACCESS_KEY_ID"] = "testing"
    os.environ["AWS_SECRET_ACCESS_KEY"] = "testing"
    os.environ["AWS_SECURITY_TOKEN"] = "testing"
    os.environ["AWS_SESSION_TOKEN"] = "testing"
    os.environ["AWS_DEFAULT_REGION"] = "us-east-1"


@pytest.fixture
def dynamodb_table(aws_credentials):
    """Create mocked DynamoDB table."""
    import boto3
    from moto import mock_aws

    with mock_aws():
        dynamodb = boto3.resource("dynamodb", region_name="us-east-1")

        table = dynamodb.create_table(
            TableName="commerceflow-test",
            KeySchema=[
                {"AttributeName": "PK", "KeyType": "HASH"},
                {"AttributeName": "SK", "KeyType": "RANGE"},
            ],
            AttributeDefinitions=[
                {"AttributeName": "PK", "AttributeType": "S"},
                {"AttributeName": "SK", "AttributeType": "S"},
                {"AttributeName": "GSI1PK", "AttributeType": "S"},
                {"AttributeName": "GSI1SK", "AttributeType": "S"},
            ],
            GlobalSecondaryIndexes=[
                {
                    "IndexName": "GSI1",
                    "KeySchema": [
                        {"AttributeName": "GSI1PK", "KeyType": "HASH"},
                        {"AttributeName": "GSI1SK", "KeyType": "RANGE"},
                    ],
                    "Projection": {"ProjectionType": "ALL"},
                },
            ],
            BillingMode="PAY_PER_REQUEST",
        )

        table.wait_until_exists()

        yield table


@pytest.fixture
def sample_workflow():
    """Create a sample order-fulfilment workflow."""
    from commerceflow.models.workflow import Action, RetryConfig, TriggerType, WorkflowDefinition

    return WorkflowDefinition(
        id="wf-fulfilment",
        tenant_id="tenant-1",
        name="Order fulfilment",
        trigger_type=TriggerType.DATABASE_EVENT,
        actions=[
            Action(
                id="notify",
                type="send_email",
                config={
                    "to": "{{trigger.customer_email}}",
                    "subject": "Order {{trigger.order_id}} confirmed",
                    "body": "Thanks for your order!",
                },
            ),
            Action(
                id="stock",
                type="update_inventory",
                config={"product_id": "{{trigger.product_id}}", "quantity": 7},
            ),
        ],
        retry_config=RetryConfig(
            max_attempts=3,
            initial_delay_seconds=5,
            max_delay_seconds=300,
            backoff_multiplier=2.0,
        ),
    )


@pytest.fixture
def sample_execution():
    """Create a pending execution for the sample workflow."""
    from commerceflow.models.execution import Execution

    return Execution(
        id="exec-1",
        workflow_id="wf-fulfilment",
        tenant_id="tenant-1",
        trigger_data={
            "order_id": "ORD-100",
            "customer_email": "buyer@example.com",
            "product_id": "SKU-1",
        },
    )


@pytest.fixture
def action_context():
    """Create an action context with a typical trigger payload."""
    from commerceflow.actions.base import ActionContext

    return ActionContext(
        execution_id="exec-1",
        tenant_id="tenant-1",
        workflow_id="wf-fulfilment",
        trigger_data={
            "order_id": "ORD-100",
            "customer_email": "buyer@example.com",
            "customer": {"name": "Ada", "phone": "+15551234567"},
        },
    )


@pytest.fixture
def mock_dispatcher():
    """Dispatcher whose dispatch coroutine is controlled per test."""
    dispatcher = MagicMock()
    dispatcher.dispatch = AsyncMock(return_value={"ok": True})
    return dispatcher


@pytest.fixture
def mock_sqs():
    """Mock SQS client."""
    mock_client = MagicMock()
    mock_client.send_message.return_value = {"MessageId": "test-message-id"}
    return mock_client


class LambdaContext:
    """Mock Lambda context."""

    def __init__(self, remaining_ms: int = 30000):
        self.function_name = "test-function"
        self.memory_limit_in_mb = 128
        self.invoked_function_arn = "arn:aws:lambda:us-east-1:123456789:function:test"
        self.aws_request_id = "test-request-id"
        self.remaining_ms = remaining_ms

    def get_remaining_time_in_millis(self):
        return self.remaining_ms


@pytest.fixture
def lambda_context():
    """Create a mock Lambda context."""
    return LambdaContext()
