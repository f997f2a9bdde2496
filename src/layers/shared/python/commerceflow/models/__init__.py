"""Pydantic models for CommerceFlow entities."""

from commerceflow.models.base import BaseModel, TimestampMixin
from commerceflow.models.commerce import Order, ProductStock, TenantRecord
from commerceflow.models.dead_letter import DeadLetterEntry, DeadLetterStatus
from commerceflow.models.execution import (
    ErrorDetails,
    ErrorKind,
    Execution,
    ExecutionStatus,
    StepOutcome,
    StepResult,
    TERMINAL_STATUSES,
)
from commerceflow.models.workflow import (
    ACTION_CONFIG_MODELS,
    Action,
    ActionType,
    AssignCourierConfig,
    CallWebhookConfig,
    DatabaseQueryConfig,
    RetryConfig,
    SendEmailConfig,
    SendSmsConfig,
    TriggerType,
    UpdateInventoryConfig,
    WorkflowDefinition,
)

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    # Commerce
    "Order",
    "ProductStock",
    "TenantRecord",
    # Dead letter
    "DeadLetterEntry",
    "DeadLetterStatus",
    # Execution
    "ErrorDetails",
    "ErrorKind",
    "Execution",
    "ExecutionStatus",
    "StepOutcome",
    "StepResult",
    "TERMINAL_STATUSES",
    # Workflow
    "ACTION_CONFIG_MODELS",
    "Action",
    "ActionType",
    "AssignCourierConfig",
    "CallWebhookConfig",
    "DatabaseQueryConfig",
    "RetryConfig",
    "SendEmailConfig",
    "SendSmsConfig",
    "TriggerType",
    "UpdateInventoryConfig",
    "WorkflowDefinition",
]
