"""Workflow definition models."""

from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel as PydanticBaseModel, ConfigDict, Field, field_validator, model_validator

from commerceflow.models.base import BaseModel
from commerceflow.models.execution import ErrorKind


class ActionType(str, Enum):
    """Action types the engine ships handlers for."""

    SEND_EMAIL = "send_email"
    SEND_SMS = "send_sms"
    UPDATE_INVENTORY = "update_inventory"
    ASSIGN_COURIER = "assign_courier"
    CALL_WEBHOOK = "call_webhook"
    DATABASE_QUERY = "database_query"


class TriggerType(str, Enum):
    """What fired an execution (informational for the engine)."""

    DATABASE_EVENT = "database_event"
    SCHEDULE = "schedule"
    WEBHOOK = "webhook"
    MANUAL = "manual"


class SendEmailConfig(PydanticBaseModel):
    """Configuration for send_email actions."""

    to: str
    subject: str
    body: str
    from_email: str | None = None
    body_html: str | None = None


class SendSmsConfig(PydanticBaseModel):
    """Configuration for send_sms actions."""

    to: str
    message: str
    from_number: str | None = None


class UpdateInventoryConfig(PydanticBaseModel):
    """Configuration for update_inventory actions."""

    product_id: str
    quantity: int = Field(..., ge=0)


class AssignCourierConfig(PydanticBaseModel):
    """Configuration for assign_courier actions."""

    order_id: str
    courier_id: str


class CallWebhookConfig(PydanticBaseModel):
    """Configuration for call_webhook actions."""

    url: str
    method: str = "POST"
    body: dict[str, Any] | None = None
    headers: dict[str, str] = Field(default_factory=dict)

    @field_validator("method")
    @classmethod
    def normalize_method(cls, v: str) -> str:
        """Upper-case the HTTP method."""
        return v.upper()


class DatabaseQueryConfig(PydanticBaseModel):
    """Configuration for database_query actions."""

    table: str = Field(..., min_length=1)
    operation: Literal["insert", "update", "delete"]
    data: dict[str, Any] = Field(default_factory=dict)
    filter: dict[str, Any] = Field(default_factory=dict)


ACTION_CONFIG_MODELS: dict[str, type[PydanticBaseModel]] = {
    ActionType.SEND_EMAIL.value: SendEmailConfig,
    ActionType.SEND_SMS.value: SendSmsConfig,
    ActionType.UPDATE_INVENTORY.value: UpdateInventoryConfig,
    ActionType.ASSIGN_COURIER.value: AssignCourierConfig,
    ActionType.CALL_WEBHOOK.value: CallWebhookConfig,
    ActionType.DATABASE_QUERY.value: DatabaseQueryConfig,
}


class Action(PydanticBaseModel):
    """One step of a workflow definition."""

    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., description="Action ID, unique within the workflow")
    action_type: str = Field(..., alias="type", description="Action type tag")
    config: dict[str, Any] = Field(default_factory=dict)
    edge_function: str | None = Field(
        None, description="Externally registered handler for custom action types"
    )

    @property
    def is_builtin(self) -> bool:
        """Whether the engine ships a typed handler for this action."""
        return self.action_type in ACTION_CONFIG_MODELS


class RetryConfig(PydanticBaseModel):
    """Per-workflow retry policy as authored."""

    model_config = ConfigDict(use_enum_values=True)

    max_attempts: int = Field(default=3, ge=1)
    initial_delay_seconds: int = Field(default=5, ge=1)
    max_delay_seconds: int = Field(default=300, ge=1)
    backoff_multiplier: float = Field(default=2.0, ge=1.0)
    retry_on_errors: list[ErrorKind] = Field(
        default_factory=lambda: [
            ErrorKind.TIMEOUT,
            ErrorKind.NETWORK_ERROR,
            ErrorKind.RATE_LIMIT,
            ErrorKind.SERVER_ERROR,
        ]
    )

    @model_validator(mode="after")
    def check_delay_bounds(self) -> "RetryConfig":
        """Reject a delay cap below the initial delay."""
        if self.max_delay_seconds < self.initial_delay_seconds:
            raise ValueError("max_delay_seconds must be >= initial_delay_seconds")
        return self


class WorkflowDefinition(BaseModel):
    """Workflow definition entity - ordered actions plus retry policy.

    Key Pattern:
        PK: TENANT#{tenant_id}
        SK: WFDEF#{id}
        GSI1PK: WFDEF#{id}
        GSI1SK: WFDEF
    """

    _pk_prefix: ClassVar[str] = "TENANT#"
    _sk_prefix: ClassVar[str] = "WFDEF#"

    tenant_id: str = Field(..., description="Owning tenant")
    name: str = Field(default="", max_length=200)
    description: str | None = None
    trigger_type: TriggerType = Field(default=TriggerType.MANUAL)
    is_active: bool = True

    actions: list[Action] = Field(default_factory=list)
    # Already evaluated by the trigger subsystem before an execution is created
    conditions: list[dict[str, Any]] = Field(default_factory=list)
    retry_config: RetryConfig | None = None

    def get_pk(self) -> str:
        """Get partition key: TENANT#{tenant_id}."""
        return f"TENANT#{self.tenant_id}"

    def get_sk(self) -> str:
        """Get sort key: WFDEF#{id}."""
        return f"WFDEF#{self.id}"

    def get_gsi1_keys(self) -> dict[str, str]:
        """Get GSI1 keys for lookup by ID alone."""
        return {"GSI1PK": f"WFDEF#{self.id}", "GSI1SK": "WFDEF"}
