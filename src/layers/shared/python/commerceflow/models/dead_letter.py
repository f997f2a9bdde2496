"""Dead-letter entry model for executions that need operator attention."""

from datetime import datetime
from enum import Enum
from typing import ClassVar

from pydantic import Field

from commerceflow.models.base import BaseModel, utc_now


class DeadLetterStatus(str, Enum):
    """Review state of a dead-letter entry."""

    OPEN = "open"
    RETRIED = "retried"
    RESOLVED = "resolved"


class DeadLetterEntry(BaseModel):
    """Dead-letter entry entity.

    Key Pattern:
        PK: TENANT#{tenant_id}
        SK: DLQ#{id}
        GSI1PK: DLQ_STATUS#{status}
        GSI1SK: {created_at}
    """

    _pk_prefix: ClassVar[str] = "TENANT#"
    _sk_prefix: ClassVar[str] = "DLQ#"

    execution_id: str = Field(..., description="Dead-lettered execution")
    workflow_id: str = Field(..., description="Workflow definition ID")
    tenant_id: str = Field(..., description="Owning tenant")

    error_type: str | None = Field(None, description="Classified error kind")
    error_message: str | None = None
    retry_count: int = 0

    status: DeadLetterStatus = Field(default=DeadLetterStatus.OPEN)
    retried_execution_id: str | None = Field(None, description="Execution created by an operator retry")
    resolution_note: str | None = None
    resolved_at: datetime | None = None

    def get_pk(self) -> str:
        """Get partition key: TENANT#{tenant_id}."""
        return f"TENANT#{self.tenant_id}"

    def get_sk(self) -> str:
        """Get sort key: DLQ#{id}."""
        return f"DLQ#{self.id}"

    def get_gsi1_keys(self) -> dict[str, str]:
        """Get GSI1 keys for listing entries by review state."""
        return {
            "GSI1PK": f"DLQ_STATUS#{DeadLetterStatus(self.status).value}",
            "GSI1SK": self.created_at.isoformat(),
        }

    def mark_retried(self, execution_id: str) -> None:
        """Record that an operator re-queued the execution."""
        self.status = DeadLetterStatus.RETRIED
        self.retried_execution_id = execution_id
        self.resolved_at = utc_now()

    def resolve(self, note: str | None = None) -> None:
        """Close the entry without retrying."""
        self.status = DeadLetterStatus.RESOLVED
        self.resolution_note = note
        self.resolved_at = utc_now()
