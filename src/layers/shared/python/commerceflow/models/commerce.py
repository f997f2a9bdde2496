"""Commerce entities mutated by workflow actions."""

from datetime import datetime
from typing import Any, ClassVar

from pydantic import Field

from commerceflow.models.base import BaseModel


class ProductStock(BaseModel):
    """Stock level for one product.

    Key Pattern:
        PK: TENANT#{tenant_id}
        SK: PRODUCT#{id}
    """

    _pk_prefix: ClassVar[str] = "TENANT#"
    _sk_prefix: ClassVar[str] = "PRODUCT#"

    tenant_id: str
    quantity: int = Field(default=0, ge=0)

    def get_pk(self) -> str:
        """Get partition key: TENANT#{tenant_id}."""
        return f"TENANT#{self.tenant_id}"

    def get_sk(self) -> str:
        """Get sort key: PRODUCT#{id}."""
        return f"PRODUCT#{self.id}"


class Order(BaseModel):
    """Order as seen by the courier-assignment action.

    Key Pattern:
        PK: TENANT#{tenant_id}
        SK: ORDER#{id}
    """

    _pk_prefix: ClassVar[str] = "TENANT#"
    _sk_prefix: ClassVar[str] = "ORDER#"

    tenant_id: str
    status: str = "pending"
    courier_id: str | None = None
    courier_assigned_at: datetime | None = None

    def get_pk(self) -> str:
        """Get partition key: TENANT#{tenant_id}."""
        return f"TENANT#{self.tenant_id}"

    def get_sk(self) -> str:
        """Get sort key: ORDER#{id}."""
        return f"ORDER#{self.id}"


class TenantRecord(BaseModel):
    """Generic tenant-scoped record written by database_query actions.

    Key Pattern:
        PK: TENANT#{tenant_id}#{table}
        SK: REC#{id}
    """

    _pk_prefix: ClassVar[str] = "TENANT#"
    _sk_prefix: ClassVar[str] = "REC#"

    tenant_id: str
    table: str
    data: dict[str, Any] = Field(default_factory=dict)

    def get_pk(self) -> str:
        """Get partition key: TENANT#{tenant_id}#{table}."""
        return f"TENANT#{self.tenant_id}#{self.table}"

    def get_sk(self) -> str:
        """Get sort key: REC#{id}."""
        return f"REC#{self.id}"

    def matches(self, filters: dict[str, Any]) -> bool:
        """Check a flat equality filter against the record."""
        for key, expected in filters.items():
            actual = self.id if key == "id" else self.data.get(key)
            if actual != expected:
                return False
        return True
