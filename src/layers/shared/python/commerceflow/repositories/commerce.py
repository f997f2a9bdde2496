"""Repositories for commerce entities touched by workflow actions."""

import structlog

from commerceflow.models.base import generate_ulid, utc_now
from commerceflow.models.commerce import Order, ProductStock, TenantRecord
from commerceflow.repositories.base import BaseRepository

logger = structlog.get_logger()


class InventoryRepository(BaseRepository[ProductStock]):
    """Repository for product stock levels."""

    def __init__(self, table_name: str | None = None):
        """Initialize inventory repository."""
        super().__init__(ProductStock, table_name)

    def get_by_id(self, tenant_id: str, product_id: str) -> ProductStock | None:
        """Get stock for a product."""
        return self.get(pk=f"TENANT#{tenant_id}", sk=f"PRODUCT#{product_id}")

    def set_quantity(self, tenant_id: str, product_id: str, quantity: int) -> ProductStock:
        """Set the absolute stock quantity for a product.

        Last write wins: no version check is applied.

        Args:
            tenant_id: The tenant ID.
            product_id: The product ID.
            quantity: New absolute quantity.

        Returns:
            The saved stock record.
        """
        stock = self.get_by_id(tenant_id, product_id) or ProductStock(
            id=product_id,
            tenant_id=tenant_id,
        )
        stock.quantity = quantity
        stock.increment_version()
        return self.put(stock)


class OrderRepository(BaseRepository[Order]):
    """Repository for orders."""

    def __init__(self, table_name: str | None = None):
        """Initialize order repository."""
        super().__init__(Order, table_name)

    def get_by_id(self, tenant_id: str, order_id: str) -> Order | None:
        """Get an order by ID."""
        return self.get(pk=f"TENANT#{tenant_id}", sk=f"ORDER#{order_id}")

    def assign_courier(self, tenant_id: str, order_id: str, courier_id: str) -> Order:
        """Assign a courier to an order.

        Args:
            tenant_id: The tenant ID.
            order_id: The order ID.
            courier_id: The courier to assign.

        Returns:
            The updated order.

        Raises:
            NotFoundError: If the order does not exist.
        """
        order = self.get_or_raise(
            pk=f"TENANT#{tenant_id}",
            sk=f"ORDER#{order_id}",
            resource_type="Order",
        )
        order.courier_id = courier_id
        order.courier_assigned_at = utc_now()
        order.status = "assigned"
        return self.update(order)


class TenantRecordRepository(BaseRepository[TenantRecord]):
    """Repository for generic tenant-scoped records."""

    def __init__(self, table_name: str | None = None):
        """Initialize tenant record repository."""
        super().__init__(TenantRecord, table_name)

    def list_matching(
        self,
        tenant_id: str,
        table: str,
        filters: dict,
    ) -> list[TenantRecord]:
        """List records in a table matching a flat equality filter."""
        matched: list[TenantRecord] = []
        last_key = None
        while True:
            items, last_key = self.query(
                pk=f"TENANT#{tenant_id}#{table}",
                sk_begins_with="REC#",
                last_key=last_key,
            )
            matched.extend(item for item in items if item.matches(filters))
            if not last_key:
                return matched

    def insert(self, tenant_id: str, table: str, data: dict) -> TenantRecord:
        """Insert a new record."""
        record = TenantRecord(
            id=str(data.get("id") or generate_ulid()),
            tenant_id=tenant_id,
            table=table,
            data={k: v for k, v in data.items() if k != "id"},
        )
        return self.create(record)

    def update_matching(self, tenant_id: str, table: str, filters: dict, data: dict) -> int:
        """Merge data into every record matching the filter.

        Returns:
            Number of records updated.
        """
        records = self.list_matching(tenant_id, table, filters)
        for record in records:
            record.data = {**record.data, **data}
            self.update(record, check_version=False)

        logger.debug("Records updated", table=table, count=len(records))
        return len(records)

    def delete_matching(self, tenant_id: str, table: str, filters: dict) -> int:
        """Delete every record matching the filter.

        Returns:
            Number of records deleted.
        """
        deleted = 0
        for record in self.list_matching(tenant_id, table, filters):
            if self.delete(record.get_pk(), record.get_sk()):
                deleted += 1

        logger.debug("Records deleted", table=table, count=deleted)
        return deleted
