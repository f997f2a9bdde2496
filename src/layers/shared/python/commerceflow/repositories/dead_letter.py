"""Dead-letter entry repository."""

from commerceflow.models.dead_letter import DeadLetterEntry, DeadLetterStatus
from commerceflow.repositories.base import BaseRepository


class DeadLetterRepository(BaseRepository[DeadLetterEntry]):
    """Repository for DeadLetterEntry entities."""

    def __init__(self, table_name: str | None = None):
        """Initialize dead-letter repository."""
        super().__init__(DeadLetterEntry, table_name)

    def get_by_id(self, tenant_id: str, entry_id: str) -> DeadLetterEntry | None:
        """Get a dead-letter entry by ID.

        Args:
            tenant_id: The tenant ID.
            entry_id: The entry ID.

        Returns:
            DeadLetterEntry or None if not found.
        """
        return self.get(pk=f"TENANT#{tenant_id}", sk=f"DLQ#{entry_id}")

    def list_by_tenant(self, tenant_id: str, limit: int = 50) -> list[DeadLetterEntry]:
        """List a tenant's dead-letter entries, newest first."""
        items, _ = self.query(
            pk=f"TENANT#{tenant_id}",
            sk_begins_with="DLQ#",
            limit=limit,
            scan_forward=False,
        )
        return items

    def list_by_status(
        self,
        status: DeadLetterStatus,
        limit: int = 50,
    ) -> list[DeadLetterEntry]:
        """List entries across tenants by review state (GSI1)."""
        items, _ = self.query(
            pk=f"DLQ_STATUS#{status.value}",
            index_name="GSI1",
            limit=limit,
        )
        return items

    def create_entry(self, entry: DeadLetterEntry) -> DeadLetterEntry:
        """Create a new dead-letter entry."""
        return self.create(entry, gsi_keys=entry.get_gsi1_keys())

    def save(self, entry: DeadLetterEntry) -> DeadLetterEntry:
        """Persist changes to an entry."""
        return self.update(entry, gsi_keys=entry.get_gsi1_keys())
