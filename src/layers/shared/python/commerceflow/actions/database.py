"""database_query action handler."""

from typing import Any

from commerceflow.actions.base import ActionContext, ActionHandler
from commerceflow.models.workflow import ActionType, DatabaseQueryConfig
from commerceflow.repositories.commerce import TenantRecordRepository
from commerceflow.utils.exceptions import ActionValidationError


class DatabaseQueryHandler(ActionHandler):
    """Insert, update or delete generic tenant-scoped records."""

    action_type = ActionType.DATABASE_QUERY.value
    config_model = DatabaseQueryConfig

    def __init__(self, record_repo: TenantRecordRepository | None = None):
        """Initialize the handler."""
        super().__init__()
        self.record_repo = record_repo or TenantRecordRepository()

    async def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Run the mutation.

        Update and delete require a non-empty equality filter so a
        misconfigured action cannot touch the whole table.

        Raises:
            ActionValidationError: If the config is incomplete.
        """
        query: DatabaseQueryConfig = self.validate_config(config, context)

        if query.operation == "insert":
            if not query.data:
                raise ActionValidationError("database_query insert requires data")
            record = self.record_repo.insert(context.tenant_id, query.table, query.data)
            result = {"operation": "insert", "table": query.table, "id": record.id}

        elif query.operation == "update":
            if not query.filter or not query.data:
                raise ActionValidationError("database_query update requires filter and data")
            count = self.record_repo.update_matching(
                context.tenant_id, query.table, query.filter, query.data
            )
            result = {"operation": "update", "table": query.table, "affected": count}

        else:
            if not query.filter:
                raise ActionValidationError("database_query delete requires filter")
            count = self.record_repo.delete_matching(context.tenant_id, query.table, query.filter)
            result = {"operation": "delete", "table": query.table, "affected": count}

        self.logger.info("Database query executed", execution_id=context.execution_id, **result)
        return result
