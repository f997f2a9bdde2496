"""update_inventory action handler."""

from typing import Any

from commerceflow.actions.base import ActionContext, ActionHandler
from commerceflow.models.workflow import ActionType, UpdateInventoryConfig
from commerceflow.repositories.commerce import InventoryRepository


class UpdateInventoryHandler(ActionHandler):
    """Set a product's stock to an absolute quantity (last write wins)."""

    action_type = ActionType.UPDATE_INVENTORY.value
    config_model = UpdateInventoryConfig

    def __init__(self, inventory_repo: InventoryRepository | None = None):
        """Initialize the handler."""
        super().__init__()
        self.inventory_repo = inventory_repo or InventoryRepository()

    async def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Write the new stock level."""
        update: UpdateInventoryConfig = self.validate_config(config, context)

        stock = self.inventory_repo.set_quantity(
            tenant_id=context.tenant_id,
            product_id=update.product_id,
            quantity=update.quantity,
        )

        self.logger.info(
            "Inventory updated",
            execution_id=context.execution_id,
            product_id=update.product_id,
            quantity=stock.quantity,
        )

        return {"product_id": update.product_id, "quantity": stock.quantity}
