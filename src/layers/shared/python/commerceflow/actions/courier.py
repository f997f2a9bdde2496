"""assign_courier action handler."""

from typing import Any

from commerceflow.actions.base import ActionContext, ActionHandler
from commerceflow.models.workflow import ActionType, AssignCourierConfig
from commerceflow.repositories.commerce import OrderRepository
from commerceflow.utils.exceptions import ActionError, NotFoundError


class AssignCourierHandler(ActionHandler):
    """Assign a courier to an order."""

    action_type = ActionType.ASSIGN_COURIER.value
    config_model = AssignCourierConfig

    def __init__(self, order_repo: OrderRepository | None = None):
        """Initialize the handler."""
        super().__init__()
        self.order_repo = order_repo or OrderRepository()

    async def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Record the courier on the order.

        Raises:
            ActionError: With status 404 if the order does not exist.
        """
        assignment: AssignCourierConfig = self.validate_config(config, context)

        try:
            order = self.order_repo.assign_courier(
                tenant_id=context.tenant_id,
                order_id=assignment.order_id,
                courier_id=assignment.courier_id,
            )
        except NotFoundError as e:
            raise ActionError(e.message, status_code=404, details=e.details) from e

        self.logger.info(
            "Courier assigned",
            execution_id=context.execution_id,
            order_id=order.id,
            courier_id=order.courier_id,
        )

        return {"order_id": order.id, "courier_id": order.courier_id, "status": order.status}
