"""Action dispatcher for workflow execution.

Routes each workflow action to the handler registered for its type tag.
Types without a built-in handler fall through to the external function
handler when the action names an ``edge_function``.

Usage:
    dispatcher = ActionDispatcher(build_default_registry())

    result = await dispatcher.dispatch(action, context)
"""

from typing import Any

import structlog

from commerceflow.actions import (
    ActionContext,
    ActionHandler,
    AssignCourierHandler,
    CallWebhookHandler,
    DatabaseQueryHandler,
    ExternalFunctionHandler,
    SendEmailHandler,
    SendSmsHandler,
    UpdateInventoryHandler,
)
from commerceflow.models.workflow import Action
from commerceflow.repositories.commerce import (
    InventoryRepository,
    OrderRepository,
    TenantRecordRepository,
)
from commerceflow.utils.exceptions import UnknownActionTypeError

logger = structlog.get_logger()


class HandlerRegistry:
    """Maps action type tags to handlers."""

    def __init__(
        self,
        handlers: list[ActionHandler] | None = None,
        external_handler: ExternalFunctionHandler | None = None,
    ):
        """Initialize the registry.

        Args:
            handlers: Handlers to register under their action_type.
            external_handler: Handler for actions that name an edge_function.
        """
        self._handlers: dict[str, ActionHandler] = {}
        self.external_handler = external_handler
        for handler in handlers or []:
            self.register(handler)

    def register(self, handler: ActionHandler, action_type: str | None = None) -> None:
        """Register a handler.

        Args:
            handler: The handler instance.
            action_type: Tag to register under. Defaults to handler.action_type.
        """
        tag = action_type or handler.action_type
        if not tag:
            raise ValueError(f"{type(handler).__name__} has no action_type")
        self._handlers[tag] = handler

    def get(self, action_type: str) -> ActionHandler | None:
        """Get the handler for a tag, if registered."""
        return self._handlers.get(action_type)

    @property
    def action_types(self) -> list[str]:
        """Registered type tags."""
        return sorted(self._handlers)

    def __contains__(self, action_type: str) -> bool:
        return action_type in self._handlers


class ActionDispatcher:
    """Executes a single action through its registered handler.

    Handler errors propagate unchanged; classification happens in the
    runner.
    """

    def __init__(self, registry: HandlerRegistry):
        """Initialize the dispatcher.

        Args:
            registry: Handler registry to resolve action types against.
        """
        self.registry = registry
        self.logger = logger.bind(service="action_dispatcher")

    async def dispatch(self, action: Action, context: ActionContext) -> dict[str, Any]:
        """Execute an action.

        Args:
            action: The workflow action.
            context: Execution context carrying the trigger data.

        Returns:
            The handler's result.

        Raises:
            UnknownActionTypeError: If no handler exists and no edge_function is set.
            ActionError: Whatever the handler raised.
        """
        handler = self.registry.get(action.action_type)

        if handler is not None:
            self.logger.debug(
                "Dispatching action",
                action_id=action.id,
                action_type=action.action_type,
                execution_id=context.execution_id,
            )
            return await handler.execute(action.config, context)

        if action.edge_function and self.registry.external_handler is not None:
            self.logger.debug(
                "Dispatching external action",
                action_id=action.id,
                action_type=action.action_type,
                edge_function=action.edge_function,
                execution_id=context.execution_id,
            )
            return await self.registry.external_handler.invoke(
                action.edge_function,
                action.config,
                context,
            )

        raise UnknownActionTypeError(action.action_type)


def build_default_registry(
    email_handler: SendEmailHandler | None = None,
    sms_handler: SendSmsHandler | None = None,
    webhook_handler: CallWebhookHandler | None = None,
    external_handler: ExternalFunctionHandler | None = None,
    table_name: str | None = None,
) -> HandlerRegistry:
    """Build a registry with every built-in handler.

    Args:
        email_handler: Override for send_email.
        sms_handler: Override for send_sms.
        webhook_handler: Override for call_webhook.
        external_handler: Override for edge_function actions.
        table_name: DynamoDB table for the data-mutating handlers.

    Returns:
        Populated HandlerRegistry.
    """
    return HandlerRegistry(
        handlers=[
            email_handler or SendEmailHandler(),
            sms_handler or SendSmsHandler(),
            UpdateInventoryHandler(InventoryRepository(table_name)),
            AssignCourierHandler(OrderRepository(table_name)),
            webhook_handler or CallWebhookHandler(),
            DatabaseQueryHandler(TenantRecordRepository(table_name)),
        ],
        external_handler=external_handler or ExternalFunctionHandler(),
    )
