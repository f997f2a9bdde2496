"""Base classes for workflow action handlers."""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import structlog
from pydantic import BaseModel as PydanticBaseModel
from pydantic import ValidationError as PydanticValidationError

from commerceflow.utils.exceptions import ActionValidationError

logger = structlog.get_logger()

_PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")


@dataclass
class ActionContext:
    """Context passed to an action handler.

    Carries the execution identity and the trigger payload every action
    of the execution can read.
    """

    execution_id: str
    tenant_id: str
    workflow_id: str = ""
    attempt: int = 1
    trigger_data: dict[str, Any] = field(default_factory=dict)

    def _get_nested_value(self, data: dict, path: str) -> Any:
        """Get a nested value from a dict using dot notation.

        Args:
            data: The dictionary to search.
            path: Dot-separated path (e.g., "order.customer.email").

        Returns:
            The value at the path, or empty string if not found.
        """
        current: Any = data
        for part in path.split("."):
            if isinstance(current, dict) and part in current:
                current = current[part]
            else:
                return ""
        return current if current is not None else ""

    def render_template(self, template: str) -> str:
        """Render a template string with trigger data substitution.

        Supports:
        - {{trigger.field}} - Trigger payload, nested paths allowed
        - {{trigger_data.field}} - Same, long form
        - {{execution.id}} / {{tenant.id}} - Execution identity

        Unknown placeholders render as empty strings.

        Args:
            template: Template string.

        Returns:
            Rendered string.
        """

        def replace_var(match: re.Match) -> str:
            var_path = match.group(1).strip()

            if var_path.startswith("trigger_data."):
                return str(self._get_nested_value(self.trigger_data, var_path[13:]))
            if var_path.startswith("trigger."):
                return str(self._get_nested_value(self.trigger_data, var_path[8:]))
            if var_path == "execution.id":
                return self.execution_id
            if var_path == "tenant.id":
                return self.tenant_id
            return ""

        return _PLACEHOLDER.sub(replace_var, template)

    def render_config(self, value: Any) -> Any:
        """Render every string inside a config structure."""
        if isinstance(value, str):
            return self.render_template(value) if "{{" in value else value
        if isinstance(value, dict):
            return {k: self.render_config(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.render_config(v) for v in value]
        return value


class ActionHandler(ABC):
    """Base class for action handlers.

    Subclasses set ``action_type`` and, for built-in types, the pydantic
    ``config_model`` used to validate the rendered config before any side
    effect happens.
    """

    action_type: str = ""
    config_model: type[PydanticBaseModel] | None = None

    def __init__(self):
        """Initialize the handler."""
        self.logger = logger.bind(action_type=self.action_type)

    @abstractmethod
    async def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Execute the action.

        Args:
            config: The action's config as authored.
            context: Execution context.

        Returns:
            JSON-serializable result recorded in the step log.

        Raises:
            ActionError: If the action fails.
        """

    def validate_config(self, config: dict[str, Any], context: ActionContext) -> Any:
        """Render and validate config against the handler's model.

        Args:
            config: Raw action config.
            context: Execution context used for template rendering.

        Returns:
            The validated config model instance.

        Raises:
            ActionValidationError: If required fields are missing or invalid.
        """
        rendered = context.render_config(config or {})
        if self.config_model is None:
            return rendered

        try:
            return self.config_model.model_validate(rendered)
        except PydanticValidationError as e:
            errors = [
                {
                    "field": ".".join(str(loc) for loc in error.get("loc", [])),
                    "message": error.get("msg", "Invalid value"),
                }
                for error in e.errors()
            ]
            fields = ", ".join(err["field"] for err in errors)
            raise ActionValidationError(
                f"Invalid {self.action_type} config: {fields}",
                details={"errors": errors},
            ) from e
