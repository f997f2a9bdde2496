"""Generic handler for externally registered action types."""

import json
import os
from typing import Any

import boto3
from botocore.exceptions import ClientError

from commerceflow.actions.base import ActionContext, ActionHandler
from commerceflow.utils.exceptions import ActionError, ActionValidationError


class ExternalFunctionHandler(ActionHandler):
    """Invoke a named Lambda function for non built-in action types.

    The function receives the action config merged with the trigger data
    (trigger data wins on key collisions) and must return a JSON object.
    """

    action_type = "external"

    def __init__(self, region_name: str | None = None):
        """Initialize the handler.

        Args:
            region_name: AWS region for Lambda. Falls back to AWS_REGION env var.
        """
        super().__init__()
        self.region_name = region_name or os.environ.get("AWS_REGION", "us-east-1")
        self._client = None

    @property
    def client(self):
        """Get Lambda client (lazy initialization)."""
        if self._client is None:
            self._client = boto3.client("lambda", region_name=self.region_name)
        return self._client

    async def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Invoke the function named by the config's ``edge_function`` key.

        Raises:
            ActionValidationError: If no function name is configured.
        """
        config = dict(config or {})
        function_name = config.pop("edge_function", None)
        if not function_name:
            raise ActionValidationError("External action requires edge_function")
        return await self.invoke(function_name, config, context)

    async def invoke(
        self,
        function_name: str,
        config: dict[str, Any],
        context: ActionContext,
    ) -> dict[str, Any]:
        """Invoke the external function.

        Args:
            function_name: Registered function name or ARN.
            config: The action's config.
            context: Execution context.

        Returns:
            The function's JSON response.

        Raises:
            ActionError: If the invocation fails or the function errors.
        """
        payload = {**context.render_config(config or {}), **context.trigger_data}

        self.logger.info(
            "Invoking external function",
            execution_id=context.execution_id,
            function_name=function_name,
        )

        try:
            response = self.client.invoke(
                FunctionName=function_name,
                InvocationType="RequestResponse",
                Payload=json.dumps(payload, default=str).encode("utf-8"),
            )
        except ClientError as e:
            error = e.response["Error"]
            raise ActionError(
                f"External function invoke failed: {error.get('Message', error.get('Code'))}",
                status_code=e.response.get("ResponseMetadata", {}).get("HTTPStatusCode"),
                details={"function_name": function_name, "error_code": error.get("Code")},
            ) from e

        raw = response["Payload"].read()
        try:
            body = json.loads(raw) if raw else {}
        except ValueError:
            body = {"raw": raw.decode("utf-8", errors="replace")}

        status_code = response.get("StatusCode", 200)
        if response.get("FunctionError") or not 200 <= status_code < 300:
            message = body.get("errorMessage") if isinstance(body, dict) else None
            raise ActionError(
                message or f"External function {function_name} failed",
                status_code=status_code if status_code >= 300 else None,
                details={"function_name": function_name, "response": body},
            )

        return body if isinstance(body, dict) else {"result": body}
