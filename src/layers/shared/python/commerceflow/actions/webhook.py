"""call_webhook action handler."""

import os
from typing import Any

import httpx

from commerceflow.actions.base import ActionContext, ActionHandler
from commerceflow.models.workflow import ActionType, CallWebhookConfig
from commerceflow.utils.exceptions import ActionError, ActionValidationError

BODY_METHODS = ("POST", "PUT", "PATCH")


class CallWebhookHandler(ActionHandler):
    """Call an external webhook/API."""

    action_type = ActionType.CALL_WEBHOOK.value
    config_model = CallWebhookConfig

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize the handler.

        Args:
            timeout: Request timeout in seconds. Defaults to WEBHOOK_TIMEOUT_SECONDS.
            transport: Optional httpx transport, used by tests.
        """
        super().__init__()
        self.timeout = timeout or float(os.environ.get("WEBHOOK_TIMEOUT_SECONDS", "30"))
        self.transport = transport

    async def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Call the webhook.

        Raises:
            ActionValidationError: If the URL is missing or unusable.
            ActionError: On timeout, transport failure or a non-2xx response.
        """
        webhook: CallWebhookConfig = self.validate_config(config, context)

        self.logger.info(
            "Calling webhook",
            execution_id=context.execution_id,
            url=webhook.url,
            method=webhook.method,
        )

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method=webhook.method,
                    url=webhook.url,
                    headers=webhook.headers,
                    json=webhook.body if webhook.method in BODY_METHODS else None,
                    params=webhook.body if webhook.method == "GET" else None,
                )
        except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
            raise ActionValidationError(
                f"Invalid webhook URL: {webhook.url}",
                details={"url": webhook.url},
            ) from e
        except httpx.TimeoutException as e:
            raise ActionError(
                "Webhook request timed out",
                error_kind="timeout",
                details={"url": webhook.url},
            ) from e
        except httpx.RequestError as e:
            raise ActionError(
                f"Webhook request failed: {e}",
                error_kind="network_error",
                details={"url": webhook.url, "exception": type(e).__name__},
            ) from e

        # Try to parse response as JSON
        try:
            response_data = response.json()
        except ValueError:
            response_data = {"text": response.text}

        if not response.is_success:
            self.logger.warning(
                "Webhook returned error status",
                execution_id=context.execution_id,
                status_code=response.status_code,
            )
            raise ActionError(
                f"Webhook returned {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
                details={"url": webhook.url, "response": response_data},
            )

        return {"status_code": response.status_code, "response": response_data}
