"""send_sms action handler."""

from typing import Any

from commerceflow.actions.base import ActionContext, ActionHandler
from commerceflow.models.workflow import ActionType, SendSmsConfig
from commerceflow.services.twilio_service import TwilioError, TwilioService, get_twilio_service
from commerceflow.utils.exceptions import ActionError


class SendSmsHandler(ActionHandler):
    """Send an SMS message through Twilio."""

    action_type = ActionType.SEND_SMS.value
    config_model = SendSmsConfig

    def __init__(self, twilio_service: TwilioService | None = None):
        """Initialize the handler.

        Args:
            twilio_service: Twilio service. Defaults to env-configured credentials.
        """
        super().__init__()
        self._twilio_service = twilio_service

    @property
    def twilio_service(self) -> TwilioService:
        """Get the Twilio service (lazy initialization)."""
        if self._twilio_service is None:
            self._twilio_service = get_twilio_service()
        return self._twilio_service

    async def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Send the SMS.

        Raises:
            ActionValidationError: If to or message is missing.
            ActionError: If Twilio rejects the request or is not configured.
        """
        sms: SendSmsConfig = self.validate_config(config, context)

        self.logger.info(
            "Sending SMS",
            execution_id=context.execution_id,
            message_length=len(sms.message),
        )

        try:
            result = self.twilio_service.send_sms(
                to=sms.to,
                body=sms.message,
                from_number=sms.from_number,
            )
        except TwilioError as e:
            self.logger.error(
                "SMS send failed",
                execution_id=context.execution_id,
                error=e.message,
                error_code=e.code,
            )
            raise ActionError(
                e.message,
                status_code=e.status_code,
                details={"error_code": e.code, "to": sms.to},
            ) from e

        return {
            "message_sid": result["message_sid"],
            "to": result["to"],
            "status": result["status"],
        }
