"""send_email action handler."""

from typing import Any

from commerceflow.actions.base import ActionContext, ActionHandler
from commerceflow.models.workflow import ActionType, SendEmailConfig
from commerceflow.services.email_service import EmailError, EmailService, get_email_service
from commerceflow.utils.exceptions import ActionError


class SendEmailHandler(ActionHandler):
    """Send a transactional email through SES."""

    action_type = ActionType.SEND_EMAIL.value
    config_model = SendEmailConfig

    def __init__(self, email_service: EmailService | None = None):
        """Initialize the handler.

        Args:
            email_service: Email service. Defaults to the SES-backed service.
        """
        super().__init__()
        self._email_service = email_service

    @property
    def email_service(self) -> EmailService:
        """Get the email service (lazy initialization)."""
        if self._email_service is None:
            self._email_service = get_email_service()
        return self._email_service

    async def execute(self, config: dict[str, Any], context: ActionContext) -> dict[str, Any]:
        """Send the email.

        Success means the provider accepted the message.

        Raises:
            ActionValidationError: If to, subject or body is missing.
            ActionError: If SES rejects the request.
        """
        email: SendEmailConfig = self.validate_config(config, context)

        try:
            result = self.email_service.send_email(
                to=email.to,
                subject=email.subject,
                body_text=email.body,
                body_html=email.body_html,
                from_email=email.from_email,
                tags={"execution_id": context.execution_id},
            )
        except EmailError as e:
            self.logger.error(
                "Email send failed",
                execution_id=context.execution_id,
                error=e.message,
                error_code=e.code,
            )
            raise ActionError(
                e.message,
                status_code=e.status_code,
                details={"error_code": e.code, "to": email.to},
            ) from e

        return {"message_id": result["message_id"], "to": email.to, "status": result["status"]}
