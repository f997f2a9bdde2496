"""Twilio integration service for SMS messaging.

Sends order and delivery notifications by SMS.
"""

import os
import re
from typing import Any

import structlog
from twilio.base.exceptions import TwilioRestException
from twilio.rest import Client

logger = structlog.get_logger()


class TwilioError(Exception):
    """Custom exception for Twilio-related errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        """Initialize TwilioError.

        Args:
            message: Error message.
            code: Twilio error code.
            status_code: HTTP status returned by the Twilio API, if any.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class TwilioService:
    """Service for interacting with the Twilio API."""

    def __init__(
        self,
        account_sid: str | None = None,
        auth_token: str | None = None,
        from_number: str | None = None,
    ):
        """Initialize Twilio service.

        Args:
            account_sid: Twilio Account SID. Falls back to TWILIO_ACCOUNT_SID env var.
            auth_token: Twilio Auth Token. Falls back to TWILIO_AUTH_TOKEN env var.
            from_number: Default sender. Falls back to TWILIO_PHONE_NUMBER env var.
        """
        self.account_sid = account_sid or os.environ.get("TWILIO_ACCOUNT_SID")
        self.auth_token = auth_token or os.environ.get("TWILIO_AUTH_TOKEN")
        self.from_number = from_number or os.environ.get("TWILIO_PHONE_NUMBER")
        self._client: Client | None = None

    @property
    def client(self) -> Client:
        """Get Twilio client (lazy initialization).

        Raises:
            TwilioError: If credentials are not configured.
        """
        if self._client is None:
            if not self.account_sid or not self.auth_token:
                raise TwilioError(
                    "Twilio credentials not configured (unauthorized)",
                    code="CREDENTIALS_MISSING",
                    status_code=401,
                )
            self._client = Client(self.account_sid, self.auth_token)
        return self._client

    @property
    def is_configured(self) -> bool:
        """Check if Twilio credentials are available."""
        return bool(self.account_sid and self.auth_token)

    def send_sms(
        self,
        to: str,
        body: str,
        from_number: str | None = None,
    ) -> dict[str, Any]:
        """Send an SMS message.

        Args:
            to: Recipient phone number.
            body: Message content.
            from_number: Sender phone number. Defaults to the service sender.

        Returns:
            Dict with message sid and status.

        Raises:
            TwilioError: If sending fails.
        """
        from_number = from_number or self.from_number

        if not from_number:
            raise TwilioError("Sender phone number is required", code="SENDER_MISSING", status_code=400)
        if not to:
            raise TwilioError("Recipient phone number is required", code="RECIPIENT_MISSING", status_code=400)
        if not body:
            raise TwilioError("Message body is required", code="BODY_MISSING", status_code=400)

        to = self._normalize_phone(to)
        from_number = self._normalize_phone(from_number)

        logger.info(
            "Sending SMS",
            to=to,
            from_number=from_number[:6] + "****",
            body_length=len(body),
        )

        try:
            message = self.client.messages.create(to=to, from_=from_number, body=body)
        except TwilioRestException as e:
            logger.error(
                "Twilio SMS send failed",
                error_code=e.code,
                error_message=e.msg,
                status_code=e.status,
                to=to,
            )
            raise TwilioError(
                f"Failed to send SMS: {e.msg}",
                code=str(e.code),
                status_code=e.status,
                details={"twilio_error": e.msg},
            ) from e

        logger.info("SMS sent successfully", message_sid=message.sid, status=message.status)

        return {
            "message_sid": message.sid,
            "to": message.to,
            "status": message.status,
        }

    def _normalize_phone(self, phone: str) -> str:
        """Normalize phone number to E.164 format (US default)."""
        digits = re.sub(r"[^\d]", "", phone)
        if phone.strip().startswith("+"):
            return f"+{digits}"
        if len(digits) == 10:
            return f"+1{digits}"
        if len(digits) == 11 and digits.startswith("1"):
            return f"+{digits}"
        return f"+{digits}"


def get_twilio_service(tenant_credentials: dict | None = None) -> TwilioService:
    """Factory function to get a TwilioService instance.

    Args:
        tenant_credentials: Optional tenant-specific credentials.
            Keys: account_sid, auth_token, from_number

    Returns:
        Configured TwilioService instance.
    """
    if tenant_credentials:
        return TwilioService(
            account_sid=tenant_credentials.get("account_sid"),
            auth_token=tenant_credentials.get("auth_token"),
            from_number=tenant_credentials.get("from_number"),
        )
    return TwilioService()
