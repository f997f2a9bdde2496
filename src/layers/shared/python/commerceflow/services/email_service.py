"""Email integration service using Amazon SES.

Handles sending transactional emails (order confirmations, delivery
notifications) on behalf of tenants.
"""

import os
from typing import Any

import boto3
import structlog
from botocore.exceptions import ClientError

logger = structlog.get_logger()


class EmailError(Exception):
    """Custom exception for email-related errors."""

    def __init__(
        self,
        message: str,
        code: str | None = None,
        status_code: int | None = None,
        details: dict | None = None,
    ):
        """Initialize EmailError.

        Args:
            message: Error message.
            code: Error code.
            status_code: HTTP status returned by SES, if any.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details or {}


class EmailService:
    """Service for sending emails via Amazon SES."""

    def __init__(
        self,
        region_name: str | None = None,
        configuration_set: str | None = None,
    ):
        """Initialize Email service.

        Args:
            region_name: AWS region for SES. Falls back to AWS_REGION env var.
            configuration_set: Optional SES configuration set for tracking.
        """
        self.region_name = region_name or os.environ.get("AWS_REGION", "us-east-1")
        self.configuration_set = configuration_set or os.environ.get("SES_CONFIGURATION_SET")
        self._client = None

    @property
    def client(self):
        """Get SES client (lazy initialization).

        Returns:
            Boto3 SES client.
        """
        if self._client is None:
            self._client = boto3.client("ses", region_name=self.region_name)
        return self._client

    def send_email(
        self,
        to: str | list[str],
        subject: str,
        body_text: str | None = None,
        body_html: str | None = None,
        from_email: str | None = None,
        tags: dict[str, str] | None = None,
    ) -> dict[str, Any]:
        """Send an email.

        Success means SES accepted the message for delivery, not that it
        was delivered.

        Args:
            to: Recipient email address(es).
            subject: Email subject.
            body_text: Plain text body.
            body_html: HTML body.
            from_email: Sender email. Falls back to SES_FROM_EMAIL env var.
            tags: Message tags for tracking.

        Returns:
            Dict with message_id and status.

        Raises:
            EmailError: If sending fails.
        """
        from_email = from_email or os.environ.get("SES_FROM_EMAIL")

        if not from_email:
            raise EmailError(
                "Sender email address is required",
                code="SENDER_MISSING",
                status_code=400,
            )

        if not to:
            raise EmailError(
                "Recipient email address is required",
                code="RECIPIENT_MISSING",
                status_code=400,
            )

        if not body_text and not body_html:
            raise EmailError("Email body is required", code="BODY_MISSING", status_code=400)

        # Normalize to list
        if isinstance(to, str):
            to = [to]

        logger.info(
            "Sending email",
            to=to,
            from_email=from_email,
            subject=subject[:50] + "..." if len(subject) > 50 else subject,
            has_html=bool(body_html),
        )

        body: dict[str, Any] = {}
        if body_text:
            body["Text"] = {"Data": body_text, "Charset": "UTF-8"}
        if body_html:
            body["Html"] = {"Data": body_html, "Charset": "UTF-8"}

        kwargs: dict[str, Any] = {
            "Source": from_email,
            "Destination": {"ToAddresses": to},
            "Message": {
                "Subject": {"Data": subject, "Charset": "UTF-8"},
                "Body": body,
            },
        }
        if self.configuration_set:
            kwargs["ConfigurationSetName"] = self.configuration_set
        if tags:
            kwargs["Tags"] = [{"Name": k, "Value": v} for k, v in tags.items()]

        try:
            response = self.client.send_email(**kwargs)
        except ClientError as e:
            error_code = e.response["Error"]["Code"]
            error_message = e.response["Error"]["Message"]
            status_code = e.response.get("ResponseMetadata", {}).get("HTTPStatusCode")

            logger.error(
                "SES send failed",
                error_code=error_code,
                error_message=error_message,
                status_code=status_code,
                to=to,
            )

            raise EmailError(
                f"Failed to send email: {error_message}",
                code=error_code,
                status_code=status_code,
                details={"aws_error": error_message},
            ) from e

        logger.info("Email accepted for delivery", message_id=response["MessageId"])

        return {
            "message_id": response["MessageId"],
            "status": "sent",
            "to": to,
            "from": from_email,
            "subject": subject,
        }


def get_email_service(region_name: str | None = None) -> EmailService:
    """Factory function to get an EmailService instance.

    Args:
        region_name: Optional AWS region override.

    Returns:
        Configured EmailService instance.
    """
    return EmailService(region_name=region_name)
