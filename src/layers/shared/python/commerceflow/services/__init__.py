"""Provider services used by action handlers."""

from commerceflow.services.email_service import EmailError, EmailService, get_email_service
from commerceflow.services.twilio_service import TwilioError, TwilioService, get_twilio_service

__all__ = [
    "EmailError",
    "EmailService",
    "TwilioError",
    "TwilioService",
    "get_email_service",
    "get_twilio_service",
]
