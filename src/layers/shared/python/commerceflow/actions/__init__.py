"""Built-in workflow action handlers."""

from commerceflow.actions.base import ActionContext, ActionHandler
from commerceflow.actions.courier import AssignCourierHandler
from commerceflow.actions.database import DatabaseQueryHandler
from commerceflow.actions.email import SendEmailHandler
from commerceflow.actions.external import ExternalFunctionHandler
from commerceflow.actions.inventory import UpdateInventoryHandler
from commerceflow.actions.sms import SendSmsHandler
from commerceflow.actions.webhook import CallWebhookHandler

__all__ = [
    "ActionContext",
    "ActionHandler",
    "AssignCourierHandler",
    "CallWebhookHandler",
    "DatabaseQueryHandler",
    "ExternalFunctionHandler",
    "SendEmailHandler",
    "SendSmsHandler",
    "UpdateInventoryHandler",
]
