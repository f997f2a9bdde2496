"""Utility functions and helpers."""

from commerceflow.utils.exceptions import (
    ActionError,
    ActionValidationError,
    CommerceFlowError,
    ConflictError,
    ExecutionTimeoutError,
    NotFoundError,
    UnknownActionTypeError,
    ValidationError,
)

__all__ = [
    "ActionError",
    "ActionValidationError",
    "CommerceFlowError",
    "ConflictError",
    "ExecutionTimeoutError",
    "NotFoundError",
    "UnknownActionTypeError",
    "ValidationError",
]
