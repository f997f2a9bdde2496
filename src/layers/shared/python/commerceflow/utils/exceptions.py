"""Custom exception classes for CommerceFlow."""


class CommerceFlowError(Exception):
    """Base exception for all CommerceFlow errors."""

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int = 500,
        details: dict | None = None,
    ):
        """Initialize CommerceFlowError.

        Args:
            message: Human-readable error message.
            error_code: Machine-readable error code.
            status_code: HTTP status code for API responses.
            details: Additional error details.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code or "INTERNAL_ERROR"
        self.status_code = status_code
        self.details = details or {}

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API response."""
        result = {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result


class NotFoundError(CommerceFlowError):
    """Raised when a requested resource is not found."""

    def __init__(
        self,
        resource_type: str,
        resource_id: str,
        message: str | None = None,
    ):
        """Initialize NotFoundError.

        Args:
            resource_type: Type of resource (e.g., "Execution", "WorkflowDefinition").
            resource_id: ID of the resource that was not found.
            message: Optional custom message.
        """
        self.resource_type = resource_type
        self.resource_id = resource_id
        super().__init__(
            message=message or f"{resource_type} with ID '{resource_id}' not found",
            error_code="NOT_FOUND",
            status_code=404,
            details={"resource_type": resource_type, "resource_id": resource_id},
        )


class ValidationError(CommerceFlowError):
    """Raised when input validation fails."""

    def __init__(
        self,
        message: str = "Validation failed",
        errors: list[dict] | None = None,
    ):
        """Initialize ValidationError.

        Args:
            message: Error message.
            errors: List of validation errors with field and message.
        """
        self.errors = errors or []
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            status_code=400,
            details={"errors": self.errors},
        )

    @classmethod
    def from_pydantic(cls, exc: Exception) -> "ValidationError":
        """Create ValidationError from Pydantic ValidationError."""
        errors = []
        if hasattr(exc, "errors"):
            for error in exc.errors():
                errors.append(
                    {
                        "field": ".".join(str(loc) for loc in error.get("loc", [])),
                        "message": error.get("msg", "Invalid value"),
                        "type": error.get("type", "unknown"),
                    }
                )
        return cls(message="Validation failed", errors=errors)


class ConflictError(CommerceFlowError):
    """Raised when there's a conflict (e.g., duplicate, optimistic lock failure)."""

    def __init__(
        self,
        message: str = "Resource conflict",
        conflict_type: str | None = None,
    ):
        """Initialize ConflictError."""
        super().__init__(
            message=message,
            error_code="CONFLICT",
            status_code=409,
            details={"conflict_type": conflict_type} if conflict_type else None,
        )


class ActionError(CommerceFlowError):
    """Raised by an action handler when a workflow step fails.

    Carries an optional HTTP-like status code and an explicit error kind
    hint so the error classifier does not have to guess from the message.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error_kind: str | None = None,
        details: dict | None = None,
    ):
        """Initialize ActionError.

        Args:
            message: Error message.
            status_code: Status code reported by the collaborator, if any.
            error_kind: Explicit ErrorKind value, if the handler knows it.
            details: Additional error details.
        """
        super().__init__(
            message=message,
            error_code="ACTION_FAILED",
            status_code=status_code or 500,
            details=details,
        )
        # Keep the raw value so the classifier only sees codes that were reported
        self.status_code = status_code
        self.error_kind = error_kind


class ActionValidationError(ActionError):
    """Raised when an action's configuration is missing or malformed."""

    def __init__(self, message: str, details: dict | None = None):
        """Initialize ActionValidationError."""
        super().__init__(
            message=message,
            error_kind="validation_error",
            details=details,
        )
        self.error_code = "ACTION_INVALID"


class UnknownActionTypeError(ActionError):
    """Raised when no handler exists for an action type."""

    def __init__(self, action_type: str):
        """Initialize UnknownActionTypeError.

        Args:
            action_type: The unrecognized action type tag.
        """
        super().__init__(
            message=f"Unknown action type: {action_type}",
            error_kind="validation_error",
            details={"action_type": action_type},
        )
        self.error_code = "UNKNOWN_ACTION_TYPE"
        self.action_type = action_type


class ExecutionTimeoutError(ActionError):
    """Raised when an execution runs out of time before an action starts."""

    def __init__(self, action_id: str):
        """Initialize ExecutionTimeoutError.

        Args:
            action_id: The action that could not be started.
        """
        super().__init__(
            message=f"Execution timed out before action '{action_id}' started",
            error_kind="timeout",
            details={"action_id": action_id},
        )
        self.error_code = "EXECUTION_TIMEOUT"
