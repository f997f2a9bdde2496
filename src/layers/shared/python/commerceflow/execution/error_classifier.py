"""Error classifier for failed workflow steps.

Maps an arbitrary error raised by an action handler to one of the
ErrorKind values the retry policy understands. Structured signals win
over message text:

1. An explicit ``error_kind`` hint on the error.
2. A status code (``status_code``, ``status`` or an attached httpx response).
3. The exception type (timeouts and connection failures).
4. Case-insensitive substrings of the message.

Usage:
    kind = classify_error(exc)
    if policy.should_retry(kind, execution.retry_count):
        ...

Classification never raises, whatever it is handed.
"""

import asyncio
import re
from typing import Any

import httpx
import structlog

from commerceflow.models.execution import ErrorKind

logger = structlog.get_logger()


# Format: (pattern, kind). First match wins.
MESSAGE_PATTERNS: list[tuple[str, ErrorKind]] = [
    (r"timeout|timed out", ErrorKind.TIMEOUT),
    (
        r"network|connection|econnrefused|enotfound|host not found|fetch failed",
        ErrorKind.NETWORK_ERROR,
    ),
    (r"rate limit|too many requests", ErrorKind.RATE_LIMIT),
    (r"unauthorized|authentication", ErrorKind.AUTH_ERROR),
    (r"validation|invalid", ErrorKind.VALIDATION_ERROR),
    (r"not found", ErrorKind.NOT_FOUND),
]

STATUS_CODE_KINDS: dict[int, ErrorKind] = {
    429: ErrorKind.RATE_LIMIT,
    401: ErrorKind.AUTH_ERROR,
    403: ErrorKind.AUTH_ERROR,
    400: ErrorKind.VALIDATION_ERROR,
    422: ErrorKind.VALIDATION_ERROR,
    404: ErrorKind.NOT_FOUND,
}

TIMEOUT_TYPES: tuple[type[BaseException], ...] = (
    TimeoutError,
    asyncio.TimeoutError,
    httpx.TimeoutException,
)
NETWORK_TYPES: tuple[type[BaseException], ...] = (
    ConnectionError,
    httpx.NetworkError,
)


class ErrorClassifier:
    """Classifies action failures into retry-relevant kinds."""

    def __init__(self):
        """Initialize the classifier with compiled message patterns."""
        self._patterns = [
            (re.compile(pattern, re.IGNORECASE), kind)
            for pattern, kind in MESSAGE_PATTERNS
        ]

    def classify(self, error: Any) -> ErrorKind:
        """Classify an error.

        Args:
            error: Anything a handler raised or reported: an exception, a
                message string, a dict payload or None.

        Returns:
            The ErrorKind for the error. ``unknown_error`` when nothing
            decisive is found.
        """
        if error is None:
            return ErrorKind.UNKNOWN_ERROR

        kind = self._from_hint(error)
        if kind:
            return kind

        kind = self._from_status_code(self._extract_status_code(error))
        if kind:
            return kind

        if isinstance(error, TIMEOUT_TYPES):
            return ErrorKind.TIMEOUT
        if isinstance(error, NETWORK_TYPES):
            return ErrorKind.NETWORK_ERROR

        return self._from_message(self._extract_message(error))

    def _from_hint(self, error: Any) -> ErrorKind | None:
        """Use an explicit error_kind attribute or key when it is valid."""
        hint = self._lookup(error, "error_kind")
        if hint is None:
            return None
        try:
            return ErrorKind(hint)
        except ValueError:
            return None

    def _from_status_code(self, status_code: int | None) -> ErrorKind | None:
        """Map a status code to a kind. Unlisted codes are not decisive."""
        if status_code is None:
            return None
        if status_code in STATUS_CODE_KINDS:
            return STATUS_CODE_KINDS[status_code]
        if 500 <= status_code <= 599:
            return ErrorKind.SERVER_ERROR
        return None

    def _from_message(self, message: str) -> ErrorKind:
        """Match the message against known substrings."""
        for pattern, kind in self._patterns:
            if pattern.search(message):
                return kind
        return ErrorKind.UNKNOWN_ERROR

    def _extract_status_code(self, error: Any) -> int | None:
        """Find a numeric status code on the error, if any."""
        for key in ("status_code", "status"):
            code = self._as_int(self._lookup(error, key))
            if code is not None:
                return code

        response = self._lookup(error, "response")
        if isinstance(response, httpx.Response):
            return response.status_code
        return None

    def _extract_message(self, error: Any) -> str:
        """Best-effort message text."""
        if isinstance(error, str):
            return error
        if isinstance(error, dict):
            message = error.get("message") or error.get("error")
            return message if isinstance(message, str) else ""
        try:
            return str(error)
        except Exception:
            logger.debug("Error message could not be rendered", error_type=type(error).__name__)
            return ""

    @staticmethod
    def _lookup(error: Any, name: str) -> Any:
        """Read a field from a dict payload or an attribute from an object."""
        if isinstance(error, dict):
            return error.get(name)
        if isinstance(error, str):
            return None
        try:
            return getattr(error, name, None)
        except Exception:
            return None

    @staticmethod
    def _as_int(value: Any) -> int | None:
        """Coerce a status value to int, ignoring booleans and junk."""
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            return value
        if isinstance(value, str) and value.strip().isdigit():
            return int(value.strip())
        return None


# Singleton instance
_classifier: ErrorClassifier | None = None


def get_error_classifier() -> ErrorClassifier:
    """Get the singleton error classifier."""
    global _classifier
    if _classifier is None:
        _classifier = ErrorClassifier()
    return _classifier


def classify_error(error: Any) -> ErrorKind:
    """Classify an error with the shared classifier.

    Args:
        error: The error to classify.

    Returns:
        The classified ErrorKind.
    """
    return get_error_classifier().classify(error)
