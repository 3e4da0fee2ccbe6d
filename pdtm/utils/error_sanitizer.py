"""
Error message sanitization utility.

Keeps storage internals, file paths and URLs out of HTTP error responses.
"""

from __future__ import annotations

import re

from pdtm.observability.logging import get_logger

logger = get_logger(__name__)

# Patterns that might leak internal or private information
SENSITIVE_PATTERNS = [
    # File paths
    r"/[^\s]+\.(py|db)",
    r"[A-Za-z]:\\[^\s]+",
    # Stack trace indicators
    r"Traceback \(most recent call last\)",
    r"File \".*\"",
    r"line \d+",
    # Database errors
    r"sqlite3?\.",
    r"database is locked",
    r"no such table",
    # Full URLs (may carry query values)
    r"https?://",
    # Internal module names
    r"pdtm\.[a-z_.]+",
]

GENERIC_MESSAGES = {
    400: "Invalid request. Please check your input and try again.",
    404: "Resource not found.",
    422: "Invalid data format.",
    500: "An internal error occurred. Please try again later.",
    503: "Storage temporarily unavailable.",
}


def sanitize_error_message(message: str, status_code: int = 500) -> str:
    """
    Return `message` if it is a short, plain client error; otherwise a generic message.
    """
    if not message:
        return GENERIC_MESSAGES.get(status_code, "An error occurred.")

    for pattern in SENSITIVE_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            logger.warning("Sanitized sensitive error pattern: %s", pattern)
            return GENERIC_MESSAGES.get(status_code, "An error occurred.")

    if (
        status_code == 400
        and len(message) < 100
        and not any(c in message for c in ["{", "}", "[", "]", "\n"])
    ):
        return message

    return GENERIC_MESSAGES.get(status_code, "An error occurred.")


def get_safe_error_detail(
    error: Exception, status_code: int = 500, context: str | None = None
) -> str:
    """
    Log the full error and return a client-safe detail string.

    Side Effects:
        - Logs the exception type and message at error level
    """
    logger.error("Error (status=%d): %s - %s", status_code, type(error).__name__, str(error))

    if context and status_code >= 500:
        return context
    return sanitize_error_message(str(error), status_code)
