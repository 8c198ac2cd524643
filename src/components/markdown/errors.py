"""
Markdown processing error types.

Content problems are reported as findings. These errors are raised by the
storage gate (prepare_for_storage) for rejected content, and by rendering or
sanitizing when the underlying library fails, so a request handler can map
them onto a response.
"""

from __future__ import annotations

from typing import Any

# --- Error Codes ---

VALIDATION_ERROR = "MARKDOWN_VALIDATION_ERROR"
SANITIZATION_ERROR = "MARKDOWN_SANITIZATION_ERROR"
RENDERING_ERROR = "MARKDOWN_RENDERING_ERROR"
SECURITY_ERROR = "MARKDOWN_SECURITY_ERROR"
CONTENT_TOO_LARGE = "MARKDOWN_CONTENT_TOO_LARGE"

_USER_MESSAGES: dict[str, str] = {
    VALIDATION_ERROR: (
        "The document content contains formatting errors. "
        "Please check your markdown syntax and try again."
    ),
    SANITIZATION_ERROR: (
        "The document content contains potentially unsafe elements "
        "that have been removed for security."
    ),
    RENDERING_ERROR: "Unable to display the document content. The formatting may be corrupted.",
    SECURITY_ERROR: "The document content contains security violations and cannot be processed.",
    CONTENT_TOO_LARGE: "The document is too large. Please reduce the content size and try again.",
}

_DEFAULT_USER_MESSAGE = "An error occurred while processing the document. Please try again."


class MarkdownError(Exception):
    """Base markdown processing error."""

    code = VALIDATION_ERROR
    status_code = 400

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(message)


class MarkdownValidationError(MarkdownError):
    """Content failed validation."""

    def __init__(
        self,
        message: str,
        errors: list[str],
        warnings: list[str] | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.errors = errors
        self.warnings = warnings or []
        super().__init__(message, details)


class MarkdownSanitizationError(MarkdownError):
    """Sanitization could not produce usable content."""

    code = SANITIZATION_ERROR

    def __init__(
        self,
        message: str,
        original_content: str,
        sanitized_content: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.original_content = original_content
        self.sanitized_content = sanitized_content
        super().__init__(message, details)


class MarkdownRenderingError(MarkdownError):
    """Rendering to HTML failed."""

    code = RENDERING_ERROR
    status_code = 500


class MarkdownSecurityError(MarkdownError):
    """Content carries security findings in strict mode."""

    code = SECURITY_ERROR
    status_code = 403

    def __init__(
        self,
        message: str,
        violations: list[str],
        details: dict[str, Any] | None = None,
    ) -> None:
        self.violations = violations
        super().__init__(message, details)


class MarkdownContentTooLargeError(MarkdownError):
    """Content is longer than the configured maximum."""

    code = CONTENT_TOO_LARGE
    status_code = 413

    def __init__(
        self,
        content_length: int,
        max_length: int,
        details: dict[str, Any] | None = None,
    ) -> None:
        self.content_length = content_length
        self.max_length = max_length
        super().__init__(
            f"Content exceeds maximum length of {max_length} characters (got {content_length})",
            details,
        )


def user_friendly_message(error: MarkdownError) -> str:
    """Actionable text for showing an error to an end user."""
    return _USER_MESSAGES.get(error.code, _DEFAULT_USER_MESSAGE)


def error_payload(error: MarkdownError) -> dict[str, Any]:
    """Build the JSON-able error body a UI consumes."""
    details: dict[str, Any] = {"technical_message": error.message, **error.details}

    if isinstance(error, MarkdownValidationError):
        details["validation_errors"] = list(error.errors)
        details["validation_warnings"] = list(error.warnings)
    elif isinstance(error, MarkdownSecurityError):
        details["security_violations"] = list(error.violations)
    elif isinstance(error, MarkdownContentTooLargeError):
        details["content_length"] = error.content_length
        details["max_length"] = error.max_length

    return {
        "success": False,
        "error": user_friendly_message(error),
        "code": error.code,
        "details": details,
    }
