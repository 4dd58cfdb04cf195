"""
Error Handling Module

Defines domain exceptions and error categories for the application.
Domain exceptions are pure and have no external dependencies.
Application exceptions carry user-facing messages for API responses.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorCategory(Enum):
    """Error category enumeration for structured error handling."""

    SHARE_NOT_FOUND = "share_not_found"
    FILE_GONE = "file_gone"
    SHARE_EXPIRED = "share_expired"
    WRONG_PASSWORD = "wrong_password"
    DOWNLOAD_LIMIT_REACHED = "download_limit_reached"
    CONFIRMATION_REQUIRED = "confirmation_required"
    PAYLOAD_REJECTED = "payload_rejected"
    CLASSIFIER_UNAVAILABLE = "classifier_unavailable"
    INVALID_REQUEST = "invalid_request"
    FILE_TOO_LARGE = "file_too_large"
    STORE_ERROR = "store_error"
    SYSTEM_ERROR = "system_error"


# User-friendly error messages with actionable guidance
ERROR_MESSAGES: Dict[ErrorCategory, Dict[str, str]] = {
    ErrorCategory.SHARE_NOT_FOUND: {
        "title": "Invalid Code",
        "message": "No shared file exists for this code.",
        "action": "Check the code for typos. Codes are case-sensitive.",
    },
    ErrorCategory.FILE_GONE: {
        "title": "File Gone",
        "message": "The shared file is no longer available on the server.",
        "action": "Ask the sender to upload the file again.",
    },
    ErrorCategory.SHARE_EXPIRED: {
        "title": "Share Expired",
        "message": "This shared file has passed its expiry time.",
        "action": "Ask the sender for a new code.",
    },
    ErrorCategory.WRONG_PASSWORD: {
        "title": "Wrong Password",
        "message": "This file is password protected and the password did not match.",
        "action": "Check the password with the sender and try again.",
    },
    ErrorCategory.DOWNLOAD_LIMIT_REACHED: {
        "title": "Too Many Downloads",
        "message": "This file has reached its maximum number of downloads.",
        "action": "Ask the sender to share the file again.",
    },
    ErrorCategory.CONFIRMATION_REQUIRED: {
        "title": "Potentially Harmful File",
        "message": "The malware scanner flagged this file as potentially harmful.",
        "action": "Only continue if you trust the sender. Use the confirm link to download anyway.",
    },
    ErrorCategory.PAYLOAD_REJECTED: {
        "title": "File Rejected",
        "message": "The file was rejected by the malware scanner and was not shared.",
        "action": "Scan the file locally before uploading it again.",
    },
    ErrorCategory.CLASSIFIER_UNAVAILABLE: {
        "title": "Scanner Unavailable",
        "message": "The malware scanner could not check the file, so it was not shared.",
        "action": "Please try again in a few minutes.",
    },
    ErrorCategory.INVALID_REQUEST: {
        "title": "Invalid Request",
        "message": "The request is missing required information or contains invalid data.",
        "action": "Please check your input and try again.",
    },
    ErrorCategory.FILE_TOO_LARGE: {
        "title": "File Too Large",
        "message": "The uploaded file exceeds the maximum allowed size.",
        "action": "Try compressing the file or splitting it into smaller parts.",
    },
    ErrorCategory.STORE_ERROR: {
        "title": "Storage Error",
        "message": "The share registry could not be read or written.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
    ErrorCategory.SYSTEM_ERROR: {
        "title": "System Error",
        "message": "An unexpected error occurred while processing your request.",
        "action": "Please try again later. If the problem persists, contact support.",
    },
}


# ============================================================================
# Domain Exceptions (Pure - No External Dependencies)
# ============================================================================

class DomainError(Exception):
    """
    Base exception for all domain errors.

    Domain exceptions are pure and have no external dependencies.
    They can optionally wrap original errors for context.
    """

    def __init__(self, message: str, original_error: Exception = None):
        """
        Initialize domain error.

        Args:
            message: Error message
            original_error: Optional original exception that caused this error
        """
        super().__init__(message)
        self.original_error = original_error


class ShareNotFoundError(DomainError):
    """Raised when an operation targets a code with no share record."""
    pass


class InvalidPolicyError(DomainError):
    """Raised when a share policy contains invalid values."""
    pass


class CodeGenerationError(DomainError):
    """Raised when no unused code could be generated."""
    pass


class RejectedPayloadError(DomainError):
    """
    Raised when the threat classifier blocks a payload.

    The payload has already been removed from storage when this is raised.
    """

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail


class ClassifierUnavailableError(DomainError):
    """Raised when the threat classifier cannot produce a verdict."""
    pass


class StoreError(DomainError):
    """Base exception for share store failures."""
    pass


class StoreCorruptError(StoreError):
    """
    Raised when the persisted share registry cannot be parsed.

    Only raised after initialization; at first boot a corrupt registry
    is moved aside instead.
    """
    pass


class StoreWriteError(StoreError):
    """Raised when a registry write did not durably complete."""
    pass


# ============================================================================
# Application Layer Exceptions
# ============================================================================

class ApplicationError(Exception):
    """
    Base application error with category and user-friendly messaging.

    Bridges domain errors with user-facing error messages and HTTP responses.
    """

    def __init__(
        self,
        category: ErrorCategory,
        technical_message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize application error.

        Args:
            category: Error category
            technical_message: Technical error details for logging
            context: Additional context information
        """
        self.category = category
        self.technical_message = technical_message or ""
        self.context = context or {}

        error_info = ERROR_MESSAGES.get(
            category, ERROR_MESSAGES[ErrorCategory.SYSTEM_ERROR]
        )
        self.title = error_info["title"]
        self.message = error_info["message"]
        self.action = error_info["action"]

        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert error to dictionary for API response.

        Returns:
            Dictionary with error information
        """
        return {
            "error": self.category.value,
            "title": self.title,
            "message": self.message,
            "action": self.action,
        }


def create_error_response(
    category: ErrorCategory,
    technical_message: Optional[str] = None,
    context: Optional[Dict[str, Any]] = None,
    status_code: int = 400,
) -> tuple[Dict[str, Any], int]:
    """
    Create a structured error response for API endpoints.

    Args:
        category: Error category
        technical_message: Technical error details for logging
        context: Additional context information, merged into the body
        status_code: HTTP status code

    Returns:
        Tuple of (error_dict, status_code)
    """
    error = ApplicationError(category, technical_message, context)
    body = error.to_dict()
    if context:
        body.update(context)
    return body, status_code
