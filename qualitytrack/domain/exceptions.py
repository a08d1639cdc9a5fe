"""
Domain exceptions for the QualityTrack application.

This module defines domain-level exceptions that represent business rule violations.
These exceptions are independent of infrastructure concerns.
"""

from typing import Any


class QualityTrackException(Exception):
    """
    Base exception for all QualityTrack application errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for API responses
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ValidationException(QualityTrackException):
    """Raised when input validation fails."""

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class ResourceNotFoundException(QualityTrackException):
    """Raised when a requested entity is not found."""

    def __init__(self, resource_type: str, resource_id: int | str):
        super().__init__(
            f"{resource_type} not found: {resource_id}",
            "RESOURCE_NOT_FOUND",
            {"resource_type": resource_type, "resource_id": resource_id},
        )


class PermissionDeniedError(QualityTrackException):
    """
    Permission denied.

    The message is deliberately generic: callers must not learn whether the
    permission is missing, the scope is too narrow or the resource is unknown.
    """

    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, "PERMISSION_DENIED")


class StoreUnavailableError(QualityTrackException):
    """The permission store could not be reached, failed, or timed out."""

    def __init__(self, operation: str, reason: str | None = None):
        details = {"operation": operation}
        if reason:
            details["reason"] = reason
        super().__init__(
            f"Permission store unavailable during {operation}",
            "STORE_UNAVAILABLE",
            details,
        )
