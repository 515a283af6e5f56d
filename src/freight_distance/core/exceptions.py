"""Custom exception hierarchy for the distance service.

This module defines a consistent exception hierarchy that enables:
- Structured error responses with error codes
- Consistent HTTP status code mapping
- Machine-readable error handling for API consumers

Usage:
    from freight_distance.core.exceptions import RoutingServiceError

    raise RoutingServiceError(upstream_status=500, error="HTTP error! status: 500")
"""

from typing import Any


class FreightDistanceError(Exception):
    """Base exception for all service errors.

    All custom exceptions should inherit from this class to enable
    consistent error handling and response formatting.

    Attributes:
        code: Machine-readable error code (e.g., "RATE_LIMIT_EXCEEDED")
        message: Human-readable error message
        status_code: HTTP status code to return
        details: Additional error details (optional)
    """

    code: str = "INTERNAL_ERROR"
    message: str = "An unexpected error occurred"
    status_code: int = 500

    def __init__(
        self,
        message: str | None = None,
        code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Override default message
            code: Override default error code
            details: Additional error details
        """
        if message:
            self.message = message
        if code:
            self.code = code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self, request_id: str | None = None) -> dict[str, Any]:
        """Convert exception to API error response format.

        Args:
            request_id: Request correlation ID

        Returns:
            Error response dictionary
        """
        error: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if request_id:
            error["request_id"] = request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


# =============================================================================
# Resource Not Found Errors (404)
# =============================================================================


class NotFoundError(FreightDistanceError):
    """Base class for resource not found errors."""

    status_code: int = 404


class SimilarRouteNotFoundError(NotFoundError):
    """Raised when no cached route lies close to the requested coordinates."""

    code: str = "SIMILAR_ROUTE_NOT_FOUND"
    message: str = "No similar cached route found"


# =============================================================================
# Validation Errors (400)
# =============================================================================


class ValidationError(FreightDistanceError):
    """Raised when input validation fails."""

    code: str = "VALIDATION_ERROR"
    message: str = "Validation error"
    status_code: int = 400

    def __init__(
        self,
        message: str | None = None,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with optional field information."""
        if details is None:
            details = {}
        if field:
            details["field"] = field
        super().__init__(message=message, details=details if details else None)


class InvalidCoordinatesError(ValidationError):
    """Raised when a coordinate is malformed."""

    code: str = "INVALID_COORDINATES"
    message: str = "Invalid coordinate format"


class InvalidPriorityError(ValidationError):
    """Raised when a route priority is not RECOMMEND, TIME or DISTANCE."""

    code: str = "INVALID_PRIORITY"
    message: str = "Invalid priority value. Use RECOMMEND, TIME, or DISTANCE"

    def __init__(self, priority: str | None = None, message: str | None = None) -> None:
        """Initialize with the rejected priority."""
        details: dict[str, Any] = {}
        if priority:
            details["priority"] = priority
        super().__init__(message=message, field="priority", details=details)


class ConfirmationRequiredError(ValidationError):
    """Raised when a destructive request lacks explicit confirmation."""

    code: str = "CONFIRMATION_REQUIRED"
    message: str = "Confirmation required. Add ?confirm=yes to proceed."


# =============================================================================
# Authorization Errors (403)
# =============================================================================


class DeletionDisabledError(FreightDistanceError):
    """Raised when usage data deletion is requested through the API."""

    code: str = "DELETION_DISABLED"
    message: str = (
        "Data deletion is disabled for security reasons. "
        "Use database admin tools if necessary."
    )
    status_code: int = 403


# =============================================================================
# Rate Limiting (429)
# =============================================================================


class RateLimitExceededError(FreightDistanceError):
    """Raised when a requester exceeds the per-window call budget."""

    code: str = "RATE_LIMIT_EXCEEDED"
    message: str = "Rate limit exceeded"
    status_code: int = 429

    def __init__(
        self,
        max_calls: int,
        retry_after: int,
        requester_id: str | None = None,
    ) -> None:
        """Initialize with the limit that was hit.

        Args:
            max_calls: Maximum calls allowed per window
            retry_after: Seconds until the window resets
            requester_id: Requester that hit the limit
        """
        self.retry_after = retry_after
        details: dict[str, Any] = {"retry_after": retry_after}
        if requester_id:
            details["requester_id"] = requester_id
        super().__init__(
            message=f"Rate limit exceeded. Maximum {max_calls} calls per window.",
            details=details,
        )


# =============================================================================
# External Service Errors (502)
# =============================================================================


class ExternalServiceError(FreightDistanceError):
    """Base class for external service errors."""

    code: str = "EXTERNAL_SERVICE_ERROR"
    message: str = "External service error"
    status_code: int = 502


class RoutingServiceError(ExternalServiceError):
    """Raised when the routing provider fails or finds no route."""

    code: str = "ROUTING_SERVICE_ERROR"
    message: str = "Failed to calculate distance"

    def __init__(
        self,
        upstream_status: int | None = None,
        error: str | None = None,
        message: str | None = None,
    ) -> None:
        """Initialize with optional upstream failure details."""
        details: dict[str, Any] = {"provider": "kakao"}
        if upstream_status is not None:
            details["upstream_status"] = upstream_status
        if error:
            details["error"] = error
        super().__init__(message=message, details=details)
