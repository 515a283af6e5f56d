"""Tests for the service exception hierarchy."""

from freight_distance.core.exceptions import (
    ConfirmationRequiredError,
    FreightDistanceError,
    InvalidPriorityError,
    RateLimitExceededError,
    RoutingServiceError,
    ValidationError,
)


def test_to_dict_includes_request_id_and_details() -> None:
    error = ValidationError("Invalid origin coordinate format", field="origin")

    assert error.to_dict(request_id="req-1") == {
        "error": {
            "code": "VALIDATION_ERROR",
            "message": "Invalid origin coordinate format",
            "request_id": "req-1",
            "details": {"field": "origin"},
        }
    }


def test_defaults_come_from_class() -> None:
    error = ConfirmationRequiredError()

    assert error.status_code == 400
    assert error.code == "CONFIRMATION_REQUIRED"
    assert "confirm=yes" in error.message
    assert "details" not in error.to_dict()["error"]


def test_invalid_priority_details() -> None:
    error = InvalidPriorityError("FASTEST")

    assert error.code == "INVALID_PRIORITY"
    assert error.details == {"priority": "FASTEST", "field": "priority"}


def test_rate_limit_error_carries_retry_after() -> None:
    error = RateLimitExceededError(max_calls=10, retry_after=42, requester_id="user-1")

    assert error.status_code == 429
    assert error.retry_after == 42
    assert error.message == "Rate limit exceeded. Maximum 10 calls per window."
    assert error.details == {"retry_after": 42, "requester_id": "user-1"}


def test_routing_error_details() -> None:
    error = RoutingServiceError(upstream_status=401, error="HTTP error! status: 401")

    assert isinstance(error, FreightDistanceError)
    assert error.status_code == 502
    assert error.details == {
        "provider": "kakao",
        "upstream_status": 401,
        "error": "HTTP error! status: 401",
    }
