"""Tests for the directions passthrough endpoint (GET /api/v1/directions)."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient
from mocks.kakao_responses import DIRECTIONS_SUCCESS_RESPONSE

from freight_distance.config import Settings
from freight_distance.dependencies import get_directions_client, get_usage_service
from freight_distance.main import create_app
from freight_distance.services.kakao_directions import (
    DirectionsAPIError,
    KakaoDirectionsClient,
)

QUERY = {"origin": "127.11,37.39", "destination": "127.03,37.49"}


@pytest.fixture
def test_app(test_settings: Settings, mock_directions: MagicMock, mock_usage: MagicMock):
    """Create app with mocked dependencies."""
    app = create_app(settings=test_settings)

    app.dependency_overrides[get_directions_client] = lambda: mock_directions
    app.dependency_overrides[get_usage_service] = lambda: mock_usage

    yield app

    app.dependency_overrides.clear()


@pytest.mark.asyncio
async def test_returns_provider_document(
    test_app,
    test_settings: Settings,
    mock_directions: MagicMock,
    mock_usage: MagicMock,
) -> None:
    """Test the provider JSON is passed through and the call is metered."""
    mock_directions.get_directions.return_value = KakaoDirectionsClient(
        test_settings
    )._parse_response(DIRECTIONS_SUCCESS_RESPONSE)

    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        response = await client.get(
            "/api/v1/directions", params=QUERY, headers={"X-User-ID": "user-7"}
        )

    assert response.status_code == 200
    assert response.json() == DIRECTIONS_SUCCESS_RESPONSE

    params = mock_directions.get_directions.await_args.args[0]
    assert params.priority == "RECOMMEND"
    assert params.car_fuel == "GASOLINE"
    assert params.roadevent == "0"

    recorded = mock_usage.record.await_args.kwargs
    assert recorded["success"] is True
    assert recorded["result_count"] == 2
    assert recorded["estimated_cost"] == test_settings.kakao_directions_cost
    assert recorded["requester_id"] == "user-7"
    assert recorded["request_params"]["origin"] == "127.11,37.39"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("query", "field", "code"),
    [
        ({"destination": "127.03,37.49"}, "origin", "VALIDATION_ERROR"),
        ({"origin": "127.11,37.39"}, "destination", "VALIDATION_ERROR"),
        ({**QUERY, "origin": "gangnam"}, "origin", "INVALID_COORDINATES"),
        ({**QUERY, "priority": "FASTEST"}, "priority", "INVALID_PRIORITY"),
        ({**QUERY, "car_fuel": "ELECTRIC"}, "car_fuel", "VALIDATION_ERROR"),
        ({**QUERY, "waypoints": "127.05,37.45|nowhere"}, "waypoints", "INVALID_COORDINATES"),
    ],
)
async def test_invalid_params_rejected(
    test_app,
    mock_directions: MagicMock,
    mock_usage: MagicMock,
    query: dict[str, str],
    field: str,
    code: str,
) -> None:
    """Test invalid parameters fail before the provider is called."""
    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        response = await client.get("/api/v1/directions", params=query)

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == code
    assert error["details"]["field"] == field
    mock_directions.get_directions.assert_not_awaited()
    mock_usage.record.assert_not_awaited()


@pytest.mark.asyncio
async def test_provider_failure_is_metered(
    test_app,
    mock_directions: MagicMock,
    mock_usage: MagicMock,
) -> None:
    mock_directions.get_directions = AsyncMock(
        side_effect=DirectionsAPIError("HTTP error! status: 429", status_code=429)
    )

    async with AsyncClient(
        transport=ASGITransport(app=test_app),
        base_url="http://test",
    ) as client:
        response = await client.get("/api/v1/directions", params=QUERY)

    assert response.status_code == 502
    assert response.json()["error"]["message"] == "Failed to fetch directions"

    recorded = mock_usage.record.await_args.kwargs
    assert recorded["success"] is False
    assert recorded["response_status"] == 429
    assert recorded["estimated_cost"] == 0
