"""Tests for the Kakao directions client.

Tests cover:
- Parameter validation and query building
- Response parsing and first-route selection
- HTTP error mapping
- Display formatting helpers
"""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from mocks.kakao_responses import (
    DIRECTIONS_EMPTY_RESPONSE,
    DIRECTIONS_NO_ROUTE_RESPONSE,
    DIRECTIONS_SINGLE_ROUTE_RESPONSE,
    DIRECTIONS_SUCCESS_RESPONSE,
)

from freight_distance.config import Settings
from freight_distance.services.kakao_directions import (
    DIRECTIONS_PATH,
    DirectionsAPIError,
    DirectionsParams,
    InvalidDirectionsParamsError,
    KakaoDirectionsClient,
    RouteNotFoundError,
    format_distance,
    format_duration,
    format_fare,
    is_valid_coordinate,
    is_valid_waypoints,
)

# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def directions_client(test_settings: Settings) -> KakaoDirectionsClient:
    return KakaoDirectionsClient(test_settings)


def _mock_transport_client(
    handler: httpx.MockTransport, settings: Settings
) -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.kakao_directions_base_url,
        transport=handler,
        headers={"Authorization": f"KakaoAK {settings.kakao_rest_api_key.get_secret_value()}"},
    )


# =============================================================================
# Validation Tests
# =============================================================================


class TestCoordinateValidation:
    """Tests for coordinate and waypoint format checks."""

    @pytest.mark.parametrize("value", ["127.11,37.39", "-0.5,51.47", "127,37"])
    def test_valid_coordinates(self, value: str) -> None:
        assert is_valid_coordinate(value) is True

    @pytest.mark.parametrize("value", ["", "abc", "127.11", "lng,lat", " 127.1,37.3"])
    def test_invalid_coordinates(self, value: str) -> None:
        assert is_valid_coordinate(value) is False

    def test_waypoints_pipe_separated(self) -> None:
        assert is_valid_waypoints("127.1,37.4|127.2,37.5") is True

    def test_waypoints_url_encoded_separator(self) -> None:
        assert is_valid_waypoints("127.1,37.4%7C127.2,37.5") is True

    def test_waypoints_with_bad_entry(self) -> None:
        assert is_valid_waypoints("127.1,37.4|nowhere") is False


class TestDirectionsParams:
    """Tests for DirectionsParams validation and query building."""

    def test_valid_params_pass(self) -> None:
        params = DirectionsParams(
            origin="127.11,37.39",
            destination="127.03,37.49",
            priority="TIME",
            car_fuel="DIESEL",
            waypoints="127.05,37.45",
        )
        params.validate()

    def test_missing_origin(self) -> None:
        with pytest.raises(InvalidDirectionsParamsError) as exc_info:
            DirectionsParams(origin="", destination="127.03,37.49").validate()

        assert str(exc_info.value) == "Origin parameter is required"
        assert exc_info.value.field == "origin"

    def test_missing_destination(self) -> None:
        with pytest.raises(InvalidDirectionsParamsError) as exc_info:
            DirectionsParams(origin="127.11,37.39", destination="").validate()

        assert exc_info.value.field == "destination"

    def test_bad_origin_format(self) -> None:
        with pytest.raises(InvalidDirectionsParamsError, match="Invalid origin"):
            DirectionsParams(origin="seoul", destination="127.03,37.49").validate()

    def test_bad_priority(self) -> None:
        params = DirectionsParams(
            origin="127.11,37.39", destination="127.03,37.49", priority="FASTEST"
        )
        with pytest.raises(InvalidDirectionsParamsError) as exc_info:
            params.validate()

        assert exc_info.value.field == "priority"
        assert "RECOMMEND, TIME, or DISTANCE" in str(exc_info.value)

    def test_bad_car_fuel(self) -> None:
        params = DirectionsParams(
            origin="127.11,37.39", destination="127.03,37.49", car_fuel="ELECTRIC"
        )
        with pytest.raises(InvalidDirectionsParamsError) as exc_info:
            params.validate()

        assert exc_info.value.field == "car_fuel"

    def test_bad_waypoints(self) -> None:
        params = DirectionsParams(
            origin="127.11,37.39", destination="127.03,37.49", waypoints="x|y"
        )
        with pytest.raises(InvalidDirectionsParamsError, match="waypoints"):
            params.validate()

    def test_to_query_omits_unset_and_formats_bools(self) -> None:
        params = DirectionsParams(
            origin="127.11,37.39",
            destination="127.03,37.49",
            priority="RECOMMEND",
            alternatives=True,
            car_hipass=False,
            car_type=1,
        )

        assert params.to_query() == {
            "origin": "127.11,37.39",
            "destination": "127.03,37.49",
            "priority": "RECOMMEND",
            "alternatives": "true",
            "car_type": "1",
            "car_hipass": "false",
        }


# =============================================================================
# Response Parsing Tests
# =============================================================================


class TestParseResponse:
    """Tests for mapping provider JSON to DTOs."""

    def test_parse_success(self, directions_client: KakaoDirectionsClient) -> None:
        response = directions_client._parse_response(DIRECTIONS_SUCCESS_RESPONSE)

        assert response.trans_id == DIRECTIONS_SUCCESS_RESPONSE["trans_id"]
        assert len(response.routes) == 2
        route = response.first_route()
        assert route.summary is not None
        assert route.summary.distance == 12345
        assert route.summary.duration == 754
        assert route.summary.fare_taxi == 12300
        assert route.summary.fare_toll == 2100
        assert response.raw is DIRECTIONS_SUCCESS_RESPONSE

    def test_parse_route_without_fare(self, directions_client: KakaoDirectionsClient) -> None:
        response = directions_client._parse_response(DIRECTIONS_SINGLE_ROUTE_RESPONSE)

        summary = response.first_route().summary
        assert summary is not None
        assert summary.fare_taxi is None
        assert summary.priority is None

    def test_first_route_no_route_code(self, directions_client: KakaoDirectionsClient) -> None:
        response = directions_client._parse_response(DIRECTIONS_NO_ROUTE_RESPONSE)

        with pytest.raises(RouteNotFoundError) as exc_info:
            response.first_route()

        assert exc_info.value.result_code == 104

    def test_first_route_empty(self, directions_client: KakaoDirectionsClient) -> None:
        response = directions_client._parse_response(DIRECTIONS_EMPTY_RESPONSE)

        with pytest.raises(RouteNotFoundError, match="No route found"):
            response.first_route()


# =============================================================================
# HTTP Tests
# =============================================================================


class TestGetDirections:
    """Tests for get_directions HTTP handling."""

    @pytest.mark.asyncio
    async def test_sends_auth_header_and_query(
        self, directions_client: KakaoDirectionsClient, test_settings: Settings
    ) -> None:
        """Test the request carries the KakaoAK header and query params."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=DIRECTIONS_SUCCESS_RESPONSE)

        client = _mock_transport_client(httpx.MockTransport(handler), test_settings)
        with patch.object(directions_client, "_get_client", AsyncMock(return_value=client)):
            response = await directions_client.get_directions(
                DirectionsParams(origin="126.978,37.5665", destination="129.0756,35.1796")
            )

        assert response.status_code == 200
        assert len(response.routes) == 2
        request = seen[0]
        assert request.url.path == DIRECTIONS_PATH
        assert request.url.params["origin"] == "126.978,37.5665"
        assert request.headers["Authorization"] == "KakaoAK test-kakao-key"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_http_error_maps_status(
        self, directions_client: KakaoDirectionsClient, test_settings: Settings
    ) -> None:
        """Test non-2xx responses raise DirectionsAPIError with the status."""
        transport = httpx.MockTransport(lambda request: httpx.Response(401, json={}))
        client = _mock_transport_client(transport, test_settings)

        with patch.object(directions_client, "_get_client", AsyncMock(return_value=client)):
            with pytest.raises(DirectionsAPIError) as exc_info:
                await directions_client.get_directions(
                    DirectionsParams(origin="127.1,37.4", destination="127.2,37.5")
                )

        assert exc_info.value.status_code == 401
        assert str(exc_info.value) == "HTTP error! status: 401"
        await client.aclose()

    @pytest.mark.asyncio
    async def test_transport_error_has_no_status(
        self, directions_client: KakaoDirectionsClient
    ) -> None:
        """Test connection failures raise DirectionsAPIError without status."""
        mock_client = AsyncMock()
        mock_client.get.side_effect = httpx.ConnectError("connection refused")

        with patch.object(directions_client, "_get_client", AsyncMock(return_value=mock_client)):
            with pytest.raises(DirectionsAPIError) as exc_info:
                await directions_client.get_directions(
                    DirectionsParams(origin="127.1,37.4", destination="127.2,37.5")
                )

        assert exc_info.value.status_code is None

    @pytest.mark.asyncio
    async def test_invalid_json(self, directions_client: KakaoDirectionsClient) -> None:
        """Test an unparseable body raises DirectionsAPIError."""
        mock_response = MagicMock()
        mock_response.status_code = 200
        mock_response.raise_for_status = MagicMock()
        mock_response.json.side_effect = ValueError("Expecting value")

        mock_client = AsyncMock()
        mock_client.get.return_value = mock_response

        with patch.object(directions_client, "_get_client", AsyncMock(return_value=mock_client)):
            with pytest.raises(DirectionsAPIError) as exc_info:
                await directions_client.get_directions(
                    DirectionsParams(origin="127.1,37.4", destination="127.2,37.5")
                )

        assert exc_info.value.status_code == 200

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, directions_client: KakaoDirectionsClient) -> None:
        await directions_client._get_client()
        await directions_client.close()
        await directions_client.close()

        assert directions_client._client is None


# =============================================================================
# Formatting Tests
# =============================================================================


class TestFormatting:
    """Tests for display formatting helpers."""

    def test_format_distance_meters(self) -> None:
        assert format_distance(850) == "850m"

    def test_format_distance_km(self) -> None:
        assert format_distance(12345) == "12.3km"
        assert format_distance(12350) == "12.4km"

    def test_format_duration_minutes_only(self) -> None:
        assert format_duration(754) == "12분"

    def test_format_duration_hours(self) -> None:
        assert format_duration(7500) == "2시간 5분"

    def test_format_fare(self) -> None:
        assert format_fare(12300) == "₩12,300"
        assert format_fare(0) == "₩0"
