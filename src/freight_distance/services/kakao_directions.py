"""Kakao Mobility directions API client.

Async access to the car directions endpoint. Responses are mapped to small
internal DTOs while the provider JSON is kept verbatim for auditing.

See: https://developers.kakaomobility.com/docs/navi-api/directions/
"""

import re
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

import httpx
import structlog

from freight_distance.config import Settings, get_settings

logger = structlog.get_logger(__name__)

DIRECTIONS_PATH = "/v1/directions"

VALID_PRIORITIES = ("RECOMMEND", "TIME", "DISTANCE")
VALID_CAR_FUELS = ("GASOLINE", "DIESEL", "LPG")

_COORDINATE_PATTERN = re.compile(r"^[\d.-]+,[\d.-]+")
_WAYPOINT_SEPARATOR = re.compile(r"\||%7C")


# -----------------------------------------------------------------------------
# Errors
# -----------------------------------------------------------------------------


class DirectionsError(Exception):
    """Base exception for directions API errors."""

    pass


class DirectionsAPIError(DirectionsError):
    """The provider answered with a non-2xx status or could not be reached.

    Attributes:
        status_code: HTTP status code, or None for transport failures
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RouteNotFoundError(DirectionsError):
    """The provider answered but produced no usable route."""

    def __init__(self, message: str = "No route found", result_code: int | None = None) -> None:
        super().__init__(message)
        self.result_code = result_code


class InvalidDirectionsParamsError(DirectionsError):
    """Request parameters failed validation before any call was made."""

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


# -----------------------------------------------------------------------------
# Validation helpers
# -----------------------------------------------------------------------------


def is_valid_coordinate(coordinate: str) -> bool:
    """Check a ``"lng,lat"`` string (loose prefix match)."""
    return bool(_COORDINATE_PATTERN.match(coordinate))


def is_valid_priority(priority: str) -> bool:
    return priority in VALID_PRIORITIES


def is_valid_car_fuel(car_fuel: str) -> bool:
    return car_fuel in VALID_CAR_FUELS


def is_valid_waypoints(waypoints: str) -> bool:
    """Check waypoints separated by ``|`` or its URL-encoded form ``%7C``."""
    return all(
        is_valid_coordinate(waypoint.strip())
        for waypoint in _WAYPOINT_SEPARATOR.split(waypoints)
    )


# -----------------------------------------------------------------------------
# DTOs
# -----------------------------------------------------------------------------


@dataclass
class DirectionsParams:
    """Query parameters for one directions request.

    ``origin``, ``destination`` and each waypoint are ``"lng,lat"`` strings.
    """

    origin: str
    destination: str
    waypoints: str | None = None
    priority: str | None = None
    avoid: str | None = None
    roadevent: str | None = None
    alternatives: bool | None = None
    road_details: bool | None = None
    car_type: int | None = None
    car_fuel: str | None = None
    car_hipass: bool | None = None
    summary: bool | None = None

    def validate(self) -> None:
        """Validate the parameters.

        Raises:
            InvalidDirectionsParamsError: On the first invalid field
        """
        if not self.origin:
            raise InvalidDirectionsParamsError("Origin parameter is required", "origin")
        if not self.destination:
            raise InvalidDirectionsParamsError(
                "Destination parameter is required", "destination"
            )
        if not is_valid_coordinate(self.origin):
            raise InvalidDirectionsParamsError(
                "Invalid origin coordinate format", "origin"
            )
        if not is_valid_coordinate(self.destination):
            raise InvalidDirectionsParamsError(
                "Invalid destination coordinate format", "destination"
            )
        if self.priority and not is_valid_priority(self.priority):
            raise InvalidDirectionsParamsError(
                "Invalid priority value. Use RECOMMEND, TIME, or DISTANCE", "priority"
            )
        if self.car_fuel and not is_valid_car_fuel(self.car_fuel):
            raise InvalidDirectionsParamsError(
                "Invalid car_fuel value. Use GASOLINE, DIESEL, or LPG", "car_fuel"
            )
        if self.waypoints and not is_valid_waypoints(self.waypoints):
            raise InvalidDirectionsParamsError("Invalid waypoints format", "waypoints")

    def to_query(self) -> dict[str, str]:
        """Build query parameters, omitting unset values."""
        query: dict[str, str] = {}
        for key, value in self.__dict__.items():
            if value is None:
                continue
            if isinstance(value, bool):
                query[key] = "true" if value else "false"
            else:
                query[key] = str(value)
        return query


@dataclass
class RouteSummary:
    """Totals for one route."""

    distance: int  # meters
    duration: int  # seconds
    priority: str | None = None
    fare_taxi: int | None = None
    fare_toll: int | None = None


@dataclass
class Route:
    """One candidate route. ``result_code`` 0 means success."""

    result_code: int
    result_msg: str
    summary: RouteSummary | None = None


@dataclass
class DirectionsResponse:
    """Parsed directions response with the raw provider document."""

    trans_id: str | None
    routes: list[Route]
    raw: dict[str, Any] = field(default_factory=dict, repr=False)
    status_code: int = 200

    def first_route(self) -> Route:
        """Return the first route if it is usable.

        Raises:
            RouteNotFoundError: No routes, a non-zero result code or no summary
        """
        if not self.routes:
            raise RouteNotFoundError("No route found")

        route = self.routes[0]
        if route.result_code != 0:
            raise RouteNotFoundError(
                route.result_msg or f"Route search failed: {route.result_code}",
                result_code=route.result_code,
            )
        if route.summary is None:
            raise RouteNotFoundError("Route has no summary", result_code=route.result_code)
        return route


# -----------------------------------------------------------------------------
# Formatting helpers
# -----------------------------------------------------------------------------


def format_distance(meters: int | float) -> str:
    """Format meters for display: ``850m`` or ``12.3km``."""
    if meters < 1000:
        return f"{meters}m"
    km = (Decimal(str(meters)) / 1000).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return f"{km}km"


def format_duration(seconds: int | float) -> str:
    """Format seconds as hours and minutes, e.g. ``2시간 5분`` or ``45분``."""
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    if hours > 0:
        return f"{hours}시간 {minutes}분"
    return f"{minutes}분"


def format_fare(amount: int) -> str:
    """Format a KRW amount, e.g. ``₩12,300``."""
    if amount < 0:
        return f"-₩{-amount:,}"
    return f"₩{amount:,}"


# -----------------------------------------------------------------------------
# Client
# -----------------------------------------------------------------------------


class KakaoDirectionsClient:
    """Async client for the Kakao Mobility directions API.

    A single attempt per call: no retries and no backoff. Usage metering is
    the caller's job.

    Usage:
        ```python
        client = KakaoDirectionsClient()
        response = await client.get_directions(
            DirectionsParams(origin="127.11,37.39", destination="127.03,37.49")
        )
        route = response.first_route()
        ```
    """

    def __init__(self, settings: Settings | None = None) -> None:
        """Initialize the client.

        Args:
            settings: Application settings (defaults to cached settings)
        """
        self._settings = settings or get_settings()
        self._client: httpx.AsyncClient | None = None

    @property
    def endpoint(self) -> str:
        return DIRECTIONS_PATH

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            api_key = self._settings.kakao_rest_api_key.get_secret_value()
            self._client = httpx.AsyncClient(
                base_url=self._settings.kakao_directions_base_url,
                timeout=self._settings.kakao_timeout,
                headers={
                    "Authorization": f"KakaoAK {api_key}",
                    "Content-Type": "application/json",
                },
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def get_directions(self, params: DirectionsParams) -> DirectionsResponse:
        """Request car directions.

        Args:
            params: Request parameters (not validated here)

        Returns:
            Parsed DirectionsResponse

        Raises:
            DirectionsAPIError: On non-2xx responses or transport errors
        """
        client = await self._get_client()

        try:
            response = await client.get(DIRECTIONS_PATH, params=params.to_query())
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            status_code = e.response.status_code
            logger.error(
                "directions_request_failed",
                status_code=status_code,
                origin=params.origin,
                destination=params.destination,
            )
            raise DirectionsAPIError(
                f"HTTP error! status: {status_code}", status_code=status_code
            ) from e
        except httpx.RequestError as e:
            logger.error(
                "directions_request_error",
                error=str(e),
                origin=params.origin,
                destination=params.destination,
            )
            raise DirectionsAPIError(f"Request failed: {e}") from e

        try:
            data = response.json()
        except ValueError as e:
            raise DirectionsAPIError(
                "Invalid JSON in directions response",
                status_code=response.status_code,
            ) from e

        if not isinstance(data, dict):
            raise DirectionsAPIError(
                "Unexpected directions response shape",
                status_code=response.status_code,
            )

        return self._parse_response(data, response.status_code)

    def _parse_response(
        self, data: dict[str, Any], status_code: int = 200
    ) -> DirectionsResponse:
        """Parse the provider document into DTOs."""
        routes = []
        for item in data.get("routes") or []:
            summary_data = item.get("summary")
            summary = None
            if summary_data:
                fare = summary_data.get("fare") or {}
                summary = RouteSummary(
                    distance=summary_data.get("distance", 0),
                    duration=summary_data.get("duration", 0),
                    priority=summary_data.get("priority"),
                    fare_taxi=fare.get("taxi"),
                    fare_toll=fare.get("toll"),
                )
            routes.append(
                Route(
                    result_code=item.get("result_code", -1),
                    result_msg=item.get("result_msg", ""),
                    summary=summary,
                )
            )

        return DirectionsResponse(
            trans_id=data.get("trans_id"),
            routes=routes,
            raw=data,
            status_code=status_code,
        )
