"""Kakao directions passthrough endpoint.

Validates query parameters, forwards them to the directions API and returns
the provider document unchanged. Every call is metered.
"""

import time
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Header, Query

from freight_distance.core.exceptions import (
    InvalidCoordinatesError,
    InvalidPriorityError,
    RoutingServiceError,
    ValidationError,
)
from freight_distance.core.logging import get_logger
from freight_distance.dependencies import (
    AppSettingsDep,
    DirectionsClientDep,
    UsageServiceDep,
    get_client_ip,
    get_requester_id,
)
from freight_distance.models.api_usage import ApiType
from freight_distance.schemas.common import ErrorResponse
from freight_distance.services.kakao_directions import (
    DirectionsAPIError,
    DirectionsParams,
    InvalidDirectionsParamsError,
)

logger = get_logger(__name__)

router = APIRouter()

COORDINATE_FIELDS = ("origin", "destination", "waypoints")


def _validation_error(
    error: InvalidDirectionsParamsError, params: DirectionsParams
) -> ValidationError:
    if error.field == "priority":
        return InvalidPriorityError(params.priority)
    if error.field in COORDINATE_FIELDS and getattr(params, error.field):
        return InvalidCoordinatesError(message=str(error), field=error.field)
    return ValidationError(message=str(error), field=error.field)


@router.get(
    "",
    summary="Car directions",
    description="Validated passthrough to the Kakao Mobility directions API.",
    responses={
        200: {"description": "Provider response, unmodified"},
        400: {"model": ErrorResponse, "description": "Invalid parameters"},
        502: {"model": ErrorResponse, "description": "Routing provider error"},
    },
)
async def get_directions(
    directions: DirectionsClientDep,
    usage: UsageServiceDep,
    settings: AppSettingsDep,
    client_ip: Annotated[str, Depends(get_client_ip)],
    requester_id: Annotated[str | None, Depends(get_requester_id)],
    origin: Annotated[str, Query(description="Origin as 'lng,lat'")] = "",
    destination: Annotated[str, Query(description="Destination as 'lng,lat'")] = "",
    waypoints: Annotated[str | None, Query(description="'lng,lat|lng,lat'")] = None,
    priority: Annotated[str, Query()] = "RECOMMEND",
    avoid: Annotated[str | None, Query()] = None,
    roadevent: Annotated[str, Query()] = "0",
    alternatives: Annotated[bool | None, Query()] = None,
    road_details: Annotated[bool | None, Query()] = None,
    car_type: Annotated[int | None, Query()] = None,
    car_fuel: Annotated[str, Query()] = "GASOLINE",
    car_hipass: Annotated[bool | None, Query()] = None,
    summary: Annotated[bool | None, Query()] = None,
    user_agent: Annotated[str | None, Header()] = None,
) -> dict[str, Any]:
    """Forward a directions request."""
    params = DirectionsParams(
        origin=origin,
        destination=destination,
        waypoints=waypoints,
        priority=priority,
        avoid=avoid,
        roadevent=roadevent,
        alternatives=alternatives,
        road_details=road_details,
        car_type=car_type,
        car_fuel=car_fuel,
        car_hipass=car_hipass,
        summary=summary,
    )

    try:
        params.validate()
    except InvalidDirectionsParamsError as e:
        raise _validation_error(e, params) from e

    record_kwargs: dict[str, Any] = {
        "api_type": ApiType.DIRECTIONS,
        "endpoint": directions.endpoint,
        "request_params": params.to_query(),
        "requester_id": requester_id,
        "ip_address": client_ip,
        "user_agent": user_agent,
    }

    started = time.perf_counter()
    try:
        response = await directions.get_directions(params)
    except DirectionsAPIError as e:
        await usage.record(
            **record_kwargs,
            response_status=e.status_code or 500,
            response_time_ms=int((time.perf_counter() - started) * 1000),
            success=False,
            error_message=str(e),
            result_count=0,
            estimated_cost=0,
        )
        logger.error("directions_passthrough_failed", error=str(e))
        raise RoutingServiceError(
            upstream_status=e.status_code,
            error=str(e),
            message="Failed to fetch directions",
        ) from e

    await usage.record(
        **record_kwargs,
        response_status=response.status_code,
        response_time_ms=int((time.perf_counter() - started) * 1000),
        success=True,
        result_count=len(response.routes),
        estimated_cost=settings.kakao_directions_cost,
    )
    return response.raw
