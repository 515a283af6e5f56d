"""Distance calculation endpoints.

Cache-first distance lookups between two addresses, cache invalidation and
similar-route lookups by coordinates.
"""

import time
from typing import Annotated

from fastapi import APIRouter, Depends, Header, Request, status

from freight_distance.core.exceptions import (
    RateLimitExceededError,
    RoutingServiceError,
    SimilarRouteNotFoundError,
)
from freight_distance.core.logging import get_logger, log_context
from freight_distance.dependencies import (
    AppSettingsDep,
    DistanceServiceDep,
    RateLimiterDep,
    UsageServiceDep,
    get_client_ip,
    get_requester_id,
)
from freight_distance.schemas.common import ErrorResponse
from freight_distance.schemas.distance import (
    DistanceCalculateRequest,
    DistanceCalculateResponse,
    DistanceResultSchema,
    DistanceStatusResponse,
    InvalidateCacheRequest,
    InvalidateCacheResponse,
    RateLimitConfig,
    SimilarRouteRequest,
    TodayStats,
)
from freight_distance.services.api_usage import UsagePeriod
from freight_distance.services.distance import DistanceCalculationRequest
from freight_distance.services.kakao_directions import (
    DirectionsAPIError,
    DirectionsError,
)

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/calculate",
    response_model=DistanceCalculateResponse,
    status_code=status.HTTP_200_OK,
    summary="Calculate distance",
    description=(
        "Road distance and travel time between two addresses. Served from the "
        "cache unless an address changed since; otherwise computed via Kakao."
    ),
    responses={
        200: {"description": "Distance result"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        502: {"model": ErrorResponse, "description": "Routing provider error"},
    },
)
async def calculate_distance(
    body: DistanceCalculateRequest,
    distance: DistanceServiceDep,
    settings: AppSettingsDep,
    client_ip: Annotated[str, Depends(get_client_ip)],
    requester_id: Annotated[str | None, Depends(get_requester_id)],
    user_agent: Annotated[str | None, Header()] = None,
) -> DistanceCalculateResponse:
    """Calculate the distance for an address pair.

    The requester is identified by ``X-User-ID``, falling back to the
    client IP for rate limiting.
    """
    started = time.perf_counter()
    rate_key = requester_id or client_ip

    info = distance.check_rate_limit(rate_key)
    if (
        info is not None
        and info.is_limited
        and settings.rate_limit_enforced
        and distance.rate_limiter is not None
    ):
        raise RateLimitExceededError(
            max_calls=distance.rate_limiter.max_calls,
            retry_after=distance.rate_limiter.retry_after(info),
            requester_id=rate_key,
        )

    with log_context(requester_id=rate_key):
        logger.info(
            "calculate_distance_request",
            pickup_address_id=body.pickup_address_id,
            delivery_address_id=body.delivery_address_id,
            priority=body.priority.value,
            force_refresh=body.force_refresh,
        )

        try:
            result = await distance.calculate_distance(
                DistanceCalculationRequest(
                    pickup_address_id=body.pickup_address_id,
                    delivery_address_id=body.delivery_address_id,
                    pickup_coordinates=body.pickup_coordinates.to_coordinates(),
                    delivery_coordinates=body.delivery_coordinates.to_coordinates(),
                    priority=body.priority,
                    force_refresh=body.force_refresh,
                ),
                requester_id,
                ip_address=client_ip,
                user_agent=user_agent,
            )
        except DirectionsAPIError as e:
            raise RoutingServiceError(upstream_status=e.status_code, error=str(e)) from e
        except DirectionsError as e:
            raise RoutingServiceError(
                error=str(e), message="No route found between the given points"
            ) from e

        response_time_ms = int((time.perf_counter() - started) * 1000)
        logger.info(
            "calculate_distance_success",
            distance_km=result.distance_km,
            method=result.method,
            response_time_ms=response_time_ms,
        )

    return DistanceCalculateResponse(
        **DistanceResultSchema.model_validate(result).model_dump(),
        response_time_ms=response_time_ms,
    )


@router.get(
    "/calculate",
    response_model=DistanceStatusResponse,
    summary="Calculation API status",
    description="Today's call totals and the active rate limit configuration.",
)
async def calculation_status(
    request: Request,
    usage: UsageServiceDep,
    limiter: RateLimiterDep,
    settings: AppSettingsDep,
) -> DistanceStatusResponse:
    """Operational status of the calculation endpoint."""
    stats = await usage.get_usage_stats(UsagePeriod.DAY)
    started_at = getattr(request.app.state, "started_at", time.monotonic())

    return DistanceStatusResponse(
        uptime_seconds=round(time.monotonic() - started_at, 3),
        today_stats=TodayStats(
            total_calls=stats.total_calls,
            success_rate=stats.success_rate,
            avg_response_time=stats.avg_response_time,
        ),
        rate_limit=RateLimitConfig(
            window_ms=limiter.window_ms,
            max_calls=limiter.max_calls,
            enforced=settings.rate_limit_enforced,
        ),
    )


@router.post(
    "/invalidate",
    response_model=InvalidateCacheResponse,
    summary="Invalidate cached distances",
    description="Marks every cached distance for the address pair as invalid.",
)
async def invalidate_cache(
    body: InvalidateCacheRequest,
    distance: DistanceServiceDep,
) -> InvalidateCacheResponse:
    """Soft-invalidate the cache rows for an address pair."""
    invalidated = await distance.invalidate_cache(
        body.pickup_address_id, body.delivery_address_id
    )
    return InvalidateCacheResponse(
        pickup_address_id=body.pickup_address_id,
        delivery_address_id=body.delivery_address_id,
        invalidated=invalidated,
    )


@router.post(
    "/similar",
    response_model=DistanceResultSchema,
    summary="Find a similar cached route",
    description="Cached route whose endpoints lie within the threshold (about 1km).",
    responses={
        404: {"model": ErrorResponse, "description": "No similar route cached"},
    },
)
async def find_similar_route(
    body: SimilarRouteRequest,
    distance: DistanceServiceDep,
) -> DistanceResultSchema:
    """Similar-route lookup by coordinates."""
    result = await distance.find_similar_route(
        body.pickup_coordinates.to_coordinates(),
        body.delivery_coordinates.to_coordinates(),
        body.threshold,
    )
    if result is None:
        raise SimilarRouteNotFoundError()
    return DistanceResultSchema.model_validate(result)
