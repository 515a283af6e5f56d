"""Distance calculation service.

Resolves the road distance between two addresses:

1. Look up the latest valid cache row for (pickup, delivery, priority)
2. Check the address change log; a newer change makes the row stale
3. On a miss or a stale row call the directions API, meter the call and
   store the result as a new cache row

Each step runs in its own short-lived session.
"""

import asyncio
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Literal

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from freight_distance.config import Settings, get_settings
from freight_distance.models.api_usage import ApiType
from freight_distance.models.distance_cache import DistanceCache, RoutePriority
from freight_distance.repositories.address_change_log import AddressChangeLogRepository
from freight_distance.repositories.distance_cache import DistanceCacheRepository
from freight_distance.services.api_usage import ApiUsageService
from freight_distance.services.kakao_directions import (
    DirectionsAPIError,
    DirectionsParams,
    DirectionsResponse,
    KakaoDirectionsClient,
    RouteNotFoundError,
)
from freight_distance.services.rate_limiter import RateLimiter, RateLimitInfo

logger = structlog.get_logger(__name__)

CalculationMethod = Literal["cached", "api"]
Accuracy = Literal["high", "medium"]


# -----------------------------------------------------------------------------
# DTOs
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Coordinates:
    lat: float
    lng: float

    def as_lng_lat(self) -> str:
        """Provider coordinate format: ``"lng,lat"``."""
        return f"{self.lng},{self.lat}"


_InflightKey = tuple[str, str, str, Coordinates, Coordinates]


@dataclass
class DistanceCalculationRequest:
    pickup_address_id: str
    delivery_address_id: str
    pickup_coordinates: Coordinates
    delivery_coordinates: Coordinates
    priority: RoutePriority = RoutePriority.RECOMMEND
    force_refresh: bool = False


@dataclass
class DistanceMetadata:
    calculated_at: datetime
    alternative_routes: int = 0
    traffic_considered: bool = True


@dataclass
class DistanceResult:
    """Outcome of a distance calculation."""

    distance_km: float
    duration_minutes: int
    method: CalculationMethod
    cache_hit: bool
    accuracy: Accuracy
    metadata: DistanceMetadata
    cache_id: str | None = None
    api_call_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dict."""
        return {
            "distance_km": self.distance_km,
            "duration_minutes": self.duration_minutes,
            "method": self.method,
            "cache_hit": self.cache_hit,
            "cache_id": self.cache_id,
            "api_call_id": self.api_call_id,
            "accuracy": self.accuracy,
            "metadata": {
                "calculated_at": self.metadata.calculated_at.isoformat(),
                "alternative_routes": self.metadata.alternative_routes,
                "traffic_considered": self.metadata.traffic_considered,
            },
        }


@dataclass
class _CallContext:
    requester_id: str | None = None
    ip_address: str | None = None
    user_agent: str | None = None


# -----------------------------------------------------------------------------
# Rounding
# -----------------------------------------------------------------------------


def meters_to_km(meters: int | float) -> Decimal:
    """Meters to km, rounded half-up to 2 decimals (12345 -> 12.35)."""
    return (Decimal(str(meters)) / 1000).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def seconds_to_minutes(seconds: int | float) -> int:
    """Seconds to whole minutes, rounded half-up (754 -> 13, 750 -> 13)."""
    minutes = (Decimal(str(seconds)) / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(minutes)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class DistanceCalculationService:
    """Cache-first distance calculation backed by the directions API.

    Usage:
        ```python
        service = DistanceCalculationService(session_factory, directions, usage)
        result = await service.calculate_distance(request, requester_id="user-1")
        ```
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        directions: KakaoDirectionsClient,
        usage: ApiUsageService,
        settings: Settings | None = None,
        rate_limiter: RateLimiter | None = None,
        *,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        """Initialize the service.

        Args:
            session_factory: Factory for short-lived sessions
            directions: Directions API client
            usage: Usage recorder
            settings: Application settings (defaults to cached settings)
            rate_limiter: Limiter consulted by check_rate_limit
            timer: Monotonic clock in seconds used to time API calls
        """
        self._session_factory = session_factory
        self._directions = directions
        self._usage = usage
        self._settings = settings or get_settings()
        self._rate_limiter = rate_limiter
        self._timer = timer
        self._inflight: dict[_InflightKey, asyncio.Task[DistanceResult]] = {}

    @property
    def rate_limiter(self) -> RateLimiter | None:
        return self._rate_limiter

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def calculate_distance(
        self,
        request: DistanceCalculationRequest,
        requester_id: str | None = None,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> DistanceResult:
        """Resolve the distance for an address pair.

        Args:
            request: Addresses, coordinates and route options
            requester_id: Requester recorded on the usage row
            ip_address: Requester IP recorded on the usage row
            user_agent: Requester user agent recorded on the usage row

        Returns:
            DistanceResult from the cache or from a fresh API call

        Raises:
            DirectionsError: When the provider call fails or finds no route
        """
        if not request.force_refresh:
            cached = await self._find_cached(request)
            if cached is not None:
                modified = await self.is_address_modified_since(
                    request.pickup_address_id,
                    request.delivery_address_id,
                    cached.created_at,
                )
                if not modified:
                    logger.info(
                        "distance_cache_hit",
                        cache_id=str(cached.id),
                        pickup_address_id=request.pickup_address_id,
                        delivery_address_id=request.delivery_address_id,
                    )
                    return self._result_from_cache(cached, accuracy="high")

                logger.info(
                    "distance_cache_stale",
                    cache_id=str(cached.id),
                    pickup_address_id=request.pickup_address_id,
                    delivery_address_id=request.delivery_address_id,
                )

        context = _CallContext(
            requester_id=requester_id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        return await self._calculate_from_api(request, context)

    async def is_address_modified_since(
        self,
        pickup_address_id: str,
        delivery_address_id: str,
        cache_created_at: datetime,
    ) -> bool:
        """Check whether either address changed after ``cache_created_at``.

        Any error is treated as modified so the distance gets recalculated.
        """
        try:
            async with self._session_factory() as session:
                count = await AddressChangeLogRepository(session).count_changes_since(
                    [pickup_address_id, delivery_address_id],
                    cache_created_at,
                )
        except Exception as e:
            logger.error(
                "address_change_check_failed",
                pickup_address_id=pickup_address_id,
                delivery_address_id=delivery_address_id,
                error=str(e),
            )
            return True

        return count > 0

    async def invalidate_cache(
        self,
        pickup_address_id: str,
        delivery_address_id: str,
    ) -> int:
        """Soft-invalidate every cache row for an address pair.

        Returns:
            Number of rows switched to invalid
        """
        async with self._session_factory() as session:
            updated = await DistanceCacheRepository(session).invalidate_pair(
                pickup_address_id, delivery_address_id
            )
            await session.commit()

        logger.info(
            "distance_cache_invalidated",
            pickup_address_id=pickup_address_id,
            delivery_address_id=delivery_address_id,
            rows=updated,
        )
        return updated

    async def find_similar_route(
        self,
        pickup: Coordinates,
        delivery: Coordinates,
        threshold: float | None = None,
    ) -> DistanceResult | None:
        """Find a cached route whose endpoints lie near the given coordinates.

        Args:
            pickup: Pickup coordinates
            delivery: Delivery coordinates
            threshold: Per-axis tolerance in degrees (default from settings)

        Returns:
            DistanceResult with medium accuracy, or None
        """
        if threshold is None:
            threshold = self._settings.distance_similar_threshold

        try:
            async with self._session_factory() as session:
                row = await DistanceCacheRepository(session).find_near(
                    pickup.lat, pickup.lng, delivery.lat, delivery.lng, threshold
                )
        except Exception as e:
            logger.error("similar_route_lookup_failed", error=str(e))
            return None

        if row is None:
            return None
        return self._result_from_cache(row, accuracy="medium")

    def check_rate_limit(self, requester_id: str) -> RateLimitInfo | None:
        """Count a call against the requester's budget.

        Advisory only: a limited requester is logged, never rejected here.
        Returns None when no limiter is configured.
        """
        if self._rate_limiter is None:
            return None

        info = self._rate_limiter.check_rate_limit(requester_id)
        if info.is_limited:
            logger.warning(
                "rate_limit_exceeded",
                requester_id=requester_id,
                call_count=info.call_count,
                max_calls=self._rate_limiter.max_calls,
            )
        return info

    # -------------------------------------------------------------------------
    # Cache lookup
    # -------------------------------------------------------------------------

    async def _find_cached(
        self,
        request: DistanceCalculationRequest,
    ) -> DistanceCache | None:
        try:
            async with self._session_factory() as session:
                return await DistanceCacheRepository(session).get_latest_valid(
                    request.pickup_address_id,
                    request.delivery_address_id,
                    request.priority,
                )
        except Exception as e:
            logger.error(
                "distance_cache_lookup_failed",
                pickup_address_id=request.pickup_address_id,
                delivery_address_id=request.delivery_address_id,
                error=str(e),
            )
            return None

    def _result_from_cache(self, row: DistanceCache, accuracy: Accuracy) -> DistanceResult:
        return DistanceResult(
            distance_km=float(row.distance_km),
            duration_minutes=row.duration_minutes,
            method="cached",
            cache_hit=True,
            cache_id=str(row.id),
            accuracy=accuracy,
            metadata=DistanceMetadata(
                calculated_at=_as_utc(row.created_at),
                alternative_routes=0,
            ),
        )

    # -------------------------------------------------------------------------
    # API fallback
    # -------------------------------------------------------------------------

    async def _calculate_from_api(
        self,
        request: DistanceCalculationRequest,
        context: _CallContext,
    ) -> DistanceResult:
        # A forced refresh always makes its own provider call
        if request.force_refresh or not self._settings.distance_dedupe_inflight:
            return await self._fetch_and_store(request, context)

        key = (
            request.pickup_address_id,
            request.delivery_address_id,
            request.priority.value,
            request.pickup_coordinates,
            request.delivery_coordinates,
        )
        task = self._inflight.get(key)
        if task is None:
            task = asyncio.create_task(self._fetch_and_store(request, context))
            self._inflight[key] = task
            task.add_done_callback(lambda t: self._finish_inflight(key, t))
        else:
            logger.debug(
                "distance_request_joined_inflight",
                pickup_address_id=request.pickup_address_id,
                delivery_address_id=request.delivery_address_id,
            )

        return await asyncio.shield(task)

    def _finish_inflight(
        self,
        key: _InflightKey,
        task: asyncio.Task[DistanceResult],
    ) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        if not task.cancelled():
            # Mark the exception retrieved when every waiter was cancelled
            task.exception()

    async def _fetch_and_store(
        self,
        request: DistanceCalculationRequest,
        context: _CallContext,
    ) -> DistanceResult:
        params = DirectionsParams(
            origin=request.pickup_coordinates.as_lng_lat(),
            destination=request.delivery_coordinates.as_lng_lat(),
            priority=request.priority.value,
        )
        request_params = params.to_query()

        response: DirectionsResponse | None = None
        started = self._timer()
        try:
            response = await self._directions.get_directions(params)
            route = response.first_route()
        except Exception as e:
            elapsed_ms = self._elapsed_ms(started)
            status = self._failure_status(e, response)
            await self._usage.record(
                api_type=ApiType.DIRECTIONS,
                endpoint=self._directions.endpoint,
                request_params=request_params,
                response_status=status,
                response_time_ms=elapsed_ms,
                success=False,
                error_message=self._failure_message(e),
                result_count=0,
                requester_id=context.requester_id,
                ip_address=context.ip_address,
                user_agent=context.user_agent,
                estimated_cost=0,
            )
            logger.error(
                "distance_api_call_failed",
                pickup_address_id=request.pickup_address_id,
                delivery_address_id=request.delivery_address_id,
                status=status,
                error=str(e),
            )
            raise

        elapsed_ms = self._elapsed_ms(started)
        api_call_id = await self._usage.record(
            api_type=ApiType.DIRECTIONS,
            endpoint=self._directions.endpoint,
            request_params=request_params,
            response_status=response.status_code,
            response_time_ms=elapsed_ms,
            success=True,
            result_count=len(response.routes),
            requester_id=context.requester_id,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
            estimated_cost=self._settings.kakao_directions_cost,
        )

        summary = route.summary  # first_route only returns routes with a summary
        distance_km = meters_to_km(summary.distance)
        duration_minutes = seconds_to_minutes(summary.duration)

        cache_id = await self._store(request, distance_km, duration_minutes, response)

        logger.info(
            "distance_calculated",
            pickup_address_id=request.pickup_address_id,
            delivery_address_id=request.delivery_address_id,
            distance_km=float(distance_km),
            duration_minutes=duration_minutes,
            response_time_ms=elapsed_ms,
        )

        return DistanceResult(
            distance_km=float(distance_km),
            duration_minutes=duration_minutes,
            method="api",
            cache_hit=False,
            cache_id=cache_id,
            api_call_id=api_call_id or None,
            accuracy="high",
            metadata=DistanceMetadata(
                calculated_at=datetime.now(UTC),
                alternative_routes=len(response.routes) - 1,
            ),
        )

    async def _store(
        self,
        request: DistanceCalculationRequest,
        distance_km: Decimal,
        duration_minutes: int,
        response: DirectionsResponse,
    ) -> str | None:
        """Persist a new cache row. Failures are logged and yield None."""
        entry = DistanceCache(
            pickup_address_id=request.pickup_address_id,
            delivery_address_id=request.delivery_address_id,
            pickup_lat=request.pickup_coordinates.lat,
            pickup_lng=request.pickup_coordinates.lng,
            delivery_lat=request.delivery_coordinates.lat,
            delivery_lng=request.delivery_coordinates.lng,
            distance_km=distance_km,
            duration_minutes=duration_minutes,
            route_priority=request.priority.value,
            provider_response=response.raw,
            is_valid=True,
        )
        try:
            async with self._session_factory() as session:
                created = await DistanceCacheRepository(session).create(entry)
                await session.commit()
                return str(created.id)
        except Exception as e:
            logger.error(
                "distance_cache_write_failed",
                pickup_address_id=request.pickup_address_id,
                delivery_address_id=request.delivery_address_id,
                error=str(e),
            )
            return None

    def _elapsed_ms(self, started: float) -> int:
        return int((self._timer() - started) * 1000)

    @staticmethod
    def _failure_status(
        error: Exception,
        response: DirectionsResponse | None,
    ) -> int:
        if isinstance(error, DirectionsAPIError) and error.status_code is not None:
            return error.status_code
        if response is not None:
            return response.status_code
        return 500

    @staticmethod
    def _failure_message(error: Exception) -> str:
        message = str(error) or type(error).__name__
        if isinstance(error, RouteNotFoundError) and error.result_code is not None:
            return f"[result_code={error.result_code}] {message}"
        return message
