"""Distance calculation API schemas.

Coordinates are limited to the service area (South Korea):
latitude 33..39, longitude 124..132.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from freight_distance.models.distance_cache import RoutePriority
from freight_distance.schemas.common import BaseSchema
from freight_distance.services.distance import Coordinates

LAT_MIN, LAT_MAX = 33.0, 39.0
LNG_MIN, LNG_MAX = 124.0, 132.0


# =============================================================================
# Shared
# =============================================================================


class CoordinatesSchema(BaseSchema):
    """A point inside the service area."""

    lat: float = Field(..., ge=LAT_MIN, le=LAT_MAX, description="Latitude")
    lng: float = Field(..., ge=LNG_MIN, le=LNG_MAX, description="Longitude")

    def to_coordinates(self) -> Coordinates:
        return Coordinates(lat=self.lat, lng=self.lng)


class DistanceMetadataSchema(BaseSchema):
    calculated_at: datetime
    alternative_routes: int = 0
    traffic_considered: bool = True


class DistanceResultSchema(BaseSchema):
    """Distance calculation outcome."""

    distance_km: float = Field(..., description="Road distance in km (2 decimals)")
    duration_minutes: int = Field(..., description="Travel time in whole minutes")
    method: Literal["cached", "api"]
    cache_hit: bool
    cache_id: str | None = None
    api_call_id: str | None = None
    accuracy: Literal["high", "medium"]
    metadata: DistanceMetadataSchema


# =============================================================================
# Calculate
# =============================================================================


class DistanceCalculateRequest(BaseSchema):
    """Request body for a distance calculation."""

    pickup_address_id: str = Field(..., min_length=1, max_length=64)
    delivery_address_id: str = Field(..., min_length=1, max_length=64)
    pickup_coordinates: CoordinatesSchema
    delivery_coordinates: CoordinatesSchema
    priority: RoutePriority = Field(
        RoutePriority.RECOMMEND, description="RECOMMEND, TIME or DISTANCE"
    )
    force_refresh: bool = Field(False, description="Ignore cached distances")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "pickup_address_id": "addr-1001",
                "delivery_address_id": "addr-2002",
                "pickup_coordinates": {"lat": 37.5665, "lng": 126.978},
                "delivery_coordinates": {"lat": 35.1796, "lng": 129.0756},
                "priority": "RECOMMEND",
                "force_refresh": False,
            }
        }
    )


class DistanceCalculateResponse(DistanceResultSchema):
    """Distance result plus the time the request took."""

    response_time_ms: int = Field(..., description="Server-side handling time")


class TodayStats(BaseModel):
    total_calls: int
    success_rate: float
    avg_response_time: int


class RateLimitConfig(BaseModel):
    window_ms: int
    max_calls: int
    enforced: bool


class DistanceStatusResponse(BaseModel):
    """Operational status of the calculation endpoint."""

    message: str = "Distance calculation API is operational"
    uptime_seconds: float
    today_stats: TodayStats
    rate_limit: RateLimitConfig


# =============================================================================
# Invalidate / Similar
# =============================================================================


class InvalidateCacheRequest(BaseSchema):
    pickup_address_id: str = Field(..., min_length=1, max_length=64)
    delivery_address_id: str = Field(..., min_length=1, max_length=64)


class InvalidateCacheResponse(BaseModel):
    pickup_address_id: str
    delivery_address_id: str
    invalidated: int = Field(..., description="Cache rows switched to invalid")


class SimilarRouteRequest(BaseSchema):
    """Look up a cached route near the given coordinates."""

    pickup_coordinates: CoordinatesSchema
    delivery_coordinates: CoordinatesSchema
    threshold: float | None = Field(
        None,
        gt=0,
        le=0.1,
        description="Per-axis tolerance in degrees (default ~1km)",
    )
