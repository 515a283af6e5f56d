"""Services package for the distance service.

This module exports service classes for business logic.
"""

from freight_distance.services.api_usage import (
    ApiUsageService,
    UsageFilter,
    UsagePeriod,
    UsageStats,
    UsageSummary,
)
from freight_distance.services.distance import (
    Coordinates,
    DistanceCalculationRequest,
    DistanceCalculationService,
    DistanceResult,
)
from freight_distance.services.kakao_directions import (
    DirectionsAPIError,
    DirectionsError,
    DirectionsParams,
    DirectionsResponse,
    InvalidDirectionsParamsError,
    KakaoDirectionsClient,
    RouteNotFoundError,
)
from freight_distance.services.rate_limiter import RateLimiter, RateLimitInfo

__all__ = [
    # Usage metering
    "ApiUsageService",
    "UsageFilter",
    "UsagePeriod",
    "UsageStats",
    "UsageSummary",
    # Distance
    "Coordinates",
    "DistanceCalculationRequest",
    "DistanceCalculationService",
    "DistanceResult",
    # Directions
    "DirectionsAPIError",
    "DirectionsError",
    "DirectionsParams",
    "DirectionsResponse",
    "InvalidDirectionsParamsError",
    "KakaoDirectionsClient",
    "RouteNotFoundError",
    # Rate limiting
    "RateLimiter",
    "RateLimitInfo",
]
