"""FastAPI dependency injection container.

Application-scoped services are created during startup and stored on
``app.state``. The functions here expose them to routes through Depends()
and can be swapped in tests with ``app.dependency_overrides``.
"""

from typing import Annotated

from fastapi import Depends, Request

from freight_distance.config import Settings
from freight_distance.services.api_usage import ApiUsageService
from freight_distance.services.distance import DistanceCalculationService
from freight_distance.services.kakao_directions import KakaoDirectionsClient
from freight_distance.services.rate_limiter import RateLimiter


def _from_state(request: Request, name: str) -> object:
    service = getattr(request.app.state, name, None)
    if service is None:
        raise RuntimeError(f"{name} not initialized. Is the application lifespan running?")
    return service


# ========================================
# Settings Dependencies
# ========================================
def get_settings_from_request(request: Request) -> Settings:
    """Get settings from request state (set in create_app)."""
    return request.app.state.settings


# ========================================
# Service Dependencies
# ========================================
def get_directions_client(request: Request) -> KakaoDirectionsClient:
    """Get the shared directions API client."""
    return _from_state(request, "directions_client")  # type: ignore[return-value]


def get_rate_limiter(request: Request) -> RateLimiter:
    """Get the application's rate limiter."""
    return _from_state(request, "rate_limiter")  # type: ignore[return-value]


def get_usage_service(request: Request) -> ApiUsageService:
    """Get the usage metering service."""
    return _from_state(request, "usage_service")  # type: ignore[return-value]


def get_distance_service(request: Request) -> DistanceCalculationService:
    """Get the distance calculation service."""
    return _from_state(request, "distance_service")  # type: ignore[return-value]


DirectionsClientDep = Annotated[KakaoDirectionsClient, Depends(get_directions_client)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
UsageServiceDep = Annotated[ApiUsageService, Depends(get_usage_service)]
DistanceServiceDep = Annotated[DistanceCalculationService, Depends(get_distance_service)]
AppSettingsDep = Annotated[Settings, Depends(get_settings_from_request)]


# ========================================
# Request Metadata
# ========================================
def get_client_ip(request: Request) -> str:
    """Client IP from proxy headers, falling back to the socket peer."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()
    if request.client:
        return request.client.host
    return "127.0.0.1"


def get_requester_id(request: Request) -> str | None:
    """Requester identity supplied by the upstream gateway."""
    return request.headers.get("X-User-ID") or None
