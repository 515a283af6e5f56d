"""Models package.

This module exports the Base class and all model classes.
"""

from freight_distance.models.address_change_log import AddressChangeLog
from freight_distance.models.api_usage import ApiType, ApiUsage
from freight_distance.models.base import (
    Base,
    CreatedAtMixin,
    TimestampMixin,
    UUIDPrimaryKeyMixin,
)
from freight_distance.models.distance_cache import DistanceCache, RoutePriority

__all__ = [
    # Base and Mixins
    "Base",
    "UUIDPrimaryKeyMixin",
    "CreatedAtMixin",
    "TimestampMixin",
    # Distance cache
    "DistanceCache",
    "RoutePriority",
    # Address audit (read-only)
    "AddressChangeLog",
    # Usage metering
    "ApiUsage",
    "ApiType",
]
