"""Repository pattern package.

This module exports the base repository class and concrete repositories.
"""

from freight_distance.repositories.address_change_log import AddressChangeLogRepository
from freight_distance.repositories.api_usage import ApiUsageRepository
from freight_distance.repositories.base import BaseRepository
from freight_distance.repositories.distance_cache import DistanceCacheRepository

__all__ = [
    "BaseRepository",
    "DistanceCacheRepository",
    "AddressChangeLogRepository",
    "ApiUsageRepository",
]
