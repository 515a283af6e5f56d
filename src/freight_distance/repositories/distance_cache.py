"""DistanceCacheRepository for cached route distances.

Lookups always return the most recent valid row for an address pair and
priority. Invalidation flips is_valid and never deletes rows.
"""

from sqlalchemy import func, select, update

from freight_distance.models.distance_cache import DistanceCache, RoutePriority
from freight_distance.repositories.base import BaseRepository


class DistanceCacheRepository(BaseRepository[DistanceCache]):
    """Repository for DistanceCache entities."""

    async def get_latest_valid(
        self,
        pickup_address_id: str,
        delivery_address_id: str,
        priority: RoutePriority = RoutePriority.RECOMMEND,
    ) -> DistanceCache | None:
        """Get the most recent valid cache row for an address pair.

        Args:
            pickup_address_id: Pickup address identifier
            delivery_address_id: Delivery address identifier
            priority: Route priority the distance was calculated with

        Returns:
            Latest valid DistanceCache if any, None otherwise
        """
        result = await self.session.execute(
            select(DistanceCache)
            .where(DistanceCache.pickup_address_id == pickup_address_id)
            .where(DistanceCache.delivery_address_id == delivery_address_id)
            .where(DistanceCache.route_priority == priority.value)
            .where(DistanceCache.is_valid.is_(True))
            .order_by(DistanceCache.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def invalidate_pair(
        self,
        pickup_address_id: str,
        delivery_address_id: str,
    ) -> int:
        """Mark every cache row for an address pair as invalid.

        Applies to all priorities. Rows stay in the table.

        Args:
            pickup_address_id: Pickup address identifier
            delivery_address_id: Delivery address identifier

        Returns:
            Number of rows that were valid and are now invalid
        """
        result = await self.session.execute(
            update(DistanceCache)
            .where(DistanceCache.pickup_address_id == pickup_address_id)
            .where(DistanceCache.delivery_address_id == delivery_address_id)
            .where(DistanceCache.is_valid.is_(True))
            .values(is_valid=False)
        )
        return result.rowcount or 0

    async def find_near(
        self,
        pickup_lat: float,
        pickup_lng: float,
        delivery_lat: float,
        delivery_lng: float,
        threshold: float,
    ) -> DistanceCache | None:
        """Find the latest valid row whose snapshot lies near both points.

        Each of the four coordinates must differ by less than ``threshold``
        degrees from the stored snapshot.

        Args:
            pickup_lat: Pickup latitude
            pickup_lng: Pickup longitude
            delivery_lat: Delivery latitude
            delivery_lng: Delivery longitude
            threshold: Maximum per-axis difference in degrees

        Returns:
            Closest-in-time matching DistanceCache, or None
        """
        result = await self.session.execute(
            select(DistanceCache)
            .where(DistanceCache.is_valid.is_(True))
            .where(func.abs(DistanceCache.pickup_lat - pickup_lat) < threshold)
            .where(func.abs(DistanceCache.pickup_lng - pickup_lng) < threshold)
            .where(func.abs(DistanceCache.delivery_lat - delivery_lat) < threshold)
            .where(func.abs(DistanceCache.delivery_lng - delivery_lng) < threshold)
            .order_by(DistanceCache.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def count_for_pair(
        self,
        pickup_address_id: str,
        delivery_address_id: str,
        *,
        include_invalid: bool = True,
    ) -> int:
        """Count cache rows for an address pair.

        Args:
            pickup_address_id: Pickup address identifier
            delivery_address_id: Delivery address identifier
            include_invalid: If False, count only valid rows

        Returns:
            Row count
        """
        query = (
            select(func.count())
            .select_from(DistanceCache)
            .where(DistanceCache.pickup_address_id == pickup_address_id)
            .where(DistanceCache.delivery_address_id == delivery_address_id)
        )
        if not include_invalid:
            query = query.where(DistanceCache.is_valid.is_(True))

        result = await self.session.execute(query)
        return result.scalar_one()
