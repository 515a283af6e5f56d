"""AddressChangeLogRepository - read access to the address audit trail."""

from datetime import datetime

from sqlalchemy import func, select

from freight_distance.models.address_change_log import AddressChangeLog
from freight_distance.repositories.base import BaseRepository


class AddressChangeLogRepository(BaseRepository[AddressChangeLog]):
    """Repository for AddressChangeLog entities (read-only usage)."""

    async def count_changes_since(
        self,
        address_ids: list[str],
        since: datetime,
    ) -> int:
        """Count edits of any of the given addresses strictly after ``since``.

        Args:
            address_ids: Address identifiers to check
            since: Exclusive lower bound on created_at

        Returns:
            Number of matching change log rows
        """
        result = await self.session.execute(
            select(func.count())
            .select_from(AddressChangeLog)
            .where(AddressChangeLog.address_id.in_(address_ids))
            .where(AddressChangeLog.created_at > since)
        )
        return result.scalar_one()
