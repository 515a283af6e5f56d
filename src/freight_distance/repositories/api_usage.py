"""ApiUsageRepository for usage metering records.

Provides inserts plus the aggregate queries behind the usage dashboard.
Records are immutable; no update or delete is offered.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import case, func, select
from sqlalchemy.engine import Row

from freight_distance.models.api_usage import ApiUsage
from freight_distance.repositories.base import BaseRepository

_successful = func.coalesce(func.sum(case((ApiUsage.success.is_(True), 1), else_=0)), 0)
_failed = func.coalesce(func.sum(case((ApiUsage.success.is_(False), 1), else_=0)), 0)
_avg_response = func.avg(ApiUsage.response_time_ms)
_total_cost = func.coalesce(func.sum(ApiUsage.estimated_cost), 0)
_usage_date = func.date(ApiUsage.created_at)


class ApiUsageRepository(BaseRepository[ApiUsage]):
    """Repository for ApiUsage entities."""

    async def aggregate_since(self, since: datetime) -> Row[Any]:
        """Totals over all calls created at or after ``since``.

        Returns:
            Row with total_calls, successful_calls, failed_calls,
            avg_response_time and total_cost
        """
        result = await self.session.execute(
            select(
                func.count().label("total_calls"),
                _successful.label("successful_calls"),
                _failed.label("failed_calls"),
                _avg_response.label("avg_response_time"),
                _total_cost.label("total_cost"),
            )
            .select_from(ApiUsage)
            .where(ApiUsage.created_at >= since)
        )
        return result.one()

    async def breakdown_by_type_since(self, since: datetime) -> list[Row[Any]]:
        """Per api_type call counts, successes and average latency."""
        result = await self.session.execute(
            select(
                ApiUsage.api_type,
                func.count().label("calls"),
                _successful.label("successful_calls"),
                _avg_response.label("avg_response_time"),
            )
            .where(ApiUsage.created_at >= since)
            .group_by(ApiUsage.api_type)
        )
        return list(result.all())

    async def daily_stats_since(self, since: datetime) -> list[Row[Any]]:
        """Per day and api_type statistics, newest day first."""
        result = await self.session.execute(
            select(
                _usage_date.label("date"),
                ApiUsage.api_type,
                func.count().label("total_calls"),
                _successful.label("successful_calls"),
                _failed.label("failed_calls"),
                _avg_response.label("avg_response_time"),
                _total_cost.label("total_cost"),
            )
            .where(ApiUsage.created_at >= since)
            .group_by(_usage_date, ApiUsage.api_type)
            .order_by(_usage_date.desc())
        )
        return list(result.all())

    async def daily_cost_between(
        self,
        start: datetime,
        end: datetime,
    ) -> list[Row[Any]]:
        """Calls and cost per day in ``[start, end)``, oldest day first."""
        result = await self.session.execute(
            select(
                _usage_date.label("date"),
                func.count().label("calls"),
                _total_cost.label("cost"),
            )
            .where(ApiUsage.created_at >= start)
            .where(ApiUsage.created_at < end)
            .group_by(_usage_date)
            .order_by(_usage_date)
        )
        return list(result.all())

    async def search(
        self,
        *,
        api_type: str | None = None,
        success: bool | None = None,
        user_id: str | None = None,
        date_from: datetime | None = None,
        date_to: datetime | None = None,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[ApiUsage]:
        """Filter usage records, newest first.

        Args:
            api_type: Only this api type
            success: Only successful (True) or failed (False) calls
            user_id: Only calls by this requester
            date_from: Inclusive lower bound on created_at
            date_to: Exclusive upper bound on created_at
            limit: Maximum records to return (None = no limit)
            offset: Number of records to skip

        Returns:
            Matching usage records
        """
        query = select(ApiUsage)

        if api_type:
            query = query.where(ApiUsage.api_type == api_type)
        if success is not None:
            query = query.where(ApiUsage.success.is_(success))
        if user_id:
            query = query.where(ApiUsage.user_id == user_id)
        if date_from:
            query = query.where(ApiUsage.created_at >= date_from)
        if date_to:
            query = query.where(ApiUsage.created_at < date_to)

        query = query.order_by(ApiUsage.created_at.desc())
        if limit:
            query = query.limit(limit)
        if offset:
            query = query.offset(offset)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def slowest(self, threshold_ms: int, limit: int) -> list[ApiUsage]:
        """Calls at or above ``threshold_ms``, slowest first."""
        result = await self.session.execute(
            select(ApiUsage)
            .where(ApiUsage.response_time_ms >= threshold_ms)
            .order_by(ApiUsage.response_time_ms.desc())
            .limit(limit)
        )
        return list(result.scalars().all())
