"""API usage metering service.

Records one row per external API call and answers the usage dashboard
queries (period stats, daily stats, monthly cost report, error and slow
call lists).

Every operation opens its own short-lived session, so a usage record is
committed independently of whatever unit of work the caller is in.
"""

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, date, datetime, timedelta
from enum import Enum
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from freight_distance.models.api_usage import ApiType, ApiUsage
from freight_distance.repositories.api_usage import ApiUsageRepository

logger = structlog.get_logger(__name__)

DEFAULT_IP_ADDRESS = "127.0.0.1"


class UsagePeriod(str, Enum):
    """Reporting period for usage statistics."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# -----------------------------------------------------------------------------
# DTOs
# -----------------------------------------------------------------------------


@dataclass
class ApiTypeBreakdown:
    calls: int
    success_rate: float
    avg_response_time: int


@dataclass
class UsageStats:
    """Totals for one reporting period."""

    period: UsagePeriod
    total_calls: int
    successful_calls: int
    failed_calls: int
    avg_response_time: int
    total_cost: int
    api_breakdown: dict[str, ApiTypeBreakdown] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        return success_rate(self.successful_calls, self.total_calls)


@dataclass
class PeriodSummary:
    total_calls: int
    success_rate: float
    avg_response_time: int
    total_cost: int

    @classmethod
    def from_stats(cls, stats: UsageStats) -> "PeriodSummary":
        return cls(
            total_calls=stats.total_calls,
            success_rate=stats.success_rate,
            avg_response_time=stats.avg_response_time,
            total_cost=stats.total_cost,
        )


@dataclass
class UsageSummary:
    today: PeriodSummary
    this_week: PeriodSummary
    this_month: PeriodSummary


@dataclass
class DailyStats:
    date: str  # YYYY-MM-DD
    api_type: str
    total_calls: int
    successful_calls: int
    failed_calls: int
    avg_response_time: int
    total_cost: int


@dataclass
class DailyCost:
    date: str
    calls: int
    cost: int


@dataclass
class MonthlyReport:
    year: int
    month: int
    total_calls: int
    total_cost: int
    daily_breakdown: list[DailyCost]


@dataclass
class UsageFilter:
    """Filter for usage record listings.

    ``date_from`` is inclusive and ``date_to`` exclusive.
    """

    api_type: str | None = None
    success: bool | None = None
    user_id: str | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    limit: int | None = None
    offset: int = 0


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------


def success_rate(successful: int, total: int) -> float:
    """Percentage of successful calls, 0 when there were none."""
    if total <= 0:
        return 0.0
    return successful / total * 100


def period_start(period: UsagePeriod, now: datetime) -> datetime:
    """Start of a reporting period, returned in UTC.

    ``day`` starts at local midnight of ``now``; ``week`` and ``month`` are
    rolling 7 and 30 day windows.
    """
    if period == UsagePeriod.DAY:
        local_now = now.astimezone()
        start = local_now.replace(hour=0, minute=0, second=0, microsecond=0)
    elif period == UsagePeriod.WEEK:
        start = now - timedelta(days=7)
    else:
        start = now - timedelta(days=30)
    return start.astimezone(UTC)


def month_bounds(year: int, month: int) -> tuple[datetime, datetime]:
    """UTC ``[start, end)`` of a calendar month."""
    start = datetime(year, month, 1, tzinfo=UTC)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=UTC)
    else:
        end = datetime(year, month + 1, 1, tzinfo=UTC)
    return start, end


def _as_date_str(value: Any) -> str:
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def _as_int(value: Any) -> int:
    return int(value or 0)


def _round_avg(value: Any) -> int:
    return round(float(value or 0))


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _clip(column: str, value: str | None) -> str | None:
    """Truncate a value to the width of its ``kakao_api_usage`` column."""
    length = getattr(ApiUsage.__table__.c[column].type, "length", None)
    if value is None or length is None:
        return value
    return value[:length]


# -----------------------------------------------------------------------------
# Service
# -----------------------------------------------------------------------------


class ApiUsageService:
    """Usage recorder and usage statistics.

    Usage:
        ```python
        usage = ApiUsageService(session_factory)
        usage_id = await usage.record(
            api_type=ApiType.DIRECTIONS,
            endpoint="/v1/directions",
            request_params={"origin": "127.1,37.5"},
            response_status=200,
            response_time_ms=120,
            success=True,
        )
        ```
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            session_factory: Factory for short-lived sessions
            clock: Returns the current aware datetime (defaults to UTC now)
        """
        self._session_factory = session_factory
        self._clock = clock or (lambda: datetime.now(UTC))

    # -------------------------------------------------------------------------
    # Recording
    # -------------------------------------------------------------------------

    async def record(
        self,
        api_type: ApiType | str,
        endpoint: str | None,
        request_params: dict[str, Any] | None,
        response_status: int,
        response_time_ms: int,
        success: bool,
        error_message: str | None = None,
        result_count: int | None = None,
        requester_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
        estimated_cost: int | None = None,
    ) -> str:
        """Persist one usage record.

        Never raises. Persistence failures are logged and reported as an
        empty id.

        Returns:
            The new record id, or "" if it could not be written
        """
        api_type_value = api_type.value if isinstance(api_type, ApiType) else api_type

        usage = ApiUsage(
            api_type=_clip("api_type", api_type_value),
            endpoint=_clip("endpoint", endpoint),
            request_params=request_params or {},
            response_status=response_status,
            response_time_ms=response_time_ms,
            success=success,
            error_message=_clip("error_message", error_message),
            result_count=result_count,
            user_id=_clip("user_id", requester_id),
            ip_address=_clip("ip_address", ip_address) or DEFAULT_IP_ADDRESS,
            user_agent=_clip("user_agent", user_agent),
            estimated_cost=estimated_cost or 0,
        )

        try:
            async with self._session_factory() as session:
                repo = ApiUsageRepository(session)
                created = await repo.create(usage)
                await session.commit()
                usage_id = str(created.id)
        except Exception as e:
            logger.error(
                "api_usage_record_failed",
                api_type=api_type_value,
                response_status=response_status,
                error=str(e),
            )
            return ""

        logger.debug(
            "api_usage_recorded",
            usage_id=usage_id,
            api_type=api_type_value,
            success=success,
        )
        return usage_id

    # -------------------------------------------------------------------------
    # Statistics
    # -------------------------------------------------------------------------

    async def get_usage_stats(
        self,
        period: UsagePeriod | str = UsagePeriod.DAY,
    ) -> UsageStats:
        """Totals and per-api-type breakdown for a reporting period."""
        period = UsagePeriod(period)
        since = period_start(period, self._clock())

        async with self._session_factory() as session:
            repo = ApiUsageRepository(session)
            totals = await repo.aggregate_since(since)
            breakdown_rows = await repo.breakdown_by_type_since(since)

        breakdown = {
            row.api_type: ApiTypeBreakdown(
                calls=_as_int(row.calls),
                success_rate=success_rate(_as_int(row.successful_calls), _as_int(row.calls)),
                avg_response_time=_round_avg(row.avg_response_time),
            )
            for row in breakdown_rows
        }

        return UsageStats(
            period=period,
            total_calls=_as_int(totals.total_calls),
            successful_calls=_as_int(totals.successful_calls),
            failed_calls=_as_int(totals.failed_calls),
            avg_response_time=_round_avg(totals.avg_response_time),
            total_cost=_as_int(totals.total_cost),
            api_breakdown=breakdown,
        )

    async def get_usage_summary(self) -> UsageSummary:
        """Today, this week and this month at a glance."""
        today = await self.get_usage_stats(UsagePeriod.DAY)
        week = await self.get_usage_stats(UsagePeriod.WEEK)
        month = await self.get_usage_stats(UsagePeriod.MONTH)

        return UsageSummary(
            today=PeriodSummary.from_stats(today),
            this_week=PeriodSummary.from_stats(week),
            this_month=PeriodSummary.from_stats(month),
        )

    async def get_daily_stats(self, days: int = 7) -> list[DailyStats]:
        """Per day and api type statistics for the last ``days`` days."""
        since = self._clock() - timedelta(days=days)

        async with self._session_factory() as session:
            rows = await ApiUsageRepository(session).daily_stats_since(since)

        return [
            DailyStats(
                date=_as_date_str(row.date),
                api_type=row.api_type,
                total_calls=_as_int(row.total_calls),
                successful_calls=_as_int(row.successful_calls),
                failed_calls=_as_int(row.failed_calls),
                avg_response_time=_round_avg(row.avg_response_time),
                total_cost=_as_int(row.total_cost),
            )
            for row in rows
        ]

    async def get_monthly_report(self, year: int, month: int) -> MonthlyReport:
        """Calls and cost per day of one calendar month (UTC)."""
        start, end = month_bounds(year, month)

        async with self._session_factory() as session:
            rows = await ApiUsageRepository(session).daily_cost_between(start, end)

        breakdown = [
            DailyCost(
                date=_as_date_str(row.date),
                calls=_as_int(row.calls),
                cost=_as_int(row.cost),
            )
            for row in rows
        ]
        return MonthlyReport(
            year=year,
            month=month,
            total_calls=sum(day.calls for day in breakdown),
            total_cost=sum(day.cost for day in breakdown),
            daily_breakdown=breakdown,
        )

    # -------------------------------------------------------------------------
    # Record listings
    # -------------------------------------------------------------------------

    async def get_usage_records(self, usage_filter: UsageFilter) -> list[ApiUsage]:
        """Usage records matching a filter, newest first."""
        async with self._session_factory() as session:
            return await ApiUsageRepository(session).search(
                api_type=usage_filter.api_type,
                success=usage_filter.success,
                user_id=usage_filter.user_id,
                date_from=_utc(usage_filter.date_from) if usage_filter.date_from else None,
                date_to=_utc(usage_filter.date_to) if usage_filter.date_to else None,
                limit=usage_filter.limit,
                offset=usage_filter.offset,
            )

    async def get_error_logs(self, limit: int = 50) -> list[ApiUsage]:
        """Most recent failed calls."""
        return await self.get_usage_records(UsageFilter(success=False, limit=limit))

    async def get_slow_calls(
        self,
        threshold_ms: int = 5000,
        limit: int = 50,
    ) -> list[ApiUsage]:
        """Calls that took at least ``threshold_ms``, slowest first."""
        async with self._session_factory() as session:
            return await ApiUsageRepository(session).slowest(threshold_ms, limit)
