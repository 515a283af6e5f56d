"""API usage statistics endpoints.

Read-only views over the usage metering table plus a JSON/CSV export.
Deleting usage data through the API is refused.
"""

import csv
import io
from datetime import UTC, datetime, timedelta
from typing import Annotated, Literal

from fastapi import APIRouter, Query, Response

from freight_distance.core.exceptions import ConfirmationRequiredError, DeletionDisabledError
from freight_distance.core.logging import get_logger
from freight_distance.dependencies import UsageServiceDep
from freight_distance.models.api_usage import ApiType, ApiUsage
from freight_distance.schemas.common import ErrorResponse
from freight_distance.schemas.usage import (
    DailyStatsItem,
    ExportInfo,
    MonthlyReportResponse,
    RealtimeHealth,
    RealtimeResponse,
    UsageExportResponse,
    UsageRecordResponse,
    UsageStatsResponse,
    UsageSummaryResponse,
)
from freight_distance.services.api_usage import UsageFilter, UsagePeriod

logger = get_logger(__name__)

router = APIRouter()

EXPORT_LIMIT = 10_000
EXPORT_DEFAULT_DAYS = 30
CSV_HEADERS = [
    "ID",
    "API Type",
    "Endpoint",
    "Response Status",
    "Response Time (ms)",
    "Success",
    "Error Message",
    "IP Address",
    "Created At",
]


def _records(rows: list[ApiUsage]) -> list[UsageRecordResponse]:
    return [UsageRecordResponse.model_validate(row) for row in rows]


# =============================================================================
# Statistics
# =============================================================================


@router.get(
    "/summary",
    response_model=UsageSummaryResponse,
    summary="Usage summary",
    description="Calls, success rate, latency and cost for today, this week and this month.",
)
async def get_summary(usage: UsageServiceDep) -> UsageSummaryResponse:
    summary = await usage.get_usage_summary()
    return UsageSummaryResponse.model_validate(summary)


@router.get(
    "/stats",
    response_model=UsageStatsResponse,
    summary="Usage statistics for a period",
)
async def get_stats(
    usage: UsageServiceDep,
    period: Annotated[UsagePeriod, Query()] = UsagePeriod.DAY,
) -> UsageStatsResponse:
    stats = await usage.get_usage_stats(period)
    return UsageStatsResponse.model_validate(stats)


@router.get(
    "/daily",
    response_model=list[DailyStatsItem],
    summary="Daily statistics",
    description="Per day and API type statistics, newest day first.",
)
async def get_daily(
    usage: UsageServiceDep,
    days: Annotated[int, Query(ge=1, le=365)] = 7,
) -> list[DailyStatsItem]:
    rows = await usage.get_daily_stats(days)
    return [DailyStatsItem.model_validate(row) for row in rows]


@router.get(
    "/monthly-report",
    response_model=MonthlyReportResponse,
    summary="Monthly cost report",
)
async def get_monthly_report(
    usage: UsageServiceDep,
    year: Annotated[int | None, Query(ge=2000, le=2100)] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
) -> MonthlyReportResponse:
    """Calls and cost per day of a month (defaults to the current month)."""
    now = datetime.now(UTC)
    report = await usage.get_monthly_report(year or now.year, month or now.month)
    return MonthlyReportResponse.model_validate(report)


@router.get(
    "/realtime",
    response_model=RealtimeResponse,
    summary="Realtime usage health",
    description="Today's stats with the latest errors and slow calls.",
)
async def get_realtime(usage: UsageServiceDep) -> RealtimeResponse:
    today = await usage.get_usage_stats(UsagePeriod.DAY)
    errors = await usage.get_error_logs(10)
    slow = await usage.get_slow_calls(5000, 10)

    return RealtimeResponse(
        today=UsageStatsResponse.model_validate(today),
        recent_errors=_records(errors[:5]),
        slow_calls=_records(slow[:5]),
        health=RealtimeHealth(
            success_rate=today.success_rate if today.total_calls > 0 else 100.0,
            avg_response_time=today.avg_response_time,
            error_count=len(errors),
            slow_call_count=len(slow),
        ),
        timestamp=datetime.now(UTC),
    )


# =============================================================================
# Records
# =============================================================================


@router.get(
    "/records",
    response_model=list[UsageRecordResponse],
    summary="Usage records",
    description="Filtered usage records, newest first.",
)
async def get_records(
    usage: UsageServiceDep,
    api_type: Annotated[ApiType | None, Query()] = None,
    success: Annotated[bool | None, Query()] = None,
    user_id: Annotated[str | None, Query()] = None,
    date_from: Annotated[datetime | None, Query()] = None,
    date_to: Annotated[datetime | None, Query()] = None,
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
    offset: Annotated[int, Query(ge=0)] = 0,
) -> list[UsageRecordResponse]:
    rows = await usage.get_usage_records(
        UsageFilter(
            api_type=api_type.value if api_type else None,
            success=success,
            user_id=user_id,
            date_from=date_from,
            date_to=date_to,
            limit=limit,
            offset=offset,
        )
    )
    return _records(rows)


@router.get(
    "/errors",
    response_model=list[UsageRecordResponse],
    summary="Recent failed calls",
)
async def get_errors(
    usage: UsageServiceDep,
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
) -> list[UsageRecordResponse]:
    return _records(await usage.get_error_logs(limit))


@router.get(
    "/slow",
    response_model=list[UsageRecordResponse],
    summary="Slow calls",
    description="Calls at or above the threshold, slowest first.",
)
async def get_slow(
    usage: UsageServiceDep,
    threshold_ms: Annotated[int, Query(ge=0)] = 5000,
    limit: Annotated[int, Query(ge=1, le=1000)] = 50,
) -> list[UsageRecordResponse]:
    return _records(await usage.get_slow_calls(threshold_ms, limit))


# =============================================================================
# Export / Delete
# =============================================================================


@router.get(
    "/export",
    response_model=None,
    summary="Export usage records",
    description="JSON document or CSV file of usage records in a date range.",
)
async def export_usage(
    usage: UsageServiceDep,
    format: Annotated[Literal["json", "csv"], Query()] = "json",
    date_from: Annotated[datetime | None, Query()] = None,
    date_to: Annotated[datetime | None, Query()] = None,
    api_type: Annotated[ApiType | None, Query()] = None,
) -> UsageExportResponse | Response:
    """Export records (default: the last 30 days)."""
    now = datetime.now(UTC)
    start = date_from or now - timedelta(days=EXPORT_DEFAULT_DAYS)
    end = date_to or now

    rows = await usage.get_usage_records(
        UsageFilter(
            api_type=api_type.value if api_type else None,
            date_from=start,
            date_to=end,
            limit=EXPORT_LIMIT,
        )
    )
    logger.info("usage_export", record_count=len(rows), format=format)

    if format == "csv":
        return Response(
            content=_to_csv(rows),
            media_type="text/csv",
            headers={
                "Content-Disposition": (
                    f'attachment; filename="api-usage-{start.date().isoformat()}'
                    f'-to-{end.date().isoformat()}.csv"'
                )
            },
        )

    summary = await usage.get_usage_stats(UsagePeriod.MONTH)
    return UsageExportResponse(
        export_info=ExportInfo(
            generated_at=now,
            date_from=start,
            date_to=end,
            record_count=len(rows),
            format=format,
        ),
        summary=UsageStatsResponse.model_validate(summary),
        records=_records(rows),
    )


def _to_csv(rows: list[ApiUsage]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in rows:
        writer.writerow(
            [
                row.id,
                row.api_type,
                row.endpoint or "",
                row.response_status,
                row.response_time_ms,
                "true" if row.success else "false",
                row.error_message or "",
                row.ip_address,
                row.created_at.isoformat(),
            ]
        )
    return buffer.getvalue()


@router.delete(
    "",
    summary="Delete usage data (disabled)",
    description="Always refused. Usage records can only be removed with database tools.",
    responses={
        400: {"model": ErrorResponse, "description": "Confirmation missing"},
        403: {"model": ErrorResponse, "description": "Deletion disabled"},
    },
)
async def delete_usage(
    confirm: Annotated[str | None, Query()] = None,
) -> None:
    if confirm != "yes":
        raise ConfirmationRequiredError()

    logger.warning("usage_deletion_refused")
    raise DeletionDisabledError()
