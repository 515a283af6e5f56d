"""API usage statistics schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from freight_distance.schemas.common import BaseSchema
from freight_distance.services.api_usage import UsagePeriod

# =============================================================================
# Statistics
# =============================================================================


class ApiTypeBreakdownSchema(BaseSchema):
    calls: int
    success_rate: float
    avg_response_time: int


class UsageStatsResponse(BaseSchema):
    """Totals for one reporting period."""

    period: UsagePeriod
    total_calls: int
    successful_calls: int
    failed_calls: int
    avg_response_time: int = Field(..., description="Average latency in ms (rounded)")
    total_cost: int = Field(..., description="Estimated cost in KRW")
    api_breakdown: dict[str, ApiTypeBreakdownSchema] = Field(default_factory=dict)


class PeriodSummarySchema(BaseSchema):
    total_calls: int
    success_rate: float
    avg_response_time: int
    total_cost: int


class UsageSummaryResponse(BaseSchema):
    today: PeriodSummarySchema
    this_week: PeriodSummarySchema
    this_month: PeriodSummarySchema


class DailyStatsItem(BaseSchema):
    date: str
    api_type: str
    total_calls: int
    successful_calls: int
    failed_calls: int
    avg_response_time: int
    total_cost: int


class DailyCostItem(BaseSchema):
    date: str
    calls: int
    cost: int


class MonthlyReportResponse(BaseSchema):
    year: int
    month: int
    total_calls: int
    total_cost: int
    daily_breakdown: list[DailyCostItem]


# =============================================================================
# Records
# =============================================================================


class UsageRecordResponse(BaseSchema):
    """A single usage record."""

    id: UUID
    api_type: str
    endpoint: str | None = None
    request_params: dict[str, Any] = Field(default_factory=dict)
    response_status: int
    response_time_ms: int
    success: bool
    error_message: str | None = None
    result_count: int | None = None
    user_id: str | None = None
    ip_address: str
    user_agent: str | None = None
    estimated_cost: int | None = None
    created_at: datetime


# =============================================================================
# Realtime / Export
# =============================================================================


class RealtimeHealth(BaseModel):
    success_rate: float
    avg_response_time: int
    error_count: int
    slow_call_count: int


class RealtimeResponse(BaseModel):
    today: UsageStatsResponse
    recent_errors: list[UsageRecordResponse]
    slow_calls: list[UsageRecordResponse]
    health: RealtimeHealth
    timestamp: datetime


class ExportInfo(BaseModel):
    generated_at: datetime
    date_from: datetime
    date_to: datetime
    record_count: int
    format: str = "json"


class UsageExportResponse(BaseModel):
    export_info: ExportInfo
    summary: UsageStatsResponse
    records: list[UsageRecordResponse]
