"""ApiUsage model - one row per external Kakao API call attempt.

Serves both as cost metering and as an operational log (error and
slow-call queries). Rows are immutable once written.
"""

from __future__ import annotations

from enum import Enum

from sqlalchemy import JSON, Boolean, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from freight_distance.models.base import Base, CreatedAtMixin, UUIDPrimaryKeyMixin


class ApiType(str, Enum):
    """Kakao API families that are metered."""

    DIRECTIONS = "directions"
    SEARCH_ADDRESS = "search-address"


class ApiUsage(UUIDPrimaryKeyMixin, CreatedAtMixin, Base):
    """Usage record for a single external API call.

    Attributes:
        api_type: Which Kakao API was called
        endpoint: Endpoint path that was called
        request_params: Request parameters as sent
        response_status: HTTP status code (500 when unknown)
        response_time_ms: Wall-clock latency of the call
        success: Whether the call produced a usable result
        error_message: Error description for failed calls
        result_count: Number of results returned
        user_id: Requester that triggered the call
        ip_address: Requester IP address
        user_agent: Requester user agent
        estimated_cost: Estimated cost in KRW
    """

    __tablename__ = "kakao_api_usage"

    api_type: Mapped[str] = mapped_column(String(30), nullable=False)
    endpoint: Mapped[str | None] = mapped_column(String(200), nullable=True)

    request_params: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    response_status: Mapped[int] = mapped_column(Integer, nullable=False)
    response_time_ms: Mapped[int] = mapped_column(Integer, nullable=False)

    success: Mapped[bool] = mapped_column(Boolean, nullable=False)
    error_message: Mapped[str | None] = mapped_column(String(500), nullable=True)
    result_count: Mapped[int | None] = mapped_column(Integer, nullable=True)

    user_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    ip_address: Mapped[str] = mapped_column(
        String(45), nullable=False, default="127.0.0.1"
    )
    user_agent: Mapped[str | None] = mapped_column(String(500), nullable=True)

    estimated_cost: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_kakao_api_usage_type_date", "api_type", "created_at"),
        Index("ix_kakao_api_usage_user_date", "user_id", "created_at"),
        Index("ix_kakao_api_usage_success_date", "success", "created_at"),
        Index("ix_kakao_api_usage_performance", "response_time_ms", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<ApiUsage(id={self.id}, api_type='{self.api_type}', "
            f"status={self.response_status}, success={self.success})>"
        )
