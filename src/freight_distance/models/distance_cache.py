"""DistanceCache model - previously computed road distances.

One row is written every time the routing provider is called successfully.
Rows are never updated except for the is_valid flag and never deleted, so the
table doubles as an audit trail of every distance the system has served.
"""

from __future__ import annotations

from decimal import Decimal
from enum import Enum

from sqlalchemy import JSON, Boolean, Float, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from freight_distance.models.base import Base, TimestampMixin, UUIDPrimaryKeyMixin


class RoutePriority(str, Enum):
    """Route search priority understood by the routing provider."""

    RECOMMEND = "RECOMMEND"
    TIME = "TIME"
    DISTANCE = "DISTANCE"


class DistanceCache(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    """Cached distance between two addresses for one route priority.

    Coordinates are a snapshot taken when the distance was calculated; they
    do not follow later edits of the address record.

    Attributes:
        pickup_address_id: Identifier of the pickup address
        delivery_address_id: Identifier of the delivery address
        pickup_lat / pickup_lng: Pickup coordinate snapshot
        delivery_lat / delivery_lng: Delivery coordinate snapshot
        distance_km: Road distance in km, rounded to 2 decimals
        duration_minutes: Travel time in whole minutes
        route_priority: RECOMMEND, TIME or DISTANCE
        provider_response: Raw provider JSON kept for audit/debugging
        is_valid: False once explicitly invalidated
    """

    __tablename__ = "distance_cache"

    pickup_address_id: Mapped[str] = mapped_column(String(64), nullable=False)
    delivery_address_id: Mapped[str] = mapped_column(String(64), nullable=False)

    pickup_lat: Mapped[float] = mapped_column(Float, nullable=False)
    pickup_lng: Mapped[float] = mapped_column(Float, nullable=False)
    delivery_lat: Mapped[float] = mapped_column(Float, nullable=False)
    delivery_lng: Mapped[float] = mapped_column(Float, nullable=False)

    distance_km: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)

    route_priority: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=RoutePriority.RECOMMEND.value,
    )
    provider_response: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    is_valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index(
            "ix_distance_cache_address_pair",
            "pickup_address_id",
            "delivery_address_id",
            "route_priority",
        ),
        Index(
            "ix_distance_cache_latest",
            "pickup_address_id",
            "delivery_address_id",
            "created_at",
        ),
        Index("ix_distance_cache_valid", "is_valid", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<DistanceCache(id={self.id}, pickup='{self.pickup_address_id}', "
            f"delivery='{self.delivery_address_id}', priority='{self.route_priority}', "
            f"distance_km={self.distance_km}, is_valid={self.is_valid})>"
        )
