"""Tests for database infrastructure and repositories."""

from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from freight_distance.config import Settings
from freight_distance.models import AddressChangeLog, DistanceCache, RoutePriority
from freight_distance.repositories import (
    AddressChangeLogRepository,
    DistanceCacheRepository,
)


def make_cache_row(**overrides) -> DistanceCache:
    values = {
        "pickup_address_id": "addr-pickup",
        "delivery_address_id": "addr-delivery",
        "pickup_lat": 37.5665,
        "pickup_lng": 126.978,
        "delivery_lat": 35.1796,
        "delivery_lng": 129.0756,
        "distance_km": Decimal("12.35"),
        "duration_minutes": 13,
        "route_priority": RoutePriority.RECOMMEND.value,
        "provider_response": {"trans_id": "t-1"},
    }
    values.update(overrides)
    return DistanceCache(**values)


# =============================================================================
# Infrastructure
# =============================================================================


@pytest.mark.asyncio
async def test_database_session_lifecycle(test_settings: Settings) -> None:
    """Test that database session can be created and closed."""
    from freight_distance.core.database import close_db, get_session_factory, init_db

    await init_db(test_settings)

    async with get_session_factory()() as session:
        result = await session.execute(text("SELECT 1"))
        assert result.scalar() == 1

    await close_db()

    with pytest.raises(RuntimeError):
        get_session_factory()


@pytest.mark.asyncio
async def test_session_factory_requires_init() -> None:
    from freight_distance.core.database import get_session_factory

    with pytest.raises(RuntimeError, match="not initialized"):
        get_session_factory()


def test_password_is_masked() -> None:
    from freight_distance.core.database import _mask_password

    masked = _mask_password("postgresql+asyncpg://freight:s3cret@db:5432/freight")

    assert masked == "postgresql+asyncpg://freight:****@db:5432/freight"


# =============================================================================
# DistanceCacheRepository
# =============================================================================


class TestDistanceCacheRepository:
    @pytest.mark.asyncio
    async def test_latest_valid_prefers_newest(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        now = datetime.now(UTC)
        async with session_factory() as session:
            repo = DistanceCacheRepository(session)
            await repo.create(make_cache_row(created_at=now - timedelta(hours=2)))
            newest = await repo.create(
                make_cache_row(distance_km=Decimal("13.10"), created_at=now)
            )
            await repo.create(
                make_cache_row(
                    distance_km=Decimal("99.00"),
                    created_at=now + timedelta(minutes=1),
                    is_valid=False,
                )
            )
            await session.commit()

            row = await repo.get_latest_valid("addr-pickup", "addr-delivery")

        assert row is not None
        assert row.id == newest.id
        assert row.distance_km == Decimal("13.10")

    @pytest.mark.asyncio
    async def test_create_and_get_by_id(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session:
            created = await DistanceCacheRepository(session).create(make_cache_row())
            await session.commit()

        async with session_factory() as session:
            fetched = await DistanceCacheRepository(session).get_by_id(created.id)

        assert fetched is not None
        assert fetched.is_valid is True
        assert fetched.provider_response == {"trans_id": "t-1"}
        assert fetched.created_at is not None

    @pytest.mark.asyncio
    async def test_latest_valid_filters_priority(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session:
            repo = DistanceCacheRepository(session)
            await repo.create(make_cache_row(route_priority="TIME"))
            await session.commit()

            assert await repo.get_latest_valid("addr-pickup", "addr-delivery") is None
            assert (
                await repo.get_latest_valid(
                    "addr-pickup", "addr-delivery", RoutePriority.TIME
                )
                is not None
            )

    @pytest.mark.asyncio
    async def test_invalidate_pair_keeps_rows(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session:
            repo = DistanceCacheRepository(session)
            await repo.create(make_cache_row())
            await repo.create(make_cache_row(route_priority="DISTANCE"))
            await repo.create(make_cache_row(delivery_address_id="addr-other"))
            await session.commit()

            updated = await repo.invalidate_pair("addr-pickup", "addr-delivery")
            await session.commit()

            assert updated == 2
            assert await repo.count_for_pair("addr-pickup", "addr-delivery") == 2
            assert (
                await repo.count_for_pair(
                    "addr-pickup", "addr-delivery", include_invalid=False
                )
                == 0
            )
            assert await repo.count_for_pair("addr-pickup", "addr-other") == 1

    @pytest.mark.asyncio
    async def test_find_near_uses_strict_threshold(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        async with session_factory() as session:
            repo = DistanceCacheRepository(session)
            await repo.create(make_cache_row())
            await session.commit()

            near = await repo.find_near(37.5700, 126.9800, 35.1800, 129.0700, 0.01)
            far = await repo.find_near(37.5665, 126.9780, 35.1796, 129.0956, 0.01)

        assert near is not None
        assert far is None


# =============================================================================
# AddressChangeLogRepository
# =============================================================================


class TestAddressChangeLogRepository:
    @pytest.mark.asyncio
    async def test_count_changes_since(
        self, session_factory: async_sessionmaker[AsyncSession]
    ) -> None:
        since = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)
        async with session_factory() as session:
            for address_id, offset in (
                ("addr-pickup", timedelta(hours=1)),
                ("addr-delivery", timedelta(hours=2)),
                ("addr-pickup", timedelta(hours=-1)),
                ("addr-other", timedelta(hours=3)),
                ("addr-pickup", timedelta(0)),
            ):
                session.add(
                    AddressChangeLog(
                        address_id=address_id,
                        changes={"detail_address": ["101호", "102호"]},
                        created_at=since + offset,
                    )
                )
            await session.commit()

            count = await AddressChangeLogRepository(session).count_changes_since(
                ["addr-pickup", "addr-delivery"], since
            )

        assert count == 2
