"""Pytest configuration and fixtures for the distance service tests.

This module provides reusable fixtures for:
- Settings overrides
- Async test client
- Test database (in-memory SQLite) and session factory
- Mocked external services
"""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from freight_distance.config import Settings
from freight_distance.core.database import create_engine_for, create_session_factory
from freight_distance.main import create_app
from freight_distance.models import Base
from freight_distance.services.distance import Coordinates, DistanceCalculationRequest
from freight_distance.services.kakao_directions import DIRECTIONS_PATH

# =============================================================================
# Settings Fixtures
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Create test-specific settings.

    Overrides production settings with test-appropriate values.
    """
    return Settings(
        app_env="development",  # type: ignore[arg-type]
        debug=False,
        log_level="DEBUG",  # type: ignore[arg-type]
        log_format="console",  # type: ignore[arg-type]
        database_url="sqlite+aiosqlite:///:memory:",
        kakao_rest_api_key="test-kakao-key",  # type: ignore[arg-type]
        kakao_directions_base_url="https://navi.test",
        rate_limit_window_ms=60_000,
        rate_limit_max_calls=3,
        rate_limit_cleanup_probability=0.0,
    )


# =============================================================================
# Application Fixtures
# =============================================================================


@pytest.fixture
def app(test_settings: Settings) -> FastAPI:
    """Create a test FastAPI application with test settings."""
    return create_app(settings=test_settings)


@pytest.fixture
async def async_client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create an async HTTP client for testing.

    This client makes requests to the test app without starting a server.
    The lifespan does not run, so services must be provided through
    ``app.dependency_overrides``.
    """
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def session_factory(
    test_settings: Settings,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh in-memory SQLite database.

    Usage:
        async def test_something(session_factory):
            async with session_factory() as session:
                ...
    """
    engine = create_engine_for(test_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield create_session_factory(engine)

    await engine.dispose()


# =============================================================================
# Mock Service Fixtures
# =============================================================================


@pytest.fixture
def mock_directions() -> MagicMock:
    """Create a mock directions client.

    Usage:
        async def test_calc(mock_directions: MagicMock):
            mock_directions.get_directions.return_value = parsed_response
    """
    mock = MagicMock()
    mock.endpoint = DIRECTIONS_PATH
    mock.get_directions = AsyncMock()
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def mock_usage() -> MagicMock:
    """Create a mock usage recorder that hands out predictable ids."""
    mock = MagicMock()
    mock.record = AsyncMock(return_value="usage-1")
    return mock


# =============================================================================
# Helper Fixtures
# =============================================================================


@pytest.fixture
def seoul() -> Coordinates:
    return Coordinates(lat=37.5665, lng=126.978)


@pytest.fixture
def busan() -> Coordinates:
    return Coordinates(lat=35.1796, lng=129.0756)


@pytest.fixture
def distance_request(seoul: Coordinates, busan: Coordinates) -> DistanceCalculationRequest:
    """A calculation request from Seoul to Busan with default options."""
    return DistanceCalculationRequest(
        pickup_address_id="addr-pickup",
        delivery_address_id="addr-delivery",
        pickup_coordinates=seoul,
        delivery_coordinates=busan,
    )


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 3, 15, 12, 0, tzinfo=UTC)
