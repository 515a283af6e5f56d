"""Tests for the structlog processors."""

from freight_distance.config import Settings
from freight_distance.core.logging import (
    add_correlation_id,
    clear_correlation_id,
    service_context,
    set_correlation_id,
)


def test_service_context_stamps_entries(test_settings: Settings) -> None:
    processor = service_context(test_settings)

    event = processor(None, "info", {"event": "distance_cache_hit"})

    assert event["service"] == "freight-distance"
    assert event["environment"] == "development"
    assert event["version"] == test_settings.app_version


def test_service_context_keeps_explicit_values(test_settings: Settings) -> None:
    processor = service_context(test_settings)

    event = processor(None, "info", {"event": "x", "version": "override"})

    assert event["version"] == "override"


def test_correlation_id_added_while_set() -> None:
    set_correlation_id("req-9")
    try:
        event = add_correlation_id(None, "info", {"event": "x"})
    finally:
        clear_correlation_id()

    assert event["correlation_id"] == "req-9"
    assert "correlation_id" not in add_correlation_id(None, "info", {"event": "x"})
