"""Pytest configuration and shared fixtures."""

from datetime import timezone
from zoneinfo import ZoneInfo

import pytest  # type: ignore[import-not-found]

from time_ledger.core.days import DayBoundaryResolver
from time_ledger.core.ledger import Ledger


def pytest_configure(config: pytest.Config) -> None:
    """Configure pytest."""
    config.addinivalue_line("markers", "dst: Tests that depend on daylight-saving transitions")


@pytest.fixture
def new_york() -> ZoneInfo:
    """A zone with DST transitions (2026: Mar 8 spring forward, Nov 1 fall back)."""
    return ZoneInfo("America/New_York")


@pytest.fixture
def utc_resolver() -> DayBoundaryResolver:
    """Resolver with UTC days starting at midnight."""
    return DayBoundaryResolver(0, timezone.utc)


@pytest.fixture
def ledger(utc_resolver: DayBoundaryResolver) -> Ledger:
    """Empty ledger bucketing days in UTC."""
    return Ledger(resolver=utc_resolver)
