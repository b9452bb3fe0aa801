"""
Pytest configuration and shared fixtures for unit tests.

This module provides common fixtures for unit testing:
- Mock database session and metrics service (no real database or exporter)
- Sample investment lots
- FastAPI test client with the price cache and services overridden

Database-backed integration tests need a real PostgreSQL instance because the
models live in the "app" schema; none are included here.
"""
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from finance_tracker.api.main import app
from finance_tracker.db.models.investment_lot import InvestmentLot
from finance_tracker.services.metrics_service import MetricsService


# ==================== FastAPI App & Client Fixtures ====================

@pytest.fixture
def test_app():
    """Get the FastAPI application instance with overrides cleared after the test."""
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(test_app):
    """
    Create a synchronous test client for API endpoint testing.
    Tests install their own dependency_overrides before issuing requests.
    """
    with TestClient(test_app) as test_client:
        yield test_client


# ==================== Mock Service Fixtures ====================

@pytest.fixture
def mock_metrics_service():
    """MetricsService mock so tests never touch the OpenTelemetry meter."""
    return MagicMock(spec=MetricsService)


@pytest.fixture
def mock_db_session():
    """Create a mock AsyncSession for database testing."""
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.flush = AsyncMock()
    session.add = MagicMock()
    session.delete = AsyncMock()
    return session


def scalars_result(items):
    """Build a mock execute() result whose scalars().all() returns items."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = list(items)
    return result


def scalar_result(item):
    """Build a mock execute() result whose scalar_one_or_none() returns item."""
    result = MagicMock()
    result.scalar_one_or_none.return_value = item
    return result


@pytest.fixture
def scalars_result_factory():
    return scalars_result


@pytest.fixture
def scalar_result_factory():
    return scalar_result


# ==================== Sample Test Data Fixtures ====================

def make_lot(
    id,
    symbol,
    quantity,
    unit_cost,
    display_name=None,
    acquired_at=None,
    account_id=10,
    user_id=1
) -> InvestmentLot:
    """Create an unsaved InvestmentLot model instance."""
    return InvestmentLot(
        id=id,
        user_id=user_id,
        account_id=account_id,
        symbol=symbol,
        display_name=display_name or symbol,
        quantity=Decimal(str(quantity)),
        unit_cost=Decimal(str(unit_cost)),
        acquired_at=acquired_at or datetime(2024, 1, 15, tzinfo=timezone.utc),
        created_at=datetime(2024, 1, 15, tzinfo=timezone.utc)
    )


@pytest.fixture
def lot_factory():
    return make_lot


@pytest.fixture
def sample_lots():
    """Two INFY lots and one TCS lot."""
    return [
        make_lot(1, "INFY.NS", 10, 1400, "Infosys Ltd", datetime(2024, 1, 10, tzinfo=timezone.utc)),
        make_lot(2, "TCS.NS", 5, 3500, "Tata Consultancy Services", datetime(2024, 2, 1, tzinfo=timezone.utc)),
        make_lot(3, "INFY.NS", 10, 1600, "Infosys Limited", datetime(2024, 3, 5, tzinfo=timezone.utc)),
    ]
