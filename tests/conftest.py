"""
Pytest configuration and fixtures for tests.

This file is automatically loaded by pytest and provides shared fixtures
and configuration for all tests.
"""

import sys
import os

# Test environment must be in place before config is imported anywhere
os.environ.setdefault("RUNTIME_ENVIRONMENT", "TEST")
os.environ["DB_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["COUPON_CODES"] = "HEALTH100:100,WELCOME50:50"
os.environ["PAYMENT_WEBHOOK_SECRET"] = "test_webhook_secret_1234567890"

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker

# Add parent directory to Python path so tests can import modules
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from enums.cart_item_type import CartItemType
from models.cart_line import CartLine


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def test_engine():
    """Create test database engine (in-memory SQLite)."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False
    )

    # Import and create all tables
    from db import Base
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Cleanup
    await engine.dispose()


@pytest_asyncio.fixture
async def test_session(test_engine):
    """Create test database session."""
    async_session_maker = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False
    )

    async with async_session_maker() as session:
        yield session
        await session.rollback()


# ============================================================================
# In-process registries
# ============================================================================

@pytest.fixture(autouse=True)
def reset_registries():
    """Payment and cart sync registries are class-level, isolate every test."""
    from services.cart_sync import CartSyncService
    from services.payment import PaymentService

    PaymentService.awaiting_confirmation.clear()
    CartSyncService._synced_revisions.clear()
    PaymentService._registered_at.clear()
    yield
    PaymentService.awaiting_confirmation.clear()
    CartSyncService._synced_revisions.clear()
    PaymentService._registered_at.clear()


# ============================================================================
# Cart line factories
# ============================================================================

@pytest.fixture
def make_test_line():
    """Provider-bound diagnostic test line."""
    def _make(catalog_id: str = "cbc", provider_id: str = "lab-a", price: int = 300,
              provider_name: str | None = None, name: str | None = None) -> CartLine:
        return CartLine(
            id=f"{catalog_id}-{provider_id}",
            catalog_id=catalog_id,
            name=name or catalog_id.upper(),
            unit_price=price,
            provider_id=provider_id,
            provider_name=provider_name or f"Lab {provider_id}",
            item_type=CartItemType.TEST
        )
    return _make


@pytest.fixture
def make_package_line():
    def _make(catalog_id: str = "full-body", price: int = 1999, provider_id: str | None = None) -> CartLine:
        return CartLine(
            id=catalog_id,
            name="Full Body Checkup",
            unit_price=price,
            provider_id=provider_id,
            item_type=CartItemType.PACKAGE
        )
    return _make


@pytest.fixture
def make_service_line():
    """Provider-agnostic service line (ECG, physio)."""
    def _make(catalog_id: str = "ecg", price: int = 500) -> CartLine:
        return CartLine(
            id=catalog_id,
            name=catalog_id.upper(),
            unit_price=price,
            item_type=CartItemType.SERVICE
        )
    return _make
