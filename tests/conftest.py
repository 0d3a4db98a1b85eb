#!/usr/bin/env python3
"""
Shared fixtures: a throwaway SQLite database per test, a seeded salon and
an HTTP client bound to the app.
"""

import os
import sys
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

# Test environment must be in place before salon_agenda reads its settings
os.environ.update({
    'APP_ENV': 'testing',
    'DATABASE_URL': 'sqlite+aiosqlite:///:memory:',
    'AGENDA_API_KEY': 'test_api_key',
    'REDIS_URL': '',  # in-memory listing cache
    'RESEND_API_KEY': '',  # emails disabled unless a test patches them in
    'DEFAULT_PHONE_REGION': 'GR',
})

# Add the project root to Python path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from salon_agenda.crud.business import create_business
from salon_agenda.crud.catalog import create_service, create_stylist
from salon_agenda.db.base import init_db
from salon_agenda.db.session import build_engine
from salon_agenda.schemas.business import BusinessCreate, BusinessOut
from salon_agenda.schemas.catalog import ServiceCreate, ServiceOut, StylistCreate, StylistOut
from salon_agenda.services.appointment_cache import appointment_cache
from salon_agenda.services.notifications import drain_pending

API_KEY = 'test_api_key'

# A Monday far enough ahead that "now" never catches up with it
BOOK_DAY = date(2031, 3, 3)
FIXED_NOW = datetime(2031, 3, 1, 9, 0)


def fixed_clock() -> datetime:
    return FIXED_NOW


@pytest_asyncio.fixture
async def engine(tmp_path):
    """File-backed SQLite so separate sessions really are separate connections."""
    eng = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'agenda.db'}")
    await init_db(eng)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session
    # Confirmation emails run as background tasks
    await drain_pending()


@pytest.fixture(autouse=True)
def clear_listing_cache():
    appointment_cache.clear()
    yield
    appointment_cache.clear()


@pytest_asyncio.fixture
async def salon(db):
    """
    One business with two services and three stylists (one hidden), as plain
    snapshots so a rollback in the test session cannot expire them.
    """
    business = await create_business(db, BusinessCreate(full_name="Two Gents Barbershop", brand_color="#e0c4a8"))
    haircut = await create_service(db, business.id, ServiceCreate(name="Haircut", duration=30, price=Decimal("20.00")))
    coloring = await create_service(db, business.id, ServiceCreate(name="Coloring", duration=90, price=Decimal("65.00")))
    anna = await create_stylist(db, business.id, StylistCreate(name="Anna", title="Senior Stylist"))
    nikos = await create_stylist(db, business.id, StylistCreate(name="Nikos"))
    hidden = await create_stylist(db, business.id, StylistCreate(name="Back Office", is_public=False))
    return SimpleNamespace(
        business=BusinessOut.model_validate(business),
        haircut=ServiceOut.model_validate(haircut),
        coloring=ServiceOut.model_validate(coloring),
        anna=StylistOut.model_validate(anna),
        nikos=StylistOut.model_validate(nikos),
        hidden=StylistOut.model_validate(hidden),
    )


@pytest_asyncio.fixture
async def client(session_factory):
    """ASGI client with the app's session dependency pointed at the test database."""
    from salon_agenda.main import app
    from salon_agenda.db.session import get_session

    async def _get_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()
    await drain_pending()


@pytest.fixture
def auth_headers():
    return {"X-API-Key": API_KEY}


# Pytest configuration hooks
def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: Pure unit tests with no external dependencies")
    config.addinivalue_line("markers", "integration: Tests that touch the database or the HTTP app")
    config.addinivalue_line("markers", "slow: Long-running tests")
