import pytest
from typing import AsyncGenerator
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

import partsledger.models  # noqa: F401  registers every table on the metadata
from main import app
from partsledger.auth.jwt_handler import create_access_token
from partsledger.core.config import settings
from partsledger.core.database import get_async_session
from partsledger.db.base import Base
from partsledger.models.inventory.component import Component
from partsledger.models.inventory.location import Location
from partsledger.models.purchase.supplier import Supplier
from partsledger.schemas.inventory.stock_schema import StockRecordCreate
from partsledger.services.inventory.stock_service import StockService

# In-memory database shared by every connection of one test
TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
async def engine():
    """Fresh schema per test"""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    await test_engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def session(session_maker) -> AsyncGenerator[AsyncSession, None]:
    async with session_maker() as db:
        yield db


@pytest.fixture
async def client(session_maker) -> AsyncGenerator[AsyncClient, None]:
    """Create test client bound to the per-test database"""
    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_maker() as db:
            yield db

    app.dependency_overrides[get_async_session] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers() -> dict:
    """Bearer headers for a regular operator"""
    token = create_access_token("op-1", name="operator", role="operator")
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers() -> dict:
    """Bearer headers for an admin"""
    token = create_access_token("admin-1", name="admin", role=settings.ADMIN_ROLE)
    return {"Authorization": f"Bearer {token}"}


# ----------------------------------------------------------------------
# Catalog helpers
# ----------------------------------------------------------------------

@pytest.fixture
def make_component(session):
    async def _make(part_number: str = "R-10K-0603", name: str = "Resistor 10k", category: str = "Passive"):
        component = Component(part_number=part_number, name=name, category=category, created_by="test")
        session.add(component)
        await session.commit()
        return component
    return _make


@pytest.fixture
def make_location(session):
    async def _make(code: str = "A-01", name: str = "Shelf A-01"):
        location = Location(code=code, name=name, created_by="test")
        session.add(location)
        await session.commit()
        return location
    return _make


@pytest.fixture
def make_stock(session):
    async def _make(component_id: int, location_id: int, quantity: int = 0, minimum_stock=None, maximum_stock=None):
        return await StockService(session).create_stock_record(
            StockRecordCreate(
                component_id=component_id,
                location_id=location_id,
                quantity=quantity,
                minimum_stock=minimum_stock,
                maximum_stock=maximum_stock,
            ),
            "test",
        )
    return _make


@pytest.fixture
async def component(make_component):
    return await make_component()


@pytest.fixture
async def location(make_location):
    return await make_location()


@pytest.fixture
async def other_location(make_location):
    return await make_location(code="B-02", name="Shelf B-02")


@pytest.fixture
async def supplier(session):
    supplier = Supplier(code="DIGI", name="Digi Parts", created_by="test")
    session.add(supplier)
    await session.commit()
    return supplier
