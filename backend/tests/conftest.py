"""Pytest configuration and fixtures for PackTrack tests.

Each test gets a fresh in-memory SQLite database (aiosqlite) installed on
``app.state.db``, an in-process Redis stand-in for the logout blacklist,
one user per role and a small farm → depot → market network.
"""

from datetime import date
from types import SimpleNamespace
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.pool import StaticPool

import packtrack.models  # noqa: F401  (registers every table on Base.metadata)
from packtrack.auth.jwt import create_access_token
from packtrack.auth.password import hash_password
from packtrack.database import Database
from packtrack.main import app
from packtrack.models.packaging import PackagingType
from packtrack.models.site import Site, SiteType
from packtrack.models.user import User, UserRole

TEST_PASSWORD = "testpassword123"
# bcrypt is slow on purpose; hash once per session
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)

DISPATCH_DATE = date(2026, 10, 12)


# ── Redis stand-in ───────────────────────────────────────────────

class FakeRedis:
    """The subset of redis.asyncio.Redis used by token revocation."""

    def __init__(self):
        self.store: dict[str, str] = {}

    async def setex(self, key: str, ttl: int, value: str):
        self.store[key] = value
        return True

    async def exists(self, key: str) -> int:
        return 1 if key in self.store else 0

    async def ping(self):
        return True


@pytest.fixture(autouse=True)
def fake_redis(monkeypatch) -> FakeRedis:
    fake = FakeRedis()

    async def _get_redis():
        return fake

    monkeypatch.setattr("packtrack.auth.revocation.get_redis", _get_redis)
    monkeypatch.setattr("packtrack.routers.health.get_redis", _get_redis)
    return fake


# ── Test Database Setup ──────────────────────────────────────────

@pytest_asyncio.fixture
async def database() -> AsyncGenerator[Database, None]:
    """Fresh in-memory database, shared by every session of one test."""
    db = Database(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    db.open()
    await db.create_all()
    app.state.db = db
    yield db
    app.state.db = None
    await db.close()


@pytest_asyncio.fixture
async def db_session(database: Database) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging test data; fixtures commit what they add."""
    async with database.sessionmaker() as session:
        yield session


@pytest_asyncio.fixture
async def client(database: Database) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


# ── Test Data Fixtures ───────────────────────────────────────────

def _user(email: str, role: UserRole, first_name: str) -> User:
    return User(
        email=email,
        password_hash=TEST_PASSWORD_HASH,
        first_name=first_name,
        last_name="Tester",
        role=role,
        is_active=True,
        token_version=0,
    )


@pytest_asyncio.fixture
async def users(db_session: AsyncSession) -> dict[UserRole, User]:
    """One active user per role."""
    created = {
        UserRole.ADMIN: _user("admin@packtrack.co.zw", UserRole.ADMIN, "Admin"),
        UserRole.DISPATCHER: _user("dispatch@packtrack.co.zw", UserRole.DISPATCHER, "Tendai"),
        UserRole.FARM_USER: _user("farm@packtrack.co.zw", UserRole.FARM_USER, "Rudo"),
        UserRole.DEPOT_USER: _user("depot@packtrack.co.zw", UserRole.DEPOT_USER, "Farai"),
        UserRole.READONLY: _user("viewer@packtrack.co.zw", UserRole.READONLY, "Chipo"),
    }
    db_session.add_all(created.values())
    await db_session.commit()
    return created


def _headers(user: User) -> dict:
    token = create_access_token(
        user_id=user.id, role=user.role.value, token_version=user.token_version
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def admin_headers(users) -> dict:
    return _headers(users[UserRole.ADMIN])


@pytest.fixture
def dispatcher_headers(users) -> dict:
    return _headers(users[UserRole.DISPATCHER])


@pytest.fixture
def farm_headers(users) -> dict:
    return _headers(users[UserRole.FARM_USER])


@pytest.fixture
def depot_headers(users) -> dict:
    return _headers(users[UserRole.DEPOT_USER])


@pytest.fixture
def readonly_headers(users) -> dict:
    return _headers(users[UserRole.READONLY])


@pytest_asyncio.fixture
async def network(db_session: AsyncSession) -> SimpleNamespace:
    """Two farms, a depot and a market, plus crate, bin and carton types."""
    farm_type = SiteType(name="Farm")
    depot_type = SiteType(name="Depot")
    market_type = SiteType(name="Market")
    db_session.add_all([farm_type, depot_type, market_type])
    await db_session.flush()

    farm = Site(code="BV", name="Beitbridge Valley Farm", site_type_id=farm_type.id, is_active=True)
    farm2 = Site(code="CBC", name="CBC Farm", site_type_id=farm_type.id, is_active=True)
    depot = Site(code="HRE", name="Harare Depot", site_type_id=depot_type.id, is_active=True)
    market = Site(code="MBR", name="Mbare Market", site_type_id=market_type.id, is_active=True)

    crate = PackagingType(
        code="CRATE-20", name="20kg Crate", expected_turnaround_days=7,
        is_returnable=True, is_active=True,
    )
    bin_ = PackagingType(
        code="BIN-500", name="500kg Bin", expected_turnaround_days=14,
        is_returnable=True, is_active=True,
    )
    carton = PackagingType(
        code="CARTON-10", name="10kg Carton", expected_turnaround_days=14,
        is_returnable=False, is_active=True,
    )
    db_session.add_all([farm, farm2, depot, market, crate, bin_, carton])
    await db_session.commit()

    return SimpleNamespace(
        farm=farm, farm2=farm2, depot=depot, market=market,
        crate=crate, bin=bin_, carton=carton,
    )


# ── Helpers ──────────────────────────────────────────────────────

async def create_load(client: AsyncClient, headers: dict, **overrides) -> dict:
    """POST a load and return the response's ``load`` object."""
    body = {
        "dispatchDate": DISPATCH_DATE.isoformat(),
        "packaging": [],
    }
    body.update(overrides)
    response = await client.post("/api/loads/", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["load"]


async def set_stock(client: AsyncClient, headers: dict, site_id: str, type_id: str, qty: int) -> dict:
    response = await client.put(
        f"/api/packaging/inventory/{site_id}/{type_id}",
        json={"quantity": qty},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    return response.json()


# ── Test Markers ─────────────────────────────────────────────────

def pytest_configure(config):
    """Configure custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "slow: Slow tests")
