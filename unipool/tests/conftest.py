"""
Centralized Test Configuration.

In-memory SQLite per test, an in-memory Redis double, and helpers that drive
the API the way a client would.
"""

import os

# Must be set before the app (and its settings) is imported
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RATING_RECOMPUTE_BACKOFF_SECONDS", "0")
os.environ.setdefault("REQUIRE_VERIFIED_ACCOUNTS", "false")

from datetime import date, timedelta

import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy import event
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.pool import Pool, StaticPool

from unipool.app.main import app
from unipool.app.db.session import get_db, Base
from unipool.app.core.security import get_password_hash
from unipool.app.models.enums import UserRole, UserStatus, University
from unipool.app.models.user import User
import unipool.app.core.redis_client as redis_client_module

# Setup In-Memory Test Database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

API = "/v1"
DEFAULT_PASSWORD = "Passw0rdOK"


@event.listens_for(Pool, "connect")
def set_sqlite_pragma(dbapi_conn, connection_record):
    """Enable foreign key constraints for SQLite."""
    if 'sqlite' in str(type(dbapi_conn)):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


engine = create_async_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)


# Mock Redis for reliability in CI/CD
class MockRedis:
    def __init__(self):
        self.store = {}

    async def ping(self):
        return True

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        return True

    async def setex(self, key, ttl, value):
        self.store[key] = value
        return True

    async def delete(self, key):
        return 1 if self.store.pop(key, None) is not None else 0

    async def exists(self, key):
        return 1 if key in self.store else 0

    async def flushdb(self):
        self.store = {}


@pytest.fixture(scope="session")
def mock_redis():
    return MockRedis()


@pytest.fixture(scope="session", autouse=True)
def apply_overrides(mock_redis):
    """Apply overrides once for the session."""
    original_client = redis_client_module.redis_client
    redis_client_module.redis_client = mock_redis

    async def override_get_db():
        async with TestingSessionLocal() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    yield

    app.dependency_overrides = {}
    redis_client_module.redis_client = original_client


@pytest.fixture(autouse=True)
async def setup_database(mock_redis):
    """Create tables before each test function and drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    mock_redis.store.clear()

    yield

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def client():
    """Async client for testing."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
async def db_session():
    async with TestingSessionLocal() as session:
        yield session


# --- API helpers ---

_phone_counter = iter(range(1000000, 9999999))


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def future_date(days: int = 3) -> str:
    return (date.today() + timedelta(days=days)).isoformat()


async def register_user(client: AsyncClient, email: str, role: str = "passenger", **overrides) -> dict:
    """Register through the API; returns {"token", "user"}."""
    payload = {
        "name": overrides.pop("name", email.split("@")[0].title()),
        "email": email,
        "password": DEFAULT_PASSWORD,
        "phone": f"+92300{next(_phone_counter)}",
        "university": "LUMS",
        "role": role,
    }
    payload.update(overrides)
    response = await client.post(f"{API}/auth/register", json=payload)
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def create_ride(client: AsyncClient, token: str, seats: int = 2, **overrides) -> dict:
    payload = {
        "origin": "DHA Phase 5",
        "destination": "LUMS",
        "date": future_date(),
        "time": "08:30",
        "available_seats": seats,
        "cost_per_passenger": 250,
    }
    payload.update(overrides)
    response = await client.post(f"{API}/rides", json=payload, headers=auth_headers(token))
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def request_booking(client: AsyncClient, token: str, ride_id: int, seats: int = 1):
    return await client.post(
        f"{API}/bookings/request",
        json={"ride_id": ride_id, "seats_requested": seats},
        headers=auth_headers(token),
    )


async def get_ride(client: AsyncClient, ride_id: int) -> dict:
    response = await client.get(f"{API}/rides/{ride_id}")
    assert response.status_code == 200, response.text
    return response.json()["data"]


# --- Actor fixtures ---

@pytest.fixture
async def driver(client):
    return await register_user(client, "driver@lums.edu.pk", role="driver", name="Dana Driver")


@pytest.fixture
async def passenger(client):
    return await register_user(client, "alice@lums.edu.pk", name="Alice")


@pytest.fixture
async def passenger_b(client):
    return await register_user(client, "bilal@nust.edu.pk", name="Bilal", university="NUST")


@pytest.fixture
async def passenger_c(client):
    return await register_user(client, "chen@fast.edu.pk", name="Chen", university="FAST")


@pytest.fixture
async def admin(client, db_session):
    """Admins are seeded, not registered: insert directly, then log in."""
    db_session.add(User(
        name="Admin",
        email="admin@unipool.edu.pk",
        phone="+920000000000",
        hashed_password=get_password_hash(DEFAULT_PASSWORD),
        role=UserRole.ADMIN,
        status=UserStatus.ACTIVE,
        university=University.OTHER,
    ))
    await db_session.commit()

    response = await client.post(
        f"{API}/auth/login",
        json={"email": "admin@unipool.edu.pk", "password": DEFAULT_PASSWORD},
    )
    assert response.status_code == 200, response.text
    return response.json()["data"]
