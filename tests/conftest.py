import os

# Must be set before vcheck.config is imported.
os.environ["CACHE_BACKEND"] = "none"
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["TIMEZONE"] = "UTC"

from dataclasses import dataclass
from datetime import datetime, timezone

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from vcheck.database import get_db
from vcheck.main import app
from vcheck.models import Base, Office, OfficeMember, User, UserRole
from vcheck.realtime import ConnectionManager
from vcheck.security import create_access_token

OFFICE_LAT = 10.7769
OFFICE_LNG = 106.7009
# Meters per degree of latitude on a 6371 km sphere.
METERS_PER_DEGREE = 6371000 * 3.141592653589793 / 180

T0 = datetime(2026, 3, 2, 8, 0, tzinfo=timezone.utc)


def north_of(lat: float, meters: float) -> float:
    return lat + meters / METERS_PER_DEGREE


class FakeCache:
    def __init__(self):
        self.store: dict[str, str] = {}

    async def get(self, key: str) -> str | None:
        return self.store.get(key)

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        self.store[key] = value

    async def close(self) -> None:
        self.store.clear()


class BrokenCache:
    """Cache whose server went away after startup."""

    async def get(self, key: str) -> str | None:
        raise RedisConnectionError("redis went away")

    async def setex(self, key: str, ttl_seconds: int, value: str) -> None:
        raise RedisConnectionError("redis went away")

    async def close(self) -> None:
        return None


@dataclass
class World:
    office_id: int
    other_office_id: int
    officer_id: int
    supervisor_id: int
    other_supervisor_id: int
    admin_id: int


@pytest.fixture
async def engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'vcheck.db'}", poolclass=NullPool
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def cache():
    return FakeCache()


@pytest.fixture
def events():
    return ConnectionManager()


@pytest.fixture
def make_office(db):
    async def _make(name="District 1 Station", lat=OFFICE_LAT, lng=OFFICE_LNG, radius=50.0, is_active=True):
        office = Office(
            name=name,
            address=f"{name} address",
            lat=lat,
            lng=lng,
            radius=radius,
            is_active=is_active,
        )
        db.add(office)
        await db.commit()
        return office.id

    return _make


@pytest.fixture
def make_user(db):
    async def _make(username, role=UserRole.OFFICER, office_id=None, is_active=True, member=True):
        user = User(
            username=username,
            email=f"{username}@vcheck.test",
            full_name=username.replace("_", " ").title(),
            role=role.value,
            office_id=office_id,
            is_active=is_active,
        )
        db.add(user)
        await db.flush()
        if office_id is not None and member:
            db.add(OfficeMember(office_id=office_id, user_id=user.id))
        await db.commit()
        return user.id

    return _make


@pytest.fixture
async def world(make_office, make_user):
    office_id = await make_office()
    other_office_id = await make_office(name="District 3 Station", lat=10.7830, lng=106.6870)
    return World(
        office_id=office_id,
        other_office_id=other_office_id,
        officer_id=await make_user("officer_a", office_id=office_id),
        supervisor_id=await make_user("supervisor_b", UserRole.SUPERVISOR, office_id),
        other_supervisor_id=await make_user("supervisor_c", UserRole.SUPERVISOR, other_office_id),
        admin_id=await make_user("admin_d", UserRole.ADMIN),
    )


def auth_header(user_id: int, role: UserRole) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id, role.value)}"}


@pytest.fixture
async def client(session_factory, cache, events):
    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.state.cache = cache
    app.state.events = events
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
