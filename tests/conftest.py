"""
Pytest configuration and fixtures for tests.
Provides reusable fixtures for the database, seeded rides, the call
registry and an authenticated HTTP client.
"""
import pytest
from typing import AsyncGenerator, Dict, List
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool
from httpx import AsyncClient, ASGITransport

from bruinsplit.core.call_registry import CallRegistry
from bruinsplit.core.database import get_db
from bruinsplit.core.exceptions import RideNotFound
from bruinsplit.core.security import create_access_token
from bruinsplit.models.base import Base


# In-memory SQLite for tests; StaticPool keeps one connection so every
# session sees the same database
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

OWNER_ID = "user-alice"
MEMBER_ID = "user-bob"
PENDING_ID = "user-carol"
OUTSIDER_ID = "user-dave"
RIDE_ID = "ride-1"


@pytest.fixture(scope="function")
async def test_engine():
    """Create test database engine."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    TestSessionLocal = async_sessionmaker(
        test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()


@pytest.fixture
async def test_ride(db_session: AsyncSession):
    """
    Seed one ride:
    - alice owns it
    - bob is a confirmed rider
    - carol has only requested to join
    - dave has nothing to do with it
    """
    from bruinsplit.models.profile import Profile
    from bruinsplit.models.ride import Ride, RideMember

    for user_id, username in [
        (OWNER_ID, "alice"),
        (MEMBER_ID, "bob"),
        (PENDING_ID, "carol"),
        (OUTSIDER_ID, "dave"),
    ]:
        db_session.add(Profile(id=user_id, username=username, email=f"{username}@ucla.edu"))
    await db_session.flush()

    ride = Ride(
        id=RIDE_ID,
        owner_id=OWNER_ID,
        origin_text="Westwood",
        destination_text="LAX",
        max_seats=4,
    )
    db_session.add(ride)
    await db_session.flush()

    db_session.add(RideMember(ride_id=RIDE_ID, user_id=MEMBER_ID, status="CONFIRMED JOINING"))
    db_session.add(RideMember(ride_id=RIDE_ID, user_id=PENDING_ID, status="PENDING"))
    await db_session.commit()

    return ride


class FakeMembershipOracle:
    """In-memory stand-in for RideRepository: ride id -> (owner, confirmed riders)."""

    def __init__(self, rides: Dict[str, List[str]]):
        self.rides = rides
        self.calls = 0

    async def verify_ride_membership(self, ride_id: str, user_id: str) -> bool:
        self.calls += 1
        if ride_id not in self.rides:
            raise RideNotFound()
        return user_id in self.rides[ride_id]

    async def get_confirmed_members(self, ride_id: str) -> List[str]:
        if ride_id not in self.rides:
            raise RideNotFound()
        return list(self.rides[ride_id])


@pytest.fixture
def oracle() -> FakeMembershipOracle:
    """Ride r1: owner a, confirmed b and c. Ride r2: owner z."""
    return FakeMembershipOracle({
        "r1": ["a", "b", "c"],
        "r2": ["z"],
    })


@pytest.fixture
def registry() -> CallRegistry:
    """Fresh, isolated call registry."""
    return CallRegistry()


@pytest.fixture
def notifier(mocker):
    """Push channel double recording every notice."""
    mock_notifier = mocker.AsyncMock()
    mock_notifier.notify_call_signal = mocker.AsyncMock()
    mock_notifier.notify_participant_joined = mocker.AsyncMock()
    mock_notifier.notify_participant_left = mocker.AsyncMock()
    return mock_notifier


@pytest.fixture
def auth_headers():
    """Build Authorization headers for a given profile id."""
    def _headers(user_id: str) -> dict:
        token = create_access_token(data={"userId": user_id})
        return {"Authorization": f"Bearer {token}"}
    return _headers


@pytest.fixture(scope="function")
async def client(db_session: AsyncSession, registry, notifier) -> AsyncGenerator[AsyncClient, None]:
    """
    HTTP client against the FastAPI app with the test database, a fresh
    registry and a mocked notifier. Authentication is real: use auth_headers.
    """
    from bruinsplit.api.v1.calls import limiter
    from bruinsplit.main import fastapi_app

    async def override_get_db():
        yield db_session

    previous_registry = fastapi_app.state.call_registry
    previous_notifier = fastapi_app.state.notifier

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.state.call_registry = registry
    fastapi_app.state.notifier = notifier
    limiter.reset()

    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as ac:
        yield ac

    fastapi_app.dependency_overrides.clear()
    fastapi_app.state.call_registry = previous_registry
    fastapi_app.state.notifier = previous_notifier
