"""
Campus Portal Gateway - Test Configuration and Fixtures
"""
import os
from typing import AsyncGenerator
import pytest
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from faker import Faker

# Set testing environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['DEBUG'] = 'true'
os.environ['DATABASE_URL'] = 'sqlite+aiosqlite:///./test_portal.db'
os.environ['JWT_SECRET_KEY'] = 'test-jwt-secret-key-for-testing'
os.environ['UPSTREAM_API_URL'] = 'http://upstream.test'
os.environ['UPSTREAM_API_TOKEN'] = 'test-upstream-token'
os.environ['ANTHROPIC_API_KEY'] = ''
os.environ['LOG_FILE'] = ''
os.environ['LOG_JSON'] = 'false'

from portal.main import app
from portal.api.deps import get_profile_store, get_upstream_client
from portal.core.database import Base, get_db
from portal.core.security import create_access_token
from portal.services.academic_context import wait_pending
from portal.services.cache_service import CacheService
from portal.services.upstream_client import UpstreamClient
import portal.models  # noqa: F401  register tables

from mocks.upstream_stub import InMemoryProfileStore, UpstreamStub

fake = Faker()

# Test database setup
TEST_DATABASE_URL = 'sqlite+aiosqlite:///./test_portal.db'
test_engine = create_async_engine(TEST_DATABASE_URL, echo=False)
TestSessionLocal = async_sessionmaker(
    bind=test_engine,
    class_=AsyncSession,
    expire_on_commit=False
)


class FakeClock:
    """Manually advanced monotonic clock"""

    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(scope='function')
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a fresh database session for each test"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with TestSessionLocal() as session:
        yield session
        await session.rollback()

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
def upstream_stub() -> UpstreamStub:
    return UpstreamStub()


@pytest.fixture
async def upstream(upstream_stub: UpstreamStub, clock: FakeClock) -> AsyncGenerator[UpstreamClient, None]:
    """UpstreamClient wired to the stub backend"""
    client = UpstreamClient(
        base_url='http://upstream.test',
        token='test-upstream-token',
        cache=CacheService(ttl_seconds=300, clock=clock),
        transport=upstream_stub.transport,
    )
    yield client
    await client.close()


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    return InMemoryProfileStore()


@pytest.fixture
async def client(
    db_session: AsyncSession,
    upstream: UpstreamClient,
    profile_store: InMemoryProfileStore,
) -> AsyncGenerator[AsyncClient, None]:
    """Create test client with database, upstream and profile overrides"""
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_upstream_client] = lambda: upstream
    app.dependency_overrides[get_profile_store] = lambda: profile_store

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url='http://test') as ac:
        yield ac

    await wait_pending()
    app.dependency_overrides.clear()


def _headers(claims: dict) -> dict:
    return {'Authorization': f'Bearer {create_access_token(claims)}'}


@pytest.fixture
def faculty_headers() -> dict:
    """Session of a faculty member linked to upstream faculty fac-1"""
    return _headers({
        'sub': 'user_faculty_1',
        'email': fake.email(),
        'role': 'faculty',
        'faculty_id': 'fac-1',
    })


@pytest.fixture
def student_headers() -> dict:
    return _headers({
        'sub': 'user_student_1',
        'email': fake.email(),
        'public_metadata': {'role': 'student'},
    })


@pytest.fixture
def session_factory(db_session: AsyncSession) -> async_sessionmaker:
    """Session factory bound to the test database (tables already created)"""
    return TestSessionLocal
