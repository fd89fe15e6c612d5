"""
Test configuration and fixtures.

Provides:
- Fresh in-memory SQLite database per test (schema from the models)
- In-memory cache and task queue, swappable for failure injection
- Users for each role and JWT cookies for authenticated tests
- HTTPX AsyncClient with dependency overrides and the CSRF header
"""
import os
from dataclasses import dataclass
from typing import AsyncGenerator, Generator

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["TESTING"] = "1"
os.environ["REDIS_URL"] = "memory://"
os.environ["ENV"] = "dev"
os.environ.setdefault("JWT_SECRET", "test-secret")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session, sessionmaker

from helpdesk.core.cache import InMemoryCacheBackend, TicketCache
from helpdesk.core.deps import COOKIE_NAME, get_cache, get_db, get_task_queue
from helpdesk.core.errors import CacheError
from helpdesk.core.security import create_session_token
from helpdesk.core.task_queue import InMemoryQueueBackend, TaskQueue
from helpdesk.db.base import Base
from helpdesk.db.enums import Role
from helpdesk.db.models import User
from helpdesk.db.session import build_engine
from helpdesk.main import app
from helpdesk.schemas.ticket import TicketCreate
from helpdesk.schemas.user import UserCreate
from helpdesk.services import user_service, workflow_service

TEST_PASSWORD = "correct-horse-battery"
CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Session on a private in-memory database.

    App code commits freely; the whole database is discarded after the test.
    """
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(autocommit=False, autoflush=False, bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


# =============================================================================
# Cache / Queue Fixtures
# =============================================================================

class FakeClock:
    """Manually advanced monotonic clock for TTL tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache_backend(clock: FakeClock) -> InMemoryCacheBackend:
    return InMemoryCacheBackend(clock=clock)


@pytest.fixture
def cache(cache_backend: InMemoryCacheBackend) -> TicketCache:
    return TicketCache(cache_backend, entity_ttl=300, list_ttl=60)


@pytest.fixture
def queue() -> TaskQueue:
    return TaskQueue(InMemoryQueueBackend())


class BrokenCacheBackend:
    """Every call fails, like an unreachable Redis."""

    def _fail(self, *args, **kwargs):
        raise CacheError("cache backend down")

    get = set = delete = delete_by_prefix = size = _fail


class BrokenQueueBackend:
    """Every call fails, like an unreachable Redis."""

    def _fail(self, *args, **kwargs):
        raise ConnectionError("queue backend down")

    push = pop_front = length = _fail


@pytest.fixture
def broken_cache() -> TicketCache:
    return TicketCache(BrokenCacheBackend())


@pytest.fixture
def broken_queue() -> TaskQueue:
    return TaskQueue(BrokenQueueBackend())


# =============================================================================
# User Fixtures
# =============================================================================

def make_user(db: Session, role: Role, email: str, name: str | None = None) -> User:
    return user_service.create_user(
        db,
        UserCreate(
            email=email,
            name=name or email.split("@")[0].title(),
            password=TEST_PASSWORD,
            role=role,
        ),
    )


@pytest.fixture
def client_user(db: Session) -> User:
    return make_user(db, Role.CLIENT, "client@example.com", "Carla Client")


@pytest.fixture
def other_client(db: Session) -> User:
    return make_user(db, Role.CLIENT, "other@example.com", "Oscar Other")


@pytest.fixture
def operator_user(db: Session) -> User:
    return make_user(db, Role.OPERATOR, "operator@example.com", "Olga Operator")


@pytest.fixture
def admin_user(db: Session) -> User:
    return make_user(db, Role.ADMIN, "admin@example.com", "Ada Admin")


@pytest.fixture
def ticket(db: Session, cache: TicketCache, client_user: User):
    """An open ticket owned by client_user."""
    result = workflow_service.create_ticket(
        db,
        data=TicketCreate(
            title="Printer offline",
            description="The office printer stopped responding this morning.",
        ),
        creator_id=client_user.id,
        cache=cache,
    )
    return result.ticket


# =============================================================================
# Auth / Client Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


def auth_for(user: User) -> TestAuth:
    return TestAuth(user=user, token=create_session_token(user.id, user.role))


@pytest.fixture
def api_overrides(db: Session, cache: TicketCache, queue: TaskQueue):
    """Point the app's dependencies at the test database, cache, and queue."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_cache] = lambda: cache
    app.dependency_overrides[get_task_queue] = lambda: queue
    yield
    app.dependency_overrides.clear()


def _client(auth: TestAuth | None = None) -> AsyncClient:
    cookies = {auth.cookie_name: auth.token} if auth else None
    return AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies=cookies,
        headers=CSRF_HEADERS,
    )


@pytest.fixture
async def client(api_overrides) -> AsyncGenerator[AsyncClient, None]:
    """Unauthenticated client (CSRF header included)."""
    async with _client() as c:
        yield c


@pytest.fixture
async def client_api(api_overrides, client_user: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client(auth_for(client_user)) as c:
        yield c


@pytest.fixture
async def operator_api(api_overrides, operator_user: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client(auth_for(operator_user)) as c:
        yield c


@pytest.fixture
async def admin_api(api_overrides, admin_user: User) -> AsyncGenerator[AsyncClient, None]:
    async with _client(auth_for(admin_user)) as c:
        yield c
