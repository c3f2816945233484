"""
Test infrastructure for the newsdesk API.

Strategy
--------
- SQLite in-memory via aiosqlite eliminates the need for a running Postgres
  instance in CI.  ``build_engine`` gives in-memory URLs a StaticPool so all
  sessions share the one connection that holds the database.
- The app's get_db dependency is overridden so every test-time request uses
  the test session factory rather than the production one.
- All tables are created fresh before each test and dropped after.
- Redis is never contacted: the session store and the notification bus
  both run on their in-process fallbacks, reset before each test.
- bcrypt runs at its minimum cost so hashing does not dominate the suite.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: E402

from newsdesk.database import Base, build_engine, build_sessionmaker, get_db  # noqa: E402
from newsdesk.identity import Role  # noqa: E402
from newsdesk.main import app  # noqa: E402
from newsdesk.models import Account  # noqa: E402
from newsdesk.notifications import notifier  # noqa: E402
from newsdesk.security import hash_password  # noqa: E402
from newsdesk.sessions import sessions  # noqa: E402

# ---------------------------------------------------------------------------
# Test database engine: SQLite in-memory with aiosqlite
# ---------------------------------------------------------------------------

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

engine_test = build_engine(TEST_DATABASE_URL)
async_session_test = build_sessionmaker(engine_test)

PASSWORD = "s3cret-pass"


# ---------------------------------------------------------------------------
# Dependency override: replace production get_db with the test session factory
# ---------------------------------------------------------------------------

async def override_get_db():
    async with async_session_test() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


app.dependency_overrides[get_db] = override_get_db


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture(autouse=True)
async def setup_db():
    """Create all tables before each test, drop after to guarantee isolation."""
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine_test.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest_asyncio.fixture(autouse=True)
async def in_process_backends():
    """Sessions and notifications use their in-process fallbacks only."""
    sessions._redis = None
    sessions._local = {}
    notifier._redis = None
    yield
    sessions._local = {}


@pytest_asyncio.fixture
async def db_session() -> AsyncSession:
    """A live AsyncSession for tests that talk to the services directly."""
    async with async_session_test() as session:
        yield session


@pytest_asyncio.fixture
async def async_client() -> AsyncClient:
    """An httpx.AsyncClient wired to the FastAPI app via ASGITransport."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def signals():
    """Record every change signal published while the test runs."""
    received = []

    async def record(signal):
        received.append(signal)

    notifier.subscribe(record)
    yield received
    notifier.unsubscribe(record)


# ---------------------------------------------------------------------------
# Account helpers
# ---------------------------------------------------------------------------

async def make_account(
    db: AsyncSession,
    email: str,
    role: Role = Role.STAFF,
    name: str | None = None,
    password: str = PASSWORD,
) -> Account:
    """Insert an account directly (no signal) and return it."""
    account = Account(
        name=name or email.split("@")[0].title(),
        email=email,
        password_hash=hash_password(password),
        role=int(role),
    )
    db.add(account)
    await db.commit()
    return account


async def login_as(
    client: AsyncClient, db: AsyncSession, email: str, role: Role = Role.STAFF
) -> Account:
    """Create an account with *role* and log *client* in as it."""
    account = await make_account(db, email, role)
    resp = await client.post("/api/v1/auth/login", json={"email": email, "password": PASSWORD})
    assert resp.status_code == 200, resp.text
    return account
