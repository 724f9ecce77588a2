import os
from collections.abc import AsyncGenerator, Awaitable, Callable

# Cheap password hashing for tests; must be set before settings are loaded
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("RECOVER_TRANSFERS_ON_STARTUP", "false")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from mams.core.access import Principal
from mams.core.auth.models import User, UserRole
from mams.core.auth.service import AuthService
from mams.core.database import get_db
from mams.core.database.base import Base
from mams.main import app

# In-memory SQLite, one database per test
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PASSWORD = "Password123"
BASE_ONE = "Base One"
BASE_TWO = "Base Two"


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Fresh in-memory database with all tables."""
    test_engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Let SQLAlchemy emit BEGIN itself so SAVEPOINTs behave as on PostgreSQL
    @event.listens_for(test_engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(test_engine.sync_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield test_engine
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await test_engine.dispose()


@pytest.fixture
async def db_session(engine: AsyncEngine) -> AsyncGenerator[AsyncSession, None]:
    """Get test database session."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """Get test HTTP client with overridden database dependency."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
async def users(db_session: AsyncSession) -> dict[str, User]:
    """One user per role, with base-scoped roles at Base One and Base Two."""
    auth_service = AuthService(db_session)
    specs = {
        "admin": (UserRole.ADMIN, None),
        "cmd_one": (UserRole.BASE_COMMANDER, BASE_ONE),
        "log_one": (UserRole.LOGISTICS_OFFICER, BASE_ONE),
        "cmd_two": (UserRole.BASE_COMMANDER, BASE_TWO),
        "log_two": (UserRole.LOGISTICS_OFFICER, BASE_TWO),
    }
    created = {}
    for username, (role, base) in specs.items():
        created[username] = await auth_service.create_user(
            username=username,
            email=f"{username}@test.mil",
            password=PASSWORD,
            full_name=username.replace("_", " ").title(),
            role=role,
            assigned_base=base,
        )
    await db_session.commit()
    return created


@pytest.fixture
def principals(users: dict[str, User]) -> dict[str, Principal]:
    return {name: user.principal for name, user in users.items()}


@pytest.fixture
def auth_headers(
    client: AsyncClient, users: dict[str, User]
) -> Callable[[str], Awaitable[dict[str, str]]]:
    """Log in as one of the fixture users and return the Authorization header."""

    async def _login(username: str) -> dict[str, str]:
        response = await client.post(
            "/api/v1/auth/login",
            json={"username": username, "password": PASSWORD},
        )
        assert response.status_code == 200, response.text
        return {"Authorization": f"Bearer {response.json()['data']['access_token']}"}

    return _login
