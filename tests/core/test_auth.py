import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.audit import ActivityLog
from mams.core.auth.models import UserRole
from mams.core.auth.service import AuthService
from mams.core.exceptions import AuthenticationError, DuplicateError, ValidationError


class TestAuthService:
    """Tests for AuthService."""

    async def test_create_user(self, db_session: AsyncSession):
        """Test creating a new user."""
        auth_service = AuthService(db_session)

        user = await auth_service.create_user(
            username="cmd.alpha",
            email="cmd.alpha@test.mil",
            password="Password123",
            full_name="Alpha Commander",
            role=UserRole.BASE_COMMANDER,
            assigned_base="Fort Alpha",
        )

        assert user.id is not None
        assert user.username == "cmd.alpha"
        assert user.role == "BaseCommander"
        assert user.assigned_base == "Fort Alpha"
        assert user.is_active is True
        assert user.password_hash != "Password123"  # Password should be hashed

    async def test_scoped_role_requires_base(self, db_session: AsyncSession):
        auth_service = AuthService(db_session)

        with pytest.raises(ValidationError) as exc_info:
            await auth_service.create_user(
                username="log.nobase",
                email="log.nobase@test.mil",
                password="Password123",
                full_name="No Base",
                role=UserRole.LOGISTICS_OFFICER,
            )

        assert exc_info.value.details == {"field": "assigned_base"}

    async def test_admin_base_is_dropped(self, db_session: AsyncSession):
        auth_service = AuthService(db_session)

        user = await auth_service.create_user(
            username="root",
            email="root@test.mil",
            password="Password123",
            full_name="Root Admin",
            role=UserRole.ADMIN,
            assigned_base="Fort Alpha",
        )

        assert user.assigned_base is None
        assert user.principal.scoped_base is None

    async def test_create_user_duplicate_username(self, db_session: AsyncSession):
        """Test that duplicate username raises error."""
        auth_service = AuthService(db_session)

        await auth_service.create_user(
            username="admin",
            email="admin@test.mil",
            password="Password123",
            full_name="Admin",
            role=UserRole.ADMIN,
        )

        with pytest.raises(DuplicateError) as exc_info:
            await auth_service.create_user(
                username="admin",
                email="other@test.mil",
                password="AnotherPass123",
                full_name="Another",
                role=UserRole.ADMIN,
            )

        assert "already exists" in str(exc_info.value)

    async def test_authenticate_success(self, db_session: AsyncSession):
        """Test successful authentication."""
        auth_service = AuthService(db_session)

        await auth_service.create_user(
            username="admin",
            email="admin@test.mil",
            password="Password123",
            full_name="Admin",
            role=UserRole.ADMIN,
        )

        user, access_token, refresh_token = await auth_service.authenticate(
            username="admin",
            password="Password123",
        )

        assert user.username == "admin"
        assert user.last_login_at is not None
        assert access_token is not None
        assert refresh_token is not None

    async def test_authenticate_wrong_password_is_recorded(self, db_session: AsyncSession):
        """Test authentication with wrong password."""
        auth_service = AuthService(db_session)

        await auth_service.create_user(
            username="admin",
            email="admin@test.mil",
            password="Password123",
            full_name="Admin",
            role=UserRole.ADMIN,
        )
        await db_session.commit()

        with pytest.raises(AuthenticationError):
            await auth_service.authenticate(username="admin", password="WrongPassword")

        result = await db_session.execute(select(ActivityLog))
        entries = list(result.scalars().all())
        assert [e.action for e in entries] == ["Failed Login"]

    async def test_authenticate_inactive_user(self, db_session: AsyncSession):
        """Test authentication with inactive user."""
        auth_service = AuthService(db_session)

        user = await auth_service.create_user(
            username="admin",
            email="admin@test.mil",
            password="Password123",
            full_name="Admin",
            role=UserRole.ADMIN,
        )
        user.is_active = False
        await db_session.flush()

        with pytest.raises(AuthenticationError) as exc_info:
            await auth_service.authenticate(username="admin", password="Password123")

        assert "inactive" in str(exc_info.value)


class TestAuthEndpoints:
    """Tests for auth API endpoints."""

    async def test_login_success(self, client: AsyncClient, users):
        response = await client.post(
            "/api/v1/auth/login",
            json={"username": "cmd_one", "password": "Password123"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert "access_token" in data["data"]
        assert "refresh_token" in data["data"]
        assert data["data"]["user"]["assigned_base"] == "Base One"

    async def test_login_wrong_credentials(self, client: AsyncClient):
        response = await client.post(
            "/api/v1/auth/login",
            json={"username": "nobody", "password": "WrongPass"},
        )

        assert response.status_code == 401
        assert response.json()["code"] == "AUTHENTICATION_FAILED"

    async def test_get_me_unauthorized(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")
        assert response.status_code == 401

    async def test_get_me_authorized(self, client: AsyncClient, auth_headers):
        headers = await auth_headers("log_two")

        response = await client.get("/api/v1/auth/me", headers=headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["username"] == "log_two"
        assert data["role"] == "LogisticsOfficer"

    async def test_refresh(self, client: AsyncClient, users):
        login = await client.post(
            "/api/v1/auth/login",
            json={"username": "admin", "password": "Password123"},
        )
        refresh_token = login.json()["data"]["refresh_token"]

        response = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": refresh_token}
        )

        assert response.status_code == 200
        assert response.json()["data"]["access_token"]

    async def test_refresh_rejects_access_token(self, client: AsyncClient, users):
        login = await client.post(
            "/api/v1/auth/login",
            json={"username": "admin", "password": "Password123"},
        )
        access_token = login.json()["data"]["access_token"]

        response = await client.post(
            "/api/v1/auth/refresh", json={"refresh_token": access_token}
        )

        assert response.status_code == 401
