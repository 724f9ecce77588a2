from datetime import datetime, timezone

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.auth.jwt import create_access_token, create_refresh_token, decode_token
from mams.core.auth.models import BASE_SCOPED_ROLES, User, UserRole
from mams.core.auth.password import hash_password, verify_password
from mams.core.audit import ActivityAction, ActivityLogService, ResourceType
from mams.core.exceptions import AuthenticationError, DuplicateError, ValidationError


class AuthService:
    """Service for authentication operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.activity = ActivityLogService(session)

    async def get_user_by_username(self, username: str) -> User | None:
        """Get user by username."""
        stmt = select(User).where(User.username == username)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def create_user(
        self,
        username: str,
        email: str,
        password: str,
        full_name: str,
        role: UserRole,
        assigned_base: str | None = None,
    ) -> User:
        """Create a new user.

        Base-scoped roles must carry an assigned base; Admin never does.
        """
        if role in BASE_SCOPED_ROLES and not assigned_base:
            raise ValidationError(f"{role.value} requires an assigned base", field="assigned_base")
        if role == UserRole.ADMIN:
            assigned_base = None

        existing = await self.session.execute(
            select(User).where(or_(User.username == username, User.email == email))
        )
        clash = existing.scalars().first()
        if clash:
            if clash.username == username:
                raise DuplicateError("User", "username", username)
            raise DuplicateError("User", "email", email)

        user = User(
            username=username,
            email=email,
            password_hash=hash_password(password),
            full_name=full_name,
            role=role.value,
            assigned_base=assigned_base,
            is_active=True,
        )

        self.session.add(user)
        await self.session.flush()
        return user

    async def authenticate(
        self,
        username: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> tuple[User, str, str]:
        """
        Authenticate user and return tokens.

        Returns:
            Tuple of (user, access_token, refresh_token)

        Raises:
            AuthenticationError: If credentials are invalid
        """
        user = await self.get_user_by_username(username)

        if not user or not verify_password(password, user.password_hash):
            await self.activity.record(
                ActivityAction.FAILED_LOGIN,
                ResourceType.USER,
                user.id if user else None,
                details={"username": username},
                ip_address=ip_address,
                user_agent=user_agent,
            )
            raise AuthenticationError("Invalid username or password")

        if not user.is_active:
            raise AuthenticationError("User account is inactive")

        user.last_login_at = datetime.now(timezone.utc)
        await self.session.commit()

        access_token = create_access_token(user.id, user.role, user.assigned_base)
        refresh_token = create_refresh_token(user.id)

        await self.activity.record(
            ActivityAction.LOGIN,
            ResourceType.USER,
            user.id,
            user_id=user.id,
            username=user.username,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        return user, access_token, refresh_token

    async def refresh_tokens(self, refresh_token: str) -> tuple[str, str]:
        """
        Refresh access token using refresh token.

        Returns:
            Tuple of (new_access_token, new_refresh_token)
        """
        payload = decode_token(refresh_token, token_type="refresh")

        user = await self.get_user_by_id(int(payload["sub"]))

        if not user:
            raise AuthenticationError("User not found")

        if not user.is_active:
            raise AuthenticationError("User account is inactive")

        new_access_token = create_access_token(user.id, user.role, user.assigned_base)
        new_refresh_token = create_refresh_token(user.id)

        return new_access_token, new_refresh_token
