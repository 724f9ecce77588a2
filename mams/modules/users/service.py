from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.access import Principal
from mams.core.audit import ActivityAction, ActivityLogService, ResourceType
from mams.core.auth.models import BASE_SCOPED_ROLES, User, UserRole
from mams.core.auth.password import hash_password, verify_password
from mams.core.auth.service import AuthService
from mams.core.exceptions import AuthenticationError, DuplicateError, NotFoundError, ValidationError
from mams.modules.users.schemas import UserCreate, UserListFilters, UserUpdate


class UserService:
    """Service for user management operations."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.activity = ActivityLogService(session)

    async def get_by_id(self, user_id: int) -> User | None:
        """Get user by ID."""
        stmt = select(User).where(User.id == user_id)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_email(self, email: str) -> User | None:
        """Get user by email."""
        stmt = select(User).where(User.email == email)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_user(self, user_id: int) -> User:
        user = await self.get_by_id(user_id)
        if not user:
            raise NotFoundError("User", user_id)
        return user

    async def list_users(
        self, filters: UserListFilters
    ) -> tuple[list[User], int]:
        """
        List users with filters and pagination.

        Returns:
            Tuple of (users list, total count)
        """
        stmt = select(User)
        count_stmt = select(func.count(User.id))

        if filters.role:
            stmt = stmt.where(User.role == filters.role.value)
            count_stmt = count_stmt.where(User.role == filters.role.value)

        if filters.assigned_base:
            stmt = stmt.where(User.assigned_base == filters.assigned_base)
            count_stmt = count_stmt.where(User.assigned_base == filters.assigned_base)

        if filters.is_active is not None:
            stmt = stmt.where(User.is_active == filters.is_active)
            count_stmt = count_stmt.where(User.is_active == filters.is_active)

        if filters.search:
            search_term = f"%{filters.search}%"
            search_filter = or_(
                User.username.ilike(search_term),
                User.full_name.ilike(search_term),
                User.email.ilike(search_term),
            )
            stmt = stmt.where(search_filter)
            count_stmt = count_stmt.where(search_filter)

        count_result = await self.session.execute(count_stmt)
        total = count_result.scalar_one()

        offset = (filters.page - 1) * filters.limit
        stmt = stmt.order_by(User.username).offset(offset).limit(filters.limit)

        result = await self.session.execute(stmt)
        users = list(result.scalars().all())

        return users, total

    async def create(self, data: UserCreate, principal: Principal) -> User:
        """Create a new user with a role and, for base-scoped roles, a base."""
        user = await AuthService(self.session).create_user(
            username=data.username,
            email=data.email,
            password=data.password,
            full_name=data.full_name,
            role=data.role,
            assigned_base=data.assigned_base,
        )
        await self.session.commit()

        await self.activity.record(
            ActivityAction.CREATE,
            ResourceType.USER,
            user.id,
            details={
                "username": user.username,
                "role": user.role,
                "assigned_base": user.assigned_base,
            },
            principal=principal,
        )
        return user

    async def update(self, user_id: int, data: UserUpdate, principal: Principal) -> User:
        """Update user data; a base-scoped role always keeps a base."""
        user = await self.get_user(user_id)

        old_values = {
            "email": user.email,
            "full_name": user.full_name,
            "role": user.role,
            "assigned_base": user.assigned_base,
        }

        if data.email and data.email != user.email:
            existing = await self.get_by_email(data.email)
            if existing:
                raise DuplicateError("User", "email", data.email)
            user.email = data.email

        if data.full_name is not None:
            user.full_name = data.full_name

        role = data.role or UserRole(user.role)
        assigned_base = (
            data.assigned_base if data.assigned_base is not None else user.assigned_base
        )
        if role == UserRole.ADMIN:
            assigned_base = None
        elif role in BASE_SCOPED_ROLES and not assigned_base:
            raise ValidationError(f"{role.value} requires an assigned base", field="assigned_base")
        user.role = role.value
        user.assigned_base = assigned_base

        await self.session.commit()

        await self.activity.record(
            ActivityAction.UPDATE,
            ResourceType.USER,
            user.id,
            details={
                "old": old_values,
                "new": {
                    "email": user.email,
                    "full_name": user.full_name,
                    "role": user.role,
                    "assigned_base": user.assigned_base,
                },
            },
            principal=principal,
        )
        return user

    async def deactivate(self, user_id: int, principal: Principal) -> User:
        """Deactivate a user."""
        user = await self.get_user(user_id)

        if not user.is_active:
            raise ValidationError("User is already deactivated")
        if user.id == principal.user_id:
            raise ValidationError("Cannot deactivate your own account")

        user.is_active = False
        await self.session.commit()

        await self.activity.record(
            ActivityAction.UPDATE,
            ResourceType.USER,
            user.id,
            details={"is_active": False},
            principal=principal,
        )
        return user

    async def activate(self, user_id: int, principal: Principal) -> User:
        """Activate a user."""
        user = await self.get_user(user_id)

        if user.is_active:
            raise ValidationError("User is already active")

        user.is_active = True
        await self.session.commit()

        await self.activity.record(
            ActivityAction.UPDATE,
            ResourceType.USER,
            user.id,
            details={"is_active": True},
            principal=principal,
        )
        return user

    async def set_password(self, user_id: int, new_password: str, principal: Principal) -> User:
        """Set or reset user password (by admin)."""
        user = await self.get_user(user_id)

        user.password_hash = hash_password(new_password)
        await self.session.commit()

        await self.activity.record(
            ActivityAction.UPDATE,
            ResourceType.USER,
            user.id,
            details={"comment": "Password set by admin"},
            principal=principal,
        )
        return user

    async def change_own_password(
        self,
        user_id: int,
        current_password: str,
        new_password: str,
    ) -> User:
        """Change own password (requires current password)."""
        user = await self.get_user(user_id)

        if not verify_password(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        user.password_hash = hash_password(new_password)
        await self.session.commit()

        await self.activity.record(
            ActivityAction.UPDATE,
            ResourceType.USER,
            user.id,
            details={"comment": "Password changed by user"},
            user_id=user.id,
            username=user.username,
        )
        return user
