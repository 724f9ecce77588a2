from datetime import datetime
from enum import StrEnum
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from mams.core.database.base import BaseModel

if TYPE_CHECKING:
    from mams.core.access.policy import Principal


class UserRole(StrEnum):
    """User roles in the system."""

    ADMIN = "Admin"
    BASE_COMMANDER = "BaseCommander"
    LOGISTICS_OFFICER = "LogisticsOfficer"


# Roles whose authority is limited to one assigned base
BASE_SCOPED_ROLES = (UserRole.BASE_COMMANDER, UserRole.LOGISTICS_OFFICER)


class User(BaseModel):
    """
    User model for authentication and authorization.

    BaseCommander and LogisticsOfficer users are bound to a single
    assigned_base; Admin users have no base and see everything.
    """

    __tablename__ = "users"

    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    full_name: Mapped[str] = mapped_column(String(200), nullable=False)

    role: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    assigned_base: Mapped[str | None] = mapped_column(String(200), nullable=True, index=True)

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    def has_role(self, *roles: UserRole) -> bool:
        """Check if user has any of the specified roles."""
        return self.role in [r.value for r in roles]

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def principal(self) -> "Principal":
        """Authorization view of this user, passed into every ledger operation."""
        from mams.core.access.policy import Principal

        return Principal(
            user_id=self.id,
            role=UserRole(self.role),
            assigned_base=self.assigned_base,
            username=self.username,
        )