from datetime import datetime

from pydantic import EmailStr, Field, field_validator

from mams.core.auth.models import UserRole
from mams.shared.schemas import BaseSchema


class UserCreate(BaseSchema):
    """Schema for creating a new user."""

    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str
    full_name: str
    role: UserRole
    assigned_base: str | None = Field(None, max_length=200)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v: str) -> str:
        v = v.strip()
        if " " in v:
            raise ValueError("Username must not contain spaces")
        return v

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Full name must be at least 2 characters")
        return v

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class UserUpdate(BaseSchema):
    """Schema for updating a user."""

    email: EmailStr | None = None
    full_name: str | None = None
    role: UserRole | None = None
    assigned_base: str | None = Field(None, max_length=200)

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str | None) -> str | None:
        if v is not None:
            v = v.strip()
            if len(v) < 2:
                raise ValueError("Full name must be at least 2 characters")
        return v


class SetPassword(BaseSchema):
    """Schema for setting/changing password."""

    password: str

    @field_validator("password")
    @classmethod
    def validate_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class ChangeOwnPassword(BaseSchema):
    """Schema for user changing their own password."""

    current_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def validate_new_password(cls, v: str) -> str:
        if len(v) < 8:
            raise ValueError("Password must be at least 8 characters")
        return v


class UserResponse(BaseSchema):
    """Schema for user response."""

    id: int
    username: str
    email: str
    full_name: str
    role: str
    assigned_base: str | None
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime
    updated_at: datetime


class UserListFilters(BaseSchema):
    """Filters for user list."""

    role: UserRole | None = None
    assigned_base: str | None = None
    is_active: bool | None = None
    search: str | None = None  # Search by username, name or email
    page: int = 1
    limit: int = 20
