from datetime import datetime

from mams.shared.schemas import BaseSchema


class LoginRequest(BaseSchema):
    """Login request schema."""

    username: str
    password: str


class TokenResponse(BaseSchema):
    """Token response schema."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseSchema):
    """Refresh token request schema."""

    refresh_token: str


class UserResponse(BaseSchema):
    """User response schema."""

    id: int
    username: str
    email: str
    full_name: str
    role: str
    assigned_base: str | None
    is_active: bool
    last_login_at: datetime | None
    created_at: datetime


class LoginResponse(BaseSchema):
    """Login response with user and tokens."""

    user: UserResponse
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
