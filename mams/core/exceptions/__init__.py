from mams.core.exceptions.base import (
    AppException,
    NotFoundError,
    ValidationError,
    AuthenticationError,
    ForbiddenError,
    DuplicateError,
    InvalidTransitionError,
    AlreadyTerminalError,
    NotActiveError,
    InvalidStatusError,
    InvalidQuantityError,
    InsufficientQuantityError,
    BaseMismatchError,
)

__all__ = [
    "AppException",
    "NotFoundError",
    "ValidationError",
    "AuthenticationError",
    "ForbiddenError",
    "DuplicateError",
    "InvalidTransitionError",
    "AlreadyTerminalError",
    "NotActiveError",
    "InvalidStatusError",
    "InvalidQuantityError",
    "InsufficientQuantityError",
    "BaseMismatchError",
]
