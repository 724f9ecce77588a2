from mams.shared.schemas.base import (
    ApiResponse,
    BaseSchema,
    PaginatedResponse,
    SuccessResponse,
    ErrorResponse,
    ErrorDetail,
    TimestampMixin,
)

__all__ = [
    "ApiResponse",
    "BaseSchema",
    "PaginatedResponse",
    "SuccessResponse",
    "ErrorResponse",
    "ErrorDetail",
    "TimestampMixin",
]
