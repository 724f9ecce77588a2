from typing import Any


class AppException(Exception):
    """Base application exception."""

    code = "APP_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int = 400,
        details: dict[str, Any] | None = None,
        code: str | None = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        if code is not None:
            self.code = code
        super().__init__(self.message)


class NotFoundError(AppException):
    """Resource not found."""

    code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: Any = None):
        message = f"{resource} not found"
        if identifier is not None:
            message = f"{resource} with id={identifier} not found"
        super().__init__(message=message, status_code=404)


class ValidationError(AppException):
    """Validation error."""

    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        details = {"field": field} if field else {}
        super().__init__(message=message, status_code=422, details=details)


class AuthenticationError(AppException):
    """Authentication failed."""

    code = "AUTHENTICATION_FAILED"

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message=message, status_code=401)


class ForbiddenError(AppException):
    """Principal is not allowed to perform the action (role or base scope)."""

    code = "FORBIDDEN"

    def __init__(self, message: str = "Not authorized", base: str | None = None):
        details = {"base": base} if base else {}
        super().__init__(message=message, status_code=403, details=details)


class DuplicateError(AppException):
    """Duplicate resource."""

    code = "DUPLICATE"

    def __init__(self, resource: str, field: str, value: Any):
        message = f"{resource} with {field}={value} already exists"
        super().__init__(message=message, status_code=409, details={"field": field, "value": value})


class InvalidTransitionError(AppException):
    """Movement is not in the state the transition starts from."""

    code = "INVALID_TRANSITION"

    def __init__(self, resource: str, current_status: str, target_status: str):
        message = f"{resource} is already {current_status}, cannot move to {target_status}"
        super().__init__(
            message=message,
            details={"status": current_status, "target_status": target_status},
        )


class AlreadyTerminalError(AppException):
    """Movement already reached a terminal state."""

    code = "ALREADY_TERMINAL"

    def __init__(self, resource: str, current_status: str):
        message = f"{resource} is already {current_status}"
        super().__init__(message=message, details={"status": current_status})


class NotActiveError(AppException):
    """Assignment is no longer active."""

    code = "NOT_ACTIVE"

    def __init__(self, resource: str, current_status: str):
        message = f"{resource} is already {current_status}"
        super().__init__(message=message, details={"status": current_status})


class InvalidStatusError(AppException):
    """Requested target status is not allowed for this transition."""

    code = "INVALID_STATUS"

    def __init__(self, status: str, allowed: list[str]):
        message = f"Invalid status '{status}', expected one of: {', '.join(allowed)}"
        super().__init__(message=message, details={"status": status, "allowed": allowed})


class InvalidQuantityError(AppException):
    """Quantity is non-positive or exceeds what is outstanding."""

    code = "INVALID_QUANTITY"

    def __init__(self, message: str, requested: int | None = None, remaining: int | None = None):
        details: dict[str, Any] = {}
        if requested is not None:
            details["requested"] = requested
        if remaining is not None:
            details["remaining"] = remaining
        super().__init__(message=message, details=details)


class InsufficientQuantityError(AppException):
    """Not enough available quantity on the asset for the operation."""

    code = "INSUFFICIENT_QUANTITY"

    def __init__(self, asset_id: int, requested: int, available: int):
        message = (
            f"Insufficient quantity available for asset {asset_id}: "
            f"requested {requested}, available {available}"
        )
        super().__init__(
            message=message,
            details={"asset_id": asset_id, "requested": requested, "available": available},
        )


class BaseMismatchError(AppException):
    """Asset lives at a different base than the movement declares."""

    code = "BASE_MISMATCH"

    def __init__(self, asset_id: int, asset_base: str, requested_base: str):
        message = f"Asset {asset_id} belongs to base '{asset_base}', not '{requested_base}'"
        super().__init__(
            message=message,
            details={"asset_id": asset_id, "asset_base": asset_base, "base": requested_base},
        )
