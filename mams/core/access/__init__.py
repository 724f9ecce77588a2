from mams.core.access.policy import (
    Action,
    Principal,
    ROLE_PERMISSIONS,
    can_access,
    ensure_access,
    scope_base,
)

__all__ = [
    "Action",
    "Principal",
    "ROLE_PERMISSIONS",
    "can_access",
    "ensure_access",
    "scope_base",
]
