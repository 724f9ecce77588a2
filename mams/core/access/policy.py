"""Authorization gate for asset and movement operations.

Every decision is a pure function of (Principal, Action, relevant base).
Admin is unrestricted. A role must be listed for the action, and a
base-scoped role (BaseCommander, LogisticsOfficer) must also be assigned
to the base that governs the request.
"""

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from mams.core.auth.models import UserRole
from mams.core.exceptions import ForbiddenError


class Action(StrEnum):
    """Operations guarded by the gate."""

    ASSET_READ = "asset.read"
    ASSET_CREATE = "asset.create"
    ASSET_UPDATE = "asset.update"
    ASSET_DELETE = "asset.delete"

    PURCHASE_READ = "purchase.read"
    PURCHASE_CREATE = "purchase.create"
    PURCHASE_DELIVER = "purchase.deliver"
    PURCHASE_CANCEL = "purchase.cancel"

    TRANSFER_READ = "transfer.read"
    TRANSFER_CREATE = "transfer.create"
    TRANSFER_APPROVE = "transfer.approve"
    TRANSFER_CANCEL = "transfer.cancel"

    ASSIGNMENT_READ = "assignment.read"
    ASSIGNMENT_CREATE = "assignment.create"
    ASSIGNMENT_RETURN = "assignment.return"
    ASSIGNMENT_STATUS = "assignment.status"

    EXPENDITURE_READ = "expenditure.read"
    EXPENDITURE_CREATE = "expenditure.create"
    EXPENDITURE_UPDATE = "expenditure.update"
    EXPENDITURE_DELETE = "expenditure.delete"


_ALL = frozenset(UserRole)
_LOGISTICS = frozenset({UserRole.ADMIN, UserRole.LOGISTICS_OFFICER})
_COMMAND = frozenset({UserRole.ADMIN, UserRole.BASE_COMMANDER})
_ADMIN_ONLY = frozenset({UserRole.ADMIN})

# Which roles may attempt each action at all (before base scoping)
ROLE_PERMISSIONS: dict[Action, frozenset[UserRole]] = {
    Action.ASSET_READ: _ALL,
    Action.ASSET_CREATE: _LOGISTICS,
    Action.ASSET_UPDATE: _LOGISTICS,
    Action.ASSET_DELETE: _ADMIN_ONLY,
    Action.PURCHASE_READ: _ALL,
    Action.PURCHASE_CREATE: _LOGISTICS,
    Action.PURCHASE_DELIVER: _LOGISTICS,
    Action.PURCHASE_CANCEL: _LOGISTICS,
    Action.TRANSFER_READ: _ALL,
    Action.TRANSFER_CREATE: _LOGISTICS,
    Action.TRANSFER_APPROVE: _COMMAND,
    Action.TRANSFER_CANCEL: _LOGISTICS,
    Action.ASSIGNMENT_READ: _ALL,
    Action.ASSIGNMENT_CREATE: _COMMAND,
    Action.ASSIGNMENT_RETURN: _COMMAND,
    Action.ASSIGNMENT_STATUS: _COMMAND,
    Action.EXPENDITURE_READ: _ALL,
    Action.EXPENDITURE_CREATE: _COMMAND,
    Action.EXPENDITURE_UPDATE: _COMMAND,
    Action.EXPENDITURE_DELETE: _ADMIN_ONLY,
}


@dataclass(frozen=True)
class Principal:
    """Already-authenticated caller as seen by the ledger."""

    user_id: int | None
    role: UserRole
    assigned_base: str | None = None
    username: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def scoped_base(self) -> str | None:
        """Base that list queries must be restricted to, None for Admin."""
        return None if self.is_admin else self.assigned_base


def _as_bases(relevant_base: str | Iterable[str] | None) -> tuple[str, ...]:
    if relevant_base is None:
        return ()
    if isinstance(relevant_base, str):
        return (relevant_base,)
    return tuple(relevant_base)


def can_access(
    principal: Principal,
    action: Action,
    relevant_base: str | Iterable[str] | None,
) -> bool:
    """Decide whether principal may perform action against relevant_base.

    relevant_base may be several bases (transfer read visibility); matching
    any of them is enough.
    """
    if principal.role == UserRole.ADMIN:
        return True
    if principal.role not in ROLE_PERMISSIONS.get(action, frozenset()):
        return False
    if not principal.assigned_base:
        return False
    return principal.assigned_base in _as_bases(relevant_base)


def ensure_access(
    principal: Principal,
    action: Action,
    relevant_base: str | Iterable[str] | None,
) -> None:
    """Raise ForbiddenError unless can_access allows the request."""
    if can_access(principal, action, relevant_base):
        return
    if principal.role not in ROLE_PERMISSIONS.get(action, frozenset()):
        raise ForbiddenError(f"Role {principal.role.value} may not perform {action.value}")
    bases = _as_bases(relevant_base)
    raise ForbiddenError(
        "You do not have permission to access resources for this base",
        base=bases[0] if len(bases) == 1 else None,
    )


def scope_base(
    principal: Principal,
    action: Action,
    requested_base: str | None = None,
) -> str | None:
    """Base a list query must be restricted to.

    Admin gets requested_base back (None means every base). Scoped roles
    always get their own base, and are refused when they have none.
    """
    if principal.is_admin:
        return requested_base
    ensure_access(principal, action, principal.assigned_base)
    return principal.assigned_base
