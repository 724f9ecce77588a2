import pytest

from mams.core.access import (
    ROLE_PERMISSIONS,
    Action,
    Principal,
    can_access,
    ensure_access,
    scope_base,
)
from mams.core.auth.models import UserRole
from mams.core.exceptions import ForbiddenError

ADMIN = Principal(user_id=1, role=UserRole.ADMIN)
CMD_ONE = Principal(user_id=2, role=UserRole.BASE_COMMANDER, assigned_base="Base One")
LOG_ONE = Principal(user_id=3, role=UserRole.LOGISTICS_OFFICER, assigned_base="Base One")
CMD_NO_BASE = Principal(user_id=4, role=UserRole.BASE_COMMANDER, assigned_base=None)


class TestCanAccess:
    """Tests for the authorization gate."""

    @pytest.mark.parametrize("action", list(Action))
    def test_admin_allowed_everything(self, action: Action):
        assert can_access(ADMIN, action, "Anywhere") is True
        assert can_access(ADMIN, action, None) is True

    def test_every_action_has_permissions(self):
        assert set(ROLE_PERMISSIONS) == set(Action)

    def test_commander_own_base_only(self):
        assert can_access(CMD_ONE, Action.ASSIGNMENT_CREATE, "Base One") is True
        assert can_access(CMD_ONE, Action.ASSIGNMENT_CREATE, "Base Two") is False

    def test_commander_cannot_create_purchase(self):
        assert can_access(CMD_ONE, Action.PURCHASE_CREATE, "Base One") is False

    def test_logistics_cannot_approve_transfer_or_change_assignment_status(self):
        assert can_access(LOG_ONE, Action.TRANSFER_APPROVE, "Base One") is False
        assert can_access(LOG_ONE, Action.ASSIGNMENT_STATUS, "Base One") is False

    def test_logistics_creates_transfers_and_purchases_at_own_base(self):
        assert can_access(LOG_ONE, Action.TRANSFER_CREATE, "Base One") is True
        assert can_access(LOG_ONE, Action.PURCHASE_DELIVER, "Base One") is True
        assert can_access(LOG_ONE, Action.TRANSFER_CREATE, "Base Two") is False

    def test_delete_reserved_for_admin(self):
        assert can_access(CMD_ONE, Action.EXPENDITURE_DELETE, "Base One") is False
        assert can_access(LOG_ONE, Action.ASSET_DELETE, "Base One") is False

    def test_any_of_several_bases_grants_read(self):
        assert can_access(CMD_ONE, Action.TRANSFER_READ, ("Base Two", "Base One")) is True
        assert can_access(CMD_ONE, Action.TRANSFER_READ, ("Base Two", "Base Three")) is False

    def test_scoped_role_without_base_denied(self):
        assert can_access(CMD_NO_BASE, Action.ASSET_READ, "Base One") is False
        assert can_access(CMD_NO_BASE, Action.ASSET_READ, None) is False

    def test_scoped_base(self):
        assert ADMIN.scoped_base is None
        assert CMD_ONE.scoped_base == "Base One"


class TestEnsureAccess:
    def test_passes_silently(self):
        ensure_access(CMD_ONE, Action.EXPENDITURE_CREATE, "Base One")

    def test_role_denial_message(self):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_access(CMD_ONE, Action.PURCHASE_CREATE, "Base One")
        assert exc_info.value.status_code == 403
        assert "BaseCommander" in exc_info.value.message

    def test_base_denial_carries_base(self):
        with pytest.raises(ForbiddenError) as exc_info:
            ensure_access(CMD_ONE, Action.ASSIGNMENT_CREATE, "Base Two")
        assert exc_info.value.details == {"base": "Base Two"}
        assert exc_info.value.code == "FORBIDDEN"


class TestScopeBase:
    def test_admin_keeps_requested_base(self):
        assert scope_base(ADMIN, Action.ASSET_READ, "Base Two") == "Base Two"
        assert scope_base(ADMIN, Action.ASSET_READ) is None

    def test_scoped_role_pinned_to_own_base(self):
        assert scope_base(CMD_ONE, Action.PURCHASE_READ, "Base Two") == "Base One"
        assert scope_base(LOG_ONE, Action.TRANSFER_READ) == "Base One"

    @pytest.mark.parametrize(
        "action",
        [
            Action.ASSET_READ,
            Action.PURCHASE_READ,
            Action.TRANSFER_READ,
            Action.ASSIGNMENT_READ,
            Action.EXPENDITURE_READ,
        ],
    )
    def test_scoped_role_without_base_refused(self, action: Action):
        with pytest.raises(ForbiddenError):
            scope_base(CMD_NO_BASE, action)
