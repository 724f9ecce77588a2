import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.exceptions import (
    BaseMismatchError,
    ForbiddenError,
    InsufficientQuantityError,
    InvalidQuantityError,
    InvalidStatusError,
    NotActiveError,
)
from mams.modules.assets import ledger
from mams.modules.assets.models import AssetRecord, AssetType
from mams.modules.assets.schemas import AssetCreate
from mams.modules.assets.service import AssetService
from mams.modules.assignments.models import AssignmentStatus
from mams.modules.assignments.schemas import AssignedPerson, AssignmentCreate, AssignmentFilters
from mams.modules.assignments.service import AssignmentService


async def _asset(db_session: AsyncSession, principals, base: str = "Base One") -> AssetRecord:
    return await AssetService(db_session).create_asset(
        AssetCreate(name="Night Vision", type=AssetType.EQUIPMENT, base=base, opening_balance=10),
        principals["admin"],
    )


def _assign(asset_id: int, quantity: int = 5, base: str = "Base One", name: str = "J. Doe"):
    return AssignmentCreate(
        asset_id=asset_id,
        base=base,
        quantity=quantity,
        assigned_to=AssignedPerson(name=name, rank="Sergeant", service_id="SN-1001"),
        purpose="Night patrol",
    )


class TestCreateAssignment:
    async def test_reserves_quantity(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)

        assignment, asset = await AssignmentService(db_session).create_assignment(
            _assign(asset.id), principals["cmd_one"]
        )

        assert assignment.status == "Active"
        assert assignment.outstanding_quantity == 5
        assert assignment.assigned_to_name == "J. Doe"
        assert asset.assigned == 5
        assert asset.available == 5
        # Assigned units still belong to the base
        assert asset.closing_balance == 10

    async def test_insufficient(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)

        with pytest.raises(InsufficientQuantityError):
            await AssignmentService(db_session).create_assignment(
                _assign(asset.id, quantity=11), principals["cmd_one"]
            )

    async def test_base_mismatch(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)

        with pytest.raises(BaseMismatchError):
            await AssignmentService(db_session).create_assignment(
                _assign(asset.id, base="Base Two"), principals["admin"]
            )

    async def test_other_base_commander_forbidden(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals, base="Base Two")

        with pytest.raises(ForbiddenError):
            await AssignmentService(db_session).create_assignment(
                _assign(asset.id, base="Base Two"), principals["cmd_one"]
            )

        untouched = await ledger.get_asset(db_session, asset.id)
        assert untouched.assigned == 0
        assert untouched.available == 10

    async def test_logistics_cannot_assign(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)

        with pytest.raises(ForbiddenError):
            await AssignmentService(db_session).create_assignment(
                _assign(asset.id), principals["log_one"]
            )


class TestReturnAssignment:
    async def test_partial_then_full(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = AssignmentService(db_session)
        assignment, _ = await service.create_assignment(_assign(asset.id), principals["cmd_one"])

        assignment, asset = await service.return_assignment(
            assignment.id, 3, principals["cmd_one"]
        )
        assert assignment.status == "Active"
        assert assignment.returned_quantity == 3
        assert assignment.end_date is None
        assert asset.assigned == 2
        assert asset.available == 8

        assignment, asset = await service.return_assignment(
            assignment.id, 2, principals["cmd_one"], notes="Checked and cleaned"
        )
        assert assignment.status == "Returned"
        assert assignment.returned_quantity == 5
        assert assignment.end_date is not None
        assert "Returned 2: Checked and cleaned" in assignment.notes
        assert asset.assigned == 0
        assert asset.available == 10

    async def test_over_return(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = AssignmentService(db_session)
        assignment, _ = await service.create_assignment(_assign(asset.id), principals["cmd_one"])
        await service.return_assignment(assignment.id, 3, principals["cmd_one"])

        with pytest.raises(InvalidQuantityError) as exc_info:
            await service.return_assignment(assignment.id, 3, principals["cmd_one"])

        assert exc_info.value.details == {"requested": 3, "remaining": 2}

    async def test_non_positive(self, db_session: AsyncSession, principals):
        with pytest.raises(InvalidQuantityError):
            await AssignmentService(db_session).return_assignment(1, 0, principals["admin"])

    async def test_return_after_closed(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = AssignmentService(db_session)
        assignment, _ = await service.create_assignment(_assign(asset.id), principals["cmd_one"])
        await service.return_assignment(assignment.id, 5, principals["cmd_one"])

        with pytest.raises(NotActiveError):
            await service.return_assignment(assignment.id, 1, principals["cmd_one"])


class TestSetStatus:
    @pytest.mark.parametrize("status", [AssignmentStatus.LOST, AssignmentStatus.DAMAGED])
    async def test_writes_off_outstanding(self, db_session: AsyncSession, principals, status):
        asset = await _asset(db_session, principals)
        service = AssignmentService(db_session)
        assignment, _ = await service.create_assignment(_assign(asset.id), principals["cmd_one"])
        await service.return_assignment(assignment.id, 2, principals["cmd_one"])

        assignment, asset = await service.set_status(
            assignment.id, status, principals["cmd_one"], notes="Patrol ambushed"
        )

        assert assignment.status == status.value
        assert assignment.end_date is not None
        assert asset.assigned == 0
        assert asset.expended == 3
        assert asset.closing_balance == 7
        assert asset.available == 7

    async def test_invalid_status(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = AssignmentService(db_session)
        assignment, _ = await service.create_assignment(_assign(asset.id), principals["cmd_one"])

        with pytest.raises(InvalidStatusError):
            await service.set_status(assignment.id, AssignmentStatus.RETURNED, principals["cmd_one"])

    async def test_not_active(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = AssignmentService(db_session)
        assignment, _ = await service.create_assignment(_assign(asset.id), principals["cmd_one"])
        await service.set_status(assignment.id, AssignmentStatus.LOST, principals["cmd_one"])

        with pytest.raises(NotActiveError):
            await service.set_status(assignment.id, AssignmentStatus.DAMAGED, principals["cmd_one"])

        asset = await ledger.get_asset(db_session, asset.id)
        assert asset.expended == 5


class TestAssignmentQueries:
    async def test_filters(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = AssignmentService(db_session)
        await service.create_assignment(_assign(asset.id, quantity=1), principals["cmd_one"])
        await service.create_assignment(
            _assign(asset.id, quantity=1, name="A. Smith"), principals["cmd_one"]
        )

        assignments, total = await service.list_assignments(
            AssignmentFilters(assigned_to="smith"), principals["cmd_one"]
        )
        assert total == 1
        assert assignments[0].assigned_to_name == "A. Smith"

        _, total = await service.list_assignments(AssignmentFilters(), principals["cmd_two"])
        assert total == 0


class TestAssignmentEndpoints:
    async def test_create_and_return(self, client: AsyncClient, auth_headers):
        admin = await auth_headers("admin")
        created = await client.post(
            "/api/v1/assets",
            json={"name": "Radio", "type": "Equipment", "base": "Base One", "opening_balance": 4},
            headers=admin,
        )
        asset_id = created.json()["data"]["id"]

        cmd_one = await auth_headers("cmd_one")
        response = await client.post(
            "/api/v1/assignments",
            json={
                "asset_id": asset_id,
                "base": "Base One",
                "quantity": 4,
                "assigned_to": {"name": "J. Doe", "rank": "Corporal", "service_id": "SN-7"},
            },
            headers=cmd_one,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["assignment"]["assigned_to"]["rank"] == "Corporal"
        assert data["asset"]["available"] == 0
        assignment_id = data["assignment"]["id"]

        response = await client.post(
            f"/api/v1/assignments/{assignment_id}/return",
            json={"returned_quantity": 5},
            headers=cmd_one,
        )
        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_QUANTITY"

        response = await client.post(
            f"/api/v1/assignments/{assignment_id}/return",
            json={"returned_quantity": 4},
            headers=cmd_one,
        )
        assert response.status_code == 200
        assert response.json()["data"]["assignment"]["status"] == "Returned"

    @pytest.mark.parametrize("status", ["Returned", "Broken", "lost"])
    async def test_status_endpoint_rejects_other_values(
        self, client: AsyncClient, auth_headers, status: str
    ):
        admin = await auth_headers("admin")
        created = await client.post(
            "/api/v1/assets",
            json={"name": "Radio", "type": "Equipment", "base": "Base One", "opening_balance": 4},
            headers=admin,
        )
        asset_id = created.json()["data"]["id"]
        response = await client.post(
            "/api/v1/assignments",
            json={
                "asset_id": asset_id,
                "base": "Base One",
                "quantity": 1,
                "assigned_to": {"name": "J. Doe", "rank": "Corporal", "service_id": "SN-7"},
            },
            headers=admin,
        )
        assignment_id = response.json()["data"]["assignment"]["id"]

        response = await client.post(
            f"/api/v1/assignments/{assignment_id}/status",
            json={"status": status},
            headers=admin,
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_STATUS"
