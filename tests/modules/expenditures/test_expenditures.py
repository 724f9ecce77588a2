import pytest
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.exceptions import (
    BaseMismatchError,
    ForbiddenError,
    InsufficientQuantityError,
    NotFoundError,
)
from mams.modules.assets import ledger
from mams.modules.assets.models import AssetRecord, AssetType
from mams.modules.assets.schemas import AssetCreate
from mams.modules.assets.service import AssetService
from mams.modules.assignments.schemas import AssignedPerson
from mams.modules.expenditures.models import ExpenditureReason
from mams.modules.expenditures.schemas import ExpenditureCreate, ExpenditureFilters
from mams.modules.expenditures.service import ExpenditureService


async def _asset(db_session: AsyncSession, principals, base: str = "Base One") -> AssetRecord:
    return await AssetService(db_session).create_asset(
        AssetCreate(name="5.56mm", type=AssetType.AMMUNITION, base=base, opening_balance=1000),
        principals["admin"],
    )


def _expend(
    asset_id: int,
    quantity: int = 300,
    base: str = "Base One",
    reason: ExpenditureReason = ExpenditureReason.TRAINING,
) -> ExpenditureCreate:
    return ExpenditureCreate(
        asset_id=asset_id,
        base=base,
        quantity=quantity,
        reason=reason,
        expended_by=AssignedPerson(name="J. Doe", rank="Lieutenant", service_id="SN-42"),
        operation_name="Range day",
    )


class TestExpenditureService:
    async def test_create_reduces_balance(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)

        expenditure, asset = await ExpenditureService(db_session).create_expenditure(
            _expend(asset.id), principals["cmd_one"]
        )

        assert expenditure.reason == "Training"
        assert expenditure.authorized_by_id == principals["cmd_one"].user_id
        assert asset.expended == 300
        assert asset.closing_balance == 700
        assert asset.available == 700

    async def test_insufficient(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)

        with pytest.raises(InsufficientQuantityError):
            await ExpenditureService(db_session).create_expenditure(
                _expend(asset.id, quantity=1001), principals["cmd_one"]
            )

    async def test_assigned_units_are_not_expendable(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        await ledger.apply_delta(db_session, asset.id, ledger.AssetDelta(assigned=900))
        await db_session.commit()

        with pytest.raises(InsufficientQuantityError):
            await ExpenditureService(db_session).create_expenditure(
                _expend(asset.id, quantity=101), principals["cmd_one"]
            )

    async def test_base_mismatch(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)

        with pytest.raises(BaseMismatchError):
            await ExpenditureService(db_session).create_expenditure(
                _expend(asset.id, base="Base Two"), principals["admin"]
            )

    async def test_other_base_forbidden(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)

        with pytest.raises(ForbiddenError):
            await ExpenditureService(db_session).create_expenditure(
                _expend(asset.id), principals["cmd_two"]
            )

    async def test_update_notes_appends(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = ExpenditureService(db_session)
        expenditure, _ = await service.create_expenditure(_expend(asset.id), principals["cmd_one"])

        expenditure = await service.update_notes(
            expenditure.id, "Brass collected", principals["cmd_one"]
        )

        assert "cmd_one: Brass collected" in expenditure.notes
        assert expenditure.quantity == 300

    async def test_delete_restores_quantity(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = ExpenditureService(db_session)
        expenditure, _ = await service.create_expenditure(_expend(asset.id), principals["cmd_one"])

        asset = await service.delete_expenditure(expenditure.id, principals["admin"])

        assert asset.expended == 0
        assert asset.closing_balance == 1000
        with pytest.raises(NotFoundError):
            await service.get_expenditure(expenditure.id, principals["admin"])

    async def test_delete_admin_only(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = ExpenditureService(db_session)
        expenditure, _ = await service.create_expenditure(_expend(asset.id), principals["cmd_one"])

        with pytest.raises(ForbiddenError):
            await service.delete_expenditure(expenditure.id, principals["cmd_one"])

    async def test_list_by_reason(self, db_session: AsyncSession, principals):
        asset = await _asset(db_session, principals)
        service = ExpenditureService(db_session)
        await service.create_expenditure(_expend(asset.id, quantity=10), principals["cmd_one"])
        await service.create_expenditure(
            _expend(asset.id, quantity=5, reason=ExpenditureReason.OPERATION),
            principals["cmd_one"],
        )

        expenditures, total = await service.list_expenditures(
            ExpenditureFilters(reason=ExpenditureReason.OPERATION), principals["log_one"]
        )

        assert total == 1
        assert expenditures[0].quantity == 5


class TestExpenditureEndpoints:
    async def test_create_update_delete(self, client: AsyncClient, auth_headers):
        admin = await auth_headers("admin")
        created = await client.post(
            "/api/v1/assets",
            json={"name": "5.56mm", "type": "Ammunition", "base": "Base One", "opening_balance": 50},
            headers=admin,
        )
        asset_id = created.json()["data"]["id"]

        cmd_one = await auth_headers("cmd_one")
        response = await client.post(
            "/api/v1/expenditures",
            json={
                "asset_id": asset_id,
                "base": "Base One",
                "quantity": 20,
                "reason": "Training",
                "expended_by": {"name": "J. Doe", "rank": "Lieutenant", "service_id": "SN-42"},
            },
            headers=cmd_one,
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["asset"]["available"] == 30
        assert data["expenditure"]["expended_by"]["service_id"] == "SN-42"
        expenditure_id = data["expenditure"]["id"]

        response = await client.put(
            f"/api/v1/expenditures/{expenditure_id}",
            json={"notes": "Qualification shoot"},
            headers=cmd_one,
        )
        assert response.status_code == 200
        assert "Qualification shoot" in response.json()["data"]["notes"]

        response = await client.delete(f"/api/v1/expenditures/{expenditure_id}", headers=cmd_one)
        assert response.status_code == 403

        response = await client.delete(f"/api/v1/expenditures/{expenditure_id}", headers=admin)
        assert response.status_code == 200
        assert response.json()["data"]["available"] == 50

    async def test_logistics_cannot_expend(self, client: AsyncClient, auth_headers):
        log_one = await auth_headers("log_one")

        response = await client.post(
            "/api/v1/expenditures",
            json={
                "asset_id": 1,
                "base": "Base One",
                "quantity": 1,
                "reason": "Training",
                "expended_by": {"name": "J. Doe", "rank": "Lieutenant", "service_id": "SN-42"},
            },
            headers=log_one,
        )

        assert response.status_code == 403
