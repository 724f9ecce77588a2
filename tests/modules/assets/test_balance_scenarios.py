"""End-to-end balance checks across movement types."""

from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mams.modules.assets import ledger
from mams.modules.assets.models import AssetRecord, AssetType
from mams.modules.assets.schemas import AssetCreate
from mams.modules.assets.service import AssetService
from mams.modules.assignments.models import AssignmentStatus
from mams.modules.assignments.schemas import AssignedPerson, AssignmentCreate
from mams.modules.assignments.service import AssignmentService
from mams.modules.expenditures.models import ExpenditureReason
from mams.modules.expenditures.schemas import ExpenditureCreate
from mams.modules.expenditures.service import ExpenditureService
from mams.modules.purchases.models import PurchaseStatus
from mams.modules.purchases.schemas import PurchaseCreate
from mams.modules.purchases.service import PurchaseService
from mams.modules.transfers.schemas import TransferCreate
from mams.modules.transfers.service import TransferService

PERSON = AssignedPerson(name="J. Doe", rank="Private", service_id="SN-1")


async def _total_closing(db_session: AsyncSession) -> int:
    result = await db_session.execute(select(func.sum(AssetRecord.closing_balance)))
    return result.scalar_one() or 0


def _assert_consistent(asset: AssetRecord) -> None:
    assert asset.closing_balance == (
        asset.opening_balance
        + asset.purchases
        + asset.transfer_in
        - asset.transfer_out
        - asset.expended
    )
    assert asset.available == asset.closing_balance - asset.assigned


async def test_purchase_transfer_cancel_round_trip(db_session: AsyncSession, principals):
    admin = principals["admin"]
    asset = await AssetService(db_session).create_asset(
        AssetCreate(name="Rifle", type=AssetType.WEAPON, base="Base One", opening_balance=100),
        admin,
    )

    _, asset = await PurchaseService(db_session).create_purchase(
        PurchaseCreate(
            asset_name="Rifle",
            asset_type=AssetType.WEAPON,
            base="Base One",
            quantity=20,
            unit_cost=Decimal("850.00"),
            supplier="Arms Supply Co",
            status=PurchaseStatus.DELIVERED,
        ),
        admin,
    )
    assert asset.closing_balance == 120

    transfers = TransferService(db_session)
    transfer, source, destination = await transfers.create_transfer(
        TransferCreate(asset_id=asset.id, from_base="Base One", to_base="Base Two", quantity=10),
        admin,
    )
    assert source.closing_balance == 110
    assert destination.closing_balance == 10
    assert await _total_closing(db_session) == 120

    _, source, destination = await transfers.cancel_transfer(transfer.id, admin)
    assert source.closing_balance == 120
    assert source.available == 120
    assert destination.closing_balance == 0
    _assert_consistent(source)
    _assert_consistent(destination)


async def test_transfers_conserve_total(db_session: AsyncSession, principals):
    admin = principals["admin"]
    asset = await AssetService(db_session).create_asset(
        AssetCreate(name="Radio", type=AssetType.EQUIPMENT, base="Base One", opening_balance=50),
        admin,
    )
    transfers = TransferService(db_session)

    first, _, destination = await transfers.create_transfer(
        TransferCreate(asset_id=asset.id, from_base="Base One", to_base="Base Two", quantity=20),
        admin,
    )
    await transfers.approve_transfer(first.id, admin)
    await transfers.create_transfer(
        TransferCreate(
            asset_id=destination.id, from_base="Base Two", to_base="Base Three", quantity=5
        ),
        admin,
    )

    assert await _total_closing(db_session) == 50
    for base, expected in (("Base One", 30), ("Base Two", 15), ("Base Three", 5)):
        record = await ledger.find_asset(db_session, "Radio", "Equipment", base)
        assert record.closing_balance == expected
        _assert_consistent(record)


async def test_available_never_overdrawn(db_session: AsyncSession, principals):
    admin = principals["admin"]
    asset = await AssetService(db_session).create_asset(
        AssetCreate(name="Grenade", type=AssetType.AMMUNITION, base="Base One", opening_balance=10),
        admin,
    )

    await AssignmentService(db_session).create_assignment(
        AssignmentCreate(asset_id=asset.id, base="Base One", quantity=6, assigned_to=PERSON),
        admin,
    )
    _, asset = await ExpenditureService(db_session).create_expenditure(
        ExpenditureCreate(
            asset_id=asset.id,
            base="Base One",
            quantity=4,
            reason=ExpenditureReason.TRAINING,
            expended_by=PERSON,
        ),
        admin,
    )

    assert asset.available == 0
    assert asset.closing_balance == 6
    _assert_consistent(asset)


async def test_lost_assignment_becomes_expended(db_session: AsyncSession, principals):
    admin = principals["admin"]
    asset = await AssetService(db_session).create_asset(
        AssetCreate(name="Binoculars", type=AssetType.EQUIPMENT, base="Base One", opening_balance=8),
        admin,
    )
    service = AssignmentService(db_session)
    assignment, _ = await service.create_assignment(
        AssignmentCreate(asset_id=asset.id, base="Base One", quantity=5, assigned_to=PERSON),
        admin,
    )
    await service.return_assignment(assignment.id, 1, admin)

    _, asset = await service.set_status(assignment.id, AssignmentStatus.LOST, admin)

    assert asset.assigned == 0
    assert asset.expended == 4
    assert asset.closing_balance == 4
    assert asset.available == 4
    _assert_consistent(asset)
