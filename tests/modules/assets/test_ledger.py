import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.exceptions import InsufficientQuantityError, NotFoundError
from mams.modules.assets import ledger
from mams.modules.assets.ledger import AssetDelta
from mams.modules.assets.models import AssetRecord


async def _record(db_session: AsyncSession, opening: int = 10, base: str = "Base One") -> AssetRecord:
    asset = ledger.recalculate(
        AssetRecord(
            name="Radio",
            type="Equipment",
            base=base,
            opening_balance=opening,
            purchases=0,
            transfer_in=0,
            transfer_out=0,
            assigned=0,
            expended=0,
        )
    )
    db_session.add(asset)
    await db_session.commit()
    return asset


class TestAssetDelta:
    def test_inverse(self):
        delta = AssetDelta(transfer_out=4, assigned=-2)

        assert delta.inverse() == AssetDelta(transfer_out=-4, assigned=2)

    def test_as_dict_skips_zero(self):
        assert AssetDelta(purchases=3).as_dict() == {"purchases": 3}
        assert not AssetDelta()


class TestRecalculate:
    def test_formula(self):
        asset = AssetRecord(
            opening_balance=100,
            purchases=20,
            transfer_in=5,
            transfer_out=10,
            assigned=7,
            expended=3,
        )

        ledger.recalculate(asset)

        assert asset.closing_balance == 112
        assert asset.available == 105
        assert asset.net_movement == 15

    def test_no_clamping(self):
        asset = AssetRecord(
            opening_balance=0, purchases=0, transfer_in=0, transfer_out=5, assigned=0, expended=0
        )

        ledger.recalculate(asset)

        assert asset.closing_balance == -5
        assert asset.available == -5


class TestApplyDelta:
    async def test_updates_counters_and_derived(self, db_session: AsyncSession):
        asset = await _record(db_session)

        updated = await ledger.apply_delta(
            db_session, asset.id, AssetDelta(purchases=5, assigned=3)
        )

        assert updated.purchases == 5
        assert updated.assigned == 3
        assert updated.closing_balance == 15
        assert updated.available == 12

    async def test_guard_blocks_overdraw(self, db_session: AsyncSession):
        asset = await _record(db_session, opening=4)

        with pytest.raises(InsufficientQuantityError) as exc_info:
            await ledger.apply_delta(
                db_session, asset.id, AssetDelta(expended=5), require_available=5
            )

        assert exc_info.value.details["available"] == 4
        current = await ledger.get_asset(db_session, asset.id)
        assert current.expended == 0
        assert current.available == 4

    async def test_guard_allows_exact_amount(self, db_session: AsyncSession):
        asset = await _record(db_session, opening=4)

        updated = await ledger.apply_delta(
            db_session, asset.id, AssetDelta(assigned=4), require_available=4
        )

        assert updated.available == 0

    async def test_missing_asset(self, db_session: AsyncSession):
        with pytest.raises(NotFoundError):
            await ledger.apply_delta(db_session, 999, AssetDelta(purchases=1))


class TestCompensate:
    async def test_reverses_delta(self, db_session: AsyncSession):
        asset = await _record(db_session, opening=10)
        delta = AssetDelta(transfer_out=6)

        await ledger.apply_delta(db_session, asset.id, delta, require_available=6)
        restored = await ledger.compensate(db_session, asset.id, delta.inverse())

        assert restored.transfer_out == 0
        assert restored.closing_balance == 10
        assert restored.available == 10

    async def test_not_blocked_by_available(self, db_session: AsyncSession):
        asset = await _record(db_session, opening=0)

        updated = await ledger.compensate(db_session, asset.id, AssetDelta(purchases=-3))

        assert updated.closing_balance == -3

    async def test_orphan_is_skipped(self, db_session: AsyncSession):
        assert await ledger.compensate(db_session, 12345, AssetDelta(assigned=-1)) is None
        assert await ledger.compensate(db_session, None, AssetDelta(assigned=-1)) is None


class TestFindOrCreate:
    async def test_creates_zeroed_record(self, db_session: AsyncSession):
        lookup = await ledger.find_or_create(db_session, "Jeep", "Vehicle", "Base Two")

        assert lookup.created is True
        assert lookup.asset.id is not None
        assert lookup.asset.opening_balance == 0
        assert lookup.asset.closing_balance == 0

    async def test_returns_existing(self, db_session: AsyncSession):
        asset = await _record(db_session)

        lookup = await ledger.find_or_create(db_session, "Radio", "Equipment", "Base One")

        assert lookup.created is False
        assert lookup.asset.id == asset.id


class TestSetOpeningBalance:
    async def test_recomputes_derived(self, db_session: AsyncSession):
        asset = await _record(db_session, opening=10)
        await ledger.apply_delta(db_session, asset.id, AssetDelta(assigned=4))

        updated = await ledger.set_opening_balance(db_session, asset.id, 20)

        assert updated.opening_balance == 20
        assert updated.closing_balance == 20
        assert updated.available == 16
