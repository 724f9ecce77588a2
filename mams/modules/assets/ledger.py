"""Balance ledger for asset records.

All counter changes go through apply_delta(), which issues one UPDATE that
adds the deltas and recomputes closing_balance/available from the new
counter values in the same statement:

    closing_balance = opening_balance + purchases + transfer_in - transfer_out - expended
    available       = closing_balance - assigned

Balances are never clamped at zero.
"""

import logging
from dataclasses import dataclass, fields

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.exceptions import InsufficientQuantityError, NotFoundError
from mams.modules.assets.models import AssetRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetDelta:
    """Signed change to the counter fields of one asset record."""

    purchases: int = 0
    transfer_in: int = 0
    transfer_out: int = 0
    assigned: int = 0
    expended: int = 0

    def inverse(self) -> "AssetDelta":
        """Compensating delta that undoes this one."""
        return AssetDelta(**{f.name: -getattr(self, f.name) for f in fields(self)})

    def as_dict(self) -> dict[str, int]:
        """Non-zero components, for logging and activity details."""
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name)}

    def __bool__(self) -> bool:
        return bool(self.as_dict())


@dataclass(frozen=True)
class AssetLookup:
    """Result of find_or_create: the record and whether it was just inserted."""

    asset: AssetRecord
    created: bool


def closing_balance_of(
    opening_balance: int,
    purchases: int,
    transfer_in: int,
    transfer_out: int,
    expended: int,
) -> int:
    return opening_balance + purchases + transfer_in - transfer_out - expended


def recalculate(asset: AssetRecord) -> AssetRecord:
    """Recompute the derived fields of an in-memory record from its counters."""
    asset.closing_balance = closing_balance_of(
        asset.opening_balance or 0,
        asset.purchases or 0,
        asset.transfer_in or 0,
        asset.transfer_out or 0,
        asset.expended or 0,
    )
    asset.available = asset.closing_balance - (asset.assigned or 0)
    return asset


def _shifted(column, amount: int):
    return column + amount if amount else column


def _update_values(delta: AssetDelta, opening_balance: int | None = None) -> dict:
    """SET clause for an UPDATE applying delta.

    Right-hand sides in an UPDATE see the row as it was before the statement,
    so derived fields are expressed over the shifted counters.
    """
    opening = AssetRecord.opening_balance if opening_balance is None else opening_balance
    purchases = _shifted(AssetRecord.purchases, delta.purchases)
    transfer_in = _shifted(AssetRecord.transfer_in, delta.transfer_in)
    transfer_out = _shifted(AssetRecord.transfer_out, delta.transfer_out)
    assigned = _shifted(AssetRecord.assigned, delta.assigned)
    expended = _shifted(AssetRecord.expended, delta.expended)

    closing = opening + purchases + transfer_in - transfer_out - expended

    values: dict = {
        name: expr
        for name, expr in (
            ("purchases", purchases),
            ("transfer_in", transfer_in),
            ("transfer_out", transfer_out),
            ("assigned", assigned),
            ("expended", expended),
        )
        if getattr(delta, name)
    }
    if opening_balance is not None:
        values["opening_balance"] = opening_balance
    values["closing_balance"] = closing
    values["available"] = closing - assigned
    return values


async def get_asset(session: AsyncSession, asset_id: int) -> AssetRecord | None:
    """Load an asset record, refreshing any stale copy in the session."""
    result = await session.execute(
        select(AssetRecord)
        .where(AssetRecord.id == asset_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_asset(
    session: AsyncSession, name: str, asset_type: str, base: str
) -> AssetRecord | None:
    result = await session.execute(
        select(AssetRecord)
        .where(
            AssetRecord.name == name,
            AssetRecord.type == asset_type,
            AssetRecord.base == base,
        )
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def find_or_create(
    session: AsyncSession, name: str, asset_type: str, base: str
) -> AssetLookup:
    """Return the record for (name, type, base), inserting a zeroed one if absent."""
    existing = await find_asset(session, name, asset_type, base)
    if existing is not None:
        return AssetLookup(asset=existing, created=False)

    asset = recalculate(
        AssetRecord(
            name=name,
            type=asset_type,
            base=base,
            opening_balance=0,
            purchases=0,
            transfer_in=0,
            transfer_out=0,
            assigned=0,
            expended=0,
        )
    )
    try:
        async with session.begin_nested():
            session.add(asset)
    except IntegrityError:
        # Another request inserted the same triple first
        existing = await find_asset(session, name, asset_type, base)
        if existing is None:
            raise
        return AssetLookup(asset=existing, created=False)

    logger.info("Provisioned asset record %s (%s) at %s, id=%s", name, asset_type, base, asset.id)
    return AssetLookup(asset=asset, created=True)


async def apply_delta(
    session: AsyncSession,
    asset_id: int,
    delta: AssetDelta,
    *,
    require_available: int | None = None,
) -> AssetRecord:
    """Atomically add delta to an asset's counters and recompute derived fields.

    With require_available the update only happens while available is at
    least that quantity; otherwise InsufficientQuantityError is raised and
    nothing changes.
    """
    stmt = (
        update(AssetRecord)
        .where(AssetRecord.id == asset_id)
        .values(**_update_values(delta))
        .execution_options(synchronize_session=False)
    )
    if require_available is not None:
        stmt = stmt.where(AssetRecord.available >= require_available)

    result = await session.execute(stmt)
    if result.rowcount == 0:
        current = await get_asset(session, asset_id)
        if current is None:
            raise NotFoundError("Asset", asset_id)
        raise InsufficientQuantityError(asset_id, require_available or 0, current.available)

    asset = await get_asset(session, asset_id)
    logger.debug(
        "Applied %s to asset %s: closing=%s available=%s",
        delta.as_dict(),
        asset_id,
        asset.closing_balance,
        asset.available,
    )
    return asset


async def set_opening_balance(
    session: AsyncSession, asset_id: int, opening_balance: int
) -> AssetRecord:
    """Explicit edit of the opening balance, recomputing derived fields atomically."""
    result = await session.execute(
        update(AssetRecord)
        .where(AssetRecord.id == asset_id)
        .values(**_update_values(AssetDelta(), opening_balance=opening_balance))
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise NotFoundError("Asset", asset_id)
    return await get_asset(session, asset_id)


async def compensate(
    session: AsyncSession, asset_id: int | None, delta: AssetDelta
) -> AssetRecord | None:
    """Apply a compensating delta; never blocked by available.

    Movements keep their asset_id after the asset is hard-deleted, so a
    missing record is skipped with a warning instead of failing the reversal.
    """
    if asset_id is None:
        return None
    try:
        return await apply_delta(session, asset_id, delta)
    except NotFoundError:
        logger.warning(
            "Asset %s no longer exists, skipped compensation %s", asset_id, delta.as_dict()
        )
        return None
