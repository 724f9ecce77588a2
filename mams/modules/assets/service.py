"""Service for Assets module."""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.access import Action, Principal, ensure_access, scope_base
from mams.core.audit import ActivityAction, ActivityLogService
from mams.core.exceptions import DuplicateError, NotFoundError
from mams.modules.assets import ledger
from mams.modules.assets.models import AssetRecord, AssetType
from mams.modules.assets.schemas import AssetCreate, AssetFilters, AssetUpdate, SortOrder


def _snapshot(asset: AssetRecord) -> dict:
    return {
        "name": asset.name,
        "type": asset.type,
        "base": asset.base,
        "opening_balance": asset.opening_balance,
        "closing_balance": asset.closing_balance,
        "available": asset.available,
    }


class AssetService:
    """Service for asset records and their read-only queries."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLogService(db)

    async def _get(self, asset_id: int) -> AssetRecord:
        asset = await ledger.get_asset(self.db, asset_id)
        if not asset:
            raise NotFoundError("Asset", asset_id)
        return asset

    async def _ensure_unique(
        self, name: str, asset_type: str, base: str, exclude_id: int | None = None
    ) -> None:
        existing = await ledger.find_asset(self.db, name, asset_type, base)
        if existing and existing.id != exclude_id:
            raise DuplicateError("Asset", "name/type/base", f"{name}/{asset_type}/{base}")

    async def create_asset(self, data: AssetCreate, principal: Principal) -> AssetRecord:
        """Register an asset at a base with its opening balance."""
        ensure_access(principal, Action.ASSET_CREATE, data.base)
        await self._ensure_unique(data.name, data.type.value, data.base)

        asset = ledger.recalculate(
            AssetRecord(
                name=data.name,
                type=data.type.value,
                base=data.base,
                opening_balance=data.opening_balance,
                purchases=0,
                transfer_in=0,
                transfer_out=0,
                assigned=0,
                expended=0,
            )
        )
        self.db.add(asset)
        await self.db.commit()

        await self.activity.record(
            ActivityAction.CREATE,
            AssetRecord.resource_type,
            asset.id,
            details=_snapshot(asset),
            principal=principal,
        )
        return asset

    async def get_asset(self, asset_id: int, principal: Principal) -> AssetRecord:
        asset = await self._get(asset_id)
        ensure_access(principal, Action.ASSET_READ, asset.base)
        return asset

    async def list_assets(
        self, filters: AssetFilters, principal: Principal
    ) -> tuple[list[AssetRecord], int]:
        """List assets; base-scoped principals only ever see their own base."""
        query = select(AssetRecord)

        base = scope_base(principal, Action.ASSET_READ, filters.base)
        if base:
            query = query.where(AssetRecord.base == base)
        if filters.type:
            query = query.where(AssetRecord.type == filters.type.value)
        if filters.name:
            query = query.where(AssetRecord.name.ilike(f"%{filters.name.strip()}%"))

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        sort_column = getattr(AssetRecord, filters.sort_by.value)
        order = sort_column.desc() if filters.sort_order == SortOrder.DESC else sort_column.asc()
        query = (
            query.order_by(order, AssetRecord.id)
            .offset((filters.page - 1) * filters.limit)
            .limit(filters.limit)
        )

        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def list_by_base(self, base: str, principal: Principal) -> list[AssetRecord]:
        ensure_access(principal, Action.ASSET_READ, base)
        result = await self.db.execute(
            select(AssetRecord).where(AssetRecord.base == base).order_by(AssetRecord.name)
        )
        return list(result.scalars().all())

    async def list_by_type(self, asset_type: AssetType, principal: Principal) -> list[AssetRecord]:
        query = select(AssetRecord).where(AssetRecord.type == asset_type.value)
        base = scope_base(principal, Action.ASSET_READ)
        if base:
            query = query.where(AssetRecord.base == base)
        result = await self.db.execute(query.order_by(AssetRecord.base, AssetRecord.name))
        return list(result.scalars().all())

    async def update_asset(
        self, asset_id: int, data: AssetUpdate, principal: Principal
    ) -> AssetRecord:
        """Edit identity fields and/or the opening balance.

        Moving an asset to another base needs access to both bases.
        """
        asset = await self._get(asset_id)
        ensure_access(principal, Action.ASSET_UPDATE, asset.base)
        if data.base is not None and data.base != asset.base:
            ensure_access(principal, Action.ASSET_UPDATE, data.base)

        old_values = _snapshot(asset)

        name = data.name if data.name is not None else asset.name
        asset_type = data.type.value if data.type is not None else asset.type
        base = data.base if data.base is not None else asset.base
        if (name, asset_type, base) != (asset.name, asset.type, asset.base):
            await self._ensure_unique(name, asset_type, base, exclude_id=asset.id)
            asset.name, asset.type, asset.base = name, asset_type, base
            await self.db.flush()

        if data.opening_balance is not None and data.opening_balance != asset.opening_balance:
            asset = await ledger.set_opening_balance(self.db, asset.id, data.opening_balance)

        await self.db.commit()

        await self.activity.record(
            ActivityAction.UPDATE,
            AssetRecord.resource_type,
            asset.id,
            details={"old": old_values, "new": _snapshot(asset)},
            principal=principal,
        )
        return asset

    async def delete_asset(self, asset_id: int, principal: Principal) -> None:
        """Hard delete. Movements that reference the asset keep a dangling asset_id."""
        asset = await self._get(asset_id)
        ensure_access(principal, Action.ASSET_DELETE, asset.base)

        details = _snapshot(asset)
        await self.db.delete(asset)
        await self.db.commit()

        await self.activity.record(
            ActivityAction.DELETE,
            AssetRecord.resource_type,
            asset_id,
            details=details,
            principal=principal,
        )
