"""Service for Expenditures module."""

from datetime import date

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.access import Action, Principal, ensure_access, scope_base
from mams.core.audit import ActivityAction, ActivityLogService
from mams.core.exceptions import (
    BaseMismatchError,
    InsufficientQuantityError,
    InvalidQuantityError,
    NotFoundError,
)
from mams.modules.assets import ledger
from mams.modules.assets.ledger import AssetDelta
from mams.modules.assets.models import AssetRecord
from mams.modules.expenditures.models import Expenditure
from mams.modules.expenditures.schemas import ExpenditureCreate, ExpenditureFilters
from mams.shared.utils.notes import append_note


class ExpenditureService:
    """Expenditures have no states; delete is the only undo."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLogService(db)

    async def _get(self, expenditure_id: int) -> Expenditure:
        result = await self.db.execute(
            select(Expenditure)
            .where(Expenditure.id == expenditure_id)
            .execution_options(populate_existing=True)
        )
        expenditure = result.scalar_one_or_none()
        if not expenditure:
            raise NotFoundError("Expenditure", expenditure_id)
        return expenditure

    async def get_expenditure(self, expenditure_id: int, principal: Principal) -> Expenditure:
        expenditure = await self._get(expenditure_id)
        ensure_access(principal, Action.EXPENDITURE_READ, expenditure.base)
        return expenditure

    async def list_expenditures(
        self, filters: ExpenditureFilters, principal: Principal
    ) -> tuple[list[Expenditure], int]:
        query = select(Expenditure)

        base = scope_base(principal, Action.EXPENDITURE_READ, filters.base)
        if base:
            query = query.where(Expenditure.base == base)
        if filters.asset_type:
            query = query.where(Expenditure.asset_type == filters.asset_type.value)
        if filters.reason:
            query = query.where(Expenditure.reason == filters.reason.value)
        if filters.date_from:
            query = query.where(Expenditure.expenditure_date >= filters.date_from)
        if filters.date_to:
            query = query.where(Expenditure.expenditure_date <= filters.date_to)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Expenditure.expenditure_date.desc(), Expenditure.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def create_expenditure(
        self, data: ExpenditureCreate, principal: Principal
    ) -> tuple[Expenditure, AssetRecord]:
        if data.quantity <= 0:
            raise InvalidQuantityError("Quantity must be positive", requested=data.quantity)
        ensure_access(principal, Action.EXPENDITURE_CREATE, data.base)

        asset = await ledger.get_asset(self.db, data.asset_id)
        if not asset:
            raise NotFoundError("Asset", data.asset_id)
        if asset.base != data.base:
            raise BaseMismatchError(asset.id, asset.base, data.base)
        if asset.available < data.quantity:
            raise InsufficientQuantityError(asset.id, data.quantity, asset.available)

        asset = await ledger.apply_delta(
            self.db,
            asset.id,
            AssetDelta(expended=data.quantity),
            require_available=data.quantity,
        )

        expenditure = Expenditure(
            asset_id=asset.id,
            asset_name=asset.name,
            asset_type=asset.type,
            base=asset.base,
            quantity=data.quantity,
            reason=data.reason.value,
            expended_by_name=data.expended_by.name,
            expended_by_rank=data.expended_by.rank,
            expended_by_service_id=data.expended_by.service_id,
            operation_name=data.operation_name,
            location=data.location,
            expenditure_date=data.expenditure_date or date.today(),
            notes=append_note(None, data.notes, principal.username),
            authorized_by_id=principal.user_id,
        )
        self.db.add(expenditure)
        await self.db.commit()

        await self.activity.record(
            ActivityAction.CREATE,
            Expenditure.resource_type,
            expenditure.id,
            details={
                "asset_id": asset.id,
                "base": asset.base,
                "quantity": expenditure.quantity,
                "reason": expenditure.reason,
            },
            principal=principal,
        )
        return expenditure, asset

    async def update_notes(
        self, expenditure_id: int, notes: str, principal: Principal
    ) -> Expenditure:
        expenditure = await self._get(expenditure_id)
        ensure_access(principal, Action.EXPENDITURE_UPDATE, expenditure.base)

        expenditure.notes = append_note(expenditure.notes, notes, principal.username)
        await self.db.commit()

        await self.activity.record(
            ActivityAction.UPDATE,
            Expenditure.resource_type,
            expenditure.id,
            details={"notes": notes},
            principal=principal,
        )
        return expenditure

    async def delete_expenditure(
        self, expenditure_id: int, principal: Principal
    ) -> AssetRecord | None:
        """Remove the expenditure and give its quantity back to the asset."""
        expenditure = await self._get(expenditure_id)
        ensure_access(principal, Action.EXPENDITURE_DELETE, expenditure.base)

        details = {
            "asset_id": expenditure.asset_id,
            "base": expenditure.base,
            "quantity": expenditure.quantity,
            "reason": expenditure.reason,
        }
        result = await self.db.execute(
            delete(Expenditure)
            .where(Expenditure.id == expenditure.id)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise NotFoundError("Expenditure", expenditure_id)
        self.db.expunge(expenditure)

        asset = await ledger.compensate(
            self.db, details["asset_id"], AssetDelta(expended=details["quantity"]).inverse()
        )
        await self.db.commit()

        await self.activity.record(
            ActivityAction.DELETE,
            Expenditure.resource_type,
            expenditure_id,
            details=details,
            principal=principal,
        )
        return asset
