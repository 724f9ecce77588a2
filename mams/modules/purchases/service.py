"""Service for Purchases module."""

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.access import Action, Principal, ensure_access, scope_base
from mams.core.audit import ActivityAction, ActivityLogService
from mams.core.exceptions import (
    AlreadyTerminalError,
    InvalidQuantityError,
    InvalidTransitionError,
    NotFoundError,
)
from mams.modules.assets import ledger
from mams.modules.assets.ledger import AssetDelta
from mams.modules.assets.models import AssetRecord
from mams.modules.purchases.models import Purchase, PurchaseStatus
from mams.modules.purchases.schemas import PurchaseCreate, PurchaseFilters
from mams.shared.utils.money import round_money, total_cost
from mams.shared.utils.notes import append_note
from mams.shared.utils.transitions import claim_status

logger = logging.getLogger(__name__)


class PurchaseService:
    """Purchase state machine: Ordered -> Delivered | Cancelled."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.activity = ActivityLogService(db)

    async def _get(self, purchase_id: int) -> Purchase:
        result = await self.db.execute(
            select(Purchase)
            .where(Purchase.id == purchase_id)
            .execution_options(populate_existing=True)
        )
        purchase = result.scalar_one_or_none()
        if not purchase:
            raise NotFoundError("Purchase", purchase_id)
        return purchase

    async def get_purchase(self, purchase_id: int, principal: Principal) -> Purchase:
        purchase = await self._get(purchase_id)
        ensure_access(principal, Action.PURCHASE_READ, purchase.base)
        return purchase

    async def list_purchases(
        self, filters: PurchaseFilters, principal: Principal
    ) -> tuple[list[Purchase], int]:
        query = select(Purchase)

        base = scope_base(principal, Action.PURCHASE_READ, filters.base)
        if base:
            query = query.where(Purchase.base == base)
        if filters.asset_type:
            query = query.where(Purchase.asset_type == filters.asset_type.value)
        if filters.status:
            query = query.where(Purchase.status == filters.status.value)
        if filters.date_from:
            query = query.where(Purchase.purchase_date >= filters.date_from)
        if filters.date_to:
            query = query.where(Purchase.purchase_date <= filters.date_to)

        count_query = select(func.count()).select_from(query.subquery())
        total = (await self.db.execute(count_query)).scalar() or 0

        query = query.order_by(Purchase.purchase_date.desc(), Purchase.id.desc())
        query = query.offset((filters.page - 1) * filters.limit).limit(filters.limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def create_purchase(
        self, data: PurchaseCreate, principal: Principal
    ) -> tuple[Purchase, AssetRecord | None]:
        """Record a purchase in Ordered state, or deliver it right away."""
        if data.quantity <= 0:
            raise InvalidQuantityError("Quantity must be positive", requested=data.quantity)
        ensure_access(principal, Action.PURCHASE_CREATE, data.base)
        if data.status == PurchaseStatus.CANCELLED:
            raise InvalidTransitionError(
                "Purchase", PurchaseStatus.ORDERED.value, PurchaseStatus.CANCELLED.value
            )

        purchase = Purchase(
            asset_name=data.asset_name.strip(),
            asset_type=data.asset_type.value,
            base=data.base.strip(),
            quantity=data.quantity,
            unit_cost=round_money(data.unit_cost),
            total_cost=total_cost(data.quantity, data.unit_cost),
            supplier=data.supplier,
            invoice_number=data.invoice_number,
            status=PurchaseStatus.ORDERED.value,
            purchase_date=data.purchase_date or date.today(),
            notes=data.notes,
            purchased_by_id=principal.user_id,
        )
        self.db.add(purchase)
        await self.db.flush()

        asset = None
        if data.status == PurchaseStatus.DELIVERED:
            purchase, asset = await self._deliver(purchase, principal, date.today())

        await self.db.commit()

        await self.activity.record(
            ActivityAction.CREATE,
            Purchase.resource_type,
            purchase.id,
            details={
                "asset_name": purchase.asset_name,
                "base": purchase.base,
                "quantity": purchase.quantity,
                "status": purchase.status,
            },
            principal=principal,
        )
        return purchase, asset

    async def _deliver(
        self, purchase: Purchase, principal: Principal, delivery_date: date
    ) -> tuple[Purchase, AssetRecord]:
        claimed = await claim_status(
            self.db,
            Purchase,
            purchase.id,
            [PurchaseStatus.ORDERED.value],
            {
                "status": PurchaseStatus.DELIVERED.value,
                "delivery_date": delivery_date,
                "approved_by_id": principal.user_id,
            },
        )
        if not claimed:
            current = await self._get(purchase.id)
            raise InvalidTransitionError(
                "Purchase", current.status, PurchaseStatus.DELIVERED.value
            )

        lookup = await ledger.find_or_create(
            self.db, purchase.asset_name, purchase.asset_type, purchase.base
        )
        asset = await ledger.apply_delta(
            self.db, lookup.asset.id, AssetDelta(purchases=purchase.quantity)
        )
        purchase = await self._get(purchase.id)
        purchase.asset_id = asset.id
        await self.db.flush()
        return purchase, asset

    async def deliver_purchase(
        self,
        purchase_id: int,
        principal: Principal,
        delivery_date: date | None = None,
        notes: str | None = None,
    ) -> tuple[Purchase, AssetRecord]:
        """Ordered -> Delivered: add the quantity to the asset's purchases."""
        purchase = await self._get(purchase_id)
        ensure_access(principal, Action.PURCHASE_DELIVER, purchase.base)
        if purchase.status != PurchaseStatus.ORDERED.value:
            raise InvalidTransitionError(
                "Purchase", purchase.status, PurchaseStatus.DELIVERED.value
            )

        purchase, asset = await self._deliver(
            purchase, principal, delivery_date or date.today()
        )
        purchase.notes = append_note(purchase.notes, notes, principal.username)
        await self.db.commit()

        await self.activity.record(
            ActivityAction.DELIVER,
            Purchase.resource_type,
            purchase.id,
            details={"asset_id": asset.id, "quantity": purchase.quantity},
            principal=principal,
        )
        return purchase, asset

    async def cancel_purchase(
        self, purchase_id: int, principal: Principal, reason: str | None = None
    ) -> tuple[Purchase, AssetRecord | None]:
        """Cancel a purchase; a delivered one has its quantity taken back."""
        purchase = await self._get(purchase_id)
        ensure_access(principal, Action.PURCHASE_CANCEL, purchase.base)
        if purchase.status == PurchaseStatus.CANCELLED.value:
            raise AlreadyTerminalError("Purchase", purchase.status)

        previous_status = purchase.status
        claimed = await claim_status(
            self.db,
            Purchase,
            purchase.id,
            [previous_status],
            {"status": PurchaseStatus.CANCELLED.value},
        )
        if not claimed:
            current = await self._get(purchase.id)
            raise AlreadyTerminalError("Purchase", current.status)

        asset = None
        if previous_status == PurchaseStatus.DELIVERED.value:
            asset = await ledger.compensate(
                self.db, purchase.asset_id, AssetDelta(purchases=purchase.quantity).inverse()
            )

        purchase = await self._get(purchase.id)
        purchase.notes = append_note(
            purchase.notes, f"Cancelled: {reason}" if reason else None, principal.username
        )
        await self.db.commit()

        await self.activity.record(
            ActivityAction.CANCEL,
            Purchase.resource_type,
            purchase.id,
            details={"previous_status": previous_status, "reason": reason},
            principal=principal,
        )
        return purchase, asset
