"""API endpoints for Purchases module."""

from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from mams.core.auth.dependencies import CurrentUser, LogisticsUser
from mams.core.database import get_db
from mams.modules.assets.models import AssetRecord, AssetType
from mams.modules.assets.schemas import AssetResponse
from mams.modules.purchases.models import Purchase, PurchaseStatus
from mams.modules.purchases.schemas import (
    PurchaseCancel,
    PurchaseCreate,
    PurchaseDeliver,
    PurchaseFilters,
    PurchaseResponse,
    PurchaseResult,
)
from mams.modules.purchases.service import PurchaseService
from mams.shared.schemas import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/purchases", tags=["Purchases"])


def _result(purchase: Purchase, asset: AssetRecord | None) -> PurchaseResult:
    return PurchaseResult(
        purchase=PurchaseResponse.model_validate(purchase),
        asset=AssetResponse.model_validate(asset) if asset else None,
    )


@router.post(
    "",
    response_model=ApiResponse[PurchaseResult],
    status_code=status.HTTP_201_CREATED,
)
async def create_purchase(
    data: PurchaseCreate,
    current_user: LogisticsUser,
    db: AsyncSession = Depends(get_db),
):
    """Record a purchase (Ordered, or Delivered immediately)."""
    service = PurchaseService(db)
    purchase, asset = await service.create_purchase(data, current_user.principal)
    return ApiResponse(data=_result(purchase, asset), message="Purchase created successfully")


@router.get("", response_model=ApiResponse[PaginatedResponse[PurchaseResponse]])
async def list_purchases(
    current_user: CurrentUser,
    base: str | None = Query(None),
    asset_type: AssetType | None = Query(None),
    purchase_status: PurchaseStatus | None = Query(None, alias="status"),
    date_from: date | None = Query(None),
    date_to: date | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    filters = PurchaseFilters(
        base=base,
        asset_type=asset_type,
        status=purchase_status,
        date_from=date_from,
        date_to=date_to,
        page=page,
        limit=limit,
    )
    service = PurchaseService(db)
    purchases, total = await service.list_purchases(filters, current_user.principal)
    return ApiResponse(
        data=PaginatedResponse.create(
            items=[PurchaseResponse.model_validate(p) for p in purchases],
            total=total,
            page=page,
            limit=limit,
        ),
    )


@router.get("/{purchase_id}", response_model=ApiResponse[PurchaseResponse])
async def get_purchase(
    purchase_id: int,
    current_user: CurrentUser,
    db: AsyncSession = Depends(get_db),
):
    service = PurchaseService(db)
    purchase = await service.get_purchase(purchase_id, current_user.principal)
    return ApiResponse(data=PurchaseResponse.model_validate(purchase))


@router.post("/{purchase_id}/deliver", response_model=ApiResponse[PurchaseResult])
async def deliver_purchase(
    purchase_id: int,
    current_user: LogisticsUser,
    data: PurchaseDeliver | None = None,
    db: AsyncSession = Depends(get_db),
):
    """Mark an ordered purchase as delivered."""
    data = data or PurchaseDeliver()
    service = PurchaseService(db)
    purchase, asset = await service.deliver_purchase(
        purchase_id,
        current_user.principal,
        delivery_date=data.delivery_date,
        notes=data.notes,
    )
    return ApiResponse(data=_result(purchase, asset), message="Purchase delivered")


@router.post("/{purchase_id}/cancel", response_model=ApiResponse[PurchaseResult])
async def cancel_purchase(
    purchase_id: int,
    current_user: LogisticsUser,
    data: PurchaseCancel | None = None,
    db: AsyncSession = Depends(get_db),
):
    service = PurchaseService(db)
    purchase, asset = await service.cancel_purchase(
        purchase_id, current_user.principal, reason=data.reason if data else None
    )
    return ApiResponse(data=_result(purchase, asset), message="Purchase cancelled")
