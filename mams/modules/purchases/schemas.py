"""Schemas for Purchases module."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import Field

from mams.modules.assets.models import AssetType
from mams.modules.assets.schemas import AssetResponse
from mams.modules.purchases.models import PurchaseStatus
from mams.shared.schemas import BaseSchema


class PurchaseCreate(BaseSchema):
    """Schema for recording a purchase.

    status may be Delivered to receive the quantity immediately.
    """

    asset_name: str = Field(..., min_length=1, max_length=200)
    asset_type: AssetType
    base: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    unit_cost: Decimal = Field(..., ge=0)
    supplier: str = Field(..., min_length=1, max_length=300)
    invoice_number: str | None = Field(None, max_length=100)
    purchase_date: date | None = None
    status: PurchaseStatus = PurchaseStatus.ORDERED
    notes: str | None = None


class PurchaseDeliver(BaseSchema):
    delivery_date: date | None = None
    notes: str | None = None


class PurchaseCancel(BaseSchema):
    reason: str | None = None


class PurchaseFilters(BaseSchema):
    """Filters for purchase list."""

    base: str | None = None
    asset_type: AssetType | None = None
    status: PurchaseStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = 1
    limit: int = 10


class PurchaseResponse(BaseSchema):
    """Schema for purchase response."""

    id: int
    asset_id: int | None
    asset_name: str
    asset_type: str
    base: str
    quantity: int
    unit_cost: Decimal
    total_cost: Decimal
    supplier: str
    invoice_number: str | None
    status: str
    purchase_date: date
    delivery_date: date | None
    notes: str | None
    purchased_by_id: int | None
    approved_by_id: int | None
    created_at: datetime
    updated_at: datetime


class PurchaseResult(BaseSchema):
    """Purchase together with the asset record it touched, if any."""

    purchase: PurchaseResponse
    asset: AssetResponse | None = None
