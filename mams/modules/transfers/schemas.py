"""Schemas for Transfers module."""

from datetime import date, datetime

from pydantic import Field, model_validator

from mams.modules.assets.schemas import AssetResponse
from mams.modules.transfers.models import TransferStatus
from mams.shared.schemas import BaseSchema


class TransferCreate(BaseSchema):
    """Schema for moving a quantity of an existing asset to another base."""

    asset_id: int
    from_base: str = Field(..., min_length=1, max_length=200)
    to_base: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    transfer_date: date | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def bases_differ(self):
        if self.from_base.strip() == self.to_base.strip():
            raise ValueError("from_base and to_base must differ")
        return self


class TransferAction(BaseSchema):
    notes: str | None = None


class TransferFilters(BaseSchema):
    """Filters for transfer list."""

    from_base: str | None = None
    to_base: str | None = None
    status: TransferStatus | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = 1
    limit: int = 10


class TransferResponse(BaseSchema):
    """Schema for transfer response."""

    id: int
    asset_id: int
    destination_asset_id: int
    asset_name: str
    asset_type: str
    from_base: str
    to_base: str
    quantity: int
    status: str
    transfer_date: date
    completed_date: date | None
    notes: str | None
    transferred_by_id: int | None
    approved_by_id: int | None
    created_at: datetime
    updated_at: datetime


class TransferResult(BaseSchema):
    """Transfer with both asset records as they stand after the operation."""

    transfer: TransferResponse
    source_asset: AssetResponse | None = None
    destination_asset: AssetResponse | None = None
