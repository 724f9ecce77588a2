"""Schemas for Assets module."""

from datetime import datetime
from enum import StrEnum

from pydantic import Field, field_validator

from mams.modules.assets.models import AssetType
from mams.shared.schemas import BaseSchema


class AssetCreate(BaseSchema):
    """Schema for registering an asset at a base."""

    name: str = Field(..., min_length=1, max_length=200)
    type: AssetType
    base: str = Field(..., min_length=1, max_length=200)
    opening_balance: int = Field(0, ge=0)

    @field_validator("name", "base")
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Must not be blank")
        return v


class AssetUpdate(BaseSchema):
    """Schema for editing an asset; counters are never editable."""

    name: str | None = Field(None, min_length=1, max_length=200)
    type: AssetType | None = None
    base: str | None = Field(None, min_length=1, max_length=200)
    opening_balance: int | None = Field(None, ge=0)


class AssetSortField(StrEnum):
    NAME = "name"
    TYPE = "type"
    BASE = "base"
    CREATED_AT = "created_at"
    CLOSING_BALANCE = "closing_balance"
    AVAILABLE = "available"


class SortOrder(StrEnum):
    ASC = "asc"
    DESC = "desc"


class AssetFilters(BaseSchema):
    """Filters for asset list."""

    base: str | None = None
    type: AssetType | None = None
    name: str | None = None  # substring, case-insensitive
    sort_by: AssetSortField = AssetSortField.CREATED_AT
    sort_order: SortOrder = SortOrder.DESC
    page: int = 1
    limit: int = 10


class AssetResponse(BaseSchema):
    """Asset with its balance fields."""

    id: int
    name: str
    type: str
    base: str
    opening_balance: int
    purchases: int
    transfer_in: int
    transfer_out: int
    assigned: int
    expended: int
    closing_balance: int
    available: int
    net_movement: int
    created_at: datetime
    updated_at: datetime
