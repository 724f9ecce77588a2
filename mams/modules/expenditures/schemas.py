"""Schemas for Expenditures module."""

from datetime import date, datetime

from pydantic import Field

from mams.modules.assets.models import AssetType
from mams.modules.assets.schemas import AssetResponse
from mams.modules.assignments.schemas import AssignedPerson
from mams.modules.expenditures.models import ExpenditureReason
from mams.shared.schemas import BaseSchema


class ExpenditureCreate(BaseSchema):
    """Schema for recording consumption of an asset."""

    asset_id: int
    base: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    reason: ExpenditureReason
    expended_by: AssignedPerson
    operation_name: str | None = Field(None, max_length=200)
    location: str | None = Field(None, max_length=200)
    expenditure_date: date | None = None
    notes: str | None = None


class ExpenditureUpdate(BaseSchema):
    """Only notes can change; quantities are fixed once expended."""

    notes: str = Field(..., min_length=1)


class ExpenditureFilters(BaseSchema):
    """Filters for expenditure list."""

    base: str | None = None
    asset_type: AssetType | None = None
    reason: ExpenditureReason | None = None
    date_from: date | None = None
    date_to: date | None = None
    page: int = 1
    limit: int = 10


class ExpenditureResponse(BaseSchema):
    """Schema for expenditure response."""

    id: int
    asset_id: int
    asset_name: str
    asset_type: str
    base: str
    quantity: int
    reason: str
    expended_by: AssignedPerson
    operation_name: str | None
    location: str | None
    expenditure_date: date
    notes: str | None
    authorized_by_id: int | None
    created_at: datetime
    updated_at: datetime


class ExpenditureResult(BaseSchema):
    expenditure: ExpenditureResponse
    asset: AssetResponse | None = None
