"""Schemas for Assignments module."""

from datetime import date, datetime

from pydantic import Field

from mams.modules.assets.models import AssetType
from mams.modules.assets.schemas import AssetResponse
from mams.modules.assignments.models import AssignmentStatus
from mams.shared.schemas import BaseSchema


class AssignedPerson(BaseSchema):
    name: str = Field(..., min_length=1, max_length=200)
    rank: str = Field(..., min_length=1, max_length=100)
    service_id: str = Field(..., min_length=1, max_length=100)


class AssignmentCreate(BaseSchema):
    """Schema for assigning asset quantity to personnel."""

    asset_id: int
    base: str = Field(..., min_length=1, max_length=200)
    quantity: int = Field(..., gt=0)
    assigned_to: AssignedPerson
    purpose: str | None = Field(None, max_length=500)
    start_date: date | None = None
    notes: str | None = None


class AssignmentReturn(BaseSchema):
    """Partial or full return of assigned units."""

    returned_quantity: int = Field(..., gt=0)
    notes: str | None = None


class AssignmentStatusUpdate(BaseSchema):
    # Checked by the service so unknown values fail with INVALID_STATUS
    status: str = Field(..., min_length=1)
    notes: str | None = None


class AssignmentFilters(BaseSchema):
    """Filters for assignment list."""

    base: str | None = None
    asset_type: AssetType | None = None
    status: AssignmentStatus | None = None
    assigned_to: str | None = None  # name substring
    date_from: date | None = None
    date_to: date | None = None
    page: int = 1
    limit: int = 10


class AssignmentResponse(BaseSchema):
    """Schema for assignment response."""

    id: int
    asset_id: int
    asset_name: str
    asset_type: str
    base: str
    quantity: int
    returned_quantity: int
    outstanding_quantity: int
    assigned_to: AssignedPerson
    purpose: str | None
    status: str
    start_date: date
    end_date: date | None
    notes: str | None
    assigned_by_id: int | None
    created_at: datetime
    updated_at: datetime


class AssignmentResult(BaseSchema):
    assignment: AssignmentResponse
    asset: AssetResponse | None = None
